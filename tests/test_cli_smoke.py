from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from cli import EXIT_CONFIGURATION, EXIT_OK, main
from contract.coordinates import pipeline_coordinates
from rules.config import CONFIG_FILENAME
from store.local import LocalArtifactStore

if TYPE_CHECKING:
    from pathlib import Path

VERSIONS = [
    "--minecraft-version",
    "1.12",
    "--srg-version",
    "1.12",
    "--mcp-version",
    "snapshot-20180101-1.12",
]


def test_cli_generate_without_configuration_reports_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    exit_code = main(["generate", str(tmp_path)])

    assert exit_code == EXIT_CONFIGURATION
    assert "configuration error: minecraft_version" in capsys.readouterr().err


def test_cli_verify_requires_a_decompiler(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    exit_code = main(["verify", str(tmp_path), *VERSIONS])

    assert exit_code == EXIT_CONFIGURATION
    assert "toolchain.decompiler_jar" in capsys.readouterr().err


def test_cli_rejects_an_escaping_source_dir(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    exit_code = main(
        ["generate", str(tmp_path), *VERSIONS, "--source-dir", "../outside"]
    )

    assert exit_code == EXIT_CONFIGURATION
    assert "escapes the project root" in capsys.readouterr().err


def test_cli_coordinates_lists_cache_state(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    (tmp_path / CONFIG_FILENAME).write_text(
        'minecraft_version = "1.12"\n'
        'srg_version = "1.12"\n'
        'mcp_version = "snapshot-20180101-1.12"\n'
        'cache_dir = "cache"\n',
        encoding="utf-8",
    )
    coordinates = pipeline_coordinates("1.12", "1.12", "snapshot-20180101-1.12")
    LocalArtifactStore(tmp_path / "cache").put(coordinates.server, b"jar")

    exit_code = main(["coordinates", str(tmp_path)])

    assert exit_code == EXIT_OK
    lines = capsys.readouterr().out.splitlines()
    assert f"cached\t{coordinates.server}" in lines
    assert f"missing\t{coordinates.decompiled}" in lines
    assert len(lines) == len(coordinates.all())


def test_cli_requires_a_command() -> None:
    with pytest.raises(SystemExit) as exc_info:
        main([])

    assert exc_info.value.code == 2
