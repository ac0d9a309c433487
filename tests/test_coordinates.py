from __future__ import annotations

from pathlib import PurePosixPath

import pytest

from contract.coordinates import (
    CACHE_GROUP,
    ArtifactCoordinate,
    compose_version,
    parse_coordinate,
    pipeline_coordinates,
)


def test_compose_version_joins_components() -> None:
    assert compose_version("1.12.2", "20180101") == "1.12.2-20180101"
    assert compose_version("1.12.2") == "1.12.2"


@pytest.mark.parametrize("components", [(), ("1.12.2", ""), (" ",)])
def test_compose_version_rejects_empty_components(components: tuple[str, ...]) -> None:
    with pytest.raises(ValueError):
        compose_version(*components)


def test_relative_path_uses_maven_layout() -> None:
    coordinate = ArtifactCoordinate(
        "org.decompipe.minecraft", "server-mcp", "1.12.2-a-b", "jar", "source"
    )

    assert coordinate.filename == "server-mcp-1.12.2-a-b-source.jar"
    assert coordinate.relative_path() == PurePosixPath(
        "org/decompipe/minecraft/server-mcp/1.12.2-a-b/server-mcp-1.12.2-a-b-source.jar"
    )
    assert str(coordinate) == "org.decompipe.minecraft:server-mcp:jar:source:1.12.2-a-b"


def test_snapshot_coordinates_carry_the_snapshot_suffix() -> None:
    coordinate = ArtifactCoordinate("g", "n", "1.0", "jar", snapshot=True)

    assert coordinate.base_version == "1.0-SNAPSHOT"
    assert coordinate.filename == "n-1.0-SNAPSHOT.jar"


def test_pipeline_coordinates_compose_every_upstream_version() -> None:
    coordinates = pipeline_coordinates("1.12.2", "1.12.2", "snapshot-20180101")

    assert coordinates.server.version == "1.12.2"
    assert coordinates.server_srg.version == "1.12.2-1.12.2"
    assert coordinates.server_mcp.version == "1.12.2-1.12.2-snapshot-20180101"
    assert coordinates.decompiled.classifier == "source"
    assert all(c.group == CACHE_GROUP for c in coordinates.all())
    assert len(set(coordinates.all())) == len(coordinates.all())


def test_changing_any_version_changes_the_derived_coordinates() -> None:
    base = pipeline_coordinates("1.12.2", "1.12.2", "snapshot-1")
    changed = pipeline_coordinates("1.12.2", "1.12.2", "snapshot-2")

    assert base.server_srg == changed.server_srg
    assert base.server_mcp != changed.server_mcp
    assert base.decompiled != changed.decompiled


def test_parse_coordinate_reads_library_notation() -> None:
    coordinate = parse_coordinate("com.google.guava:guava:21.0")
    assert coordinate == ArtifactCoordinate("com.google.guava", "guava", "21.0", "jar")

    native = parse_coordinate("org.lwjgl:lwjgl:3.1-SNAPSHOT:natives@zip")
    assert native.classifier == "natives"
    assert native.extension == "zip"
    assert native.snapshot
    assert native.version == "3.1"


@pytest.mark.parametrize("notation", ["guava", "a:b", "a::c", "a:b:c:d:e"])
def test_parse_coordinate_rejects_malformed_notation(notation: str) -> None:
    with pytest.raises(ValueError, match="Invalid artifact"):
        parse_coordinate(notation)
