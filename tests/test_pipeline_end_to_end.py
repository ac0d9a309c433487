from __future__ import annotations

import hashlib
import shutil
from typing import TYPE_CHECKING

import pytest
from fake_remote import (
    DESCRIPTOR_URL,
    FOO_SOURCE,
    LIBRARY_URL,
    MANIFEST_URL,
    MCP_URL,
    SERVER_URL,
    SRG_URL,
    release_responder,
    services_for,
    write_project,
)

from contract.coordinates import pipeline_coordinates
from contract.errors import PatchApplyError
from pipeline.build import generate_sources
from vcs.git import GitIdentity, GitRepository

if TYPE_CHECKING:
    from pathlib import Path

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="requires git")

CACHED_STAGES = [
    "fetch-srg",
    "fetch-mcp",
    "fetch-server",
    "apply-srg",
    "apply-mcp",
    "decompile",
]
WORKING_TREE_STAGES = [
    "transform-source",
    "git-init",
    "git-add",
    "git-commit",
    "git-branch",
    "git-apply-patches",
]


def _keyword_field() -> str:
    digest = hashlib.md5(b"net/minecraft/server/Foo\x00new\x00I").hexdigest()
    return f"field_{digest}"


def test_generate_produces_a_snapshot_repository(tmp_path: Path) -> None:
    config, paths = write_project(tmp_path / "project")
    responder = release_responder()
    services = services_for(config, paths, responder)
    try:
        report = generate_sources(config, paths, services)
    finally:
        services.close()

    assert report.executed == CACHED_STAGES + WORKING_TREE_STAGES
    assert sorted(responder.requests) == sorted(
        [
            MANIFEST_URL,
            DESCRIPTOR_URL,
            SRG_URL,
            MCP_URL,
            SERVER_URL,
            LIBRARY_URL,
        ]
    )
    source = (paths.source_dir / FOO_SOURCE).read_text(encoding="utf-8")
    assert "package net.minecraft.server;" in source
    assert "int counter;" in source
    assert f"int {_keyword_field()};" in source
    assert "void tick() {}" in source
    assert (paths.source_dir / "log4j2.xml").is_file()
    assert not (paths.source_dir / "org").exists()
    assert not (paths.source_dir / "META-INF").exists()

    repository = GitRepository(paths.source_dir, GitIdentity("t", "t@example"))
    assert repository.current_branch() == "main"
    assert repository.run("rev-parse", "upstream").strip() == repository.head()
    assert repository.run("log", "--format=%s").splitlines() == [
        "Decompiled Minecraft"
    ]
    tracked = repository.run("ls-files").split()
    assert tracked == [FOO_SOURCE]

    store = services.store
    for coordinate in pipeline_coordinates(
        config.minecraft_version, config.srg_version, config.mcp_version
    ).all():
        assert store.exists(coordinate), coordinate


def _record_patch(paths_source: Path, patch_dir: Path, subject: str) -> None:
    repository = GitRepository(paths_source, GitIdentity("Dev", "dev@example"))
    source = paths_source / FOO_SOURCE
    text = source.read_text(encoding="utf-8")
    updated = text.replace("int counter;", "int counter = 1;")
    source.write_text(updated, encoding="utf-8")
    repository.add()
    repository.commit(subject)
    repository.run("format-patch", "--quiet", "-1", "-o", str(patch_dir))


def test_rerun_reuses_the_cache_and_replays_patches(tmp_path: Path) -> None:
    config, paths = write_project(tmp_path / "project")
    services = services_for(config, paths, release_responder())
    try:
        generate_sources(config, paths, services)
    finally:
        services.close()
    _record_patch(paths.source_dir, paths.patch_dir, "Initialize counter")

    responder = release_responder()
    services = services_for(config, paths, responder)
    try:
        report = generate_sources(config, paths, services)
    finally:
        services.close()

    assert report.skipped == CACHED_STAGES
    assert report.executed == WORKING_TREE_STAGES
    assert responder.requests == []
    source = (paths.source_dir / FOO_SOURCE).read_text(encoding="utf-8")
    assert "int counter = 1;" in source
    repository = GitRepository(paths.source_dir, GitIdentity("t", "t@example"))
    assert repository.run("log", "--format=%s").splitlines() == [
        "Initialize counter",
        "Decompiled Minecraft",
    ]
    assert repository.run("rev-parse", "upstream").strip() != repository.head()


def test_rerun_stops_at_a_failing_patch(tmp_path: Path) -> None:
    config, paths = write_project(tmp_path / "project")
    services = services_for(config, paths, release_responder())
    try:
        generate_sources(config, paths, services)
        _record_patch(paths.source_dir, paths.patch_dir, "Initialize counter")
        (paths.patch_dir / "0002-broken.patch").write_text(
            "not a patch\n", encoding="utf-8"
        )

        with pytest.raises(PatchApplyError) as excinfo:
            generate_sources(config, paths, services)
    finally:
        services.close()

    assert excinfo.value.index == 2
    assert excinfo.value.stage == "git-apply-patches"
    source = (paths.source_dir / FOO_SOURCE).read_text(encoding="utf-8")
    assert "int counter = 1;" in source
    repository = GitRepository(paths.source_dir, GitIdentity("t", "t@example"))
    assert repository.run("log", "-1", "--format=%s").strip() == "Initialize counter"
