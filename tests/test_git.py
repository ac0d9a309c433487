from __future__ import annotations

import shutil
from typing import TYPE_CHECKING

import pytest

from contract.errors import ExecutionError, PatchApplyError
from vcs.git import GitIdentity, GitRepository

if TYPE_CHECKING:
    from pathlib import Path

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="requires git")

IDENTITY = GitIdentity("Pipeline", "pipeline@example.invalid")


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


@pytest.fixture
def repository(tmp_path: Path) -> GitRepository:
    work = tmp_path / "work"
    work.mkdir()
    return GitRepository.init(work, IDENTITY)


def test_init_checks_out_the_requested_branch(tmp_path: Path) -> None:
    work = tmp_path / "work"
    work.mkdir()

    repository = GitRepository.init(work, IDENTITY, branch="trunk")

    assert repository.current_branch() == "trunk"


def test_add_counts_matching_files(repository: GitRepository) -> None:
    _write(repository.path / "net/x/Foo.java", "class Foo {}\n")
    _write(repository.path / "Root.java", "class Root {}\n")
    _write(repository.path / "notes.txt", "ignored\n")

    assert repository.add() == 2
    staged = repository.run("diff", "--cached", "--name-only").split()
    assert sorted(staged) == ["Root.java", "net/x/Foo.java"]


def test_add_without_matches_stages_nothing(repository: GitRepository) -> None:
    assert repository.add() == 0


def test_commit_uses_the_configured_identity(repository: GitRepository) -> None:
    _write(repository.path / "Foo.java", "class Foo {}\n")
    repository.add()

    commit = repository.commit("Snapshot")

    assert commit == repository.head()
    author = repository.run("log", "-1", "--format=%an <%ae>|%s").strip()
    assert author == "Pipeline <pipeline@example.invalid>|Snapshot"


def test_create_branch_points_at_head(repository: GitRepository) -> None:
    _write(repository.path / "Foo.java", "class Foo {}\n")
    repository.add()
    commit = repository.commit("Snapshot")

    repository.create_branch("upstream")

    assert repository.run("rev-parse", "upstream").strip() == commit
    assert repository.current_branch() == "main"


def test_failing_commands_raise(repository: GitRepository) -> None:
    with pytest.raises(ExecutionError, match="git rev-parse failed"):
        repository.run("rev-parse", "--verify", "no-such-ref")


def _prepare_patches(repository: GitRepository, patch_dir: Path) -> str:
    source = repository.path / "Foo.java"
    _write(source, "class Foo {\n}\n")
    repository.add()
    base = repository.commit("Snapshot")
    _write(source, "class Foo {\n    int counter;\n}\n")
    repository.add()
    repository.commit("Add counter")
    repository.run("format-patch", "--quiet", "-1", "-o", str(patch_dir))
    repository.run("reset", "--quiet", "--hard", base)
    return base


def test_apply_patch_set_replays_patches(
    repository: GitRepository, tmp_path: Path
) -> None:
    patch_dir = tmp_path / "patches"
    base = _prepare_patches(repository, patch_dir)

    assert repository.apply_patch_set(base, patch_dir) == 1

    assert "int counter;" in (repository.path / "Foo.java").read_text(
        encoding="utf-8"
    )
    assert repository.run("log", "-1", "--format=%s").strip() == "Add counter"


def test_apply_patch_set_without_patches(
    repository: GitRepository, tmp_path: Path
) -> None:
    _write(repository.path / "Foo.java", "class Foo {}\n")
    repository.add()
    base = repository.commit("Snapshot")
    empty = tmp_path / "empty"
    empty.mkdir()

    assert repository.apply_patch_set(base, empty) == 0
    assert repository.apply_patch_set(base, tmp_path / "missing") == 0


def test_apply_patch_set_requires_the_base(
    repository: GitRepository, tmp_path: Path
) -> None:
    with pytest.raises(ExecutionError):
        repository.apply_patch_set("no-such-branch", tmp_path)


def test_apply_patch_set_reports_the_failing_patch(
    repository: GitRepository, tmp_path: Path
) -> None:
    patch_dir = tmp_path / "patches"
    base = _prepare_patches(repository, patch_dir)
    (patch_dir / "0002-broken.patch").write_text("not a patch\n", encoding="utf-8")

    with pytest.raises(PatchApplyError) as excinfo:
        repository.apply_patch_set(base, patch_dir)

    assert excinfo.value.index == 2
    assert excinfo.value.patch.name == "0002-broken.patch"

    assert "int counter;" in (repository.path / "Foo.java").read_text(
        encoding="utf-8"
    )
    assert repository.run("log", "-1", "--format=%s").strip() == "Add counter"


def _prepare_dependent_patches(repository: GitRepository, patch_dir: Path) -> str:
    source = repository.path / "Foo.java"
    _write(source, "class Foo {\n}\n")
    repository.add()
    base = repository.commit("Snapshot")
    _write(source, "class Foo {\n    int counter;\n}\n")
    repository.add()
    repository.commit("Add counter")
    _write(source, "class Foo {\n    int counter = 1;\n}\n")
    repository.add()
    repository.commit("Initialize counter")
    repository.run("format-patch", "--quiet", "-2", "-o", str(patch_dir))
    repository.run("reset", "--quiet", "--hard", base)
    return base


def test_apply_patch_set_replays_in_file_name_order(
    repository: GitRepository, tmp_path: Path
) -> None:
    patch_dir = tmp_path / "patches"
    base = _prepare_dependent_patches(repository, patch_dir)

    assert repository.apply_patch_set(base, patch_dir) == 2

    source = (repository.path / "Foo.java").read_text(encoding="utf-8")
    assert source == "class Foo {\n    int counter = 1;\n}\n"
    assert repository.run("log", "--format=%s").splitlines() == [
        "Initialize counter",
        "Add counter",
        "Snapshot",
    ]


def test_swapped_patch_order_stops_at_the_dependent_patch(
    repository: GitRepository, tmp_path: Path
) -> None:
    patch_dir = tmp_path / "patches"
    base = _prepare_dependent_patches(repository, patch_dir)
    first, second = sorted(patch_dir.iterdir())
    first.rename(patch_dir / f"b-{first.name}")
    second.rename(patch_dir / f"a-{second.name}")

    with pytest.raises(PatchApplyError) as excinfo:
        repository.apply_patch_set(base, patch_dir)

    assert excinfo.value.index == 1
    assert excinfo.value.patch.name == f"a-{second.name}"
    assert repository.head() == base
    assert (repository.path / "Foo.java").read_text(encoding="utf-8") == (
        "class Foo {\n}\n"
    )
