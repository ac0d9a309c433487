"""Git working tree snapshot and patch replay.

Every operation shells out to the ``git`` executable. Commits use an
explicit identity passed on the command line, so the operator's global
configuration is never required or modified.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import TYPE_CHECKING

from contract.errors import ExecutionError, PatchApplyError

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

PATCH_SUFFIX = ".patch"
DEFAULT_BRANCH = "main"


@dataclass(frozen=True)
class GitIdentity:
    name: str
    email: str


class GitRepository:
    def __init__(
        self, path: Path, identity: GitIdentity, *, git: str = "git"
    ) -> None:
        self.path = path
        self.identity = identity
        self.git = git

    @classmethod
    def init(
        cls,
        path: Path,
        identity: GitIdentity,
        *,
        git: str = "git",
        branch: str = DEFAULT_BRANCH,
    ) -> GitRepository:
        """Create a repository in ``path`` with ``branch`` checked out."""
        repository = cls(path, identity, git=git)
        repository.run("init", "--quiet")
        repository.run("symbolic-ref", "HEAD", f"refs/heads/{branch}")
        logger.info("event=git_initialized path=%s branch=%s", path, branch)
        return repository

    def _command(self, args: tuple[str, ...]) -> list[str]:
        return [
            self.git,
            "-c",
            f"user.name={self.identity.name}",
            "-c",
            f"user.email={self.identity.email}",
            "-c",
            "commit.gpgsign=false",
            *args,
        ]

    def _execute(self, args: tuple[str, ...]) -> subprocess.CompletedProcess[str]:
        try:
            return subprocess.run(
                self._command(args),
                cwd=self.path,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            msg = f"git could not be started: {exc}"
            raise ExecutionError(msg) from exc

    def run(self, *args: str) -> str:
        """Run a git subcommand and return its standard output."""
        result = self._execute(args)
        if result.returncode != 0:
            err = (result.stderr or "").strip()
            msg = f"git {args[0]} failed with status {result.returncode}: {err}"
            raise ExecutionError(msg)
        return result.stdout

    def add(self, pattern: str = "**/*.java") -> int:
        """Stage every file matching ``pattern``; returns the number of files."""
        matched = sum(1 for path in self.path.glob(pattern) if path.is_file())
        if not matched:
            logger.warning("event=git_add_empty pattern=%s", pattern)
            return 0
        self.run("add", "--", f":(glob){pattern}")
        logger.info("event=git_added files=%d pattern=%s", matched, pattern)
        return matched

    def commit(self, message: str) -> str:
        """Commit the index and return the new commit id."""
        self.run("commit", "--quiet", "--allow-empty", "-m", message)
        commit = self.head()
        logger.info("event=git_committed commit=%s", commit[:12])
        return commit

    def head(self) -> str:
        return self.run("rev-parse", "HEAD").strip()

    def create_branch(self, name: str) -> None:
        self.run("branch", name)
        logger.info("event=git_branch_created branch=%s", name)

    def current_branch(self) -> str:
        return self.run("symbolic-ref", "--short", "HEAD").strip()

    def apply_patch_set(self, base: str, directory: Path) -> int:
        """Apply every ``*.patch`` file in ``directory`` on top of ``base``.

        Patches are applied one at a time in file name order with
        ``git am``. The first one that does not apply raises
        ``PatchApplyError``; the repository is left mid-apply so the
        conflict can be inspected. Returns the number of applied patches.
        """
        self.run("rev-parse", "--verify", "--quiet", base)
        patches = []
        if directory.is_dir():
            patches = sorted(directory.glob(f"*{PATCH_SUFFIX}"))
        if not patches:
            logger.warning("event=patches_missing directory=%s", directory)
            return 0

        for index, patch in enumerate(patches, 1):
            result = self._execute(("am", "--quiet", str(patch.resolve())))
            if result.returncode != 0:
                detail = (result.stderr or result.stdout or "").strip()
                logger.error(
                    "event=patch_failed index=%d patch=%s", index, patch.name
                )
                raise PatchApplyError(index, patch, detail)
            logger.debug("event=patch_applied index=%d patch=%s", index, patch.name)

        logger.info(
            "event=patches_applied count=%d base=%s head=%s",
            len(patches),
            base,
            self.head()[:12],
        )
        return len(patches)


__all__ = ["DEFAULT_BRANCH", "PATCH_SUFFIX", "GitIdentity", "GitRepository"]
