"""Working tree snapshot stages.

These stages operate on the source directory, never on the artifact store,
so they run on every invocation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from contract.coordinates import (
    STAGE_GIT_ADD,
    STAGE_GIT_APPLY_PATCHES,
    STAGE_GIT_BRANCH,
    STAGE_GIT_COMMIT,
    STAGE_GIT_INIT,
)
from pipeline.engine import BaseTask
from vcs.git import DEFAULT_BRANCH, GitRepository

if TYPE_CHECKING:
    from pathlib import Path

    from pipeline.engine import TaskContext
    from vcs.git import GitIdentity


class _GitTask(BaseTask):
    requires_input = True

    def __init__(self, identity: GitIdentity, *, git: str = "git") -> None:
        self.identity = identity
        self.git = git

    def repository(self, path: Path) -> GitRepository:
        return GitRepository(path, self.identity, git=self.git)


class GitInitTask(_GitTask):
    name = STAGE_GIT_INIT

    def __init__(
        self, identity: GitIdentity, *, git: str = "git", branch: str = DEFAULT_BRANCH
    ) -> None:
        super().__init__(identity, git=git)
        self.branch = branch

    def execute(self, context: TaskContext) -> None:
        GitRepository.init(
            context.required_input(), self.identity, git=self.git, branch=self.branch
        )


class GitAddTask(_GitTask):
    name = STAGE_GIT_ADD

    def __init__(
        self, identity: GitIdentity, *, git: str = "git", pattern: str = "**/*.java"
    ) -> None:
        super().__init__(identity, git=git)
        self.pattern = pattern

    def execute(self, context: TaskContext) -> None:
        self.repository(context.required_input()).add(self.pattern)


class GitCommitTask(_GitTask):
    name = STAGE_GIT_COMMIT

    def __init__(
        self, identity: GitIdentity, message: str, *, git: str = "git"
    ) -> None:
        super().__init__(identity, git=git)
        self.message = message

    def execute(self, context: TaskContext) -> None:
        self.repository(context.required_input()).commit(self.message)


class GitCreateBranchTask(_GitTask):
    name = STAGE_GIT_BRANCH

    def __init__(self, identity: GitIdentity, branch: str, *, git: str = "git") -> None:
        super().__init__(identity, git=git)
        self.branch = branch

    def execute(self, context: TaskContext) -> None:
        self.repository(context.required_input()).create_branch(self.branch)


class GitApplyPatchesTask(_GitTask):
    """Replay the patch directory (input) onto the source tree (output)."""

    name = STAGE_GIT_APPLY_PATCHES
    requires_output = True

    def __init__(self, identity: GitIdentity, base: str, *, git: str = "git") -> None:
        super().__init__(identity, git=git)
        self.base = base

    def execute(self, context: TaskContext) -> None:
        repository = self.repository(context.required_output())
        repository.apply_patch_set(self.base, context.required_input())


__all__ = [
    "GitAddTask",
    "GitApplyPatchesTask",
    "GitCommitTask",
    "GitCreateBranchTask",
    "GitInitTask",
]
