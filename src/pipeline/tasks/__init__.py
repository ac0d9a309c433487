"""Concrete pipeline stages."""

from pipeline.tasks.decompile import DecompileTask
from pipeline.tasks.extract import TransformSourceTask
from pipeline.tasks.fetch import DownloadTask
from pipeline.tasks.mappings import ApplyMcpMappingsTask, ApplySrgMappingsTask
from pipeline.tasks.vcs import (
    GitAddTask,
    GitApplyPatchesTask,
    GitCommitTask,
    GitCreateBranchTask,
    GitInitTask,
)

__all__ = [
    "ApplyMcpMappingsTask",
    "ApplySrgMappingsTask",
    "DecompileTask",
    "DownloadTask",
    "GitAddTask",
    "GitApplyPatchesTask",
    "GitCommitTask",
    "GitCreateBranchTask",
    "GitInitTask",
    "TransformSourceTask",
]
