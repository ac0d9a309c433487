"""Staged, cached execution of the source generation pipeline."""

from pipeline.engine import (
    BaseTask,
    Pipeline,
    PipelineReport,
    StageRegistration,
    Task,
    TaskContext,
)

__all__ = [
    "BaseTask",
    "Pipeline",
    "PipelineReport",
    "StageRegistration",
    "Task",
    "TaskContext",
]
