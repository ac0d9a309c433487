"""Error taxonomy shared by every pipeline component.

Configuration errors are detected before any stage runs, resolution errors at
the start of the owning stage and execution errors while a stage is working.
Nothing is retried; every error carries enough context to name the failing
stage.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


class PipelineError(Exception):
    """Base class for all errors surfaced to the operator."""

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage

    def __str__(self) -> str:
        if self.stage:
            return f"[{self.stage}] {self.message}"
        return self.message


class ConfigurationError(PipelineError):
    """Raised for invalid or missing user configuration."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field


class PipelineConfigurationError(PipelineError):
    """Raised when stage registrations violate a task contract."""


class ResolutionError(PipelineError):
    """Raised when a required input cannot be resolved."""


class ExecutionError(PipelineError):
    """Raised when a stage fails while doing its work."""


class StageExecutionError(ExecutionError):
    """Wraps an unexpected exception raised by a task."""


class IntegrityError(ExecutionError):
    """Raised when downloaded bytes do not match the expected digest."""


class DownloadError(ExecutionError):
    """Raised when a download cannot be completed."""


class DecompilerError(ExecutionError):
    """Raised when the external decompiler fails."""


class ClassFormatError(ExecutionError):
    """Raised for malformed class file entries."""


class MappingFormatError(ExecutionError):
    """Raised for malformed mapping tables."""

    def __init__(self, source: str, line: int, message: str) -> None:
        super().__init__(f"{source}:{line}: {message}")
        self.source = source
        self.line = line


class PatchApplyError(ExecutionError):
    """Raised when a patch of the patch set does not apply."""

    def __init__(self, index: int, patch: Path, detail: str) -> None:
        super().__init__(f"patch #{index} ({patch.name}) failed to apply: {detail}")
        self.index = index
        self.patch = patch
        self.detail = detail


__all__ = [
    "ClassFormatError",
    "ConfigurationError",
    "DecompilerError",
    "DownloadError",
    "ExecutionError",
    "IntegrityError",
    "MappingFormatError",
    "PatchApplyError",
    "PipelineConfigurationError",
    "PipelineError",
    "ResolutionError",
    "StageExecutionError",
]
