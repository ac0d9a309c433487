"""Decompilation stage."""

from __future__ import annotations

from typing import TYPE_CHECKING

from contract.coordinates import STAGE_DECOMPILE
from decompile.bridge import decompile_archive
from pipeline.engine import BaseTask

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from pathlib import Path

    from decompile.engine import Decompiler
    from pipeline.engine import TaskContext


class DecompileTask(BaseTask):
    """Decompile the mapped archive into an archive of sources.

    The classpath is resolved lazily so that a cached run never downloads
    libraries.
    """

    name = STAGE_DECOMPILE
    requires_input = True
    requires_output = True

    def __init__(
        self,
        decompiler: Decompiler,
        classpath: Callable[[], Sequence[Path]],
        *,
        encoding: str = "utf-8",
        workers: int | None = None,
    ) -> None:
        self.decompiler = decompiler
        self.classpath = classpath
        self.encoding = encoding
        self.workers = workers

    def execute(self, context: TaskContext) -> None:
        decompile_archive(
            context.required_input(),
            context.required_output(),
            self.classpath(),
            self.decompiler,
            scratch_dir=context.scratch_dir,
            encoding=self.encoding,
            workers=self.workers,
        )


__all__ = ["DecompileTask"]
