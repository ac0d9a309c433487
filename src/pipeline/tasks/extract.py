"""Source extraction stage."""

from __future__ import annotations

from typing import TYPE_CHECKING

from contract.coordinates import STAGE_TRANSFORM_SOURCE
from pipeline.engine import BaseTask
from source.extract import extract_sources

if TYPE_CHECKING:
    from pipeline.engine import TaskContext
    from source.access_transformer import AccessTransformer
    from source.formatter import SourceFormatter


class TransformSourceTask(BaseTask):
    """Recreate the source directory from the decompiled archive."""

    name = STAGE_TRANSFORM_SOURCE
    requires_input = True
    requires_output = True

    def __init__(
        self,
        formatter: SourceFormatter,
        *,
        access_transformer: AccessTransformer | None = None,
        encoding: str = "utf-8",
        workers: int | None = None,
    ) -> None:
        self.formatter = formatter
        self.access_transformer = access_transformer
        self.encoding = encoding
        self.workers = workers

    def execute(self, context: TaskContext) -> None:
        extract_sources(
            context.required_input(),
            context.required_output(),
            encoding=self.encoding,
            formatter=self.formatter,
            access_transformer=self.access_transformer,
            workers=self.workers,
        )


__all__ = ["TransformSourceTask"]
