"""Download stages."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pipeline.engine import BaseTask

if TYPE_CHECKING:
    from launcher.download import Downloader
    from pipeline.engine import TaskContext


class DownloadTask(BaseTask):
    """Fetch a URL into the stage output, verifying size and digest if known."""

    requires_output = True

    def __init__(
        self,
        name: str,
        url: str,
        downloader: Downloader,
        *,
        sha1: str | None = None,
        size: int | None = None,
    ) -> None:
        self.name = name
        self.url = url
        self.downloader = downloader
        self.sha1 = sha1
        self.size = size

    def execute(self, context: TaskContext) -> None:
        self.downloader.fetch(
            self.url, context.required_output(), sha1=self.sha1, size=self.size
        )


__all__ = ["DownloadTask"]
