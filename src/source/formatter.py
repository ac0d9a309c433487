"""Source formatting of extracted files."""

from __future__ import annotations

import logging
import subprocess
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

logger = logging.getLogger(__name__)


class SourceFormatter(Protocol):
    name: str

    def format_source(self, source: str) -> str:
        """Return ``source`` formatted; return it unchanged on failure."""


class PassthroughFormatter:
    name = "passthrough"

    def format_source(self, source: str) -> str:
        return source


class GoogleJavaFormatter:
    """google-java-format run as an external jar, one process per file.

    Formatting is cosmetic: a file the formatter rejects is logged and kept
    as the decompiler wrote it.
    """

    name = "google-java-format"

    def __init__(
        self,
        jar: Path,
        *,
        java: str = "java",
        jvm_options: Sequence[str] = (),
        timeout: float | None = 60.0,
    ) -> None:
        self.jar = jar
        self.java = java
        self.jvm_options = tuple(jvm_options)
        self.timeout = timeout

    def command(self) -> list[str]:
        return [self.java, *self.jvm_options, "-jar", str(self.jar), "-"]

    def format_source(self, source: str) -> str:
        try:
            result = subprocess.run(
                self.command(),
                input=source,
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            logger.error("event=format_failed error=%s", exc)
            return source

        if result.returncode != 0:
            err = (result.stderr or "").strip().splitlines()
            logger.error(
                "event=format_failed status=%d error=%s",
                result.returncode,
                err[0] if err else "",
            )
            return source
        return result.stdout


__all__ = ["GoogleJavaFormatter", "PassthroughFormatter", "SourceFormatter"]
