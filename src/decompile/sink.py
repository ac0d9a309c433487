"""Receivers of decompiler output."""

from __future__ import annotations

import logging
import threading
import zipfile
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from pathlib import Path

    from transform.engine import ArchiveWriter

logger = logging.getLogger(__name__)


class ResultSink(Protocol):
    """Callbacks through which a decompiler reports its results."""

    def on_class_result(
        self, class_name: str, entry_name: str, content: str | None
    ) -> None:
        """Source of one top-level class; ``None`` or empty when it failed."""

    def on_resource_copy(self, entry_name: str) -> None:
        """A non-class entry of the input archive to carry over unchanged."""

    def on_directory(self, path: str) -> None:
        """A directory entry of the output."""


class ArchiveResultSink:
    """Write decompiler results into an archive.

    Resources are copied byte-for-byte from the archive that was decompiled.
    A class without source is logged and recorded as an inconsistency; the
    run continues.
    """

    def __init__(self, writer: ArchiveWriter, source: Path, encoding: str) -> None:
        self.writer = writer
        self.source = source
        self.encoding = encoding
        self.classes: set[str] = set()
        self.resources: set[str] = set()
        self.directories: set[str] = set()
        self.inconsistencies: list[str] = []
        self._lock = threading.Lock()

    def on_class_result(
        self, class_name: str, entry_name: str, content: str | None
    ) -> None:
        if not content:
            logger.warning(
                "event=decompile_inconsistency class=%s reason=empty_result",
                class_name,
            )
            with self._lock:
                self.inconsistencies.append(class_name)
            return
        self.writer.write(entry_name, content.encode(self.encoding))
        with self._lock:
            self.classes.add(class_name)

    def on_resource_copy(self, entry_name: str) -> None:
        with self._lock:
            if entry_name in self.resources:
                return
            self.resources.add(entry_name)
        with zipfile.ZipFile(self.source) as archive:
            data = archive.read(entry_name)
        self.writer.write(entry_name, data)

    def on_directory(self, path: str) -> None:
        # Archive directories are implied by their entries.
        with self._lock:
            self.directories.add(path)


__all__ = ["ArchiveResultSink", "ResultSink"]
