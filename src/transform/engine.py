"""Whole-archive bytecode transformation.

``ArchiveTransformer`` reads every class of an archive, runs the configured
passes over all of them in declared order and writes a new archive. Each
pass sees the whole archive: before its per-class work starts, the class
hierarchy is rebuilt from the current (already transformed) classes and
handed to ``prepare``. Per-class work runs on a thread pool; the output is
collected by a single ``ArchiveWriter`` and written in sorted order with
fixed timestamps, so equal inputs give byte-identical archives.
"""

from __future__ import annotations

import logging
import threading
import time
import zipfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from classfile.model import ClassFile
from contract.errors import ClassFormatError, ExecutionError
from graph.hierarchy import ArchiveView
from rules.inclusion import ACCEPT_ALL, InclusionRules

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence
    from pathlib import Path
    from types import TracebackType

logger = logging.getLogger(__name__)

CLASS_SUFFIX = ".class"
# Earliest timestamp a zip entry can carry.
FIXED_TIMESTAMP = (1980, 1, 1, 0, 0, 0)


class ArchiveWriter:
    """Single-writer archive output.

    ``write`` may be called from any thread; entries are buffered and
    written sorted by name on ``close``.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._entries: dict[str, bytes] = {}
        self._lock = threading.Lock()
        self._closed = False

    def __enter__(self) -> ArchiveWriter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.close()

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def write(self, name: str, data: bytes) -> None:
        with self._lock:
            if self._closed:
                msg = f"archive {self.path.name} is already closed"
                raise ExecutionError(msg)
            if name in self._entries:
                msg = f"duplicate entry {name} in {self.path.name}"
                raise ExecutionError(msg)
            self._entries[name] = data

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with zipfile.ZipFile(self.path, "w") as archive:
                for name in sorted(self._entries):
                    info = zipfile.ZipInfo(name, date_time=FIXED_TIMESTAMP)
                    info.compress_type = zipfile.ZIP_DEFLATED
                    info.external_attr = 0o644 << 16
                    archive.writestr(info, self._entries[name])


class ClassPass(Protocol):
    """A transformation applied to every class of an archive."""

    name: str

    def prepare(self, view: ArchiveView) -> None:
        """Receive the hierarchy of the whole archive before per-class work."""

    def apply(self, classfile: ClassFile) -> None:
        """Transform one class in place."""


class BasePass:
    """Defaults for passes that need no archive-wide state."""

    name = "pass"

    def prepare(self, view: ArchiveView) -> None:
        self.view = view

    def apply(self, classfile: ClassFile) -> None:
        raise NotImplementedError


@dataclass(frozen=True)
class TransformReport:
    classes: int
    resources: int
    skipped: int


def iter_archive(path: Path) -> Iterable[tuple[str, bytes]]:
    """Yield the file entries of an archive in stored order."""
    with zipfile.ZipFile(path) as archive:
        for info in archive.infolist():
            if info.is_dir():
                continue
            yield info.filename, archive.read(info)


def _parse_entry(name: str, data: bytes) -> ClassFile:
    try:
        return ClassFile.parse(data)
    except ClassFormatError as exc:
        msg = f"malformed class entry {name}: {exc.message}"
        raise ClassFormatError(msg) from exc


class ArchiveTransformer:
    def __init__(
        self,
        passes: Sequence[ClassPass],
        *,
        class_rules: InclusionRules = ACCEPT_ALL,
        resource_rules: InclusionRules = ACCEPT_ALL,
        workers: int | None = None,
    ) -> None:
        self.passes = list(passes)
        self.class_rules = class_rules
        self.resource_rules = resource_rules
        self.workers = workers

    def _run(
        self,
        executor: ThreadPoolExecutor,
        function: Callable[[ClassFile], None],
        classes: list[ClassFile],
    ) -> None:
        # list() drains the iterator so the first worker exception propagates.
        list(executor.map(function, classes))

    def transform(self, source: Path, target: Path) -> TransformReport:
        started = time.perf_counter()
        class_entries: list[tuple[str, bytes]] = []
        resources: list[tuple[str, bytes]] = []
        skipped = 0
        for name, data in iter_archive(source):
            if name.endswith(CLASS_SUFFIX):
                if self.class_rules.accepts(name):
                    class_entries.append((name, data))
                else:
                    skipped += 1
            elif self.resource_rules.accepts(name):
                resources.append((name, data))
            else:
                skipped += 1

        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            classes = list(
                executor.map(lambda entry: _parse_entry(*entry), class_entries)
            )
            for class_pass in self.passes:
                pass_started = time.perf_counter()
                class_pass.prepare(ArchiveView.from_classfiles(classes))
                self._run(executor, class_pass.apply, classes)
                logger.debug(
                    "event=pass_completed pass=%s classes=%d duration_s=%.3f",
                    class_pass.name,
                    len(classes),
                    time.perf_counter() - pass_started,
                )

            with ArchiveWriter(target) as writer:
                self._run(
                    executor,
                    lambda cf: writer.write(cf.name + CLASS_SUFFIX, cf.to_bytes()),
                    classes,
                )
                for name, data in resources:
                    writer.write(name, data)

        logger.info(
            "event=archive_transformed source=%s target=%s classes=%d resources=%d "
            "skipped=%d duration_s=%.3f",
            source.name,
            target.name,
            len(classes),
            len(resources),
            skipped,
            time.perf_counter() - started,
        )
        return TransformReport(len(classes), len(resources), skipped)


__all__ = [
    "CLASS_SUFFIX",
    "FIXED_TIMESTAMP",
    "ArchiveTransformer",
    "ArchiveWriter",
    "BasePass",
    "ClassPass",
    "TransformReport",
    "iter_archive",
]
