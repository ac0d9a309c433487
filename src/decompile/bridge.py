"""Two-pass decompilation of a remapped archive.

The first pass widens visibility where the bytecode is stricter than Java
source can express and writes an intermediate archive. The second pass hands
that archive to the external decompiler, with the server's libraries as
read-only context so that library types resolve without being decompiled.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from classfile.model import ClassFile
from decompile.sink import ArchiveResultSink
from transform.access import AccessLevelCorrectionPass
from transform.engine import (
    CLASS_SUFFIX,
    ArchiveTransformer,
    ArchiveWriter,
    iter_archive,
)
from transform.inner import self_entry

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from decompile.engine import Decompiler

logger = logging.getLogger(__name__)

INTERMEDIATE_NAME = "access-corrected.jar"


@dataclass(frozen=True)
class DecompileReport:
    classes: int
    resources: int
    inconsistencies: tuple[str, ...]


def top_level_classes(archive: Path) -> tuple[list[str], list[str]]:
    """Top-level class names and resource entries of an archive.

    Nested classes are emitted inside the source of their outer class, so
    only top-level classes are expected to produce a source file.
    """
    classes: list[str] = []
    resources: list[str] = []
    for name, data in iter_archive(archive):
        if not name.endswith(CLASS_SUFFIX):
            resources.append(name)
            continue
        classfile = ClassFile.parse(data)
        if self_entry(classfile) is None:
            classes.append(classfile.name)
    return sorted(classes), sorted(resources)


def decompile_archive(
    source: Path,
    target: Path,
    classpath: Sequence[Path],
    decompiler: Decompiler,
    *,
    scratch_dir: Path,
    encoding: str = "utf-8",
    workers: int | None = None,
) -> DecompileReport:
    started = time.perf_counter()
    intermediate = scratch_dir / INTERMEDIATE_NAME
    ArchiveTransformer([AccessLevelCorrectionPass()], workers=workers).transform(
        source, intermediate
    )
    expected, resources = top_level_classes(intermediate)

    with ArchiveWriter(target) as writer:
        sink = ArchiveResultSink(writer, intermediate, encoding)
        decompiler.decompile(intermediate, classpath, sink)

        inconsistencies = list(sink.inconsistencies)
        for class_name in expected:
            if class_name in sink.classes or class_name in inconsistencies:
                continue
            logger.warning(
                "event=decompile_inconsistency class=%s reason=no_result",
                class_name,
            )
            inconsistencies.append(class_name)
        for entry_name in resources:
            if entry_name not in sink.resources:
                sink.on_resource_copy(entry_name)

    logger.info(
        "event=archive_decompiled source=%s target=%s classes=%d resources=%d "
        "inconsistencies=%d duration_s=%.3f",
        source.name,
        target.name,
        len(sink.classes),
        len(sink.resources),
        len(inconsistencies),
        time.perf_counter() - started,
    )
    return DecompileReport(
        classes=len(sink.classes),
        resources=len(sink.resources),
        inconsistencies=tuple(sorted(inconsistencies)),
    )


__all__ = [
    "INTERMEDIATE_NAME",
    "DecompileReport",
    "decompile_archive",
    "top_level_classes",
]
