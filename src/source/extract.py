"""Extraction of a source archive into the working tree."""

from __future__ import annotations

import logging
import shutil
import time
import zipfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from contract.errors import ExecutionError
from source.formatter import PassthroughFormatter

if TYPE_CHECKING:
    from source.access_transformer import AccessTransformer
    from source.formatter import SourceFormatter

logger = logging.getLogger(__name__)

SOURCE_SUFFIX = ".java"


@dataclass(frozen=True)
class ExtractReport:
    sources: int
    resources: int


def _entry_target(output_dir: Path, entry_name: str) -> Path:
    """Resolve an archive entry below ``output_dir``.

    Entries with absolute paths or ``..`` segments that leave the directory
    are rejected.
    """
    relative = PurePosixPath(entry_name)
    if relative.is_absolute() or not relative.parts:
        msg = f"archive entry {entry_name!r} is not a relative path"
        raise ExecutionError(msg)
    target = (output_dir / Path(*relative.parts)).resolve()
    try:
        target.relative_to(output_dir)
    except ValueError as exc:
        msg = f"archive entry {entry_name!r} escapes the output directory"
        raise ExecutionError(msg) from exc
    return target


def clear_directory(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True)


def extract_sources(
    archive: Path,
    output_dir: Path,
    *,
    encoding: str = "utf-8",
    formatter: SourceFormatter | None = None,
    access_transformer: AccessTransformer | None = None,
    workers: int | None = None,
) -> ExtractReport:
    """Recreate ``output_dir`` from a source archive.

    Java sources get access transformations applied and are formatted;
    every other entry is written unchanged.
    """
    started = time.perf_counter()
    formatter = formatter or PassthroughFormatter()
    clear_directory(output_dir)
    root = output_dir.resolve()

    def process(entry: tuple[str, bytes]) -> bool:
        name, data = entry
        target = _entry_target(root, name)
        target.parent.mkdir(parents=True, exist_ok=True)
        if not name.endswith(SOURCE_SUFFIX):
            target.write_bytes(data)
            return False
        source = data.decode(encoding)
        if access_transformer is not None:
            source = access_transformer.transform(source)
        source = formatter.format_source(source)
        target.write_bytes(source.encode(encoding))
        return True

    with zipfile.ZipFile(archive) as handle:
        entries = [
            (info.filename, handle.read(info))
            for info in handle.infolist()
            if not info.is_dir()
        ]
    with ThreadPoolExecutor(max_workers=workers) as executor:
        results = list(executor.map(process, entries))

    sources = sum(results)
    report = ExtractReport(sources=sources, resources=len(results) - sources)
    logger.info(
        "event=sources_extracted target=%s sources=%d resources=%d "
        "formatter=%s duration_s=%.3f",
        output_dir,
        report.sources,
        report.resources,
        formatter.name,
        time.perf_counter() - started,
    )
    return report


__all__ = ["ExtractReport", "clear_directory", "extract_sources"]
