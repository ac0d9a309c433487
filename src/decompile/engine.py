"""External decompiler invocation."""

from __future__ import annotations

import logging
import subprocess
import tempfile
import time
import zipfile
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from contract.errors import DecompilerError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from decompile.sink import ResultSink

logger = logging.getLogger(__name__)

SOURCE_SUFFIX = ".java"

# Inner classes, generic signatures, ASCII-only string literals, hide
# synthetic members and bridges, no literal-as-is output, no per-method
# time limit.
FERNFLOWER_OPTIONS = (
    "-din=1",
    "-dgs=1",
    "-asc=1",
    "-rsy=1",
    "-rbr=1",
    "-lit=0",
    "-mpm=0",
)

_STDERR_TAIL = 2000


class Decompiler(Protocol):
    def decompile(
        self, archive: Path, classpath: Sequence[Path], sink: ResultSink
    ) -> None:
        """Decompile every class of ``archive`` and report through ``sink``.

        ``classpath`` archives are read-only context for type resolution;
        their classes are never decompiled.
        """


class FernflowerDecompiler:
    """Run a Fernflower-compatible decompiler jar in a child JVM.

    The decompiler writes an archive of sources named like its input; the
    entries of that archive are handed to the sink afterwards.
    """

    def __init__(
        self,
        jar: Path,
        *,
        java: str = "java",
        jvm_options: Sequence[str] = (),
        timeout: float | None = None,
    ) -> None:
        self.jar = jar
        self.java = java
        self.jvm_options = tuple(jvm_options)
        self.timeout = timeout

    def command(
        self, archive: Path, classpath: Sequence[Path], output_dir: Path
    ) -> list[str]:
        return [
            self.java,
            *self.jvm_options,
            "-jar",
            str(self.jar),
            *FERNFLOWER_OPTIONS,
            *(f"-e={library}" for library in classpath),
            str(archive),
            str(output_dir),
        ]

    def decompile(
        self, archive: Path, classpath: Sequence[Path], sink: ResultSink
    ) -> None:
        with tempfile.TemporaryDirectory(prefix="decompile-") as scratch:
            output_dir = Path(scratch)
            self._run(self.command(archive, classpath, output_dir))
            produced = output_dir / archive.name
            if not produced.is_file():
                msg = f"decompiler produced no output for {archive.name}"
                raise DecompilerError(msg)
            report_archive(produced, sink)

    def _run(self, command: list[str]) -> None:
        started = time.perf_counter()
        logger.info(
            "event=decompiler_started jar=%s libraries=%d",
            self.jar.name,
            sum(1 for part in command if part.startswith("-e=")),
        )
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as exc:
            msg = f"decompiler timed out after {exc.timeout}s"
            raise DecompilerError(msg) from exc
        except OSError as exc:
            msg = f"decompiler could not be started: {exc}"
            raise DecompilerError(msg) from exc

        if result.returncode != 0:
            err = (result.stderr or "").strip()[-_STDERR_TAIL:]
            msg = f"decompiler exited with status {result.returncode}: {err}"
            raise DecompilerError(msg)
        logger.info(
            "event=decompiler_completed duration_s=%.3f",
            time.perf_counter() - started,
        )


def report_archive(path: Path, sink: ResultSink) -> None:
    """Hand every entry of a decompiled archive to ``sink``."""
    with zipfile.ZipFile(path) as archive:
        for info in archive.infolist():
            name = info.filename
            if info.is_dir():
                sink.on_directory(name)
            elif name.endswith(SOURCE_SUFFIX):
                content = archive.read(info).decode("utf-8")
                sink.on_class_result(name[: -len(SOURCE_SUFFIX)], name, content)
            else:
                sink.on_resource_copy(name)


__all__ = [
    "FERNFLOWER_OPTIONS",
    "SOURCE_SUFFIX",
    "Decompiler",
    "FernflowerDecompiler",
    "report_archive",
]
