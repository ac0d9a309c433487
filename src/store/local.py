"""Local, persistent artifact store."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from contract.coordinates import SNAPSHOT_SUFFIX, ArtifactCoordinate

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)

STAGING_DIR_NAME = ".staging"


class ArtifactExistsError(Exception):
    """Raised when a coordinate would be written a second time."""

    def __init__(self, coordinate: ArtifactCoordinate) -> None:
        super().__init__(f"Artifact {coordinate} already exists")
        self.coordinate = coordinate


@dataclass(frozen=True)
class Artifact:
    """An immutable blob addressed by a coordinate."""

    coordinate: ArtifactCoordinate
    path: Path

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()


class LocalArtifactStore:
    """Directory tree keyed by coordinate fields (maven repository layout).

    Writes are published with an atomic rename so that a reader either sees
    the complete artifact or nothing at all. Concurrent writers to the same
    coordinate are not arbitrated.
    """

    def __init__(self, root: Path) -> None:
        self.root = root

    def path_for(self, coordinate: ArtifactCoordinate) -> Path:
        return self.root.joinpath(*coordinate.relative_path().parts)

    def exists(self, coordinate: ArtifactCoordinate) -> bool:
        return self.path_for(coordinate).is_file()

    def get(self, coordinate: ArtifactCoordinate) -> Artifact | None:
        path = self.path_for(coordinate)
        if not path.is_file():
            return None
        return Artifact(coordinate=coordinate, path=path)

    def put(self, coordinate: ArtifactCoordinate, source: bytes | Path) -> Artifact:
        """Publish ``source`` under ``coordinate``.

        Raises:
            ArtifactExistsError: If the coordinate has already been written.
        """
        target = self.path_for(coordinate)
        if target.exists():
            raise ArtifactExistsError(coordinate)

        target.parent.mkdir(parents=True, exist_ok=True)
        partial = target.with_name(f".{target.name}.{uuid.uuid4().hex}.partial")
        try:
            if isinstance(source, bytes):
                partial.write_bytes(source)
            else:
                shutil.copyfile(source, partial)
            if target.exists():
                raise ArtifactExistsError(coordinate)
            os.replace(partial, target)
        finally:
            partial.unlink(missing_ok=True)

        logger.debug(
            "event=artifact_published coordinate=%s path=%s", coordinate, target
        )
        return Artifact(coordinate=coordinate, path=target)

    @contextmanager
    def staging(self) -> Iterator[Path]:
        """Yield a scratch directory on the store's filesystem."""
        staging_root = self.root / STAGING_DIR_NAME
        staging_root.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(dir=staging_root) as temp_dir:
            yield Path(temp_dir)

    def iter_artifacts(self) -> Iterator[Artifact]:
        """Yield every published artifact, sorted by path."""
        if not self.root.is_dir():
            return
        for path in sorted(self.root.rglob("*")):
            if not path.is_file() or path.name.startswith("."):
                continue
            relative = path.relative_to(self.root)
            if relative.parts[0] == STAGING_DIR_NAME:
                continue
            coordinate = _coordinate_from_path(relative)
            if coordinate is not None:
                yield Artifact(coordinate=coordinate, path=path)


def _coordinate_from_path(relative: Path) -> ArtifactCoordinate | None:
    """Recover a coordinate from its maven layout path, if it is one."""
    parts = relative.parts
    if len(parts) < 4:
        return None
    *group_parts, name, base_version, filename = parts
    prefix = f"{name}-{base_version}"
    if not filename.startswith(prefix):
        return None
    rest = filename[len(prefix) :]
    if "." not in rest:
        return None
    qualifier, extension = rest.split(".", 1)
    classifier = qualifier[1:] if qualifier.startswith("-") else None
    if qualifier and classifier is None:
        return None
    snapshot = base_version.endswith(SNAPSHOT_SUFFIX)
    version = base_version[: -len(SNAPSHOT_SUFFIX)] if snapshot else base_version
    return ArtifactCoordinate(
        ".".join(group_parts), name, version, extension, classifier or None, snapshot
    )


__all__ = ["Artifact", "ArtifactExistsError", "LocalArtifactStore"]
