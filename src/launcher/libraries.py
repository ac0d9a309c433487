"""Local cache of the libraries a game version depends on.

Libraries are decompiler classpath context only; they live in their own
maven-layout directory instead of the artifact store because no stage
publishes them.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from contract.errors import ResolutionError
from launcher.download import sha1_file

if TYPE_CHECKING:
    from launcher.download import Downloader
    from launcher.manifest import LibraryArtifact, VersionDescriptor

logger = logging.getLogger(__name__)


class LibraryCache:
    def __init__(self, root: Path, downloader: Downloader) -> None:
        self.root = root
        self.downloader = downloader

    def path_for(self, artifact: LibraryArtifact) -> Path:
        relative = PurePosixPath(artifact.path)
        if relative.is_absolute() or ".." in relative.parts:
            msg = f"library path {artifact.path!r} leaves the library directory"
            raise ResolutionError(msg)
        return self.root.joinpath(*relative.parts)

    def is_cached(self, artifact: LibraryArtifact) -> bool:
        target = self.path_for(artifact)
        return target.is_file() and sha1_file(target) == artifact.sha1.lower()

    def fetch(self, artifact: LibraryArtifact) -> Path:
        target = self.path_for(artifact)
        if self.is_cached(artifact):
            return target
        return self.downloader.fetch(
            artifact.url, target, sha1=artifact.sha1, size=artifact.size
        )

    def missing(self, descriptor: VersionDescriptor) -> list[LibraryArtifact]:
        """Libraries of ``descriptor`` that ``resolve`` would download."""
        return [
            library.downloads.artifact
            for library in descriptor.libraries
            if library.downloads.artifact is not None
            and not self.is_cached(library.downloads.artifact)
        ]

    def resolve(self, descriptor: VersionDescriptor) -> list[Path]:
        """Make every library of ``descriptor`` available locally."""
        paths = [
            self.fetch(library.downloads.artifact)
            for library in descriptor.libraries
            if library.downloads.artifact is not None
        ]
        logger.info(
            "event=libraries_resolved version=%s count=%d", descriptor.id, len(paths)
        )
        return paths


__all__ = ["LibraryCache"]
