"""Launcher version manifest and version descriptors."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TypeVar

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from contract.coordinates import version_descriptor_coordinate
from contract.errors import ConfigurationError, ResolutionError

if TYPE_CHECKING:
    from launcher.download import Downloader
    from store.local import LocalArtifactStore

logger = logging.getLogger(__name__)

MANIFEST_URL = "https://launchermeta.mojang.com/mc/game/version_manifest.json"

ModelT = TypeVar("ModelT", bound=BaseModel)


class _LauncherModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class LatestVersions(_LauncherModel):
    release: str
    snapshot: str


class ManifestVersion(_LauncherModel):
    id: str
    type: str
    url: str
    release_time: str | None = Field(default=None, alias="releaseTime")


class VersionManifest(_LauncherModel):
    latest: LatestVersions
    versions: list[ManifestVersion]

    def find(self, version_id: str) -> ManifestVersion | None:
        """Look a version up by id, ignoring case."""
        wanted = version_id.casefold()
        for version in self.versions:
            if version.id.casefold() == wanted:
                return version
        return None


class DownloadInfo(_LauncherModel):
    sha1: str
    size: int
    url: str


class VersionDownloads(_LauncherModel):
    client: DownloadInfo | None = None
    server: DownloadInfo | None = None


class LibraryArtifact(DownloadInfo):
    path: str


class LibraryDownloads(_LauncherModel):
    artifact: LibraryArtifact | None = None


class Library(_LauncherModel):
    name: str
    downloads: LibraryDownloads = Field(default_factory=LibraryDownloads)


class VersionDescriptor(_LauncherModel):
    id: str
    downloads: VersionDownloads
    libraries: list[Library] = Field(default_factory=list)

    def server_download(self) -> DownloadInfo:
        if self.downloads.server is None:
            msg = f"version {self.id} does not publish a server download"
            raise ResolutionError(msg)
        return self.downloads.server


def _parse(model: type[ModelT], data: bytes, source: str) -> ModelT:
    try:
        return model.model_validate(orjson.loads(data))
    except orjson.JSONDecodeError as exc:
        msg = f"{source} is not valid JSON: {exc.msg}"
        raise ResolutionError(msg) from exc
    except ValidationError as exc:
        msg = f"{source} does not match the expected layout: {exc}"
        raise ResolutionError(msg) from exc


def parse_version_descriptor(data: bytes) -> VersionDescriptor:
    return _parse(VersionDescriptor, data, "version descriptor")


class VersionManifestClient:
    """Resolve game versions through the launcher manifest.

    The descriptor of a resolved version is cached in the artifact store, so
    a second run for the same version does not touch the network.
    """

    def __init__(
        self,
        downloader: Downloader,
        store: LocalArtifactStore,
        manifest_url: str = MANIFEST_URL,
    ) -> None:
        self.downloader = downloader
        self.store = store
        self.manifest_url = manifest_url

    def fetch_manifest(self) -> VersionManifest:
        data = self.downloader.fetch_bytes(self.manifest_url)
        return _parse(VersionManifest, data, self.manifest_url)

    def resolve(self, minecraft_version: str) -> VersionDescriptor:
        coordinate = version_descriptor_coordinate(minecraft_version)
        cached = self.store.get(coordinate)
        if cached is not None:
            logger.debug("event=version_cached version=%s", minecraft_version)
            return parse_version_descriptor(cached.read_bytes())

        entry = self.fetch_manifest().find(minecraft_version)
        if entry is None:
            msg = f"unknown game version {minecraft_version!r}"
            raise ConfigurationError("minecraft_version", msg)
        data = self.downloader.fetch_bytes(entry.url)
        descriptor = parse_version_descriptor(data)
        self.store.put(coordinate, data)
        logger.info(
            "event=version_resolved version=%s libraries=%d",
            descriptor.id,
            len(descriptor.libraries),
        )
        return descriptor


__all__ = [
    "MANIFEST_URL",
    "DownloadInfo",
    "Library",
    "LibraryArtifact",
    "ManifestVersion",
    "VersionDescriptor",
    "VersionManifest",
    "VersionManifestClient",
    "parse_version_descriptor",
]
