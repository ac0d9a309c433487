from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

import orjson
import pytest
from helpers import Responder

from contract.coordinates import version_descriptor_coordinate
from contract.errors import (
    ConfigurationError,
    DownloadError,
    IntegrityError,
    ResolutionError,
)
from launcher.download import Downloader, create_client, sha1_file
from launcher.libraries import LibraryCache
from launcher.manifest import (
    LibraryArtifact,
    VersionManifestClient,
    parse_version_descriptor,
)
from launcher.urls import mcp_url, split_mcp_version, srg_url
from store.local import LocalArtifactStore

if TYPE_CHECKING:
    from pathlib import Path

MANIFEST_URL = "https://meta.example/version_manifest.json"
DESCRIPTOR_URL = "https://meta.example/1.12.json"
SERVER_URL = "https://files.example/server.jar"
LIBRARY_URL = "https://libraries.example/com/example/lib/1.0/lib-1.0.jar"
SERVER_BYTES = b"server jar bytes"
LIBRARY_BYTES = b"library jar bytes"


def _sha1(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


MANIFEST = {
    "latest": {"release": "1.12", "snapshot": "17w50a"},
    "versions": [
        {"id": "1.12", "type": "release", "url": DESCRIPTOR_URL},
        {"id": "17w50a", "type": "snapshot", "url": "https://meta.example/s.json"},
    ],
}
DESCRIPTOR = {
    "id": "1.12",
    "mainClass": "ignored",
    "downloads": {
        "server": {
            "sha1": _sha1(SERVER_BYTES),
            "size": len(SERVER_BYTES),
            "url": SERVER_URL,
        },
    },
    "libraries": [
        {
            "name": "com.example:lib:1.0",
            "downloads": {
                "artifact": {
                    "path": "com/example/lib/1.0/lib-1.0.jar",
                    "sha1": _sha1(LIBRARY_BYTES),
                    "size": len(LIBRARY_BYTES),
                    "url": LIBRARY_URL,
                }
            },
        },
        {"name": "com.example:natives:1.0", "downloads": {}},
    ],
}


@pytest.fixture
def responder() -> Responder:
    return Responder(
        {
            MANIFEST_URL: orjson.dumps(MANIFEST),
            DESCRIPTOR_URL: orjson.dumps(DESCRIPTOR),
            SERVER_URL: SERVER_BYTES,
            LIBRARY_URL: LIBRARY_BYTES,
        }
    )


def test_fetch_verifies_size_and_digest(responder: Responder, tmp_path: Path) -> None:
    target = tmp_path / "downloads" / "server.jar"

    responder.downloader().fetch(
        SERVER_URL, target, sha1=_sha1(SERVER_BYTES).upper(), size=len(SERVER_BYTES)
    )

    assert target.read_bytes() == SERVER_BYTES
    assert sha1_file(target) == _sha1(SERVER_BYTES)


@pytest.mark.parametrize(
    ("sha1", "size", "match"),
    [
        ("0" * 40, None, "expected sha1"),
        (None, 3, "expected 3 bytes"),
    ],
)
def test_fetch_rejects_mismatching_bodies(
    responder: Responder,
    tmp_path: Path,
    sha1: str | None,
    size: int | None,
    match: str,
) -> None:
    target = tmp_path / "server.jar"

    with pytest.raises(IntegrityError, match=match):
        responder.downloader().fetch(SERVER_URL, target, sha1=sha1, size=size)

    assert list(tmp_path.iterdir()) == []


def test_fetch_reports_http_errors(responder: Responder, tmp_path: Path) -> None:
    with pytest.raises(DownloadError, match="returned 404"):
        responder.downloader().fetch("https://files.example/missing", tmp_path / "x")

    with pytest.raises(DownloadError, match="returned 404"):
        responder.downloader().fetch_bytes("https://files.example/missing")


def _manifest_client(responder: Responder, tmp_path: Path) -> VersionManifestClient:
    store = LocalArtifactStore(tmp_path / "store")
    return VersionManifestClient(responder.downloader(), store, MANIFEST_URL)


def test_resolve_caches_the_descriptor(responder: Responder, tmp_path: Path) -> None:
    client = _manifest_client(responder, tmp_path)

    first = client.resolve("1.12")
    second = client.resolve("1.12")

    assert first == second
    assert first.server_download().url == SERVER_URL
    assert responder.requests == [MANIFEST_URL, DESCRIPTOR_URL]
    assert client.store.exists(version_descriptor_coordinate("1.12"))


def test_manifest_lookup_ignores_case(responder: Responder, tmp_path: Path) -> None:
    manifest = _manifest_client(responder, tmp_path).fetch_manifest()

    version = manifest.find("17W50A")
    assert version is not None
    assert version.id == "17w50a"
    assert manifest.find("1.13") is None


def test_unknown_versions_are_configuration_errors(
    responder: Responder, tmp_path: Path
) -> None:
    with pytest.raises(ConfigurationError, match="minecraft_version"):
        _manifest_client(responder, tmp_path).resolve("0.0.1")


def test_descriptor_without_server_download() -> None:
    descriptor = parse_version_descriptor(b'{"id": "1.0", "downloads": {}}')

    with pytest.raises(ResolutionError, match="server download"):
        descriptor.server_download()


@pytest.mark.parametrize("data", [b"{broken", b'{"id": "1.0"}'])
def test_malformed_descriptors_are_resolution_errors(data: bytes) -> None:
    with pytest.raises(ResolutionError, match="version descriptor"):
        parse_version_descriptor(data)


def test_library_cache_downloads_and_reuses(
    responder: Responder, tmp_path: Path
) -> None:
    descriptor = parse_version_descriptor(orjson.dumps(DESCRIPTOR))
    cache = LibraryCache(tmp_path / "libraries", responder.downloader())

    (path,) = cache.resolve(descriptor)
    cache.resolve(descriptor)

    assert path == tmp_path / "libraries/com/example/lib/1.0/lib-1.0.jar"
    assert path.read_bytes() == LIBRARY_BYTES
    assert responder.requests == [LIBRARY_URL]


def test_library_cache_lists_missing_libraries(
    responder: Responder, tmp_path: Path
) -> None:
    descriptor = parse_version_descriptor(orjson.dumps(DESCRIPTOR))
    cache = LibraryCache(tmp_path / "libraries", responder.downloader())

    (artifact,) = cache.missing(descriptor)
    assert artifact.url == LIBRARY_URL

    (path,) = cache.resolve(descriptor)
    assert cache.missing(descriptor) == []

    path.write_bytes(b"tampered")
    assert cache.missing(descriptor) == [artifact]


def test_library_cache_rejects_escaping_paths(tmp_path: Path) -> None:
    cache = LibraryCache(tmp_path, Downloader(create_client()))
    artifact = LibraryArtifact(
        path="../outside.jar", sha1="0" * 40, size=1, url=LIBRARY_URL
    )

    with pytest.raises(ResolutionError, match="leaves the library directory"):
        cache.path_for(artifact)


def test_mapping_urls() -> None:
    assert srg_url("1.12") == (
        "https://maven.minecraftforge.net/de/oceanlabs/mcp/mcp/1.12/mcp-1.12-srg.zip"
    )
    assert mcp_url("snapshot-20180101-1.12").endswith(
        "/mcp_snapshot/20180101-1.12/mcp_snapshot-20180101-1.12.zip"
    )
    assert srg_url("1.12", "https://mirror.example/{version}.zip") == (
        "https://mirror.example/1.12.zip"
    )


@pytest.mark.parametrize("value", ["snapshot", "-20180101", "stable-"])
def test_mcp_versions_need_a_channel(value: str) -> None:
    with pytest.raises(ConfigurationError, match="mcp_version"):
        split_mcp_version(value)
