"""Game launcher metadata and downloads."""

from launcher.download import Downloader, create_client
from launcher.libraries import LibraryCache
from launcher.manifest import VersionDescriptor, VersionManifestClient
from launcher.urls import mcp_url, srg_url

__all__ = [
    "Downloader",
    "LibraryCache",
    "VersionDescriptor",
    "VersionManifestClient",
    "create_client",
    "mcp_url",
    "srg_url",
]
