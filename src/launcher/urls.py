"""Download locations of the mapping archives."""

from __future__ import annotations

from contract.errors import ConfigurationError

SRG_URL_TEMPLATE = (
    "https://maven.minecraftforge.net/de/oceanlabs/mcp/mcp/{version}/"
    "mcp-{version}-srg.zip"
)
MCP_URL_TEMPLATE = (
    "https://maven.minecraftforge.net/de/oceanlabs/mcp/mcp_{channel}/{version}/"
    "mcp_{channel}-{version}.zip"
)


def split_mcp_version(mcp_version: str) -> tuple[str, str]:
    """Split ``<channel>-<version>`` at the first dash.

    Examples:
        >>> split_mcp_version("snapshot-20180101-1.12")
        ('snapshot', '20180101-1.12')
    """
    channel, separator, version = mcp_version.partition("-")
    if not separator or not channel or not version:
        msg = f"{mcp_version!r} is not formatted as <channel>-<version>"
        raise ConfigurationError("mcp_version", msg)
    return channel, version


def srg_url(srg_version: str, template: str = SRG_URL_TEMPLATE) -> str:
    return template.format(version=srg_version)


def mcp_url(mcp_version: str, template: str = MCP_URL_TEMPLATE) -> str:
    channel, version = split_mcp_version(mcp_version)
    return template.format(channel=channel, version=version)


__all__ = [
    "MCP_URL_TEMPLATE",
    "SRG_URL_TEMPLATE",
    "mcp_url",
    "split_mcp_version",
    "srg_url",
]
