"""Artifact coordinate contract.

Coordinates are the only cache key of the pipeline. Every derived artifact
carries a composed version built from all upstream version identifiers, so a
change to any of them yields a new coordinate instead of invalidating an old
one.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath

# Group under which every cached pipeline artifact is stored.
CACHE_GROUP = "org.decompipe.minecraft"

# Stage names (stable identifiers used in logs and errors).
STAGE_FETCH_SRG = "fetch-srg"
STAGE_FETCH_MCP = "fetch-mcp"
STAGE_FETCH_SERVER = "fetch-server"
STAGE_APPLY_SRG = "apply-srg"
STAGE_APPLY_MCP = "apply-mcp"
STAGE_DECOMPILE = "decompile"
STAGE_TRANSFORM_SOURCE = "transform-source"
STAGE_GIT_INIT = "git-init"
STAGE_GIT_ADD = "git-add"
STAGE_GIT_COMMIT = "git-commit"
STAGE_GIT_BRANCH = "git-branch"
STAGE_GIT_APPLY_PATCHES = "git-apply-patches"

SNAPSHOT_SUFFIX = "-SNAPSHOT"


@dataclass(frozen=True)
class ArtifactCoordinate:
    """Structural identity of a cached artifact."""

    group: str
    name: str
    version: str
    extension: str
    classifier: str | None = None
    snapshot: bool = False

    @property
    def base_version(self) -> str:
        if self.snapshot:
            return self.version + SNAPSHOT_SUFFIX
        return self.version

    @property
    def filename(self) -> str:
        stem = f"{self.name}-{self.base_version}"
        if self.classifier:
            stem = f"{stem}-{self.classifier}"
        return f"{stem}.{self.extension}"

    def relative_path(self) -> PurePosixPath:
        """Maven-style location of the artifact below a repository root."""
        return PurePosixPath(
            *self.group.split("."), self.name, self.base_version, self.filename
        )

    def __str__(self) -> str:
        parts = [self.group, self.name, self.extension]
        if self.classifier:
            parts.append(self.classifier)
        parts.append(self.base_version)
        return ":".join(parts)


def compose_version(*components: str) -> str:
    """Join version components into a single cache-distinguishing version.

    Examples:
        >>> compose_version("1.12.2", "20180101")
        '1.12.2-20180101'
    """
    if not components:
        msg = "at least one version component is required"
        raise ValueError(msg)
    for component in components:
        if not component or not component.strip():
            msg = f"empty version component in {components!r}"
            raise ValueError(msg)
    return "-".join(components)


@dataclass(frozen=True)
class PipelineCoordinates:
    """Coordinates of every artifact the cached part of the pipeline owns."""

    version_descriptor: ArtifactCoordinate
    srg: ArtifactCoordinate
    mcp: ArtifactCoordinate
    server: ArtifactCoordinate
    server_srg: ArtifactCoordinate
    server_mcp: ArtifactCoordinate
    decompiled: ArtifactCoordinate

    def downloads(self) -> tuple[ArtifactCoordinate, ...]:
        return (self.srg, self.mcp, self.server)

    def derived(self) -> tuple[ArtifactCoordinate, ...]:
        return (self.server_srg, self.server_mcp, self.decompiled)

    def all(self) -> tuple[ArtifactCoordinate, ...]:
        return (self.version_descriptor, *self.downloads(), *self.derived())


def version_descriptor_coordinate(minecraft_version: str) -> ArtifactCoordinate:
    return ArtifactCoordinate(CACHE_GROUP, "version", minecraft_version, "json")


def pipeline_coordinates(
    minecraft_version: str,
    srg_version: str,
    mcp_version: str,
) -> PipelineCoordinates:
    """Build the coordinates for one (game, srg, mcp) version triple."""
    srg_mapped = compose_version(minecraft_version, srg_version)
    mcp_mapped = compose_version(minecraft_version, srg_version, mcp_version)
    return PipelineCoordinates(
        version_descriptor=version_descriptor_coordinate(minecraft_version),
        srg=ArtifactCoordinate(CACHE_GROUP, "srg", srg_version, "zip"),
        mcp=ArtifactCoordinate(CACHE_GROUP, "mcp", mcp_version, "zip"),
        server=ArtifactCoordinate(CACHE_GROUP, "server", minecraft_version, "jar"),
        server_srg=ArtifactCoordinate(CACHE_GROUP, "server-srg", srg_mapped, "jar"),
        server_mcp=ArtifactCoordinate(CACHE_GROUP, "server-mcp", mcp_mapped, "jar"),
        decompiled=ArtifactCoordinate(
            CACHE_GROUP, "server-mcp", mcp_mapped, "jar", classifier="source"
        ),
    )


def parse_coordinate(notation: str) -> ArtifactCoordinate:
    """Parse ``group:name:version[:classifier[@extension]]`` library notation.

    This is the notation used by launcher version descriptors. The extension
    defaults to ``jar``.
    """
    extension = "jar"
    if "@" in notation:
        notation, extension = notation.rsplit("@", 1)
    tokens = notation.split(":")
    if len(tokens) < 3 or len(tokens) > 4 or not all(tokens):
        msg = (
            f"Invalid artifact {notation!r}: must be in format "
            "group:name:version[:classifier]"
        )
        raise ValueError(msg)
    classifier = tokens[3] if len(tokens) == 4 else None
    version = tokens[2]
    snapshot = version.endswith(SNAPSHOT_SUFFIX)
    if snapshot:
        version = version[: -len(SNAPSHOT_SUFFIX)]
    return ArtifactCoordinate(
        tokens[0], tokens[1], version, extension, classifier, snapshot
    )


__all__ = [
    "CACHE_GROUP",
    "STAGE_APPLY_MCP",
    "STAGE_APPLY_SRG",
    "STAGE_DECOMPILE",
    "STAGE_FETCH_MCP",
    "STAGE_FETCH_SERVER",
    "STAGE_FETCH_SRG",
    "STAGE_GIT_ADD",
    "STAGE_GIT_APPLY_PATCHES",
    "STAGE_GIT_BRANCH",
    "STAGE_GIT_COMMIT",
    "STAGE_GIT_INIT",
    "STAGE_TRANSFORM_SOURCE",
    "ArtifactCoordinate",
    "PipelineCoordinates",
    "compose_version",
    "parse_coordinate",
    "pipeline_coordinates",
    "version_descriptor_coordinate",
]
