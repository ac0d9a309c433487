from __future__ import annotations

import codecs
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import tomllib
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from contract.errors import ConfigurationError
from launcher.download import DEFAULT_TIMEOUT
from launcher.manifest import MANIFEST_URL
from launcher.urls import MCP_URL_TEMPLATE, SRG_URL_TEMPLATE

if TYPE_CHECKING:
    from collections.abc import Mapping

CONFIG_FILENAME = "decompipe.toml"


class _StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ToolchainConfig(_StrictModel):
    """External programs run by the pipeline."""

    java: str = Field(default="java", description="Java launcher executable")
    jvm_options: list[str] = Field(
        default_factory=list, description="Options passed to every child JVM"
    )
    decompiler_jar: str | None = Field(
        default=None, description="Fernflower-compatible decompiler jar"
    )
    formatter_jar: str | None = Field(
        default=None,
        description="google-java-format jar (sources are left unformatted if unset)",
    )
    decompiler_timeout: float | None = Field(
        default=None, gt=0, description="Decompiler time limit in seconds"
    )


class EndpointsConfig(_StrictModel):
    """Remote locations of the pipeline inputs."""

    manifest_url: str = Field(
        default=MANIFEST_URL, description="Launcher version manifest"
    )
    srg_url: str = Field(
        default=SRG_URL_TEMPLATE,
        description="SRG archive URL template ({version})",
    )
    mcp_url: str = Field(
        default=MCP_URL_TEMPLATE,
        description="MCP archive URL template ({channel}, {version})",
    )
    timeout: float = Field(
        default=DEFAULT_TIMEOUT, gt=0, description="HTTP timeout in seconds"
    )


class GitConfig(_StrictModel):
    """Snapshot repository settings."""

    executable: str = Field(default="git", description="git executable")
    author_name: str = Field(default="decompipe", description="Commit author name")
    author_email: str = Field(
        default="decompipe@localhost", description="Commit author e-mail"
    )
    branch: str = Field(default="main", description="Working branch")
    baseline_branch: str = Field(
        default="upstream", description="Branch marking the unpatched snapshot"
    )
    commit_message: str = Field(
        default="Decompiled Minecraft", description="Baseline commit message"
    )
    source_glob: str = Field(
        default="**/*.java", description="Files added to the baseline commit"
    )


class DecompipeConfig(_StrictModel):
    """Configuration of a source generation project."""

    minecraft_version: str = Field(description="Game version id, e.g. '1.12.2'")
    srg_version: str = Field(description="First-level mapping version")
    mcp_version: str = Field(description="Second-level mapping '<channel>-<version>'")
    patch_dir: str = Field(
        default="src/main/patches", description="Directory of *.patch files"
    )
    source_dir: str = Field(
        default="target/generated-sources/minecraft",
        description="Generated source tree (recreated on every run)",
    )
    cache_dir: str = Field(
        default=".decompipe/cache", description="Artifact store root"
    )
    library_dir: str = Field(
        default=".decompipe/libraries", description="Decompiler classpath cache"
    )
    access_transformers: list[str] = Field(
        default_factory=list, description="Access transformation files"
    )
    source_encoding: str = Field(
        default="utf-8", description="Encoding of the generated sources"
    )
    workers: int | None = Field(
        default=None, ge=1, description="Worker threads per stage (default: auto)"
    )
    toolchain: ToolchainConfig = Field(default_factory=ToolchainConfig)
    endpoints: EndpointsConfig = Field(default_factory=EndpointsConfig)
    git: GitConfig = Field(default_factory=GitConfig)

    @field_validator("minecraft_version", "srg_version", "mcp_version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        if not v or v != v.strip() or any(c.isspace() for c in v):
            msg = "must be a non-empty version identifier without whitespace"
            raise ValueError(msg)
        return v

    @field_validator("mcp_version")
    @classmethod
    def validate_mcp_version(cls, v: str) -> str:
        channel, separator, version = v.partition("-")
        if not separator or not channel or not version:
            msg = "must be formatted as <channel>-<version>"
            raise ValueError(msg)
        return v

    @field_validator("source_encoding")
    @classmethod
    def validate_encoding(cls, v: str) -> str:
        try:
            return codecs.lookup(v).name
        except LookupError as exc:
            msg = f"unknown encoding {v!r}"
            raise ValueError(msg) from exc


@dataclass(frozen=True)
class ProjectPaths:
    root: Path
    source_dir: Path
    patch_dir: Path
    cache_dir: Path
    library_dir: Path
    access_transformers: tuple[Path, ...]


def resolve_source_dir(root: Path, source_dir: str) -> Path:
    """Resolve the configured source_dir safely within the project root.

    The source directory is deleted and recreated on every run, so it must
    be a non-empty relative path that stays below the root after
    resolution, and must not be the root itself.
    """
    if not source_dir or source_dir.startswith("~"):
        msg = "must be a non-empty relative path within the project root"
        raise ConfigurationError("source_dir", msg)

    source_path = Path(source_dir)
    if source_path.is_absolute():
        msg = "must be a relative path within the project root"
        raise ConfigurationError("source_dir", msg)

    try:
        resolved_root = root.resolve()
        resolved_source = (resolved_root / source_path).resolve()
    except OSError as exc:
        msg = f"failed to resolve '{source_dir}': {exc}"
        raise ConfigurationError("source_dir", msg) from exc

    try:
        relative = resolved_source.relative_to(resolved_root)
    except ValueError as exc:
        msg = f"'{source_dir}' escapes the project root"
        raise ConfigurationError("source_dir", msg) from exc
    if not relative.parts:
        msg = "must not be the project root"
        raise ConfigurationError("source_dir", msg)

    return resolved_source


def _resolve(root: Path, value: str) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else root / path


def resolve_paths(root: Path, config: DecompipeConfig) -> ProjectPaths:
    transformers = []
    for value in config.access_transformers:
        path = _resolve(root, value)
        if not path.is_file():
            msg = f"file not found: {value}"
            raise ConfigurationError("access_transformers", msg)
        transformers.append(path)
    return ProjectPaths(
        root=root,
        source_dir=resolve_source_dir(root, config.source_dir),
        patch_dir=_resolve(root, config.patch_dir),
        cache_dir=_resolve(root, config.cache_dir),
        library_dir=_resolve(root, config.library_dir),
        access_transformers=tuple(transformers),
    )


def _field_name(error: Mapping[str, Any]) -> str:
    location = [str(part) for part in error.get("loc", ())]
    return ".".join(location) or CONFIG_FILENAME


def load_config(
    root: Path, overrides: Mapping[str, Any] | None = None
) -> DecompipeConfig:
    """Load decompipe.toml from ``root`` and apply command line overrides.

    Overrides with a value of ``None`` are ignored. A missing file is
    allowed as long as the overrides supply every required field.
    """
    config_path = root / CONFIG_FILENAME
    data: dict[str, Any] = {}
    if config_path.is_file():
        try:
            with config_path.open("rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            msg = f"invalid TOML in {config_path}: {e}"
            raise ConfigurationError(CONFIG_FILENAME, msg) from e

    for key, value in (overrides or {}).items():
        if value is not None:
            data[key] = value

    try:
        return DecompipeConfig.model_validate(data)
    except ValidationError as e:
        error = e.errors()[0]
        raise ConfigurationError(_field_name(error), error["msg"]) from e


__all__ = [
    "CONFIG_FILENAME",
    "DecompipeConfig",
    "EndpointsConfig",
    "GitConfig",
    "ProjectPaths",
    "ToolchainConfig",
    "load_config",
    "resolve_paths",
    "resolve_source_dir",
]
