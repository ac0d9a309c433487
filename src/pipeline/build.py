"""Composition of the fixed source generation pipeline.

Stages, in order::

    fetch-srg, fetch-mcp, fetch-server          downloads (cached)
    apply-srg, apply-mcp                        bytecode remapping (cached)
    decompile                                   source archive (cached)
    transform-source                            working tree extraction
    git-init, git-add, git-commit, git-branch   baseline snapshot
    git-apply-patches                           patch replay
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from contract.coordinates import (
    STAGE_FETCH_MCP,
    STAGE_FETCH_SERVER,
    STAGE_FETCH_SRG,
    pipeline_coordinates,
)
from contract.errors import ConfigurationError
from decompile.engine import FernflowerDecompiler
from launcher.download import Downloader, create_client
from launcher.libraries import LibraryCache
from launcher.manifest import VersionManifestClient
from launcher.urls import mcp_url, srg_url
from pipeline.engine import Pipeline, StageRegistration
from pipeline.tasks.decompile import DecompileTask
from pipeline.tasks.extract import TransformSourceTask
from pipeline.tasks.fetch import DownloadTask
from pipeline.tasks.mappings import (
    MCP_PARAMETER,
    SRG_PARAMETER,
    ApplyMcpMappingsTask,
    ApplySrgMappingsTask,
)
from pipeline.tasks.vcs import (
    GitAddTask,
    GitApplyPatchesTask,
    GitCommitTask,
    GitCreateBranchTask,
    GitInitTask,
)
from source.access_transformer import AccessTransformer
from source.formatter import GoogleJavaFormatter, PassthroughFormatter
from store.local import LocalArtifactStore
from vcs.git import GitIdentity

if TYPE_CHECKING:
    import httpx

    from contract.coordinates import PipelineCoordinates
    from decompile.engine import Decompiler
    from launcher.manifest import VersionDescriptor
    from pipeline.engine import PipelineReport
    from rules.config import DecompipeConfig, ProjectPaths
    from source.formatter import SourceFormatter

logger = logging.getLogger(__name__)


@dataclass
class PipelineServices:
    """Collaborators shared by every stage of one run."""

    store: LocalArtifactStore
    downloader: Downloader
    manifests: VersionManifestClient
    libraries: LibraryCache
    decompiler: Decompiler
    formatter: SourceFormatter
    client: httpx.Client

    def close(self) -> None:
        self.client.close()

    def with_store(self, store: LocalArtifactStore) -> PipelineServices:
        """The same collaborators writing into a different store."""
        return PipelineServices(
            store=store,
            downloader=self.downloader,
            manifests=VersionManifestClient(
                self.downloader, store, self.manifests.manifest_url
            ),
            libraries=self.libraries,
            decompiler=self.decompiler,
            formatter=self.formatter,
            client=self.client,
        )


def create_services(
    config: DecompipeConfig,
    paths: ProjectPaths,
    *,
    transport: httpx.BaseTransport | None = None,
    decompiler: Decompiler | None = None,
    formatter: SourceFormatter | None = None,
) -> PipelineServices:
    toolchain = config.toolchain
    if decompiler is None:
        if toolchain.decompiler_jar is None:
            msg = "a decompiler jar is required"
            raise ConfigurationError("toolchain.decompiler_jar", msg)
        decompiler = FernflowerDecompiler(
            Path(toolchain.decompiler_jar).expanduser(),
            java=toolchain.java,
            jvm_options=toolchain.jvm_options,
            timeout=toolchain.decompiler_timeout,
        )
    if formatter is None:
        if toolchain.formatter_jar is None:
            formatter = PassthroughFormatter()
        else:
            formatter = GoogleJavaFormatter(
                Path(toolchain.formatter_jar).expanduser(),
                java=toolchain.java,
                jvm_options=toolchain.jvm_options,
            )

    client = create_client(timeout=config.endpoints.timeout, transport=transport)
    downloader = Downloader(client)
    store = LocalArtifactStore(paths.cache_dir)
    return PipelineServices(
        store=store,
        downloader=downloader,
        manifests=VersionManifestClient(
            downloader, store, config.endpoints.manifest_url
        ),
        libraries=LibraryCache(paths.library_dir, downloader),
        decompiler=decompiler,
        formatter=formatter,
        client=client,
    )


def cached_stages(
    config: DecompipeConfig,
    coordinates: PipelineCoordinates,
    services: PipelineServices,
    descriptor: VersionDescriptor,
) -> list[StageRegistration]:
    """Download, remap and decompile: every stage with a store output."""
    endpoints = config.endpoints
    server = descriptor.server_download()
    return [
        StageRegistration(
            DownloadTask(
                STAGE_FETCH_SRG,
                srg_url(config.srg_version, endpoints.srg_url),
                services.downloader,
            ),
            output_artifact=coordinates.srg,
        ),
        StageRegistration(
            DownloadTask(
                STAGE_FETCH_MCP,
                mcp_url(config.mcp_version, endpoints.mcp_url),
                services.downloader,
            ),
            output_artifact=coordinates.mcp,
        ),
        StageRegistration(
            DownloadTask(
                STAGE_FETCH_SERVER,
                server.url,
                services.downloader,
                sha1=server.sha1,
                size=server.size,
            ),
            output_artifact=coordinates.server,
        ),
        StageRegistration(
            ApplySrgMappingsTask(workers=config.workers),
            input_artifact=coordinates.server,
            output_artifact=coordinates.server_srg,
            parameters={SRG_PARAMETER: coordinates.srg},
        ),
        StageRegistration(
            ApplyMcpMappingsTask(workers=config.workers),
            input_artifact=coordinates.server_srg,
            output_artifact=coordinates.server_mcp,
            parameters={MCP_PARAMETER: coordinates.mcp},
        ),
        StageRegistration(
            DecompileTask(
                services.decompiler,
                lambda: services.libraries.resolve(descriptor),
                encoding=config.source_encoding,
                workers=config.workers,
            ),
            input_artifact=coordinates.server_mcp,
            output_artifact=coordinates.decompiled,
        ),
    ]


def working_tree_stages(
    config: DecompipeConfig,
    paths: ProjectPaths,
    coordinates: PipelineCoordinates,
    services: PipelineServices,
) -> list[StageRegistration]:
    """Extraction, snapshot and patch replay: rerun on every invocation."""
    git = config.git
    identity = GitIdentity(git.author_name, git.author_email)
    executable = git.executable
    access_transformer = None
    if paths.access_transformers:
        access_transformer = AccessTransformer.load(paths.access_transformers)
    source_dir = paths.source_dir
    return [
        StageRegistration(
            TransformSourceTask(
                services.formatter,
                access_transformer=access_transformer,
                encoding=config.source_encoding,
                workers=config.workers,
            ),
            input_artifact=coordinates.decompiled,
            output_path=source_dir,
        ),
        StageRegistration(
            GitInitTask(identity, git=executable, branch=git.branch),
            input_path=source_dir,
        ),
        StageRegistration(
            GitAddTask(identity, git=executable, pattern=git.source_glob),
            input_path=source_dir,
        ),
        StageRegistration(
            GitCommitTask(identity, git.commit_message, git=executable),
            input_path=source_dir,
        ),
        StageRegistration(
            GitCreateBranchTask(identity, git.baseline_branch, git=executable),
            input_path=source_dir,
        ),
        StageRegistration(
            GitApplyPatchesTask(identity, git.baseline_branch, git=executable),
            input_path=paths.patch_dir,
            output_path=source_dir,
        ),
    ]


def build_pipeline(
    config: DecompipeConfig,
    paths: ProjectPaths,
    services: PipelineServices,
    descriptor: VersionDescriptor,
) -> Pipeline:
    coordinates = pipeline_coordinates(
        config.minecraft_version, config.srg_version, config.mcp_version
    )
    stages = [
        *cached_stages(config, coordinates, services, descriptor),
        *working_tree_stages(config, paths, coordinates, services),
    ]
    return Pipeline(stages, services.store)


def generate_sources(
    config: DecompipeConfig, paths: ProjectPaths, services: PipelineServices
) -> PipelineReport:
    """Resolve the game version, then run the whole pipeline."""
    descriptor = services.manifests.resolve(config.minecraft_version)
    pipeline = build_pipeline(config, paths, services, descriptor)
    logger.info(
        "event=pipeline_started minecraft=%s srg=%s mcp=%s stages=%d",
        config.minecraft_version,
        config.srg_version,
        config.mcp_version,
        len(pipeline.stages),
    )
    return pipeline.execute()


__all__ = [
    "PipelineServices",
    "build_pipeline",
    "cached_stages",
    "create_services",
    "generate_sources",
    "working_tree_stages",
]
