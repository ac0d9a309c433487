"""Determinism verification for cached pipeline artifacts."""

from __future__ import annotations

import filecmp
import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from contract.coordinates import pipeline_coordinates
from pipeline.build import cached_stages
from pipeline.engine import Pipeline
from store.local import LocalArtifactStore

if TYPE_CHECKING:
    from pipeline.build import PipelineServices
    from rules.config import DecompipeConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeterminismResult:
    ok: bool
    mismatches: tuple[str, ...] = field(default_factory=tuple)
    missing: tuple[str, ...] = field(default_factory=tuple)


def verify_cache_determinism(
    config: DecompipeConfig, services: PipelineServices
) -> DeterminismResult:
    """Verify that the cached derived artifacts are reproducible.

    Rebuilds every derived artifact (remapped archives, source archive) in
    a scratch store seeded with the cached downloads and compares the
    results byte-for-byte with the cached copies. Nothing is downloaded:
    when a download, the version descriptor or a decompiler library is not
    cached, the result lists it as missing and no rebuild takes place.
    Libraries are listed by their path under the library directory.

    Returns:
        DeterminismResult with ok status and the string form of missing and
        mismatching coordinates.
    """
    store = services.store
    coordinates = pipeline_coordinates(
        config.minecraft_version, config.srg_version, config.mcp_version
    )
    inputs = (coordinates.version_descriptor, *coordinates.downloads())
    missing = [str(c) for c in (*inputs, *coordinates.derived()) if not store.exists(c)]
    if any(not store.exists(c) for c in inputs):
        return DeterminismResult(ok=False, missing=tuple(missing))

    descriptor = services.manifests.resolve(config.minecraft_version)
    libraries = [artifact.path for artifact in services.libraries.missing(descriptor)]
    if libraries:
        return DeterminismResult(ok=False, missing=(*missing, *libraries))

    with tempfile.TemporaryDirectory(prefix="decompipe-verify-") as temp_dir:
        scratch = LocalArtifactStore(Path(temp_dir))
        for coordinate in inputs:
            scratch.put(coordinate, store.path_for(coordinate))
        scratch_services = services.with_store(scratch)
        Pipeline(
            cached_stages(config, coordinates, scratch_services, descriptor), scratch
        ).execute()

        mismatches = []
        for coordinate in coordinates.derived():
            if not store.exists(coordinate):
                continue
            if not filecmp.cmp(
                store.path_for(coordinate), scratch.path_for(coordinate), shallow=False
            ):
                mismatches.append(str(coordinate))

    for coordinate in mismatches:
        logger.warning("event=artifact_mismatch coordinate=%s", coordinate)
    ok = not missing and not mismatches
    return DeterminismResult(
        ok=ok, mismatches=tuple(mismatches), missing=tuple(missing)
    )


__all__ = ["DeterminismResult", "verify_cache_determinism"]
