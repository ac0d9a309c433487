"""Stable contract surface for decompipe.

Coordinates, stage names and the error taxonomy are the boundary every other
package depends on. Treat these exports as authoritative.
"""

from contract.coordinates import (
    CACHE_GROUP,
    ArtifactCoordinate,
    PipelineCoordinates,
    compose_version,
    pipeline_coordinates,
)
from contract.errors import (
    ConfigurationError,
    ExecutionError,
    PipelineConfigurationError,
    PipelineError,
    ResolutionError,
)

__all__ = [
    "CACHE_GROUP",
    "ArtifactCoordinate",
    "ConfigurationError",
    "ExecutionError",
    "PipelineConfigurationError",
    "PipelineCoordinates",
    "PipelineError",
    "ResolutionError",
    "compose_version",
    "pipeline_coordinates",
]
