"""Content-addressed artifact storage."""

from store.local import Artifact, ArtifactExistsError, LocalArtifactStore

__all__ = ["Artifact", "ArtifactExistsError", "LocalArtifactStore"]
