"""
handoff storage module.

This module provides the filesystem-backed artifact store.
"""

from handoff.store.artifacts import Artifact, ArtifactInfo, ArtifactStore, Category

__all__ = ["Artifact", "ArtifactInfo", "ArtifactStore", "Category"]
