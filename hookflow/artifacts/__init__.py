"""
Artifact model: event logs, YAML storage, dependency lookups and cascades.

Artifacts form a forest by id shape (``A`` > ``A.1`` > ``A.1.2``) and a
dependency graph through ``blocked_by`` / ``blocks`` relationships.
"""

from __future__ import annotations

from .cascade import CascadeEvent, CascadeResult, CascadeRunner, CascadeService
from .events import (
    ArtifactEvent,
    create_event,
    current_state,
    extract_artifact_ids,
    is_direct_child,
    parent_id,
)
from .graph import DependencyGraphService
from .store import ArtifactRecord, ArtifactStore, YamlArtifactStore

__all__ = [
    # Events
    "ArtifactEvent",
    "create_event",
    "current_state",
    "extract_artifact_ids",
    "is_direct_child",
    "parent_id",
    # Storage
    "ArtifactRecord",
    "ArtifactStore",
    "YamlArtifactStore",
    "DependencyGraphService",
    # Cascades
    "CascadeEvent",
    "CascadeResult",
    "CascadeRunner",
    "CascadeService",
]
