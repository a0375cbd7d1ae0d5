"""Impact analysis over the artifact hierarchy and dependency graph."""

from __future__ import annotations

from .formatter import ImpactReportFormatter
from .impact import (
    CancellationImpactReport,
    ImpactAnalyzer,
    ImpactedArtifact,
    ImpactReport,
)

__all__ = [
    "CancellationImpactReport",
    "ImpactAnalyzer",
    "ImpactedArtifact",
    "ImpactReport",
    "ImpactReportFormatter",
]
