"""
Impact analysis for proposed artifact operations.

Walks the structural hierarchy (children by id shape) and the explicit
dependency edges (``blocked_by`` / ``blocks``) to report which artifacts a
cancel, delete or dependency removal would affect.

An artifact reached through more than one relation is reported once, with
the first classification in this order: breaks_dependency,
blocks_parent_completion, orphans_children.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, Union

from ..artifacts.events import CANCELLED, COMPLETED, has_event, parent_id
from ..artifacts.graph import DependencyGraphService
from ..artifacts.store import ArtifactRecord, ArtifactStore
from ..errors import ArtifactNotFoundError

ImpactOperation = Literal["cancel", "delete", "remove_dependency"]
ImpactType = Literal["blocks_parent_completion", "breaks_dependency", "orphans_children"]

OPERATIONS: tuple[str, ...] = ("cancel", "delete", "remove_dependency")
IMPACT_TYPES: tuple[str, ...] = ("blocks_parent_completion", "breaks_dependency", "orphans_children")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


# -----------------------------------------------------------------------------
# Report types
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class ImpactedArtifact:
    id: str
    impact_type: ImpactType
    reason: str
    title: str = "Untitled"

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "impactType": self.impact_type, "reason": self.reason, "title": self.title}


@dataclass(frozen=True)
class ImpactReport:
    """Report for cancel / delete / remove_dependency, tagged by ``operation``."""

    artifact_id: str
    operation: ImpactOperation
    impacted_artifacts: list[ImpactedArtifact] = field(default_factory=list)
    analyzed_at: str = field(default_factory=_now)

    @property
    def has_impact(self) -> bool:
        return len(self.impacted_artifacts) > 0

    def by_type(self, impact_type: ImpactType) -> list[ImpactedArtifact]:
        return [a for a in self.impacted_artifacts if a.impact_type == impact_type]

    def to_dict(self) -> dict[str, Any]:
        return {
            "artifactId": self.artifact_id,
            "operation": self.operation,
            "impactedArtifacts": [a.to_dict() for a in self.impacted_artifacts],
            "hasImpact": self.has_impact,
            "analyzedAt": self.analyzed_at,
        }


@dataclass(frozen=True)
class ArtifactRef:
    id: str
    title: str = "Untitled"

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "title": self.title}


@dataclass(frozen=True)
class ParentCompletionImpact:
    id: str
    title: str
    remaining_incomplete: int
    can_complete: bool
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "remainingIncomplete": self.remaining_incomplete,
            "canComplete": self.can_complete,
            "message": self.message,
        }


@dataclass(frozen=True)
class DependentUnblocked:
    id: str
    title: str
    remaining_blockers: int
    fully_unblocked: bool
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "remainingBlockers": self.remaining_blockers,
            "fullyUnblocked": self.fully_unblocked,
            "message": self.message,
        }


@dataclass(frozen=True)
class CancellationImpactReport:
    """Detailed cancellation report: parent completion, unblocked dependents, children."""

    artifact_id: str
    parent_completion_affected: list[ParentCompletionImpact]
    dependents_unblocked: list[DependentUnblocked]
    children: list[ArtifactRef]
    summary: str
    analyzed_at: str = field(default_factory=_now)
    operation: Literal["cancellation"] = "cancellation"

    @property
    def has_impact(self) -> bool:
        return bool(self.parent_completion_affected or self.dependents_unblocked or self.children)

    def to_dict(self) -> dict[str, Any]:
        return {
            "artifactId": self.artifact_id,
            "operation": self.operation,
            "parentCompletionAffected": [p.to_dict() for p in self.parent_completion_affected],
            "dependentsUnblocked": [d.to_dict() for d in self.dependents_unblocked],
            "children": [c.to_dict() for c in self.children],
            "hasImpact": self.has_impact,
            "summary": self.summary,
            "analyzedAt": self.analyzed_at,
        }


AnyImpactReport = Union[ImpactReport, CancellationImpactReport]


def _plural(count: int, singular: str, plural: str | None = None) -> str:
    return singular if count == 1 else (plural or singular + "s")


# -----------------------------------------------------------------------------
# Analyzer
# -----------------------------------------------------------------------------


class _Collector:
    """Accumulate impacted artifacts, first classification wins."""

    def __init__(self):
        self.items: list[ImpactedArtifact] = []
        self.visited: set[str] = set()

    def add(self, record: ArtifactRecord, impact_type: ImpactType, reason: str) -> None:
        if record.id in self.visited:
            return
        self.visited.add(record.id)
        self.items.append(ImpactedArtifact(record.id, impact_type, reason, record.title))


class ImpactAnalyzer:
    """
    Compute impact reports from current graph state.

    Reports are built fresh on every call. The only cached state is the
    graph service's lookup index, reset with ``clear_cache()``.
    """

    def __init__(self, store: ArtifactStore, graph: DependencyGraphService | None = None):
        self.store = store
        self.graph = graph or DependencyGraphService(store)

    def clear_cache(self) -> None:
        self.graph.clear_cache()

    def analyze(self, artifact_id: str, operation: ImpactOperation) -> ImpactReport:
        """
        Report which artifacts ``operation`` on ``artifact_id`` would affect.

        Never raises for a well-formed id that does not exist; the report is
        simply empty (or partial).

        Raises:
            ValueError: If ``operation`` is not a known operation
        """
        handlers = {
            "cancel": self._cancel_impact,
            "delete": self._delete_impact,
            "remove_dependency": self._remove_dependency_impact,
        }
        if operation not in handlers:
            raise ValueError(f"Unknown operation: {operation!r} (expected one of {', '.join(OPERATIONS)})")

        return ImpactReport(
            artifact_id=artifact_id,
            operation=operation,
            impacted_artifacts=handlers[operation](artifact_id),
        )

    def _cancel_impact(self, artifact_id: str) -> list[ImpactedArtifact]:
        out = _Collector()
        for blocked in self.graph.get_blocked_artifacts(artifact_id):
            out.add(blocked, "breaks_dependency", f"Depends on {artifact_id} which is being canceled")
        for dep in self.graph.get_dependencies(artifact_id):
            out.add(dep, "blocks_parent_completion", f"{artifact_id} (blocked artifact) is being canceled")
        for child in self.graph.get_children(artifact_id):
            out.add(child, "orphans_children", f"Parent {artifact_id} is being canceled")
        return out.items

    def _delete_impact(self, artifact_id: str) -> list[ImpactedArtifact]:
        out = _Collector()
        for blocked in self.graph.get_blocked_artifacts(artifact_id):
            out.add(blocked, "breaks_dependency", f"Depends on {artifact_id} which is being deleted")
        for child in self.graph.get_children(artifact_id):
            out.add(child, "orphans_children", f"Parent {artifact_id} is being deleted")
        return out.items

    def _remove_dependency_impact(self, artifact_id: str) -> list[ImpactedArtifact]:
        out = _Collector()
        target = self.graph.get(artifact_id)
        if target is not None:
            out.add(target, "breaks_dependency", "Removing dependency may affect artifact readiness state")
        else:
            out.visited.add(artifact_id)

        for dep in self.graph.get_dependencies(artifact_id):
            for other in self.graph.get_blocked_artifacts(dep.id):
                out.add(other, "breaks_dependency", f"Shares dependency {dep.id} with {artifact_id}")
        return out.items

    def analyze_cancellation(self, artifact_id: str) -> CancellationImpactReport:
        """
        Detailed cancellation report.

        Raises:
            ArtifactNotFoundError: If ``artifact_id`` is not in the store
        """
        target = self.graph.get(artifact_id)
        if target is None:
            raise ArtifactNotFoundError(artifact_id)

        parents: list[ParentCompletionImpact] = []
        parent = parent_id(artifact_id)
        parent_record = self.graph.get(parent) if parent else None
        if parent_record is not None:
            remaining = 0
            for sibling in self.graph.get_children(parent_record.id):
                if sibling.id == artifact_id:
                    continue
                events = sibling.events
                if not has_event(events, COMPLETED) and not has_event(events, CANCELLED):
                    remaining += 1
            can_complete = remaining == 0
            if can_complete:
                message = f"Parent {parent_record.id} can now be completed (all children done/cancelled)"
            else:
                message = (
                    f"Parent {parent_record.id} still has {remaining} incomplete "
                    f"{_plural(remaining, 'child', 'children')}"
                )
            parents.append(
                ParentCompletionImpact(parent_record.id, parent_record.title, remaining, can_complete, message)
            )

        dependents: list[DependentUnblocked] = []
        for blocked in self.graph.get_blocked_artifacts(artifact_id):
            remaining = len([b for b in blocked.blocked_by if b != artifact_id])
            fully = remaining == 0
            if fully:
                message = "Will be fully unblocked (no remaining blockers)"
            else:
                message = f"Will have {remaining} remaining {_plural(remaining, 'blocker')}"
            dependents.append(DependentUnblocked(blocked.id, blocked.title, remaining, fully, message))

        children = [ArtifactRef(c.id, c.title) for c in self.graph.get_children(artifact_id)]

        return CancellationImpactReport(
            artifact_id=artifact_id,
            parent_completion_affected=parents,
            dependents_unblocked=dependents,
            children=children,
            summary=cancellation_summary(artifact_id, parents, dependents, children),
        )


def cancellation_summary(
    artifact_id: str,
    parents: list[ParentCompletionImpact],
    dependents: list[DependentUnblocked],
    children: list[ArtifactRef],
) -> str:
    parts = []
    if dependents:
        n = len(dependents)
        parts.append(f"will unblock {n} dependent {_plural(n, 'artifact')}")
    completable = [p for p in parents if p.can_complete]
    if completable:
        n = len(completable)
        parts.append(f"will allow {n} {_plural(n, 'parent')} to be completed")
    if children:
        n = len(children)
        parts.append(f"has {n} {_plural(n, 'child', 'children')} (will remain in current state)")

    if not parts:
        return f"Cancelling {artifact_id} has no impact on other artifacts"
    return f"Cancelling {artifact_id} {', '.join(parts)}"
