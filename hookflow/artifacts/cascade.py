"""State cascades across the artifact hierarchy and dependency edges.

Three cascades are driven by git hooks:

- progress: a child started, so draft/ready ancestors move to in_progress
- completion: a merged artifact is completed, and a parent whose children
  are all done moves to in_review
- readiness: dependents whose blockers are all done move to ready
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from ..errors import ArtifactNotFoundError
from .events import (
    BLOCKED,
    COMPLETED,
    DRAFT,
    IN_PROGRESS,
    IN_REVIEW,
    READY,
    TERMINAL_STATES,
    TRIGGER_CHILDREN_COMPLETED,
    ancestor_ids,
    create_event,
    is_direct_child,
    parent_id,
)
from .store import ArtifactStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CascadeEvent:
    """One state event a cascade appended."""

    artifact_id: str
    event: str
    trigger: str
    actor: str
    timestamp: str

    def to_dict(self) -> dict[str, str]:
        return {
            "artifactId": self.artifact_id,
            "event": self.event,
            "trigger": self.trigger,
            "actor": self.actor,
            "timestamp": self.timestamp,
        }


@dataclass
class CascadeResult:
    """Artifacts a cascade touched and the events it appended."""

    updated_artifacts: list[str] = field(default_factory=list)
    events: list[CascadeEvent] = field(default_factory=list)

    def extend(self, other: "CascadeResult") -> None:
        self.updated_artifacts.extend(other.updated_artifacts)
        self.events.extend(other.events)

    def to_dict(self) -> dict:
        return {
            "updatedArtifacts": list(self.updated_artifacts),
            "events": [e.to_dict() for e in self.events],
        }


class CascadeRunner(Protocol):
    """Interface the orchestrators use to run cascades."""

    def execute_progress_cascade(self, artifact_id: str, trigger: str, actor: str) -> CascadeResult:
        ...

    def execute_completion_cascade(self, artifact_id: str, trigger: str, actor: str) -> CascadeResult:
        ...

    def execute_readiness_cascade(self, artifact_id: str, trigger: str, actor: str) -> CascadeResult:
        ...


class CascadeService:
    """Cascade implementation over an artifact store."""

    def __init__(self, store: ArtifactStore):
        self.store = store

    def _append(self, result: CascadeResult, artifact_id: str, state: str, trigger: str, actor: str) -> None:
        event = create_event(state, actor=actor, trigger=trigger)
        self.store.append_event(artifact_id, event)
        if artifact_id not in result.updated_artifacts:
            result.updated_artifacts.append(artifact_id)
        result.events.append(
            CascadeEvent(
                artifact_id=artifact_id,
                event=state,
                trigger=trigger,
                actor=actor,
                timestamp=event.timestamp,
            )
        )
        logger.info("Cascade: %s -> %s (%s)", artifact_id, state, trigger)

    def _state(self, artifact_id: str) -> str | None:
        return self.store.get_artifact(artifact_id).state

    def execute_progress_cascade(self, artifact_id: str, trigger: str, actor: str) -> CascadeResult:
        """Move every draft/ready ancestor of ``artifact_id`` to in_progress."""
        result = CascadeResult()
        for ancestor in ancestor_ids(artifact_id):
            try:
                state = self._state(ancestor)
            except ArtifactNotFoundError:
                logger.debug("Ancestor %s of %s not found, stopping progress cascade", ancestor, artifact_id)
                break
            if state in (DRAFT, READY):
                self._append(result, ancestor, IN_PROGRESS, trigger, actor)
        return result

    def execute_completion_cascade(self, artifact_id: str, trigger: str, actor: str) -> CascadeResult:
        """Complete ``artifact_id`` and move its parent to in_review when all siblings are done."""
        result = CascadeResult()

        if self._state(artifact_id) not in TERMINAL_STATES:
            self._append(result, artifact_id, COMPLETED, trigger, actor)

        parent = parent_id(artifact_id)
        if parent is None:
            return result
        try:
            parent_state = self._state(parent)
        except ArtifactNotFoundError:
            return result
        if parent_state != IN_PROGRESS:
            return result

        siblings = [r for r in self.store.find_artifacts() if is_direct_child(parent, r.id)]
        if siblings and all(r.state in TERMINAL_STATES for r in siblings):
            self._append(result, parent, IN_REVIEW, TRIGGER_CHILDREN_COMPLETED, actor)

        return result

    def execute_readiness_cascade(self, artifact_id: str, trigger: str, actor: str) -> CascadeResult:
        """Move draft/blocked dependents of ``artifact_id`` to ready once every blocker is done."""
        result = CascadeResult()
        records = {r.id: r for r in self.store.find_artifacts()}

        for record in records.values():
            if artifact_id not in record.blocked_by:
                continue
            if record.state not in (DRAFT, BLOCKED):
                continue
            blockers_done = all(
                b in records and records[b].state in TERMINAL_STATES
                for b in record.blocked_by
            )
            if blockers_done:
                self._append(result, record.id, READY, trigger, actor)

        return result
