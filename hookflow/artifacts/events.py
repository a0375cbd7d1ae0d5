"""
Immutable event records for artifact event logs.

Each artifact carries an append-only list of events under ``metadata.events``.
The current state is the ``event`` field of the most recent state event;
prior entries are never mutated. Hook execution outcomes are stored in the
same log as ``hook_executed`` events and are not states.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Literal, Mapping

# Artifact states
DRAFT = "draft"
READY = "ready"
BLOCKED = "blocked"
IN_PROGRESS = "in_progress"
IN_REVIEW = "in_review"
COMPLETED = "completed"
CANCELLED = "cancelled"
ARCHIVED = "archived"

STATES = frozenset({
    DRAFT,
    READY,
    BLOCKED,
    IN_PROGRESS,
    IN_REVIEW,
    COMPLETED,
    CANCELLED,
    ARCHIVED,
})

# States that count as "done" for parent completion and dependency checks
TERMINAL_STATES = frozenset({COMPLETED, CANCELLED})

# Non-state event kinds
HOOK_EXECUTED = "hook_executed"

# Triggers
TRIGGER_BRANCH_CREATED = "branch_created"
TRIGGER_PR_MERGED = "pr_merged"
TRIGGER_DEPENDENCIES_MET = "dependencies_met"
TRIGGER_CHILDREN_COMPLETED = "children_completed"
TRIGGER_HOOK_COMPLETED = "hook_completed"

HookStatus = Literal["success", "failed"]

ARTIFACT_ID_PATTERN = re.compile(r"\b[A-Z]\.\d+(?:\.\d+)*\b")
ARTIFACT_ID_PREFIX = re.compile(r"^[A-Z](?:\.\d+)*")


@dataclass(frozen=True)
class ArtifactEvent:
    """
    One entry of an artifact's event log.

    Attributes:
        event: State name (``in_progress``) or event kind (``hook_executed``)
        timestamp: ISO-8601 timestamp in UTC
        actor: Who caused the event, e.g. ``"Jane (jane@example.com)"``
        trigger: What caused it, e.g. ``branch_created``
        metadata: Free-form payload (hook execution details live here)
    """

    event: str
    timestamp: str
    actor: str
    trigger: str
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.event:
            raise ValueError("event must be a non-empty string")
        if not self.timestamp:
            raise ValueError("timestamp must be a non-empty string")

    def to_dict(self) -> dict[str, Any]:
        """Convert to the mapping stored in artifact YAML files."""
        d: dict[str, Any] = {
            "event": self.event,
            "timestamp": self.timestamp,
            "actor": self.actor,
            "trigger": self.trigger,
        }
        if self.metadata:
            d["metadata"] = dict(self.metadata)
        return d

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ArtifactEvent":
        """Create from a stored mapping. Non-mapping metadata is kept out."""
        metadata = data.get("metadata")
        return cls(
            event=str(data["event"]),
            timestamp=format_timestamp(data["timestamp"]),
            actor=str(data.get("actor", "")),
            trigger=str(data.get("trigger", "")),
            metadata=dict(metadata) if isinstance(metadata, Mapping) else {},
        )


def format_timestamp(value: datetime | str) -> str:
    """Render a datetime (or pass through a string) as ISO-8601 UTC with ``Z``."""
    if isinstance(value, str):
        return value
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO-8601 timestamp. Naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def create_event(
    event: str,
    actor: str,
    trigger: str,
    metadata: dict[str, Any] | None = None,
    timestamp: datetime | None = None,
) -> ArtifactEvent:
    """
    Factory function to create an artifact event.

    Args:
        event: State name or event kind
        actor: Who is responsible for the event
        trigger: What caused the event
        metadata: Optional payload
        timestamp: Optional timestamp (defaults to now)

    Returns:
        New ArtifactEvent instance
    """
    return ArtifactEvent(
        event=event,
        timestamp=format_timestamp(timestamp or datetime.now(timezone.utc)),
        actor=actor,
        trigger=trigger,
        metadata=metadata or {},
    )


def coerce_events(raw: Iterable[Any] | None) -> list[ArtifactEvent]:
    """Build events from raw YAML entries, skipping entries without an event name."""
    events: list[ArtifactEvent] = []
    for item in raw or []:
        if isinstance(item, ArtifactEvent):
            events.append(item)
        elif isinstance(item, Mapping) and item.get("event") and item.get("timestamp"):
            events.append(ArtifactEvent.from_dict(item))
    return events


def current_state(events: Iterable[ArtifactEvent]) -> str | None:
    """Return the most recent state in the log, or None when there is none."""
    state = None
    for event in events:
        if event.event in STATES:
            state = event.event
    return state


def has_event(events: Iterable[ArtifactEvent], name: str) -> bool:
    return any(e.event == name for e in events)


# -----------------------------------------------------------------------------
# Identifier helpers
# -----------------------------------------------------------------------------


def parent_id(artifact_id: str) -> str | None:
    """Return the structural parent (``A.1.2`` -> ``A.1``), None for roots."""
    parts = artifact_id.split(".")
    if len(parts) <= 1:
        return None
    return ".".join(parts[:-1])


def ancestor_ids(artifact_id: str) -> list[str]:
    """Return parents from nearest to root (``A.1.2`` -> ``["A.1", "A"]``)."""
    ancestors = []
    current = parent_id(artifact_id)
    while current is not None:
        ancestors.append(current)
        current = parent_id(current)
    return ancestors


def is_direct_child(parent: str, candidate: str) -> bool:
    """True when ``candidate`` extends ``parent`` by exactly one segment."""
    prefix = parent + "."
    if not candidate.startswith(prefix):
        return False
    rest = candidate[len(prefix):]
    return bool(rest) and "." not in rest


def extract_artifact_ids(*texts: str | None) -> list[str]:
    """Extract unique artifact ids from branch names or PR text, sorted."""
    found: set[str] = set()
    for text in texts:
        if text:
            found.update(ARTIFACT_ID_PATTERN.findall(text))
    return sorted(found)
