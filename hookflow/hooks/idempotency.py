"""
Idempotency decisions from the artifact event log.

There is no separate state table: every hook run appends a ``hook_executed``
event to the artifact it ran for, and the decision to run again is derived
by looking at the most recent such event for the hook.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

from ..artifacts.events import (
    HOOK_EXECUTED,
    TRIGGER_HOOK_COMPLETED,
    ArtifactEvent,
    HookStatus,
    create_event,
    parse_timestamp,
)
from ..artifacts.store import ArtifactStore

DEFAULT_RETRY_TIMEOUT = timedelta(minutes=5)

HOOK_STATUSES = frozenset({"success", "failed"})


@dataclass(frozen=True)
class LastExecution:
    """The hook execution record a decision was based on."""

    hook: str
    status: HookStatus
    timestamp: str
    duration: int | None = None
    error: str | None = None
    artifact_event: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"hook": self.hook, "status": self.status, "timestamp": self.timestamp}
        if self.duration is not None:
            d["duration"] = self.duration
        if self.error is not None:
            d["error"] = self.error
        if self.artifact_event is not None:
            d["artifactEvent"] = self.artifact_event
        return d


@dataclass(frozen=True)
class ShouldExecuteResult:
    should_execute: bool
    reason: str
    last_execution: LastExecution | None = None


class IdempotencyTracker:
    """
    Decide whether a hook should run for an artifact.

    Args:
        retry_timeout: How long a failed hook cools down before it may retry
        allow_retry: When False, a failed hook is never retried
    """

    def __init__(
        self,
        retry_timeout: timedelta = DEFAULT_RETRY_TIMEOUT,
        allow_retry: bool = True,
    ):
        self.retry_timeout = retry_timeout
        self.allow_retry = allow_retry

    def should_execute(
        self,
        events: Iterable[ArtifactEvent],
        hook_name: str,
        now: datetime | None = None,
    ) -> ShouldExecuteResult:
        """
        Decide from the event log whether ``hook_name`` should run now.

        Only the most recent matching execution (in log order) counts.
        Entries with malformed metadata are ignored.

        Args:
            events: The artifact's event log, oldest first
            hook_name: Name of the hook, e.g. "post-merge"
            now: Current time (defaults to wall-clock UTC)

        Returns:
            ShouldExecuteResult with the decision and a reason string
        """
        last = self._last_execution(events, hook_name)
        if last is None:
            return ShouldExecuteResult(True, "Hook has never been executed")

        if last.status == "success":
            return ShouldExecuteResult(False, "Hook already executed successfully", last)

        if not self.allow_retry:
            return ShouldExecuteResult(False, "Hook failed and retry is disabled", last)

        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        elapsed = now - parse_timestamp(last.timestamp)
        seconds = round(elapsed.total_seconds())

        if elapsed < self.retry_timeout:
            return ShouldExecuteResult(
                False,
                f"Hook failed recently ({seconds}s ago), retry timeout not reached",
                last,
            )

        return ShouldExecuteResult(True, f"Hook failed {seconds}s ago, retry timeout passed", last)

    def _last_execution(self, events: Iterable[ArtifactEvent], hook_name: str) -> LastExecution | None:
        last = None
        for event in events:
            if event.event != HOOK_EXECUTED:
                continue
            metadata = event.metadata
            if not isinstance(metadata, Mapping):
                continue
            if metadata.get("hook") != hook_name or metadata.get("status") not in HOOK_STATUSES:
                continue
            try:
                parse_timestamp(event.timestamp)
            except ValueError:
                continue
            duration = metadata.get("duration")
            error = metadata.get("error")
            artifact_event = metadata.get("artifactEvent")
            last = LastExecution(
                hook=hook_name,
                status=metadata["status"],
                timestamp=event.timestamp,
                duration=duration if isinstance(duration, int) else None,
                error=str(error) if error is not None else None,
                artifact_event=str(artifact_event) if artifact_event is not None else None,
            )
        return last

    def create_execution_event(
        self,
        hook_name: str,
        status: HookStatus,
        actor: str,
        duration: int | None = None,
        error: str | None = None,
        artifact_event: str | None = None,
    ) -> ArtifactEvent:
        """Build a ``hook_executed`` event for the log. Pure construction."""
        metadata: dict[str, Any] = {"hook": hook_name, "status": status}
        if duration is not None:
            metadata["duration"] = duration
        if error is not None:
            metadata["error"] = error
        if artifact_event is not None:
            metadata["artifactEvent"] = artifact_event
        return create_event(HOOK_EXECUTED, actor=actor, trigger=TRIGGER_HOOK_COMPLETED, metadata=metadata)

    def record_execution(
        self,
        store: ArtifactStore,
        artifact_id: str,
        hook_name: str,
        status: HookStatus,
        actor: str,
        **extra: Any,
    ) -> ArtifactEvent:
        """Create an execution event and append it to ``artifact_id``'s log."""
        event = self.create_execution_event(hook_name, status, actor, **extra)
        store.append_event(artifact_id, event)
        return event
