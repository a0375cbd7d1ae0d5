"""Tests for hook idempotency decisions."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from hookflow.artifacts.events import ArtifactEvent, create_event
from hookflow.hooks.idempotency import IdempotencyTracker

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def hook_event(hook: str, status: str, minutes_ago: float, **metadata) -> ArtifactEvent:
    return create_event(
        "hook_executed",
        actor="Git Hook",
        trigger="hook_completed",
        metadata={"hook": hook, "status": status, **metadata},
        timestamp=NOW - timedelta(minutes=minutes_ago),
    )


def test_never_executed_runs():
    tracker = IdempotencyTracker()
    result = tracker.should_execute([], "post-merge", now=NOW)
    assert result.should_execute is True
    assert result.reason == "Hook has never been executed"
    assert result.last_execution is None


def test_success_is_never_rerun():
    tracker = IdempotencyTracker()
    events = [hook_event("post-merge", "success", minutes_ago=600)]
    result = tracker.should_execute(events, "post-merge", now=NOW)
    assert result.should_execute is False
    assert result.reason == "Hook already executed successfully"
    assert result.last_execution.status == "success"


def test_recent_failure_waits_for_retry_timeout():
    tracker = IdempotencyTracker()
    events = [hook_event("post-merge", "failed", minutes_ago=3, error="boom")]
    result = tracker.should_execute(events, "post-merge", now=NOW)
    assert result.should_execute is False
    assert result.reason == "Hook failed recently (180s ago), retry timeout not reached"
    assert result.last_execution.error == "boom"


def test_old_failure_is_retried():
    tracker = IdempotencyTracker()
    events = [hook_event("post-merge", "failed", minutes_ago=6)]
    result = tracker.should_execute(events, "post-merge", now=NOW)
    assert result.should_execute is True
    assert result.reason == "Hook failed 360s ago, retry timeout passed"


def test_retry_disabled_blocks_failed_hook():
    tracker = IdempotencyTracker(allow_retry=False)
    events = [hook_event("post-merge", "failed", minutes_ago=60)]
    result = tracker.should_execute(events, "post-merge", now=NOW)
    assert result.should_execute is False
    assert result.reason == "Hook failed and retry is disabled"


def test_custom_retry_timeout():
    tracker = IdempotencyTracker(retry_timeout=timedelta(minutes=1))
    events = [hook_event("post-merge", "failed", minutes_ago=2)]
    assert tracker.should_execute(events, "post-merge", now=NOW).should_execute is True


def test_only_latest_execution_counts():
    tracker = IdempotencyTracker()
    events = [
        hook_event("post-merge", "success", minutes_ago=30),
        hook_event("post-merge", "failed", minutes_ago=1),
    ]
    result = tracker.should_execute(events, "post-merge", now=NOW)
    assert result.should_execute is False
    assert result.last_execution.status == "failed"


def test_other_hooks_and_state_events_are_ignored():
    tracker = IdempotencyTracker()
    events = [
        create_event("in_progress", actor="Jane", trigger="branch_created", timestamp=NOW),
        hook_event("post-checkout", "success", minutes_ago=5),
    ]
    result = tracker.should_execute(events, "post-merge", now=NOW)
    assert result.should_execute is True
    assert result.reason == "Hook has never been executed"


def test_malformed_hook_entries_are_skipped():
    tracker = IdempotencyTracker()
    events = [
        ArtifactEvent(event="hook_executed", timestamp="not a date", actor="x", trigger="t",
                      metadata={"hook": "post-merge", "status": "success"}),
        hook_event("post-merge", "exploded", minutes_ago=1),
        ArtifactEvent(event="hook_executed", timestamp="2026-03-01T11:00:00Z", actor="x", trigger="t"),
    ]
    result = tracker.should_execute(events, "post-merge", now=NOW)
    assert result.should_execute is True
    assert result.reason == "Hook has never been executed"


def test_create_execution_event_shape():
    tracker = IdempotencyTracker()
    event = tracker.create_execution_event(
        "post-merge", "failed", actor="System", duration=120, error="boom", artifact_event="completed"
    )
    assert event.event == "hook_executed"
    assert event.trigger == "hook_completed"
    assert event.metadata == {
        "hook": "post-merge",
        "status": "failed",
        "duration": 120,
        "error": "boom",
        "artifactEvent": "completed",
    }


def test_fresh_failed_execution_event_is_in_cooldown():
    tracker = IdempotencyTracker()
    event = tracker.create_execution_event("post-merge", "failed", actor="Git Hook", error="boom")

    result = tracker.should_execute([event], "post-merge")

    assert result.should_execute is False
    assert result.reason.startswith("Hook failed recently")
    assert result.last_execution.status == "failed"

    later = datetime.now(timezone.utc) + timedelta(hours=2)
    assert tracker.should_execute([event], "post-merge", now=later).should_execute is True


def test_record_execution_appends_to_store(store, write_artifact):
    write_artifact("A.1", "draft")
    tracker = IdempotencyTracker()

    tracker.record_execution(store, "A.1", "post-merge", "success", actor="System", duration=5)

    events = store.get_artifact("A.1").events
    assert events[-1].event == "hook_executed"
    assert events[-1].metadata["status"] == "success"
    assert tracker.should_execute(events, "post-merge").should_execute is False
    # state is unaffected by hook records
    assert store.get_artifact("A.1").state == "draft"
