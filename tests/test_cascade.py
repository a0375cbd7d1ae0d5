"""Tests for progress, completion and readiness cascades."""

from __future__ import annotations

from hookflow.artifacts.cascade import CascadeService

ACTOR = "System Cascade (cascade@post-merge)"


def test_progress_cascade_moves_ancestors_nearest_first(write_artifact, store):
    write_artifact("A", "draft", "ready")
    write_artifact("A.1", "draft", "ready")
    write_artifact("A.1.2", "draft", "ready", "in_progress")

    result = CascadeService(store).execute_progress_cascade("A.1.2", trigger="branch_created", actor=ACTOR)

    assert result.updated_artifacts == ["A.1", "A"]
    assert [(e.artifact_id, e.event, e.trigger) for e in result.events] == [
        ("A.1", "in_progress", "branch_created"),
        ("A", "in_progress", "branch_created"),
    ]
    assert store.get_artifact("A").state == "in_progress"
    assert store.get_artifact("A.1").events[-1].actor == ACTOR


def test_progress_cascade_skips_parents_already_started(write_artifact, store):
    write_artifact("A", "draft")
    write_artifact("A.1", "draft", "in_progress")
    write_artifact("A.1.2", "draft", "in_progress")

    result = CascadeService(store).execute_progress_cascade("A.1.2", trigger="branch_created", actor=ACTOR)

    assert result.updated_artifacts == ["A"]
    assert len(store.get_artifact("A.1").events) == 2


def test_progress_cascade_stops_at_missing_ancestor(write_artifact, store):
    write_artifact("A", "draft")
    write_artifact("A.1.2", "in_progress")

    result = CascadeService(store).execute_progress_cascade("A.1.2", trigger="branch_created", actor=ACTOR)

    assert result.updated_artifacts == []
    assert store.get_artifact("A").state == "draft"


def test_completion_cascade_completes_artifact(auth_tree, store):
    result = CascadeService(store).execute_completion_cascade("A.1.2", trigger="pr_merged", actor=ACTOR)

    assert result.updated_artifacts == ["A.1.2"]
    assert store.get_artifact("A.1.2").state == "completed"
    # A.1.3 and A.1.4 are still open
    assert store.get_artifact("A.1").state == "in_progress"


def test_completion_cascade_moves_parent_to_review_when_children_done(write_artifact, store):
    write_artifact("P", "draft", "in_progress")
    write_artifact("P.1", "draft", "in_progress")
    write_artifact("P.1.1", "draft", "in_progress", "completed")
    write_artifact("P.1.2", "draft", "cancelled")
    write_artifact("P.1.3", "draft", "in_progress", "in_review")

    result = CascadeService(store).execute_completion_cascade("P.1.3", trigger="pr_merged", actor=ACTOR)

    assert [(e.artifact_id, e.event, e.trigger) for e in result.events] == [
        ("P.1.3", "completed", "pr_merged"),
        ("P.1", "in_review", "children_completed"),
    ]
    assert store.get_artifact("P.1").state == "in_review"
    assert store.get_artifact("P").state == "in_progress"


def test_completion_cascade_is_idempotent(write_artifact, store):
    write_artifact("B.1", "draft", "completed")

    result = CascadeService(store).execute_completion_cascade("B.1", trigger="pr_merged", actor=ACTOR)

    assert result.events == []
    assert len(store.get_artifact("B.1").events) == 2


def test_readiness_cascade_unblocks_dependents(auth_tree, store):
    cascade = CascadeService(store)
    cascade.execute_completion_cascade("A.1.2", trigger="pr_merged", actor=ACTOR)

    result = cascade.execute_readiness_cascade("A.1.2", trigger="dependencies_met", actor=ACTOR)

    assert result.updated_artifacts == ["A.1.3", "A.1.4"]
    assert {e.event for e in result.events} == {"ready"}
    assert store.get_artifact("A.1.3").state == "ready"


def test_readiness_cascade_waits_for_all_blockers(write_artifact, store):
    write_artifact("C.1", "draft", "completed")
    write_artifact("C.2", "draft", "in_progress")
    write_artifact("C.3", "draft", "blocked", blocked_by=["C.1", "C.2"])

    result = CascadeService(store).execute_readiness_cascade("C.1", trigger="dependencies_met", actor=ACTOR)

    assert result.updated_artifacts == []
    assert store.get_artifact("C.3").state == "blocked"


def test_cascade_result_to_dict(write_artifact, store):
    write_artifact("A", "draft")
    write_artifact("A.1", "in_progress")
    result = CascadeService(store).execute_progress_cascade("A.1", trigger="branch_created", actor=ACTOR)

    d = result.to_dict()
    assert d["updatedArtifacts"] == ["A"]
    assert d["events"][0]["artifactId"] == "A"
    assert d["events"][0]["event"] == "in_progress"
