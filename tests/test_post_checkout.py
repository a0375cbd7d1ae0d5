"""Tests for the post-checkout orchestrator."""

from __future__ import annotations

from conftest import FakeGit

from hookflow.artifacts.cascade import CascadeService
from hookflow.orchestration.post_checkout import HOOK_ACTOR, PostCheckoutOrchestrator
from hookflow.platform.draft_pr import DraftPRService

HEAD = "abc1234"


def orchestrator(store, git, **kwargs) -> PostCheckoutOrchestrator:
    kwargs.setdefault("cascade", CascadeService(store))
    return PostCheckoutOrchestrator(store, git, **kwargs)


def test_new_branch_transitions_and_cascades(write_artifact, store, fake_git):
    write_artifact("A", "draft", "ready")
    write_artifact("A.1", "draft", "ready")
    write_artifact("A.1.2", "draft", "ready")
    fake_git.branch = "A.1.2"

    result = orchestrator(store, fake_git).execute(HEAD, HEAD, 1)

    assert result.success is True
    assert result.is_new_branch is True
    assert result.artifact_ids == ["A.1.2"]
    assert result.artifacts_transitioned == ["A.1.2"]
    assert result.parents_cascaded == ["A.1", "A"]
    assert result.errors == []
    assert result.warnings == []

    event = store.get_artifact("A.1.2").events[-1]
    assert event.event == "in_progress"
    assert event.trigger == "branch_created"
    assert event.actor == "Jane Dev (jane@example.com)"
    assert store.get_artifact("A").events[-1].actor == HOOK_ACTOR


def test_parents_are_deduplicated_across_artifacts(write_artifact, store, fake_git):
    write_artifact("A", "ready")
    write_artifact("A.1", "ready")
    write_artifact("A.1.1", "ready")
    write_artifact("A.1.2", "ready")
    fake_git.branch = "feature/A.1.1-A.1.2"

    result = orchestrator(store, fake_git).execute(HEAD, "def5678", 1)

    assert result.is_new_branch is False
    assert result.artifacts_transitioned == ["A.1.1", "A.1.2"]
    assert result.parents_cascaded == ["A.1", "A"]


def test_file_checkout_is_ignored(store, fake_git):
    result = orchestrator(store, fake_git).execute(HEAD, HEAD, 0)
    assert result.success is False
    assert result.reason == "File checkout (not branch)"


def test_branch_without_ids_declines(store, fake_git):
    fake_git.branch = "main"
    result = orchestrator(store, fake_git).execute(HEAD, HEAD, 1)
    assert result.success is False
    assert result.reason == "No artifact IDs found in branch name"


def test_unknown_ids_refuse_to_run(write_artifact, store, fake_git):
    write_artifact("A.1.2", "ready")
    fake_git.branch = "A.1.2-B.9-C.4"

    result = orchestrator(store, fake_git).execute(HEAD, HEAD, 1)

    assert result.success is False
    assert result.reason == "Unknown artifact IDs in branch name: B.9, C.4"
    assert result.artifacts_transitioned == []
    assert store.get_artifact("A.1.2").state == "ready"


def test_already_in_progress_is_skipped(write_artifact, store, fake_git):
    write_artifact("A.1.2", "ready", "in_progress")
    fake_git.branch = "A.1.2"

    result = orchestrator(store, fake_git).execute(HEAD, HEAD, 1)

    assert result.success is True
    assert result.artifacts_transitioned == []
    assert result.errors == []
    assert len(store.get_artifact("A.1.2").events) == 2


def test_invalid_state_is_collected_as_error(write_artifact, store, fake_git):
    write_artifact("A.1.2", "completed")
    write_artifact("A.1.3", "draft")
    fake_git.branch = "A.1.2-A.1.3"

    result = orchestrator(store, fake_git, enable_cascade=False).execute(HEAD, HEAD, 1)

    assert result.success is True
    assert result.artifacts_transitioned == ["A.1.3"]
    assert result.errors == ["Failed to transition A.1.2: Cannot transition A.1.2 from completed to in_progress"]


def test_cascade_failure_is_a_warning(write_artifact, store, fake_git, fake_cascade):
    write_artifact("A.1.2", "ready")
    fake_git.branch = "A.1.2"
    fake_cascade.fail.add(("progress", "A.1.2"))

    result = orchestrator(store, fake_git, cascade=fake_cascade).execute(HEAD, HEAD, 1)

    assert result.success is True
    assert result.artifacts_transitioned == ["A.1.2"]
    assert result.warnings == ["Cascade failed for A.1.2: progress cascade exploded for A.1.2"]


def test_cascade_disabled(write_artifact, store, fake_git, fake_cascade):
    write_artifact("A.1.2", "ready")
    fake_git.branch = "A.1.2"

    result = orchestrator(store, fake_git, cascade=fake_cascade, enable_cascade=False).execute(HEAD, HEAD, 1)

    assert result.artifacts_transitioned == ["A.1.2"]
    assert fake_cascade.calls == []


def test_git_actor_falls_back_to_hook_actor(write_artifact, store):
    write_artifact("A.1.2", "ready")
    git = FakeGit(branch="A.1.2")

    orchestrator(store, git, enable_cascade=False).execute(HEAD, HEAD, 1)

    assert store.get_artifact("A.1.2").events[-1].actor == HOOK_ACTOR


def test_draft_pr_is_created(write_artifact, store, fake_git, fake_platform):
    write_artifact("A.1.2", "ready", title="Login form", content={"summary": "Build it"})
    fake_git.branch = "A.1.2"
    service = DraftPRService(fake_platform, store, enabled=True)

    result = orchestrator(store, fake_git, draft_pr_service=service, base_branch="develop").execute(HEAD, HEAD, 1)

    assert result.pr_url == "https://github.com/acme/repo/pull/100"
    [options] = fake_platform.created
    assert options.draft is True
    assert options.branch == "A.1.2"
    assert options.base_branch == "develop"
    assert options.title == "[A.1.2] Login form"


def test_draft_pr_failure_is_a_warning(write_artifact, store, fake_git, fake_platform):
    write_artifact("A.1.2", "ready")
    fake_git.branch = "A.1.2"
    fake_platform.fail.add("create_pr")
    service = DraftPRService(fake_platform, store, enabled=True)

    result = orchestrator(store, fake_git, draft_pr_service=service).execute(HEAD, HEAD, 1)

    assert result.success is True
    assert result.pr_url is None
    assert result.warnings == ["PR creation failed: create_pr failed"]


def test_git_failure_declines_with_reason(store, fake_git):
    fake_git.fail.add("current_branch")
    result = orchestrator(store, fake_git).execute(HEAD, HEAD, 1)
    assert result.success is False
    assert result.reason.startswith("Error detecting checkout:")


def test_only_requested_ids_are_processed(write_artifact, store, fake_git):
    write_artifact("A", "ready", "in_progress")
    write_artifact("B", "ready", "in_progress")
    write_artifact("A.1", "ready", "in_progress", "completed")
    write_artifact("B.1", "draft", "ready")
    fake_git.branch = "feature/A.1-B.1"

    result = orchestrator(store, fake_git).execute(HEAD, HEAD, 1, artifact_ids=["B.1"])

    assert result.success is True
    assert result.artifact_ids == ["B.1"]
    assert result.artifacts_transitioned == ["B.1"]
    assert result.errors == []
    assert store.get_artifact("A.1").state == "completed"


def test_no_requested_ids_left(write_artifact, store, fake_git):
    write_artifact("A.1", "ready")
    fake_git.branch = "A.1"

    result = orchestrator(store, fake_git).execute(HEAD, HEAD, 1, artifact_ids=[])

    assert result.success is False
    assert result.reason == "No artifacts left to process"
    assert store.get_artifact("A.1").state == "ready"
