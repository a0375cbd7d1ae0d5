"""Tests for the YAML artifact store, event helpers and dependency graph."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from hookflow.artifacts.events import (
    ArtifactEvent,
    ancestor_ids,
    create_event,
    current_state,
    extract_artifact_ids,
    is_direct_child,
    parent_id,
)
from hookflow.artifacts.graph import DependencyGraphService
from hookflow.artifacts.store import YamlArtifactStore, artifact_id_from_path
from hookflow.errors import ArtifactNotFoundError, ArtifactStoreError


# -----------------------------------------------------------------------------
# Identifier helpers
# -----------------------------------------------------------------------------


def test_parent_and_ancestors():
    assert parent_id("A.1.2") == "A.1"
    assert parent_id("A") is None
    assert ancestor_ids("A.1.2") == ["A.1", "A"]
    assert ancestor_ids("A") == []


def test_direct_child_is_exactly_one_segment_deeper():
    assert is_direct_child("A.1", "A.1.2")
    assert not is_direct_child("A.1", "A.1.2.3")
    assert not is_direct_child("A.1", "A.10")
    assert not is_direct_child("A.1", "A.1")


def test_extract_artifact_ids_from_branch_and_pr_text():
    assert extract_artifact_ids("A.1.2") == ["A.1.2"]
    assert extract_artifact_ids("feature/B.3-and-A.1.2", "Implements A.1.2", None) == ["A.1.2", "B.3"]
    assert extract_artifact_ids("main") == []
    assert extract_artifact_ids("AB.1.2") == []


def test_artifact_id_from_path():
    assert artifact_id_from_path(Path("A.1.2.yml")) == "A.1.2"
    assert artifact_id_from_path(Path("A.1.2.login-form.yml")) == "A.1.2"
    assert artifact_id_from_path(Path("README.yml")) is None
    assert artifact_id_from_path(Path("A.1x.yml")) is None


def test_current_state_ignores_hook_records():
    events = [
        create_event("draft", actor="x", trigger="artifact_created"),
        create_event("ready", actor="x", trigger="dependencies_met"),
        create_event("hook_executed", actor="x", trigger="hook_completed", metadata={"hook": "post-merge"}),
    ]
    assert current_state(events) == "ready"
    assert current_state([]) is None


def test_event_round_trip():
    event = create_event("in_progress", actor="Jane", trigger="branch_created", metadata={"k": 1})
    again = ArtifactEvent.from_dict(event.to_dict())
    assert again == event
    assert event.timestamp.endswith("Z")


def test_event_requires_name():
    with pytest.raises(ValueError):
        ArtifactEvent(event="", timestamp="2026-01-01T00:00:00Z", actor="x", trigger="y")


# -----------------------------------------------------------------------------
# Store
# -----------------------------------------------------------------------------


def test_store_reads_nested_tree(artifacts_dir, store):
    nested = artifacts_dir / "A.auth" / "A.1.login"
    nested.mkdir(parents=True)
    (nested / "A.1.2.form.yml").write_text(
        yaml.safe_dump({"metadata": {"title": "Login form", "events": []}}), encoding="utf-8"
    )
    (artifacts_dir / "notes.txt").write_text("ignored", encoding="utf-8")

    assert store.ids() == ["A.1.2"]
    record = store.get_artifact("A.1.2")
    assert record.title == "Login form"
    assert record.state is None


def test_store_orders_ids_numerically(write_artifact, store):
    for artifact_id in ("A.10", "A.2", "A", "A.1"):
        write_artifact(artifact_id)
    assert store.ids() == ["A", "A.1", "A.2", "A.10"]


def test_missing_artifact_raises(store):
    with pytest.raises(ArtifactNotFoundError, match="Artifact A.9 not found"):
        store.get_artifact("A.9")


def test_invalid_yaml_raises_store_error(artifacts_dir, store):
    (artifacts_dir / "A.1.yml").write_text("metadata: [unclosed", encoding="utf-8")
    with pytest.raises(ArtifactStoreError):
        store.get_artifact("A.1")


def test_append_event_persists(write_artifact, store):
    path = write_artifact("A.1", "draft", "ready", blocked_by=["A.0"])
    store.append_event("A.1", create_event("in_progress", actor="Jane", trigger="branch_created"))

    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert [e["event"] for e in data["metadata"]["events"]] == ["draft", "ready", "in_progress"]
    assert data["metadata"]["relationships"]["blocked_by"] == ["A.0"]
    assert YamlArtifactStore(path.parent).get_artifact("A.1").state == "in_progress"


def test_clear_cache_picks_up_new_files(write_artifact, store):
    write_artifact("A.1")
    assert store.ids() == ["A.1"]
    write_artifact("A.2")
    assert store.ids() == ["A.1"]
    store.clear_cache()
    assert store.ids() == ["A.1", "A.2"]


# -----------------------------------------------------------------------------
# Graph
# -----------------------------------------------------------------------------


def test_graph_lookups(auth_tree, store):
    graph = DependencyGraphService(store)

    assert [r.id for r in graph.get_dependencies("A.1.4")] == ["A.1.2", "A.1.1"]
    assert [r.id for r in graph.get_blocked_artifacts("A.1.2")] == ["A.1.3", "A.1.4"]
    assert [r.id for r in graph.get_children("A.1")] == ["A.1.1", "A.1.2", "A.1.3", "A.1.4"]
    assert [r.id for r in graph.get_children("A")] == ["A.1", "A.2"]
    assert graph.get("Z.1") is None
    assert graph.get_dependencies("Z.1") == []


def test_graph_ignores_dangling_dependencies(write_artifact, store):
    write_artifact("A.1", blocked_by=["A.9"])
    graph = DependencyGraphService(store)
    assert graph.get_dependencies("A.1") == []
    assert [r.id for r in graph.get_blocked_artifacts("A.9")] == ["A.1"]


def test_graph_clear_cache(write_artifact, store):
    write_artifact("A.1")
    graph = DependencyGraphService(store)
    assert [r.id for r in graph.get_children("A")] == ["A.1"]
    write_artifact("A.2", blocked_by=["A.1"])
    assert graph.get_blocked_artifacts("A.1") == []
    graph.clear_cache()
    assert [r.id for r in graph.get_blocked_artifacts("A.1")] == ["A.2"]
