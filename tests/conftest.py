"""Pytest configuration and fixtures."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

import pytest
import yaml

from hookflow.artifacts.cascade import CascadeEvent, CascadeResult
from hookflow.artifacts.store import YamlArtifactStore
from hookflow.errors import GitError, PlatformError
from hookflow.platform.adapter import AuthStatus, PRCreateOptions, PRInfo

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


def state_events(*states: str) -> list[dict[str, Any]]:
    """Raw YAML event entries, one minute apart."""
    return [
        {
            "event": state,
            "timestamp": (BASE_TIME + timedelta(minutes=i)).isoformat().replace("+00:00", "Z"),
            "actor": "Test User (test@example.com)",
            "trigger": "artifact_created" if i == 0 else "manual",
        }
        for i, state in enumerate(states)
    ]


ArtifactWriter = Callable[..., Path]


@pytest.fixture
def artifacts_dir(tmp_path: Path) -> Path:
    path = tmp_path / ".hookflow" / "artifacts"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def write_artifact(artifacts_dir: Path) -> ArtifactWriter:
    """Write one artifact YAML file; returns its path."""

    def _write(
        artifact_id: str,
        *states: str,
        title: str | None = None,
        blocked_by: list[str] | None = None,
        blocks: list[str] | None = None,
        content: dict[str, Any] | None = None,
        slug: str | None = None,
    ) -> Path:
        metadata: dict[str, Any] = {"title": title or f"Artifact {artifact_id}"}
        if blocked_by or blocks:
            metadata["relationships"] = {"blocked_by": blocked_by or [], "blocks": blocks or []}
        metadata["events"] = state_events(*(states or ("draft",)))
        data: dict[str, Any] = {"metadata": metadata}
        if content:
            data["content"] = content

        name = f"{artifact_id}.{slug}.yml" if slug else f"{artifact_id}.yml"
        path = artifacts_dir / name
        path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def store(artifacts_dir: Path) -> YamlArtifactStore:
    return YamlArtifactStore(artifacts_dir)


@pytest.fixture
def auth_tree(write_artifact: ArtifactWriter) -> None:
    """
    A (in_progress)
    ├── A.1 (in_progress)
    │   ├── A.1.1 (completed)
    │   ├── A.1.2 (in_review)        blocks A.1.3 and A.1.4
    │   ├── A.1.3 (blocked)          blocked_by A.1.2
    │   └── A.1.4 (blocked)          blocked_by A.1.2, A.1.1
    └── A.2 (draft)
    """
    write_artifact("A", "draft", "in_progress", title="Authentication")
    write_artifact("A.1", "draft", "in_progress", title="Login milestone")
    write_artifact("A.1.1", "draft", "ready", "in_progress", "completed", title="Session model")
    write_artifact(
        "A.1.2", "draft", "ready", "in_progress", "in_review", title="Login form", blocks=["A.1.3", "A.1.4"]
    )
    write_artifact("A.1.3", "draft", "blocked", title="Remember me", blocked_by=["A.1.2"])
    write_artifact("A.1.4", "draft", "blocked", title="Password reset", blocked_by=["A.1.2", "A.1.1"])
    write_artifact("A.2", "draft", title="Signup milestone")


# -----------------------------------------------------------------------------
# Fakes
# -----------------------------------------------------------------------------


class FakeGit:
    """In-memory stand-in for GitClient. Commands listed in ``fail`` raise GitError."""

    def __init__(
        self,
        branch: str = "main",
        head: str = "abc1234def5678",
        config: dict[str, str] | None = None,
        message: str = "",
        source_branch: str | None = None,
    ):
        self.branch = branch
        self.head = head
        self.config = dict(config or {})
        self.message = message
        self.source_branch = source_branch
        self.staged: list[str] = []
        self.status: list[str] = []
        self.fail: set[str] = set()
        self.calls: list[tuple] = []

    def _check(self, name: str) -> None:
        if name in self.fail:
            raise GitError([name], 1, f"{name} refused")

    def current_branch(self) -> str:
        self._check("current_branch")
        return self.branch

    def rev_parse(self, ref: str = "HEAD") -> str:
        return self.head

    def config_value(self, key: str) -> str | None:
        return self.config.get(key)

    def last_commit_message(self) -> str:
        self._check("log")
        return self.message

    def last_commit_subject(self) -> str:
        self._check("log")
        return self.message.splitlines()[0] if self.message else ""

    def merge_source_branch(self) -> str | None:
        return self.source_branch

    def staged_files(self, path: str) -> list[str]:
        self._check("diff")
        return [f for f in self.staged if f.startswith(path)]

    def status_porcelain(self, path: str) -> list[str]:
        self._check("status")
        return [line for line in self.status if path in line]

    def checkout_new_branch(self, branch: str) -> None:
        self._check("checkout")
        self.calls.append(("checkout", branch))
        self.branch = branch

    def add(self, *paths: str) -> None:
        self._check("add")
        self.calls.append(("add", *paths))

    def commit(self, message: str) -> str:
        self._check("commit")
        self.calls.append(("commit", message))
        return self.head

    def push(self, branch: str | None = None, set_upstream: bool = False) -> None:
        self._check("push")
        self.calls.append(("push", branch, set_upstream))


class FakePlatform:
    """Records PR operations. Operation names in ``fail`` raise PlatformError."""

    platform = "github"

    def __init__(self, prs: dict[int, PRInfo] | None = None):
        self.prs: dict[int, PRInfo] = dict(prs or {})
        self.created: list[PRCreateOptions] = []
        self.merged: list[int] = []
        self.auto_merge: list[int] = []
        self.fail: set[str] = set()
        self.next_number = 100

    def _check(self, name: str) -> None:
        if name in self.fail:
            raise PlatformError(f"{name} failed")

    def create_pr(self, options: PRCreateOptions) -> PRInfo:
        self._check("create_pr")
        self.created.append(options)
        number = self.next_number
        self.next_number += 1
        pr = PRInfo(
            number=number,
            url=f"https://github.com/acme/repo/pull/{number}",
            title=options.title,
            body=options.body,
            is_draft=options.draft,
            source_branch=options.branch,
            target_branch=options.base_branch,
        )
        self.prs[number] = pr
        return pr

    def create_draft_pr(self, options: PRCreateOptions) -> PRInfo:
        return self.create_pr(replace(options, draft=True))

    def get_pr(self, pr: int | str) -> PRInfo | None:
        self._check("get_pr")
        return self.prs.get(int(pr))

    def find_pr_for_branch(self, branch: str) -> PRInfo | None:
        self._check("find_pr_for_branch")
        for pr in self.prs.values():
            if pr.source_branch == branch:
                return pr
        return None

    def merge_pr(self, number: int, method: str = "merge", delete_branch: bool = True) -> None:
        self._check("merge_pr")
        self.merged.append(number)

    def enable_auto_merge(self, number: int, method: str = "merge", delete_branch: bool = True) -> None:
        self._check("enable_auto_merge")
        self.auto_merge.append(number)

    def validate_auth(self) -> AuthStatus:
        return AuthStatus(authenticated=True, user="tester")


def cascade_result(*pairs: tuple[str, str], trigger: str = "pr_merged") -> CascadeResult:
    result = CascadeResult()
    for artifact_id, event in pairs:
        if artifact_id not in result.updated_artifacts:
            result.updated_artifacts.append(artifact_id)
        result.events.append(
            CascadeEvent(
                artifact_id=artifact_id,
                event=event,
                trigger=trigger,
                actor="System Cascade (cascade@post-merge)",
                timestamp="2026-01-01T00:00:00Z",
            )
        )
    return result


class FakeCascade:
    """
    Scripted cascade runner.

    ``results[(kind, artifact_id)]`` is returned for a call, an empty result
    otherwise; ``(kind, artifact_id)`` pairs in ``fail`` raise.
    """

    def __init__(self):
        self.results: dict[tuple[str, str], CascadeResult] = {}
        self.fail: set[tuple[str, str]] = set()
        self.calls: list[tuple[str, str, str, str]] = []

    def _run(self, kind: str, artifact_id: str, trigger: str, actor: str) -> CascadeResult:
        self.calls.append((kind, artifact_id, trigger, actor))
        if (kind, artifact_id) in self.fail:
            raise RuntimeError(f"{kind} cascade exploded for {artifact_id}")
        return self.results.get((kind, artifact_id), CascadeResult())

    def execute_progress_cascade(self, artifact_id: str, trigger: str, actor: str) -> CascadeResult:
        return self._run("progress", artifact_id, trigger, actor)

    def execute_completion_cascade(self, artifact_id: str, trigger: str, actor: str) -> CascadeResult:
        return self._run("completion", artifact_id, trigger, actor)

    def execute_readiness_cascade(self, artifact_id: str, trigger: str, actor: str) -> CascadeResult:
        return self._run("readiness", artifact_id, trigger, actor)


@pytest.fixture
def fake_git() -> FakeGit:
    return FakeGit(config={"user.name": "Jane Dev", "user.email": "jane@example.com"})


@pytest.fixture
def fake_platform() -> FakePlatform:
    return FakePlatform()


@pytest.fixture
def fake_cascade() -> FakeCascade:
    return FakeCascade()
