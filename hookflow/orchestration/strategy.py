"""
Apply post-merge cascade results to the repository.

Strategies:

- ``manual``: print the summary, change nothing
- ``direct_commit``: commit the artifact changes on the current branch,
  optionally pushing
- ``cascade_pr``: commit on a fresh branch, open a PR and optionally merge it
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from rich.console import Console

from ..config import PostMergeConfig
from ..errors import GitError, HookflowError, PlatformError
from ..git import GitClient
from ..platform.adapter import GitPlatformAdapter, PRCreateOptions
from .post_merge import OrchestrationResult

logger = logging.getLogger(__name__)

DEFAULT_ACTOR = "Hookflow GitOps"
PR_FOOTER = "*This PR was automatically created by hookflow.*"

_PR_NUMBER = re.compile(r"#(\d+)")


@dataclass
class CommitInfo:
    sha: str
    message: str
    pushed: bool

    def to_dict(self) -> dict[str, Any]:
        return {"sha": self.sha, "message": self.message, "pushed": self.pushed}


@dataclass
class CascadePRInfo:
    number: int
    url: str
    auto_merged: bool

    def to_dict(self) -> dict[str, Any]:
        return {"number": self.number, "url": self.url, "autoMerged": self.auto_merged}


@dataclass
class StrategyResult:
    strategy: str
    success: bool
    message: str
    error: str | None = None
    commit_info: CommitInfo | None = None
    pr_info: CascadePRInfo | None = None
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "strategy": self.strategy,
            "success": self.success,
            "message": self.message,
            "error": self.error,
            "commitInfo": self.commit_info.to_dict() if self.commit_info else None,
            "prInfo": self.pr_info.to_dict() if self.pr_info else None,
            "warnings": list(self.warnings),
        }


class StrategyExecutor:
    """
    Args:
        git: Git client for the repository holding the artifacts
        platform: Adapter used by ``cascade_pr``; None makes that strategy fail
        config: ``post_merge`` section of the hookflow config
        artifacts_dir: Path (relative to the git root) staged for commits
        console: Console for the manual strategy's output
    """

    def __init__(
        self,
        git: GitClient,
        platform: GitPlatformAdapter | None = None,
        config: PostMergeConfig | None = None,
        artifacts_dir: str = ".hookflow/artifacts",
        console: Console | None = None,
    ):
        self.git = git
        self.platform = platform
        self.config = config or PostMergeConfig()
        self.artifacts_dir = artifacts_dir
        self.console = console or Console()
        self._strategies: dict[str, Callable[[OrchestrationResult, str], StrategyResult]] = {
            "manual": self._manual,
            "direct_commit": self._direct_commit,
            "cascade_pr": self._cascade_pr,
        }

    def execute(self, strategy: str, result: OrchestrationResult, actor: str = DEFAULT_ACTOR) -> StrategyResult:
        if result.total_artifacts_updated + result.total_events_added == 0:
            return StrategyResult(strategy, True, "No cascade changes to apply")

        handler = self._strategies.get(strategy)
        if handler is None:
            return StrategyResult(
                strategy,
                False,
                f"Unknown strategy: {strategy}",
                error=f"Strategy '{strategy}' is not supported",
            )

        try:
            return handler(result, actor)
        except Exception as e:
            return StrategyResult(strategy, False, f"Strategy execution failed: {e}", error=str(e))

    # -------------------------------------------------------------------------
    # Strategies
    # -------------------------------------------------------------------------

    def _manual(self, result: OrchestrationResult, actor: str) -> StrategyResult:
        self.console.print()
        self.console.print("[bold]=== Manual Cascade Updates ===[/bold]")
        self.console.print(result.summary, markup=False, highlight=False)
        self.console.print()
        self.console.print(f"Review and commit the changes under {self.artifacts_dir} to apply them.")
        self.console.print("[bold]==============================[/bold]")
        self.console.print()
        return StrategyResult("manual", True, "Cascade updates logged. Manual action required.")

    def _direct_commit(self, result: OrchestrationResult, actor: str) -> StrategyResult:
        cfg = self.config.direct_commit
        message = f"{cfg.commit_prefix} cascade: post-merge updates"
        try:
            sha = self._commit(message, actor)
            pushed = False
            if cfg.push_immediately:
                self.git.push()
                pushed = True
        except GitError as e:
            return StrategyResult(
                "direct_commit", False, f"Failed to commit cascade updates: {e}", error=str(e)
            )

        short = sha[:7]
        text = f"Cascade updates committed and pushed ({short})" if pushed else f"Cascade updates committed ({short})"
        return StrategyResult(
            "direct_commit", True, text, commit_info=CommitInfo(sha=sha, message=message, pushed=pushed)
        )

    def _cascade_pr(self, result: OrchestrationResult, actor: str) -> StrategyResult:
        cfg = self.config.cascade_pr
        warnings: list[str] = []
        try:
            if self.platform is None:
                raise PlatformError("No git platform adapter configured")

            pr_number = self.source_pr_number(result)
            branch = f"{cfg.branch_prefix}{pr_number}"
            self.git.checkout_new_branch(branch)
            self._commit(f"cascade: updates from merged PR #{pr_number}", actor)
            self.git.push(branch, set_upstream=True)

            pr = self.platform.create_pr(
                PRCreateOptions(
                    title=f"[Automated] Cascade updates from PR #{pr_number}",
                    branch=branch,
                    body=cascade_report(result, pr_number),
                    base_branch=self.config.target_branch,
                    labels=list(cfg.labels),
                )
            )
        except HookflowError as e:
            return StrategyResult("cascade_pr", False, f"Failed to create cascade PR: {e}", error=str(e))

        auto_merged = False
        if cfg.auto_merge:
            try:
                if cfg.require_checks:
                    self.platform.enable_auto_merge(pr.number, delete_branch=True)
                else:
                    self.platform.merge_pr(pr.number, delete_branch=True)
                    auto_merged = True
            except HookflowError as e:
                warnings.append(f"Auto-merge failed: {e}")
                logger.warning("Auto-merge failed for PR #%s: %s", pr.number, e)

        if auto_merged:
            message = f"Created and auto-merged cascade PR #{pr.number}"
        elif cfg.auto_merge and cfg.require_checks and not warnings:
            message = f"Created cascade PR #{pr.number} (auto-merge pending checks)"
        else:
            message = f"Created cascade PR #{pr.number}"

        return StrategyResult(
            "cascade_pr",
            True,
            message,
            pr_info=CascadePRInfo(number=pr.number, url=pr.url or f"PR #{pr.number}", auto_merged=auto_merged),
            warnings=warnings,
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _commit(self, message: str, actor: str) -> str:
        self.git.add(self.artifacts_dir)
        return self.git.commit(f"{message}\n\nCascade-Actor: {actor}")

    def source_pr_number(self, result: OrchestrationResult) -> int:
        """
        Number of the merged PR: merge metadata first, then ``#N`` in the last
        commit message, then a time-derived fallback.
        """
        if result.merge_metadata.pr_number is not None:
            return result.merge_metadata.pr_number
        try:
            match = _PR_NUMBER.search(self.git.last_commit_message())
        except GitError:
            match = None
        if match:
            return int(match.group(1))
        return int(time.time() * 1000) % 100000


def cascade_report(result: OrchestrationResult, pr_number: int) -> str:
    """Markdown PR body listing merged artifacts and every cascade event."""
    lines = [f"## Cascade Updates from PR #{pr_number}", ""]

    merged = result.merge_metadata.artifact_ids
    if merged:
        lines.append("### Merged Artifacts")
        lines.extend(f"- ✅ {artifact_id} → completed" for artifact_id in merged)
        lines.append("")

    if result.completion_cascade.events:
        lines.append("### Completion Cascade")
        lines.extend(f"- 📊 {e.artifact_id} → {e.event}" for e in result.completion_cascade.events)
        lines.append("")

    if result.readiness_cascade.events:
        lines.append("### Readiness Cascade")
        lines.extend(f"- ✅ {e.artifact_id} → {e.event}" for e in result.readiness_cascade.events)
        lines.append("")

    lines += [
        "### Summary",
        f"- **Artifacts Updated:** {result.total_artifacts_updated}",
        f"- **Events Added:** {result.total_events_added}",
        "",
        "---",
        "",
        PR_FOOTER,
    ]
    return "\n".join(lines)
