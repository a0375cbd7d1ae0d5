"""Draft pull requests for freshly checked-out artifact branches."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..artifacts.store import ArtifactStore
from ..errors import HookflowError
from .adapter import GitPlatformAdapter, PRCreateOptions

logger = logging.getLogger(__name__)

FOOTER = "*This draft PR was created automatically.*"


@dataclass
class DraftPRResult:
    created: bool
    reason: str
    pr_number: int | None = None
    pr_url: str | None = None
    error: str | None = None


def _as_list(value) -> list[str]:
    if value is None:
        return []
    if isinstance(value, list):
        return [str(v) for v in value]
    return [str(value)]


class DraftPRService:
    """
    Open a draft PR for a branch, titled and described from artifact metadata.

    Args:
        adapter: Platform adapter used to create the PR
        store: Artifact store to read titles and criteria from
        enabled: Draft PR creation is opt-in
    """

    def __init__(self, adapter: GitPlatformAdapter, store: ArtifactStore, enabled: bool = False):
        self.adapter = adapter
        self.store = store
        self.enabled = enabled

    def create_draft_pr(self, artifact_id: str, branch_name: str, base_branch: str = "main") -> DraftPRResult:
        if not self.enabled:
            return DraftPRResult(created=False, reason="Draft PR creation is disabled")

        try:
            existing = self.adapter.find_pr_for_branch(branch_name)
            if existing is not None:
                return DraftPRResult(
                    created=False,
                    reason=f"PR already exists: #{existing.number}",
                    pr_number=existing.number,
                    pr_url=existing.url,
                )

            title, body = self.build_pr_content(artifact_id)
            pr = self.adapter.create_draft_pr(
                PRCreateOptions(title=title, body=body, branch=branch_name, base_branch=base_branch, draft=True)
            )
        except HookflowError as e:
            return DraftPRResult(created=False, reason=f"Failed to create draft PR: {e}", error=str(e))

        return DraftPRResult(
            created=True,
            reason="Draft PR created successfully",
            pr_number=pr.number,
            pr_url=pr.url,
        )

    def build_pr_content(self, artifact_id: str) -> tuple[str, str]:
        """Return (title, body); falls back to a generic title when the artifact cannot be read."""
        try:
            record = self.store.get_artifact(artifact_id)
        except HookflowError as e:
            logger.debug("Falling back to generic draft PR content for %s: %s", artifact_id, e)
            return (
                f"[{artifact_id}] Work in progress",
                f"Automated draft PR for artifact {artifact_id}.\n\n{FOOTER}",
            )

        content = record.content
        # Issues and milestones carry a summary; initiatives a vision
        if "summary" in content:
            summary = content.get("summary")
            criteria = _as_list(content.get("acceptance_criteria", content.get("validation")))
        else:
            summary = content.get("vision")
            criteria = _as_list(content.get("success_criteria"))

        parts: list[str] = []
        if summary:
            parts += ["## Summary\n", str(summary), "\n"]
        if criteria:
            parts.append("## Acceptance Criteria\n")
            parts += [f"- [ ] {c}" for c in criteria]
            parts.append("\n")
        parts += ["---", f"\n{FOOTER}"]

        return f"[{artifact_id}] {record.title}", "\n".join(parts)
