"""Trigger detection for post-checkout and post-merge hooks.

Detectors read git state and decide whether a hook invocation is relevant
at all. They never raise: git failures become a declined result with an
"Error detecting ..." reason.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from ..artifacts.events import extract_artifact_ids
from ..errors import HookflowError
from ..git import GitClient
from ..platform.adapter import GitPlatformAdapter

logger = logging.getLogger(__name__)

_PR_NUMBER = re.compile(r"#(\d+)")


# -----------------------------------------------------------------------------
# Post-checkout
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class CheckoutMetadata:
    previous_head: str
    new_head: str
    branch_name: str
    is_new_branch: bool
    artifact_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class CheckoutDetectionResult:
    should_execute: bool
    reason: str
    metadata: CheckoutMetadata | None = None


class PostCheckoutDetector:
    def __init__(self, git: GitClient):
        self.git = git

    def detect_checkout(self, previous_head: str, new_head: str, branch_flag: int) -> CheckoutDetectionResult:
        """
        Decide whether a checkout should trigger orchestration.

        Args:
            previous_head: Ref of the previous HEAD
            new_head: Ref of the new HEAD
            branch_flag: 1 for a branch checkout, 0 for a file checkout

        Returns:
            CheckoutDetectionResult; ``metadata`` is set once the branch is known
        """
        if branch_flag != 1:
            return CheckoutDetectionResult(False, "File checkout (not branch)")

        try:
            branch_name = self.git.current_branch()
        except HookflowError as e:
            return CheckoutDetectionResult(False, f"Error detecting checkout: {e}")

        # A new branch points at the commit it was created from
        is_new_branch = previous_head == new_head
        artifact_ids = extract_artifact_ids(branch_name)
        metadata = CheckoutMetadata(
            previous_head=previous_head,
            new_head=new_head,
            branch_name=branch_name,
            is_new_branch=is_new_branch,
            artifact_ids=artifact_ids,
        )

        if not artifact_ids:
            return CheckoutDetectionResult(False, "No artifact IDs found in branch name", metadata)

        joined = ", ".join(artifact_ids)
        if is_new_branch:
            reason = f"New branch created with artifacts: {joined}"
        else:
            reason = f"Checked out existing branch with artifacts: {joined}"
        return CheckoutDetectionResult(True, reason, metadata)


# -----------------------------------------------------------------------------
# Post-merge
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class MergeMetadata:
    target_branch: str
    source_branch: str | None
    commit_sha: str
    pr_number: int | None = None
    pr_title: str | None = None
    pr_body: str | None = None
    is_pr_merge: bool = False
    artifact_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "targetBranch": self.target_branch,
            "sourceBranch": self.source_branch,
            "commitSha": self.commit_sha,
            "prNumber": self.pr_number,
            "prTitle": self.pr_title,
            "prBody": self.pr_body,
            "isPRMerge": self.is_pr_merge,
            "artifactIds": list(self.artifact_ids),
        }


@dataclass(frozen=True)
class MergeDetectionResult:
    should_execute: bool
    reason: str
    metadata: MergeMetadata | None = None


class PostMergeDetector:
    """
    Detect PR merges into the target branch.

    Args:
        git: Git client for the repository
        platform: Adapter used to fetch PR title/body (optional)
        target_branch: Only merges into this branch trigger
        require_pr: Decline merges that did not come from a PR
    """

    def __init__(
        self,
        git: GitClient,
        platform: GitPlatformAdapter | None = None,
        target_branch: str = "main",
        require_pr: bool = True,
    ):
        self.git = git
        self.platform = platform
        self.target_branch = target_branch
        self.require_pr = require_pr

    def detect_merge(self, squash_merge: int | None = None) -> MergeDetectionResult:
        try:
            current = self.git.current_branch()
            if current != self.target_branch:
                return MergeDetectionResult(
                    False,
                    f"Not on target branch (current: {current}, target: {self.target_branch})",
                )
            metadata = self.extract_merge_metadata(current, squash_merge)
        except HookflowError as e:
            return MergeDetectionResult(False, f"Error detecting merge: {e}")

        if self.require_pr and not metadata.is_pr_merge:
            return MergeDetectionResult(False, "Direct commit to main (PR required by config)", metadata)

        if not metadata.artifact_ids:
            return MergeDetectionResult(False, "No artifact IDs found in branch name or PR metadata", metadata)

        return MergeDetectionResult(
            True,
            f"PR merge detected with artifacts: {', '.join(metadata.artifact_ids)}",
            metadata,
        )

    def extract_merge_metadata(self, target_branch: str, squash_merge: int | None = None) -> MergeMetadata:
        commit_sha = self.git.rev_parse("HEAD")
        source_branch = self.git.merge_source_branch()
        pr_number = self._pr_number()

        pr_title = pr_body = None
        if pr_number is not None:
            pr_title, pr_body = self._pr_text(pr_number)

        return MergeMetadata(
            target_branch=target_branch,
            source_branch=source_branch,
            commit_sha=commit_sha,
            pr_number=pr_number,
            pr_title=pr_title,
            pr_body=pr_body,
            is_pr_merge=pr_number is not None or squash_merge == 0,
            artifact_ids=extract_artifact_ids(source_branch, pr_title, pr_body),
        )

    def _pr_number(self) -> int | None:
        try:
            subject = self.git.last_commit_subject()
        except HookflowError:
            return None
        match = _PR_NUMBER.search(subject)
        return int(match.group(1)) if match else None

    def _pr_text(self, pr_number: int) -> tuple[str | None, str | None]:
        if self.platform is None:
            return None, None
        try:
            pr = self.platform.get_pr(pr_number)
        except HookflowError as e:
            logger.debug("Could not fetch PR #%s metadata: %s", pr_number, e)
            return None, None
        if pr is None:
            return None, None
        return pr.title or None, pr.body or None
