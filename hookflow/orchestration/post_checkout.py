"""
Post-checkout orchestration.

On a branch checkout: extract artifact ids from the branch name, refuse to
run when any id is unknown, move draft/ready artifacts to in_progress,
cascade in_progress up the parent chain and optionally open a draft PR.

Individual transition, cascade and PR failures are collected into
``errors`` / ``warnings`` and never flip ``success``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from ..artifacts.cascade import CascadeRunner
from ..artifacts.events import DRAFT, IN_PROGRESS, READY, TRIGGER_BRANCH_CREATED, create_event
from ..artifacts.store import ArtifactStore
from ..git import GitClient
from ..hooks.detection import PostCheckoutDetector
from ..hooks.validation import BranchValidator
from ..platform.draft_pr import DraftPRService

logger = logging.getLogger(__name__)

HOOK_ACTOR = "Git Hook (hook@post-checkout)"


@dataclass
class PostCheckoutResult:
    success: bool
    reason: str | None = None
    branch_name: str | None = None
    artifact_ids: list[str] = field(default_factory=list)
    is_new_branch: bool = False
    artifacts_transitioned: list[str] = field(default_factory=list)
    parents_cascaded: list[str] = field(default_factory=list)
    pr_url: str | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "reason": self.reason,
            "branchName": self.branch_name,
            "artifactIds": list(self.artifact_ids),
            "isNewBranch": self.is_new_branch,
            "artifactsTransitioned": list(self.artifacts_transitioned),
            "parentsCascaded": list(self.parents_cascaded),
            "prUrl": self.pr_url,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


class TransitionError(Exception):
    """Artifact is in a state that cannot move to in_progress."""


class PostCheckoutOrchestrator:
    """
    Args:
        store: Artifact store
        git: Git client for the checked-out repository
        cascade: Cascade runner for the progress cascade
        validator: Branch validator (defaults to one over ``store``)
        draft_pr_service: Draft PR service; None disables draft PRs
        enable_cascade: Run the progress cascade after transitions
        base_branch: Base branch for draft PRs
    """

    def __init__(
        self,
        store: ArtifactStore,
        git: GitClient,
        cascade: CascadeRunner,
        validator: BranchValidator | None = None,
        draft_pr_service: DraftPRService | None = None,
        enable_cascade: bool = True,
        base_branch: str = "main",
    ):
        self.store = store
        self.git = git
        self.cascade = cascade
        self.detector = PostCheckoutDetector(git)
        self.validator = validator or BranchValidator(store)
        self.draft_pr_service = draft_pr_service
        self.enable_cascade = enable_cascade
        self.base_branch = base_branch

    def execute(
        self,
        previous_head: str,
        new_head: str,
        branch_flag: int,
        artifact_ids: list[str] | None = None,
    ) -> PostCheckoutResult:
        """
        Handle one checkout.

        Args:
            previous_head: Ref of the previous HEAD
            new_head: Ref of the new HEAD
            branch_flag: 1 for a branch checkout, 0 for a file checkout
            artifact_ids: Act only on these of the branch's ids (all of them when None)
        """
        errors: list[str] = []
        warnings: list[str] = []

        try:
            detection = self.detector.detect_checkout(previous_head, new_head, branch_flag)
            if not detection.should_execute or detection.metadata is None:
                return PostCheckoutResult(success=False, reason=detection.reason)

            meta = detection.metadata
            validation = self.validator.validate_ids(meta.artifact_ids)
            if not validation.all_valid:
                return PostCheckoutResult(
                    success=False,
                    reason=f"Unknown artifact IDs in branch name: {', '.join(validation.invalid_artifact_ids)}",
                    branch_name=meta.branch_name,
                    artifact_ids=list(meta.artifact_ids),
                    is_new_branch=meta.is_new_branch,
                )

            targets = [aid for aid in meta.artifact_ids if artifact_ids is None or aid in artifact_ids]
            if not targets:
                return PostCheckoutResult(
                    success=False,
                    reason="No artifacts left to process",
                    branch_name=meta.branch_name,
                    is_new_branch=meta.is_new_branch,
                )

            result = PostCheckoutResult(
                success=True,
                reason=detection.reason,
                branch_name=meta.branch_name,
                artifact_ids=targets,
                is_new_branch=meta.is_new_branch,
                errors=errors,
                warnings=warnings,
            )

            for artifact_id in targets:
                try:
                    if self.transition_to_in_progress(artifact_id):
                        result.artifacts_transitioned.append(artifact_id)
                except Exception as e:
                    message = f"Failed to transition {artifact_id}: {e}"
                    errors.append(message)
                    logger.error(message)

            if self.enable_cascade:
                self._run_progress_cascades(result)

            if self.draft_pr_service is not None:
                self._create_draft_pr(result)

            return result

        except Exception as e:
            message = f"Orchestration failed: {e}"
            errors.append(message)
            logger.error(message)
            return PostCheckoutResult(success=False, reason=message, errors=errors, warnings=warnings)

    def transition_to_in_progress(self, artifact_id: str) -> bool:
        """
        Append an in_progress event to a draft/ready artifact.

        Returns:
            True when the artifact was transitioned, False when it already was in_progress

        Raises:
            TransitionError: If the artifact is in any other state
        """
        state = self.store.get_artifact(artifact_id).state
        if state == IN_PROGRESS:
            logger.info("Artifact %s already in_progress, skipping transition", artifact_id)
            return False
        if state not in (DRAFT, READY):
            raise TransitionError(f"Cannot transition {artifact_id} from {state} to in_progress")

        event = create_event(IN_PROGRESS, actor=self.git_actor(), trigger=TRIGGER_BRANCH_CREATED)
        self.store.append_event(artifact_id, event)
        logger.info("Artifact %s transitioned to in_progress", artifact_id)
        return True

    def git_actor(self) -> str:
        """``"Name (email)"`` from git config, or the hook actor when either is unset."""
        name = self.git.config_value("user.name")
        email = self.git.config_value("user.email")
        if not name or not email:
            return HOOK_ACTOR
        return f"{name} ({email})"

    def _run_progress_cascades(self, result: PostCheckoutResult) -> None:
        for artifact_id in result.artifacts_transitioned:
            try:
                cascade = self.cascade.execute_progress_cascade(
                    artifact_id, trigger=TRIGGER_BRANCH_CREATED, actor=HOOK_ACTOR
                )
            except Exception as e:
                message = f"Cascade failed for {artifact_id}: {e}"
                result.warnings.append(message)
                logger.warning(message)
                continue

            for event in cascade.events:
                if event.event == IN_PROGRESS and event.artifact_id not in result.parents_cascaded:
                    result.parents_cascaded.append(event.artifact_id)
            if cascade.updated_artifacts:
                logger.info("Progress cascade: %s -> %s", artifact_id, ", ".join(cascade.updated_artifacts))

    def _create_draft_pr(self, result: PostCheckoutResult) -> None:
        try:
            pr = self.draft_pr_service.create_draft_pr(
                result.artifact_ids[0], result.branch_name, base_branch=self.base_branch
            )
        except Exception as e:
            pr_error = str(e)
        else:
            if pr.error is None:
                result.pr_url = pr.pr_url
                if pr.created:
                    logger.info("Draft PR created: %s", pr.pr_url)
                return
            pr_error = pr.error

        message = f"PR creation failed: {pr_error}"
        result.warnings.append(message)
        logger.warning(message)
