"""Artifact validation for git hooks.

BranchValidator checks the ids named in a branch against the store.
PreCommitValidator blocks commits whose staged artifacts are malformed or
point at missing, one-sided or circular dependencies. PrePushValidator only
warns: uncommitted artifact changes and branch artifacts still in draft or
blocked.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..artifacts.events import ARTIFACT_ID_PATTERN, BLOCKED, DRAFT, extract_artifact_ids
from ..artifacts.store import ARTIFACT_SUFFIXES, ArtifactRecord, ArtifactStore, artifact_id_from_path
from ..errors import ArtifactStoreError, GitError
from ..git import GitClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BranchValidationResult:
    valid_artifact_ids: list[str] = field(default_factory=list)
    invalid_artifact_ids: list[str] = field(default_factory=list)

    @property
    def all_valid(self) -> bool:
        return not self.invalid_artifact_ids


class BranchValidator:
    """Partition artifact ids found in a branch name into known and unknown ones."""

    def __init__(self, store: ArtifactStore):
        self.store = store
        self._known: set[str] | None = None

    def clear_cache(self) -> None:
        self._known = None

    def _known_ids(self) -> set[str]:
        if self._known is None:
            self._known = set(self.store.ids())
        return self._known

    def extract_artifact_id(self, branch_name: str) -> str | None:
        """First artifact id in the branch name (the primary one), or None."""
        match = ARTIFACT_ID_PATTERN.search(branch_name)
        return match.group(0) if match else None

    def extract_artifact_ids(self, branch_name: str) -> list[str]:
        return extract_artifact_ids(branch_name)

    def validate_artifact_exists(self, artifact_id: str) -> bool:
        return artifact_id in self._known_ids()

    def validate_ids(self, artifact_ids: list[str]) -> BranchValidationResult:
        valid = [i for i in artifact_ids if self.validate_artifact_exists(i)]
        invalid = [i for i in artifact_ids if not self.validate_artifact_exists(i)]
        return BranchValidationResult(valid, invalid)

    def validate_branch(self, branch_name: str) -> BranchValidationResult:
        """A branch without artifact ids validates trivially."""
        return self.validate_ids(self.extract_artifact_ids(branch_name))

    def load_artifact(self, artifact_id: str) -> ArtifactRecord:
        """Load an artifact. Raises ArtifactNotFoundError when unknown."""
        return self.store.get_artifact(artifact_id)


# -----------------------------------------------------------------------------
# pre-commit
# -----------------------------------------------------------------------------

INVALID_SCHEMA = "INVALID_SCHEMA"
ORPHANED_DEPENDENCY = "ORPHANED_DEPENDENCY"
RELATIONSHIP_INCONSISTENCY = "RELATIONSHIP_INCONSISTENCY"
CIRCULAR_DEPENDENCY = "CIRCULAR_DEPENDENCY"


@dataclass(frozen=True)
class PreCommitError:
    type: str
    message: str
    artifact_id: str
    field: str | None = None
    suggested_fix: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"type": self.type, "message": self.message, "artifactId": self.artifact_id}
        if self.field is not None:
            d["field"] = self.field
        if self.suggested_fix is not None:
            d["suggestedFix"] = self.suggested_fix
        return d


@dataclass
class PreCommitResult:
    errors: list[PreCommitError] = field(default_factory=list)
    artifacts_validated: int = 0

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
            "artifactsValidated": self.artifacts_validated,
        }


def _schema_problem(record: ArtifactRecord) -> tuple[str, str] | None:
    """(field, message) for the first structural problem, None when the document is usable."""
    metadata = record.data.get("metadata")
    if not isinstance(metadata, dict):
        return "metadata", "metadata must be a mapping"
    if not isinstance(metadata.get("events"), list):
        return "metadata.events", "metadata.events must be a list"
    if record.state is None:
        return "metadata.events", "No lifecycle state event found"
    relationships = metadata.get("relationships")
    if relationships is None:
        return None
    if not isinstance(relationships, dict):
        return "metadata.relationships", "metadata.relationships must be a mapping"
    for key in ("blocked_by", "blocks"):
        value = relationships.get(key)
        if value is not None and not isinstance(value, list):
            return f"metadata.relationships.{key}", f"metadata.relationships.{key} must be a list"
    return None


class PreCommitValidator:
    """
    Block commits that stage invalid artifacts.

    Only staged artifact files are validated; the rest of the tree is used
    to resolve their dependencies.

    Args:
        store: Artifact store (read after staging, i.e. the working tree)
        git: Git client used to list staged files
        artifacts_dir: Artifact directory relative to the repository root
        validate_dependencies: Check relationships besides the document shape
    """

    def __init__(
        self,
        store: ArtifactStore,
        git: GitClient,
        artifacts_dir: str,
        validate_dependencies: bool = True,
    ):
        self.store = store
        self.git = git
        self.artifacts_dir = artifacts_dir
        self.validate_dependencies = validate_dependencies

    def staged_artifact_ids(self) -> list[str]:
        ids = []
        for name in self.git.staged_files(self.artifacts_dir):
            path = Path(name)
            if path.suffix not in ARTIFACT_SUFFIXES:
                continue
            artifact_id = artifact_id_from_path(path)
            if artifact_id is not None and artifact_id not in ids:
                ids.append(artifact_id)
        return ids

    def validate(self) -> PreCommitResult:
        result = PreCommitResult()
        staged = self.staged_artifact_ids()
        if not staged:
            return result

        # Unloadable documents stay out of the map; they are reported when staged
        artifacts: dict[str, ArtifactRecord] = {}
        known = set(self.store.ids())
        for artifact_id in sorted(known):
            try:
                artifacts[artifact_id] = self.store.get_artifact(artifact_id)
            except ArtifactStoreError as e:
                logger.debug("Could not load %s: %s", artifact_id, e)

        for artifact_id in staged:
            result.artifacts_validated += 1
            record = artifacts.get(artifact_id)
            if record is None:
                result.errors.append(
                    PreCommitError(
                        INVALID_SCHEMA,
                        "Failed to load artifact (likely schema validation error)",
                        artifact_id,
                        suggested_fix="Check YAML syntax and schema compliance",
                    )
                )
                continue

            problem = _schema_problem(record)
            if problem is not None:
                result.errors.append(
                    PreCommitError(
                        INVALID_SCHEMA,
                        problem[1],
                        artifact_id,
                        field=problem[0],
                        suggested_fix="Check YAML syntax and schema compliance",
                    )
                )
                continue

            if self.validate_dependencies:
                result.errors.extend(self._orphaned(record, known))
                result.errors.extend(self._inconsistent(record, artifacts))
                result.errors.extend(self._circular(record, artifacts))

        return result

    def _orphaned(self, record: ArtifactRecord, known: set[str]) -> list[PreCommitError]:
        errors = []
        for key, dep_ids in (("blocked_by", record.blocked_by), ("blocks", record.blocks)):
            for dep_id in dep_ids:
                if dep_id not in known:
                    errors.append(
                        PreCommitError(
                            ORPHANED_DEPENDENCY,
                            f"Dependency '{dep_id}' does not exist",
                            record.id,
                            field=f"metadata.relationships.{key}",
                            suggested_fix=f"Remove '{dep_id}' from {key} or create the artifact",
                        )
                    )
        return errors

    def _inconsistent(self, record: ArtifactRecord, artifacts: dict[str, ArtifactRecord]) -> list[PreCommitError]:
        # blocked_by and blocks must mirror each other
        errors = []
        for key, mirror, dep_ids in (
            ("blocked_by", "blocks", record.blocked_by),
            ("blocks", "blocked_by", record.blocks),
        ):
            for dep_id in dep_ids:
                other = artifacts.get(dep_id)
                if other is None:
                    continue
                if dep_id == record.id:
                    errors.append(
                        PreCommitError(
                            RELATIONSHIP_INCONSISTENCY,
                            f"Artifact lists itself in {key}",
                            record.id,
                            field=f"metadata.relationships.{key}",
                            suggested_fix=f"Remove '{dep_id}' from {key}",
                        )
                    )
                elif record.id not in getattr(other, mirror):
                    errors.append(
                        PreCommitError(
                            RELATIONSHIP_INCONSISTENCY,
                            f"'{dep_id}' is listed in {key} but does not list '{record.id}' in {mirror}",
                            record.id,
                            field=f"metadata.relationships.{key}",
                            suggested_fix=f"Add '{record.id}' to {dep_id} {mirror}",
                        )
                    )
        return errors

    def _circular(self, record: ArtifactRecord, artifacts: dict[str, ArtifactRecord]) -> list[PreCommitError]:
        # Depth-first walk of blocked_by looking for a path back to the start
        stack = [(dep_id, [record.id, dep_id]) for dep_id in record.blocked_by if dep_id != record.id]
        seen: set[str] = set()
        while stack:
            current, path = stack.pop()
            if current == record.id:
                return [
                    PreCommitError(
                        CIRCULAR_DEPENDENCY,
                        f"Circular dependency: {' -> '.join(path)}",
                        record.id,
                        field="metadata.relationships.blocked_by",
                        suggested_fix="Break the cycle by removing one of the blocked_by entries",
                    )
                ]
            if current in seen or current not in artifacts:
                continue
            seen.add(current)
            for dep_id in artifacts[current].blocked_by:
                stack.append((dep_id, [*path, dep_id]))
        return []


# -----------------------------------------------------------------------------
# pre-push
# -----------------------------------------------------------------------------

UNCOMMITTED_CHANGES = "UNCOMMITTED_CHANGES"
DRAFT_ARTIFACT = "DRAFT_ARTIFACT"
BLOCKED_ARTIFACT = "BLOCKED_ARTIFACT"

MAX_LISTED_FILES = 5


@dataclass(frozen=True)
class PrePushWarning:
    type: str
    message: str
    artifact_id: str | None = None
    details: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"type": self.type, "message": self.message}
        if self.artifact_id is not None:
            d["artifactId"] = self.artifact_id
        if self.details is not None:
            d["details"] = self.details
        return d


@dataclass
class PrePushResult:
    warnings: list[PrePushWarning] = field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    def to_dict(self) -> dict[str, Any]:
        return {"hasWarnings": self.has_warnings, "warnings": [w.to_dict() for w in self.warnings]}


class PrePushValidator:
    """Non-blocking checks before a push."""

    def __init__(
        self,
        store: ArtifactStore,
        git: GitClient,
        artifacts_dir: str,
        check_uncommitted: bool = True,
        check_states: bool = True,
    ):
        self.store = store
        self.git = git
        self.artifacts_dir = artifacts_dir
        self.check_uncommitted = check_uncommitted
        self.check_states = check_states

    def validate(self, branch_name: str) -> PrePushResult:
        result = PrePushResult()
        if self.check_uncommitted:
            result.warnings.extend(self._uncommitted())
        if self.check_states:
            for artifact_id in extract_artifact_ids(branch_name):
                result.warnings.extend(self._state_warnings(artifact_id))
        return result

    def _uncommitted(self) -> list[PrePushWarning]:
        try:
            files = self.git.status_porcelain(self.artifacts_dir)
        except GitError as e:
            logger.debug("Could not read git status: %s", e)
            return []
        if not files:
            return []

        listed = "\n".join(files[:MAX_LISTED_FILES])
        if len(files) > MAX_LISTED_FILES:
            listed += f"\n... and {len(files) - MAX_LISTED_FILES} more"
        return [
            PrePushWarning(
                UNCOMMITTED_CHANGES,
                f"{len(files)} uncommitted artifact file(s) detected",
                details=f"These files have uncommitted changes:\n{listed}",
            )
        ]

    def _state_warnings(self, artifact_id: str) -> list[PrePushWarning]:
        try:
            state = self.store.get_artifact(artifact_id).state
        except ArtifactStoreError as e:
            logger.debug("Skipping state check for %s: %s", artifact_id, e)
            return []

        if state == DRAFT:
            return [
                PrePushWarning(
                    DRAFT_ARTIFACT,
                    f"Artifact {artifact_id} is in 'draft' state",
                    artifact_id,
                    "Consider transitioning to 'ready' or 'in_progress' before pushing",
                )
            ]
        if state == BLOCKED:
            return [
                PrePushWarning(
                    BLOCKED_ARTIFACT,
                    f"Artifact {artifact_id} is in 'blocked' state",
                    artifact_id,
                    "Check if blocking dependencies have been resolved",
                )
            ]
        return []
