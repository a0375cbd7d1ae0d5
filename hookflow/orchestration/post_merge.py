"""Post-merge orchestration: completion then readiness cascade per merged artifact."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from ..artifacts.cascade import CascadeResult, CascadeRunner
from ..artifacts.events import TRIGGER_DEPENDENCIES_MET, TRIGGER_PR_MERGED
from ..hooks.detection import MergeMetadata

logger = logging.getLogger(__name__)

DEFAULT_ACTOR = "System Cascade (cascade@post-merge)"


@dataclass
class OrchestrationResult:
    merge_metadata: MergeMetadata
    completion_cascade: CascadeResult = field(default_factory=CascadeResult)
    readiness_cascade: CascadeResult = field(default_factory=CascadeResult)
    summary: str = ""
    total_artifacts_updated: int = 0
    total_events_added: int = 0

    @property
    def has_changes(self) -> bool:
        return self.total_artifacts_updated + self.total_events_added > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "mergeMetadata": self.merge_metadata.to_dict(),
            "completionCascade": self.completion_cascade.to_dict(),
            "readinessCascade": self.readiness_cascade.to_dict(),
            "summary": self.summary,
            "totalArtifactsUpdated": self.total_artifacts_updated,
            "totalEventsAdded": self.total_events_added,
        }


class PostMergeOrchestrator:
    """
    Run the completion and readiness cascades for every artifact in a merge.

    Each (artifact, cascade) call is guarded on its own: a failure is logged
    and left out of the totals, and the remaining calls still run.
    """

    def __init__(self, cascade: CascadeRunner):
        self.cascade = cascade

    def execute(self, merge_metadata: MergeMetadata, actor: str | None = None) -> OrchestrationResult:
        actor = actor or DEFAULT_ACTOR
        result = OrchestrationResult(merge_metadata=merge_metadata)

        if not merge_metadata.artifact_ids:
            result.summary = "No artifact IDs found in merge"
            return result

        try:
            for artifact_id in merge_metadata.artifact_ids:
                try:
                    result.completion_cascade.extend(
                        self.cascade.execute_completion_cascade(artifact_id, trigger=TRIGGER_PR_MERGED, actor=actor)
                    )
                except Exception as e:
                    logger.error("Completion cascade failed for %s: %s", artifact_id, e)

                try:
                    result.readiness_cascade.extend(
                        self.cascade.execute_readiness_cascade(
                            artifact_id, trigger=TRIGGER_DEPENDENCIES_MET, actor=actor
                        )
                    )
                except Exception as e:
                    logger.error("Readiness cascade failed for %s: %s", artifact_id, e)

            events = result.completion_cascade.events + result.readiness_cascade.events
            result.total_artifacts_updated = len({e.artifact_id for e in events})
            result.total_events_added = len(events)
            result.summary = generate_summary(result)
        except Exception as e:
            result.summary = f"Cascade orchestration failed: {e}"

        return result


def _cascade_lines(label: str, cascade: CascadeResult) -> list[str]:
    if not cascade.events:
        return ["", f"{label} cascade: no changes"]
    lines = ["", f"{label} cascade: {len(cascade.events)} event(s)"]
    lines.extend(f"  - {e.artifact_id} → {e.event}" for e in cascade.events)
    return lines


def generate_summary(result: OrchestrationResult) -> str:
    lines = [f"Post-merge cascades for artifacts: {', '.join(result.merge_metadata.artifact_ids)}"]
    lines += _cascade_lines("Completion", result.completion_cascade)
    lines += _cascade_lines("Readiness", result.readiness_cascade)
    lines += [
        "",
        f"Total: {result.total_artifacts_updated} artifact(s) updated, "
        f"{result.total_events_added} event(s) added",
    ]
    return "\n".join(lines)
