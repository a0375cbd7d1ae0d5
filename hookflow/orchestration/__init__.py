"""Hook orchestrators and the post-merge strategy executor."""

from __future__ import annotations

from .post_checkout import PostCheckoutOrchestrator, PostCheckoutResult
from .post_merge import OrchestrationResult, PostMergeOrchestrator
from .strategy import StrategyExecutor, StrategyResult

__all__ = [
    "OrchestrationResult",
    "PostCheckoutOrchestrator",
    "PostCheckoutResult",
    "PostMergeOrchestrator",
    "StrategyExecutor",
    "StrategyResult",
]
