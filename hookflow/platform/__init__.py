"""Git platform adapters (pull request creation and merging)."""

from __future__ import annotations

from .adapter import AuthStatus, GitPlatformAdapter, PRCreateOptions, PRInfo
from .draft_pr import DraftPRResult, DraftPRService
from .github import GitHubCLIAdapter

__all__ = [
    "AuthStatus",
    "DraftPRResult",
    "DraftPRService",
    "GitHubCLIAdapter",
    "GitPlatformAdapter",
    "PRCreateOptions",
    "PRInfo",
]
