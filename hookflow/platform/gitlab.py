"""GitLab adapter placeholder.

Keeps ``platform.type: gitlab`` configurations loadable. Authentication
reports "not implemented"; every pull request operation raises.
"""

from __future__ import annotations

from ..errors import PlatformError
from .adapter import AuthStatus, MergeMethod, PRCreateOptions, PRInfo

NOT_IMPLEMENTED = "GitLab support is not yet implemented. Use platform.type: github for now."


class GitLabNotImplementedError(PlatformError):
    def __init__(self, method: str):
        super().__init__(f"GitLab support for '{method}' is not yet implemented.")
        self.method = method


class GitLabAdapter:
    platform = "gitlab"

    def __init__(self, token: str | None = None):
        self.token = token

    def create_pr(self, options: PRCreateOptions) -> PRInfo:
        raise GitLabNotImplementedError("create_pr")

    def create_draft_pr(self, options: PRCreateOptions) -> PRInfo:
        raise GitLabNotImplementedError("create_draft_pr")

    def get_pr(self, pr: int | str) -> PRInfo | None:
        raise GitLabNotImplementedError("get_pr")

    def find_pr_for_branch(self, branch: str) -> PRInfo | None:
        raise GitLabNotImplementedError("find_pr_for_branch")

    def merge_pr(self, number: int, method: MergeMethod = "merge", delete_branch: bool = True) -> None:
        raise GitLabNotImplementedError("merge_pr")

    def enable_auto_merge(self, number: int, method: MergeMethod = "merge", delete_branch: bool = True) -> None:
        raise GitLabNotImplementedError("enable_auto_merge")

    def validate_auth(self) -> AuthStatus:
        return AuthStatus(authenticated=False, platform=self.platform, error=NOT_IMPLEMENTED)
