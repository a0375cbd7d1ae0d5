"""Git platform adapter interface and its value types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

MergeMethod = Literal["merge", "squash", "rebase"]


@dataclass
class PRCreateOptions:
    title: str
    branch: str
    body: str = ""
    base_branch: str = "main"
    draft: bool = False
    labels: list[str] = field(default_factory=list)


@dataclass
class PRInfo:
    number: int
    url: str | None = None
    title: str = ""
    body: str | None = None
    state: str = "open"
    is_draft: bool = False
    source_branch: str | None = None
    target_branch: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "url": self.url,
            "title": self.title,
            "state": self.state,
            "isDraft": self.is_draft,
            "sourceBranch": self.source_branch,
            "targetBranch": self.target_branch,
        }


@dataclass
class AuthStatus:
    authenticated: bool
    platform: str = "github"
    user: str | None = None
    error: str | None = None


class GitPlatformAdapter(Protocol):
    """
    Remote pull request operations.

    Calls are black-box remote operations: they may fail and are never
    retried by the adapter. Failures raise PlatformError.
    """

    platform: str

    def create_pr(self, options: PRCreateOptions) -> PRInfo:
        ...

    def create_draft_pr(self, options: PRCreateOptions) -> PRInfo:
        ...

    def get_pr(self, pr: int | str) -> PRInfo | None:
        ...

    def find_pr_for_branch(self, branch: str) -> PRInfo | None:
        ...

    def merge_pr(self, number: int, method: MergeMethod = "merge", delete_branch: bool = True) -> None:
        ...

    def enable_auto_merge(self, number: int, method: MergeMethod = "merge", delete_branch: bool = True) -> None:
        ...

    def validate_auth(self) -> AuthStatus:
        ...
