"""GitHub adapter driven by the ``gh`` CLI.

Authentication and transport are whatever ``gh`` is configured with
(``gh auth login`` or ``GITHUB_TOKEN``) unless the adapter is given a token,
which is handed to ``gh`` as ``GH_TOKEN``.
"""

from __future__ import annotations

import json
import logging
import os
import re
import subprocess
from dataclasses import dataclass, replace
from functools import partial
from pathlib import Path
from typing import Any, Callable

from ..errors import PlatformError
from .adapter import AuthStatus, MergeMethod, PRCreateOptions, PRInfo

logger = logging.getLogger(__name__)

_PR_URL = re.compile(r"/pull/(\d+)")
_AUTH_USER = re.compile(r"github\.com (?:account|as) ([^\s(]+)")

PR_FIELDS = "number,url,title,body,state,isDraft,headRefName,baseRefName"


@dataclass
class CommandResult:
    returncode: int
    stdout: str
    stderr: str


Runner = Callable[[list[str], Path], CommandResult]


def run_command(args: list[str], cwd: Path, extra_env: dict[str, str] | None = None) -> CommandResult:
    """Run a command and capture its output; missing executables become returncode 127."""
    env = {**os.environ, **extra_env} if extra_env else None
    try:
        p = subprocess.run(args, cwd=cwd, capture_output=True, text=True, env=env)
    except OSError as e:
        return CommandResult(127, "", str(e))
    return CommandResult(p.returncode, p.stdout, p.stderr)


def _load_json(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError as e:
        raise PlatformError(f"Unexpected gh output: {e}") from e


def _pr_from_json(data: dict[str, Any]) -> PRInfo:
    return PRInfo(
        number=int(data["number"]),
        url=data.get("url"),
        title=data.get("title") or "",
        body=data.get("body") or None,
        state=str(data.get("state") or "open").lower(),
        is_draft=bool(data.get("isDraft", False)),
        source_branch=data.get("headRefName"),
        target_branch=data.get("baseRefName"),
    )


class GitHubCLIAdapter:
    platform = "github"

    def __init__(self, repo_path: Path, runner: Runner | None = None, token: str | None = None):
        self.repo_path = Path(repo_path)
        self.token = token
        if runner is None:
            runner = partial(run_command, extra_env={"GH_TOKEN": token} if token else None)
        self._runner = runner

    def _gh(self, *args: str) -> str:
        result = self._runner(["gh", *args], self.repo_path)
        if result.returncode != 0:
            detail = result.stderr.strip() or f"exit code {result.returncode}"
            raise PlatformError(f"gh {' '.join(args[:2])} failed: {detail}")
        return result.stdout

    def create_pr(self, options: PRCreateOptions) -> PRInfo:
        args = [
            "pr", "create",
            "--title", options.title,
            "--body", options.body,
            "--head", options.branch,
            "--base", options.base_branch,
        ]
        if options.draft:
            args.append("--draft")
        for label in options.labels:
            args.extend(["--label", label])

        out = self._gh(*args).strip()
        url = out.splitlines()[-1] if out else ""
        match = _PR_URL.search(url)
        if not match:
            raise PlatformError(f"Could not parse pull request URL from gh output: {out!r}")
        logger.info("Created pull request %s", url)
        return PRInfo(
            number=int(match.group(1)),
            url=url,
            title=options.title,
            body=options.body,
            is_draft=options.draft,
            source_branch=options.branch,
            target_branch=options.base_branch,
        )

    def create_draft_pr(self, options: PRCreateOptions) -> PRInfo:
        return self.create_pr(replace(options, draft=True))

    def get_pr(self, pr: int | str) -> PRInfo | None:
        result = self._runner(["gh", "pr", "view", str(pr), "--json", PR_FIELDS], self.repo_path)
        if result.returncode != 0:
            if "no pull requests found" in result.stderr.lower() or "could not resolve" in result.stderr.lower():
                return None
            raise PlatformError(f"gh pr view failed: {result.stderr.strip()}")
        return _pr_from_json(_load_json(result.stdout))

    def find_pr_for_branch(self, branch: str) -> PRInfo | None:
        out = self._gh("pr", "list", "--head", branch, "--state", "open", "--json", PR_FIELDS, "--limit", "1")
        items = _load_json(out or "[]")
        return _pr_from_json(items[0]) if items else None

    def merge_pr(self, number: int, method: MergeMethod = "merge", delete_branch: bool = True) -> None:
        args = ["pr", "merge", str(number), f"--{method}"]
        if delete_branch:
            args.append("--delete-branch")
        self._gh(*args)

    def enable_auto_merge(self, number: int, method: MergeMethod = "merge", delete_branch: bool = True) -> None:
        args = ["pr", "merge", str(number), "--auto", f"--{method}"]
        if delete_branch:
            args.append("--delete-branch")
        self._gh(*args)

    def validate_auth(self) -> AuthStatus:
        result = self._runner(["gh", "auth", "status"], self.repo_path)
        if result.returncode != 0:
            return AuthStatus(
                authenticated=False,
                error="gh CLI not authenticated. Run 'gh auth login' to authenticate.",
            )
        # gh has printed status to stderr or stdout depending on version
        match = _AUTH_USER.search(result.stdout + result.stderr)
        return AuthStatus(authenticated=True, user=match.group(1) if match else None)
