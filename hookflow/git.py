"""Thin git client over ``subprocess``.

Each method maps to a single git command so callers can reason about side
effects. Failures raise GitError carrying the command and stderr.
"""

from __future__ import annotations

import re
import subprocess
from pathlib import Path

from .errors import GitError

_REFLOG_MERGE = re.compile(r"merge\s+(?:origin/)?([^\s:]+)", re.IGNORECASE)
_MESSAGE_MERGE = re.compile(r"Merge.*'([^']+)'", re.IGNORECASE)


class GitClient:
    def __init__(self, root: Path):
        self.root = Path(root)

    def _git(self, args: list[str]) -> str:
        try:
            p = subprocess.run(
                ["git", *args],
                cwd=self.root,
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise GitError(args, -1, str(e)) from e
        if p.returncode != 0:
            raise GitError(args, p.returncode, p.stderr)
        return p.stdout

    def current_branch(self) -> str:
        return self._git(["rev-parse", "--abbrev-ref", "HEAD"]).strip()

    def rev_parse(self, ref: str = "HEAD") -> str:
        return self._git(["rev-parse", ref]).strip()

    def config_value(self, key: str) -> str | None:
        """Return a git config value, None when it is unset."""
        try:
            value = self._git(["config", key]).strip()
        except GitError:
            return None
        return value or None

    def last_commit_message(self) -> str:
        return self._git(["log", "-1", "--pretty=%B", "HEAD"])

    def last_commit_subject(self) -> str:
        return self._git(["log", "-1", "--pretty=%s", "HEAD"]).strip()

    def merge_source_branch(self) -> str | None:
        """Best-effort source branch of the last merge: reflog first, then the commit message."""
        try:
            reflog = self._git(["reflog", "-1", "--grep-reflog=merge", "--format=%gs"])
        except GitError:
            reflog = ""
        match = _REFLOG_MERGE.search(reflog)
        if match:
            return match.group(1)

        try:
            message = self.last_commit_message()
        except GitError:
            return None
        match = _MESSAGE_MERGE.search(message)
        return match.group(1) if match else None

    def staged_files(self, path: str) -> list[str]:
        """Paths under ``path`` staged for the next commit, deletions excluded."""
        out = self._git(["diff", "--cached", "--name-only", "--diff-filter=d", "--", path])
        return [line.strip() for line in out.splitlines() if line.strip()]

    def status_porcelain(self, path: str) -> list[str]:
        """``git status --porcelain`` lines for uncommitted changes under ``path``."""
        out = self._git(["status", "--porcelain", "--", path])
        return [line.strip() for line in out.splitlines() if line.strip()]

    def checkout_new_branch(self, branch: str) -> None:
        self._git(["checkout", "-b", branch])

    def add(self, *paths: str) -> None:
        self._git(["add", "--", *paths])

    def commit(self, message: str) -> str:
        """Commit staged changes and return the new HEAD sha."""
        self._git(["commit", "-m", message])
        return self.rev_parse("HEAD")

    def push(self, branch: str | None = None, set_upstream: bool = False) -> None:
        args = ["push"]
        if branch is not None:
            if set_upstream:
                args.append("-u")
            args.extend(["origin", branch])
        self._git(args)
