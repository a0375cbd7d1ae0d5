"""Exception hierarchy shared across hookflow."""

from __future__ import annotations


class HookflowError(Exception):
    """Base class for all hookflow errors."""


class ConfigError(HookflowError):
    """Raised when .hookflow/config.yml cannot be read or has invalid values."""


class ArtifactStoreError(HookflowError):
    """Raised when an artifact file cannot be read or written."""


class ArtifactNotFoundError(ArtifactStoreError):
    """Raised when an artifact id does not resolve to a file."""

    def __init__(self, artifact_id: str):
        super().__init__(f"Artifact {artifact_id} not found")
        self.artifact_id = artifact_id


class GitError(HookflowError):
    """Raised when a git command exits non-zero."""

    def __init__(self, args: list[str], returncode: int, stderr: str = ""):
        command = " ".join(["git", *args])
        detail = stderr.strip() or f"exit code {returncode}"
        super().__init__(f"{command} failed: {detail}")
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class PlatformError(HookflowError):
    """Raised when the git platform CLI rejects a request."""


class HookExecutionError(HookflowError):
    """Raised (or captured) when a hook task fails."""


class HookTimeoutError(HookExecutionError):
    """Raised when a hook task does not finish within its timeout."""

    def __init__(self, hook_name: str, timeout_ms: int):
        super().__init__(f'Hook "{hook_name}" timed out after {timeout_ms}ms')
        self.hook_name = hook_name
        self.timeout_ms = timeout_ms


class HookNotFoundError(HookExecutionError):
    """Raised when a hook name has no registered task."""

    def __init__(self, hook_name: str):
        super().__init__(f"Hook not found: {hook_name}")
        self.hook_name = hook_name
