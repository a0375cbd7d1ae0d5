"""Build the git platform adapter named by the ``platform`` config section."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

from ..config import PlatformConfig
from ..errors import PlatformError
from .adapter import GitPlatformAdapter
from .github import GitHubCLIAdapter
from .gitlab import GitLabAdapter

SUPPORTED = "Supported platforms: github, gitlab (stub)."
DEFAULT_TOKEN_ENV = {
    "github": "GITHUB_TOKEN",
    "gitlab": "GITLAB_TOKEN",
}
_DISPLAY = {"github": "GitHub", "gitlab": "GitLab"}


class AdapterCreateError(PlatformError):
    """Raised when the configured platform cannot be served."""


def token_env_var(config: PlatformConfig) -> str:
    return config.token_env_var or DEFAULT_TOKEN_ENV.get(config.type, "GITHUB_TOKEN")


def create_adapter(
    config: PlatformConfig,
    repo_path: Path,
    env: Mapping[str, str] | None = None,
) -> GitPlatformAdapter:
    """
    Create the adapter for ``config.type``.

    With ``auth_strategy: token`` the token must be present in the
    environment. ``auto`` uses the token when present and otherwise leaves
    authentication to the platform CLI; ``cli`` never reads the token.

    Raises:
        AdapterCreateError: If the platform is unsupported or a required token is missing
    """
    env = os.environ if env is None else env

    if config.type == "bitbucket":
        raise AdapterCreateError(
            f"Bitbucket support is not yet implemented. {SUPPORTED} Set platform.type to \"github\"."
        )
    if config.type not in DEFAULT_TOKEN_ENV:
        raise AdapterCreateError(
            f"Unsupported platform type: \"{config.type}\". {SUPPORTED} Please update platform.type."
        )

    var = token_env_var(config)
    token = None
    if config.auth_strategy in ("token", "auto"):
        token = env.get(var) or None
        if config.auth_strategy == "token" and token is None:
            raise AdapterCreateError(
                f"{_DISPLAY[config.type]} token not found. Expected environment variable: {var}. "
                "Set the token or change auth_strategy to \"auto\" or \"cli\"."
            )

    if config.type == "gitlab":
        return GitLabAdapter(token=token)
    return GitHubCLIAdapter(repo_path, token=token)
