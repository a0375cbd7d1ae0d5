"""Configuration loading from ``.hookflow/config.yml``.

Environment lookups happen here, apart from the platform token read by
``platform.factory``; business logic only ever sees the resulting dataclasses.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

CONFIG_DIR = ".hookflow"
CONFIG_FILE = "config.yml"
LOG_LEVEL_ENV = "HOOKFLOW_LOG_LEVEL"

HOOK_TYPES = ("post_merge", "post_checkout", "pre_commit", "pre_push")
STRATEGIES = ("manual", "direct_commit", "cascade_pr")
AUTH_STRATEGIES = ("auto", "token", "cli")


@dataclass
class HookTypeConfig:
    """Per hook-type overrides; None means "inherit from the global setting"."""

    enabled: bool | None = None
    non_blocking: bool | None = None
    log_errors: bool | None = None
    timeout: float | None = None


@dataclass
class HooksConfig:
    enabled: bool = True
    non_blocking: bool = True
    log_errors: bool = True
    timeout: float = 30.0
    post_merge: HookTypeConfig = field(default_factory=HookTypeConfig)
    post_checkout: HookTypeConfig = field(default_factory=HookTypeConfig)
    pre_commit: HookTypeConfig = field(default_factory=HookTypeConfig)
    pre_push: HookTypeConfig = field(default_factory=HookTypeConfig)


@dataclass
class DirectCommitConfig:
    commit_prefix: str = "[automated]"
    push_immediately: bool = True


@dataclass
class CascadePRConfig:
    auto_merge: bool = True
    require_checks: bool = False
    labels: list[str] = field(default_factory=lambda: ["automated", "cascade"])
    branch_prefix: str = "cascade/pr-"


@dataclass
class PostMergeConfig:
    strategy: str = "cascade_pr"
    target_branch: str = "main"
    require_pr: bool = True
    direct_commit: DirectCommitConfig = field(default_factory=DirectCommitConfig)
    cascade_pr: CascadePRConfig = field(default_factory=CascadePRConfig)


@dataclass
class PostCheckoutConfig:
    create_draft_pr: bool = False
    enable_cascade: bool = True
    base_branch: str = "main"


@dataclass
class PreCommitConfig:
    validate_dependencies: bool = True


@dataclass
class PrePushConfig:
    check_uncommitted: bool = True
    check_states: bool = True


@dataclass
class PlatformConfig:
    """Git platform selection; ``token_env_var`` defaults per platform (GITHUB_TOKEN, GITLAB_TOKEN)."""

    type: str = "github"
    auth_strategy: str = "auto"
    token_env_var: str | None = None


@dataclass
class LoggingConfig:
    level: str = "info"
    file: str = ".hookflow/logs/hooks.log"
    console: bool = True


@dataclass
class HookflowConfig:
    """Root configuration object."""

    artifacts_dir: str = ".hookflow/artifacts"
    retry_timeout: float = 300.0
    allow_retry: bool = True
    hooks: HooksConfig = field(default_factory=HooksConfig)
    post_merge: PostMergeConfig = field(default_factory=PostMergeConfig)
    post_checkout: PostCheckoutConfig = field(default_factory=PostCheckoutConfig)
    pre_commit: PreCommitConfig = field(default_factory=PreCommitConfig)
    pre_push: PrePushConfig = field(default_factory=PrePushConfig)
    platform: PlatformConfig = field(default_factory=PlatformConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _check_type(section: str, key: str, value: Any, expected: Any) -> Any:
    if value is None:
        return value
    if expected in ("float", "float | None"):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"{section}.{key} must be a number, got {value!r}")
        return float(value)
    if expected in ("bool", "bool | None") and not isinstance(value, bool):
        raise ConfigError(f"{section}.{key} must be true or false, got {value!r}")
    if expected in ("str", "str | None") and not isinstance(value, str):
        raise ConfigError(f"{section}.{key} must be a string, got {value!r}")
    if expected == "list[str]":
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigError(f"{section}.{key} must be a list of strings, got {value!r}")
    return value


_NESTED = {
    "HookTypeConfig": HookTypeConfig,
    "HooksConfig": HooksConfig,
    "DirectCommitConfig": DirectCommitConfig,
    "CascadePRConfig": CascadePRConfig,
    "PostMergeConfig": PostMergeConfig,
    "PostCheckoutConfig": PostCheckoutConfig,
    "PreCommitConfig": PreCommitConfig,
    "PrePushConfig": PrePushConfig,
    "PlatformConfig": PlatformConfig,
    "LoggingConfig": LoggingConfig,
}


def _build(cls: type, data: Any, section: str):
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ConfigError(f"{section} must be a mapping, got {type(data).__name__}")

    known = {f.name: f for f in fields(cls)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise ConfigError(f"Unknown key(s) in {section}: {', '.join(unknown)}")

    kwargs = {}
    for key, value in data.items():
        type_name = known[key].type  # a string under postponed annotations
        if type_name in _NESTED:
            kwargs[key] = _build(_NESTED[type_name], value, f"{section}.{key}")
        else:
            kwargs[key] = _check_type(section, key, value, type_name)
    return cls(**kwargs)


def config_path(root: Path) -> Path:
    return Path(root) / CONFIG_DIR / CONFIG_FILE


def load_config(root: Path, env: dict[str, str] | None = None) -> HookflowConfig:
    """
    Load configuration for the repository at ``root``.

    A missing file yields defaults. ``HOOKFLOW_LOG_LEVEL`` overrides
    ``logging.level``.

    Raises:
        ConfigError: If the file is not valid YAML or has invalid values
    """
    path = config_path(root)
    data: Any = {}
    if path.exists():
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    config = _build(HookflowConfig, data, "config")

    if config.post_merge.strategy not in STRATEGIES:
        raise ConfigError(
            f"post_merge.strategy must be one of {', '.join(STRATEGIES)}, got {config.post_merge.strategy!r}"
        )
    if config.platform.auth_strategy not in AUTH_STRATEGIES:
        raise ConfigError(
            f"platform.auth_strategy must be one of {', '.join(AUTH_STRATEGIES)}, got {config.platform.auth_strategy!r}"
        )

    env = os.environ if env is None else env
    level = env.get(LOG_LEVEL_ENV)
    if level:
        config.logging.level = level.lower()
    if config.logging.level not in ("debug", "info", "warn", "error"):
        raise ConfigError(f"logging.level must be debug, info, warn or error, got {config.logging.level!r}")

    return config
