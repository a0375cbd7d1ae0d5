"""Build hook executors from configuration."""

from __future__ import annotations

from ..config import HOOK_TYPES, HookflowConfig, HooksConfig, HookTypeConfig
from .executor import HookExecutor, HookExecutorConfig, HookTask
from .logger import HookLogger


def _normalize(hook_type: str) -> str:
    key = hook_type.replace("-", "_")
    if key not in HOOK_TYPES:
        raise ValueError(f"Unknown hook type: {hook_type!r} (expected one of {', '.join(HOOK_TYPES)})")
    return key


def _override(hooks: HooksConfig, hook_type: str) -> HookTypeConfig:
    return getattr(hooks, _normalize(hook_type))


def is_hook_enabled(hook_type: str, config: HookflowConfig) -> bool:
    """A hook runs only when hooks are enabled globally and not disabled for its type."""
    if not config.hooks.enabled:
        return False
    override = _override(config.hooks, hook_type).enabled
    return True if override is None else override


def executor_config_for(
    hook_type: str,
    config: HookflowConfig,
    hook_logger: HookLogger | None = None,
) -> HookExecutorConfig:
    """Merge global hook settings with the per-type overrides for ``hook_type``."""
    hooks = config.hooks
    override = _override(hooks, hook_type)

    def pick(value, default):
        return default if value is None else value

    return HookExecutorConfig(
        timeout=pick(override.timeout, hooks.timeout),
        non_blocking=pick(override.non_blocking, hooks.non_blocking),
        log_errors=pick(override.log_errors, hooks.log_errors),
        hook_logger=hook_logger,
    )


def create_hook_executor(
    hook_type: str,
    config: HookflowConfig,
    hooks: dict[str, HookTask] | None = None,
    hook_logger: HookLogger | None = None,
) -> HookExecutor:
    """Create a HookExecutor configured for ``hook_type`` (e.g. "post-merge")."""
    return HookExecutor(executor_config_for(hook_type, config, hook_logger), hooks=hooks)
