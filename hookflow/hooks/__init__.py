"""
Hook framework: idempotency decisions, task execution, detection and logging.

A git hook invocation flows through: detector -> idempotency gate ->
executor -> orchestrator, with every run recorded in the hook log and as a
``hook_executed`` event on the artifacts it touched.
"""

from __future__ import annotations

from .executor import (
    HookContext,
    HookExecutor,
    HookExecutorConfig,
    HookResult,
    clear_hooks,
    get_hook,
    list_hooks,
    register_hook,
)
from .factory import create_hook_executor, is_hook_enabled
from .idempotency import IdempotencyTracker, ShouldExecuteResult
from .logger import HookLogger

__all__ = [
    # Execution
    "HookContext",
    "HookExecutor",
    "HookExecutorConfig",
    "HookResult",
    "create_hook_executor",
    "is_hook_enabled",
    # Registry
    "clear_hooks",
    "get_hook",
    "list_hooks",
    "register_hook",
    # Idempotency
    "IdempotencyTracker",
    "ShouldExecuteResult",
    # Logging
    "HookLogger",
]
