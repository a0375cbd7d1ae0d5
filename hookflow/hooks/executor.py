"""
Hook task execution with timeouts and failure isolation.

Tasks are plain callables (sync or async) that take a HookContext. The
executor times each one, enforces a timeout and turns failures into
HookResult values so that a failing automation never breaks the git
operation that triggered it.

Timeouts do not cancel the task: the executor stops waiting, records the
failure and leaves the task to finish in the background. Sync tasks run in
a worker thread and cannot be interrupted at all; async callables, objects
with an ``async def __call__`` included, run on the loop. Side effects of a
timed-out task may therefore still land after its failure was reported.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Union

from ..errors import HookExecutionError, HookNotFoundError, HookTimeoutError
from .logger import HookLogger

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


@dataclass
class HookContext:
    """Context passed to every hook task."""

    artifact_id: str
    event_type: str
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    )
    git_data: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def artifact_ids(self) -> list[str]:
        """Every artifact the run acts on: ``extra["artifactIds"]`` when set, else ``artifact_id``."""
        return list(self.extra.get("artifactIds") or [self.artifact_id])


HookTask = Callable[[HookContext], Union[Any, Awaitable[Any]]]
LifecycleCallback = Callable[[str, HookContext], Union[None, Awaitable[None]]]
ErrorCallback = Callable[[str, HookContext, Exception], Union[None, Awaitable[None]]]


@dataclass
class HookExecutorConfig:
    """
    Executor settings.

    Attributes:
        timeout: Seconds to wait for a task before recording a timeout
        non_blocking: Capture failures into results instead of raising
        log_errors: Log failed tasks
        before_execute: Called before a task starts
        after_execute: Called after a task succeeds
        on_error: Called after a task fails
        hook_logger: Structured log for start/success/failure records
    """

    timeout: float = DEFAULT_TIMEOUT
    non_blocking: bool = True
    log_errors: bool = True
    before_execute: LifecycleCallback | None = None
    after_execute: LifecycleCallback | None = None
    on_error: ErrorCallback | None = None
    hook_logger: HookLogger | None = None


@dataclass
class HookResult:
    """Outcome of one task run."""

    success: bool
    duration_ms: int
    error: str | None = None
    output: Any = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"success": self.success, "duration": self.duration_ms}
        if self.error is not None:
            d["error"] = self.error
        return d


# -----------------------------------------------------------------------------
# Registry
# -----------------------------------------------------------------------------

_HOOKS: dict[str, HookTask] = {}


def register_hook(name: str, task: HookTask) -> None:
    """Register a task under a hook name (replaces any previous task)."""
    _HOOKS[name] = task


def get_hook(name: str) -> HookTask | None:
    return _HOOKS.get(name)


def list_hooks() -> list[str]:
    return sorted(_HOOKS.keys())


def clear_hooks() -> None:
    """Clear all registered hooks (for testing)."""
    _HOOKS.clear()


# -----------------------------------------------------------------------------
# Executor
# -----------------------------------------------------------------------------


def _coerce_error(value: BaseException | Any) -> Exception:
    if isinstance(value, Exception):
        return value
    return HookExecutionError(str(value))


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _is_async_callable(task: Any) -> bool:
    return inspect.iscoroutinefunction(task) or inspect.iscoroutinefunction(getattr(task, "__call__", None))


async def _invoke(task: HookTask, context: HookContext) -> Any:
    """Call ``task`` and await whatever it returns; sync callables run in a worker thread."""
    if _is_async_callable(task):
        return await task(context)
    value = await asyncio.to_thread(task, context)
    return await _maybe_await(value)


class HookExecutor:
    """
    Run named hook tasks.

    Args:
        config: Executor settings (defaults to HookExecutorConfig())
        hooks: Name -> task mapping; names not found here fall back to
            the module registry
    """

    def __init__(
        self,
        config: HookExecutorConfig | None = None,
        hooks: dict[str, HookTask] | None = None,
    ):
        self.config = config or HookExecutorConfig()
        self.hooks = dict(hooks or {})
        # Strong references to abandoned (timed-out) tasks
        self._abandoned: set[asyncio.Future] = set()

    def _resolve(self, name: str) -> HookTask:
        task = self.hooks.get(name) or get_hook(name)
        if task is None:
            raise HookNotFoundError(name)
        return task

    async def _run_with_timeout(self, name: str, task: HookTask, context: HookContext) -> Any:
        future = asyncio.ensure_future(_invoke(task, context))

        done, _ = await asyncio.wait({future}, timeout=self.config.timeout)
        if future not in done:
            self._abandoned.add(future)
            future.add_done_callback(self._forget)
            raise HookTimeoutError(name, int(self.config.timeout * 1000))

        return future.result()

    async def _notify_error(self, name: str, context: HookContext, error: Exception) -> None:
        if self.config.on_error is None:
            return
        try:
            await _maybe_await(self.config.on_error(name, context, error))
        except Exception as e:
            # The task's error is the one reported
            logger.warning("on_error callback for hook %s failed: %s", name, e)

    def _forget(self, future: asyncio.Future) -> None:
        self._abandoned.discard(future)
        if not future.cancelled() and future.exception() is not None:
            logger.debug("Abandoned hook task finished with error: %s", future.exception())

    async def execute_task(
        self,
        name: str,
        context: HookContext,
        task: HookTask | None = None,
    ) -> HookResult:
        """
        Run one task.

        In non-blocking mode every failure, timeouts and failing
        before/after callbacks included, comes back as a failed HookResult.
        In blocking mode the failure is raised after the on_error callback
        and logging ran. An on_error callback that raises is logged and
        never replaces the original error.

        Args:
            name: Hook name (used for lookup when ``task`` is not given)
            context: Context passed to the task
            task: Explicit task to run instead of the registered one

        Returns:
            HookResult with duration measured around the task only
        """
        cfg = self.config
        # One hook log record per artifact
        artifact_ids = context.artifact_ids
        if cfg.hook_logger is not None:
            for artifact_id in artifact_ids:
                cfg.hook_logger.log_start(name, artifact_id)

        duration_ms = 0
        try:
            if cfg.before_execute is not None:
                await _maybe_await(cfg.before_execute(name, context))

            start = time.perf_counter()
            try:
                output = await self._run_with_timeout(name, task or self._resolve(name), context)
            finally:
                duration_ms = int((time.perf_counter() - start) * 1000)

            if cfg.after_execute is not None:
                await _maybe_await(cfg.after_execute(name, context))
        except Exception as exc:
            error = _coerce_error(exc)

            await self._notify_error(name, context, error)
            if cfg.log_errors:
                logger.error("Hook %s failed for %s: %s", name, ", ".join(artifact_ids), error)
            if cfg.hook_logger is not None:
                for artifact_id in artifact_ids:
                    cfg.hook_logger.log_error(name, artifact_id, error, duration_ms)

            if not cfg.non_blocking:
                raise error
            return HookResult(success=False, duration_ms=duration_ms, error=str(error))

        if cfg.hook_logger is not None:
            for artifact_id in artifact_ids:
                cfg.hook_logger.log_success(name, artifact_id, duration_ms)
        return HookResult(success=True, duration_ms=duration_ms, output=output)

    async def execute_all_independent(self, names: list[str], context: HookContext) -> list[HookResult]:
        """Run every task concurrently. Results come back in input order."""
        outcomes = await asyncio.gather(
            *(self.execute_task(name, context) for name in names),
            return_exceptions=True,
        )
        results = []
        for outcome in outcomes:
            if isinstance(outcome, HookResult):
                results.append(outcome)
            else:
                results.append(HookResult(success=False, duration_ms=0, error=str(_coerce_error(outcome))))
        return results

    async def execute_all_ordered(self, names: list[str], context: HookContext) -> list[HookResult]:
        """
        Run tasks one at a time in the given order.

        Non-blocking: all tasks run regardless of earlier failures.
        Blocking: the first failure stops the sequence and is raised.
        """
        results = []
        for name in names:
            results.append(await self.execute_task(name, context))
        return results
