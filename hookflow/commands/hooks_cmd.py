"""Git hook commands: run orchestrations from hooks and manage hook scripts.

Hook runs never fail the git operation that triggered them: every path
returns exit code 0 and problems go to the hook log and the console. The
one exception is pre-commit, which exits 1 when staged artifacts fail
validation.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, Callable

from rich.console import Console
from rich.table import Table

from ..artifacts.cascade import CascadeService
from ..artifacts.events import IN_PROGRESS, extract_artifact_ids
from ..artifacts.store import YamlArtifactStore
from ..config import HookflowConfig, load_config
from ..errors import ArtifactNotFoundError, HookflowError
from ..git import GitClient
from ..hooks.detection import PostCheckoutDetector, PostMergeDetector
from ..hooks.executor import HookContext, HookResult
from ..hooks.factory import create_hook_executor, is_hook_enabled
from ..hooks.idempotency import IdempotencyTracker
from ..hooks.installer import GIT_HOOK_TYPES, HookInstaller
from ..hooks.logger import HookLogger
from ..logging_setup import configure_logging
from ..platform.adapter import GitPlatformAdapter
from ..platform.draft_pr import DraftPRService
from ..platform.factory import create_adapter

logger = logging.getLogger(__name__)

POST_CHECKOUT = "post-checkout"
POST_MERGE = "post-merge"
PRE_COMMIT = "pre-commit"
PRE_PUSH = "pre-push"
HOOK_ACTOR = {
    POST_CHECKOUT: "Git Hook (hook@post-checkout)",
    POST_MERGE: "System Cascade (cascade@post-merge)",
}


@dataclass
class HookEnvironment:
    """Everything a hook run needs, built once from the repository root."""

    root: Path
    config: HookflowConfig
    store: YamlArtifactStore
    git: GitClient
    tracker: IdempotencyTracker
    hook_logger: HookLogger

    def close(self) -> None:
        self.hook_logger.close()


def load_environment(root: Path) -> HookEnvironment:
    """
    Raises:
        ConfigError: If the configuration cannot be loaded
    """
    config = load_config(root)
    configure_logging(config.logging.level)
    return HookEnvironment(
        root=root,
        config=config,
        store=YamlArtifactStore(root / config.artifacts_dir),
        git=GitClient(root),
        tracker=IdempotencyTracker(
            retry_timeout=timedelta(seconds=config.retry_timeout),
            allow_retry=config.allow_retry,
        ),
        hook_logger=HookLogger(
            root / config.logging.file,
            level=config.logging.level,
            console_output=config.logging.console,
        ),
    )


def load_platform(env: HookEnvironment) -> GitPlatformAdapter | None:
    """The configured platform adapter, None (with a warning) when it cannot be created."""
    try:
        return create_adapter(env.config.platform, env.root)
    except HookflowError as e:
        logger.warning("Git platform unavailable: %s", e)
        return None


def gate_artifacts(env: HookEnvironment, hook_name: str, artifact_ids: list[str]) -> list[str]:
    """
    Keep the ids the idempotency tracker lets through.

    Unknown ids pass; the orchestrator reports them.
    """
    runnable = []
    for artifact_id in artifact_ids:
        try:
            events = env.store.get_artifact(artifact_id).events
        except ArtifactNotFoundError:
            runnable.append(artifact_id)
            continue
        decision = env.tracker.should_execute(events, hook_name)
        if decision.should_execute:
            runnable.append(artifact_id)
        else:
            logger.info("Skipping %s for %s: %s", hook_name, artifact_id, decision.reason)
            env.hook_logger.debug(hook_name, artifact_id, {"skipped": decision.reason})
    return runnable


def run_orchestration(
    env: HookEnvironment,
    hook_name: str,
    context: HookContext,
    task: Callable[[HookContext], Any],
) -> HookResult:
    """Run ``task`` through a HookExecutor configured for ``hook_name``."""
    executor = create_hook_executor(hook_name, env.config, hook_logger=env.hook_logger)
    try:
        return asyncio.run(executor.execute_task(hook_name, context, task=task))
    except Exception as e:
        # Blocking mode raises; the git operation still must not fail
        return HookResult(success=False, duration_ms=0, error=str(e))


def record_executions(
    env: HookEnvironment,
    hook_name: str,
    artifact_ids: list[str],
    success: bool,
    duration_ms: int,
    error: str | None = None,
    artifact_events: dict[str, str] | None = None,
) -> None:
    artifact_events = artifact_events or {}
    status = "success" if success else "failed"
    for artifact_id in artifact_ids:
        if not env.store.exists(artifact_id):
            continue
        try:
            env.tracker.record_execution(
                env.store,
                artifact_id,
                hook_name,
                status,
                actor=HOOK_ACTOR[hook_name],
                duration=duration_ms,
                error=error,
                artifact_event=artifact_events.get(artifact_id),
            )
        except HookflowError as e:
            logger.error("Could not record %s execution on %s: %s", hook_name, artifact_id, e)


# -----------------------------------------------------------------------------
# hooks execute
# -----------------------------------------------------------------------------


def run_post_checkout(root: Path, previous_head: str, new_head: str, branch_flag: int) -> int:
    from ..orchestration.post_checkout import PostCheckoutOrchestrator

    console = Console(stderr=True)
    try:
        env = load_environment(root)
    except HookflowError as e:
        console.print(f"[yellow]hookflow:[/] post-checkout skipped: {e}")
        return 0

    try:
        if not is_hook_enabled(POST_CHECKOUT, env.config):
            logger.debug("post-checkout hook disabled by config")
            return 0

        detection = PostCheckoutDetector(env.git).detect_checkout(previous_head, new_head, branch_flag)
        if not detection.should_execute or detection.metadata is None:
            logger.debug("post-checkout: %s", detection.reason)
            return 0

        runnable = gate_artifacts(env, POST_CHECKOUT, detection.metadata.artifact_ids)
        if not runnable:
            return 0

        cfg = env.config.post_checkout
        draft_pr_service = None
        if cfg.create_draft_pr:
            platform = load_platform(env)
            if platform is not None:
                draft_pr_service = DraftPRService(platform, env.store, enabled=True)

        orchestrator = PostCheckoutOrchestrator(
            env.store,
            env.git,
            CascadeService(env.store),
            draft_pr_service=draft_pr_service,
            enable_cascade=cfg.enable_cascade,
            base_branch=cfg.base_branch,
        )
        context = HookContext(
            artifact_id=runnable[0],
            event_type=POST_CHECKOUT,
            git_data={
                "previousHead": previous_head,
                "newHead": new_head,
                "branchName": detection.metadata.branch_name,
            },
            extra={"artifactIds": runnable},
        )
        hook_result = run_orchestration(
            env,
            POST_CHECKOUT,
            context,
            lambda ctx: orchestrator.execute(previous_head, new_head, branch_flag, artifact_ids=runnable),
        )

        result = hook_result.output
        success = hook_result.success and result is not None and result.success
        error = hook_result.error or (None if result is None or result.success else result.reason)
        transitioned = {aid: IN_PROGRESS for aid in (result.artifacts_transitioned if result else [])}
        record_executions(
            env, POST_CHECKOUT, runnable, success, hook_result.duration_ms, error=error, artifact_events=transitioned
        )

        if result is not None:
            _print_checkout_result(console, result)
        elif error:
            console.print(f"[red]post-checkout failed:[/] {error}")
        return 0
    finally:
        env.close()


def _print_checkout_result(console: Console, result) -> None:
    if not result.success:
        console.print(f"[yellow]post-checkout:[/] {result.reason}")
    for artifact_id in result.artifacts_transitioned:
        console.print(f"[green]✓[/] {artifact_id} → in_progress")
    if result.parents_cascaded:
        console.print(f"  Parents cascaded: {', '.join(result.parents_cascaded)}", style="dim")
    if result.pr_url:
        console.print(f"  Draft PR: {result.pr_url}")
    for message in result.errors:
        console.print(f"[red]✗[/] {message}")
    for message in result.warnings:
        console.print(f"[yellow]⚠[/] {message}")


def run_post_merge(root: Path, squash_merge: int | None = None) -> int:
    from ..orchestration.post_merge import PostMergeOrchestrator
    from ..orchestration.strategy import StrategyExecutor

    console = Console(stderr=True)
    try:
        env = load_environment(root)
    except HookflowError as e:
        console.print(f"[yellow]hookflow:[/] post-merge skipped: {e}")
        return 0

    try:
        if not is_hook_enabled(POST_MERGE, env.config):
            logger.debug("post-merge hook disabled by config")
            return 0

        cfg = env.config.post_merge
        platform = load_platform(env)
        detection = PostMergeDetector(
            env.git,
            platform=platform,
            target_branch=cfg.target_branch,
            require_pr=cfg.require_pr,
        ).detect_merge(squash_merge)
        if not detection.should_execute or detection.metadata is None:
            logger.debug("post-merge: %s", detection.reason)
            return 0

        runnable = gate_artifacts(env, POST_MERGE, detection.metadata.artifact_ids)
        if not runnable:
            return 0
        metadata = dataclasses.replace(detection.metadata, artifact_ids=runnable)

        orchestrator = PostMergeOrchestrator(CascadeService(env.store))
        context = HookContext(
            artifact_id=runnable[0],
            event_type=POST_MERGE,
            git_data=metadata.to_dict(),
            extra={"artifactIds": runnable},
        )
        hook_result = run_orchestration(env, POST_MERGE, context, lambda ctx: orchestrator.execute(metadata))

        result = hook_result.output
        completed = {}
        if result is not None:
            completed = {
                e.artifact_id: e.event for e in result.completion_cascade.events if e.artifact_id in runnable
            }
        record_executions(
            env,
            POST_MERGE,
            runnable,
            hook_result.success,
            hook_result.duration_ms,
            error=hook_result.error,
            artifact_events=completed,
        )
        if result is None:
            console.print(f"[red]post-merge failed:[/] {hook_result.error}")
            return 0

        console.print(result.summary, markup=False, highlight=False)

        strategy = StrategyExecutor(
            env.git,
            platform=platform,
            config=cfg,
            artifacts_dir=env.config.artifacts_dir,
            console=console,
        ).execute(cfg.strategy, result)
        if strategy.success:
            console.print(f"[green]✓[/] {strategy.message}")
        else:
            console.print(f"[red]✗[/] {strategy.message}")
        for message in strategy.warnings:
            console.print(f"[yellow]⚠[/] {message}")
        return 0
    finally:
        env.close()


def run_pre_commit(root: Path) -> int:
    """Validate staged artifacts; exit code 1 blocks the commit.

    Only validation errors block. Configuration, git or task failures are
    reported and the commit goes ahead.
    """
    from ..hooks.validation import PreCommitValidator

    console = Console(stderr=True)
    try:
        env = load_environment(root)
    except HookflowError as e:
        console.print(f"[yellow]hookflow:[/] pre-commit skipped: {e}")
        return 0

    try:
        if not is_hook_enabled(PRE_COMMIT, env.config):
            logger.debug("pre-commit hook disabled by config")
            return 0

        validator = PreCommitValidator(
            env.store,
            env.git,
            env.config.artifacts_dir,
            validate_dependencies=env.config.pre_commit.validate_dependencies,
        )
        try:
            staged = validator.staged_artifact_ids()
        except HookflowError as e:
            console.print(f"[yellow]hookflow:[/] pre-commit skipped: {e}")
            return 0
        if not staged:
            return 0

        context = HookContext(artifact_id=staged[0], event_type=PRE_COMMIT, extra={"artifactIds": staged})
        hook_result = run_orchestration(env, PRE_COMMIT, context, lambda ctx: validator.validate())
        result = hook_result.output
        if result is None:
            console.print(f"[yellow]pre-commit validation did not run:[/] {hook_result.error}")
            return 0
        if result.valid:
            logger.debug("pre-commit: %d artifact(s) valid", result.artifacts_validated)
            return 0

        console.print(f"[red]✗ Commit blocked:[/] {len(result.errors)} error(s) found")
        for error in result.errors:
            console.print(f"\n[bold]\\[{error.artifact_id}][/] {error.message}")
            if error.field:
                console.print(f"   Field: {error.field}", style="dim")
            if error.suggested_fix:
                console.print(f"   Fix: {error.suggested_fix}")
        return 1
    finally:
        env.close()


def run_pre_push(root: Path) -> int:
    """Warn about uncommitted artifacts and branch artifacts in draft/blocked. Never blocks."""
    from ..hooks.validation import PrePushValidator

    console = Console(stderr=True)
    try:
        env = load_environment(root)
    except HookflowError as e:
        console.print(f"[yellow]hookflow:[/] pre-push skipped: {e}")
        return 0

    try:
        if not is_hook_enabled(PRE_PUSH, env.config):
            logger.debug("pre-push hook disabled by config")
            return 0

        try:
            branch = env.git.current_branch()
        except HookflowError as e:
            console.print(f"[yellow]hookflow:[/] pre-push skipped: {e}")
            return 0

        cfg = env.config.pre_push
        validator = PrePushValidator(
            env.store,
            env.git,
            env.config.artifacts_dir,
            check_uncommitted=cfg.check_uncommitted,
            check_states=cfg.check_states,
        )
        artifact_ids = extract_artifact_ids(branch)
        # Branches without artifact ids are logged under the branch name
        context = HookContext(
            artifact_id=artifact_ids[0] if artifact_ids else branch,
            event_type=PRE_PUSH,
            git_data={"branchName": branch},
            extra={"artifactIds": artifact_ids},
        )
        hook_result = run_orchestration(env, PRE_PUSH, context, lambda ctx: validator.validate(branch))
        result = hook_result.output
        if result is None:
            console.print(f"[yellow]pre-push checks did not run:[/] {hook_result.error}")
            return 0

        for warning in result.warnings:
            console.print(f"[yellow]⚠[/] {warning.message}")
            if warning.details:
                console.print(f"   {warning.details}", style="dim", markup=False)
        return 0
    finally:
        env.close()


# -----------------------------------------------------------------------------
# hooks install / uninstall / status
# -----------------------------------------------------------------------------


def run_install(root: Path, *, force: bool = False, hook_types: tuple[str, ...] = ()) -> int:
    console = Console(stderr=True)
    installer = HookInstaller(root, force=force)
    result = installer.install_hooks(hook_types or GIT_HOOK_TYPES)

    if not result.success:
        console.print(f"[red]Failed to install hooks:[/] {result.error}")
        return 1
    for hook_type in result.installed:
        console.print(f"[green]✓[/] Installed {hook_type}")
    for hook_type in result.backed_up:
        console.print(f"  Backed up existing {hook_type}", style="dim")
    for hook_type in result.skipped:
        console.print(f"[yellow]⚠[/] Skipped {hook_type}: existing hook not managed by hookflow (use --force)")
    return 0


def run_uninstall(root: Path, *, hook_types: tuple[str, ...] = ()) -> int:
    console = Console(stderr=True)
    result = HookInstaller(root).uninstall_hooks(hook_types or GIT_HOOK_TYPES)

    if not result.success:
        console.print(f"[red]Failed to uninstall hooks:[/] {result.error}")
        return 1
    if not result.removed:
        console.print("No hookflow hooks installed", style="dim")
    for hook_type in result.removed:
        console.print(f"[green]✓[/] Removed {hook_type}")
    for hook_type in result.restored:
        console.print(f"  Restored previous {hook_type}", style="dim")
    return 0


def run_status(root: Path) -> int:
    console = Console()
    installed = {h.type: h for h in HookInstaller(root).detect_existing_hooks()}

    table = Table(title="Git hooks")
    table.add_column("hook", style="cyan", no_wrap=True)
    table.add_column("status")
    table.add_column("backup", style="dim")

    for hook_type in GIT_HOOK_TYPES:
        info = installed.get(hook_type)
        if info is None:
            status = "not installed"
        elif info.is_managed:
            status = "[green]managed[/]"
        else:
            status = "[yellow]foreign[/]"
        table.add_row(hook_type, status, "yes" if info is not None and info.has_backup else "")

    console.print(table)
    return 0
