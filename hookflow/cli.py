"""CLI entrypoint for hookflow."""

import sys
from pathlib import Path

import click

from . import __version__
from .analysis.impact import OPERATIONS
from .hooks.installer import GIT_HOOK_TYPES


@click.group()
@click.version_option(__version__, prog_name="hookflow")
@click.option(
    "--root",
    "-r",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Git repository root (defaults to the current directory)",
)
@click.pass_context
def cli(ctx: click.Context, root: Path | None) -> None:
    """hookflow - Git-driven state automation for artifact trees.

    Moves artifacts through their lifecycle from git hooks and reports
    the impact of proposed changes.
    """
    ctx.ensure_object(dict)
    ctx.obj["root"] = (root or Path.cwd()).resolve()


# -----------------------------------------------------------------------------
# Hook commands
# -----------------------------------------------------------------------------


@cli.group()
def hooks() -> None:
    """Git hook integration."""
    pass


@hooks.group("execute")
def hooks_execute() -> None:
    """Run a hook (called from the installed git hook scripts)."""
    pass


@hooks_execute.command("post-checkout")
@click.argument("previous_head", type=str)
@click.argument("new_head", type=str)
@click.argument("branch_flag", type=int)
@click.pass_context
def hooks_execute_post_checkout(ctx: click.Context, previous_head: str, new_head: str, branch_flag: int) -> None:
    """Transition artifacts named in a newly checked-out branch to in_progress."""
    from .commands.hooks_cmd import run_post_checkout

    sys.exit(run_post_checkout(ctx.obj["root"], previous_head, new_head, branch_flag))


@hooks_execute.command("post-merge")
@click.argument("squash_merge", type=int, required=False)
@click.pass_context
def hooks_execute_post_merge(ctx: click.Context, squash_merge: int | None) -> None:
    """Run completion and readiness cascades for a merged PR and apply them."""
    from .commands.hooks_cmd import run_post_merge

    sys.exit(run_post_merge(ctx.obj["root"], squash_merge))


@hooks_execute.command("pre-commit")
@click.pass_context
def hooks_execute_pre_commit(ctx: click.Context) -> None:
    """Validate staged artifacts; a failed validation blocks the commit."""
    from .commands.hooks_cmd import run_pre_commit

    sys.exit(run_pre_commit(ctx.obj["root"]))


@hooks_execute.command("pre-push")
@click.argument("remote", type=str, required=False)
@click.argument("url", type=str, required=False)
@click.pass_context
def hooks_execute_pre_push(ctx: click.Context, remote: str | None, url: str | None) -> None:
    """Warn about uncommitted artifacts and draft or blocked branch artifacts."""
    from .commands.hooks_cmd import run_pre_push

    sys.exit(run_pre_push(ctx.obj["root"]))


@hooks.command("install")
@click.option("--force", is_flag=True, help="Back up and replace existing hooks not managed by hookflow")
@click.option(
    "--hook",
    "hook_types",
    type=click.Choice(GIT_HOOK_TYPES),
    multiple=True,
    help="Install only this hook (repeatable; default: all)",
)
@click.pass_context
def hooks_install(ctx: click.Context, force: bool, hook_types: tuple[str, ...]) -> None:
    """Install hookflow git hooks into .git/hooks."""
    from .commands.hooks_cmd import run_install

    sys.exit(run_install(ctx.obj["root"], force=force, hook_types=hook_types))


@hooks.command("uninstall")
@click.option(
    "--hook",
    "hook_types",
    type=click.Choice(GIT_HOOK_TYPES),
    multiple=True,
    help="Remove only this hook (repeatable; default: all)",
)
@click.pass_context
def hooks_uninstall(ctx: click.Context, hook_types: tuple[str, ...]) -> None:
    """Remove hookflow git hooks, restoring any backups."""
    from .commands.hooks_cmd import run_uninstall

    sys.exit(run_uninstall(ctx.obj["root"], hook_types=hook_types))


@hooks.command("status")
@click.pass_context
def hooks_status(ctx: click.Context) -> None:
    """Show which git hooks are installed."""
    from .commands.hooks_cmd import run_status

    sys.exit(run_status(ctx.obj["root"]))


# -----------------------------------------------------------------------------
# Impact analysis commands
# -----------------------------------------------------------------------------


def _report_options(f):
    f = click.option("--verbose", is_flag=True, help="Include per-artifact reasons")(f)
    f = click.option("--no-color", is_flag=True, help="Plain text output")(f)
    f = click.option(
        "--format",
        "fmt",
        type=click.Choice(["cli", "json"]),
        default="cli",
        help="Output format",
    )(f)
    return f


@cli.group()
def impact() -> None:
    """Impact analysis for artifact operations."""
    pass


@impact.command("analyze")
@click.argument("artifact_id", type=str)
@click.option(
    "--operation",
    type=click.Choice(OPERATIONS),
    default="cancel",
    help="Operation to analyze",
)
@_report_options
@click.pass_context
def impact_analyze(
    ctx: click.Context,
    artifact_id: str,
    operation: str,
    fmt: str,
    no_color: bool,
    verbose: bool,
) -> None:
    """Show which artifacts an operation on ARTIFACT_ID would affect.

    Examples:

        hookflow impact analyze A.1.2

        hookflow impact analyze A.1 --operation delete --format json
    """
    from .commands.impact_cmd import run_impact_analyze

    sys.exit(
        run_impact_analyze(
            ctx.obj["root"],
            artifact_id,
            operation=operation,
            fmt=fmt,
            no_color=no_color,
            verbose=verbose,
        )
    )


@impact.command("cancellation")
@click.argument("artifact_id", type=str)
@_report_options
@click.pass_context
def impact_cancellation(ctx: click.Context, artifact_id: str, fmt: str, no_color: bool, verbose: bool) -> None:
    """Detailed report of what cancelling ARTIFACT_ID would change."""
    from .commands.impact_cmd import run_impact_cancellation

    sys.exit(run_impact_cancellation(ctx.obj["root"], artifact_id, fmt=fmt, no_color=no_color, verbose=verbose))


if __name__ == "__main__":
    cli()
