"""Impact analysis commands."""

from __future__ import annotations

import re
from pathlib import Path

import click

from ..analysis.formatter import ImpactReportFormatter
from ..analysis.impact import ImpactAnalyzer
from ..artifacts.store import YamlArtifactStore
from ..config import load_config
from ..errors import HookflowError

_ARTIFACT_ID = re.compile(r"[A-Z](?:\.\d+)*")


def _analyzer(root: Path) -> ImpactAnalyzer:
    try:
        config = load_config(root)
    except HookflowError as e:
        raise click.ClickException(str(e)) from e
    return ImpactAnalyzer(YamlArtifactStore(root / config.artifacts_dir))


def _check_id(artifact_id: str) -> None:
    if not _ARTIFACT_ID.fullmatch(artifact_id):
        raise click.ClickException(f"Invalid artifact ID: {artifact_id!r}")


def run_impact_analyze(
    root: Path,
    artifact_id: str,
    *,
    operation: str = "cancel",
    fmt: str = "cli",
    no_color: bool = False,
    verbose: bool = False,
) -> int:
    _check_id(artifact_id)
    try:
        report = _analyzer(root).analyze(artifact_id, operation)
    except HookflowError as e:
        raise click.ClickException(str(e)) from e

    formatter = ImpactReportFormatter(format=fmt, no_color=no_color, verbose=verbose)
    click.echo(formatter.format(report))
    return 0


def run_impact_cancellation(
    root: Path,
    artifact_id: str,
    *,
    fmt: str = "cli",
    no_color: bool = False,
    verbose: bool = False,
) -> int:
    _check_id(artifact_id)
    try:
        report = _analyzer(root).analyze_cancellation(artifact_id)
    except HookflowError as e:
        raise click.ClickException(str(e)) from e

    formatter = ImpactReportFormatter(format=fmt, no_color=no_color, verbose=verbose)
    click.echo(formatter.format(report))
    return 0
