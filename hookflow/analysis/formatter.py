"""Render impact reports for the terminal (rich styles) or as JSON.

Reports are a tagged union discriminated by their ``operation`` field;
each operation has its own renderer in a dispatch table.
"""

from __future__ import annotations

import io
import json
from typing import Callable, Literal

from rich.console import Console
from rich.text import Text

from .impact import AnyImpactReport, CancellationImpactReport, ImpactReport

OutputFormat = Literal["cli", "json"]

SYMBOL_ERROR = "✗"
SYMBOL_WARNING = "⚠"
SYMBOL_SUCCESS = "✓"
SYMBOL_INFO = "ℹ"
BULLET = "•"

OPERATION_LABELS = {
    "cancel": "Cancel",
    "delete": "Delete",
    "remove_dependency": "Remove Dependency",
    "cancellation": "Cancel",
}


class ImpactReportFormatter:
    """
    Format impact reports.

    Args:
        format: "cli" for styled text, "json" for machine-readable output
        no_color: Emit plain text without ANSI styles
        verbose: Include per-artifact reasons
    """

    def __init__(self, format: OutputFormat = "cli", no_color: bool = False, verbose: bool = False):
        if format not in ("cli", "json"):
            raise ValueError(f"Unknown output format: {format!r}")
        self.output_format = format
        self.no_color = no_color
        self.verbose = verbose
        self._renderers: dict[str, Callable[..., Text]] = {
            "cancel": self._render_operation,
            "delete": self._render_operation,
            "remove_dependency": self._render_operation,
            "cancellation": self._render_cancellation,
        }

    def format(self, report: AnyImpactReport) -> str:
        if self.output_format == "json":
            return json.dumps(report.to_dict(), indent=2, ensure_ascii=False)

        renderer = self._renderers.get(report.operation)
        if renderer is None:
            raise ValueError(f"No renderer for operation: {report.operation!r}")
        return self._to_str(renderer(report))

    def render(self, report: AnyImpactReport) -> Text:
        """Styled rich Text for printing straight to a Console."""
        return self._renderers[report.operation](report)

    def _to_str(self, text: Text) -> str:
        if self.no_color:
            return text.plain
        buffer = io.StringIO()
        console = Console(file=buffer, force_terminal=True, color_system="standard", highlight=False, width=200)
        console.print(text, end="", soft_wrap=True)
        return buffer.getvalue()

    # -------------------------------------------------------------------------
    # Pieces
    # -------------------------------------------------------------------------

    def _header(self, report: AnyImpactReport) -> Text:
        return Text.assemble(
            ("Impact Analysis:", "bold cyan"),
            f" {OPERATION_LABELS[report.operation]} {report.artifact_id}",
        )

    def _item(self, lines: list[Text], artifact_id: str, title: str, detail: str | None = None) -> None:
        lines.append(Text(f"  {BULLET} {artifact_id} - {title}"))
        if detail and self.verbose:
            lines.append(Text(f"    {detail}", style="dim"))

    def _summary(self, lines: list[Text], summary: str) -> None:
        lines.append(Text.assemble(("Summary:", "bold"), f" {summary}"))

    # -------------------------------------------------------------------------
    # Renderers
    # -------------------------------------------------------------------------

    def _render_operation(self, report: ImpactReport) -> Text:
        lines = [self._header(report), Text()]

        sections = [
            ("blocks_parent_completion", f"{SYMBOL_WARNING} Blocks Parent Completion", "yellow"),
            ("breaks_dependency", f"{SYMBOL_ERROR} Breaks Dependencies", "red"),
            ("orphans_children", f"{SYMBOL_WARNING} Orphans Children", "yellow"),
        ]
        for impact_type, label, style in sections:
            items = report.by_type(impact_type)
            if not items:
                continue
            lines.append(Text(f"{label} ({len(items)})", style=style))
            for item in items:
                self._item(lines, item.id, item.title, item.reason)
            lines.append(Text())

        total = len(report.impacted_artifacts)
        self._summary(lines, f"{total} artifact{'' if total == 1 else 's'} affected")

        if not report.has_impact:
            lines.append(Text("Safe to proceed without --force flag", style="green"))
        elif report.by_type("breaks_dependency"):
            lines.append(Text(f"{SYMBOL_ERROR} --force flag may be required", style="red"))

        return Text("\n").join(lines)

    def _render_cancellation(self, report: CancellationImpactReport) -> Text:
        lines = [self._header(report), Text()]

        if report.parent_completion_affected:
            lines.append(Text(f"{SYMBOL_SUCCESS} Parent Completion", style="green"))
            for parent in report.parent_completion_affected:
                self._item(lines, parent.id, parent.title, parent.message)
            lines.append(Text())

        if report.dependents_unblocked:
            lines.append(
                Text(f"{SYMBOL_WARNING} Dependents Unblocked ({len(report.dependents_unblocked)})", style="yellow")
            )
            for dependent in report.dependents_unblocked:
                self._item(lines, dependent.id, dependent.title, dependent.message)
            lines.append(Text())

        if report.children:
            lines.append(Text(f"{SYMBOL_INFO} Children ({len(report.children)})", style="blue"))
            for child in report.children:
                self._item(lines, child.id, child.title)
            if self.verbose:
                lines.append(Text("    Will remain in current state", style="dim"))
            lines.append(Text())

        self._summary(lines, report.summary)
        if not report.has_impact:
            lines.append(Text("Safe to proceed without --force flag", style="green"))

        return Text("\n").join(lines)
