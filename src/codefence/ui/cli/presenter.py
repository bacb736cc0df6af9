"""Rich-aware presenters for CLI output and diagnostics."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

import typer

from codefence.api.service import HighlightResponse

from .state import CLIState


if TYPE_CHECKING:  # pragma: no cover - typing only
    from rich.console import Console


def _get_console(state: CLIState) -> Console | None:
    """Return the stdout console when it is attached to a terminal."""
    console = state.console
    if console.is_terminal:
        return console
    return None


def _format_path(path: Path) -> str:
    """Format a path relative to the current working directory for display."""
    resolved = path.resolve()
    try:
        return str(resolved.relative_to(Path.cwd()))
    except ValueError:
        return str(resolved)


def _summary_rows(response: HighlightResponse) -> list[tuple[str, str, str, str]]:
    rows: list[tuple[str, str, str, str]] = []
    for outcome in response.outcomes:
        source = _format_path(outcome.source)
        if outcome.ok:
            target = _format_path(outcome.target) if outcome.target is not None else "stdout"
            rows.append((source, target, f"{outcome.rendered}/{outcome.blocks}", "ok"))
        else:
            rows.append((source, "-", "-", "failed"))
    return rows


def _render_summary(state: CLIState, rows: Sequence[tuple[str, str, str, str]]) -> None:
    console = _get_console(state)
    if console is not None:
        from rich import box
        from rich.table import Table

        table = Table(title="Highlight Summary", box=box.SQUARE, header_style="bold cyan")
        table.add_column("Document", style="cyan")
        table.add_column("Output")
        table.add_column("Blocks", justify="right", style="magenta", no_wrap=True)
        table.add_column("Status")
        for source, target, blocks, status in rows:
            style = "green" if status == "ok" else "red"
            table.add_row(source, target, blocks, f"[{style}]{status}[/{style}]")
        console.print(table)
        return

    for source, target, blocks, status in rows:
        count = f"{blocks} block(s)" if status == "ok" else blocks
        typer.echo(f"  * {source} -> {target} ({count}, {status})")


def present_highlight_summary(state: CLIState, response: HighlightResponse) -> None:
    """Display the per-document outcome of a highlighting run."""
    rows = _summary_rows(response)
    if rows:
        _render_summary(state, rows)


def present_skipped_languages(state: CLIState, response: HighlightResponse) -> None:
    """List the languages that could not be resolved, at verbosity one and above."""
    if state.verbosity <= 0 or not response.skipped_languages:
        return
    names = ", ".join(sorted(response.skipped_languages))
    state.err_console.print(f"Languages left unhighlighted: {names}")


def consume_event_diagnostics(state: CLIState) -> list[str]:
    """Return summary lines for recorded events according to verbosity."""
    if state.verbosity < 2:
        state.events.clear()
        return []

    output_lines: list[str] = []
    resolved = state.consume_events("language_resolved")
    if resolved:
        output_lines.append("Resolved languages:")
        for event in sorted(resolved, key=lambda item: str(item.get("language", ""))):
            output_lines.append(f"  - {event.get('language')} ({event.get('source')})")

    for event in state.consume_events("predicates_disabled"):
        output_lines.append(
            f"Disabled {event.get('count', 0)} {event.get('query', 'query')} pattern(s) "
            f"for '{event.get('language')}'"
        )

    state.events.clear()
    return output_lines


__all__ = [
    "consume_event_diagnostics",
    "present_highlight_summary",
    "present_skipped_languages",
]
