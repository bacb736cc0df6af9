"""Shared Typer option definitions for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from codefence.core.categories import CategoryProfile


INPUTS_PANEL = "Input Handling"
RENDERING_PANEL = "Rendering"
OUTPUT_PANEL = "Output"
DIAGNOSTICS_PANEL = "Diagnostics"

InputPathArgument = Annotated[
    list[Path] | None,
    typer.Argument(
        metavar="FILE...",
        help="Markdown documents whose fenced code blocks should be highlighted.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        rich_help_panel=INPUTS_PANEL,
    ),
]

ConfigFileOption = Annotated[
    Path | None,
    typer.Option(
        "--config-file",
        "-c",
        help=(
            "TOML file declaring grammars and queries. Defaults to ./codefence.toml "
            "when present."
        ),
        show_default=False,
        dir_okay=False,
        rich_help_panel=INPUTS_PANEL,
    ),
]

OutputDirOption = Annotated[
    Path,
    typer.Option(
        "--output-dir",
        "-o",
        help="Directory receiving the highlighted documents.",
        rich_help_panel=OUTPUT_PANEL,
    ),
]

StdoutOption = Annotated[
    bool,
    typer.Option(
        "--stdout",
        help="Print highlighted documents to stdout instead of writing files.",
        rich_help_panel=OUTPUT_PANEL,
    ),
]

JobsOption = Annotated[
    int | None,
    typer.Option(
        "--jobs",
        "-j",
        min=1,
        help="Number of documents highlighted concurrently (defaults to the CPU count).",
        show_default=False,
        rich_help_panel=RENDERING_PANEL,
    ),
]

CategoriesOption = Annotated[
    CategoryProfile | None,
    typer.Option(
        "--categories",
        help="Highlight category table used to name CSS classes (overrides the config file).",
        case_sensitive=False,
        show_default=False,
        rich_help_panel=RENDERING_PANEL,
    ),
]

StrictOption = Annotated[
    bool,
    typer.Option(
        "--strict",
        help="Fail documents using a language that cannot be resolved instead of skipping it.",
        rich_help_panel=RENDERING_PANEL,
    ),
]

ListLanguagesOption = Annotated[
    bool,
    typer.Option(
        "--list-languages",
        help="List languages with a builtin grammar and exit.",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]

def _print_version(value: bool) -> None:
    if value:
        from codefence.version import get_version

        typer.echo(f"codefence {get_version()}")
        raise typer.Exit()


VersionOption = Annotated[
    bool,
    typer.Option(
        "--version",
        callback=_print_version,
        is_eager=True,
        help="Show the installed version and exit.",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]

VerboseOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        "-v",
        count=True,
        help="Increase CLI verbosity. Combine multiple times for additional diagnostics.",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]

DebugOption = Annotated[
    bool,
    typer.Option(
        "--debug",
        help="Show full tracebacks when an unexpected error occurs.",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]


__all__ = [
    "CategoriesOption",
    "ConfigFileOption",
    "DebugOption",
    "InputPathArgument",
    "JobsOption",
    "ListLanguagesOption",
    "OutputDirOption",
    "StdoutOption",
    "StrictOption",
    "VerboseOption",
    "VersionOption",
]
