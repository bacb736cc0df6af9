"""Implementation of the `codefence` highlight command."""

from __future__ import annotations

import typer

from codefence.api.service import DEFAULT_OUTPUT_DIR, HighlightRequest, HighlightService
from codefence.core.config import load_settings
from codefence.core.exceptions import ConfigError

from .._options import (
    CategoriesOption,
    ConfigFileOption,
    DebugOption,
    InputPathArgument,
    JobsOption,
    ListLanguagesOption,
    OutputDirOption,
    StdoutOption,
    StrictOption,
    VerboseOption,
    VersionOption,
)
from ..diagnostics import CliEmitter
from ..presenter import (
    consume_event_diagnostics,
    present_highlight_summary,
    present_skipped_languages,
)
from ..state import debug_enabled, emit_error, set_cli_state


_SERVICE = HighlightService()


def _list_languages() -> None:
    from codefence.adapters.treesitter.builtins import builtin_names

    for name in builtin_names():
        typer.echo(name)


def highlight(
    ctx: typer.Context,
    inputs: InputPathArgument = None,
    config_file: ConfigFileOption = None,
    output_dir: OutputDirOption = DEFAULT_OUTPUT_DIR,
    stdout: StdoutOption = False,
    jobs: JobsOption = None,
    categories: CategoriesOption = None,
    strict: StrictOption = False,
    list_languages: ListLanguagesOption = False,
    verbose: VerboseOption = 0,
    debug: DebugOption = False,
    version: VersionOption = False,
) -> None:
    """Highlight fenced code blocks of Markdown documents into HTML."""

    state = set_cli_state(ctx=ctx, verbosity=verbose, debug=debug)

    if ctx.resilient_parsing:
        return

    if list_languages:
        _list_languages()
        raise typer.Exit()

    document_paths = list(inputs or [])
    if not document_paths:
        typer.echo(ctx.get_help())
        raise typer.Exit()

    try:
        settings = load_settings(config_file, required=config_file is not None)
    except ConfigError as exc:
        emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc

    overrides: dict[str, object] = {}
    if categories is not None:
        overrides["categories"] = categories
    if strict:
        overrides["strict"] = True
    if overrides:
        settings = settings.model_copy(update=overrides)

    emitter = CliEmitter(state=state, debug_enabled=debug_enabled())
    request = HighlightRequest(
        documents=document_paths,
        output_dir=None if stdout else output_dir,
        settings=settings,
        jobs=jobs,
        emitter=emitter,
    )
    response = _SERVICE.execute(request)

    if stdout:
        for outcome in response.outcomes:
            if outcome.content is not None:
                typer.echo(outcome.content, nl=False)
    else:
        present_highlight_summary(state, response)

    present_skipped_languages(state, response)
    for line in consume_event_diagnostics(state):
        state.err_console.print(line)

    if not response.succeeded:
        raise typer.Exit(code=1)


__all__ = ["highlight"]
