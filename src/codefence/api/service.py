"""Batch orchestration of document highlighting for CLI and embedding integrations."""

from __future__ import annotations

from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
import os
from pathlib import Path

from ..core.config import CodefenceSettings
from ..core.diagnostics import DiagnosticEmitter, ensure_emitter
from ..core.exceptions import (
    CodefenceError,
    DocumentError,
    LanguageResolutionError,
)
from ..core.fences import FenceLocator
from ..core.registry import GrammarBackend, LanguageRegistry
from ..core.renderer import HighlightEngine
from .document import MarkdownDocument


__all__ = [
    "DEFAULT_OUTPUT_DIR",
    "DocumentOutcome",
    "HighlightRequest",
    "HighlightResponse",
    "HighlightService",
    "output_path",
]

DEFAULT_OUTPUT_DIR = Path("codefence.out")


@dataclass(slots=True)
class HighlightRequest:
    """Description of a highlighting run over one or more documents."""

    documents: Sequence[Path]
    output_dir: Path | None = DEFAULT_OUTPUT_DIR
    settings: CodefenceSettings = field(default_factory=CodefenceSettings)
    jobs: int | None = None
    emitter: DiagnosticEmitter | None = None


@dataclass(slots=True)
class DocumentOutcome:
    """Result of highlighting a single document."""

    source: Path
    target: Path | None = None
    blocks: int = 0
    rendered: int = 0
    content: str | None = None
    error: CodefenceError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class HighlightResponse:
    """Captured outcome of :class:`HighlightService` execution."""

    request: HighlightRequest
    outcomes: list[DocumentOutcome]
    skipped_languages: dict[str, LanguageResolutionError] = field(default_factory=dict)

    @property
    def failed(self) -> list[DocumentOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    @property
    def succeeded(self) -> bool:
        return not self.failed


def output_path(source: Path, output_dir: Path, *, root: Path | None = None) -> Path:
    """Return where the highlighted copy of ``source`` is written.

    Sources below ``root`` keep their relative location; anything else is
    written by file name.
    """
    base = (root or Path.cwd()).resolve()
    resolved = source.resolve()
    try:
        relative = resolved.relative_to(base)
    except ValueError:
        relative = Path(source.name)
    return output_dir / relative


def _default_jobs(count: int) -> int:
    return max(1, min(count, os.cpu_count() or 1))


class HighlightService:
    """High-level façade running the highlighting pipeline over a batch of files.

    One :class:`LanguageRegistry` is shared by every document of a run so each
    language is resolved once, whichever document needs it first.
    """

    def __init__(
        self,
        *,
        backend: GrammarBackend | None = None,
        engine: HighlightEngine | None = None,
        locator: FenceLocator | None = None,
    ) -> None:
        self._backend = backend
        self._engine = engine
        self._locator = locator

    def build_registry(
        self, settings: CodefenceSettings, emitter: DiagnosticEmitter
    ) -> LanguageRegistry:
        return LanguageRegistry(settings, emitter=emitter, backend=self._backend)

    def execute(self, request: HighlightRequest) -> HighlightResponse:
        """Highlight every requested document and return the per-document outcomes."""
        emitter = ensure_emitter(request.emitter)
        registry = self.build_registry(request.settings, emitter)
        documents = list(request.documents)
        jobs = request.jobs or _default_jobs(len(documents))

        def _task(path: Path) -> DocumentOutcome:
            return self._process(path, request, registry, emitter)

        if jobs <= 1 or len(documents) <= 1:
            outcomes = [_task(path) for path in documents]
        else:
            with ThreadPoolExecutor(max_workers=jobs) as executor:
                outcomes = list(executor.map(_task, documents))

        return HighlightResponse(
            request=request,
            outcomes=outcomes,
            skipped_languages=registry.failures,
        )

    def _process(
        self,
        path: Path,
        request: HighlightRequest,
        registry: LanguageRegistry,
        emitter: DiagnosticEmitter,
    ) -> DocumentOutcome:
        outcome = DocumentOutcome(source=path)
        try:
            document = MarkdownDocument.from_path(path)
            stats = document.highlight(
                registry,
                emitter=emitter,
                engine=self._engine,
                locator=self._locator,
            )
            outcome.blocks = stats.blocks
            outcome.rendered = stats.rendered
            if request.output_dir is None:
                outcome.content = document.text
            else:
                outcome.target = document.write(output_path(path, request.output_dir))
                emitter.event(
                    "document_written",
                    {
                        "source": str(path),
                        "target": str(outcome.target),
                        "blocks": stats.rendered,
                        "skipped": stats.skipped,
                    },
                )
        except DocumentError as exc:
            emitter.error(str(exc), exc)
            outcome.error = exc
        except CodefenceError as exc:
            # Strict resolution failures and broken invariants only fail this document.
            error = DocumentError(f"Failed to highlight '{path}': {exc}")
            error.__cause__ = exc
            emitter.error(str(error), exc)
            outcome.error = error
        return outcome
