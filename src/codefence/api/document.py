"""Highlighting of every fenced block of a Markdown document.

Architecture
: `render` is the pure entry point: it locates fenced blocks, resolves their
  language through a caller-supplied lookup, renders each block, and splices
  the markup back into the source in a single pass.
: `MarkdownDocument` wraps a file on disk so batch runs can keep the original
  bytes next to the highlighted result.

Implementation Rationale
: Offsets reported by the fence locator are UTF-8 byte offsets, so the whole
  pipeline works on bytes and only decodes the final result.
: Blocks are independent once their language is resolved. An optional
  executor renders them concurrently; edits are collected in document order
  regardless of completion order.

Usage Example
:
    >>> from codefence.api.document import render
    >>> render("No fences here.\\n", lambda name: None)
    'No fences here.\\n'
"""

from __future__ import annotations

from collections.abc import Sequence
from concurrent.futures import Executor
from dataclasses import dataclass, field
from pathlib import Path

from ..core.diagnostics import DiagnosticEmitter, NullEmitter
from ..core.exceptions import DocumentError, HighlightError
from ..core.fences import FenceBlock, FenceLocator
from ..core.patcher import Edit, PatchPlan
from ..core.renderer import BlockRenderer, HighlightEngine, Resolver


__all__ = [
    "HighlightStats",
    "MarkdownDocument",
    "collect_edits",
    "render",
    "render_bytes",
]


@dataclass(slots=True)
class HighlightStats:
    """Counters describing one highlighting pass."""

    blocks: int = 0
    rendered: int = 0

    @property
    def skipped(self) -> int:
        return self.blocks - self.rendered


def _render_block(
    block: FenceBlock,
    source: bytes,
    resolver: Resolver,
    renderer: BlockRenderer,
    emitter: DiagnosticEmitter,
) -> Edit | None:
    language = block.language(source)
    if not language:
        return None
    config = resolver(language)
    if config is None:
        return None
    try:
        markup = renderer.render(block.content(source), config)
    except HighlightError as exc:
        emitter.warning(
            f"Leaving '{language}' block at byte {block.full_range.start} untouched: {exc}",
            exc,
        )
        return None
    return Edit(block.full_range.start, block.full_range.end, markup)


def collect_edits(
    source: bytes,
    blocks: Sequence[FenceBlock],
    resolver: Resolver,
    renderer: BlockRenderer,
    *,
    emitter: DiagnosticEmitter | None = None,
    executor: Executor | None = None,
) -> list[Edit]:
    """Render ``blocks`` and return the resulting edits in document order.

    Blocks whose language is unavailable or whose highlighting fails produce
    no edit and keep their original text.
    """
    active_emitter = emitter or NullEmitter()

    def _task(block: FenceBlock) -> Edit | None:
        return _render_block(block, source, resolver, renderer, active_emitter)

    results = executor.map(_task, blocks) if executor is not None else map(_task, blocks)
    plan = PatchPlan()
    plan.extend(results)
    return plan.edits


def render_bytes(
    source: bytes,
    resolver: Resolver,
    *,
    emitter: DiagnosticEmitter | None = None,
    executor: Executor | None = None,
    engine: HighlightEngine | None = None,
    locator: FenceLocator | None = None,
) -> tuple[bytes, HighlightStats]:
    """Highlight ``source`` and return the patched bytes with pass statistics."""
    blocks = (locator or FenceLocator()).locate(source)
    stats = HighlightStats(blocks=len(blocks))
    if not blocks:
        return source, stats

    renderer = BlockRenderer(resolver, engine=engine)
    edits = collect_edits(
        source, blocks, resolver, renderer, emitter=emitter, executor=executor
    )
    stats.rendered = len(edits)
    return PatchPlan(edits).apply(source), stats


def render(
    document_text: str,
    resolver: Resolver,
    *,
    emitter: DiagnosticEmitter | None = None,
    executor: Executor | None = None,
    engine: HighlightEngine | None = None,
    locator: FenceLocator | None = None,
) -> str:
    """Return ``document_text`` with every resolvable fenced block highlighted."""
    patched, _stats = render_bytes(
        document_text.encode("utf-8"),
        resolver,
        emitter=emitter,
        executor=executor,
        engine=engine,
        locator=locator,
    )
    return patched.decode("utf-8")


@dataclass(slots=True)
class MarkdownDocument:
    """Markdown source loaded from disk together with its highlighted form."""

    path: Path
    original: bytes
    contents: bytes = b""
    stats: HighlightStats = field(default_factory=HighlightStats)

    def __post_init__(self) -> None:
        if not self.contents:
            self.contents = self.original

    @classmethod
    def from_path(cls, path: Path) -> MarkdownDocument:
        """Read ``path``, reporting unreadable or non UTF-8 files as :class:`DocumentError`."""
        try:
            data = path.read_bytes()
            data.decode("utf-8")
        except OSError as exc:
            raise DocumentError(f"Unable to read document '{path}': {exc}") from exc
        except UnicodeDecodeError as exc:
            raise DocumentError(f"Document '{path}' is not valid UTF-8: {exc}") from exc
        return cls(path=path, original=data)

    @property
    def changed(self) -> bool:
        return self.contents != self.original

    @property
    def text(self) -> str:
        return self.contents.decode("utf-8")

    def highlight(
        self,
        resolver: Resolver,
        *,
        emitter: DiagnosticEmitter | None = None,
        executor: Executor | None = None,
        engine: HighlightEngine | None = None,
        locator: FenceLocator | None = None,
    ) -> HighlightStats:
        """Highlight the original source, replacing :attr:`contents`."""
        self.contents, self.stats = render_bytes(
            self.original,
            resolver,
            emitter=emitter,
            executor=executor,
            engine=engine,
            locator=locator,
        )
        return self.stats

    def write(self, target: Path) -> Path:
        """Write the highlighted contents to ``target``, creating parent directories."""
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(self.contents)
        except OSError as exc:
            raise DocumentError(f"Unable to write '{target}': {exc}") from exc
        return target
