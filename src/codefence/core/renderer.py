"""HTML rendering of highlight event streams for a single fenced block."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Protocol

from .categories import css_class
from .events import HighlightEnd, HighlightEvent, HighlightStart, Source
from .exceptions import HighlightError, InvariantViolation


if TYPE_CHECKING:  # pragma: no cover - typing only
    from codefence.adapters.treesitter import HighlighterConfig


OPENING_WRAPPER = "<pre><code>"
CLOSING_WRAPPER = "\n</code></pre>\n\n"
CLOSING_TAG = "</span>"

Resolver = Callable[[str], "HighlighterConfig | None"]


class HighlightEngine(Protocol):
    """Producer of highlight events for a block of content."""

    def highlight(
        self, config: HighlighterConfig, source: bytes, resolver: Resolver
    ) -> Iterable[HighlightEvent]: ...


def default_engine() -> HighlightEngine:
    """Return the tree-sitter syntax engine."""
    from codefence.adapters.treesitter import TreeSitterEngine

    return TreeSitterEngine()


def escape_html(text: str) -> str:
    """Escape ``&``, ``<`` and ``>``; other characters are left as is."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def opening_tag(category: int, categories: tuple[str, ...]) -> str:
    return f'<span class="{css_class(category, categories)}">'


class BlockRenderer:
    """Render fenced block content into highlighted HTML.

    The ``resolver`` is handed to the engine so that injected languages can be
    looked up while highlighting.
    """

    def __init__(self, resolver: Resolver, *, engine: HighlightEngine | None = None) -> None:
        self._resolver = resolver
        self._engine = engine or default_engine()

    def render(self, content: bytes, config: HighlighterConfig) -> str:
        """Return the wrapped markup for ``content``.

        Raises :class:`HighlightError` when no event stream can be produced.
        """
        events = self._engine.highlight(config, content, self._resolver)
        return OPENING_WRAPPER + self.render_events(events, content, config) + CLOSING_WRAPPER

    def render_events(
        self,
        events: Iterable[HighlightEvent],
        content: bytes,
        config: HighlighterConfig,
    ) -> str:
        """Return the markup of ``events`` without the block wrapper."""
        parts: list[str] = []
        depth = 0
        for event in events:
            if isinstance(event, Source):
                try:
                    text = content[event.start : event.end].decode("utf-8")
                except UnicodeDecodeError as exc:
                    raise HighlightError(
                        f"Highlight span {event.start}-{event.end} splits a character."
                    ) from exc
                parts.append(escape_html(text) if config.escape else text)
            elif isinstance(event, HighlightStart):
                parts.append(opening_tag(event.category, config.categories))
                depth += 1
            elif isinstance(event, HighlightEnd):
                if depth == 0:
                    raise InvariantViolation("Highlight end event without a matching start.")
                parts.append(CLOSING_TAG)
                depth -= 1
        if depth:
            raise InvariantViolation(f"{depth} highlight event(s) left open.")
        return "".join(parts)


__all__ = [
    "CLOSING_TAG",
    "CLOSING_WRAPPER",
    "OPENING_WRAPPER",
    "BlockRenderer",
    "HighlightEngine",
    "Resolver",
    "default_engine",
    "escape_html",
    "opening_tag",
]
