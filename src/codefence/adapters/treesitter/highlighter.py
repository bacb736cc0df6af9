"""Highlight event production on top of tree-sitter queries.

The engine parses a block with the configured grammar, runs its highlights
query, and nests the resulting captures into a balanced event stream.
Injections are resolved through a caller-supplied lookup and highlighted
recursively; their captures nest inside the host captures that enclose them.

Precedence follows tree-sitter-highlight: when several patterns capture the
same node, the pattern appearing first in the query wins. Captures crossing the
boundary of an already open capture are dropped so the stream always nests.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
import logging
from typing import NamedTuple

from tree_sitter import Language, Node, Parser, Query, QueryCursor

from codefence.core.categories import map_captures
from codefence.core.events import (
    HighlightEnd,
    HighlightEvent,
    HighlightStart,
    Source,
    check_balanced,
)
from codefence.core.exceptions import CodefenceError, HighlightError
from codefence.core.renderer import Resolver

from .queries import compile_query, strip_nonstandard_predicates


logger = logging.getLogger(__name__)

MAX_INJECTION_DEPTH = 8

INJECTION_CONTENT = "injection.content"
INJECTION_LANGUAGE = "injection.language"


@dataclass(frozen=True, slots=True, eq=False)
class HighlighterConfig:
    """Compiled grammar and queries for one language, mapped to a category table."""

    name: str
    language: Language
    highlights: Query
    injections: Query | None
    locals: Query | None
    categories: tuple[str, ...]
    capture_categories: Mapping[str, int]
    escape: bool = True
    disabled_patterns: Mapping[str, tuple[int, ...]] = field(default_factory=dict)


def _capture_names(query: Query) -> list[str]:
    return [query.capture_name(index) for index in range(query.capture_count)]


def build_highlighter_config(
    name: str,
    language: Language,
    highlights_query: str,
    injections_query: str,
    locals_query: str,
    *,
    categories: Sequence[str],
    escape: bool = True,
) -> HighlighterConfig:
    """Compile the queries of ``name`` and register them against ``categories``."""
    table = tuple(categories)
    disabled: dict[str, tuple[int, ...]] = {}

    highlights = compile_query(language, highlights_query, name=name, kind="highlights")
    disabled["highlights"] = strip_nonstandard_predicates(highlights, highlights_query)

    injections: Query | None = None
    if injections_query.strip():
        injections = compile_query(language, injections_query, name=name, kind="injections")
        disabled["injections"] = strip_nonstandard_predicates(injections, injections_query)

    locals_: Query | None = None
    if locals_query.strip():
        locals_ = compile_query(language, locals_query, name=name, kind="locals")
        disabled["locals"] = strip_nonstandard_predicates(locals_, locals_query)

    return HighlighterConfig(
        name=name,
        language=language,
        highlights=highlights,
        injections=injections,
        locals=locals_,
        categories=table,
        capture_categories=map_captures(_capture_names(highlights), table),
        escape=escape,
        disabled_patterns={key: value for key, value in disabled.items() if value},
    )


class Span(NamedTuple):
    """Captured byte range tagged with its category and precedence."""

    start: int
    end: int
    layer: int
    pattern: int
    category: int

    @property
    def order(self) -> tuple[int, int, int, int]:
        return (self.start, -self.end, self.layer, self.pattern)


def _node_text(source: bytes, node: Node) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


def _injection_language(
    config: HighlighterConfig,
    query: Query,
    pattern_index: int,
    captures: Mapping[str, Sequence[Node]],
    source: bytes,
) -> str | None:
    nodes = captures.get(INJECTION_LANGUAGE)
    if nodes:
        text = _node_text(source, nodes[0]).strip()
        return text or None
    settings = query.pattern_settings(pattern_index)
    language = settings.get(INJECTION_LANGUAGE)
    if language:
        return language
    if "injection.self" in settings or "injection.parent" in settings:
        return config.name
    return None


def _highlight_spans(config: HighlighterConfig, root: Node, layer: int, offset: int) -> list[Span]:
    best: dict[tuple[int, int], tuple[int, int]] = {}
    for pattern_index, captures in QueryCursor(config.highlights).matches(root):
        for capture_name, nodes in captures.items():
            category = config.capture_categories.get(capture_name)
            if category is None:
                continue
            for node in nodes:
                key = (node.start_byte, node.end_byte)
                current = best.get(key)
                if current is None or pattern_index < current[0]:
                    best[key] = (pattern_index, category)
    return [
        Span(start + offset, end + offset, layer, pattern, category)
        for (start, end), (pattern, category) in best.items()
    ]


def _collect_spans(
    config: HighlighterConfig,
    source: bytes,
    resolver: Resolver,
    *,
    layer: int = 0,
    offset: int = 0,
) -> list[Span]:
    parser = Parser(config.language)
    tree = parser.parse(source)
    root = tree.root_node
    spans = _highlight_spans(config, root, layer, offset)

    if config.injections is None:
        return spans
    if layer >= MAX_INJECTION_DEPTH:
        logger.debug("injection depth limit reached inside '%s'", config.name)
        return spans

    for pattern_index, captures in QueryCursor(config.injections).matches(root):
        language_name = _injection_language(
            config, config.injections, pattern_index, captures, source
        )
        if language_name is None:
            continue
        injected = resolver(language_name)
        if injected is None:
            logger.debug("no configuration for injected language '%s'", language_name)
            continue
        for node in captures.get(INJECTION_CONTENT, ()):
            if node.end_byte <= node.start_byte:
                continue
            spans.extend(
                _collect_spans(
                    injected,
                    source[node.start_byte : node.end_byte],
                    resolver,
                    layer=layer + 1,
                    offset=offset + node.start_byte,
                )
            )
    return spans


def nest_spans(spans: Sequence[Span], length: int) -> list[HighlightEvent]:
    """Turn possibly overlapping spans into a balanced event stream over ``length`` bytes."""
    events: list[HighlightEvent] = []
    open_ends: list[int] = []
    position = 0

    def advance(target: int) -> None:
        nonlocal position
        if target > position:
            events.append(Source(position, target))
            position = target

    def close() -> None:
        advance(open_ends.pop())
        events.append(HighlightEnd())

    for span in sorted(spans, key=lambda item: item.order):
        start = max(span.start, 0)
        end = min(span.end, length)
        if end <= start:
            continue
        while open_ends and open_ends[-1] <= start:
            close()
        if open_ends and end > open_ends[-1]:
            continue
        advance(start)
        events.append(HighlightStart(span.category))
        open_ends.append(end)

    while open_ends:
        close()
    advance(length)
    return events


class TreeSitterEngine:
    """Syntax engine producing highlight events with py-tree-sitter."""

    def highlight(
        self,
        config: HighlighterConfig,
        source: bytes,
        resolver: Resolver,
    ) -> list[HighlightEvent]:
        try:
            spans = _collect_spans(config, source, resolver)
        except CodefenceError:
            raise
        except (ValueError, RuntimeError, TypeError) as exc:
            raise HighlightError(f"Unable to highlight '{config.name}' block: {exc}") from exc
        events = nest_spans(spans, len(source))
        check_balanced(events)
        return events


def highlight(config: HighlighterConfig, source: bytes, resolver: Resolver) -> list[HighlightEvent]:
    """Return the highlight events of ``source`` using the default engine."""
    return TreeSitterEngine().highlight(config, source, resolver)


__all__ = [
    "MAX_INJECTION_DEPTH",
    "HighlighterConfig",
    "Span",
    "TreeSitterEngine",
    "build_highlighter_config",
    "highlight",
    "nest_spans",
]
