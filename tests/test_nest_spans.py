from __future__ import annotations

from types import SimpleNamespace

import pytest


pytest.importorskip("tree_sitter")

from codefence.adapters.treesitter import highlighter  # noqa: E402
from codefence.adapters.treesitter.highlighter import Span, nest_spans  # noqa: E402
from codefence.core.events import (  # noqa: E402
    HighlightEnd,
    HighlightStart,
    Source,
    check_balanced,
)
from codefence.core import renderer  # noqa: E402
from codefence.core.exceptions import InvariantViolation  # noqa: E402


def test_no_spans_yields_plain_source() -> None:
    assert nest_spans([], 5) == [Source(0, 5)]


def test_empty_source_yields_nothing() -> None:
    assert nest_spans([], 0) == []


def test_nested_spans() -> None:
    events = nest_spans([Span(2, 4, 0, 1, 7), Span(0, 10, 0, 0, 3)], 12)

    assert events == [
        HighlightStart(3),
        Source(0, 2),
        HighlightStart(7),
        Source(2, 4),
        HighlightEnd(),
        Source(4, 10),
        HighlightEnd(),
        Source(10, 12),
    ]
    check_balanced(events)


def test_adjacent_spans_close_before_opening() -> None:
    events = nest_spans([Span(0, 1, 0, 0, 1), Span(1, 2, 0, 0, 2)], 2)

    assert events == [
        HighlightStart(1),
        Source(0, 1),
        HighlightEnd(),
        HighlightStart(2),
        Source(1, 2),
        HighlightEnd(),
    ]


def test_crossing_span_is_dropped() -> None:
    events = nest_spans([Span(0, 5, 0, 0, 1), Span(3, 8, 0, 1, 2)], 8)

    assert HighlightStart(2) not in events
    assert events[0] == HighlightStart(1)
    check_balanced(events)


def test_injected_span_nests_inside_identical_host_range() -> None:
    events = nest_spans([Span(0, 4, 1, 0, 9), Span(0, 4, 0, 0, 5)], 4)

    assert events == [
        HighlightStart(5),
        HighlightStart(9),
        Source(0, 4),
        HighlightEnd(),
        HighlightEnd(),
    ]


def test_spans_are_clipped_to_source() -> None:
    events = nest_spans([Span(2, 2, 0, 0, 1), Span(3, 50, 0, 0, 2)], 5)

    assert events == [Source(0, 3), HighlightStart(2), Source(3, 5), HighlightEnd()]


def test_engine_rejects_unbalanced_streams(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(highlighter, "_collect_spans", lambda config, source, resolver: [])
    monkeypatch.setattr(highlighter, "nest_spans", lambda spans, length: [HighlightStart(1)])

    with pytest.raises(InvariantViolation, match="left open"):
        highlighter.TreeSitterEngine().highlight(
            SimpleNamespace(name="python"), b"x", lambda name: None
        )


def test_engine_shares_the_renderer_resolver_type() -> None:
    assert highlighter.Resolver is renderer.Resolver
