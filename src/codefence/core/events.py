"""Highlight events exchanged between the syntax engine and the block renderer."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TypeAlias

from .exceptions import InvariantViolation


@dataclass(frozen=True, slots=True)
class Source:
    """Span of block content, as byte offsets relative to the block start."""

    start: int
    end: int


@dataclass(frozen=True, slots=True)
class HighlightStart:
    """Opening of a highlight category."""

    category: int


@dataclass(frozen=True, slots=True)
class HighlightEnd:
    """Closing of the innermost open highlight category."""


HighlightEvent: TypeAlias = Source | HighlightStart | HighlightEnd


def check_balanced(events: Iterable[HighlightEvent]) -> None:
    """Raise :class:`InvariantViolation` when Start/End events do not nest."""
    depth = 0
    for event in events:
        if isinstance(event, HighlightStart):
            depth += 1
        elif isinstance(event, HighlightEnd):
            depth -= 1
            if depth < 0:
                raise InvariantViolation("Highlight end event without a matching start.")
    if depth:
        raise InvariantViolation(f"{depth} highlight event(s) left open.")


__all__ = [
    "HighlightEnd",
    "HighlightEvent",
    "HighlightStart",
    "Source",
    "check_balanced",
]
