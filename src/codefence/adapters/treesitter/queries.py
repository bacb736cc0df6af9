"""Query compilation and predicate filtering.

The matcher evaluates the text predicates built into tree-sitter bindings and
nothing else. Queries written for editors routinely rely on custom predicates
(``#lua-match?``, ``#has-ancestor?``, ``#offset!`` ...); patterns using them are
disabled so they never match instead of matching without their guard.
"""

from __future__ import annotations

import logging
import re

from tree_sitter import Language, Query, QueryError

from codefence.core.exceptions import QueryCompileError


logger = logging.getLogger(__name__)

STANDARD_PREDICATES: frozenset[str] = frozenset(
    {
        "eq?",
        "not-eq?",
        "any-eq?",
        "any-not-eq?",
        "match?",
        "not-match?",
        "any-match?",
        "any-not-match?",
        "any-of?",
        "not-any-of?",
        "is?",
        "is-not?",
        "set!",
    }
)

_STRING_LITERAL = re.compile(r'"(?:\\.|[^"\\])*"')
_COMMENT = re.compile(r";[^\n]*")
_PREDICATE = re.compile(r"\(\s*#([A-Za-z_][\w.\-]*[?!])")


def compile_query(language: Language, source: str, *, name: str, kind: str) -> Query:
    """Compile ``source`` for ``language``, reporting errors as configuration failures."""
    try:
        return Query(language, source)
    except (QueryError, ValueError) as exc:
        raise QueryCompileError(
            f"Invalid {kind} query for '{name}': {exc}",
            language=name,
        ) from exc


def _pattern_text(query: Query, source: bytes, index: int) -> str:
    start = query.start_byte_for_pattern(index)
    if index + 1 < query.pattern_count:
        end = query.start_byte_for_pattern(index + 1)
    else:
        end = len(source)
    return source[start:end].decode("utf-8", errors="replace")


def _predicates_in(text: str) -> set[str]:
    text = _STRING_LITERAL.sub('""', text)
    return set(_PREDICATE.findall(_COMMENT.sub("", text)))


def pattern_predicates(query: Query, source: str, index: int) -> set[str]:
    """Return the predicate names used by pattern ``index`` of ``query``."""
    return _predicates_in(_pattern_text(query, source.encode("utf-8"), index))


def strip_nonstandard_predicates(query: Query, source: str) -> tuple[int, ...]:
    """Disable every pattern using a predicate outside :data:`STANDARD_PREDICATES`.

    Returns the indices of the disabled patterns.
    """
    disabled: list[int] = []
    for index in range(query.pattern_count):
        unsupported = pattern_predicates(query, source, index) - STANDARD_PREDICATES
        if unsupported:
            logger.debug(
                "disabling pattern %d using %s", index, ", ".join(sorted(unsupported))
            )
            query.disable_pattern(index)
            disabled.append(index)
    return tuple(disabled)


__all__ = [
    "STANDARD_PREDICATES",
    "compile_query",
    "pattern_predicates",
    "strip_nonstandard_predicates",
]
