"""Fenced code block matching with the tree-sitter Markdown block grammar."""

from __future__ import annotations

from functools import lru_cache

from tree_sitter import Language, Parser, Query, QueryCursor
import tree_sitter_markdown

from codefence.core.exceptions import CodefenceError


FENCE_QUERY = """
(fenced_code_block
  (info_string
    (language) @injection.language)
  (code_fence_content) @injection.content) @block
"""

CaptureRanges = dict[str, list[tuple[int, int]]]


@lru_cache(maxsize=1)
def markdown_language() -> Language:
    """Return the Markdown block grammar."""
    return Language(tree_sitter_markdown.language())


@lru_cache(maxsize=1)
def fence_query() -> Query:
    """Return the compiled fenced-block query."""
    return Query(markdown_language(), FENCE_QUERY)


def fence_matches(source: bytes) -> list[CaptureRanges]:
    """Return the byte ranges captured by each fenced-block match, in document order."""
    parser = Parser(markdown_language())
    tree = parser.parse(source)
    if tree is None:
        raise CodefenceError("The Markdown parser returned no tree.")
    matches: list[CaptureRanges] = []
    for _pattern_index, captures in QueryCursor(fence_query()).matches(tree.root_node):
        matches.append(
            {
                name: [(node.start_byte, node.end_byte) for node in nodes]
                for name, nodes in captures.items()
            }
        )
    return matches


__all__ = ["FENCE_QUERY", "CaptureRanges", "fence_matches", "fence_query", "markdown_language"]
