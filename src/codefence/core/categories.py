"""Highlight category tables shared by every language of a run.

A category table is the ordered list of highlight names that event streams
refer to by index. Every configuration resolved during a run is mapped against
the same table so that indices stay comparable across languages and runs.

Two deployment profiles are available:

`nvim-treesitter`
: The capture vocabulary used by nvim-treesitter queries (default).

`tree-sitter`
: The reduced vocabulary of the classic tree-sitter highlight queries bundled
  with grammar packages.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from enum import Enum


class CategoryProfile(str, Enum):
    """Named category tables."""

    NVIM_TREESITTER = "nvim-treesitter"
    TREE_SITTER = "tree-sitter"


TREE_SITTER_CATEGORIES: tuple[str, ...] = (
    "attribute",
    "comment",
    "constant",
    "constant.builtin",
    "constructor",
    "embedded",
    "function",
    "function.builtin",
    "keyword",
    "module",
    "number",
    "operator",
    "property",
    "property.builtin",
    "punctuation",
    "punctuation.bracket",
    "punctuation.delimiter",
    "punctuation.special",
    "string",
    "string.special",
    "tag",
    "type",
    "type.builtin",
    "variable",
    "variable.builtin",
    "variable.parameter",
)

NVIM_TREESITTER_CATEGORIES: tuple[str, ...] = (
    "variable",
    "variable.builtin",
    "variable.parameter",
    "variable.parameter.builtin",
    "variable.member",
    "constant",
    "constant.builtin",
    "constant.macro",
    "module",
    "module.builtin",
    "label",
    "string",
    "string.documentation",
    "string.regexp",
    "string.escape",
    "string.special",
    "string.special.symbol",
    "string.special.path",
    "string.special.url",
    "character",
    "character.special",
    "boolean",
    "number",
    "number.float",
    "type",
    "type.builtin",
    "type.definition",
    "attribute",
    "attribute.builtin",
    "property",
    "function",
    "function.builtin",
    "function.call",
    "function.macro",
    "function.method",
    "function.method.call",
    "constructor",
    "operator",
    "keyword",
    "keyword.coroutine",
    "keyword.function",
    "keyword.operator",
    "keyword.import",
    "keyword.type",
    "keyword.modifier",
    "keyword.repeat",
    "keyword.return",
    "keyword.debug",
    "keyword.exception",
    "keyword.conditional",
    "keyword.conditional.ternary",
    "keyword.directive",
    "keyword.directive.define",
    "punctuation.delimiter",
    "punctuation.bracket",
    "punctuation.special",
    "comment",
    "comment.documentation",
    "comment.error",
    "comment.warning",
    "comment.todo",
    "comment.note",
    "markup.strong",
    "markup.italic",
    "markup.strikethrough",
    "markup.underline",
    "markup.heading",
    "markup.heading.1",
    "markup.heading.2",
    "markup.heading.3",
    "markup.heading.4",
    "markup.heading.5",
    "markup.heading.6",
    "markup.quote",
    "markup.math",
    "markup.link",
    "markup.link.label",
    "markup.link.url",
    "markup.raw",
    "markup.raw.block",
    "markup.list",
    "markup.list.checked",
    "markup.list.unchecked",
    "diff.plus",
    "diff.minus",
    "diff.delta",
    "tag",
    "tag.builtin",
    "tag.attribute",
    "tag.delimiter",
)

_PROFILES: dict[CategoryProfile, tuple[str, ...]] = {
    CategoryProfile.NVIM_TREESITTER: NVIM_TREESITTER_CATEGORIES,
    CategoryProfile.TREE_SITTER: TREE_SITTER_CATEGORIES,
}

DEFAULT_PROFILE = CategoryProfile.NVIM_TREESITTER


def category_table(profile: CategoryProfile | str = DEFAULT_PROFILE) -> tuple[str, ...]:
    """Return the ordered category names for a profile."""
    try:
        key = CategoryProfile(profile)
    except ValueError as exc:
        choices = ", ".join(item.value for item in CategoryProfile)
        raise ValueError(f"Unknown category profile '{profile}' (expected {choices}).") from exc
    return _PROFILES[key]


def match_category(capture_name: str, categories: Sequence[str]) -> int | None:
    """Return the index of the category best describing ``capture_name``.

    A category matches when each of its dot-separated parts appears among the
    capture's parts. The longest matching category wins; ties keep the first
    entry of the table.
    """
    capture_parts = capture_name.split(".")
    best_index: int | None = None
    best_length = 0
    for index, category in enumerate(categories):
        parts = category.split(".")
        if len(parts) > best_length and all(part in capture_parts for part in parts):
            best_index = index
            best_length = len(parts)
    return best_index


def map_captures(
    capture_names: Iterable[str], categories: Sequence[str]
) -> Mapping[str, int]:
    """Map every highlightable capture name onto a category index."""
    mapping: dict[str, int] = {}
    for name in capture_names:
        index = match_category(name, categories)
        if index is not None:
            mapping[name] = index
    return mapping


def css_class(category: int, categories: Sequence[str]) -> str:
    """Return the CSS class emitted for a category index."""
    return f"code-{categories[category]}"


__all__ = [
    "DEFAULT_PROFILE",
    "NVIM_TREESITTER_CATEGORIES",
    "TREE_SITTER_CATEGORIES",
    "CategoryProfile",
    "category_table",
    "css_class",
    "map_captures",
    "match_category",
]
