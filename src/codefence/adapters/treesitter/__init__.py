"""Tree-sitter backed syntax engine, grammar loading and fence matching."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from tree_sitter import Language

from .builtins import BUILTIN_GRAMMARS, QueryKind, builtin_language, builtin_names, builtin_query
from .highlighter import (
    HighlighterConfig,
    TreeSitterEngine,
    build_highlighter_config,
    highlight,
    nest_spans,
)
from .loader import load_language
from .queries import STANDARD_PREDICATES, strip_nonstandard_predicates


class TreeSitterBackend:
    """Grammar backend used by :class:`codefence.core.registry.LanguageRegistry`."""

    def load_library_language(
        self, path: Path, symbol_name: str, *, language: str | None = None
    ) -> Language:
        return load_language(path, symbol_name, language=language)

    def builtin_language(self, name: str) -> Language:
        return builtin_language(name)

    def builtin_query(self, name: str, kind: QueryKind) -> str | None:
        return builtin_query(name, kind)

    def build(
        self,
        name: str,
        language: Language,
        highlights_query: str,
        injections_query: str,
        locals_query: str,
        *,
        categories: Sequence[str],
        escape: bool,
    ) -> HighlighterConfig:
        return build_highlighter_config(
            name,
            language,
            highlights_query,
            injections_query,
            locals_query,
            categories=categories,
            escape=escape,
        )


__all__ = [
    "BUILTIN_GRAMMARS",
    "STANDARD_PREDICATES",
    "HighlighterConfig",
    "TreeSitterBackend",
    "TreeSitterEngine",
    "build_highlighter_config",
    "builtin_language",
    "builtin_names",
    "builtin_query",
    "highlight",
    "load_language",
    "nest_spans",
    "strip_nonstandard_predicates",
]
