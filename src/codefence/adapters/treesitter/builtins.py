"""Grammars provided by installed tree-sitter language packages."""

from __future__ import annotations

from dataclasses import dataclass
import importlib
import logging
from types import ModuleType
from typing import Literal

from tree_sitter import Language

from codefence.core.exceptions import BuiltinUnavailableError


logger = logging.getLogger(__name__)

QueryKind = Literal["highlights", "injections", "locals"]


@dataclass(frozen=True, slots=True)
class BuiltinGrammar:
    """Location of a grammar and its bundled queries inside a Python package."""

    module: str
    language_factory: str = "language"
    highlights: str = "HIGHLIGHTS_QUERY"
    injections: str | None = "INJECTIONS_QUERY"
    locals: str | None = "LOCALS_QUERY"

    def query_attribute(self, kind: QueryKind) -> str | None:
        if kind == "highlights":
            return self.highlights
        if kind == "injections":
            return self.injections
        return self.locals


BUILTIN_GRAMMARS: dict[str, BuiltinGrammar] = {
    "bash": BuiltinGrammar("tree_sitter_bash"),
    "css": BuiltinGrammar("tree_sitter_css"),
    "html": BuiltinGrammar("tree_sitter_html"),
    "javascript": BuiltinGrammar("tree_sitter_javascript"),
    "json": BuiltinGrammar("tree_sitter_json"),
    "lua": BuiltinGrammar("tree_sitter_lua"),
    "markdown": BuiltinGrammar("tree_sitter_markdown"),
    "python": BuiltinGrammar("tree_sitter_python"),
    "rust": BuiltinGrammar("tree_sitter_rust"),
    "tsx": BuiltinGrammar("tree_sitter_typescript", language_factory="language_tsx"),
    "typescript": BuiltinGrammar(
        "tree_sitter_typescript", language_factory="language_typescript"
    ),
}


def _import_grammar(name: str) -> tuple[BuiltinGrammar, ModuleType]:
    grammar = BUILTIN_GRAMMARS.get(name)
    if grammar is None:
        raise BuiltinUnavailableError(
            f"'{name}' is not a builtin language; configure it in codefence.toml.",
            language=name,
        )
    try:
        module = importlib.import_module(grammar.module)
    except ModuleNotFoundError as exc:
        package = grammar.module.replace("_", "-")
        raise BuiltinUnavailableError(
            f"Builtin language '{name}' requires the '{package}' package.",
            language=name,
        ) from exc
    return grammar, module


def builtin_language(name: str) -> Language:
    """Return the grammar of builtin language ``name``."""
    grammar, module = _import_grammar(name)
    factory = getattr(module, grammar.language_factory, None)
    if factory is None:
        raise BuiltinUnavailableError(
            f"Package {grammar.module} does not expose {grammar.language_factory}().",
            language=name,
        )
    try:
        return Language(factory())
    except (TypeError, ValueError) as exc:
        raise BuiltinUnavailableError(
            f"Builtin language '{name}' is not usable: {exc}", language=name
        ) from exc


def builtin_query(name: str, kind: QueryKind) -> str | None:
    """Return the query text bundled with ``name``, or ``None`` when absent."""
    grammar, module = _import_grammar(name)
    attribute = grammar.query_attribute(kind)
    if attribute is None:
        return None
    try:
        query = getattr(module, attribute)
    except (AttributeError, OSError):
        logger.debug("%s does not bundle a %s query", grammar.module, kind)
        return None
    return query if isinstance(query, str) else None


def builtin_names() -> tuple[str, ...]:
    """Return every language name with a builtin entry."""
    return tuple(sorted(BUILTIN_GRAMMARS))


__all__ = [
    "BUILTIN_GRAMMARS",
    "BuiltinGrammar",
    "QueryKind",
    "builtin_language",
    "builtin_names",
    "builtin_query",
]
