"""Resolution of fence language names into highlighter configurations.

Resolution walks three sources in order and keeps the first that succeeds:

`Explicit entry`
: The ``[languages.<tag>]`` table of the configuration. Each entry is consumed
  at most once per run.

`Toolchain`
: An nvim-treesitter style directory holding ``parser/<name>.<ext>`` shared
  libraries and ``queries/<name>/*.scm`` query files.

`Builtin`
: A grammar package installed alongside codefence (``tree-sitter-python``...).

Every name is attempted once per registry. Failures are reported through the
diagnostic emitter and memoised, so blocks tagged with an unavailable language
are left untouched without retrying. Resolved configurations are immutable and
shared across renderers; construction of a given name is serialised while
different names resolve independently.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
import logging
from pathlib import Path
from threading import Lock
from typing import TYPE_CHECKING, Any, Literal, Protocol

from .categories import category_table
from .config import (
    BuiltinLanguage,
    BuiltinQuery,
    CodefenceSettings,
    LanguageOptions,
    LanguageSource,
    LibraryLanguage,
    PathQuery,
    QuerySource,
    TextQuery,
)
from .diagnostics import DiagnosticEmitter, ensure_emitter
from .exceptions import (
    BuiltinUnavailableError,
    LanguageResolutionError,
    QueryLoadError,
    exception_hint,
)
from .paths import expand_path, shared_library_suffix


if TYPE_CHECKING:  # pragma: no cover - typing only
    from codefence.adapters.treesitter import HighlighterConfig


logger = logging.getLogger(__name__)

ABI_PREFIX = "tree_sitter"

QueryKind = Literal["highlights", "injections", "locals"]


class GrammarBackend(Protocol):
    """Operations the registry needs from the syntax engine."""

    def load_library_language(
        self, path: Path, symbol_name: str, *, language: str | None = None
    ) -> Any: ...

    def builtin_language(self, name: str) -> Any: ...

    def builtin_query(self, name: str, kind: QueryKind) -> str | None: ...

    def build(
        self,
        name: str,
        language: Any,
        highlights_query: str,
        injections_query: str,
        locals_query: str,
        *,
        categories: Sequence[str],
        escape: bool,
    ) -> HighlighterConfig: ...


def default_backend() -> GrammarBackend:
    """Return the tree-sitter grammar backend."""
    from codefence.adapters.treesitter import TreeSitterBackend

    return TreeSitterBackend()


def default_symbol(name: str) -> str:
    """Return the entry symbol exported by a grammar library for ``name``."""
    return f"{ABI_PREFIX}_{name.replace('-', '_')}"


class LanguageRegistry:
    """Memoising resolver from language names to highlighter configurations."""

    def __init__(
        self,
        settings: CodefenceSettings | None = None,
        *,
        emitter: DiagnosticEmitter | None = None,
        backend: GrammarBackend | None = None,
    ) -> None:
        self._settings = settings or CodefenceSettings()
        self._emitter = ensure_emitter(emitter)
        self._backend = backend or default_backend()
        self.categories: tuple[str, ...] = category_table(self._settings.categories)
        self._explicit: dict[str, LanguageOptions] = dict(self._settings.languages)
        self._resolved: dict[str, HighlighterConfig | None] = {}
        self._failures: dict[str, LanguageResolutionError] = {}
        self._guard = Lock()
        self._locks: dict[str, Lock] = {}

    @property
    def settings(self) -> CodefenceSettings:
        return self._settings

    @property
    def failures(self) -> dict[str, LanguageResolutionError]:
        """Return the resolution failures recorded so far, keyed by language name."""
        return dict(self._failures)

    @property
    def resolved(self) -> tuple[str, ...]:
        """Return the names resolved successfully so far."""
        return tuple(name for name, config in self._resolved.items() if config is not None)

    def __call__(self, name: str) -> HighlighterConfig | None:
        return self.resolve(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.resolve(name) is not None

    def resolve(self, name: str) -> HighlighterConfig | None:
        """Return the configuration for ``name`` or ``None`` when it is unavailable.

        In strict mode an unavailable language raises
        :class:`LanguageResolutionError` instead.
        """
        if name in self._resolved:
            return self._lookup(name)
        with self._lock_for(name):
            if name not in self._resolved:
                self._resolved[name] = self._attempt(name)
        return self._lookup(name)

    def _lookup(self, name: str) -> HighlighterConfig | None:
        config = self._resolved[name]
        if config is None and self._settings.strict:
            failure = self._failures[name]
            raise LanguageResolutionError(str(failure), language=name) from failure
        return config

    def _lock_for(self, name: str) -> Lock:
        with self._guard:
            lock = self._locks.get(name)
            if lock is None:
                lock = Lock()
                self._locks[name] = lock
            return lock

    def _candidates(
        self, name: str
    ) -> Iterator[tuple[str, Callable[[], HighlighterConfig]]]:
        options = self._explicit.pop(name, None)
        if options is not None:
            yield "configuration", lambda: self._from_options(name, options)
        if self._settings.toolchain_dir is not None:
            yield "toolchain", lambda: self._from_toolchain(name)
        yield "builtin", lambda: self._from_options(name, LanguageOptions())

    def _attempt(self, name: str) -> HighlighterConfig | None:
        errors: list[tuple[str, LanguageResolutionError]] = []
        for source, factory in self._candidates(name):
            try:
                config = factory()
            except LanguageResolutionError as exc:
                logger.debug("language '%s' unavailable from %s: %s", name, source, exc)
                errors.append((source, exc))
                continue
            self._report_resolved(name, source, config)
            return config

        details = "; ".join(f"{source}: {exception_hint(exc) or exc}" for source, exc in errors)
        failure = LanguageResolutionError(
            f"Skipping language '{name}' ({details})", language=name
        )
        if errors:
            failure.__cause__ = errors[0][1]
        self._failures[name] = failure
        self._emitter.warning(str(failure))
        return None

    def _report_resolved(self, name: str, source: str, config: HighlighterConfig) -> None:
        self._emitter.event("language_resolved", {"language": name, "source": source})
        for query, patterns in config.disabled_patterns.items():
            self._emitter.event(
                "predicates_disabled",
                {"language": name, "query": query, "count": len(patterns)},
            )

    def _from_toolchain(self, name: str) -> HighlighterConfig:
        assert self._settings.toolchain_dir is not None
        root = expand_path(self._settings.toolchain_dir, base_dir=self._settings.base_dir)
        queries = root / "queries" / name
        options = LanguageOptions(
            language=LibraryLanguage(path=root / "parser" / f"{name}{shared_library_suffix()}"),
            highlights_query=PathQuery(path=queries / "highlights.scm"),
            injections_query=PathQuery(path=queries / "injections.scm"),
            locals_query=PathQuery(path=queries / "locals.scm"),
        )
        return self._from_options(name, options)

    def _from_options(self, name: str, options: LanguageOptions) -> HighlighterConfig:
        grammar = options.grammar_name(name)
        language = self._load_language(grammar, options.language)
        highlights = self._query_text(grammar, options.highlights_query, "highlights")
        injections = self._optional_query_text(grammar, options.injections_query, "injections")
        locals_ = self._optional_query_text(grammar, options.locals_query, "locals")
        return self._backend.build(
            name,
            language,
            highlights,
            injections,
            locals_,
            categories=self.categories,
            escape=options.escape,
        )

    def _load_language(self, grammar: str, source: LanguageSource) -> Any:
        if isinstance(source, LibraryLanguage):
            path = expand_path(source.path, base_dir=self._settings.base_dir)
            symbol = source.symbol_name or default_symbol(grammar)
            return self._backend.load_library_language(path, symbol, language=grammar)
        assert isinstance(source, BuiltinLanguage)
        return self._backend.builtin_language(grammar)

    def _query_text(self, grammar: str, source: QuerySource, kind: QueryKind) -> str:
        if isinstance(source, TextQuery):
            return source.query
        if isinstance(source, PathQuery):
            path = expand_path(source.path, base_dir=self._settings.base_dir)
            try:
                return path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                raise QueryLoadError(
                    f"Unable to read {kind} query {path}: {exc}", language=grammar
                ) from exc
        assert isinstance(source, BuiltinQuery)
        query = self._backend.builtin_query(grammar, kind)
        if query is None:
            raise BuiltinUnavailableError(
                f"No builtin {kind} query for '{grammar}'.", language=grammar
            )
        return query

    def _optional_query_text(
        self, grammar: str, source: QuerySource | None, kind: QueryKind
    ) -> str:
        if source is None:
            return ""
        try:
            return self._query_text(grammar, source, kind)
        except LanguageResolutionError as exc:
            logger.debug("using an empty %s query for '%s': %s", kind, grammar, exc)
            return ""


__all__ = [
    "ABI_PREFIX",
    "GrammarBackend",
    "LanguageRegistry",
    "default_backend",
    "default_symbol",
]
