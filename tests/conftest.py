from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
import re
from typing import Any

import pytest

from codefence.core.categories import category_table
from codefence.core.events import HighlightEnd, HighlightEvent, HighlightStart, Source
from codefence.core.exceptions import (
    BuiltinUnavailableError,
    GrammarLoadError,
    HighlightError,
)


FENCE_PATTERN = re.compile(rb"^```(?P<lang>[^\n`]*)\n(?P<body>.*?)^```[ \t]*(?:\n|\Z)", re.M | re.S)
TOKEN_PATTERN = re.compile(r"(?P<number>\d+)|(?P<operator>[=+\-*/<>&]+)|(?P<string>\"[^\"]*\")")


@dataclass(eq=False)
class FakeConfig:
    """Stand-in for a compiled highlighter configuration."""

    name: str
    categories: tuple[str, ...] = field(default_factory=category_table)
    escape: bool = True
    language: Any = None
    highlights: str = ""
    injections: str = ""
    locals: str = ""
    disabled_patterns: Mapping[str, tuple[int, ...]] = field(default_factory=dict)


class FakeBackend:
    """Grammar backend serving builtin grammars from a fixed set of names."""

    def __init__(self, builtins: Sequence[str] = ("python",)) -> None:
        self.builtins = set(builtins)
        self.calls: list[tuple[str, str]] = []
        self.built: list[FakeConfig] = []

    def load_library_language(
        self, path: Path, symbol_name: str, *, language: str | None = None
    ) -> Any:
        self.calls.append(("library", str(path)))
        if not path.is_file():
            raise GrammarLoadError(
                f"Grammar library {path} does not exist.",
                language=language,
                symbol_name=symbol_name,
            )
        return ("library", path, symbol_name)

    def builtin_language(self, name: str) -> Any:
        self.calls.append(("builtin", name))
        if name not in self.builtins:
            raise BuiltinUnavailableError(f"'{name}' is not a builtin language.", language=name)
        return ("builtin", name)

    def builtin_query(self, name: str, kind: str) -> str | None:
        if name not in self.builtins:
            raise BuiltinUnavailableError(f"'{name}' is not a builtin language.", language=name)
        if kind == "highlights":
            return "(integer) @number"
        return None

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
    ) -> FakeConfig:
        config = FakeConfig(
            name=name,
            categories=tuple(categories),
            escape=escape,
            language=language,
            highlights=highlights_query,
            injections=injections_query,
            locals=locals_query,
        )
        self.built.append(config)
        return config


class TokenEngine:
    """Engine highlighting numbers, operators and strings with a regular expression."""

    def __init__(self, *, fail_on: str | None = None) -> None:
        self.fail_on = fail_on
        self.calls = 0

    def highlight(self, config: Any, source: bytes, resolver: Any) -> Iterator[HighlightEvent]:
        self.calls += 1
        if self.fail_on is not None and self.fail_on.encode() in source:
            raise HighlightError(f"cannot highlight {self.fail_on!r}")
        return iter(self._events(config, source))

    def _events(self, config: Any, source: bytes) -> list[HighlightEvent]:
        text = source.decode("utf-8")
        events: list[HighlightEvent] = []
        position = 0
        for match in TOKEN_PATTERN.finditer(text):
            start = len(text[: match.start()].encode("utf-8"))
            end = len(text[: match.end()].encode("utf-8"))
            if start > position:
                events.append(Source(position, start))
            kind = match.lastgroup or "number"
            events.append(HighlightStart(config.categories.index(kind)))
            events.append(Source(start, end))
            events.append(HighlightEnd())
            position = end
        if position < len(source):
            events.append(Source(position, len(source)))
        return events


def regex_fence_matcher(source: bytes) -> list[dict[str, list[tuple[int, int]]]]:
    """Locate fences carrying an info string with a regular expression."""
    matches: list[dict[str, list[tuple[int, int]]]] = []
    for match in FENCE_PATTERN.finditer(source):
        if not match.group("lang").strip():
            continue
        matches.append(
            {
                "block": [match.span()],
                "injection.language": [match.span("lang")],
                "injection.content": [match.span("body")],
            }
        )
    return matches


class StaticResolver:
    """Resolver returning a fixed configuration for known names."""

    def __init__(self, *names: str, escape: bool = True) -> None:
        self.configs = {name: FakeConfig(name=name, escape=escape) for name in names}
        self.requests: list[str] = []

    def __call__(self, name: str) -> FakeConfig | None:
        self.requests.append(name)
        return self.configs.get(name)


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def token_engine() -> TokenEngine:
    return TokenEngine()


@pytest.fixture
def fence_locator():
    from codefence.core.fences import FenceLocator

    return FenceLocator(regex_fence_matcher)
