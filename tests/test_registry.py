from __future__ import annotations

from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from pathlib import Path
import time
from typing import Any

from conftest import FakeBackend, FakeConfig
import pytest

from codefence.core.config import (
    CodefenceSettings,
    LanguageOptions,
    LibraryLanguage,
    TextQuery,
)
from codefence.core.exceptions import LanguageResolutionError
from codefence.core.paths import shared_library_suffix
from codefence.core.registry import LanguageRegistry, default_symbol


class RecordingEmitter:
    debug_enabled = False

    def __init__(self) -> None:
        self.warnings: list[str] = []
        self.errors: list[str] = []
        self.events: list[tuple[str, dict[str, Any]]] = []

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        self.warnings.append(message)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        self.errors.append(message)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        self.events.append((name, dict(payload)))


def _settings(**overrides: Any) -> CodefenceSettings:
    overrides.setdefault("toolchain_dir", None)
    return CodefenceSettings(**overrides)


def _make_toolchain(
    root: Path, name: str, highlights: str | None = "(identifier) @variable"
) -> Path:
    parser_dir = root / "parser"
    parser_dir.mkdir(parents=True, exist_ok=True)
    library = parser_dir / f"{name}{shared_library_suffix()}"
    library.write_bytes(b"")
    if highlights is not None:
        queries = root / "queries" / name
        queries.mkdir(parents=True, exist_ok=True)
        (queries / "highlights.scm").write_text(highlights, encoding="utf-8")
    return library


def test_builtin_language_is_resolved(fake_backend: FakeBackend) -> None:
    emitter = RecordingEmitter()
    registry = LanguageRegistry(_settings(), emitter=emitter, backend=fake_backend)

    config = registry.resolve("python")

    assert isinstance(config, FakeConfig)
    assert config.language == ("builtin", "python")
    assert config.highlights == "(integer) @number"
    assert config.injections == ""
    assert config.locals == ""
    assert config.categories == registry.categories
    assert ("language_resolved", {"language": "python", "source": "builtin"}) in emitter.events
    assert registry.resolved == ("python",)


def test_resolution_is_memoised(fake_backend: FakeBackend) -> None:
    registry = LanguageRegistry(_settings(), backend=fake_backend)

    first = registry("python")
    second = registry("python")

    assert first is second
    assert len(fake_backend.built) == 1


def test_unknown_language_is_skipped_once(fake_backend: FakeBackend) -> None:
    emitter = RecordingEmitter()
    registry = LanguageRegistry(_settings(), emitter=emitter, backend=fake_backend)

    assert registry.resolve("cobol") is None
    assert registry.resolve("cobol") is None
    assert "cobol" not in registry

    assert len(emitter.warnings) == 1
    assert "Skipping language 'cobol'" in emitter.warnings[0]
    assert "builtin:" in emitter.warnings[0]
    assert set(registry.failures) == {"cobol"}
    assert fake_backend.calls.count(("builtin", "cobol")) == 1


def test_strict_mode_raises_for_unresolvable_language(fake_backend: FakeBackend) -> None:
    registry = LanguageRegistry(_settings(strict=True), backend=fake_backend)

    with pytest.raises(LanguageResolutionError, match="cobol") as first:
        registry.resolve("cobol")
    with pytest.raises(LanguageResolutionError) as second:
        registry.resolve("cobol")

    assert first.value.language == "cobol"
    assert second.value.__cause__ is first.value.__cause__
    assert registry.resolve("python") is not None


def test_explicit_entry_aliases_a_builtin_grammar(fake_backend: FakeBackend) -> None:
    settings = _settings(languages={"py": LanguageOptions(name="python", escape=False)})
    emitter = RecordingEmitter()
    registry = LanguageRegistry(settings, emitter=emitter, backend=fake_backend)

    config = registry.resolve("py")

    assert config is not None
    assert config.name == "py"
    assert config.language == ("builtin", "python")
    assert config.escape is False
    assert ("language_resolved", {"language": "py", "source": "configuration"}) in emitter.events


def test_failed_explicit_entry_falls_back_to_builtin(
    fake_backend: FakeBackend, tmp_path: Path
) -> None:
    missing = tmp_path / "python.so"
    settings = _settings(
        languages={"python": LanguageOptions(language=LibraryLanguage(path=missing))}
    )
    emitter = RecordingEmitter()
    registry = LanguageRegistry(settings, emitter=emitter, backend=fake_backend)

    config = registry.resolve("python")

    assert config is not None
    assert config.language == ("builtin", "python")
    assert fake_backend.calls[0] == ("library", str(missing))
    assert ("language_resolved", {"language": "python", "source": "builtin"}) in emitter.events
    assert emitter.warnings == []


def test_all_layers_failing_reports_each_source(
    fake_backend: FakeBackend, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("CODEFENCE_UNSET_GRAMMARS", raising=False)
    settings = _settings(
        toolchain_dir=tmp_path / "toolchain",
        languages={
            "zig": LanguageOptions(
                language=LibraryLanguage(path=Path("$CODEFENCE_UNSET_GRAMMARS/zig.so"))
            )
        },
    )
    emitter = RecordingEmitter()
    registry = LanguageRegistry(settings, emitter=emitter, backend=fake_backend)

    assert registry.resolve("zig") is None

    (warning,) = emitter.warnings
    assert "configuration:" in warning
    assert "CODEFENCE_UNSET_GRAMMARS" in warning
    assert "toolchain:" in warning
    assert "builtin:" in warning


def test_toolchain_layer_loads_library_and_queries(
    fake_backend: FakeBackend, tmp_path: Path
) -> None:
    library = _make_toolchain(tmp_path, "lua")
    emitter = RecordingEmitter()
    registry = LanguageRegistry(
        _settings(toolchain_dir=tmp_path), emitter=emitter, backend=fake_backend
    )

    config = registry.resolve("lua")

    assert config is not None
    assert config.language == ("library", library, "tree_sitter_lua")
    assert config.highlights == "(identifier) @variable"
    assert config.injections == ""
    assert ("language_resolved", {"language": "lua", "source": "toolchain"}) in emitter.events


def test_toolchain_without_highlights_query_falls_back(
    fake_backend: FakeBackend, tmp_path: Path
) -> None:
    _make_toolchain(tmp_path, "python", highlights=None)
    registry = LanguageRegistry(_settings(toolchain_dir=tmp_path), backend=fake_backend)

    config = registry.resolve("python")

    assert config is not None
    assert config.language == ("builtin", "python")


def test_relative_library_path_is_anchored_on_base_dir(
    fake_backend: FakeBackend, tmp_path: Path
) -> None:
    library = tmp_path / "grammars" / "zig.so"
    library.parent.mkdir()
    library.write_bytes(b"")
    settings = _settings(
        languages={
            "zig": LanguageOptions(
                language=LibraryLanguage(path=Path("grammars/zig.so")),
                highlights_query=TextQuery(query="(identifier) @variable"),
                injections_query=None,
                locals_query=None,
            )
        }
    ).with_base_dir(tmp_path)
    registry = LanguageRegistry(settings, backend=fake_backend)

    config = registry.resolve("zig")

    assert config is not None
    assert config.language == ("library", library, "tree_sitter_zig")
    assert config.highlights == "(identifier) @variable"


def test_custom_symbol_name_is_used(fake_backend: FakeBackend, tmp_path: Path) -> None:
    library = tmp_path / "custom.so"
    library.write_bytes(b"")
    settings = _settings(
        languages={
            "c": LanguageOptions(
                language=LibraryLanguage(path=library, symbol_name="tree_sitter_custom_c"),
                highlights_query=TextQuery(query="(identifier) @variable"),
            )
        }
    )
    registry = LanguageRegistry(settings, backend=fake_backend)

    config = registry.resolve("c")

    assert config is not None
    assert config.language == ("library", library, "tree_sitter_custom_c")


def test_default_symbol_normalises_dashes() -> None:
    assert default_symbol("python") == "tree_sitter_python"
    assert default_symbol("c-sharp") == "tree_sitter_c_sharp"


def test_disabled_patterns_are_reported() -> None:
    class PredicateBackend(FakeBackend):
        def build(self, *args: Any, **kwargs: Any) -> FakeConfig:
            config = super().build(*args, **kwargs)
            return replace(config, disabled_patterns={"highlights": (1, 4)})

    emitter = RecordingEmitter()
    registry = LanguageRegistry(_settings(), emitter=emitter, backend=PredicateBackend())

    registry.resolve("python")

    assert (
        "predicates_disabled",
        {"language": "python", "query": "highlights", "count": 2},
    ) in emitter.events


def test_concurrent_requests_construct_once() -> None:
    class SlowBackend(FakeBackend):
        def build(self, *args: Any, **kwargs: Any) -> FakeConfig:
            time.sleep(0.05)
            return super().build(*args, **kwargs)

    backend = SlowBackend()
    registry = LanguageRegistry(_settings(), backend=backend)

    with ThreadPoolExecutor(max_workers=8) as executor:
        results = list(executor.map(registry.resolve, ["python"] * 16))

    assert len(backend.built) == 1
    assert all(result is results[0] for result in results)
