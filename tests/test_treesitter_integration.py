from __future__ import annotations

from pathlib import Path

from bs4 import BeautifulSoup
import pytest


pytest.importorskip("tree_sitter")
pytest.importorskip("tree_sitter_markdown")
pytest.importorskip("tree_sitter_python")

from codefence.adapters.treesitter import (  # noqa: E402
    TreeSitterBackend,
    build_highlighter_config,
    builtin_language,
    highlight,
    load_language,
)
from codefence.adapters.treesitter.markdown import fence_matches  # noqa: E402
from codefence.adapters.treesitter.queries import pattern_predicates  # noqa: E402
from codefence.api.document import render  # noqa: E402
from codefence.core.categories import category_table  # noqa: E402
from codefence.core.config import CodefenceSettings, LanguageOptions, TextQuery  # noqa: E402
from codefence.core.events import check_balanced  # noqa: E402
from codefence.core.exceptions import GrammarLoadError, QueryCompileError  # noqa: E402
from codefence.core.fences import FenceLocator  # noqa: E402
from codefence.core.registry import LanguageRegistry  # noqa: E402


def _registry(**overrides) -> LanguageRegistry:
    overrides.setdefault("toolchain_dir", None)
    return LanguageRegistry(CodefenceSettings(**overrides), backend=TreeSitterBackend())


def test_fence_matches_report_tagged_blocks() -> None:
    source = b"# T\n\n```python\nx = 1\n```\n\n```\nplain\n```\n"

    matches = fence_matches(source)

    assert len(matches) == 1
    (start, end), = matches[0]["injection.language"]
    assert source[start:end] == b"python"
    (start, end), = matches[0]["injection.content"]
    assert source[start:end] == b"x = 1\n"


def test_locator_uses_markdown_grammar_by_default() -> None:
    source = "Intro ü\n\n```lua\nprint(1)\n```\n".encode()

    (block,) = FenceLocator().locate(source)

    assert block.language(source) == "lua"
    assert block.content(source) == b"print(1)\n"


def test_alias_renders_python_tokens() -> None:
    registry = _registry(languages={"py": LanguageOptions(name="python")})

    result = render("```py\nx=1\n```\n", registry)

    assert result.startswith("<pre><code>")
    assert result.endswith('<span class="code-number">1</span>\n\n</code></pre>\n\n')
    assert '<span class="code-operator">=</span>' in result
    assert '<span class="code-number">1</span>' in result
    soup = BeautifulSoup(result, "html.parser")
    assert soup.code is not None
    assert soup.code.get_text().startswith("x=1\n")


def test_unknown_language_is_left_untouched() -> None:
    text = "```definitely-not-a-language\nx\n```\n"

    assert render(text, _registry()) == text


def test_rendering_is_deterministic_and_balanced() -> None:
    registry = _registry()
    text = '```python\ndef f(a, b="<&>"):\n    return a + b  # done\n```\n'

    first = render(text, registry)
    second = render(text, registry)

    assert first == second
    assert first.count("<span ") == first.count("</span>")
    assert "&lt;&amp;&gt;" in first
    config = registry.resolve("python")
    assert config is not None
    check_balanced(highlight(config, b'def f(a, b="<&>"):\n    return a + b\n', registry))


def test_nonstandard_predicates_disable_their_patterns() -> None:
    query = (
        '((identifier) @constant (#lua-match? @constant "^[A-Z]"))\n'
        "; keep numbers\n"
        "(integer) @number\n"
        '((identifier) @variable (#eq? @variable "x"))\n'
    )
    config = build_highlighter_config(
        "python",
        builtin_language("python"),
        query,
        "",
        "",
        categories=category_table(),
    )

    assert config.disabled_patterns == {"highlights": (0,)}
    assert pattern_predicates(config.highlights, query, 2) == {"eq?"}
    events = highlight(config, b"X = 1\nx = 2\n", lambda name: None)
    constant = category_table().index("constant")
    assert all(getattr(event, "category", None) != constant for event in events)


def test_invalid_query_is_a_compile_error() -> None:
    with pytest.raises(QueryCompileError, match="highlights"):
        build_highlighter_config(
            "python",
            builtin_language("python"),
            "(not_a_node_type) @x",
            "",
            "",
            categories=category_table(),
        )


def test_invalid_explicit_query_falls_back_to_builtin() -> None:
    registry = _registry(
        languages={"python": LanguageOptions(highlights_query=TextQuery(query="(nope) @x"))}
    )

    config = registry.resolve("python")

    assert config is not None
    assert "python" not in registry.failures


def test_missing_library_is_a_grammar_load_error(tmp_path: Path) -> None:
    with pytest.raises(GrammarLoadError) as info:
        load_language(tmp_path / "zig.so", "tree_sitter_zig", language="zig")

    assert info.value.symbol_name == "tree_sitter_zig"
    assert info.value.language == "zig"


def test_injected_language_is_highlighted() -> None:
    pytest.importorskip("tree_sitter_html")
    pytest.importorskip("tree_sitter_javascript")
    injections = (
        "((script_element (raw_text) @injection.content)\n"
        ' (#set! injection.language "javascript"))\n'
    )
    registry = _registry(
        languages={"html": LanguageOptions(injections_query=TextQuery(query=injections))}
    )

    result = render("```html\n<script>var answer = 42;</script>\n```\n", registry)

    assert '<span class="code-keyword">var</span>' in result
    assert '<span class="code-number">42</span>' in result
    assert result.count("<span ") == result.count("</span>")
