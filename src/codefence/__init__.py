"""Primary public API for codefence."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version as _pkg_version

from codefence.api import (
    DocumentOutcome,
    HighlightRequest,
    HighlightResponse,
    HighlightService,
    HighlightStats,
    MarkdownDocument,
    render,
)
from codefence.core.categories import (
    NVIM_TREESITTER_CATEGORIES,
    TREE_SITTER_CATEGORIES,
    CategoryProfile,
    category_table,
)
from codefence.core.config import CodefenceSettings, LanguageOptions, load_settings
from codefence.core.diagnostics import DiagnosticEmitter, LoggingEmitter, NullEmitter
from codefence.core.exceptions import (
    CodefenceError,
    ConfigError,
    DocumentError,
    HighlightError,
    InvariantViolation,
    LanguageResolutionError,
)
from codefence.core.fences import FenceBlock, FenceLocator
from codefence.core.patcher import Edit, apply_edits
from codefence.core.registry import LanguageRegistry
from codefence.core.renderer import BlockRenderer, escape_html


try:
    __version__ = _pkg_version("codefence")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "NVIM_TREESITTER_CATEGORIES",
    "TREE_SITTER_CATEGORIES",
    "BlockRenderer",
    "CategoryProfile",
    "CodefenceError",
    "CodefenceSettings",
    "ConfigError",
    "DiagnosticEmitter",
    "DocumentError",
    "DocumentOutcome",
    "Edit",
    "FenceBlock",
    "FenceLocator",
    "HighlightError",
    "HighlightRequest",
    "HighlightResponse",
    "HighlightService",
    "HighlightStats",
    "InvariantViolation",
    "LanguageOptions",
    "LanguageRegistry",
    "LoggingEmitter",
    "MarkdownDocument",
    "NullEmitter",
    "__version__",
    "apply_edits",
    "category_table",
    "escape_html",
    "load_settings",
    "render",
]
