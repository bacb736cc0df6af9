"""Custom exception hierarchy for the highlighting pipeline."""

from __future__ import annotations


class CodefenceError(RuntimeError):
    """Base exception for highlighting failures."""


class ConfigError(CodefenceError):
    """Raised when a configuration file cannot be read or validated."""


class LanguageResolutionError(CodefenceError):
    """Raised when a language name cannot be turned into a highlighter configuration."""

    def __init__(self, message: str, *, language: str | None = None) -> None:
        super().__init__(message)
        self.language = language


class ExpansionError(LanguageResolutionError):
    """Raised when shell-style expansion of a configured path fails."""


class QueryLoadError(LanguageResolutionError):
    """Raised when a query file is missing or unreadable."""


class QueryCompileError(LanguageResolutionError):
    """Raised when tree-sitter rejects a query for the target grammar."""


class GrammarLoadError(LanguageResolutionError):
    """Raised when a shared-library grammar cannot be loaded or lacks its entry symbol."""

    def __init__(
        self,
        message: str,
        *,
        language: str | None = None,
        symbol_name: str | None = None,
    ) -> None:
        super().__init__(message, language=language)
        self.symbol_name = symbol_name


class BuiltinUnavailableError(LanguageResolutionError):
    """Raised when no bundled grammar package provides the requested language."""


class HighlightError(CodefenceError):
    """Raised when the syntax engine cannot produce an event stream for a block."""


class DocumentError(CodefenceError):
    """Raised when a document cannot be read or its output cannot be written."""


class InvariantViolation(CodefenceError):
    """Raised when an internal assumption of the pipeline does not hold."""


class FenceCaptureError(InvariantViolation):
    """Raised when a fenced-block match does not carry exactly the expected captures."""


class PatchOrderError(InvariantViolation):
    """Raised when edits handed to the patcher are unsorted or overlapping."""


def exception_messages(exc: BaseException) -> list[str]:
    """Return the collected message chain for an exception and its causes."""
    messages: list[str] = []
    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        text = str(current).strip()
        if text:
            first_line = text.splitlines()[0].strip()
            if first_line:
                messages.append(first_line)
        current = current.__cause__ or current.__context__
    return messages


def exception_hint(exc: BaseException) -> str | None:
    """Return the most specific message available for an exception chain."""
    messages = exception_messages(exc)
    return messages[-1] if messages else None


__all__ = [
    "BuiltinUnavailableError",
    "CodefenceError",
    "ConfigError",
    "DocumentError",
    "ExpansionError",
    "FenceCaptureError",
    "GrammarLoadError",
    "HighlightError",
    "InvariantViolation",
    "LanguageResolutionError",
    "PatchOrderError",
    "QueryCompileError",
    "QueryLoadError",
    "exception_hint",
    "exception_messages",
]
