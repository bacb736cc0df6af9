"""Diagnostic abstractions shared across the highlighting pipeline."""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any, Protocol, runtime_checkable


logger = logging.getLogger(__name__)


@runtime_checkable
class DiagnosticEmitter(Protocol):
    """Interface used to surface warnings, errors, and structured events."""

    debug_enabled: bool

    def warning(self, message: str, exc: BaseException | None = None) -> None: ...

    def error(self, message: str, exc: BaseException | None = None) -> None: ...

    def event(self, name: str, payload: Mapping[str, Any]) -> None: ...


class NullEmitter:
    """Emitter that ignores every diagnostic."""

    debug_enabled: bool = False

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        return

    def error(self, message: str, exc: BaseException | None = None) -> None:
        return

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        return


class LoggingEmitter:
    """Emitter that forwards diagnostics to the standard logging module."""

    def __init__(
        self, *, logger_obj: logging.Logger | None = None, debug_enabled: bool = False
    ) -> None:
        self._logger = logger_obj or logger
        self.debug_enabled = debug_enabled

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        if exc is not None:
            self._logger.warning(message, exc_info=exc)
        else:
            self._logger.warning(message)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        if exc is not None:
            self._logger.error(message, exc_info=exc)
        else:
            self._logger.error(message)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        message = format_event_message(name, payload)
        if message:
            self._logger.info(message)
            return
        self._logger.debug("diagnostic event %s: %s", name, dict(payload))


def ensure_emitter(emitter: DiagnosticEmitter | None) -> DiagnosticEmitter:
    """Return the provided emitter or a logging-backed default."""
    return emitter if emitter is not None else LoggingEmitter()


def format_event_message(name: str, payload: Mapping[str, Any]) -> str | None:
    """Return a human-friendly summary for selected diagnostic events."""
    data = dict(payload)

    if name == "language_resolved":
        language = data.get("language") or "<unknown>"
        source = data.get("source") or "unknown source"
        return f"Resolved language '{language}' from {source}"

    if name == "predicates_disabled":
        language = data.get("language") or "<unknown>"
        count = data.get("count") or 0
        query = data.get("query") or "query"
        return (
            f"Disabled {count} {query} pattern(s) for '{language}' "
            "using unsupported predicates"
        )

    if name == "document_written":
        target = data.get("target") or "<unknown>"
        blocks = data.get("blocks", 0)
        skipped = data.get("skipped", 0)
        if skipped:
            return f"Wrote {target} ({blocks} block(s) highlighted, {skipped} left untouched)"
        return f"Wrote {target} ({blocks} block(s) highlighted)"

    return None


__all__ = [
    "DiagnosticEmitter",
    "LoggingEmitter",
    "NullEmitter",
    "ensure_emitter",
    "format_event_message",
]
