"""Facade aggregating the high-level codefence highlighting experience.

Architecture
: `render` and `MarkdownDocument` highlight a single Markdown source, leaving
  blocks in unsupported languages untouched.
: `HighlightService` together with `HighlightRequest` drives batches of files,
  sharing one language registry across the whole run and reporting outcomes as
  `HighlightResponse` instances.

Usage Example
:
    >>> from codefence.api import HighlightRequest
    >>> HighlightRequest(documents=[]).output_dir.name
    'codefence.out'
"""

from __future__ import annotations

from .document import HighlightStats, MarkdownDocument, collect_edits, render, render_bytes
from .service import (
    DEFAULT_OUTPUT_DIR,
    DocumentOutcome,
    HighlightRequest,
    HighlightResponse,
    HighlightService,
    output_path,
)


__all__ = [
    "DEFAULT_OUTPUT_DIR",
    "DocumentOutcome",
    "HighlightRequest",
    "HighlightResponse",
    "HighlightService",
    "HighlightStats",
    "MarkdownDocument",
    "collect_edits",
    "output_path",
    "render",
    "render_bytes",
]
