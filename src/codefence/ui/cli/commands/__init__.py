"""CLI command implementations exposed via `codefence.ui.cli`."""

from __future__ import annotations

from .highlight import highlight


__all__ = ["highlight"]
