"""Offset-tracking application of block replacements."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from .exceptions import PatchOrderError


@dataclass(frozen=True, slots=True)
class Edit:
    """Replacement of ``original[start:end]`` by ``replacement``."""

    start: int
    end: int
    replacement: str

    @property
    def original_range(self) -> tuple[int, int]:
        return (self.start, self.end)


def check_edits(edits: Sequence[Edit], length: int) -> None:
    """Raise :class:`PatchOrderError` unless ``edits`` are ascending and disjoint."""
    previous_end = 0
    for edit in edits:
        if edit.end < edit.start:
            raise PatchOrderError(f"Edit range {edit.start}-{edit.end} is reversed.")
        if edit.start < previous_end:
            raise PatchOrderError(
                f"Edit at byte {edit.start} overlaps or precedes the previous edit "
                f"ending at byte {previous_end}."
            )
        if edit.end > length:
            raise PatchOrderError(
                f"Edit range {edit.start}-{edit.end} exceeds the document ({length} bytes)."
            )
        previous_end = edit.end


def apply_edits(source: bytes, edits: Sequence[Edit]) -> bytes:
    """Apply ``edits`` left to right, shifting each range by the growth of earlier ones."""
    check_edits(edits, len(source))
    working = bytearray(source)
    offset = 0
    for edit in edits:
        payload = edit.replacement.encode("utf-8")
        working[edit.start + offset : edit.end + offset] = payload
        offset += len(payload) - (edit.end - edit.start)
    return bytes(working)


@dataclass(slots=True)
class PatchPlan:
    """Edits collected for one document, applied in a single pass."""

    edits: list[Edit] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.edits)

    def add(self, edit: Edit) -> None:
        self.edits.append(edit)

    def extend(self, edits: Iterable[Edit | None]) -> None:
        """Add edits in order, ignoring ``None`` entries from skipped blocks."""
        self.edits.extend(edit for edit in edits if edit is not None)

    def apply(self, source: bytes) -> bytes:
        return apply_edits(source, self.edits)


__all__ = ["Edit", "PatchPlan", "apply_edits", "check_edits"]
