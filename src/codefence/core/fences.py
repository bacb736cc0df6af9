"""Discovery of fenced code blocks in Markdown sources."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass

from .exceptions import FenceCaptureError, InvariantViolation


BLOCK_CAPTURE = "block"
LANGUAGE_CAPTURE = "injection.language"
CONTENT_CAPTURE = "injection.content"
FENCE_CAPTURES = (BLOCK_CAPTURE, LANGUAGE_CAPTURE, CONTENT_CAPTURE)

FenceMatcher = Callable[[bytes], Iterable[Mapping[str, Sequence[tuple[int, int]]]]]


@dataclass(frozen=True, slots=True)
class ByteRange:
    """Half-open range of byte offsets."""

    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start

    def contains(self, other: ByteRange) -> bool:
        return self.start <= other.start and other.end <= self.end

    def slice(self, data: bytes) -> bytes:
        return data[self.start : self.end]


@dataclass(frozen=True, slots=True)
class FenceBlock:
    """Fenced code block located in the original document."""

    full_range: ByteRange
    lang_range: ByteRange
    content_range: ByteRange

    def language(self, source: bytes) -> str:
        return self.lang_range.slice(source).decode("utf-8").strip()

    def content(self, source: bytes) -> bytes:
        return self.content_range.slice(source)


def default_matcher() -> FenceMatcher:
    """Return the tree-sitter Markdown fence matcher."""
    from codefence.adapters.treesitter.markdown import fence_matches

    return fence_matches


def _single(captures: Mapping[str, Sequence[tuple[int, int]]], name: str) -> ByteRange:
    ranges = captures.get(name) or ()
    if len(ranges) != 1:
        raise FenceCaptureError(
            f"Fenced block match yielded {len(ranges)} '@{name}' capture(s), expected 1."
        )
    start, end = ranges[0]
    return ByteRange(start, end)


def block_from_captures(captures: Mapping[str, Sequence[tuple[int, int]]]) -> FenceBlock:
    """Build a :class:`FenceBlock` from one match of the fenced-block query."""
    unexpected = sorted(set(captures) - set(FENCE_CAPTURES))
    if unexpected:
        raise FenceCaptureError(
            f"Fenced block match carried unexpected capture(s): {', '.join(unexpected)}."
        )
    block = FenceBlock(
        full_range=_single(captures, BLOCK_CAPTURE),
        lang_range=_single(captures, LANGUAGE_CAPTURE),
        content_range=_single(captures, CONTENT_CAPTURE),
    )
    if not (
        block.full_range.contains(block.lang_range)
        and block.full_range.contains(block.content_range)
    ):
        raise FenceCaptureError(
            f"Fenced block captures escape the block at bytes "
            f"{block.full_range.start}-{block.full_range.end}."
        )
    return block


class FenceLocator:
    """Enumerate fenced code blocks carrying a language tag, in document order."""

    def __init__(self, matcher: FenceMatcher | None = None) -> None:
        self._matcher = matcher

    def locate(self, source: bytes) -> list[FenceBlock]:
        matcher = self._matcher or default_matcher()
        blocks = sorted(
            (block_from_captures(captures) for captures in matcher(source)),
            key=lambda block: block.full_range.start,
        )
        for previous, current in zip(blocks, blocks[1:]):
            if current.full_range.start < previous.full_range.end:
                raise InvariantViolation(
                    f"Fenced blocks overlap at bytes {current.full_range.start}-"
                    f"{previous.full_range.end}."
                )
        return blocks


__all__ = [
    "BLOCK_CAPTURE",
    "CONTENT_CAPTURE",
    "FENCE_CAPTURES",
    "LANGUAGE_CAPTURE",
    "ByteRange",
    "FenceBlock",
    "FenceLocator",
    "FenceMatcher",
    "block_from_captures",
    "default_matcher",
]
