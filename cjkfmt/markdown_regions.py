"""Markdown protected-region scanning, segmentation and reconstruction.

Protected regions (code, math, link targets, HTML tags, frontmatter ...) are
excluded from normalization.  The remaining gaps are the formattable
segments; after formatting they are stitched back with the untouched region
text in document order.
"""
from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Iterable, Iterator, List, Sequence

__all__ = [
    "ProtectedRegion",
    "TextSegment",
    "find_protected_regions",
    "extract_formattable_segments",
    "reconstruct_text",
]


@dataclass(slots=True)
class ProtectedRegion:
    """``kind`` is the detector name, e.g. ``fenced_code`` or ``link_url``."""

    start: int
    end: int
    kind: str
    content: str


@dataclass(slots=True)
class TextSegment:
    start: int
    end: int
    text: str


_RE_FRONTMATTER = re.compile(r"---\r?\n[\s\S]*?\r?\n---")
_RE_FENCED_CODE = re.compile(r"^(`{3,}|~{3,})([^\n]*)\n([\s\S]*?)^\1[ \t]*$", re.MULTILINE)
_RE_INLINE_CODE = re.compile(r"(`+)([^`]|[^`][\s\S]*?[^`])\1(?!`)")
_RE_IMAGE = re.compile(r"!\[[^\]]*\]\([^)]+\)")
_RE_LINK = re.compile(r"\[([^\]]*)\]\(([^)]+)\)")
_RE_HTML_TAG = re.compile(r"<[a-zA-Z][^>]*>|</[a-zA-Z][^>]*>")
_RE_WIKI_LINK = re.compile(r"\[\[([^\]|]+)(?:\|[^\]]+)?\]\]")
_RE_FOOTNOTE_DEF = re.compile(r"^\[\^[^\]]+\]:", re.MULTILINE)
_RE_FOOTNOTE_REF = re.compile(r"\[\^[^\]]+\]")
_RE_MATH_BLOCK = re.compile(r"\$\$[\s\S]*?\$\$")
_RE_MATH_INLINE = re.compile(r"(?<!\$)\$(?!\$)([^$\n]+)\$(?!\$)")
_RE_INDENTED_LINE = re.compile(r"^( {4}|\t)")
_RE_LIST_ITEM = re.compile(r"^\s*(?:[-*+]|\d+\.)")

# Detection order is precedence: a match starting inside an earlier region is
# ignored.
_PATTERN_DETECTORS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("fenced_code", _RE_FENCED_CODE),
    ("inline_code", _RE_INLINE_CODE),
    ("image", _RE_IMAGE),
    ("link_url", _RE_LINK),
    ("html_tag", _RE_HTML_TAG),
    ("wiki_link", _RE_WIKI_LINK),
    ("footnote_def", _RE_FOOTNOTE_DEF),
    ("footnote_ref", _RE_FOOTNOTE_REF),
    ("math_block", _RE_MATH_BLOCK),
    ("math_inline", _RE_MATH_INLINE),
)


def _inside(position: int, regions: Sequence[ProtectedRegion]) -> bool:
    return any(region.start <= position < region.end for region in regions)


def _match_bounds(kind: str, match: re.Match[str]) -> tuple[int, int]:
    if kind == "link_url":
        # Only the target between the parentheses is protected; the link
        # text stays formattable.
        start = match.start() + len(match.group(1)) + 3
        return start, match.end() - 1
    return match.start(), match.end()


def _scan_indented_code(text: str, regions: List[ProtectedRegion]) -> Iterator[ProtectedRegion]:
    """Yield indented code blocks that do not continue a list item."""

    position = 0
    block_start = -1
    previous_content = ""
    for line in text.split("\n"):
        blank = not line.strip()
        indented = not blank and _RE_INDENTED_LINE.match(line) is not None
        if block_start < 0:
            if indented and not _inside(position, regions):
                if not _RE_LIST_ITEM.match(previous_content):
                    block_start = position
        elif not blank and not indented:
            yield ProtectedRegion(block_start, position, "indented_code", text[block_start:position])
            block_start = -1
        if not blank:
            previous_content = line
        position += len(line) + 1
    if block_start >= 0:
        yield ProtectedRegion(block_start, len(text), "indented_code", text[block_start:])


def _resolve_overlaps(regions: List[ProtectedRegion], text: str) -> List[ProtectedRegion]:
    """Return sorted regions with containment dropped and partial overlaps merged."""

    resolved: List[ProtectedRegion] = []
    for region in sorted(regions, key=lambda item: (item.start, -item.end)):
        if resolved and region.start < resolved[-1].end:
            last = resolved[-1]
            if region.end > last.end:
                last.end = region.end
                last.content = text[last.start:last.end]
            continue
        resolved.append(region)
    return resolved


def find_protected_regions(text: str) -> List[ProtectedRegion]:
    """Collect every protected region of *text*, sorted and non-overlapping."""

    regions: List[ProtectedRegion] = []
    frontmatter = _RE_FRONTMATTER.match(text)
    if frontmatter:
        regions.append(ProtectedRegion(0, frontmatter.end(), "frontmatter", frontmatter.group(0)))

    for kind, pattern in _PATTERN_DETECTORS:
        for match in pattern.finditer(text):
            if _inside(match.start(), regions):
                continue
            start, end = _match_bounds(kind, match)
            if end <= start:
                continue
            regions.append(ProtectedRegion(start, end, kind, text[start:end]))

    regions.extend(list(_scan_indented_code(text, regions)))
    return _resolve_overlaps(regions, text)


def extract_formattable_segments(
    text: str, regions: Sequence[ProtectedRegion] | None = None
) -> List[TextSegment]:
    """Return the gaps between *regions* as segments, in document order."""

    if regions is None:
        regions = find_protected_regions(text)
    segments: List[TextSegment] = []
    current = 0
    for region in regions:
        if region.start > current:
            segments.append(TextSegment(current, region.start, text[current:region.start]))
        current = max(current, region.end)
    if current < len(text):
        segments.append(TextSegment(current, len(text), text[current:]))
    return segments


def reconstruct_text(
    original: str,
    formatted_segments: Iterable[TextSegment],
    regions: Sequence[ProtectedRegion],
) -> str:
    """Interleave formatted segment text with the original region text.

    Segment ``start``/``end`` refer to positions in *original*; only their
    ``text`` may have changed length.
    """

    parts: List[tuple[int, str]] = [(region.start, original[region.start:region.end]) for region in regions]
    parts.extend((segment.start, segment.text) for segment in formatted_segments)
    parts.sort(key=lambda item: item[0])
    return "".join(text for _, text in parts)

