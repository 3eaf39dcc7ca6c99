"""Latin span scanning and technical-subspan detection.

A *Latin span* is a maximal run of ASCII-ish characters embedded in CJK text.
Inside a span, *technical subspans* (URLs, e-mail addresses, versions, times,
grouped numbers, domains, decimals) are recognised so punctuation inside them
is never rewritten.
"""
from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import List, Sequence

__all__ = [
    "TechnicalSubspan",
    "LatinSpan",
    "TECHNICAL_PATTERNS",
    "is_latin_span_char",
    "find_technical_subspans",
    "scan_latin_spans",
    "is_in_latin_span",
    "get_technical_subspan_at",
    "is_in_technical_subspan",
]

_LATIN_PUNCT = frozenset(".,!?;:'\"()[]{}<>/-_@#&=+*%$\\|~`^")

# Priority order matters: an earlier pattern wins every overlap.  re.ASCII
# keeps \b and \d ASCII-only, so a boundary exists between a CJK letter and a
# digit.
TECHNICAL_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("url", re.compile(r"https?://[^\s]+", re.ASCII)),
    ("email", re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}", re.ASCII)),
    (
        "version",
        re.compile(
            r"\b(?:v\d+(?:\.\d+)+|\d+(?:\.\d+){2,})(?:-[0-9A-Za-z]+(?:\.[0-9A-Za-z]+)*)?\b",
            re.ASCII,
        ),
    ),
    ("time", re.compile(r"\b\d{1,2}:\d{2}(?::\d{2})?\b", re.ASCII)),
    ("thousands", re.compile(r"\b\d{1,3}(?:,\d{3})+\b", re.ASCII)),
    ("domain", re.compile(r"\b[a-zA-Z][a-zA-Z0-9-]*\.[a-zA-Z0-9.-]+[a-zA-Z]\b", re.ASCII)),
    ("decimal", re.compile(r"\b\d+\.\d+\b", re.ASCII)),
)


@dataclass(slots=True)
class TechnicalSubspan:
    """A protected token inside a Latin span; offsets are span-relative."""

    kind: str
    start: int
    end: int
    text: str


@dataclass(slots=True)
class LatinSpan:
    """A run of Latin characters; ``start``/``end`` index the full text."""

    start: int
    end: int
    text: str
    technical_subspans: List[TechnicalSubspan] = field(default_factory=list)


def is_latin_span_char(ch: str) -> bool:
    """Return True for characters that may continue a Latin span.

    Newlines always terminate a span.
    """

    if ch in (" ", "\t"):
        return True
    if "a" <= ch <= "z" or "A" <= ch <= "Z" or "0" <= ch <= "9":
        return True
    return ch in _LATIN_PUNCT


def find_technical_subspans(text: str) -> List[TechnicalSubspan]:
    """Find non-overlapping technical tokens in *text*, sorted by start."""

    accepted: List[TechnicalSubspan] = []
    for kind, pattern in TECHNICAL_PATTERNS:
        for match in pattern.finditer(text):
            start, end = match.span()
            if start == end:
                continue
            if any(start < other.end and end > other.start for other in accepted):
                continue
            accepted.append(TechnicalSubspan(kind, start, end, match.group(0)))
    accepted.sort(key=lambda item: item.start)
    return accepted


def _close_span(text: str, start: int, end: int, spans: List[LatinSpan]) -> None:
    chunk = text[start:end]
    if not chunk.strip():
        return
    spans.append(LatinSpan(start, end, chunk, find_technical_subspans(chunk)))


def scan_latin_spans(text: str) -> List[LatinSpan]:
    """Single left-to-right pass collecting every Latin span of *text*."""

    spans: List[LatinSpan] = []
    span_start = -1
    for index, ch in enumerate(text):
        if ch != "\n" and is_latin_span_char(ch):
            if span_start < 0:
                span_start = index
            continue
        if span_start >= 0:
            _close_span(text, span_start, index, spans)
            span_start = -1
    if span_start >= 0:
        _close_span(text, span_start, len(text), spans)
    return spans


def is_in_latin_span(position: int, spans: Sequence[LatinSpan]) -> LatinSpan | None:
    """Return the span covering *position*, or None."""

    for span in spans:
        if span.start <= position < span.end:
            return span
        if span.start > position:
            break
    return None


def get_technical_subspan_at(position: int, span: LatinSpan) -> TechnicalSubspan | None:
    """Return the technical subspan of *span* covering absolute *position*."""

    relative = position - span.start
    for subspan in span.technical_subspans:
        if subspan.start <= relative < subspan.end:
            return subspan
    return None


def is_in_technical_subspan(position: int, spans: Sequence[LatinSpan]) -> bool:
    span = is_in_latin_span(position, spans)
    if span is None:
        return False
    return get_technical_subspan_at(position, span) is not None
