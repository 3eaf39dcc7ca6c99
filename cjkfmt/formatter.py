"""Normalizer facade used by the CLI, the HTTP service and editor hosts."""
from __future__ import annotations

import re
from typing import Optional

from .config import FormattingConfig
from .logging_utils import LogBudget, log_debug
from .markdown_regions import TextSegment, extract_formattable_segments, find_protected_regions, reconstruct_text
from .rules import apply_rules

__all__ = ["format_markdown", "format_selection"]

_RE_LINE_TAIL = re.compile(r"[ \t]+\Z")


def _format_segment(
    text: str,
    config: FormattingConfig,
    at_document_end: bool,
    preserve_two_space_hard_breaks: bool,
    budget: LogBudget,
) -> str:
    if at_document_end:
        return apply_rules(
            text,
            config,
            preserve_two_space_hard_breaks=preserve_two_space_hard_breaks,
            trim_end=True,
            log_budget=budget,
        )
    # Text before a protected region continues on the same line, so its
    # trailing blanks are not line-end spaces.
    tail_match = _RE_LINE_TAIL.search(text)
    tail = tail_match.group(0) if tail_match else ""
    body = text[: len(text) - len(tail)]
    formatted = apply_rules(
        body,
        config,
        preserve_two_space_hard_breaks=preserve_two_space_hard_breaks,
        trim_end=False,
        log_budget=budget,
    )
    return formatted + tail


def format_markdown(
    text: str,
    config: Optional[FormattingConfig] = None,
    *,
    preserve_two_space_hard_breaks: bool = False,
) -> str:
    """Normalize a markdown document, leaving protected regions byte-identical.

    Code, math, link targets, HTML tags, footnote markers and frontmatter are
    copied verbatim; every gap between them runs through the rule pipeline on
    its own.
    """

    if not text:
        return text
    cfg = config or FormattingConfig()
    regions = find_protected_regions(text)
    segments = extract_formattable_segments(text, regions)
    budget = LogBudget()
    log_debug("format_markdown: %d protected regions, %d segments", len(regions), len(segments), budget=budget)
    formatted = [
        TextSegment(
            segment.start,
            segment.end,
            _format_segment(segment.text, cfg, segment.end == len(text), preserve_two_space_hard_breaks, budget),
        )
        for segment in segments
    ]
    return reconstruct_text(text, formatted, regions)


def format_selection(
    text: str,
    config: Optional[FormattingConfig] = None,
    *,
    preserve_two_space_hard_breaks: bool = False,
) -> str:
    """Normalize plain prose; no markdown protection is applied."""

    return apply_rules(
        text,
        config or FormattingConfig(),
        preserve_two_space_hard_breaks=preserve_two_space_hard_breaks,
    )
