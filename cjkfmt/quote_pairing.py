"""Quote tokenization, pairing and context-aware glyph selection.

Quotes are classified by ordered guard clauses (apostrophe, decade
abbreviation, prime) before the open/close heuristics run, then paired with
one stack per quote type.  Glyph substitution happens in a single rewrite
keyed by the original index, so already substituted text is never rescanned.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Literal

from .script import is_ascii_letter, is_cjk_letter

__all__ = [
    "QuoteType",
    "QuoteRole",
    "QuoteMode",
    "QuoteToken",
    "QuotePair",
    "QuoteAnalysis",
    "QUOTE_MODES",
    "DOUBLE_QUOTES",
    "SINGLE_QUOTES",
    "is_apostrophe",
    "is_decade_abbreviation",
    "is_prime",
    "classify_quote",
    "tokenize_quotes",
    "pair_quotes",
    "is_cjk_involved",
    "analyze_quotes",
    "apply_contextual_quotes",
]

QuoteType = Literal["double", "single"]
QuoteRole = Literal["open", "close", "apostrophe", "prime"]
QuoteMode = Literal["off", "curly-everywhere", "contextual", "corner-for-cjk"]

QUOTE_MODES: tuple[str, ...] = ("off", "curly-everywhere", "contextual", "corner-for-cjk")

# Corner brackets are CJK punctuation in their own right and are never
# re-paired.
DOUBLE_QUOTES = frozenset('"“”')
SINGLE_QUOTES = frozenset("'‘’")

OPENING_BRACKETS = "([{（【《〈「『"
CLOSING_BRACKETS = ")]}）】》〉」』"
TERMINAL_PUNCTUATION = "，。！？；：、.,!?;:"

_GLYPHS: Dict[str, Dict[str, tuple[str, str]]] = {
    "curly": {"double": ("“", "”"), "single": ("‘", "’")},
    "straight": {"double": ('"', '"'), "single": ("'", "'")},
    "corner": {"double": ("「", "」"), "single": ("『", "』")},
}


@dataclass(slots=True)
class QuoteToken:
    index: int
    char: str
    type: QuoteType
    role: QuoteRole


@dataclass(slots=True)
class QuotePair:
    open_index: int
    close_index: int
    type: QuoteType
    content: str
    is_cjk_involved: bool


@dataclass(slots=True)
class QuoteAnalysis:
    tokens: List[QuoteToken] = field(default_factory=list)
    pairs: List[QuotePair] = field(default_factory=list)
    orphans: List[QuoteToken] = field(default_factory=list)


def _char_at(text: str, index: int) -> str:
    if 0 <= index < len(text):
        return text[index]
    return ""


def _is_digit(ch: str) -> bool:
    return bool(ch) and "0" <= ch <= "9"


def is_apostrophe(text: str, pos: int) -> bool:
    """Letter-quote-letter (``don't``) or a possessive ending (``James'``/``John's``)."""

    if text[pos] not in "'’‘":
        return False
    before = _char_at(text, pos - 1)
    after = _char_at(text, pos + 1)
    if is_ascii_letter(before) and is_ascii_letter(after):
        return True
    if is_ascii_letter(before) and after in ("s", "S"):
        return not is_ascii_letter(_char_at(text, pos + 2))
    return False


def is_decade_abbreviation(text: str, pos: int) -> bool:
    """``'90s``: a quote not preceded by a digit, followed by two digits."""

    if text[pos] not in "'‘":
        return False
    if _is_digit(_char_at(text, pos - 1)):
        return False
    return _is_digit(_char_at(text, pos + 1)) and _is_digit(_char_at(text, pos + 2))


def is_prime(text: str, pos: int) -> bool:
    """Feet/minutes (``5'``) or inches/seconds (``10"``, ``5'10"``) after a digit."""

    if not _is_digit(_char_at(text, pos - 1)):
        return False
    return text[pos] in "'’\"”"


def _neighbour(text: str, pos: int, step: int) -> str:
    index = pos + step
    while 0 <= index < len(text) and text[index] in " \t":
        index += step
    return _char_at(text, index)


def classify_quote(
    text: str,
    pos: int,
    quote_type: QuoteType,
    stacks: Dict[str, List[int]],
) -> QuoteRole:
    """Classify the quote at *pos* given the currently open quotes per type."""

    if is_apostrophe(text, pos) or is_decade_abbreviation(text, pos):
        return "apostrophe"
    if is_prime(text, pos):
        return "prime"

    left_char = _char_at(text, pos - 1)
    at_start = pos == 0 or left_char == "\n"
    left_is_space = pos == 0 or left_char.isspace()
    left = _neighbour(text, pos, -1)
    if at_start or left_is_space or (left and left in OPENING_BRACKETS):
        return "open"

    right_char = _char_at(text, pos + 1)
    at_end = pos == len(text) - 1 or right_char == "\n"
    right_is_space = pos == len(text) - 1 or right_char.isspace()
    right = _neighbour(text, pos, 1)
    if at_end or right_is_space or (right and (right in CLOSING_BRACKETS or right in TERMINAL_PUNCTUATION)):
        return "close"
    return "close" if stacks[quote_type] else "open"


def tokenize_quotes(text: str) -> List[QuoteToken]:
    tokens: List[QuoteToken] = []
    stacks: Dict[str, List[int]] = {"double": [], "single": []}
    for index, ch in enumerate(text):
        if ch in DOUBLE_QUOTES:
            quote_type: QuoteType = "double"
        elif ch in SINGLE_QUOTES:
            quote_type = "single"
        else:
            continue
        role = classify_quote(text, index, quote_type, stacks)
        if role == "open":
            stacks[quote_type].append(index)
        elif role == "close" and stacks[quote_type]:
            stacks[quote_type].pop()
        tokens.append(QuoteToken(index, ch, quote_type, role))
    return tokens


def is_cjk_involved(text: str, open_index: int, close_index: int) -> bool:
    content = text[open_index + 1:close_index]
    if any(is_cjk_letter(ch) for ch in content):
        return True
    return is_cjk_letter(_char_at(text, open_index - 1)) or is_cjk_letter(_char_at(text, close_index + 1))


def pair_quotes(text: str, tokens: List[QuoteToken]) -> QuoteAnalysis:
    """Match open/close tokens into pairs; everything unmatched is an orphan."""

    analysis = QuoteAnalysis(tokens=list(tokens))
    stacks: Dict[str, List[QuoteToken]] = {"double": [], "single": []}
    for token in tokens:
        if token.role == "open":
            stacks[token.type].append(token)
            continue
        if token.role != "close":
            continue
        stack = stacks[token.type]
        if not stack:
            analysis.orphans.append(token)
            continue
        opener = stack.pop()
        # Quotes of the other type opened inside this pair can no longer
        # close cleanly ("a 'b" c').
        other = stacks["single" if token.type == "double" else "double"]
        while other and other[-1].index > opener.index:
            analysis.orphans.append(other.pop())
        analysis.pairs.append(
            QuotePair(
                open_index=opener.index,
                close_index=token.index,
                type=token.type,
                content=text[opener.index + 1:token.index],
                is_cjk_involved=is_cjk_involved(text, opener.index, token.index),
            )
        )
    for stack in stacks.values():
        analysis.orphans.extend(stack)
    analysis.pairs.sort(key=lambda pair: pair.open_index)
    analysis.orphans.sort(key=lambda token: token.index)
    return analysis


def analyze_quotes(text: str) -> QuoteAnalysis:
    return pair_quotes(text, tokenize_quotes(text))


def _is_straight(text: str, pair: QuotePair) -> bool:
    return text[pair.open_index] in "\"'" and text[pair.close_index] in "\"'"


def _glyph_family(mode: QuoteMode, pair: QuotePair) -> str:
    if mode == "curly-everywhere":
        return "curly"
    if mode == "contextual":
        return "curly" if pair.is_cjk_involved else "straight"
    return "corner" if pair.is_cjk_involved else "straight"


def apply_contextual_quotes(text: str, mode: QuoteMode) -> str:
    """Rewrite paired quotes according to *mode*.

    ``contextual`` makes CJK pairs curly; ``corner-for-cjk`` uses corner
    brackets for them.  A pair that involves no CJK is only ever left as it
    is: straight input stays straight and curly input stays curly, so output
    that gained spacing around its quotes is stable on a second run.
    Orphans, apostrophes and primes are left as they are.
    """

    if mode == "off" or not text:
        return text
    if mode not in QUOTE_MODES:
        raise ValueError(f"unknown quote mode: {mode!r}")

    replacements: Dict[int, str] = {}
    for pair in analyze_quotes(text).pairs:
        family = _glyph_family(mode, pair)
        if family == "straight" and not _is_straight(text, pair):
            continue
        opening, closing = _GLYPHS[family][pair.type]
        replacements[pair.open_index] = opening
        replacements[pair.close_index] = closing
    if not replacements:
        return text
    return "".join(replacements.get(index, ch) for index, ch in enumerate(text))
