"""Script classification helpers shared by every normalization stage.

All tables are immutable module constants.  Python strings are sequences of
code points, so supplementary-plane ideographs (CJK Extension B and later) are
classified like any other character.
"""
from __future__ import annotations

import re

__all__ = [
    "HAN_BASIC_RANGE",
    "HAN_RANGE",
    "KANA_RANGE",
    "BOPOMOFO_RANGE",
    "HANGUL_RANGE",
    "CJK_LETTER_RANGE",
    "CJK_ALL_RANGE",
    "CJK_TERMINAL_PUNCTUATION",
    "CJK_OPENING_BRACKETS",
    "CJK_CLOSING_BRACKETS",
    "is_han",
    "is_cjk_letter",
    "is_hangul",
    "is_ascii_letter",
    "is_ascii_alnum",
    "contains_cjk",
]

# Character-class bodies (without brackets) so they can be spliced into
# larger regular expressions.
HAN_BASIC_RANGE = "\u4E00-\u9FFF"
HAN_RANGE = HAN_BASIC_RANGE + (
    "\u3400-\u4DBF"
    "\uF900-\uFAFF"
    "\u2E80-\u2FDF"
    "\u3005\u3007\u3021-\u3029\u3038-\u303B"
    "\U00020000-\U0002FA1F"
    "\U00030000-\U000323AF"
)
KANA_RANGE = "\u3040-\u309F\u30A0-\u30FF\u31F0-\u31FF"
BOPOMOFO_RANGE = "\u3100-\u312F\u31A0-\u31BF"
HANGUL_RANGE = "\uAC00-\uD7AF\u1100-\u11FF\u3130-\u318F"

# Korean is written with Western punctuation, so Hangul is excluded from the
# letters that drive punctuation and bracket conversion.
CJK_LETTER_RANGE = HAN_RANGE + KANA_RANGE + BOPOMOFO_RANGE
CJK_ALL_RANGE = CJK_LETTER_RANGE + HANGUL_RANGE

CJK_TERMINAL_PUNCTUATION = "，。！？；：、"
CJK_OPENING_BRACKETS = "《「『【（〈"
CJK_CLOSING_BRACKETS = "》」』】）〉"

_HAN_RE = re.compile(f"[{HAN_RANGE}]")
_CJK_LETTER_RE = re.compile(f"[{CJK_LETTER_RANGE}]")
_HANGUL_RE = re.compile(f"[{HANGUL_RANGE}]")
_CJK_ANY_RE = re.compile(f"[{CJK_ALL_RANGE}]")


def is_han(ch: str | None) -> bool:
    """Return True if the first character of *ch* is a Han ideograph."""

    return bool(ch) and _HAN_RE.match(ch) is not None


def is_cjk_letter(ch: str | None) -> bool:
    """Return True for Han, Hiragana, Katakana and Bopomofo characters.

    Empty strings and ``None`` (a neighbour beyond the text edge) are not
    letters.
    """

    return bool(ch) and _CJK_LETTER_RE.match(ch) is not None


def is_hangul(ch: str | None) -> bool:
    return bool(ch) and _HANGUL_RE.match(ch) is not None


def is_ascii_letter(ch: str | None) -> bool:
    return bool(ch) and ("a" <= ch[0] <= "z" or "A" <= ch[0] <= "Z")


def is_ascii_alnum(ch: str | None) -> bool:
    return bool(ch) and (is_ascii_letter(ch) or "0" <= ch[0] <= "9")


def contains_cjk(text: str) -> bool:
    """Return True if *text* contains any CJK character, Hangul included."""

    return _CJK_ANY_RE.search(text) is not None
