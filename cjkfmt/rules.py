"""Typography rules for mixed CJK/Latin prose and the fixed rule pipeline.

Every rule is a plain ``str -> str`` function that can be used on its own.
:func:`apply_rules` runs them in a fixed order:

1. universal rules (ellipsis, newline collapsing)
2. CJK-gated rules, skipped entirely when the text has no CJK character:
   fullwidth normalization, dashes and quotes, spacing, punctuation limits
3. cleanup (space collapsing, trailing spaces, newline collapsing again)
4. optional strip of trailing whitespace and hard-break backslashes
"""
from __future__ import annotations

from functools import lru_cache, partial
import re
from typing import Callable, List, Optional, Tuple

from .config import FormattingConfig
from .latin_span import is_in_technical_subspan, scan_latin_spans
from .logging_utils import LogBudget, is_debug_logging_enabled, log_debug, preview_text
from .quote_pairing import (
    analyze_quotes,
    apply_contextual_quotes,
    is_apostrophe,
    is_decade_abbreviation,
    is_prime,
)
from .script import (
    CJK_ALL_RANGE,
    CJK_CLOSING_BRACKETS,
    CJK_LETTER_RANGE,
    CJK_OPENING_BRACKETS,
    CJK_TERMINAL_PUNCTUATION,
    HAN_BASIC_RANGE,
    contains_cjk,
    is_ascii_alnum,
    is_cjk_letter,
)

__all__ = [
    "SMART_QUOTE_GLYPHS",
    "normalize_ellipsis",
    "collapse_newlines",
    "normalize_fullwidth_alphanumeric",
    "convert_fullwidth_punctuation",
    "convert_fullwidth_parentheses",
    "convert_fullwidth_brackets",
    "convert_dashes",
    "fix_emdash_spacing",
    "convert_straight_to_smart_quotes",
    "convert_to_cjk_corner_quotes",
    "convert_nested_corner_quotes",
    "fix_quote_spacing",
    "add_cjk_english_spacing",
    "add_cjk_parenthesis_spacing",
    "fix_currency_spacing",
    "fix_slash_spacing",
    "limit_consecutive_punctuation",
    "collapse_spaces",
    "remove_trailing_spaces",
    "strip_trailing_breaks",
    "apply_rules",
]

Stage = Tuple[str, Callable[[str], str]]

SMART_QUOTE_GLYPHS = {
    "curly": ("“", "”", "‘", "’"),
    "corner": ("「", "」", "『", "』"),
    "guillemets": ("«", "»", "‹", "›"),
}

_CURRENCY_SYMBOLS = "$¥€£₹"
_CURRENCY_CODES = "USD|CNY|EUR|GBP|RMB"

# --- universal -------------------------------------------------------------

_RE_SPACED_DOTS = re.compile(r"[ \t]*\.(?:[ \t]+\.){2,}")
_RE_DOT_RUN = re.compile(r"\.{4,}")
_RE_ELLIPSIS_GAP = re.compile(r"\.\.\.[ \t]*(?=[^\s.,!?;:)\]}>\"'“”‘’「」『』«»‹›）】》〉，。！？；：、])")
_RE_BR_PARAGRAPHS = re.compile(r"\n\n(?:<br\s*/?>\n\n)+", re.IGNORECASE)
_RE_EXCESS_NEWLINES = re.compile(r"\n{3,}")


def normalize_ellipsis(text: str) -> str:
    """``. . .`` and ``....`` become ``...`` followed by exactly one space."""

    if "." not in text:
        return text
    text = _RE_SPACED_DOTS.sub("...", text)
    text = _RE_DOT_RUN.sub("...", text)
    return _RE_ELLIPSIS_GAP.sub("... ", text)


def collapse_newlines(text: str) -> str:
    """Drop ``<br>`` empty paragraphs and collapse 3+ newlines to one blank line."""

    text = _RE_BR_PARAGRAPHS.sub("\n\n", text)
    return _RE_EXCESS_NEWLINES.sub("\n\n", text)


# --- fullwidth normalization -----------------------------------------------

_FULLWIDTH_ALNUM_TABLE = {
    codepoint: codepoint - 0xFEE0
    for first, last in ((0xFF10, 0xFF19), (0xFF21, 0xFF3A), (0xFF41, 0xFF5A))
    for codepoint in range(first, last + 1)
}
_HALF_TO_FULL_PUNCT = {",": "，", ".": "。", "!": "！", "?": "？", ";": "；", ":": "："}
_RE_ORDERED_LIST_MARKER = re.compile(r"^[ \t]*\d+\.(?=[ \t])", re.MULTILINE)
_RE_CJK_PARENS = re.compile(rf"\(([{CJK_LETTER_RANGE}][^()]*)\)")
# Markdown link text, images, wiki links and reference definitions keep
# their ASCII brackets.
_RE_CJK_BRACKETS = re.compile(rf"(?<![!\[\]])\[([{CJK_LETTER_RANGE}][^\[\]]*)\](?![(\[\]:])")


def normalize_fullwidth_alphanumeric(text: str) -> str:
    """``ＡＢＣ１２３`` → ``ABC123``."""

    return text.translate(_FULLWIDTH_ALNUM_TABLE)


def _neighbour(chars: List[str], index: int, step: int) -> str:
    index += step
    while 0 <= index < len(chars) and chars[index] in " \t":
        index += step
    if 0 <= index < len(chars):
        return chars[index]
    return ""


def _cjk_on_left(ch: str) -> bool:
    return is_cjk_letter(ch) or (bool(ch) and ch in CJK_CLOSING_BRACKETS + CJK_TERMINAL_PUNCTUATION)


def _cjk_on_right(ch: str) -> bool:
    return is_cjk_letter(ch) or (bool(ch) and ch in CJK_OPENING_BRACKETS)


def convert_fullwidth_punctuation(text: str) -> str:
    """Convert ``, . ! ? ; :`` to fullwidth when a neighbour is CJK.

    Marks inside technical subspans (URLs, versions, times ...), dots of an
    ellipsis, backslash-escaped marks and ordered-list markers are kept.
    """

    if not any(mark in text for mark in _HALF_TO_FULL_PUNCT):
        return text
    spans = scan_latin_spans(text)
    list_markers = {match.end() - 1 for match in _RE_ORDERED_LIST_MARKER.finditer(text)}
    chars = list(text)
    for index, ch in enumerate(chars):
        target = _HALF_TO_FULL_PUNCT.get(ch)
        if target is None or index in list_markers:
            continue
        if index > 0 and chars[index - 1] == "\\":
            continue
        if ch == "." and "." in (text[index - 1:index], text[index + 1:index + 2]):
            continue
        if is_in_technical_subspan(index, spans):
            continue
        if _cjk_on_left(_neighbour(chars, index, -1)) or _cjk_on_right(_neighbour(chars, index, 1)):
            chars[index] = target
    return "".join(chars)


def convert_fullwidth_parentheses(text: str) -> str:
    """``(中文)`` → ``（中文）``; parentheses around Latin or Hangul stay ASCII."""

    return _RE_CJK_PARENS.sub(r"（\1）", text)


def convert_fullwidth_brackets(text: str) -> str:
    return _RE_CJK_BRACKETS.sub(r"【\1】", text)


# --- dashes and quotes -----------------------------------------------------

_DASH_SIDE = rf"[{CJK_LETTER_RANGE}《》「」『』【】（）〈〉，。！？；：、A-Za-z0-9]"
_RE_HYPHEN_DASH = re.compile(rf"({_DASH_SIDE})[ \t]*-{{2,}}[ \t]*(?=({_DASH_SIDE}))")
_RE_EMDASH = re.compile(r"([^\s—])[ \t]*——[ \t]*(?=([^\s—]))")
_RE_CJK_CURLY_DOUBLE = re.compile(rf"“([^”]*[{HAN_BASIC_RANGE}][^”]*)”")
_RE_CORNER_BLOCK = re.compile(r"「([^」]*)」")
_RE_CURLY_SINGLE_PAIR = re.compile(r"‘([^’]*)’")
# A straight single-quote pair that does not touch alphanumerics outside;
# apostrophes between letters may appear inside.
_RE_STRAIGHT_SINGLE_PAIR = re.compile(
    r"(?<![A-Za-z0-9])'((?:[^'\n]|(?<=[A-Za-z])'(?=[A-Za-z]))*?)'(?![A-Za-z0-9])"
)


def _emdash(before: str, after: str) -> str:
    left = "" if before in CJK_CLOSING_BRACKETS else " "
    right = "" if after in CJK_OPENING_BRACKETS else " "
    return f"{before}{left}——{right}"


def convert_dashes(text: str) -> str:
    """``--`` (or longer) between CJK and CJK/alphanumerics → ``——`` with spacing."""

    if "--" not in text:
        return text

    def _replace(match: re.Match[str]) -> str:
        before, after = match.group(1), match.group(2)
        if is_ascii_alnum(before) and is_ascii_alnum(after):
            return match.group(0)
        return _emdash(before, after)

    return _RE_HYPHEN_DASH.sub(_replace, text)


def fix_emdash_spacing(text: str) -> str:
    if "——" not in text:
        return text
    return _RE_EMDASH.sub(lambda match: _emdash(match.group(1), match.group(2)), text)


def convert_straight_to_smart_quotes(text: str, style: str = "curly") -> str:
    """Convert paired straight quotes to *style* glyphs.

    Pairs come from :func:`analyze_quotes`, so a quote directly after a CJK
    letter (``他说"你好"``) opens, and apostrophes (``don't``), decades
    (``'90s``) and primes (``5'10"``) stay straight.  Unpaired quotes and
    quotes that are already typographic are left alone.
    """

    if '"' not in text and "'" not in text:
        return text
    double_open, double_close, single_open, single_close = SMART_QUOTE_GLYPHS[style]
    glyphs = {"double": (double_open, double_close), "single": (single_open, single_close)}
    chars = list(text)
    for pair in analyze_quotes(text).pairs:
        if text[pair.open_index] not in "\"'" or text[pair.close_index] not in "\"'":
            continue
        chars[pair.open_index], chars[pair.close_index] = glyphs[pair.type]
    return "".join(chars)


def convert_to_cjk_corner_quotes(text: str) -> str:
    """``“…”`` holding a Han character → ``「…」``."""

    return _RE_CJK_CURLY_DOUBLE.sub(r"「\1」", text)


def convert_nested_corner_quotes(text: str) -> str:
    """Single quotes nested inside ``「…」`` → ``『…』``."""

    def _replace(match: re.Match[str]) -> str:
        inner = _RE_CURLY_SINGLE_PAIR.sub(r"『\1』", match.group(1))
        inner = _RE_STRAIGHT_SINGLE_PAIR.sub(r"『\1』", inner)
        return f"「{inner}」"

    return _RE_CORNER_BLOCK.sub(_replace, text)


@lru_cache(maxsize=None)
def _quote_spacing_patterns(opening: str, closing: str) -> tuple[re.Pattern[str], re.Pattern[str]]:
    word = rf"[A-Za-z0-9{CJK_ALL_RANGE}]|——"
    before_open = re.compile(rf"({word}){re.escape(opening)}")
    after_close = re.compile(rf"{re.escape(closing)}(?=({word}))")
    return before_open, after_close


def _is_single_quote_mark(text: str, pos: int) -> bool:
    return is_apostrophe(text, pos) or is_decade_abbreviation(text, pos) or is_prime(text, pos)


def fix_quote_spacing(text: str, opening: str = "“", closing: str = "”") -> str:
    """Put one space between a quote pair and adjacent letters, digits or CJK.

    No space is added after CJK closing brackets or terminal punctuation, nor
    before CJK opening brackets or terminal punctuation.  Curly apostrophes
    and primes (``don’t``, ``5’``) are left alone.
    """

    if opening not in text and closing not in text:
        return text
    before_open, after_close = _quote_spacing_patterns(opening, closing)
    check_marks = opening in "‘’" or closing in "‘’"

    def _space_before(match: re.Match[str]) -> str:
        if check_marks and _is_single_quote_mark(text, match.end() - 1):
            return match.group(0)
        return f"{match.group(1)} {opening}"

    def _space_after(match: re.Match[str]) -> str:
        if check_marks and _is_single_quote_mark(text, match.start()):
            return match.group(0)
        return f"{closing} "

    # The callbacks read positions from `text`, which is rebound between the
    # two passes.
    text = before_open.sub(_space_before, text)
    return after_close.sub(_space_after, text)


# --- spacing ---------------------------------------------------------------

_ALNUM_RUN = (
    rf"(?:[{_CURRENCY_SYMBOLS}][ ]?)?[A-Za-z0-9]+"
    rf"(?:[%‰℃℉]|°[CcFf]?|[ ]?(?:{_CURRENCY_CODES}))?"
)
_RE_CJK_THEN_ALNUM = re.compile(rf"([{CJK_ALL_RANGE}])({_ALNUM_RUN})")
_RE_ALNUM_THEN_CJK = re.compile(rf"({_ALNUM_RUN})([{CJK_ALL_RANGE}])")
_RE_CJK_THEN_PAREN = re.compile(rf"([{CJK_ALL_RANGE}])\(")
_RE_PAREN_THEN_CJK = re.compile(rf"\)([{CJK_ALL_RANGE}])")
_RE_PREFIX_SYMBOL_GAP = re.compile(rf"([{re.escape(_CURRENCY_SYMBOLS)}])[ \t]+(?=\d)")
_RE_PREFIX_CODE_GAP = re.compile(rf"\b({_CURRENCY_CODES})[ \t]+(?=\d)", re.ASCII)
_RE_UNIT_GAP = re.compile(r"(?<=\d)[ \t]+(?=[%‰℃℉°])")
_RE_POSTFIX_CODE_ATTACHED = re.compile(rf"(?<=\d)({_CURRENCY_CODES})\b", re.ASCII)
_RE_POSTFIX_CODE_DETACHED = re.compile(rf"(?<=\d)[ \t]+({_CURRENCY_CODES})\b", re.ASCII)
_RE_SLASH_GAP = re.compile(r"(?<![/:])[ \t]*/[ \t]*(?!/)")


def add_cjk_english_spacing(text: str) -> str:
    """``你好World`` → ``你好 World``; ``价格$100元`` → ``价格 $100 元``."""

    text = _RE_CJK_THEN_ALNUM.sub(r"\1 \2", text)
    return _RE_ALNUM_THEN_CJK.sub(r"\1 \2", text)


def add_cjk_parenthesis_spacing(text: str) -> str:
    text = _RE_CJK_THEN_PAREN.sub(r"\1 (", text)
    return _RE_PAREN_THEN_CJK.sub(r") \1", text)


def fix_currency_spacing(text: str, postfix_style: str = "spaced") -> str:
    """Bind prefix currencies and units to their number.

    ``$ 100`` → ``$100``, ``USD 200`` → ``USD200``, ``50 %`` → ``50%``.
    Postfix codes follow *postfix_style*: ``spaced`` gives ``100 USD``,
    ``tight`` gives ``100USD``.
    """

    text = _RE_PREFIX_SYMBOL_GAP.sub(r"\1", text)
    text = _RE_PREFIX_CODE_GAP.sub(r"\1", text)
    text = _RE_UNIT_GAP.sub("", text)
    if postfix_style == "tight":
        return _RE_POSTFIX_CODE_DETACHED.sub(r"\1", text)
    return _RE_POSTFIX_CODE_ATTACHED.sub(r" \1", text)


def fix_slash_spacing(text: str) -> str:
    """``男 / 女`` → ``男/女``; ``//`` and slashes inside URLs are untouched."""

    if "/" not in text:
        return text
    spans = scan_latin_spans(text)

    def _replace(match: re.Match[str]) -> str:
        slash = match.start() + match.group(0).index("/")
        if is_in_technical_subspan(slash, spans):
            return match.group(0)
        return "/"

    return _RE_SLASH_GAP.sub(_replace, text)


# --- cleanup ---------------------------------------------------------------

_RE_REPEATED_PUNCT_ONE = re.compile(r"([！？。])\1+")
_RE_REPEATED_PUNCT_TWO = re.compile(r"([！？。])\1{2,}")
_RE_INTERIOR_SPACES = re.compile(r"(?<=\S) {2,}(?=\S)")
_RE_TRAILING_SPACES = re.compile(r"[ \t]+(?=\r?$)", re.MULTILINE)
_RE_TRAILING_BREAKS = re.compile(r"[\s\\]+\Z")


def limit_consecutive_punctuation(text: str, limit: int) -> str:
    """Collapse runs of ``！？。`` to at most *limit* (1 or 2); 0 disables."""

    if limit == 1:
        return _RE_REPEATED_PUNCT_ONE.sub(r"\1", text)
    if limit == 2:
        return _RE_REPEATED_PUNCT_TWO.sub(r"\1\1", text)
    return text


def collapse_spaces(text: str) -> str:
    return _RE_INTERIOR_SPACES.sub(" ", text)


def remove_trailing_spaces(text: str, preserve_two_space_hard_breaks: bool = False) -> str:
    """Strip spaces and tabs at line ends.

    With *preserve_two_space_hard_breaks*, a run of two or more spaces after
    line content is kept as a markdown hard break (normalized to two spaces).
    """

    if not preserve_two_space_hard_breaks:
        return _RE_TRAILING_SPACES.sub("", text)

    def _replace(match: re.Match[str]) -> str:
        run = match.group(0)
        line_start = text.rfind("\n", 0, match.start()) + 1
        has_content = bool(text[line_start:match.start()].strip())
        if has_content and len(run) >= 2 and run.strip(" ") == "":
            return "  "
        return ""

    return _RE_TRAILING_SPACES.sub(_replace, text)


def strip_trailing_breaks(text: str) -> str:
    """Remove trailing whitespace and trailing hard-break backslashes."""

    return _RE_TRAILING_BREAKS.sub("", text)


# --- pipeline --------------------------------------------------------------


def _smart_quote_stage(config: FormattingConfig) -> Stage:
    style = config.quote_style
    if style == "curly":
        mode = "contextual" if config.contextual_quotes else "curly-everywhere"
        return ("smart_quotes", partial(apply_contextual_quotes, mode=mode))
    if style == "corner" and config.contextual_quotes:
        return ("smart_quotes", partial(apply_contextual_quotes, mode="corner-for-cjk"))
    return ("smart_quotes", partial(convert_straight_to_smart_quotes, style=style))


def _universal_stages(config: FormattingConfig) -> List[Stage]:
    stages: List[Stage] = []
    if config.ellipsis_normalization:
        stages.append(("ellipsis", normalize_ellipsis))
    if config.newline_collapsing:
        stages.append(("newlines", collapse_newlines))
    return stages


def _cjk_stages(config: FormattingConfig) -> List[Stage]:
    corner_style = config.smart_quote_conversion and config.quote_style == "corner"
    candidates: List[Tuple[bool, Stage]] = [
        (config.fullwidth_alphanumeric, ("fullwidth_alphanumeric", normalize_fullwidth_alphanumeric)),
        (config.fullwidth_punctuation, ("fullwidth_punctuation", convert_fullwidth_punctuation)),
        (config.fullwidth_brackets, ("fullwidth_brackets", convert_fullwidth_brackets)),
        (config.dash_conversion, ("dashes", convert_dashes)),
        (config.emdash_spacing, ("emdash_spacing", fix_emdash_spacing)),
        (config.smart_quote_conversion, _smart_quote_stage(config)),
        (config.cjk_corner_quotes, ("cjk_corner_quotes", convert_to_cjk_corner_quotes)),
        (config.cjk_nested_quotes, ("cjk_nested_quotes", convert_nested_corner_quotes)),
        (config.quote_spacing, ("quote_spacing", partial(fix_quote_spacing, opening="“", closing="”"))),
        (
            config.quote_spacing and corner_style,
            ("corner_quote_spacing", partial(fix_quote_spacing, opening="「", closing="」")),
        ),
        (
            config.single_quote_spacing,
            ("single_quote_spacing", partial(fix_quote_spacing, opening="‘", closing="’")),
        ),
        (
            config.single_quote_spacing and corner_style,
            ("single_corner_quote_spacing", partial(fix_quote_spacing, opening="『", closing="』")),
        ),
        (config.cjk_english_spacing, ("cjk_english_spacing", add_cjk_english_spacing)),
        # Must precede fullwidth parentheses: "中文(说明)" first gains the
        # space, then the inner ASCII parentheses are converted.
        (config.cjk_parenthesis_spacing, ("cjk_parenthesis_spacing", add_cjk_parenthesis_spacing)),
        (config.fullwidth_parentheses, ("fullwidth_parentheses", convert_fullwidth_parentheses)),
        (
            config.currency_spacing,
            ("currency_spacing", partial(fix_currency_spacing, postfix_style=config.postfix_currency_style)),
        ),
        (config.slash_spacing, ("slash_spacing", fix_slash_spacing)),
        (
            config.consecutive_punctuation_limit > 0,
            (
                "consecutive_punctuation",
                partial(limit_consecutive_punctuation, limit=config.consecutive_punctuation_limit),
            ),
        ),
    ]
    return [stage for enabled, stage in candidates if enabled]


def _cleanup_stages(config: FormattingConfig, preserve_two_space_hard_breaks: bool) -> List[Stage]:
    stages: List[Stage] = []
    if config.space_collapsing:
        stages.append(("space_collapsing", collapse_spaces))
    if config.trailing_space_removal:
        stages.append(
            (
                "trailing_spaces",
                partial(remove_trailing_spaces, preserve_two_space_hard_breaks=preserve_two_space_hard_breaks),
            )
        )
    if config.newline_collapsing:
        stages.append(("newlines", collapse_newlines))
    return stages


def apply_rules(
    text: str,
    config: Optional[FormattingConfig] = None,
    *,
    preserve_two_space_hard_breaks: bool = False,
    trim_end: bool = True,
    log_budget: Optional[LogBudget] = None,
) -> str:
    """Run the rule pipeline over plain prose.

    Args:
        text: Text without markdown constructs that need protection.
        config: Rule switches; ``None`` uses the defaults.
        preserve_two_space_hard_breaks: Keep two-space hard breaks when
            removing trailing spaces.
        trim_end: Strip trailing whitespace and hard-break backslashes from
            the result.  Disabled for text that does not end the document.
        log_budget: Debug log budget shared by one formatting call; a fresh
            one is created when omitted.
    """

    if not text:
        return text
    cfg = config or FormattingConfig()
    budget = log_budget if log_budget is not None else LogBudget()
    stages = _universal_stages(cfg)
    if contains_cjk(text):
        stages.extend(_cjk_stages(cfg))
    stages.extend(_cleanup_stages(cfg, preserve_two_space_hard_breaks))

    result = text
    for name, rule in stages:
        updated = rule(result)
        if updated != result and is_debug_logging_enabled():
            log_debug("rule %s changed %r", name, preview_text(updated), budget=budget)
        result = updated
    if trim_end:
        result = strip_trailing_breaks(result)
    return result
