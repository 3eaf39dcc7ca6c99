import pytest

from cjkfmt.config import FormattingConfig
from cjkfmt.rules import (
    add_cjk_english_spacing,
    add_cjk_parenthesis_spacing,
    apply_rules,
    collapse_newlines,
    collapse_spaces,
    convert_dashes,
    convert_fullwidth_brackets,
    convert_fullwidth_parentheses,
    convert_fullwidth_punctuation,
    convert_nested_corner_quotes,
    convert_straight_to_smart_quotes,
    convert_to_cjk_corner_quotes,
    fix_currency_spacing,
    fix_emdash_spacing,
    fix_quote_spacing,
    fix_slash_spacing,
    limit_consecutive_punctuation,
    normalize_ellipsis,
    normalize_fullwidth_alphanumeric,
    remove_trailing_spaces,
    strip_trailing_breaks,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("等等....然后", "等等... 然后"),
        ("wait . . . what", "wait... what"),
        ("结束...)", "结束...)"),
        ("好...」", "好...」"),
        ("a...\nb", "a...\nb"),
        ("等等...“然后”", "等等...“然后”"),
        ("等等...«然后»", "等等...«然后»"),
    ],
)
def test_normalize_ellipsis(raw: str, expected: str) -> None:
    assert normalize_ellipsis(raw) == expected


def test_collapse_newlines_and_br_paragraphs() -> None:
    assert collapse_newlines("a\n\n\n\nb") == "a\n\nb"
    assert collapse_newlines("a\n\n<br>\n\nb") == "a\n\nb"
    assert collapse_newlines("a\n\n<br/>\n\n<BR />\n\nb") == "a\n\nb"
    assert collapse_newlines("a\n\nb") == "a\n\nb"


def test_fullwidth_alphanumeric() -> None:
    assert normalize_fullwidth_alphanumeric("ＡＢＣ１２３ｘ") == "ABC123x"


def test_fullwidth_punctuation_next_to_cjk() -> None:
    assert convert_fullwidth_punctuation("你好,世界") == "你好，世界"
    assert convert_fullwidth_punctuation("你好!") == "你好！"
    assert convert_fullwidth_punctuation("Hello, world") == "Hello, world"


@pytest.mark.parametrize(
    "text",
    [
        "版本1.2.3发布",
        "时间12:30开始",
        "1. 中文",
        "中文\\,转义",
        "等等...然后",
    ],
)
def test_fullwidth_punctuation_keeps_protected_marks(text: str) -> None:
    assert convert_fullwidth_punctuation(text) == text


def test_fullwidth_parentheses_only_around_cjk() -> None:
    assert convert_fullwidth_parentheses("(中文)") == "（中文）"
    assert convert_fullwidth_parentheses("(English)") == "(English)"
    assert convert_fullwidth_parentheses("(한국어)") == "(한국어)"


def test_fullwidth_brackets_skip_markdown_links() -> None:
    assert convert_fullwidth_brackets("[中文]") == "【中文】"
    assert convert_fullwidth_brackets("[中文](http://x)") == "[中文](http://x)"
    assert convert_fullwidth_brackets("[[中文]]") == "[[中文]]"


def test_convert_dashes() -> None:
    assert convert_dashes("你好--世界") == "你好 —— 世界"
    assert convert_dashes("中文--English") == "中文 —— English"
    assert convert_dashes("《书》--作者") == "《书》—— 作者"
    assert convert_dashes("abc--def") == "abc--def"


def test_emdash_spacing() -> None:
    assert fix_emdash_spacing("中文——英文") == "中文 —— 英文"
    assert fix_emdash_spacing("中文 —— 英文") == "中文 —— 英文"
    assert fix_emdash_spacing("《书》——《书》") == "《书》——《书》"


def test_straight_to_smart_quotes() -> None:
    assert convert_straight_to_smart_quotes('He said "hi"') == "He said “hi”"
    assert convert_straight_to_smart_quotes("It's 'fine'") == "It's ‘fine’"
    assert convert_straight_to_smart_quotes('"中"', style="corner") == "「中」"
    assert convert_straight_to_smart_quotes('他说"你好"', style="corner") == "他说「你好」"
    assert convert_straight_to_smart_quotes('他说"等等..."然后', style="guillemets") == "他说«等等...»然后"
    assert convert_straight_to_smart_quotes('"未闭合', style="guillemets") == '"未闭合'


def test_corner_quote_conversions() -> None:
    assert convert_to_cjk_corner_quotes("“中文”") == "「中文」"
    assert convert_to_cjk_corner_quotes("“English”") == "“English”"
    assert convert_nested_corner_quotes("「他说‘你好’」") == "「他说『你好』」"


def test_quote_spacing() -> None:
    assert fix_quote_spacing("他说“你好”然后") == "他说 “你好” 然后"
    assert fix_quote_spacing("“你好”，然后") == "“你好”，然后"
    assert fix_quote_spacing("中文‘引用’中文", "‘", "’") == "中文 ‘引用’ 中文"
    assert fix_quote_spacing("don’t", "‘", "’") == "don’t"


def test_cjk_english_spacing() -> None:
    assert add_cjk_english_spacing("你好World") == "你好 World"
    assert add_cjk_english_spacing("English中文") == "English 中文"
    assert add_cjk_english_spacing("价格$100元") == "价格 $100 元"
    assert add_cjk_english_spacing("温度25℃") == "温度 25℃"


def test_cjk_parenthesis_spacing() -> None:
    assert add_cjk_parenthesis_spacing("中文(说明)结束") == "中文 (说明) 结束"


def test_currency_spacing() -> None:
    assert fix_currency_spacing("$ 100") == "$100"
    assert fix_currency_spacing("USD 200") == "USD200"
    assert fix_currency_spacing("50 %") == "50%"
    assert fix_currency_spacing("100USD") == "100 USD"
    assert fix_currency_spacing("100 USD", postfix_style="tight") == "100USD"


def test_slash_spacing() -> None:
    assert fix_slash_spacing("男 / 女") == "男/女"
    assert fix_slash_spacing("http://a.com/b") == "http://a.com/b"
    assert fix_slash_spacing("a // b") == "a // b"


def test_limit_consecutive_punctuation() -> None:
    assert limit_consecutive_punctuation("好！！！", 1) == "好！"
    assert limit_consecutive_punctuation("好！！！", 2) == "好！！"
    assert limit_consecutive_punctuation("好！！！", 0) == "好！！！"


def test_collapse_spaces_keeps_indent_and_line_tails() -> None:
    assert collapse_spaces("a   b") == "a b"
    assert collapse_spaces("  indented") == "  indented"
    assert collapse_spaces("line  \nnext") == "line  \nnext"


def test_remove_trailing_spaces() -> None:
    assert remove_trailing_spaces("a  \nb\t\n") == "a\nb\n"
    assert remove_trailing_spaces("a   \nb \n", preserve_two_space_hard_breaks=True) == "a  \nb\n"
    assert remove_trailing_spaces("   \nx", preserve_two_space_hard_breaks=True) == "\nx"


def test_strip_trailing_breaks() -> None:
    assert strip_trailing_breaks("text\\\n\n  ") == "text"


def test_apply_rules_skips_cjk_rules_for_latin_text() -> None:
    assert apply_rules("Hello,world (test)") == "Hello,world (test)"


def test_apply_rules_respects_switches() -> None:
    assert apply_rules("你好,世界") == "你好，世界"
    config = FormattingConfig(fullwidth_punctuation=False)
    assert apply_rules("你好,世界", config) == "你好,世界"


def test_apply_rules_trim_end() -> None:
    assert apply_rules("你好  \n\n") == "你好"
    assert apply_rules("你好 ", trim_end=False) == "你好"
    assert apply_rules("你好 x", trim_end=False) == "你好 x"
