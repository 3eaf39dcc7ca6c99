import re

import pytest

from cjkfmt import FormattingConfig, format_markdown, format_selection
from cjkfmt.markdown_regions import find_protected_regions

ALL = FormattingConfig.all_enabled()

MARKDOWN_DOC = "# 标题\n\n正文,包含`code`和[链接](https://a.com).\n\n```\nraw,text\n```\n"

SAMPLES = [
    "你好,世界",
    "中文English混排,测试(说明)结束",
    '他说"你好"然后离开',
    "价格$100元,温度25℃",
    "等等...然后",
    "你好--世界",
    '我喜欢"Python"语言',
    '他说"等等..."然后',
    MARKDOWN_DOC,
]

CONFIGS = {
    "default": FormattingConfig(),
    "all": ALL,
    "corner": FormattingConfig(quote_style="corner"),
    "corner-plain": FormattingConfig(quote_style="corner", contextual_quotes=False),
    "guillemets": FormattingConfig(quote_style="guillemets"),
}


def test_fullwidth_comma_between_cjk() -> None:
    assert format_markdown("你好,世界", ALL) == "你好，世界"


def test_latin_parentheses_untouched() -> None:
    assert format_markdown("(Hello World)", ALL) == "(Hello World)"


def test_space_between_cjk_and_latin() -> None:
    assert format_markdown("你好World", ALL) == "你好 World"


def test_bare_url_survives_verbatim() -> None:
    url = "https://example.com/path?a=1,b=2"
    assert url in format_markdown(f"中文 {url} 中文", ALL)


def test_apostrophes_untouched() -> None:
    assert "don't" in format_markdown("don't convert apostrophes", ALL)


def test_consecutive_punctuation_limit() -> None:
    config = FormattingConfig(consecutive_punctuation_limit=2)
    result = format_markdown("太棒了！！！！！", config)
    assert result == "太棒了！！"
    assert not re.search("！{3,}", result)


def test_mixed_sentence() -> None:
    assert format_markdown("中文English混排,测试(说明)结束") == "中文 English 混排，测试 （说明） 结束"
    assert format_markdown("价格$100元,温度25℃") == "价格 $100 元，温度 25℃"
    assert format_markdown("你好--世界") == "你好 —— 世界"


def test_quote_styles() -> None:
    assert format_markdown('他说"你好"然后离开') == "他说 “你好” 然后离开"
    assert format_markdown('他说"你好"然后离开', ALL) == "他说「你好」然后离开"


def test_inline_code_is_protected() -> None:
    assert format_markdown("中文,`a,b`,中文", ALL) == "中文，`a,b`，中文"


def test_fenced_code_and_link_target() -> None:
    expected = "# 标题\n\n正文，包含`code`和[链接](https://a.com).\n\n```\nraw,text\n```"
    assert format_markdown(MARKDOWN_DOC) == expected


def test_link_url_is_protected_but_text_formatted() -> None:
    text = "参见[文档](https://example.com/a,b?x=1),谢谢"
    assert format_markdown(text, ALL) == "参见[文档](https://example.com/a,b?x=1)，谢谢"


def test_frontmatter_and_inline_math() -> None:
    assert format_markdown("---\ntitle: a,b\n---\n正文,结束") == "---\ntitle: a,b\n---\n正文，结束"
    assert format_markdown("公式$a,b$很好,对") == "公式$a,b$很好，对"


def test_hard_breaks() -> None:
    text = "第一行  \n第二行"
    assert format_markdown(text) == "第一行\n第二行"
    assert format_markdown(text, preserve_two_space_hard_breaks=True) == text


def test_selection_ignores_markdown() -> None:
    assert format_selection("`code`,中文") == "`code`，中文"


def test_unterminated_fence_is_treated_as_prose() -> None:
    assert format_markdown("```\n代码,未闭合\n") == "```\n代码，未闭合"


def test_latin_only_text_is_left_alone() -> None:
    text = 'Hello , world--test "q"'
    assert format_markdown(text, ALL) == text


def test_empty_input() -> None:
    assert format_markdown("") == ""
    assert format_selection("") == ""


def test_protected_regions_survive_formatting() -> None:
    text = '中文,`x,y`与$a,b$和<span title="1,2">内容</span>。\n\n```\nk,v\n```\n尾巴,结束'
    result = format_markdown(text, ALL)
    for region in find_protected_regions(text):
        assert region.content in result


@pytest.mark.parametrize("config", list(CONFIGS.values()), ids=list(CONFIGS))
@pytest.mark.parametrize("text", SAMPLES)
def test_formatting_is_idempotent(text: str, config: FormattingConfig) -> None:
    once = format_markdown(text, config)
    assert format_markdown(once, config) == once


def test_existing_corner_brackets_are_kept() -> None:
    assert format_markdown("他说「你好」。") == "他说「你好」。"
    assert format_markdown("书名『三体』很好") == "书名『三体』很好"


def test_latin_quote_next_to_cjk() -> None:
    assert format_markdown('我喜欢"Python"语言') == "我喜欢 “Python” 语言"
    assert format_markdown('我喜欢"Python"语言', CONFIGS["corner"]) == "我喜欢 「Python」 语言"


def test_fallback_quote_styles_after_cjk_letter() -> None:
    assert format_markdown('他说"等等..."然后', CONFIGS["guillemets"]) == "他说«等等...»然后"
    assert "「你好」" in format_markdown('他说"你好"然后', CONFIGS["corner-plain"])
