"""
项目: cjkfmt
用途: 中英混排 Markdown 排版规范化。对外暴露 format_markdown / format_selection 两个入口，
      以及编辑器常用的独立命令 remove_trailing_spaces / collapse_newlines。
依赖: rich、PyYAML；HTTP 服务另需 fastapi 与 uvicorn。
示例用法:
    from cjkfmt import FormattingConfig, format_markdown
    print(format_markdown("你好,世界", FormattingConfig()))
"""

from __future__ import annotations

from .config import ConfigError, FormattingConfig, load_config
from .formatter import format_markdown, format_selection
from .rules import apply_rules, collapse_newlines, remove_trailing_spaces

__all__ = [
    "__version__",
    "ConfigError",
    "FormattingConfig",
    "load_config",
    "format_markdown",
    "format_selection",
    "apply_rules",
    "collapse_newlines",
    "remove_trailing_spaces",
]

__version__: str = "0.3.0"
"""与 pyproject.toml 保持一致的版本号。"""
