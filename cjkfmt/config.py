"""格式化配置：FormattingConfig 数据结构、校验以及 YAML 读写。"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
import re
from typing import Any, Dict, Mapping, Optional

import yaml

__all__ = [
    "ConfigError",
    "FormattingConfig",
    "QUOTE_STYLES",
    "POSTFIX_CURRENCY_STYLES",
    "PUNCTUATION_LIMITS",
    "CONFIG_SECTION",
    "DEFAULT_CONFIG_FILENAMES",
    "discover_config",
    "load_config",
    "dump_config",
]

QUOTE_STYLES: tuple[str, ...] = ("curly", "corner", "guillemets")
POSTFIX_CURRENCY_STYLES: tuple[str, ...] = ("spaced", "tight")
PUNCTUATION_LIMITS: tuple[int, ...] = (0, 1, 2)

CONFIG_SECTION = "cjk_formatting"
DEFAULT_CONFIG_FILENAMES: tuple[str, ...] = (".cjkfmt.yaml", ".cjkfmt.yml", "cjkfmt.yaml")

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class ConfigError(ValueError):
    """配置非法或无法加载。"""


@dataclass(frozen=True, slots=True)
class FormattingConfig:
    """规则开关集合；每个布尔字段独立控制一条规则。"""

    # 通用规则
    ellipsis_normalization: bool = True
    newline_collapsing: bool = True
    # 全角转换
    fullwidth_alphanumeric: bool = True
    fullwidth_punctuation: bool = True
    fullwidth_parentheses: bool = True
    fullwidth_brackets: bool = False
    # 间距
    cjk_english_spacing: bool = True
    cjk_parenthesis_spacing: bool = True
    currency_spacing: bool = True
    slash_spacing: bool = True
    space_collapsing: bool = True
    # 破折号与引号
    dash_conversion: bool = True
    emdash_spacing: bool = True
    smart_quote_conversion: bool = True
    quote_style: str = "curly"
    contextual_quotes: bool = True
    quote_spacing: bool = True
    single_quote_spacing: bool = True
    cjk_corner_quotes: bool = False
    cjk_nested_quotes: bool = False
    # 清理
    consecutive_punctuation_limit: int = 0
    trailing_space_removal: bool = True
    postfix_currency_style: str = "spaced"

    def __post_init__(self) -> None:
        for item in fields(self):
            value = getattr(self, item.name)
            if item.type in ("bool", bool) and not isinstance(value, bool):
                raise ConfigError(f"{item.name} 必须是布尔值，实际为 {value!r}")
        if self.quote_style not in QUOTE_STYLES:
            raise ConfigError(f"quote_style 必须是 {'/'.join(QUOTE_STYLES)} 之一，实际为 {self.quote_style!r}")
        if self.postfix_currency_style not in POSTFIX_CURRENCY_STYLES:
            raise ConfigError(
                f"postfix_currency_style 必须是 {'/'.join(POSTFIX_CURRENCY_STYLES)} 之一，"
                f"实际为 {self.postfix_currency_style!r}"
            )
        limit = self.consecutive_punctuation_limit
        if isinstance(limit, bool) or limit not in PUNCTUATION_LIMITS:
            raise ConfigError(f"consecutive_punctuation_limit 只能取 0/1/2，实际为 {limit!r}")

    @classmethod
    def all_enabled(cls) -> "FormattingConfig":
        """打开全部规则：弯引号按上下文转换，连续标点最多保留两个。"""

        flags = {item.name: True for item in fields(cls) if item.type in ("bool", bool)}
        return cls(**flags, consecutive_punctuation_limit=2)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "FormattingConfig":
        """从映射构建配置，键名可以是 snake_case 或 camelCase。"""

        if not isinstance(data, Mapping):
            raise ConfigError("配置必须是映射类型")
        known = {item.name for item in fields(cls)}
        values: Dict[str, Any] = {}
        for raw_key, value in data.items():
            key = _normalise_key(str(raw_key))
            if key not in known:
                raise ConfigError(f"未知配置项: {raw_key}")
            values[key] = value
        return cls(**values)

    def with_overrides(self, overrides: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> "FormattingConfig":
        """返回覆盖部分字段后的新配置，结果同样经过校验。"""

        merged: Dict[str, Any] = {}
        for source in (overrides or {}, kwargs):
            for raw_key, value in source.items():
                merged[_normalise_key(str(raw_key))] = value
        unknown = sorted(set(merged) - {item.name for item in fields(self)})
        if unknown:
            raise ConfigError(f"未知配置项: {', '.join(unknown)}")
        return replace(self, **merged)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _normalise_key(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key.strip()).replace("-", "_").lower()


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except FileNotFoundError as exc:
        raise ConfigError(f"找不到配置文件: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"解析 YAML 失败: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError("配置文件顶层必须是映射类型")
    return data


def load_config(path: str | Path) -> FormattingConfig:
    """读取 YAML 配置；规则可以写在顶层，也可以放在 ``cjk_formatting`` 段内。"""

    config_path = Path(path).expanduser()
    data = _load_yaml(config_path)
    section = data.get(CONFIG_SECTION, data)
    if not isinstance(section, dict):
        raise ConfigError(f"{CONFIG_SECTION} 段必须是映射类型")
    return FormattingConfig.from_mapping(section)


def dump_config(config: FormattingConfig) -> str:
    """将配置渲染为可被 ``load_config`` 读回的 YAML 文本。"""

    return yaml.safe_dump(
        {CONFIG_SECTION: config.to_dict()},
        allow_unicode=True,
        sort_keys=False,
    )


def discover_config(directory: str | Path) -> Optional[Path]:
    """在目录中查找默认文件名的配置文件，找不到时返回 None。"""

    base = Path(directory)
    for name in DEFAULT_CONFIG_FILENAMES:
        candidate = base / name
        if candidate.is_file():
            return candidate
    return None
