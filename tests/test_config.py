from pathlib import Path

import pytest

from cjkfmt.config import (
    ConfigError,
    FormattingConfig,
    discover_config,
    dump_config,
    load_config,
)

SAMPLE_CONFIG = Path(__file__).resolve().parents[1] / "config" / "cjkfmt.sample.yaml"


def test_defaults() -> None:
    config = FormattingConfig()
    assert config.fullwidth_punctuation
    assert not config.fullwidth_brackets
    assert config.quote_style == "curly"
    assert config.consecutive_punctuation_limit == 0


def test_all_enabled_turns_on_every_switch() -> None:
    config = FormattingConfig.all_enabled()
    flags = {name: value for name, value in config.to_dict().items() if isinstance(value, bool)}
    assert all(flags.values())
    assert config.consecutive_punctuation_limit == 2


@pytest.mark.parametrize(
    "kwargs",
    [
        {"quote_style": "fancy"},
        {"postfix_currency_style": "wide"},
        {"consecutive_punctuation_limit": 3},
        {"consecutive_punctuation_limit": True},
        {"fullwidth_punctuation": "yes"},
    ],
)
def test_invalid_values_raise(kwargs: dict) -> None:
    with pytest.raises(ConfigError):
        FormattingConfig(**kwargs)


def test_from_mapping_accepts_camel_case() -> None:
    config = FormattingConfig.from_mapping({"fullwidthBrackets": True, "quoteStyle": "corner"})
    assert config.fullwidth_brackets
    assert config.quote_style == "corner"


def test_from_mapping_rejects_unknown_keys() -> None:
    with pytest.raises(ConfigError):
        FormattingConfig.from_mapping({"noSuchRule": True})


def test_with_overrides_validates() -> None:
    base = FormattingConfig()
    updated = base.with_overrides({"slashSpacing": False}, consecutive_punctuation_limit=1)
    assert not updated.slash_spacing
    assert updated.consecutive_punctuation_limit == 1
    assert base.slash_spacing
    with pytest.raises(ConfigError):
        base.with_overrides({"quote_style": "bogus"})
    with pytest.raises(ConfigError):
        base.with_overrides({"unknown": 1})


def test_load_config_section_and_top_level(tmp_path: Path) -> None:
    nested = tmp_path / "nested.yaml"
    nested.write_text("cjk_formatting:\n  fullwidthBrackets: true\n", encoding="utf-8")
    flat = tmp_path / "flat.yaml"
    flat.write_text("dash_conversion: false\n", encoding="utf-8")
    assert load_config(nested).fullwidth_brackets
    assert not load_config(flat).dash_conversion


def test_load_config_errors(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(tmp_path / "missing.yaml")
    broken = tmp_path / "broken.yaml"
    broken.write_text("a: [1, 2\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(broken)
    listing = tmp_path / "list.yaml"
    listing.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(listing)


def test_dump_then_load(tmp_path: Path) -> None:
    config = FormattingConfig(quote_style="guillemets", postfix_currency_style="tight")
    path = tmp_path / "out.yaml"
    path.write_text(dump_config(config), encoding="utf-8")
    assert load_config(path) == config


def test_sample_config_matches_defaults() -> None:
    assert load_config(SAMPLE_CONFIG) == FormattingConfig()


def test_discover_config(tmp_path: Path) -> None:
    assert discover_config(tmp_path) is None
    target = tmp_path / ".cjkfmt.yml"
    target.write_text("{}\n", encoding="utf-8")
    assert discover_config(tmp_path) == target
