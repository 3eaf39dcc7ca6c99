import logging
from typing import Iterator, List

import pytest

from cjkfmt.logging_utils import (
    DEBUG_ENV_VAR,
    LogBudget,
    get_debug_logger,
    is_debug_logging_enabled,
    log_debug,
    set_debug_logging,
)
from cjkfmt.rules import apply_rules


class _Collector(logging.Handler):
    def __init__(self) -> None:
        super().__init__(logging.DEBUG)
        self.records: List[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@pytest.fixture()
def collector(monkeypatch: pytest.MonkeyPatch) -> Iterator[_Collector]:
    monkeypatch.setenv(DEBUG_ENV_VAR, "1")
    logger = get_debug_logger()
    handler = _Collector()
    previous_level = logger.level
    logger.setLevel(logging.DEBUG)
    logger.addHandler(handler)
    try:
        yield handler
    finally:
        logger.removeHandler(handler)
        logger.setLevel(previous_level)


def test_budget_caps_messages(collector: _Collector) -> None:
    budget = LogBudget(limit=2)
    for index in range(5):
        log_debug("message %d", index, budget=budget)
    assert [record.getMessage() for record in collector.records] == ["message 0", "message 1"]


def test_each_call_gets_a_fresh_budget(collector: _Collector) -> None:
    for _ in range(250):
        apply_rules("你好,世界")
    collector.records.clear()
    apply_rules("你好,世界")
    assert collector.records


def test_env_var_overrides_cli_switch(monkeypatch: pytest.MonkeyPatch) -> None:
    set_debug_logging(True)
    try:
        monkeypatch.setenv(DEBUG_ENV_VAR, "off")
        assert not is_debug_logging_enabled()
        monkeypatch.delenv(DEBUG_ENV_VAR)
        assert is_debug_logging_enabled()
    finally:
        set_debug_logging(False)
