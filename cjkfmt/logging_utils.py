"""cjkfmt.logging_utils
=====================

统一的日志初始化与调试输出工具。

控制台日志交给 rich 的 ``RichHandler`` 渲染并写入 stderr，保证 stdout 只输出格式化后的正文；
可选的日志文件使用 ``RotatingFileHandler`` 滚动保存。规则级别的详细调试信息通过
``--debug`` 或环境变量 ``CJKFMT_DEBUG`` 打开。
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

__all__ = [
    "LOGGER_NAME",
    "DEBUG_ENV_VAR",
    "init_logging",
    "set_debug_logging",
    "is_debug_logging_enabled",
    "get_debug_logger",
    "LogBudget",
    "log_debug",
    "preview_text",
]

LOGGER_NAME = "cjkfmt"
DEBUG_ENV_VAR = "CJKFMT_DEBUG"
DEBUG_LOGGER_NAME = f"{LOGGER_NAME}.debug"
_FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def init_logging(
    level: str = "INFO",
    logfile: Optional[str | Path] = None,
    *,
    max_bytes: int = 2 * 1024 * 1024,
    backup_count: int = 3,
) -> logging.Logger:
    """初始化 ``cjkfmt`` 命名空间的日志器并返回。

    Args:
        level: 日志级别名称，无法识别时回退到 INFO。
        logfile: 可选的日志文件路径，父目录不存在时自动创建。
        max_bytes: 单个日志文件的最大字节数。
        backup_count: 滚动保留的历史文件数量。
    """

    level_upper = level.upper()
    logging_level = getattr(logging, level_upper, logging.INFO)
    if is_debug_logging_enabled():
        logging_level = logging.DEBUG

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging_level)
    logger.propagate = False
    # 重复调用时只调整级别，避免叠加 Handler
    if getattr(logger, "_cjkfmt_configured", False):
        for handler in logger.handlers:
            handler.setLevel(logging_level)
        return logger

    console_handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        markup=False,
        show_path=False,
    )
    console_handler.setLevel(logging_level)
    logger.addHandler(console_handler)

    if logfile:
        log_path = Path(logfile).expanduser().resolve()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(logging_level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(file_handler)

    setattr(logger, "_cjkfmt_configured", True)
    logger.debug("Logging initialized at level %s", logging.getLevelName(logging_level))
    return logger


_FALSY_ENV_VALUES = frozenset({"", "0", "false", "off", "no"})


class _DebugSwitch:
    """``--debug`` 开关；环境变量 ``CJKFMT_DEBUG`` 设置时以环境变量为准。"""

    __slots__ = ("requested",)

    def __init__(self) -> None:
        self.requested = False

    def enabled(self) -> bool:
        raw = os.environ.get(DEBUG_ENV_VAR)
        if raw is not None:
            return raw.strip().lower() not in _FALSY_ENV_VALUES
        return self.requested


_DEBUG_SWITCH = _DebugSwitch()


@dataclass(slots=True)
class LogBudget:
    """单次格式化调用内的调试日志条数上限，``limit=None`` 表示不限。"""

    limit: Optional[int] = 200
    used: int = 0

    def spend(self) -> bool:
        if self.limit is not None and self.used >= self.limit:
            return False
        self.used += 1
        return True


def set_debug_logging(enabled: bool) -> None:
    _DEBUG_SWITCH.requested = bool(enabled)


def is_debug_logging_enabled() -> bool:
    return _DEBUG_SWITCH.enabled()


def get_debug_logger() -> logging.Logger:
    return logging.getLogger(DEBUG_LOGGER_NAME)


def log_debug(message: str, *args: object, budget: Optional[LogBudget] = None) -> None:
    """调试开启且预算未用完时写一条 DEBUG 日志。"""

    if not _DEBUG_SWITCH.enabled():
        return
    if budget is not None and not budget.spend():
        return
    get_debug_logger().debug(message, *args)


def preview_text(text: str, limit: int = 60) -> str:
    """返回首个非空行的单行预览，供调试日志使用。"""

    if not text:
        return "<empty>"
    for line in text.splitlines():
        stripped = line.strip()
        if stripped:
            return stripped[:limit]
    return "<blank>"
