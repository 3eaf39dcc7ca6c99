"""cjkfmt 命令行入口：argparse 子命令 + rich 输出。"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, List

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import ConfigError, FormattingConfig, discover_config, dump_config, load_config
from .formatter import format_markdown, format_selection
from .logging_utils import init_logging, set_debug_logging
from .rules import remove_trailing_spaces

LOGGER = logging.getLogger("cjkfmt.cli")

console = Console()
err_console = Console(stderr=True)

STDIN_MARKER = "-"
EXIT_OK = 0
EXIT_CHANGED = 1
EXIT_ERROR = 2


def _resolve_config(args: argparse.Namespace) -> FormattingConfig:
    """优先使用 --config，其次查找当前目录下的默认配置文件。"""

    if getattr(args, "config", None):
        return load_config(args.config)
    discovered = discover_config(Path.cwd())
    if discovered is not None:
        LOGGER.info("使用配置文件 %s", discovered)
        return load_config(discovered)
    return FormattingConfig()


def _read_source(source: str) -> str:
    if source == STDIN_MARKER:
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def _write_target(source: str, content: str) -> None:
    Path(source).write_text(content, encoding="utf-8")


def _process_sources(
    args: argparse.Namespace,
    transform: Callable[[str], str],
) -> int:
    """对每个输入执行 transform，按 --check / --in-place / stdout 三种方式输出。"""

    check = getattr(args, "check", False)
    changed: List[str] = []
    for source in args.paths:
        original = _read_source(source)
        result = transform(original)
        if result != original:
            changed.append(source)
        if check:
            continue
        if args.in_place and source != STDIN_MARKER:
            if result != original:
                _write_target(source, result)
                LOGGER.info("已更新 %s", source)
            continue
        sys.stdout.write(result)

    if check:
        _print_check_report(args.paths, changed)
        return EXIT_CHANGED if changed else EXIT_OK
    return EXIT_OK


def _print_check_report(sources: List[str], changed: List[str]) -> None:
    table = Table(title="cjkfmt check")
    table.add_column("文件")
    table.add_column("状态")
    for source in sources:
        name = "<stdin>" if source == STDIN_MARKER else source
        if source in changed:
            table.add_row(escape(name), "[yellow]需要格式化[/yellow]")
        else:
            table.add_row(escape(name), "[green]已规范[/green]")
    console.print(table)


def cmd_format(args: argparse.Namespace) -> int:
    """处理 format 子命令。"""

    config = _resolve_config(args)
    formatter = format_selection if args.selection else format_markdown

    def _transform(text: str) -> str:
        return formatter(text, config, preserve_two_space_hard_breaks=args.hard_breaks)

    return _process_sources(args, _transform)


def cmd_trim(args: argparse.Namespace) -> int:
    """处理 trim 子命令：只移除行尾空白。"""

    def _transform(text: str) -> str:
        return remove_trailing_spaces(text, preserve_two_space_hard_breaks=args.hard_breaks)

    return _process_sources(args, _transform)


def cmd_config(args: argparse.Namespace) -> int:
    """展示当前生效的配置。"""

    config = _resolve_config(args)
    if args.yaml:
        sys.stdout.write(dump_config(config))
        return EXIT_OK

    defaults = FormattingConfig().to_dict()
    table = Table(title="cjkfmt 配置")
    table.add_column("规则")
    table.add_column("取值")
    table.add_column("默认")
    for name, value in config.to_dict().items():
        shown = escape(str(value))
        if value != defaults[name]:
            shown = f"[yellow]{shown}[/yellow]"
        table.add_row(name, shown, escape(str(defaults[name])))
    console.print(table)
    return EXIT_OK


def cmd_serve(args: argparse.Namespace) -> int:
    """启动 HTTP 服务。"""

    from .web_server import run_web_server

    config = _resolve_config(args)
    run_web_server(config, host=args.host, port=args.port, log_level=args.log_level.lower())
    return EXIT_OK


def _add_config_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default=None, help="YAML 配置文件路径 (默认: 当前目录下的 .cjkfmt.yaml)")


def build_parser() -> argparse.ArgumentParser:
    """构建顶级 argparse 解析器。"""

    parser = argparse.ArgumentParser(prog="cjkfmt", description="中英混排 Markdown 排版规范化工具")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default="WARNING", help="日志级别 (默认: WARNING)")
    parser.add_argument("--log-file", default=None, help="可选的日志文件路径")
    parser.add_argument("--debug", action="store_true", help="输出规则级调试日志")

    subparsers = parser.add_subparsers(dest="command", required=True)

    fmt = subparsers.add_parser("format", help="格式化 Markdown 文件")
    fmt.add_argument("paths", nargs="+", help="待处理的文件，'-' 表示标准输入")
    _add_config_option(fmt)
    mode = fmt.add_mutually_exclusive_group()
    mode.add_argument("-i", "--in-place", action="store_true", help="直接写回文件")
    mode.add_argument("--check", action="store_true", help="只检查，存在改动时返回 1")
    fmt.add_argument("--selection", action="store_true", help="按纯文本处理，不识别 Markdown 保护区")
    fmt.add_argument("--hard-breaks", action="store_true", help="保留行尾两个空格的硬换行")
    fmt.set_defaults(func=cmd_format)

    trim = subparsers.add_parser("trim", help="移除行尾空白")
    trim.add_argument("paths", nargs="+", help="待处理的文件，'-' 表示标准输入")
    trim.add_argument("-i", "--in-place", action="store_true", help="直接写回文件")
    trim.add_argument("--hard-breaks", action="store_true", help="保留行尾两个空格的硬换行")
    trim.set_defaults(func=cmd_trim)

    cfg = subparsers.add_parser("config", help="查看生效的配置")
    _add_config_option(cfg)
    cfg.add_argument("--yaml", action="store_true", help="以 YAML 输出，可直接保存为配置文件")
    cfg.set_defaults(func=cmd_config)

    serve = subparsers.add_parser("serve", help="启动 HTTP 格式化服务")
    _add_config_option(serve)
    serve.add_argument("--host", default="127.0.0.1", help="监听地址 (默认: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=8765, help="起始端口，被占用时自动顺延 (默认: 8765)")
    serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI 入口函数，解析参数并派发，返回进程退出码。"""

    parser = build_parser()
    args = parser.parse_args(argv)
    set_debug_logging(args.debug)
    init_logging(args.log_level, args.log_file)
    try:
        return args.func(args)
    except ConfigError as exc:
        err_console.print(f"[red]配置错误: {escape(str(exc))}[/red]")
        return EXIT_ERROR
    except OSError as exc:
        err_console.print(f"[red]读写文件失败: {escape(str(exc))}[/red]")
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
