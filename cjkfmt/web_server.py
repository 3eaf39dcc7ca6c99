"""FastAPI 服务：为编辑器前端提供格式化 API。"""
from __future__ import annotations

from dataclasses import asdict
import json
import logging
import socket
from typing import Any, Dict, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from . import __version__
from .config import ConfigError, FormattingConfig
from .formatter import format_markdown, format_selection
from .markdown_regions import find_protected_regions
from .rules import remove_trailing_spaces

LOGGER = logging.getLogger("cjkfmt.web")

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8765
MAX_TEXT_CHARS = 2_000_000

__all__ = ["create_app", "run_web_server"]


def _error(message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse({"ok": False, "error": message}, status_code=status_code)


async def _read_payload(request: Request) -> Tuple[Optional[Dict[str, Any]], Optional[JSONResponse]]:
    """读取 JSON 请求体，返回 (payload, 错误响应) 二者之一。"""

    body = await request.body()
    try:
        decoded = body.decode("utf-8")
    except UnicodeDecodeError:
        return None, _error("请求不是 UTF-8 编码")
    try:
        payload = json.loads(decoded or "{}")
    except json.JSONDecodeError as exc:
        return None, _error(f"JSON 无法解析: {exc}")
    if not isinstance(payload, dict):
        return None, _error("请求体必须是 JSON 对象")
    text = payload.get("text")
    if not isinstance(text, str):
        return None, _error("text 字段必须是字符串")
    if len(text) > MAX_TEXT_CHARS:
        return None, _error("text 过长", status_code=413)
    return payload, None


def _flag(payload: Dict[str, Any], *names: str) -> bool:
    for name in names:
        if name in payload:
            return bool(payload[name])
    return False


def create_app(config: Optional[FormattingConfig] = None) -> FastAPI:
    base_config = config or FormattingConfig()
    app = FastAPI(title="cjkfmt", version=__version__, docs_url=None, redoc_url=None)
    app.state.formatting_config = base_config

    @app.get("/healthz")
    async def healthz() -> JSONResponse:
        return JSONResponse({"ok": True, "version": __version__})

    @app.get("/api/config")
    async def get_config() -> JSONResponse:
        return JSONResponse({"ok": True, "config": base_config.to_dict()})

    @app.post("/api/format")
    async def format_text(request: Request) -> JSONResponse:
        payload, error = await _read_payload(request)
        if error is not None:
            return error
        overrides = payload.get("config") or {}
        if not isinstance(overrides, dict):
            return _error("config 字段必须是对象")
        try:
            effective = base_config.with_overrides(overrides)
        except (ConfigError, TypeError) as exc:
            return _error(f"配置无效: {exc}")

        text = payload["text"]
        formatter = format_selection if _flag(payload, "selection") else format_markdown
        hard_breaks = _flag(payload, "preserve_two_space_hard_breaks", "preserveTwoSpaceHardBreaks")
        try:
            formatted = await run_in_threadpool(
                formatter, text, effective, preserve_two_space_hard_breaks=hard_breaks
            )
        except Exception:
            LOGGER.exception("格式化失败 (长度=%d)", len(text))
            return _error("格式化失败", status_code=500)
        LOGGER.info("格式化完成: %d -> %d 字符", len(text), len(formatted))
        return JSONResponse({"ok": True, "text": formatted, "changed": formatted != text})

    @app.post("/api/trim")
    async def trim_text(request: Request) -> JSONResponse:
        payload, error = await _read_payload(request)
        if error is not None:
            return error
        hard_breaks = _flag(payload, "preserve_two_space_hard_breaks", "preserveTwoSpaceHardBreaks")
        trimmed = await run_in_threadpool(
            remove_trailing_spaces, payload["text"], preserve_two_space_hard_breaks=hard_breaks
        )
        return JSONResponse({"ok": True, "text": trimmed})

    @app.post("/api/regions")
    async def list_regions(request: Request) -> JSONResponse:
        payload, error = await _read_payload(request)
        if error is not None:
            return error
        found = await run_in_threadpool(find_protected_regions, payload["text"])
        regions = [asdict(region) for region in found]
        return JSONResponse({"ok": True, "regions": regions})

    return app


def _port_is_free(host: str, port: int) -> bool:
    try:
        with socket.create_server((host, port)):
            return True
    except OSError:
        return False


def _pick_port(host: str, preferred: int, attempts: int) -> int:
    """从 *preferred* 起依次尝试 *attempts* 个端口，返回第一个可绑定的。"""

    candidates = range(preferred, preferred + max(attempts, 1))
    for port in candidates:
        if _port_is_free(host, port):
            return port
        LOGGER.debug("端口 %s 不可用", port)
    raise RuntimeError(f"{host} 上 {candidates.start}-{candidates.stop - 1} 端口均被占用")


def run_web_server(
    config: Optional[FormattingConfig] = None,
    *,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    max_retries: int = 10,
    log_level: str = "info",
) -> None:
    """阻塞运行 uvicorn；端口被占用时向后顺延。"""

    import uvicorn

    actual_port = _pick_port(host, port, max_retries)
    if actual_port != port:
        LOGGER.warning("端口 %s 已占用，改用 %s", port, actual_port)
    LOGGER.info("cjkfmt 服务启动: http://%s:%s/", host, actual_port)
    uvicorn.run(create_app(config), host=host, port=actual_port, log_level=log_level, access_log=False)
