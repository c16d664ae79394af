from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from typing import Any

from .jsonrpc import build_request, extract_result, is_notification, is_response
from .transport import StdioTransport

logger = logging.getLogger(__name__)

NotificationHandler = Callable[[str, dict[str, Any]], None]

PROTOCOL_VERSION = "2025-06-18"


class McpSession:
    def __init__(self, transport: StdioTransport, timeout_seconds: float = 20.0) -> None:
        self.transport = transport
        self.timeout_seconds = timeout_seconds
        self._pending: dict[int, asyncio.Future[Any]] = {}
        self._notifications: list[NotificationHandler] = []
        self._reader_task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        await self.transport.start()
        self._reader_task = asyncio.create_task(self._reader_loop())

    async def stop(self) -> None:
        if self._reader_task is not None:
            self._reader_task.cancel()
            with contextlib.suppress(asyncio.CancelledError, TimeoutError):
                await asyncio.wait_for(self._reader_task, timeout=2)
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(self.transport.stop(), timeout=8)

    def on_notification(self, handler: NotificationHandler) -> None:
        self._notifications.append(handler)

    async def initialize(self) -> Any:
        result = await self.request(
            "initialize",
            {
                "protocolVersion": PROTOCOL_VERSION,
                "clientInfo": {"name": "scenario-mcp", "version": "0.1.0"},
                "capabilities": {},
            },
        )
        await self.transport.send({"jsonrpc": "2.0", "method": "notifications/initialized"})
        return result

    async def list_tools(self) -> Any:
        return await self.request("tools/list", {})

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        logger.debug(f"tools/call {name}")
        return await self.request(
            "tools/call",
            {"name": name, "arguments": arguments},
        )

    async def request(self, method: str, params: dict[str, Any] | None = None) -> Any:
        req = build_request(method, params)
        loop = asyncio.get_running_loop()
        fut: asyncio.Future[Any] = loop.create_future()
        self._pending[req.id] = fut
        try:
            await self.transport.send(req.to_dict())
            return await asyncio.wait_for(fut, timeout=self.timeout_seconds)
        finally:
            self._pending.pop(req.id, None)

    async def _reader_loop(self) -> None:
        try:
            while True:
                message = await self.transport.recv()
                if is_response(message):
                    future = self._pending.pop(message["id"], None)
                    if future is not None and not future.done():
                        try:
                            future.set_result(extract_result(message))
                        except Exception as exc:
                            future.set_exception(exc)
                elif is_notification(message):
                    method = message.get("method", "")
                    params = message.get("params", {})
                    for handler in self._notifications:
                        handler(method, params)
        except Exception as exc:
            logger.error(f"MCP reader stopped: {exc}")
            for future in self._pending.values():
                if not future.done():
                    future.set_exception(exc)
            self._pending.clear()
