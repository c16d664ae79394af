from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from .client import PROTOCOL_VERSION
from .jsonrpc import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    JsonRpcError,
    build_error,
    build_result,
    is_notification,
    is_request,
)
from .transport import StdioServerChannel, TransportClosed, decode_message

logger = logging.getLogger(__name__)

ToolHandler = Callable[..., Awaitable[str]]


@dataclass(slots=True)
class Tool:
    name: str
    description: str
    arguments: dict[str, str]
    handler: ToolHandler

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": {
                "type": "object",
                "properties": {
                    arg: {"type": "string", "description": text}
                    for arg, text in self.arguments.items()
                },
                "required": list(self.arguments),
            },
        }


def text_content(text: str, is_error: bool = False) -> dict[str, Any]:
    return {"content": [{"type": "text", "text": text}], "isError": is_error}


class McpServer:
    """Minimal MCP server exposing tools whose arguments are all strings."""

    def __init__(self, name: str, version: str) -> None:
        self.name = name
        self.version = version
        self.tools: dict[str, Tool] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    def tool(self, name: str, description: str, arguments: dict[str, str]) -> Callable[[ToolHandler], ToolHandler]:
        def register(handler: ToolHandler) -> ToolHandler:
            self.tools[name] = Tool(name, description, arguments, handler)
            return handler

        return register

    async def handle(self, message: dict[str, Any]) -> dict[str, Any] | None:
        """Process one decoded message; returns the response, or None for notifications."""
        if is_notification(message):
            logger.debug(f"notification {message.get('method')}")
            return None
        if not is_request(message):
            return build_error(message.get("id"), JsonRpcError(INVALID_REQUEST, "Invalid Request"))

        request_id = message["id"]
        try:
            result = await self._dispatch(message["method"], message.get("params") or {})
        except JsonRpcError as exc:
            return build_error(request_id, exc)
        except Exception as exc:
            logger.exception(f"Unhandled error in {message['method']}")
            return build_error(request_id, JsonRpcError(INTERNAL_ERROR, str(exc)))
        return build_result(request_id, result)

    async def _dispatch(self, method: str, params: dict[str, Any]) -> Any:
        if method == "initialize":
            return {
                "protocolVersion": params.get("protocolVersion") or PROTOCOL_VERSION,
                "capabilities": {"tools": {}},
                "serverInfo": {"name": self.name, "version": self.version},
            }
        if method == "ping":
            return {}
        if method == "tools/list":
            return {"tools": [tool.describe() for tool in self.tools.values()]}
        if method == "tools/call":
            return await self._call_tool(params)
        raise JsonRpcError(METHOD_NOT_FOUND, f"Method not found: {method}")

    async def _call_tool(self, params: dict[str, Any]) -> dict[str, Any]:
        name = params.get("name")
        tool = self.tools.get(name) if isinstance(name, str) else None
        if tool is None:
            raise JsonRpcError(INVALID_PARAMS, f"Unknown tool: {name}")

        arguments = params.get("arguments") or {}
        if not isinstance(arguments, dict):
            raise JsonRpcError(INVALID_PARAMS, "Tool arguments must be an object")
        for arg in tool.arguments:
            if not isinstance(arguments.get(arg), str):
                raise JsonRpcError(INVALID_PARAMS, f"Missing or non-string argument: {arg}")

        logger.info(f"tools/call {tool.name}")
        try:
            text = await tool.handler(*(arguments[arg] for arg in tool.arguments))
        except Exception as exc:
            logger.exception(f"Tool {tool.name} failed")
            return text_content(f"Error: {exc}", is_error=True)
        return text_content(text)

    async def serve(self, channel: StdioServerChannel) -> None:
        logger.info(f"{self.name} {self.version} serving {len(self.tools)} tool(s) on stdio")
        try:
            while True:
                line = await channel.read_line()
                if not line.strip():
                    continue
                try:
                    message = decode_message(line)
                except JsonRpcError as exc:
                    await channel.send(build_error(None, exc))
                    continue
                task = asyncio.create_task(self._respond(channel, message))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
        except TransportClosed:
            logger.info("Client disconnected")
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _respond(self, channel: StdioServerChannel, message: dict[str, Any]) -> None:
        response = await self.handle(message)
        if response is not None:
            await channel.send(response)
