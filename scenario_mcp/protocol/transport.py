from __future__ import annotations

import asyncio
import contextlib
import json
import os
import sys
from pathlib import Path
from typing import BinaryIO

from scenario_mcp.protocol.jsonrpc import PARSE_ERROR, JsonRpcError


class TransportClosed(RuntimeError):
    pass


def encode_message(payload: dict) -> bytes:
    return (json.dumps(payload, ensure_ascii=False) + "\n").encode("utf-8")


def decode_message(line: bytes) -> dict:
    try:
        message = json.loads(line.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise JsonRpcError(PARSE_ERROR, f"Parse error: {exc}") from exc
    if not isinstance(message, dict):
        raise JsonRpcError(PARSE_ERROR, "Parse error: expected a JSON object")
    return message


class StdioTransport:
    """Client side: talks to an MCP server subprocess over its pipes."""

    def __init__(self, command: str, args: list[str], cwd: str | None = None) -> None:
        self.command = command
        self.args = args
        self.cwd = cwd
        self._process: asyncio.subprocess.Process | None = None

    async def start(self) -> None:
        self._process = await asyncio.create_subprocess_exec(
            self.command,
            *self.args,
            cwd=self.cwd or str(Path.cwd()),
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )

    async def stop(self) -> None:
        if self._process is None:
            return
        process = self._process
        pid = process.pid
        if process.stdin is not None:
            process.stdin.close()
            with contextlib.suppress(Exception):
                await process.stdin.wait_closed()
        if process.returncode is None and os.name == "nt" and pid is not None:
            with contextlib.suppress(Exception):
                killer = await asyncio.create_subprocess_exec(
                    "taskkill",
                    "/T",
                    "/F",
                    "/PID",
                    str(pid),
                    stdout=asyncio.subprocess.DEVNULL,
                    stderr=asyncio.subprocess.DEVNULL,
                )
                await asyncio.wait_for(killer.wait(), timeout=5)
        if process.returncode is None:
            process.terminate()
            with contextlib.suppress(asyncio.CancelledError, TimeoutError):
                await asyncio.wait_for(process.wait(), timeout=5)
            if process.returncode is None:
                process.kill()
                with contextlib.suppress(asyncio.CancelledError, TimeoutError):
                    await asyncio.wait_for(process.wait(), timeout=5)
        self._process = None

    async def send(self, payload: dict) -> None:
        if self._process is None or self._process.stdin is None:
            raise RuntimeError("Transport is not started")
        self._process.stdin.write(encode_message(payload))
        await self._process.stdin.drain()

    async def recv(self) -> dict:
        if self._process is None or self._process.stdout is None:
            raise RuntimeError("Transport is not started")
        line = await self._process.stdout.readline()
        if not line:
            raise TransportClosed("MCP transport closed")
        return decode_message(line)


class StdioServerChannel:
    """Server side: newline-delimited JSON on this process's stdin/stdout."""

    def __init__(self, reader: BinaryIO | None = None, writer: BinaryIO | None = None) -> None:
        self._reader = reader or sys.stdin.buffer
        self._writer = writer or sys.stdout.buffer
        self._write_lock = asyncio.Lock()

    async def read_line(self) -> bytes:
        line = await asyncio.to_thread(self._reader.readline)
        if not line:
            raise TransportClosed("stdin closed")
        return line

    async def send(self, payload: dict) -> None:
        data = encode_message(payload)
        async with self._write_lock:
            self._writer.write(data)
            self._writer.flush()
