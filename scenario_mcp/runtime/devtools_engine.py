from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import re
import shlex
import shutil
import time
from collections.abc import AsyncIterator
from typing import Any

from scenario_mcp.config import Settings
from scenario_mcp.protocol.client import McpSession
from scenario_mcp.protocol.transport import StdioTransport
from scenario_mcp.runtime.engine import Element, ElementNotFoundError, EngineError

logger = logging.getLogger(__name__)

_IS_VISIBLE_JS = (
    "const isVisible = (node) => {"
    "if (!node || !node.isConnected) return false;"
    "const rect = node.getBoundingClientRect();"
    "if (!rect || rect.width <= 1 || rect.height <= 1) return false;"
    "const style = window.getComputedStyle(node);"
    "if (!style || style.display === 'none' || style.visibility === 'hidden' || style.opacity === '0') return false;"
    "return true;"
    "};"
)

_TAG_ELEMENT_JS = (
    "if (!el) return {found:false};"
    "window.__scenarioHandle = (window.__scenarioHandle || 0) + 1;"
    "const handle = String(window.__scenarioHandle);"
    "el.setAttribute('data-scenario-handle', handle);"
    "return {found:true, handle, visible: isVisible(el),"
    " text: String(el.innerText || el.textContent || el.value || '').trim().slice(0, 200)};"
)

_CONSOLE_ERROR_RE = re.compile(r"(?:\[(?:error|pageerror)\]|^\s*(?:error|pageerror)>)\s*(.+)", re.IGNORECASE)
_ARG_COUNT_RE = re.compile(r"\s*\(\d+ args?\)\s*$")


class DevToolsEngine:
    """AutomationEngine backed by the chrome-devtools MCP server."""

    def __init__(self, session: McpSession) -> None:
        self.session = session

    async def visit(self, url: str) -> None:
        await self._call("navigate_page", {"url": url})
        await self.wait_until_page_ready()

    async def get(self, selector: str) -> Element | None:
        selector_json = json.dumps(selector)
        script = (
            "() => {"
            + _IS_VISIBLE_JS
            + "let el = null;"
            f"try {{ el = document.querySelector({selector_json}); }} catch (_) {{ return {{found:false, invalid:true}}; }}"
            + _TAG_ELEMENT_JS
            + "}"
        )
        payload = await self._evaluate(script)
        if payload.get("invalid"):
            raise EngineError(f"Invalid selector: {selector}")
        return self._to_element(payload, selector)

    async def contains(self, text: str) -> Element | None:
        text_json = json.dumps(text)
        script = (
            "() => {"
            + _IS_VISIBLE_JS
            + f"const needle = String({text_json}).toLowerCase();"
            "const own = (node) => String(node.innerText || node.textContent || node.value || '').toLowerCase();"
            "const nodes = Array.from(document.body ? document.body.querySelectorAll('*') : []);"
            "const hits = nodes.filter((node) => own(node).includes(needle));"
            "const deepest = hits.filter((node) => !Array.from(node.children).some((child) => own(child).includes(needle)));"
            "const el = deepest.find(isVisible) || deepest[0] || null;"
            + _TAG_ELEMENT_JS
            + "}"
        )
        return self._to_element(await self._evaluate(script), text)

    async def click(self, element: Element) -> None:
        script = (
            "() => {"
            f"const el = document.querySelector('[data-scenario-handle=\"{element.handle}\"]');"
            "if (!el) return {ok:false, reason:'element detached'};"
            "el.scrollIntoView({block:'center', inline:'center'});"
            "el.click();"
            "return {ok:true};"
            "}"
        )
        payload = await self._evaluate(script)
        if not payload.get("ok"):
            raise ElementNotFoundError(element.selector)

    async def type(self, element: Element, text: str) -> None:
        text_json = json.dumps(text)
        script = (
            "() => {"
            f"const el = document.querySelector('[data-scenario-handle=\"{element.handle}\"]');"
            f"const value = {text_json};"
            "if (!el) return {ok:false, reason:'element detached'};"
            "el.focus();"
            "if ('value' in el) { el.value = value; el.dispatchEvent(new Event('input', {bubbles:true})); el.dispatchEvent(new Event('change', {bubbles:true})); }"
            "else { el.textContent = value; }"
            "return {ok:true};"
            "}"
        )
        payload = await self._evaluate(script)
        if not payload.get("ok"):
            raise ElementNotFoundError(element.selector)

    async def wait(self, ms: int) -> None:
        await asyncio.sleep(max(ms, 0) / 1000)

    async def viewport(self, width: int, height: int) -> None:
        await self._call("resize_page", {"width": width, "height": height})

    async def page_errors(self) -> list[str]:
        """Uncaught exceptions of the current page, including those thrown while it loaded."""
        raw = await self._call("list_console_messages", {"types": ["error"]})
        errors: list[str] = []
        for line in self._flatten_text(raw).splitlines():
            match = _CONSOLE_ERROR_RE.search(line)
            if not match:
                continue
            message = _ARG_COUNT_RE.sub("", match.group(1)).strip()
            # Chrome prefixes uncaught exceptions and unhandled rejections with "Uncaught".
            if message.startswith("Uncaught") and message not in errors:
                errors.append(message)
        return errors

    async def wait_until_page_ready(self, timeout_ms: int = 6000, poll_ms: int = 200) -> None:
        script = (
            "() => {"
            "const readyState = document.readyState || 'loading';"
            "const hasBody = Boolean(document.body);"
            "return {readyState, hasBody};"
            "}"
        )
        deadline = time.monotonic() + max(timeout_ms, 0) / 1000
        has_body = False

        while time.monotonic() <= deadline:
            state = await self._evaluate(script)
            has_body = bool(state.get("hasBody", False))
            if has_body and state.get("readyState") in {"interactive", "complete"}:
                return
            await asyncio.sleep(max(poll_ms, 50) / 1000)

        if not has_body:
            raise EngineError("Timeout waiting for page to be ready")

    async def _call(self, tool_name: str, params: dict[str, Any]) -> Any:
        raw = await self.session.call_tool(tool_name, params)
        if isinstance(raw, dict) and raw.get("isError") is True:
            raise EngineError(f"{tool_name}: {self._extract_mcp_error(raw)}")
        return raw

    async def _evaluate(self, script: str) -> dict[str, Any]:
        raw = await self._call("evaluate_script", {"function": script})
        payload = self._extract_script_result_payload(raw) if isinstance(raw, dict) else None
        if payload is None:
            raise EngineError("evaluate_script returned no JSON result")
        return payload

    @staticmethod
    def _to_element(payload: dict[str, Any], query: str) -> Element | None:
        if not payload.get("found"):
            return None
        return Element(
            handle=str(payload.get("handle", "")),
            selector=query,
            text=str(payload.get("text", "")),
            visible=bool(payload.get("visible", False)),
        )

    @staticmethod
    def _extract_mcp_error(raw: dict[str, Any]) -> str:
        content = raw.get("content")
        if isinstance(content, list):
            for chunk in content:
                if isinstance(chunk, dict) and chunk.get("type") == "text":
                    text = str(chunk.get("text", "")).strip()
                    if text:
                        return text
        return "MCP tool returned an error"

    @classmethod
    def _extract_script_result_payload(cls, raw: dict[str, Any]) -> dict[str, Any] | None:
        result = raw.get("result")
        if isinstance(result, dict):
            return result
        return cls._extract_json_object(cls._flatten_text(raw))

    @staticmethod
    def _extract_json_object(text: str) -> dict[str, Any] | None:
        if not text:
            return None

        fenced = re.search(r"```json\s*(\{.*?\})\s*```", text, flags=re.DOTALL | re.IGNORECASE)
        candidates: list[str] = []
        if fenced:
            candidates.append(fenced.group(1))

        loose = re.search(r"(\{.*\})", text, flags=re.DOTALL)
        if loose:
            candidates.append(loose.group(1))

        for candidate in candidates:
            try:
                parsed = json.loads(candidate)
            except json.JSONDecodeError:
                continue
            if isinstance(parsed, dict):
                return parsed
        return None

    @classmethod
    def _flatten_text(cls, value: Any) -> str:
        if isinstance(value, dict):
            return "\n".join(filter(None, (cls._flatten_text(nested) for nested in value.values())))
        if isinstance(value, list):
            return "\n".join(filter(None, (cls._flatten_text(nested) for nested in value)))
        if isinstance(value, str):
            return value
        return ""


def server_args(args_str: str, chrome_path: str = "") -> list[str]:
    args = shlex.split(args_str, posix=False)

    has_isolated = "--isolated" in args
    has_custom_session_target = any(
        token in {"-u", "--browserUrl", "-w", "--wsEndpoint", "--userDataDir"}
        or token.startswith("--browserUrl=")
        or token.startswith("--wsEndpoint=")
        or token.startswith("--userDataDir=")
        for token in args
    )
    if not has_isolated and not has_custom_session_target:
        args.append("--isolated")

    has_executable_arg = any(
        token in {"-e", "--executablePath"} or token.startswith("--executablePath=")
        for token in args
    )
    if not has_executable_arg and chrome_path and os.path.exists(chrome_path):
        args.extend(["--executablePath", chrome_path])

    return args


def resolve_command(command: str) -> str:
    candidate = command.strip().strip('"')
    resolved = shutil.which(candidate)
    if resolved and os.name == "nt" and resolved.lower().endswith(".ps1"):
        cmd_candidate = str(resolved)[:-4] + ".cmd"
        if os.path.exists(cmd_candidate):
            return cmd_candidate
    if resolved:
        return resolved
    if os.name == "nt" and not candidate.lower().endswith(".cmd"):
        resolved_cmd = shutil.which(f"{candidate}.cmd")
        if resolved_cmd:
            return resolved_cmd
    raise EngineError(
        f"MCP server command not found: {command}. Ensure Node.js/npx is installed and available in PATH."
    )


@contextlib.asynccontextmanager
async def open_devtools_engine(settings: Settings) -> AsyncIterator[DevToolsEngine]:
    transport = StdioTransport(
        resolve_command(settings.mcp_server_command),
        server_args(settings.mcp_server_args, settings.chrome_path),
    )
    session = McpSession(transport, timeout_seconds=settings.step_timeout_seconds)
    await session.start()
    try:
        await session.initialize()
        logger.info("chrome-devtools MCP session ready")
        yield DevToolsEngine(session)
    finally:
        with contextlib.suppress(Exception):
            await session.stop()
