from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from scenario_mcp.runtime.engine import AutomationEngine, Element

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 10000
DEFAULT_POLL_MS = 100


class ElementTimeoutError(TimeoutError):
    def __init__(self, selector: str, timeout_ms: int) -> None:
        self.selector = selector
        self.timeout_ms = timeout_ms
        super().__init__(f"Timed out after {timeout_ms} ms waiting for visible element: {selector}")


async def _poll_visible(
    query: Callable[[], Awaitable[Element | None]],
    label: str,
    timeout_ms: int,
    poll_ms: int,
) -> Element:
    deadline = time.monotonic() + max(timeout_ms, 0) / 1000

    while True:
        element = await query()
        if element is not None and element.visible:
            return element
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            break
        await asyncio.sleep(min(max(poll_ms, 10) / 1000, remaining))

    logger.debug(f"No visible match for {label!r} within {timeout_ms} ms")
    raise ElementTimeoutError(label, timeout_ms)


async def wait_and_get(
    engine: AutomationEngine,
    selector: str,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    poll_ms: int = DEFAULT_POLL_MS,
) -> Element:
    """Poll ``engine.get`` until the selector matches a visible element."""
    return await _poll_visible(lambda: engine.get(selector), selector, timeout_ms, poll_ms)


async def wait_for_text(
    engine: AutomationEngine,
    text: str,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    poll_ms: int = DEFAULT_POLL_MS,
) -> Element:
    return await _poll_visible(lambda: engine.contains(text), text, timeout_ms, poll_ms)
