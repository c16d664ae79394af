from __future__ import annotations

import logging
from typing import Any

from scenario_mcp.runtime.engine import AutomationEngine, Element, ElementNotFoundError
from scenario_mcp.runtime.retry import Retryable, RetryExecution, RetryPolicy
from scenario_mcp.runtime.waits import DEFAULT_TIMEOUT_MS, wait_and_get, wait_for_text

logger = logging.getLogger(__name__)


class UncaughtPageError(AssertionError):
    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("Uncaught page error(s): " + "; ".join(errors))


class ScenarioSession:
    """Browser session owned by one scenario run.

    ``ignore_page_errors`` controls whether uncaught errors raised by the page
    itself fail the step after navigation and clicks.
    """

    def __init__(
        self,
        engine: AutomationEngine,
        ignore_page_errors: bool = True,
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> None:
        self.engine = engine
        self.ignore_page_errors = ignore_page_errors
        self.default_timeout_ms = default_timeout_ms

    async def visit(self, url: str) -> None:
        logger.info(f"visit {url}")
        await self.engine.visit(url)
        await self._check_page_errors()

    async def get(self, selector: str) -> Element | None:
        return await self.engine.get(selector)

    async def contains(self, text: str) -> Element | None:
        return await self.engine.contains(text)

    async def click(self, element: Element | None) -> None:
        if element is None:
            raise ElementNotFoundError("click target")
        logger.info(f"click {element.selector}")
        await self.engine.click(element)
        await self._check_page_errors()

    async def type(self, element: Element | None, text: str) -> None:
        if element is None:
            raise ElementNotFoundError("type target")
        logger.info(f"type into {element.selector}")
        await self.engine.type(element, text)

    async def wait(self, ms: int) -> None:
        await self.engine.wait(ms)

    async def viewport(self, width: int, height: int) -> None:
        await self.engine.viewport(width, height)

    async def wait_and_get(self, selector: str, timeout_ms: int | None = None) -> Element:
        return await wait_and_get(self.engine, selector, self._timeout(timeout_ms))

    async def wait_for_text(self, text: str, timeout_ms: int | None = None) -> Element:
        return await wait_for_text(self.engine, text, self._timeout(timeout_ms))

    async def assert_visible(self, text: str, timeout_ms: int | None = None) -> Element:
        return await self.wait_for_text(text, timeout_ms)

    async def assert_exists(self, text: str) -> Element:
        element = await self.engine.contains(text)
        if element is None:
            raise AssertionError(f"Expected an element containing {text!r} to exist")
        return element

    async def retry(self, operation: Retryable, policy: RetryPolicy | None = None) -> Any:
        return await RetryExecution(policy).run(operation)

    async def execute_command(self, command: str) -> Element | None:
        """Run a one-line command such as ``click #submit`` or ``type #q hello``."""
        action, _, rest = command.strip().partition(" ")
        action = action.lower()
        args = rest.strip()
        logger.info(f"Executing command: {command}")

        if action == "visit":
            await self.visit(args)
            return None
        if action == "click":
            element = await self.wait_and_get(args)
            await self.click(element)
            return element
        if action == "type":
            selector, _, text = args.partition(" ")
            element = await self.wait_and_get(selector)
            await self.type(element, text)
            return element
        if action == "contains":
            return await self.wait_for_text(args)
        raise ValueError(f"Unknown command: {action}")

    def _timeout(self, timeout_ms: int | None) -> int:
        return self.default_timeout_ms if timeout_ms is None else timeout_ms

    async def _check_page_errors(self) -> None:
        if self.ignore_page_errors:
            return
        errors = await self.engine.page_errors()
        if errors:
            raise UncaughtPageError(errors)
