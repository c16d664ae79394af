from __future__ import annotations

from typing import Any

import pytest

from scenario_mcp.runtime.engine import Element


class FakeEngine:
    """Scripted AutomationEngine: each query returns its queued answers in order, the last one repeating."""

    def __init__(self) -> None:
        self.answers: dict[str, list[Element | None]] = {}
        self.errors: list[str] = []
        self.calls: list[tuple[Any, ...]] = []

    def script(self, query: str, *answers: Element | None) -> None:
        self.answers[query] = list(answers)

    def _answer(self, query: str) -> Element | None:
        queue = self.answers.get(query, [None])
        if len(queue) > 1:
            return queue.pop(0)
        return queue[0]

    async def visit(self, url: str) -> None:
        self.calls.append(("visit", url))

    async def get(self, selector: str) -> Element | None:
        self.calls.append(("get", selector))
        return self._answer(selector)

    async def click(self, element: Element) -> None:
        self.calls.append(("click", element.selector))

    async def type(self, element: Element, text: str) -> None:
        self.calls.append(("type", element.selector, text))

    async def contains(self, text: str) -> Element | None:
        self.calls.append(("contains", text))
        return self._answer(text)

    async def wait(self, ms: int) -> None:
        self.calls.append(("wait", ms))

    async def viewport(self, width: int, height: int) -> None:
        self.calls.append(("viewport", width, height))

    async def page_errors(self) -> list[str]:
        return list(self.errors)


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()
