from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class EngineError(RuntimeError):
    """Failure reported by the browser automation engine; callers may retry it."""


class ElementNotFoundError(EngineError):
    def __init__(self, query: str) -> None:
        self.query = query
        super().__init__(f"No element found for: {query}")


@dataclass(frozen=True, slots=True)
class Element:
    handle: str
    selector: str
    text: str = ""
    visible: bool = False


class AutomationEngine(Protocol):
    async def visit(self, url: str) -> None: ...

    async def get(self, selector: str) -> Element | None: ...

    async def click(self, element: Element) -> None: ...

    async def type(self, element: Element, text: str) -> None: ...

    async def contains(self, text: str) -> Element | None: ...

    async def wait(self, ms: int) -> None: ...

    async def viewport(self, width: int, height: int) -> None: ...

    async def page_errors(self) -> list[str]: ...
