from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Operation(str, Enum):
    NAVIGATE = "navigate"
    CLICK = "click"
    INPUT = "input"
    ASSERT_VISIBLE = "assert_visible"
    ASSERT_EXISTS = "assert_exists"
    WAIT = "wait"
    PLACEHOLDER = "placeholder"


# (needs target, needs value)
_REQUIRED_FIELDS: dict[Operation, tuple[bool, bool]] = {
    Operation.NAVIGATE: (True, False),
    Operation.CLICK: (True, False),
    Operation.INPUT: (True, True),
    Operation.ASSERT_VISIBLE: (True, False),
    Operation.ASSERT_EXISTS: (True, False),
    Operation.WAIT: (False, True),
    Operation.PLACEHOLDER: (False, False),
}


@dataclass(frozen=True, slots=True)
class Action:
    """One compiled automation step.

    ``annotation`` is only rendered as commentary in the emitted test.
    """

    operation: Operation
    target: str | None = None
    value: str | None = None
    annotation: str = ""

    def __post_init__(self) -> None:
        needs_target, needs_value = _REQUIRED_FIELDS[self.operation]
        if needs_target and not self.target:
            raise ValueError(f"{self.operation.value} action requires a target")
        if needs_value and self.value is None:
            raise ValueError(f"{self.operation.value} action requires a value")


def navigate(url: str) -> Action:
    return Action(Operation.NAVIGATE, target=url, annotation="Navigate to the specified URL")


def click(text: str) -> Action:
    return Action(Operation.CLICK, target=text, annotation=f'Click on element containing text "{text}"')


def input_text(field: str, text: str) -> Action:
    return Action(
        Operation.INPUT,
        target=field,
        value=text,
        annotation=f'Enter "{text}" into the {field} field',
    )


def assert_visible(text: str) -> Action:
    return Action(Operation.ASSERT_VISIBLE, target=text, annotation=f'Verify that "{text}" is visible')


def assert_exists(text: str) -> Action:
    return Action(Operation.ASSERT_EXISTS, target=text, annotation=f'Verify that "{text}" exists')


def wait(seconds: int) -> Action:
    return Action(Operation.WAIT, value=str(seconds * 1000), annotation=f"Wait for {seconds} seconds")


def placeholder(description: str) -> Action:
    return Action(Operation.PLACEHOLDER, annotation=f"TODO: Implement test steps for: {description}")
