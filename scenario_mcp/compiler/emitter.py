"""Render compiled scenarios as pytest modules driven by ``ScenarioSession``."""
from __future__ import annotations

import unicodedata

from scenario_mcp.compiler.actions import Action, Operation
from scenario_mcp.compiler.scenario import Scenario, slugify

DEFAULT_VIEWPORT = (1280, 720)

_HEADER = (
    "import pytest\n"
    "\n"
    "from scenario_mcp.runtime.session import ScenarioSession\n"
    "\n"
    "\n"
)

_INDENT = "    "

# Recorded tests replay the command handed to the execute-test tool.
_RECORDING_FIXTURES = "scenario_session: ScenarioSession, scenario_command: str"
_RUN_COMMAND = "if scenario_command:\n    await session.execute_command(scenario_command)"


def field_selector(field: str) -> str:
    escaped = field.replace("\\", "\\\\").replace('"', '\\"')
    return f'[placeholder="{escaped}"], [name="{escaped}"], [aria-label="{escaped}"]'


def render_action(action: Action) -> str:
    op = action.operation
    if op is Operation.NAVIGATE:
        return f"await session.visit({action.target!r})"
    if op is Operation.CLICK:
        return f"await session.click(await session.wait_for_text({action.target!r}))"
    if op is Operation.INPUT:
        selector = field_selector(action.target or "")
        return f"await session.type(await session.wait_and_get({selector!r}), {action.value!r})"
    if op is Operation.ASSERT_VISIBLE:
        return f"await session.assert_visible({action.target!r})"
    if op is Operation.ASSERT_EXISTS:
        return f"await session.assert_exists({action.target!r})"
    if op is Operation.WAIT:
        return f"await session.wait({int(action.value or 0)})"
    return "pytest.skip('Test steps need to be implemented')"


def _printable(line: str) -> str:
    # Control characters and lone surrogates cannot appear in a source file.
    return "".join(
        "\ufffd" if ch != "\t" and unicodedata.category(ch) in ("Cc", "Cs") else ch for ch in line
    )


def _comment(text: str, indent: str = "") -> str:
    lines = text.splitlines() or [""]
    return "\n".join(f"{indent}# {_printable(line)}".rstrip() for line in lines)


def _test_block(
    display_name: str,
    function_name: str,
    steps: list[tuple[str, str]],
    viewport: tuple[int, int],
    fixtures: str = "scenario_session: ScenarioSession",
) -> str:
    width, height = viewport
    body = [
        f"{_INDENT}session = scenario_session",
        "",
        _comment("Default viewport size", _INDENT),
        f"{_INDENT}await session.viewport({width}, {height})",
    ]
    for annotation, line in steps:
        body.append("")
        if annotation:
            body.append(_comment(annotation, _INDENT))
        body.extend(f"{_INDENT}{part}" for part in line.splitlines())

    return (
        "@pytest.mark.asyncio\n"
        f"@pytest.mark.scenario({display_name!r})\n"
        f"async def {function_name}({fixtures}) -> None:\n"
        + "\n".join(body)
        + "\n"
    )


def render_scenario(scenario: Scenario, viewport: tuple[int, int] = DEFAULT_VIEWPORT) -> str:
    steps = [(action.annotation, render_action(action)) for action in scenario.actions]
    return (
        _comment("Generated scenario test from description:")
        + "\n"
        + _comment(scenario.description)
        + "\n"
        + _HEADER
        + _test_block(scenario.display_name, scenario.function_name, steps, viewport)
    )


def render_recording_stub(test_name: str, viewport: tuple[int, int] = DEFAULT_VIEWPORT) -> str:
    function_name = f"test_{slugify(test_name, '_') or 'recorded_scenario'}"
    steps = [("Recorded commands will be added here", _RUN_COMMAND)]
    return (
        _comment(f"Recorded scenario test: {test_name}")
        + "\n"
        + _HEADER
        + _test_block("should perform recorded actions", function_name, steps, viewport, _RECORDING_FIXTURES)
    )
