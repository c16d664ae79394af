from __future__ import annotations

from collections.abc import Iterable

from scenario_mcp.compiler import actions
from scenario_mcp.compiler.actions import Action
from scenario_mcp.compiler.matchers import MATCHERS, Matcher
from scenario_mcp.compiler.segmenter import segment


def build_actions(description: str, matchers: Iterable[Matcher] = MATCHERS) -> tuple[Action, ...]:
    """Compile a description into actions, in sentence order then matcher order."""
    matchers = tuple(matchers)
    steps: list[Action] = []

    for sentence in segment(description):
        for matcher in matchers:
            action = matcher(sentence)
            if action is not None:
                steps.append(action)

    if not steps:
        steps.append(actions.placeholder(description))

    return tuple(steps)
