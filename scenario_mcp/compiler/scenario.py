from __future__ import annotations

import re
from dataclasses import dataclass

from scenario_mcp.compiler.actions import Action
from scenario_mcp.compiler.builder import build_actions

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(name: str, separator: str) -> str:
    return _NON_ALNUM.sub(separator, name.lower()).strip(separator)


@dataclass(frozen=True, slots=True)
class Scenario:
    description: str
    name: str = "generated scenario"
    actions: tuple[Action, ...] = ()

    @property
    def display_name(self) -> str:
        return f"should {self.description.lower()}"

    @property
    def function_name(self) -> str:
        return f"test_{slugify(self.name, '_') or 'generated_scenario'}"


def compile_scenario(description: str, name: str = "generated scenario") -> Scenario:
    return Scenario(description=description, name=name, actions=build_actions(description))
