from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from scenario_mcp.compiler.emitter import render_recording_stub, render_scenario
from scenario_mcp.compiler.scenario import compile_scenario, slugify

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GeneratedTest:
    file_path: Path
    test_content: str


def scenario_file_name(test_name: str) -> str:
    slug = slugify(test_name, "_") or "generated_scenario"
    if not slug.startswith("test_"):
        slug = f"test_{slug}"
    return f"{slug}.py"


def save_test(content: str, test_name: str, tests_dir: Path) -> Path:
    tests_dir.mkdir(parents=True, exist_ok=True)
    file_path = (tests_dir / scenario_file_name(test_name)).resolve()
    file_path.write_text(content, encoding="utf-8")
    logger.info(f"Saved {file_path}")
    return file_path


def generate_test(description: str, test_name: str, tests_dir: Path) -> GeneratedTest:
    scenario = compile_scenario(description, test_name)
    logger.info(f"Compiled {len(scenario.actions)} step(s) for {test_name!r}")
    content = render_scenario(scenario)
    return GeneratedTest(file_path=save_test(content, test_name, tests_dir), test_content=content)


def record_test(test_name: str, tests_dir: Path) -> Path:
    return save_test(render_recording_stub(test_name), test_name, tests_dir)
