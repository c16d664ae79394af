"""pytest plugin giving generated scenario tests a live browser session."""
from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio

from scenario_mcp.config import load_settings
from scenario_mcp.runtime.devtools_engine import open_devtools_engine
from scenario_mcp.runtime.session import ScenarioSession

logger = logging.getLogger(__name__)


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "scenario(name): display name of a generated scenario test")


@pytest.fixture
def scenario_command() -> str:
    return os.getenv("SCENARIO_COMMAND", "")


@pytest_asyncio.fixture
async def scenario_session(request: pytest.FixtureRequest) -> AsyncIterator[ScenarioSession]:
    settings = load_settings()
    marker = request.node.get_closest_marker("scenario")
    if marker is not None and marker.args:
        logger.info(f"Scenario: {marker.args[0]}")

    async with open_devtools_engine(settings) as engine:
        yield ScenarioSession(engine, ignore_page_errors=settings.ignore_page_errors)
