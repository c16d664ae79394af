from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from scenario_mcp.config import Settings, load_settings
from scenario_mcp.protocol.server import McpServer
from scenario_mcp.protocol.transport import StdioServerChannel
from scenario_mcp.tools.generate import generate_test, record_test
from scenario_mcp.tools.runner import execute_test

logger = logging.getLogger("scenario_mcp")

SERVER_NAME = "scenario-mcp"
SERVER_VERSION = "0.1.0"


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Scenario test generation server over MCP stdio")
    parser.add_argument("--tests-dir", help="Directory generated tests are written to")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def configure_logging(verbose: bool) -> None:
    # stdout carries the protocol, so logs go to stderr.
    handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )


def build_server(settings: Settings) -> McpServer:
    server = McpServer(SERVER_NAME, SERVER_VERSION)

    @server.tool(
        "generate-test",
        "Generate a scenario test from a natural language description",
        {
            "description": "Natural language description of the test scenario",
            "testName": "Name for the test file",
        },
    )
    async def generate(description: str, test_name: str) -> str:
        try:
            generated = await asyncio.to_thread(generate_test, description, test_name, settings.tests_dir)
        except Exception as exc:
            logger.exception("Test generation failed")
            return f"Error generating test: {exc}"
        return f"Test generated and saved to: {generated.file_path}\n\nTest content:\n{generated.test_content}"

    @server.tool(
        "execute-test",
        "Execute a generated scenario test file",
        {
            "spec": "Path to the test spec file",
            "command": "Command made available to the test as SCENARIO_COMMAND",
        },
    )
    async def execute(spec: str, command: str) -> str:
        return await execute_test(spec, command, settings)

    @server.tool(
        "record-test",
        "Create a test skeleton to hold recorded user interactions",
        {"testName": "Name of the test to be generated"},
    )
    async def record(test_name: str) -> str:
        try:
            file_path = await asyncio.to_thread(record_test, test_name, settings.tests_dir)
        except Exception as exc:
            logger.exception("Recording stub failed")
            return f"Error recording test: {exc}"
        return f"Test file created: {file_path}"

    return server


async def _run(settings: Settings) -> None:
    server = build_server(settings)
    await server.serve(StdioServerChannel())


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    settings = load_settings()
    if args.tests_dir:
        settings = dataclasses.replace(settings, tests_dir=Path(args.tests_dir))
    if args.verbose:
        settings = dataclasses.replace(settings, verbose=True)
    configure_logging(settings.verbose)

    try:
        asyncio.run(_run(settings))
    except Exception:
        logger.exception("Fatal error in main()")
        sys.exit(1)


if __name__ == "__main__":
    main()
