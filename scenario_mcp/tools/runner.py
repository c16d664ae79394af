from __future__ import annotations

import asyncio
import contextlib
import logging
import os

from scenario_mcp.config import Settings

logger = logging.getLogger(__name__)

STATUS_FAILED = "Test execution failed"
STATUS_PASSED = "Test executed successfully"
STATUS_UNKNOWN = "Test completed with unknown status"


def summarize_status(returncode: int | None) -> str:
    if returncode == 0:
        return STATUS_PASSED
    if returncode == 1:
        return STATUS_FAILED
    return STATUS_UNKNOWN


async def execute_test(spec: str, command: str, settings: Settings) -> str:
    """Run one spec file under pytest in a subprocess and summarize the outcome."""
    env = {**os.environ, "SCENARIO_COMMAND": command}
    process: asyncio.subprocess.Process | None = None
    try:
        process = await asyncio.create_subprocess_exec(
            settings.runner,
            "-m",
            "pytest",
            spec,
            "-q",
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            env=env,
        )
        output, _ = await asyncio.wait_for(process.communicate(), timeout=settings.runner_timeout_seconds)
    except asyncio.TimeoutError:
        if process is not None and process.returncode is None:
            process.kill()
            with contextlib.suppress(Exception):
                await process.wait()
        return f"Error executing test runner: timed out after {settings.runner_timeout_seconds:g} s"
    except Exception as exc:
        logger.exception(f"Could not run {spec}")
        return f"Error executing test runner: {exc}"

    tail = output.decode("utf-8", errors="replace").strip().splitlines()[-5:]
    logger.info(f"{spec} exited with {process.returncode}")
    for line in tail:
        logger.debug(line)
    return summarize_status(process.returncode)
