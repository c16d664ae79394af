from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

_TRUTHY = {"1", "true", "yes", "on"}


def env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).lower() in _TRUTHY


@dataclass(frozen=True, slots=True)
class Settings:
    tests_dir: Path = Path("scenarios")
    runner: str = sys.executable
    runner_timeout_seconds: float = 600.0
    mcp_server_command: str = "npx"
    mcp_server_args: str = "-y chrome-devtools-mcp@latest"
    chrome_path: str = ""
    step_timeout_seconds: float = 20.0
    ignore_page_errors: bool = True
    verbose: bool = False


def load_settings() -> Settings:
    load_dotenv()
    return Settings(
        tests_dir=Path(os.getenv("SCENARIO_TESTS_DIR", "scenarios")),
        runner=os.getenv("SCENARIO_RUNNER", "").strip() or sys.executable,
        runner_timeout_seconds=float(os.getenv("RUNNER_TIMEOUT_SECONDS", "600")),
        mcp_server_command=os.getenv("MCP_SERVER_COMMAND", "npx"),
        mcp_server_args=os.getenv("MCP_SERVER_ARGS", "-y chrome-devtools-mcp@latest"),
        chrome_path=os.getenv("CHROME_PATH", "").strip().strip('"'),
        step_timeout_seconds=float(os.getenv("STEP_TIMEOUT_SECONDS", "20")),
        ignore_page_errors=env_flag("SCENARIO_IGNORE_PAGE_ERRORS", "1"),
        verbose=env_flag("VERBOSE"),
    )
