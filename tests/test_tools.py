import sys

import pytest

from scenario_mcp.config import Settings
from scenario_mcp.tools.generate import generate_test, record_test, scenario_file_name
from scenario_mcp.tools.runner import (
    STATUS_FAILED,
    STATUS_PASSED,
    STATUS_UNKNOWN,
    execute_test,
    summarize_status,
)


@pytest.mark.parametrize(
    ("test_name", "expected"),
    [
        ("Login Test", "test_login_test.py"),
        ("checkout -- happy path!", "test_checkout_happy_path.py"),
        ("test search", "test_search.py"),
        ("???", "test_generated_scenario.py"),
    ],
)
def test_scenario_file_name(test_name: str, expected: str) -> None:
    assert scenario_file_name(test_name) == expected


def test_generate_test_writes_rendered_source(tmp_path) -> None:
    tests_dir = tmp_path / "scenarios"

    generated = generate_test("Visit 'https://a.test' and click 'Submit'", "Submit Form", tests_dir)

    assert generated.file_path == (tests_dir / "test_submit_form.py").resolve()
    assert generated.file_path.read_text(encoding="utf-8") == generated.test_content
    assert "await session.visit('https://a.test')" in generated.test_content


def test_record_test_writes_stub(tmp_path) -> None:
    file_path = record_test("Checkout", tmp_path)
    assert file_path.name == "test_checkout.py"
    assert "Recorded commands will be added here" in file_path.read_text(encoding="utf-8")


def test_summarize_status() -> None:
    assert summarize_status(0) == STATUS_PASSED
    assert summarize_status(1) == STATUS_FAILED
    assert summarize_status(5) == STATUS_UNKNOWN
    assert summarize_status(None) == STATUS_UNKNOWN


@pytest.mark.asyncio
async def test_execute_test_reports_success_and_passes_command(tmp_path) -> None:
    spec = tmp_path / "test_cmd.py"
    spec.write_text(
        "import os\n\n\ndef test_cmd():\n    assert os.environ['SCENARIO_COMMAND'] == 'visit https://a.test'\n",
        encoding="utf-8",
    )
    settings = Settings(runner=sys.executable, runner_timeout_seconds=120)

    assert await execute_test(str(spec), "visit https://a.test", settings) == STATUS_PASSED


@pytest.mark.asyncio
async def test_execute_test_reports_failure(tmp_path) -> None:
    spec = tmp_path / "test_fail.py"
    spec.write_text("def test_fail():\n    assert False\n", encoding="utf-8")
    settings = Settings(runner=sys.executable, runner_timeout_seconds=120)

    assert await execute_test(str(spec), "", settings) == STATUS_FAILED


@pytest.mark.asyncio
async def test_execute_test_without_tests_is_unknown(tmp_path) -> None:
    spec = tmp_path / "test_empty.py"
    spec.write_text("", encoding="utf-8")
    settings = Settings(runner=sys.executable, runner_timeout_seconds=120)

    assert await execute_test(str(spec), "", settings) == STATUS_UNKNOWN


@pytest.mark.asyncio
async def test_execute_test_renders_runner_errors_as_text(tmp_path) -> None:
    settings = Settings(runner=str(tmp_path / "no-such-python"))

    result = await execute_test("test_x.py", "", settings)

    assert result.startswith("Error executing test runner:")
