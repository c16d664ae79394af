import pytest

from scenario_mcp.config import Settings
from scenario_mcp.main import build_server
from scenario_mcp.protocol.jsonrpc import INVALID_PARAMS, INVALID_REQUEST, METHOD_NOT_FOUND, PARSE_ERROR
from scenario_mcp.protocol.transport import TransportClosed, encode_message


class FakeChannel:
    def __init__(self, lines: list[bytes]) -> None:
        self.lines = list(lines)
        self.sent: list[dict] = []

    async def read_line(self) -> bytes:
        if not self.lines:
            raise TransportClosed("stdin closed")
        return self.lines.pop(0)

    async def send(self, payload: dict) -> None:
        self.sent.append(payload)


def call(request_id: int, name: str, arguments: dict) -> dict:
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "tools/call",
        "params": {"name": name, "arguments": arguments},
    }


@pytest.fixture
def server(tmp_path):
    return build_server(Settings(tests_dir=tmp_path, runner=str(tmp_path / "missing-python")))


@pytest.mark.asyncio
async def test_initialize_and_list_tools(server) -> None:
    init = await server.handle(
        {"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {"protocolVersion": "2025-06-18"}}
    )
    assert init["result"]["serverInfo"]["name"] == "scenario-mcp"
    assert init["result"]["protocolVersion"] == "2025-06-18"

    listed = await server.handle({"jsonrpc": "2.0", "id": 2, "method": "tools/list"})
    tools = {tool["name"]: tool for tool in listed["result"]["tools"]}
    assert set(tools) == {"generate-test", "execute-test", "record-test"}
    assert tools["generate-test"]["inputSchema"]["required"] == ["description", "testName"]


@pytest.mark.asyncio
async def test_generate_test_tool(server, tmp_path) -> None:
    response = await server.handle(
        call(3, "generate-test", {"description": "wait 5 seconds", "testName": "Pause"})
    )

    result = response["result"]
    text = result["content"][0]["text"]
    assert result["isError"] is False
    assert text.startswith(f"Test generated and saved to: {(tmp_path / 'test_pause.py').resolve()}")
    assert "\n\nTest content:\n# Generated scenario test from description:" in text
    assert "await session.wait(5000)" in text


@pytest.mark.asyncio
async def test_generate_test_tool_reports_persistence_errors(tmp_path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    server = build_server(Settings(tests_dir=blocker))

    response = await server.handle(call(4, "generate-test", {"description": "x", "testName": "y"}))

    assert response["result"]["content"][0]["text"].startswith("Error generating test:")


@pytest.mark.asyncio
async def test_execute_test_tool_never_fails_the_call(server) -> None:
    response = await server.handle(call(5, "execute-test", {"spec": "test_x.py", "command": ""}))
    assert response["result"]["content"][0]["text"].startswith("Error executing test runner:")


@pytest.mark.asyncio
async def test_record_test_tool(server, tmp_path) -> None:
    response = await server.handle(call(6, "record-test", {"testName": "Checkout"}))
    text = response["result"]["content"][0]["text"]
    assert text == f"Test file created: {(tmp_path / 'test_checkout.py').resolve()}"


@pytest.mark.asyncio
async def test_protocol_errors(server) -> None:
    unknown_tool = await server.handle(call(7, "delete-test", {}))
    assert unknown_tool["error"]["code"] == INVALID_PARAMS

    missing_arg = await server.handle(call(8, "generate-test", {"description": "x"}))
    assert missing_arg["error"]["code"] == INVALID_PARAMS

    unknown_method = await server.handle({"jsonrpc": "2.0", "id": 9, "method": "resources/list"})
    assert unknown_method["error"]["code"] == METHOD_NOT_FOUND

    invalid = await server.handle({"jsonrpc": "2.0", "id": 10})
    assert invalid["error"]["code"] == INVALID_REQUEST

    assert await server.handle({"jsonrpc": "2.0", "method": "notifications/initialized"}) is None


@pytest.mark.asyncio
async def test_serve_answers_until_client_disconnects(server) -> None:
    channel = FakeChannel(
        [
            encode_message({"jsonrpc": "2.0", "id": 1, "method": "ping"}),
            b"\n",
            b"{not json\n",
            encode_message({"jsonrpc": "2.0", "method": "notifications/initialized"}),
        ]
    )

    await server.serve(channel)

    by_id = {message["id"]: message for message in channel.sent}
    assert by_id[1]["result"] == {}
    assert by_id[None]["error"]["code"] == PARSE_ERROR
    assert len(channel.sent) == 2
