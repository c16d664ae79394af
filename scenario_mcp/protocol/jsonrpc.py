from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Any


_jsonrpc_id = itertools.count(1)

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


@dataclass(slots=True)
class JsonRpcRequest:
    method: str
    params: dict[str, Any] | None = None
    id: int | str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "jsonrpc": "2.0",
            "method": self.method,
        }
        if self.params is not None:
            payload["params"] = self.params
        if self.id is not None:
            payload["id"] = self.id
        return payload


class JsonRpcError(Exception):
    def __init__(self, code: int, message: str, data: Any = None) -> None:
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"JSON-RPC error {code}: {message}")

    def to_dict(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


def next_id() -> int:
    return next(_jsonrpc_id)


def build_request(method: str, params: dict[str, Any] | None = None) -> JsonRpcRequest:
    return JsonRpcRequest(method=method, params=params, id=next_id())


def build_result(request_id: int | str | None, result: Any) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def build_error(request_id: int | str | None, error: JsonRpcError) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "error": error.to_dict()}


def is_request(payload: dict[str, Any]) -> bool:
    return payload.get("jsonrpc") == "2.0" and isinstance(payload.get("method"), str) and "id" in payload


def is_response(payload: dict[str, Any]) -> bool:
    return payload.get("jsonrpc") == "2.0" and "id" in payload and (
        "result" in payload or "error" in payload
    )


def is_notification(payload: dict[str, Any]) -> bool:
    return payload.get("jsonrpc") == "2.0" and "method" in payload and "id" not in payload


def extract_result(payload: dict[str, Any]) -> Any:
    if "error" in payload:
        err = payload["error"]
        raise JsonRpcError(
            code=err.get("code", -32000),
            message=err.get("message", "Unknown JSON-RPC error"),
            data=err.get("data"),
        )
    return payload.get("result")
