from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Any, Literal

JSONRPC_VERSION = "2.0"
MCP_PROTOCOL_VERSION = "2025-06-18"

MessageKind = Literal["response", "notification", "request", "invalid"]

_request_ids = itertools.count(1)


@dataclass(slots=True)
class Request:
    method: str
    params: dict[str, Any] | None = None
    id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "method": self.method}
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


def request(method: str, params: dict[str, Any] | None = None) -> Request:
    return Request(method=method, params=params, id=next(_request_ids))


def notification(method: str, params: dict[str, Any] | None = None) -> Request:
    return Request(method=method, params=params)


def classify(payload: dict[str, Any]) -> MessageKind:
    if payload.get("jsonrpc") != JSONRPC_VERSION:
        return "invalid"
    if "id" in payload and ("result" in payload or "error" in payload):
        return "response"
    if "method" in payload:
        return "request" if "id" in payload else "notification"
    return "invalid"


def unwrap(payload: dict[str, Any]) -> Any:
    """Return the result of a response or raise its error."""
    error = payload.get("error")
    if error is not None:
        raise JsonRpcError(
            code=error.get("code", -32000),
            message=error.get("message", "Unknown JSON-RPC error"),
            data=error.get("data"),
        )
    return payload.get("result")
