from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorKind(IntEnum):
    """Result codes shared with the in-page functions. Values are fixed."""

    SUCCESS = 0
    EXCEPTION = 1
    NO_HANDLER = 2
    NOT_FOUND = 3
    TIMEOUT = 4


@dataclass(slots=True)
class Envelope:
    code: ErrorKind
    message: str | None = None
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.code == ErrorKind.SUCCESS

    def get(self, key: str, default: Any = None) -> Any:
        return self.fields.get(key, default)

    @classmethod
    def success(cls, **fields: Any) -> Envelope:
        return cls(code=ErrorKind.SUCCESS, fields=fields)

    @classmethod
    def failure(cls, code: ErrorKind, message: str, **fields: Any) -> Envelope:
        return cls(code=code, message=message, fields=fields)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Envelope:
        """Decode a payload produced by an in-page function."""
        raw_code = payload.get("code")
        try:
            code = ErrorKind(int(raw_code))
        except (TypeError, ValueError):
            return cls.failure(ErrorKind.EXCEPTION, f"Unexpected result code: {raw_code!r}")

        message = payload.get("message")
        extra = {key: value for key, value in payload.items() if key not in {"code", "message"}}
        return cls(code=code, message=str(message) if message is not None else None, fields=extra)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": int(self.code)}
        if self.message is not None:
            payload["message"] = self.message
        payload.update(self.fields)
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)
