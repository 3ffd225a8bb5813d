from __future__ import annotations

import json
import logging
import re
from typing import Any, Protocol

from signin_agent.browser.scripts import render_script
from signin_agent.mcp_client.session import McpSession

logger = logging.getLogger(__name__)

EVALUATE_TOOL = "evaluate_script"


class BridgeError(RuntimeError):
    """The page could not be reached or returned something unreadable."""


class PageBridge(Protocol):
    async def evaluate(self, op: str, args: dict[str, Any]) -> dict[str, Any]:
        ...


class DevToolsBridge:
    """Runs in-page functions through a chrome-devtools MCP server."""

    def __init__(self, session: McpSession) -> None:
        self.session = session

    async def evaluate(self, op: str, args: dict[str, Any]) -> dict[str, Any]:
        script = render_script(op, args)
        raw = await self.session.call_tool(EVALUATE_TOOL, {"function": script})
        if not isinstance(raw, dict):
            raise BridgeError(f"Unexpected {EVALUATE_TOOL} result for {op}: {raw!r}")
        if raw.get("isError") is True:
            raise BridgeError(self._flatten_text(raw) or f"{EVALUATE_TOOL} failed for {op}")

        payload = self._extract_script_result_payload(raw)
        if payload is None:
            logger.debug(f"Unparsable {op} result: {self._flatten_text(raw)[:200]}")
            raise BridgeError(f"No JSON result returned for {op}")
        return payload

    async def tool_names(self) -> list[str]:
        tools = await self.session.list_tools()
        return [tool.get("name") for tool in tools.get("tools", []) if tool.get("name")]

    @classmethod
    def _extract_script_result_payload(cls, raw: dict[str, Any]) -> dict[str, Any] | None:
        result = raw.get("result")
        if isinstance(result, dict):
            return result

        structured = raw.get("structuredContent")
        if isinstance(structured, dict) and "code" in structured:
            return structured

        text = cls._flatten_text(raw.get("content", raw))
        return cls._extract_json_object(text)

    @staticmethod
    def _extract_json_object(text: str) -> dict[str, Any] | None:
        if not text:
            return None

        fenced = re.search(r"```json\s*(\{.*?\})\s*```", text, flags=re.DOTALL | re.IGNORECASE)
        candidates: list[str] = []
        if fenced:
            candidates.append(fenced.group(1))

        loose = re.search(r"(\{.*\})", text, flags=re.DOTALL)
        if loose:
            candidates.append(loose.group(1))

        for candidate in candidates:
            try:
                parsed = json.loads(candidate)
            except json.JSONDecodeError:
                continue
            if isinstance(parsed, dict):
                return parsed
        return None

    @classmethod
    def _flatten_text(cls, value: Any) -> str:
        if isinstance(value, dict):
            if value.get("type") == "text":
                return str(value.get("text", ""))
            parts = [cls._flatten_text(nested) for nested in value.values()]
            return "\n".join(part for part in parts if part)

        if isinstance(value, list):
            parts = [cls._flatten_text(nested) for nested in value]
            return "\n".join(part for part in parts if part)

        if isinstance(value, str):
            return value
        return ""
