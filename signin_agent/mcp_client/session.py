from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from typing import Any, Protocol

from .protocol import MCP_PROTOCOL_VERSION, classify, notification, request, unwrap

logger = logging.getLogger(__name__)

NotificationHandler = Callable[[str, dict[str, Any]], None]


class Transport(Protocol):
    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    async def send(self, payload: dict[str, Any]) -> None: ...

    async def recv(self) -> dict[str, Any]: ...


class McpSession:
    def __init__(self, transport: Transport, timeout_seconds: float = 20.0) -> None:
        self.transport = transport
        self.timeout_seconds = timeout_seconds
        self._pending: dict[int, asyncio.Future[Any]] = {}
        self._notifications: list[NotificationHandler] = []
        self._reader_task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        await self.transport.start()
        self._reader_task = asyncio.create_task(self._reader_loop())

    async def stop(self) -> None:
        if self._reader_task is not None:
            self._reader_task.cancel()
            with contextlib.suppress(asyncio.CancelledError, TimeoutError):
                await asyncio.wait_for(self._reader_task, timeout=2)
            self._reader_task = None
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(self.transport.stop(), timeout=8)
        self._fail_pending(RuntimeError("MCP session stopped"))

    async def __aenter__(self) -> McpSession:
        await self.start()
        try:
            await self.initialize()
        except BaseException:
            await self.stop()
            raise
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    def on_notification(self, handler: NotificationHandler) -> None:
        self._notifications.append(handler)

    async def initialize(self) -> Any:
        result = await self.request(
            "initialize",
            {
                "protocolVersion": MCP_PROTOCOL_VERSION,
                "clientInfo": {"name": "signin-agent", "version": "0.1.0"},
                "capabilities": {},
            },
        )
        await self.transport.send(notification("notifications/initialized").to_dict())
        server = result.get("serverInfo", {}) if isinstance(result, dict) else {}
        logger.info(f"MCP server ready: {server.get('name', 'unknown')} {server.get('version', '')}".rstrip())
        return result

    async def list_tools(self) -> Any:
        return await self.request("tools/list", {})

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        return await self.request("tools/call", {"name": name, "arguments": arguments})

    async def request(self, method: str, params: dict[str, Any] | None = None) -> Any:
        req = request(method, params)
        fut: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[req.id] = fut
        try:
            await self.transport.send(req.to_dict())
            return await asyncio.wait_for(fut, timeout=self.timeout_seconds)
        finally:
            self._pending.pop(req.id, None)

    def _fail_pending(self, exc: Exception) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(exc)
        self._pending.clear()

    async def _reader_loop(self) -> None:
        try:
            while True:
                message = await self.transport.recv()
                kind = classify(message)
                if kind == "response":
                    self._resolve(message)
                elif kind == "notification":
                    method = message.get("method", "")
                    params = message.get("params", {})
                    for handler in self._notifications:
                        handler(method, params)
                else:
                    logger.debug(f"Ignoring {kind} MCP message: {message}")
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error(f"MCP reader stopped: {exc}")
            self._fail_pending(exc)

    def _resolve(self, message: dict[str, Any]) -> None:
        future = self._pending.pop(int(message["id"]), None)
        if future is None or future.done():
            return
        try:
            future.set_result(unwrap(message))
        except Exception as exc:
            future.set_exception(exc)
