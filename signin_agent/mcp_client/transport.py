from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# chrome-devtools-mcp answers with whole page snapshots; the default 64 KiB
# StreamReader line limit is too small for them.
STREAM_LIMIT = 16 * 1024 * 1024


class StdioTransport:
    """Newline-delimited JSON-RPC over a child process' stdin/stdout."""

    def __init__(self, command: str, args: list[str], cwd: str | None = None) -> None:
        self.command = command
        self.args = args
        self.cwd = cwd
        self._process: asyncio.subprocess.Process | None = None
        self._stderr_task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        logger.debug(f"Starting MCP server: {self.command} {' '.join(self.args)}")
        self._process = await asyncio.create_subprocess_exec(
            self.command,
            *self.args,
            cwd=self.cwd or str(Path.cwd()),
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            limit=STREAM_LIMIT,
        )
        self._stderr_task = asyncio.create_task(self._pump_stderr())

    async def stop(self) -> None:
        if self._process is None:
            return
        process = self._process
        if process.stdin is not None:
            process.stdin.close()
            with contextlib.suppress(Exception):
                await process.stdin.wait_closed()
        if process.returncode is None and os.name == "nt":
            with contextlib.suppress(Exception):
                killer = await asyncio.create_subprocess_exec(
                    "taskkill",
                    "/T",
                    "/F",
                    "/PID",
                    str(process.pid),
                    stdout=asyncio.subprocess.DEVNULL,
                    stderr=asyncio.subprocess.DEVNULL,
                )
                await asyncio.wait_for(killer.wait(), timeout=5)
        if process.returncode is None:
            process.terminate()
            with contextlib.suppress(asyncio.CancelledError, TimeoutError):
                await asyncio.wait_for(process.wait(), timeout=5)
            if process.returncode is None:
                process.kill()
                with contextlib.suppress(asyncio.CancelledError, TimeoutError):
                    await asyncio.wait_for(process.wait(), timeout=5)
        if self._stderr_task is not None:
            self._stderr_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._stderr_task
            self._stderr_task = None
        self._process = None

    async def send(self, payload: dict[str, Any]) -> None:
        if self._process is None or self._process.stdin is None:
            raise RuntimeError("Transport is not started")
        data = (json.dumps(payload, ensure_ascii=False) + "\n").encode("utf-8")
        self._process.stdin.write(data)
        await self._process.stdin.drain()

    async def recv(self) -> dict[str, Any]:
        if self._process is None or self._process.stdout is None:
            raise RuntimeError("Transport is not started")
        while True:
            line = await self._process.stdout.readline()
            if not line:
                raise RuntimeError("MCP transport closed")
            try:
                message = json.loads(line.decode("utf-8"))
            except json.JSONDecodeError:
                # Servers occasionally print banners on stdout.
                logger.debug(f"Skipping non-JSON line from MCP server: {line[:200]!r}")
                continue
            if isinstance(message, dict):
                return message
            logger.debug(f"Skipping non-object JSON line from MCP server: {line[:200]!r}")

    async def _pump_stderr(self) -> None:
        if self._process is None or self._process.stderr is None:
            return
        while True:
            line = await self._process.stderr.readline()
            if not line:
                break
            logger.debug(f"[mcp] {line.decode('utf-8', errors='replace').rstrip()}")
