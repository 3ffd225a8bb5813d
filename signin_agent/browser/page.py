from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from signin_agent.browser.bridge import PageBridge
from signin_agent.browser.envelope import Envelope, ErrorKind
from signin_agent.browser.scripts import BUTTON_SELECTOR

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 5000
DEFAULT_POLL_MS = 100


class PageAgent:
    """DOM primitives for the document currently loaded behind ``bridge``.

    Every call returns exactly one Envelope; failures of the bridge itself are
    reported as EXCEPTION rather than raised.
    """

    def __init__(
        self,
        bridge: PageBridge,
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
        poll_interval_ms: int = DEFAULT_POLL_MS,
    ) -> None:
        self.bridge = bridge
        self.default_timeout_ms = default_timeout_ms
        self.poll_interval_ms = poll_interval_ms

    async def _run(self, op: str, **args: Any) -> Envelope:
        try:
            payload = await self.bridge.evaluate(op, args)
        except Exception as exc:
            logger.warning(f"{op} failed in bridge: {exc}")
            return Envelope.failure(ErrorKind.EXCEPTION, str(exc) or type(exc).__name__)
        return Envelope.from_payload(payload)

    async def probe(self) -> Envelope:
        return await self._run("probe")

    async def exists(self, selector: str) -> Envelope:
        return await self._run("exists", selector=selector)

    async def click(self, selector: str) -> Envelope:
        result = await self._run("click", selector=selector)
        logger.debug(f"click {selector}: {result.code.name}")
        return result

    async def click_by_visible_text(self, text: str) -> Envelope:
        result = await self._run("click_by_text", text=text, buttonSelector=BUTTON_SELECTOR)
        logger.debug(f"click button {text!r}: {result.code.name}")
        return result

    async def type(self, selector: str, value: str) -> Envelope:
        result = await self._run("type", selector=selector, value=value)
        # Values are credentials; log the length only.
        logger.debug(f"typed {len(value)} chars into {selector}: {result.code.name}")
        return result

    async def get_text(self, selector: str) -> Envelope:
        return await self._run("get_text", selector=selector)

    async def get_value(self, selector: str) -> Envelope:
        return await self._run("get_value", selector=selector)

    async def list_buttons(self) -> Envelope:
        return await self._run("list_buttons", buttonSelector=BUTTON_SELECTOR)

    async def wait_for(self, selector: str, timeout_ms: int | None = None) -> Envelope:
        """Poll ``exists`` until it succeeds or ``timeout_ms`` has elapsed.

        A check that errors (the document being swapped during a transition,
        for example) counts as "not there yet". A zero or missing timeout
        falls back to ``default_timeout_ms``.
        """
        timeout_ms = timeout_ms or self.default_timeout_ms
        started = time.monotonic()
        last_error: str | None = None

        while True:
            found = await self.exists(selector)
            if found.ok:
                return Envelope.success()
            if found.code == ErrorKind.EXCEPTION:
                last_error = found.message

            elapsed_ms = (time.monotonic() - started) * 1000
            if elapsed_ms > timeout_ms:
                message = f"Timeout waiting for: {selector}"
                if last_error:
                    message += f" (last error: {last_error})"
                return Envelope.failure(ErrorKind.TIMEOUT, message)

            await asyncio.sleep(max(self.poll_interval_ms, 1) / 1000)
