from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from signin_agent.agent.context import FlowContext
from signin_agent.agent.dispatch import DispatchExecutor
from signin_agent.agent.steps import DEFAULT_ACTIONS, ActionTable
from signin_agent.browser.bridge import PageBridge
from signin_agent.browser.envelope import Envelope, ErrorKind
from signin_agent.browser.page import DEFAULT_POLL_MS, DEFAULT_TIMEOUT_MS, PageAgent
from signin_agent.browser.page_state import current_step_label

logger = logging.getLogger(__name__)


class Automation:
    """Host-facing surface of the sign-in agent.

    ``ready`` turns true once ``install`` has reached the page. ``invoke``
    accepts the wire operation names and always answers with a serialized
    envelope.
    """

    def __init__(
        self,
        bridge: PageBridge,
        actions: ActionTable = DEFAULT_ACTIONS,
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
        poll_interval_ms: int = DEFAULT_POLL_MS,
        short_circuit: bool = True,
    ) -> None:
        self.page = PageAgent(
            bridge,
            default_timeout_ms=default_timeout_ms,
            poll_interval_ms=poll_interval_ms,
        )
        self.executor = DispatchExecutor(self.page, actions=actions, short_circuit=short_circuit)
        self.context = FlowContext()
        self.ready = False
        self._operations: dict[str, Callable[..., Awaitable[Envelope]]] = {
            "setCredentials": self._set_credentials_async,
            "dispatch": self.dispatch,
            "exists": self.page.exists,
            "click": self.page.click,
            "clickByVisibleText": self.page.click_by_visible_text,
            "type": self.page.type,
            "getText": self.page.get_text,
            "getValue": self.page.get_value,
            "waitFor": self._wait_for,
            "currentStepLabel": self.current_step_label,
            "listButtons": self.page.list_buttons,
        }

    @property
    def operations(self) -> list[str]:
        return list(self._operations)

    async def install(self) -> Envelope:
        probe = await self.page.probe()
        if probe.ok:
            self.ready = True
            logger.info(f"Agent ready on {probe.get('href') or 'unknown page'} ({probe.get('readyState')})")
        else:
            logger.warning(f"Page probe failed: {probe.message}")
        return probe

    def set_credentials(self, username: str, password: str) -> Envelope:
        self.context.set_credentials(username, password)
        return Envelope.success()

    async def _set_credentials_async(self, username: str, password: str) -> Envelope:
        return self.set_credentials(username, password)

    async def dispatch(self, label: str) -> Envelope:
        return await self.executor.dispatch(label, self.context)

    async def current_step_label(self) -> Envelope:
        return await current_step_label(self.page)

    async def _wait_for(self, selector: str, timeout_ms: Any = None) -> Envelope:
        if timeout_ms is not None:
            timeout_ms = int(timeout_ms)
        return await self.page.wait_for(selector, timeout_ms)

    async def invoke(self, name: str, *args: Any) -> str:
        operation = self._operations.get(name)
        if operation is None:
            return Envelope.failure(ErrorKind.NO_HANDLER, f"Unknown operation: {name}").to_json()
        try:
            result = await operation(*args)
        except Exception as exc:
            logger.warning(f"{name} rejected: {exc}")
            result = Envelope.failure(ErrorKind.EXCEPTION, str(exc) or type(exc).__name__)
        return result.to_json()
