from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from rich import print as console_print

from signin_agent.agent.automation import Automation
from signin_agent.agent.memory import FlowMemory
from signin_agent.agent.retry import retrying
from signin_agent.browser.envelope import Envelope, ErrorKind

logger = logging.getLogger(__name__)


class FlowRunner:
    """Drives a whole sign-in flow: read the step label, dispatch, repeat."""

    def __init__(
        self,
        automation: Automation,
        max_steps: int = 20,
        step_retry_limit: int = 3,
        settle_ms: int = 1000,
        max_repeats: int = 3,
        retry_min_wait: float = 0.25,
        verbose: bool = False,
    ) -> None:
        self.automation = automation
        self.max_steps = max_steps
        self.step_retry_limit = step_retry_limit
        self.settle_ms = settle_ms
        self.max_repeats = max_repeats
        self.retry_min_wait = retry_min_wait
        self.verbose = verbose

    async def _with_retry(self, operation: Callable[..., Awaitable[Envelope]], *args: Any) -> Envelope:
        policy = retrying(self.step_retry_limit, min_wait=self.retry_min_wait)
        return await policy(operation, *args)

    async def run(self) -> FlowMemory:
        memory = FlowMemory()

        for step_idx in range(self.max_steps):
            memory.step_index = step_idx
            if self.verbose:
                console_print(f"\n⏳ Step {step_idx + 1}/{self.max_steps}")

            label_result = await self._with_retry(self.automation.current_step_label)
            memory.push({"step": step_idx, "kind": "label", "result": label_result.to_dict()})

            if not label_result.ok:
                if label_result.code == ErrorKind.NOT_FOUND and memory.dispatched:
                    logger.info("Step title gone; sign-in flow left the page")
                    memory.success = True
                else:
                    memory.last_error = f"Could not read step label: {label_result.message}"
                break

            label = str(label_result.get("title", ""))
            if self.verbose:
                console_print(f"   Step: {label}")

            repeats = memory.note_label(label)
            if repeats > self.max_repeats:
                memory.last_error = f"Stuck on step {label!r} after {repeats - 1} attempts"
                break

            result = await self._with_retry(self.automation.dispatch, label)
            memory.push({"step": step_idx, "kind": "dispatch", "label": label, "result": result.to_dict()})

            if result.code == ErrorKind.NO_HANDLER:
                buttons = await self.automation.page.list_buttons()
                memory.push({"step": step_idx, "kind": "buttons", "result": buttons.to_dict()})
                memory.last_error = result.message
                if self.verbose:
                    console_print(f"   ❌ No handler. Buttons on page: {buttons.get('buttons', [])}")
                break

            if not result.ok:
                memory.last_error = f"{label}: {result.message}"
                if self.verbose:
                    console_print(f"   ❌ FAILED: {result.code.name} {result.message}")
                break

            if self.verbose:
                console_print("   ✅ done")
            await asyncio.sleep(max(self.settle_ms, 0) / 1000)
        else:
            memory.last_error = "Max steps reached"

        memory.success = memory.success and memory.last_error is None
        return memory
