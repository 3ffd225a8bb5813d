from __future__ import annotations

import logging

from signin_agent.agent.context import FlowContext
from signin_agent.agent.steps import DEFAULT_ACTIONS, ActionTable, StepLabel
from signin_agent.browser.envelope import Envelope, ErrorKind
from signin_agent.browser.page import PageAgent

logger = logging.getLogger(__name__)


class DispatchExecutor:
    """Runs the handler bound to a step label.

    With ``short_circuit`` the first step that does not succeed ends the
    handler and its envelope becomes the result. Without it every step runs
    and only a raised exception turns the result into EXCEPTION.
    """

    def __init__(
        self,
        page: PageAgent,
        actions: ActionTable = DEFAULT_ACTIONS,
        short_circuit: bool = True,
    ) -> None:
        self.page = page
        self.actions = actions
        self.short_circuit = short_circuit

    async def dispatch(self, label: str, context: FlowContext) -> Envelope:
        step_label = StepLabel.parse(label)
        handler = None
        if step_label is not StepLabel.UNRECOGNIZED:
            handler = self.actions.lookup(step_label)
        if handler is None:
            logger.info(f"No handler for step {label!r}")
            return Envelope.failure(ErrorKind.NO_HANDLER, f"No handler for: {label}")

        logger.info(f"Dispatching {step_label.name} ({len(handler)} steps)")
        try:
            for index, step in enumerate(handler, start=1):
                result = await step.run(self.page, context)
                if result.ok:
                    continue
                logger.warning(f"{step_label.name} step {index} ({step}) returned {result.code.name}: {result.message}")
                if self.short_circuit:
                    return result
        except Exception as exc:
            logger.exception(f"Handler for {step_label.name} raised")
            return Envelope.failure(ErrorKind.EXCEPTION, str(exc) or type(exc).__name__)

        return Envelope.success()
