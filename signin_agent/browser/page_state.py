from __future__ import annotations

from signin_agent.browser.envelope import Envelope, ErrorKind
from signin_agent.browser.page import PageAgent

# Current sign-in pages mark the step heading with a test id; older
# confirmation pages only have the legacy title container.
TITLE_SELECTOR = '[data-testid="title"]'
LEGACY_TITLE_SELECTOR = "div#appConfirmPageTitle.text-title"

TITLE_SELECTORS = (TITLE_SELECTOR, LEGACY_TITLE_SELECTOR)


async def current_step_label(page: PageAgent) -> Envelope:
    """Read the label of the step the page is showing."""
    for selector in TITLE_SELECTORS:
        found = await page.get_text(selector)
        if found.ok:
            return Envelope.success(title=found.get("text", ""))
        if found.code != ErrorKind.NOT_FOUND:
            return found
    return Envelope.failure(ErrorKind.NOT_FOUND, "Title element not found")
