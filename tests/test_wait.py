from __future__ import annotations

import asyncio
import time

from conftest import FakeElement

from signin_agent.browser.envelope import ErrorKind
from signin_agent.browser.page import PageAgent


def test_wait_for_times_out_not_before_deadline(page: PageAgent) -> None:
    started = time.monotonic()
    result = asyncio.run(page.wait_for("#never", 200))
    elapsed_ms = (time.monotonic() - started) * 1000

    assert result.code == ErrorKind.TIMEOUT
    assert result.message == "Timeout waiting for: #never"
    assert elapsed_ms >= 200


def test_wait_for_succeeds_when_element_appears(page: PageAgent, bridge, document) -> None:
    document.add(FakeElement("#passwordEntry", value=""), delay_ms=50)

    started = time.monotonic()
    result = asyncio.run(page.wait_for("#passwordEntry", 5000))
    elapsed_ms = (time.monotonic() - started) * 1000

    assert result.ok
    assert elapsed_ms < 1000
    assert len(bridge.calls) >= 2


def test_wait_for_polls_on_interval(bridge) -> None:
    page = PageAgent(bridge, poll_interval_ms=100)

    asyncio.run(page.wait_for("#never", 250))

    # Checks at roughly 0, 100, 200 and 300 ms.
    assert 3 <= len(bridge.calls) <= 5


def test_wait_for_uses_default_timeout(bridge) -> None:
    page = PageAgent(bridge, default_timeout_ms=50, poll_interval_ms=10)

    assert asyncio.run(page.wait_for("#never")).code == ErrorKind.TIMEOUT


def test_wait_for_keeps_polling_through_errors(bridge, document) -> None:
    page = PageAgent(bridge, poll_interval_ms=10)
    bridge.errors["exists"] = RuntimeError("Execution context was destroyed")

    result = asyncio.run(page.wait_for("#field", 60))

    assert result.code == ErrorKind.TIMEOUT
    assert "Execution context was destroyed" in result.message
    assert len(bridge.calls) > 1


def test_wait_for_does_not_block_the_event_loop(page: PageAgent) -> None:
    ticks: list[int] = []

    async def ticker() -> None:
        for i in range(3):
            ticks.append(i)
            await asyncio.sleep(0.05)

    async def scenario():
        return await asyncio.gather(page.wait_for("#never", 200), ticker())

    result, _ = asyncio.run(scenario())

    assert result.code == ErrorKind.TIMEOUT
    assert ticks == [0, 1, 2]


def test_wait_for_zero_timeout_uses_default(bridge, document) -> None:
    page = PageAgent(bridge, default_timeout_ms=2000, poll_interval_ms=20)
    document.add(FakeElement("#late", value=""), delay_ms=150)

    result = asyncio.run(page.wait_for("#late", 0))

    assert result.ok
