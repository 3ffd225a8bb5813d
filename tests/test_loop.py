from __future__ import annotations

import asyncio

import pytest
from conftest import FakeDocument, FakeElement

from signin_agent.agent.automation import Automation
from signin_agent.agent.loop import FlowRunner
from signin_agent.agent.steps import PASSWORD_INPUT, USERNAME_INPUT
from signin_agent.browser.page_state import TITLE_SELECTOR


def _title(text: str) -> FakeElement:
    return FakeElement(TITLE_SELECTOR, text=text)


def _runner(automation: Automation, **kwargs) -> FlowRunner:
    options = {"settle_ms": 0, "step_retry_limit": 2, "retry_min_wait": 0.001}
    options.update(kwargs)
    return FlowRunner(automation, **options)


@pytest.fixture
def automation(bridge) -> Automation:
    automation = Automation(bridge, poll_interval_ms=10)
    automation.set_credentials("alice", "secret")
    return automation


def _build_flow(document: FakeDocument) -> dict[str, FakeElement]:
    fields = {
        "username": FakeElement(USERNAME_INPUT, value=""),
        "password": FakeElement(PASSWORD_INPUT, value=""),
    }

    def show_done() -> None:
        document.replace(FakeElement("#welcome", text="Welcome"))

    def show_game_pass() -> None:
        document.replace(_title("正在尝试登录到 Game Pass 吗?"), FakeElement("#yes", text="继续", button=True, on_click=show_done))

    def show_password() -> None:
        document.replace(
            _title("输入你的密码"),
            fields["password"],
            FakeElement("#next", text="下一步", button=True, on_click=show_game_pass),
        )

    document.replace(
        _title("登录"),
        fields["username"],
        FakeElement("#next", text="下一步", button=True, on_click=show_password),
    )
    return fields


def test_runs_flow_until_title_disappears(automation: Automation, document) -> None:
    fields = _build_flow(document)

    memory = asyncio.run(_runner(automation).run())

    assert memory.success is True
    assert memory.last_error is None
    assert memory.dispatched == 3
    assert fields["username"].value == "alice"
    assert fields["password"].value == "secret"


def test_unknown_step_stops_and_lists_buttons(automation: Automation, document) -> None:
    document.replace(_title("保持登录状态?"), FakeElement("#no", text="否", button=True), FakeElement("#yes", text="是", button=True))

    memory = asyncio.run(_runner(automation).run())

    assert memory.success is False
    assert memory.last_error == "No handler for: 保持登录状态?"
    assert memory.history[-1]["kind"] == "buttons"
    assert memory.history[-1]["result"]["buttons"] == ["否", "是"]


def test_missing_title_before_any_step_fails(automation: Automation, bridge) -> None:
    memory = asyncio.run(_runner(automation).run())

    assert memory.success is False
    assert memory.last_error == "Could not read step label: Title element not found"
    # Two attempts, each probing both title locations.
    assert len(bridge.calls) == 4


def test_stuck_step_is_detected(automation: Automation, document) -> None:
    document.replace(_title("无法创建通行密钥"), FakeElement("#cancel", text="取消", button=True))

    memory = asyncio.run(_runner(automation, max_repeats=2).run())

    assert memory.success is False
    assert memory.last_error.startswith("Stuck on step '无法创建通行密钥'")
    assert memory.dispatched == 2


def test_failed_dispatch_is_reported(automation: Automation, document) -> None:
    document.replace(_title("登录"), FakeElement("#next", text="下一步", button=True))

    memory = asyncio.run(_runner(automation).run())

    assert memory.success is False
    assert memory.last_error == f"登录: Element not found: {USERNAME_INPUT}"


def test_max_steps(automation: Automation, document) -> None:
    document.replace(_title("无法创建通行密钥"), FakeElement("#cancel", text="取消", button=True))

    memory = asyncio.run(_runner(automation, max_steps=2, max_repeats=10).run())

    assert memory.last_error == "Max steps reached"
    assert memory.success is False
