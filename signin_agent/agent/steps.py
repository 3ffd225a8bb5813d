from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Literal, Union

from signin_agent.agent.context import FlowContext
from signin_agent.browser.envelope import Envelope
from signin_agent.browser.page import PageAgent


class StepLabel(str, Enum):
    """Titles of the Microsoft account sign-in steps (zh-CN UI)."""

    SIGN_IN = "登录"
    ENTER_PASSWORD = "输入你的密码"
    GET_CODE = "获取用于登录的代码"
    OTHER_WAYS = "使用另一种方式登录"
    VERIFY_EMAIL = "验证你的电子邮件"
    FASTER_SIGN_IN = "使用人脸、指纹或 PIN 更快地登录"
    GAME_PASS_CONFIRM = "正在尝试登录到 Game Pass 吗?"
    PASSKEY_FAILED = "无法创建通行密钥"
    UNRECOGNIZED = ""

    @classmethod
    def parse(cls, text: str) -> StepLabel:
        # Exact match only; UNRECOGNIZED has no title of its own.
        if not text:
            return cls.UNRECOGNIZED
        try:
            return cls(text)
        except ValueError:
            return cls.UNRECOGNIZED

    @classmethod
    def recognized(cls) -> list[StepLabel]:
        return [label for label in cls if label is not cls.UNRECOGNIZED]


@dataclass(frozen=True, slots=True)
class TypeCredential:
    selector: str
    field: Literal["username", "password"]

    async def run(self, page: PageAgent, context: FlowContext) -> Envelope:
        return await page.type(self.selector, getattr(context.credentials, self.field))


@dataclass(frozen=True, slots=True)
class ClickButton:
    text: str

    async def run(self, page: PageAgent, context: FlowContext) -> Envelope:
        return await page.click_by_visible_text(self.text)


@dataclass(frozen=True, slots=True)
class Click:
    selector: str

    async def run(self, page: PageAgent, context: FlowContext) -> Envelope:
        return await page.click(self.selector)


Step = Union[TypeCredential, ClickButton, Click]
Handler = tuple[Step, ...]


class ActionTable:
    """Handlers keyed by recognised step label."""

    def __init__(self, handlers: Mapping[StepLabel, Handler]) -> None:
        for label in handlers:
            if not isinstance(label, StepLabel) or label is StepLabel.UNRECOGNIZED:
                raise ValueError(f"Handlers can only be bound to recognised labels, got {label!r}")
        self._handlers = dict(handlers)

    def lookup(self, label: StepLabel) -> Handler | None:
        return self._handlers.get(label)

    def missing(self) -> list[StepLabel]:
        return [label for label in StepLabel.recognized() if label not in self._handlers]

    def __len__(self) -> int:
        return len(self._handlers)


USERNAME_INPUT = '[id="usernameEntry"]'
PASSWORD_INPUT = '[id="passwordEntry"]'

DEFAULT_ACTIONS = ActionTable(
    {
        StepLabel.SIGN_IN: (
            TypeCredential(USERNAME_INPUT, "username"),
            ClickButton("下一步"),
        ),
        StepLabel.ENTER_PASSWORD: (
            TypeCredential(PASSWORD_INPUT, "password"),
            ClickButton("下一步"),
        ),
        StepLabel.GET_CODE: (ClickButton("其他登录方法"),),
        StepLabel.OTHER_WAYS: (ClickButton("使用密码"),),
        StepLabel.VERIFY_EMAIL: (ClickButton("使用密码"),),
        StepLabel.FASTER_SIGN_IN: (ClickButton("暂时跳过"),),
        StepLabel.GAME_PASS_CONFIRM: (ClickButton("继续"),),
        StepLabel.PASSKEY_FAILED: (ClickButton("取消"),),
    }
)
