from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

import pytest

from signin_agent.browser.envelope import ErrorKind
from signin_agent.browser.page import PageAgent


class FakeElement:
    """Element of the in-memory page. ``value`` is None for non-input elements."""

    def __init__(
        self,
        *selectors: str,
        text: str = "",
        value: str | None = None,
        button: bool = False,
        on_click: Callable[[], None] | None = None,
        click_error: str | None = None,
        fail_after_chars: int | None = None,
    ) -> None:
        self.selectors = set(selectors)
        self.text = text
        self.value = value
        self.button = button
        self.on_click = on_click
        self.click_error = click_error
        self.fail_after_chars = fail_after_chars
        self.clicks = 0
        self.events: list[str] = []
        self.appears_at = 0.0

    def click(self) -> None:
        if self.click_error:
            raise RuntimeError(self.click_error)
        self.clicks += 1
        if self.on_click is not None:
            self.on_click()


class FakeDocument:
    def __init__(self, *elements: FakeElement) -> None:
        self.elements = list(elements)

    def add(self, element: FakeElement, delay_ms: float = 0) -> FakeElement:
        element.appears_at = time.monotonic() + delay_ms / 1000
        self.elements.append(element)
        return element

    def replace(self, *elements: FakeElement) -> None:
        self.elements = list(elements)

    def _attached(self) -> list[FakeElement]:
        now = time.monotonic()
        return [element for element in self.elements if element.appears_at <= now]

    def query(self, selector: str) -> FakeElement | None:
        if selector.startswith("!!"):
            raise ValueError(f"'{selector}' is not a valid selector")
        for element in self._attached():
            if selector in element.selectors:
                return element
        return None

    def buttons(self) -> list[FakeElement]:
        return [element for element in self._attached() if element.button]


def _ok(**fields: Any) -> dict[str, Any]:
    return {"code": int(ErrorKind.SUCCESS), **fields}


def _fail(code: ErrorKind, message: str) -> dict[str, Any]:
    return {"code": int(code), "message": message}


class FakeBridge:
    """Answers page operations from a FakeDocument the way the in-page functions do."""

    def __init__(self, document: FakeDocument) -> None:
        self.document = document
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.errors: dict[str, Exception] = {}

    async def evaluate(self, op: str, args: dict[str, Any]) -> dict[str, Any]:
        self.calls.append((op, dict(args)))
        if op in self.errors:
            raise self.errors[op]
        try:
            return getattr(self, f"_op_{op}")(**args)
        except ValueError as exc:
            return _fail(ErrorKind.EXCEPTION, str(exc))

    def _missing(self, selector: str) -> dict[str, Any]:
        return _fail(ErrorKind.NOT_FOUND, "Element not found: " + selector)

    def _op_probe(self) -> dict[str, Any]:
        return _ok(readyState="complete", href="https://login.live.com/")

    def _op_exists(self, selector: str) -> dict[str, Any]:
        return _ok() if self.document.query(selector) else self._missing(selector)

    def _op_click(self, selector: str) -> dict[str, Any]:
        element = self.document.query(selector)
        if element is None:
            return self._missing(selector)
        try:
            element.click()
        except RuntimeError as exc:
            return _fail(ErrorKind.EXCEPTION, str(exc))
        return _ok()

    def _op_click_by_text(self, text: str, buttonSelector: str) -> dict[str, Any]:
        for element in self.document.buttons():
            if element.text.strip() == text or element.value == text:
                element.click()
                return _ok()
        return _fail(ErrorKind.NOT_FOUND, "Button not found: " + text)

    def _op_type(self, selector: str, value: str) -> dict[str, Any]:
        element = self.document.query(selector)
        if element is None:
            return self._missing(selector)
        element.events.append("focus")
        if element.value is None:
            return _fail(ErrorKind.EXCEPTION, "Illegal invocation")
        element.value = ""
        for typed, ch in enumerate(value):
            if element.fail_after_chars is not None and typed >= element.fail_after_chars:
                return _fail(ErrorKind.EXCEPTION, "element detached")
            element.value += ch
            element.events.append("input")
        element.events.extend(["change", "blur"])
        return _ok(value=element.value)

    def _op_get_text(self, selector: str) -> dict[str, Any]:
        element = self.document.query(selector)
        if element is None:
            return self._missing(selector)
        return _ok(text=element.text.strip())

    def _op_get_value(self, selector: str) -> dict[str, Any]:
        element = self.document.query(selector)
        if element is None:
            return self._missing(selector)
        return _ok(value=element.value)

    def _op_list_buttons(self, buttonSelector: str) -> dict[str, Any]:
        labels = [element.text.strip() for element in self.document.buttons()]
        return _ok(buttons=[label for label in labels if label])


@pytest.fixture
def document() -> FakeDocument:
    return FakeDocument()


@pytest.fixture
def bridge(document: FakeDocument) -> FakeBridge:
    return FakeBridge(document)


@pytest.fixture
def page(bridge: FakeBridge) -> PageAgent:
    return PageAgent(bridge)
