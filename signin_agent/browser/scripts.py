"""In-page functions evaluated through the page bridge.

Each entry is a JavaScript arrow function taking one ``args`` object and
returning a plain result object ``{code, message?, ...}``. Selectors are
resolved on every call; nothing is cached between evaluations because the
document is expected to re-render between host calls.
"""

from __future__ import annotations

import json
from typing import Any

from signin_agent.browser.envelope import ErrorKind

BUTTON_SELECTOR = 'button, [role="button"]'

EXISTS = """({ selector }) => {
  const el = document.querySelector(selector);
  if (el) return { code: CODES.SUCCESS };
  return { code: CODES.NOT_FOUND, message: 'Element not found: ' + selector };
}"""

CLICK = """({ selector }) => {
  const el = document.querySelector(selector);
  if (!el) return { code: CODES.NOT_FOUND, message: 'Element not found: ' + selector };
  try {
    el.click();
    return { code: CODES.SUCCESS };
  } catch (e) {
    return { code: CODES.EXCEPTION, message: String((e && e.message) || e) };
  }
}"""

CLICK_BY_TEXT = """({ text, buttonSelector }) => {
  for (const button of document.querySelectorAll(buttonSelector)) {
    if ((button.textContent || '').trim() === text || button.value === text) {
      button.click();
      return { code: CODES.SUCCESS };
    }
  }
  return { code: CODES.NOT_FOUND, message: 'Button not found: ' + text };
}"""

# The prototype setter bypasses value setters that frameworks such as React
# install on the instance, so their change tracking sees each keystroke.
TYPE = """({ selector, value }) => {
  const el = document.querySelector(selector);
  if (!el) return { code: CODES.NOT_FOUND, message: 'Element not found: ' + selector };
  try {
    el.focus();
    const proto = el instanceof HTMLTextAreaElement
      ? HTMLTextAreaElement.prototype
      : HTMLInputElement.prototype;
    const setValue = Object.getOwnPropertyDescriptor(proto, 'value').set;
    setValue.call(el, '');
    for (const ch of Array.from(value)) {
      setValue.call(el, el.value + ch);
      el.dispatchEvent(new Event('input', { bubbles: true }));
    }
    el.dispatchEvent(new Event('change', { bubbles: true }));
    el.blur();
    return { code: CODES.SUCCESS, value: el.value };
  } catch (e) {
    return { code: CODES.EXCEPTION, message: String((e && e.message) || e) };
  }
}"""

GET_TEXT = """({ selector }) => {
  const el = document.querySelector(selector);
  if (!el) return { code: CODES.NOT_FOUND, message: 'Element not found: ' + selector };
  return { code: CODES.SUCCESS, text: (el.textContent || '').trim() };
}"""

GET_VALUE = """({ selector }) => {
  const el = document.querySelector(selector);
  if (!el) return { code: CODES.NOT_FOUND, message: 'Element not found: ' + selector };
  return { code: CODES.SUCCESS, value: el.value };
}"""

LIST_BUTTONS = """({ buttonSelector }) => {
  const buttons = [];
  for (const button of document.querySelectorAll(buttonSelector)) {
    const text = (button.textContent || '').trim();
    if (text) buttons.push(text);
  }
  return { code: CODES.SUCCESS, buttons };
}"""

PROBE = """() => ({
  code: CODES.SUCCESS,
  readyState: document.readyState || 'loading',
  href: String((window.location && window.location.href) || ''),
})"""

SCRIPTS: dict[str, str] = {
    "exists": EXISTS,
    "click": CLICK,
    "click_by_text": CLICK_BY_TEXT,
    "type": TYPE,
    "get_text": GET_TEXT,
    "get_value": GET_VALUE,
    "list_buttons": LIST_BUTTONS,
    "probe": PROBE,
}


def _codes_literal() -> str:
    return json.dumps({kind.name: int(kind) for kind in ErrorKind})


def render_script(op: str, args: dict[str, Any] | None = None) -> str:
    """Build a zero-argument function declaration for ``evaluate_script``.

    Arguments are inlined as JSON so no quoting of user data is needed. A throw
    anywhere in the body (an invalid selector, for instance) is returned as an
    EXCEPTION result instead of escaping the page.
    """
    try:
        body = SCRIPTS[op]
    except KeyError:
        raise ValueError(f"Unknown page operation: {op}") from None

    args_json = json.dumps(args or {}, ensure_ascii=False)
    return (
        "() => {"
        f"const CODES = {_codes_literal()};"
        f"const args = {args_json};"
        f"try {{ return ({body})(args); }}"
        "catch (e) { return { code: CODES.EXCEPTION, message: String((e && e.message) || e) }; }"
        "}"
    )
