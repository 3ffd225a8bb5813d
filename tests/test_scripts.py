from __future__ import annotations

import json

import pytest

from signin_agent.browser.scripts import SCRIPTS, render_script


@pytest.mark.parametrize("op", sorted(SCRIPTS))
def test_every_operation_renders_a_function(op: str) -> None:
    script = render_script(op, {"selector": "#x"})

    assert script.startswith("() => {")
    assert script.endswith("}")
    assert "const CODES = " in script


def test_arguments_are_inlined_as_json() -> None:
    script = render_script("type", {"selector": '[id="usernameEntry"]', "value": "it's \"密码\""})

    assert json.dumps({"selector": '[id="usernameEntry"]', "value": "it's \"密码\""}, ensure_ascii=False) in script


def test_codes_match_error_kind() -> None:
    script = render_script("exists", {"selector": "#x"})

    assert '"SUCCESS": 0' in script
    assert '"TIMEOUT": 4' in script


def test_unknown_operation() -> None:
    with pytest.raises(ValueError):
        render_script("navigate", {})


def test_type_commits_each_character_through_prototype_setter() -> None:
    body = SCRIPTS["type"]

    assert "Object.getOwnPropertyDescriptor(proto, 'value').set" in body
    assert "for (const ch of Array.from(value))" in body
    assert "new Event('input', { bubbles: true })" in body
    assert "new Event('change', { bubbles: true })" in body
    assert body.index("el.focus()") < body.index("el.blur()")
