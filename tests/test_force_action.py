import asyncio
import json
import os
import shutil
import subprocess
import tempfile
import textwrap

import pytest
from playwright.async_api import Error as PlaywrightError

from replayer.errors import ForceActionError
from replayer.force_action import force_action


class ScriptedPage:
    """Returns a canned interpreter result per descriptor."""

    def __init__(self, results):
        self.results = results
        self.calls = []

    async def evaluate(self, script, arg):
        self.calls.append(arg)
        result = self.results[len(self.calls) - 1]
        if isinstance(result, Exception):
            raise result
        return result


def test_input_moves_on_when_element_has_no_value_property():
    page = ScriptedPage([{"ok": False, "reason": "not_input"}, {"ok": True}])

    used = asyncio.run(force_action(page, ["getByText('Name')", "#name"], "input", "Alice"))

    assert used == "#name"
    assert [call["descriptor"] for call in page.calls] == [
        {"kind": "text", "value": "Name", "exact": False},
        {"kind": "css", "css": "#name"},
    ]
    assert all(call["type"] == "input" and call["payload"] == "Alice" for call in page.calls)


def test_stops_at_first_success():
    page = ScriptedPage([{"ok": True}, {"ok": True}])

    used = asyncio.run(force_action(page, ["#a", "#b"], "dblclick"))

    assert used == "#a"
    assert len(page.calls) == 1


def test_all_selectors_failing_raises_with_reasons():
    page = ScriptedPage(
        [
            {"ok": False, "reason": "not_found"},
            PlaywrightError("Execution context was destroyed"),
            {"ok": False, "reason": "option_not_found"},
        ]
    )

    with pytest.raises(ForceActionError) as excinfo:
        asyncio.run(force_action(page, ["#a", "#b", "#c"], "select", "blue"))

    reasons = excinfo.value.reasons
    assert [selector for selector, _ in reasons] == ["#a", "#b", "#c"]
    assert reasons[0][1] == "not_found"
    assert "Execution context was destroyed" in reasons[1][1]
    assert excinfo.value.code == "FORCE_ACTION_FAILED"


def test_unknown_kind_is_rejected():
    with pytest.raises(ValueError):
        asyncio.run(force_action(ScriptedPage([]), ["#a"], "hover"))


_FAKE_DOM = r"""
class FakeEvent {
  constructor(type, init = {}) {
    this.type = type;
    Object.assign(this, init);
  }
}
const Event = FakeEvent;
class MouseEvent extends FakeEvent {}
const window = globalThis;
const fired = [];

class FakeNode {
  constructor() {
    this.children = [];
    this.shadowRoot = null;
  }
  append(...children) {
    this.children.push(...children);
    return this;
  }
  descendants() {
    const out = [];
    for (const child of this.children) out.push(child, ...child.descendants());
    return out;
  }
  querySelectorAll(selector) {
    return this.descendants().filter((el) => el.matches(selector));
  }
  contains(other) {
    return this === other || this.descendants().includes(other);
  }
}

class FakeElement extends FakeNode {
  constructor(tag, attrs = {}) {
    super();
    this.tagName = tag.toUpperCase();
    this.attrs = { ...attrs };
    this.textContent = '';
  }
  getAttribute(name) {
    return name in this.attrs ? this.attrs[name] : null;
  }
  hasAttribute(name) {
    return name in this.attrs;
  }
  matches(selector) {
    if (selector === '*') return true;
    if (selector.startsWith('#')) return this.attrs.id === selector.slice(1);
    return this.tagName === selector.toUpperCase();
  }
  attachShadow() {
    this.shadowRoot = new FakeNode();
    return this.shadowRoot;
  }
  scrollIntoView() {}
  dispatchEvent(event) {
    fired.push(`${this.attrs.id}:${event.type}`);
    return true;
  }
}

class FakeInput extends FakeElement {
  get value() {
    return this._value === undefined ? '' : this._value;
  }
  set value(next) {
    this._value = next;
  }
}

class FakeSelect extends FakeElement {
  constructor(attrs, options) {
    super('select', attrs);
    this.options = options.map(([value, text]) => ({ value, text, selected: false }));
    this.value = '';
  }
}

const document = new FakeNode();
"""


def _run_in_node(dom_setup: str, script: str, arg: dict) -> dict:
    node_code = "\n".join(
        [
            _FAKE_DOM,
            textwrap.dedent(dom_setup),
            f"const run = ({script});",
            f"const result = run({json.dumps(arg)});",
            "console.log(JSON.stringify({ result, fired, state: inspect() }));",
        ]
    )
    with tempfile.NamedTemporaryFile("w", suffix=".js", delete=False, encoding="utf-8") as tmp:
        tmp.write(node_code)
        script_path = tmp.name
    try:
        completed = subprocess.run(["node", script_path], check=True, capture_output=True, text=True)
    finally:
        os.remove(script_path)
    return json.loads(completed.stdout.strip())


class NodePage:
    """Evaluates the in-page script under node against a freshly built fake DOM."""

    def __init__(self, dom_setup: str) -> None:
        self.dom_setup = dom_setup
        self.runs = []

    async def evaluate(self, script, arg):
        output = _run_in_node(self.dom_setup, script, arg)
        self.runs.append(output)
        return output["result"]


requires_node = pytest.mark.skipif(shutil.which("node") is None, reason="node is not installed")


@requires_node
def test_dom_input_skips_element_without_value_property():
    page = NodePage(
        """
        const name = new FakeInput('input', { id: 'name' });
        document.append(new FakeElement('div', { id: 'label' }), name);
        const inspect = () => ({ value: name.value });
        """
    )

    used = asyncio.run(force_action(page, ["#label", "#name"], "input", "Alice"))

    assert used == "#name"
    assert page.runs[0]["result"] == {"ok": False, "reason": "not_input"}
    assert page.runs[0]["fired"] == []
    assert page.runs[1]["fired"] == ["name:input", "name:change"]
    assert page.runs[1]["state"] == {"value": "Alice"}


@requires_node
def test_dom_lookup_descends_into_shadow_roots():
    page = NodePage(
        """
        const host = new FakeElement('div', { id: 'host' });
        const deep = new FakeInput('input', { id: 'deep' });
        host.attachShadow().append(deep);
        document.append(host);
        const inspect = () => ({ value: deep.value });
        """
    )

    asyncio.run(force_action(page, ["#deep"], "input", "x"))

    assert page.runs[0]["fired"] == ["deep:input", "deep:change"]
    assert page.runs[0]["state"] == {"value": "x"}


@requires_node
def test_dom_select_falls_back_to_option_label():
    page = NodePage(
        """
        const select = new FakeSelect({ id: 'color' }, [['r', 'Red'], ['b', ' Blue ']]);
        document.append(select);
        const inspect = () => ({ value: select.value, selected: select.options.map((o) => o.selected) });
        """
    )

    asyncio.run(force_action(page, ["#color"], "select", "Blue"))

    assert page.runs[0]["state"] == {"value": "b", "selected": [False, True]}
    assert page.runs[0]["fired"] == ["color:input", "color:change"]


@requires_node
def test_dom_dblclick_fires_full_pointer_sequence():
    page = NodePage(
        """
        document.append(new FakeElement('button', { id: 'btn' }));
        const inspect = () => null;
        """
    )

    asyncio.run(force_action(page, ["#btn"], "dblclick"))

    assert [event.split(":")[1] for event in page.runs[0]["fired"]] == [
        "pointerdown",
        "mousedown",
        "mouseup",
        "click",
        "mousedown",
        "mouseup",
        "click",
        "dblclick",
    ]


@requires_node
def test_dom_missing_element_reports_not_found():
    page = NodePage("const inspect = () => null;")

    with pytest.raises(ForceActionError) as excinfo:
        asyncio.run(force_action(page, ["#missing"], "click"))

    assert excinfo.value.reasons == [("#missing", "not_found")]
