"""DOM-level fallback used when the locator API cannot act on an element.

The in-page script resolves a parsed locator descriptor by walking the light
DOM and every open shadow root, scrolls the element into view and then
synthesizes the events directly on it, skipping Playwright's actionability
checks.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from .errors import ForceActionError
from .locators import parse_locator

log = logging.getLogger(__name__)

FORCE_KINDS = ("click", "dblclick", "input", "select")

_FORCE_ACTION_JS = r"""
({ descriptor, type, payload }) => {
  const implicitRoles = {
    button: 'button,input[type="button"],input[type="submit"],input[type="reset"]',
    link: 'a[href],area[href]',
    textbox: 'input:not([type]),input[type="text"],input[type="email"],input[type="search"],input[type="tel"],input[type="url"],input[type="password"],textarea',
    checkbox: 'input[type="checkbox"]',
    radio: 'input[type="radio"]',
    combobox: 'select',
    option: 'option',
    img: 'img[alt]',
    listitem: 'li',
    heading: 'h1,h2,h3,h4,h5,h6',
  };

  const queryDeep = (root, selector) => {
    const out = [];
    const visit = (node) => {
      if (node.shadowRoot) visit(node.shadowRoot);
      if (!node.querySelectorAll) return;
      out.push(...node.querySelectorAll(selector));
      for (const el of node.querySelectorAll('*')) {
        if (el.shadowRoot) visit(el.shadowRoot);
      }
    };
    visit(root);
    return out;
  };

  const xpathAll = (root, expr) => {
    const doc = root.ownerDocument || root;
    const snapshot = doc.evaluate(expr, root, null, XPathResult.ORDERED_NODE_SNAPSHOT_TYPE, null);
    const out = [];
    for (let i = 0; i < snapshot.snapshotLength; i++) out.push(snapshot.snapshotItem(i));
    return out;
  };

  const norm = (text) => (text || '').replace(/\s+/g, ' ').trim();
  const matches = (actual, expected, exact) => {
    if (!expected) return false;
    actual = norm(actual);
    return exact ? actual === expected : actual.toLowerCase().includes(expected.toLowerCase());
  };
  const innermost = (list) => list.filter((el) => !list.some((other) => other !== el && el.contains(other)));

  const accessibleName = (el) => {
    const aria = el.getAttribute('aria-label');
    if (aria) return aria;
    const labelledBy = el.getAttribute('aria-labelledby');
    if (labelledBy) {
      const parts = labelledBy
        .split(/\s+/)
        .map((id) => document.getElementById(id))
        .filter((ref) => ref && ref.textContent)
        .map((ref) => ref.textContent.trim());
      if (parts.length) return parts.join(' ');
    }
    if (el.labels && el.labels.length) return el.labels[0].textContent || '';
    if (el.alt) return el.alt;
    if (el.title) return el.title;
    if (el.value && (el.type === 'submit' || el.type === 'button')) return el.value;
    return el.innerText || el.textContent || '';
  };

  const byAttribute = (root, attr, desc) =>
    queryDeep(root, `[${attr}]`).filter((el) => matches(el.getAttribute(attr), desc.value, desc.exact));

  const resolveAll = (desc, root) => {
    switch (desc.kind) {
      case 'css':
        return queryDeep(root, desc.css);
      case 'xpath':
        return xpathAll(root, desc.xpath);
      case 'chain': {
        for (const parent of resolveAll(desc.parent, root)) {
          const found = resolveAll(desc.child, parent);
          if (found.length) return found;
        }
        return [];
      }
      case 'testid':
        return queryDeep(root, '[data-testid]').filter((el) => el.getAttribute('data-testid') === desc.value);
      case 'role': {
        const role = desc.role.toLowerCase();
        const explicit = queryDeep(root, '[role]').filter((el) => el.getAttribute('role').toLowerCase() === role);
        const implicit = implicitRoles[role]
          ? queryDeep(root, implicitRoles[role]).filter((el) => !el.hasAttribute('role'))
          : [];
        const candidates = explicit.concat(implicit);
        if (!desc.name) return candidates;
        const exact = candidates.filter((el) => norm(accessibleName(el)) === desc.name);
        if (exact.length || desc.exact) return exact;
        return candidates.filter((el) => matches(accessibleName(el), desc.name, false));
      }
      case 'text': {
        const candidates = innermost(queryDeep(root, '*').filter((el) => matches(el.textContent, desc.value, desc.exact)));
        const exact = candidates.filter((el) => norm(el.textContent) === desc.value);
        return exact.length ? exact : candidates;
      }
      case 'label': {
        const out = [];
        for (const label of queryDeep(root, 'label').filter((el) => matches(el.textContent, desc.value, desc.exact))) {
          const forId = label.getAttribute('for');
          const target = forId ? document.getElementById(forId) : label.querySelector('input,textarea,select,button');
          if (target) out.push(target);
        }
        return out.concat(byAttribute(root, 'aria-label', desc));
      }
      case 'placeholder':
        return byAttribute(root, 'placeholder', desc);
      case 'alt':
        return byAttribute(root, 'alt', desc);
      case 'title':
        return byAttribute(root, 'title', desc);
      default:
        return [];
    }
  };

  let el;
  try {
    el = resolveAll(descriptor, document)[0];
  } catch (err) {
    return { ok: false, reason: `query_error: ${err}` };
  }
  if (!el) return { ok: false, reason: 'not_found' };

  try {
    el.scrollIntoView({ block: 'center', inline: 'center' });
  } catch (err) {}

  const mouse = (name) =>
    el.dispatchEvent(new MouseEvent(name, { bubbles: true, cancelable: true, view: window, buttons: 1 }));
  const notify = (node) => {
    node.dispatchEvent(new Event('input', { bubbles: true }));
    node.dispatchEvent(new Event('change', { bubbles: true }));
  };

  switch (type) {
    case 'click':
      ['pointerdown', 'mousedown', 'mouseup', 'click'].forEach(mouse);
      return { ok: true };
    case 'dblclick':
      ['pointerdown', 'mousedown', 'mouseup', 'click', 'mousedown', 'mouseup', 'click', 'dblclick'].forEach(mouse);
      return { ok: true };
    case 'input': {
      if (!('value' in el)) return { ok: false, reason: 'not_input' };
      const value = payload == null ? '' : String(payload);
      const proto = Object.getPrototypeOf(el);
      const setter = proto && Object.getOwnPropertyDescriptor(proto, 'value');
      if (setter && setter.set) {
        setter.set.call(el, value);
      } else {
        el.value = value;
      }
      notify(el);
      return { ok: true };
    }
    case 'select': {
      if (el.tagName !== 'SELECT') return { ok: false, reason: 'not_select' };
      const options = Array.from(el.options);
      let option = options.find((o) => o.value === payload) || options.find((o) => o.text.trim() === payload);
      if (!option && options.length && payload == null) option = options[0];
      if (!option) return { ok: false, reason: 'option_not_found' };
      el.value = option.value;
      option.selected = true;
      notify(el);
      return { ok: true };
    }
    default:
      return { ok: false, reason: 'unsupported' };
  }
}
"""


async def _try_selector(page: Page, selector: str, kind: str, payload: Optional[str]) -> Tuple[bool, str]:
    try:
        descriptor = parse_locator(selector).descriptor()
    except ValueError as exc:
        return False, f"unparsable: {exc}"
    try:
        result: Dict[str, Any] = await page.evaluate(
            _FORCE_ACTION_JS,
            {"descriptor": descriptor, "type": kind, "payload": payload},
        )
    except PlaywrightError as exc:
        return False, str(exc)
    if result and result.get("ok"):
        return True, "ok"
    return False, str((result or {}).get("reason") or "unknown")


async def force_action(
    page: Page,
    selectors: Iterable[str],
    kind: str,
    payload: Optional[str] = None,
) -> str:
    """Apply ``kind`` through synthesized DOM events, trying each selector in order.

    Returns the selector that succeeded. Raises :class:`ForceActionError` with
    the per-selector reasons when every selector fails.
    """

    if kind not in FORCE_KINDS:
        raise ValueError(f"Unsupported force action '{kind}'")

    reasons: List[Tuple[str, str]] = []
    for selector in selectors:
        ok, reason = await _try_selector(page, selector, kind, payload)
        if ok:
            log.info("Force %s succeeded with selector %s", kind, selector)
            return selector
        log.debug("Force %s failed with selector %s: %s", kind, selector, reason)
        reasons.append((selector, reason))
    raise ForceActionError(kind, reasons)


__all__ = ["FORCE_KINDS", "force_action"]
