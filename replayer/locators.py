"""Locator expressions parsed from the selector strings the recorder persists.

Recorded selectors arrive in three surface forms:

* Playwright API calls such as ``locator('#id')``,
  ``getByRole('button', { name: 'Save' })`` or
  ``locator('form').locator('input')``;
* engine-prefixed strings (``css=``, ``text=``, ``role=``, ``xpath=``);
* bare CSS or XPath (leading ``/`` or ``(``).

Each string is parsed once into a small frozen expression which can build a
Playwright :class:`Locator` for the resolver and a JSON descriptor for the
in-page force-action interpreter.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from playwright.async_api import Locator, Page

_QUOTED = r"""(['"`])((?:\\.|(?!\1).)*)\1"""
_OPTIONS = r"(?:\s*,\s*(\{.*\}))?"

_CHAIN_RE = re.compile(rf"^(?:page\.)?locator\({_QUOTED}\)\s*\.locator\({_QUOTED.replace('1', '3')}\)$", re.DOTALL)
_CALL_RE = re.compile(rf"^(?:page\.)?(locator|getBy[A-Za-z]+)\(\s*{_QUOTED.replace('1', '2')}{_OPTIONS}\s*\)$", re.DOTALL)
_ROLE_ENGINE_RE = re.compile(r"^role=([a-z0-9_-]+)(?:\[name=(['\"])(.+?)\2\])?$", re.IGNORECASE)
_NAME_OPTION_RE = re.compile(r"""name\s*:\s*(['"`])((?:\\.|(?!\1).)*)\1""")
_EXACT_OPTION_RE = re.compile(r"exact\s*:\s*true")


def _unescape(value: str) -> str:
    return re.sub(r"\\(.)", r"\1", value)


@dataclass(frozen=True, slots=True)
class CssLocator:
    css: str

    def build(self, root: Union[Page, Locator]) -> Locator:
        return root.locator(self.css)

    def descriptor(self) -> Dict[str, Any]:
        return {"kind": "css", "css": self.css}


@dataclass(frozen=True, slots=True)
class XPathLocator:
    xpath: str

    def build(self, root: Union[Page, Locator]) -> Locator:
        return root.locator(f"xpath={self.xpath}")

    def descriptor(self) -> Dict[str, Any]:
        return {"kind": "xpath", "xpath": self.xpath}


@dataclass(frozen=True, slots=True)
class ChainLocator:
    parent: "LocatorExpression"
    child: "LocatorExpression"

    def build(self, root: Union[Page, Locator]) -> Locator:
        return self.child.build(self.parent.build(root))

    def descriptor(self) -> Dict[str, Any]:
        return {"kind": "chain", "parent": self.parent.descriptor(), "child": self.child.descriptor()}


@dataclass(frozen=True, slots=True)
class TestIdLocator:
    test_id: str

    def build(self, root: Union[Page, Locator]) -> Locator:
        return root.get_by_test_id(self.test_id)

    def descriptor(self) -> Dict[str, Any]:
        return {"kind": "testid", "value": self.test_id}


@dataclass(frozen=True, slots=True)
class RoleLocator:
    role: str
    name: Optional[str] = None
    exact: bool = False

    def build(self, root: Union[Page, Locator]) -> Locator:
        if self.name:
            return root.get_by_role(self.role, name=self.name, exact=self.exact)  # type: ignore[arg-type]
        return root.get_by_role(self.role)  # type: ignore[arg-type]

    def descriptor(self) -> Dict[str, Any]:
        return {"kind": "role", "role": self.role, "name": self.name or "", "exact": self.exact}


@dataclass(frozen=True, slots=True)
class TextLocator:
    text: str
    exact: bool = False

    def build(self, root: Union[Page, Locator]) -> Locator:
        return root.get_by_text(self.text, exact=self.exact)

    def descriptor(self) -> Dict[str, Any]:
        return {"kind": "text", "value": self.text, "exact": self.exact}


@dataclass(frozen=True, slots=True)
class LabelLocator:
    text: str
    exact: bool = False

    def build(self, root: Union[Page, Locator]) -> Locator:
        return root.get_by_label(self.text, exact=self.exact)

    def descriptor(self) -> Dict[str, Any]:
        return {"kind": "label", "value": self.text, "exact": self.exact}


@dataclass(frozen=True, slots=True)
class PlaceholderLocator:
    text: str
    exact: bool = False

    def build(self, root: Union[Page, Locator]) -> Locator:
        return root.get_by_placeholder(self.text, exact=self.exact)

    def descriptor(self) -> Dict[str, Any]:
        return {"kind": "placeholder", "value": self.text, "exact": self.exact}


@dataclass(frozen=True, slots=True)
class AltTextLocator:
    text: str
    exact: bool = False

    def build(self, root: Union[Page, Locator]) -> Locator:
        return root.get_by_alt_text(self.text, exact=self.exact)

    def descriptor(self) -> Dict[str, Any]:
        return {"kind": "alt", "value": self.text, "exact": self.exact}


@dataclass(frozen=True, slots=True)
class TitleLocator:
    text: str
    exact: bool = False

    def build(self, root: Union[Page, Locator]) -> Locator:
        return root.get_by_title(self.text, exact=self.exact)

    def descriptor(self) -> Dict[str, Any]:
        return {"kind": "title", "value": self.text, "exact": self.exact}


LocatorExpression = Union[
    CssLocator,
    XPathLocator,
    ChainLocator,
    TestIdLocator,
    RoleLocator,
    TextLocator,
    LabelLocator,
    PlaceholderLocator,
    AltTextLocator,
    TitleLocator,
]

_TEXT_CALLS = {
    "getByText": TextLocator,
    "getByLabel": LabelLocator,
    "getByPlaceholder": PlaceholderLocator,
    "getByAltText": AltTextLocator,
    "getByTitle": TitleLocator,
}


def _parse_engine(value: str) -> LocatorExpression:
    """Parse an engine-prefixed or bare selector string."""

    if value.startswith("xpath="):
        return XPathLocator(value[len("xpath="):].strip())
    if value.startswith("/") or value.startswith("("):
        return XPathLocator(value)
    if value.startswith("css="):
        return CssLocator(value[len("css="):].strip())
    if value.startswith("text="):
        text = value[len("text="):].strip()
        if len(text) >= 2 and text[0] == text[-1] and text[0] in "'\"":
            return TextLocator(text[1:-1], exact=True)
        return TextLocator(text)
    if value.startswith("role="):
        match = _ROLE_ENGINE_RE.match(value)
        if match:
            role, _, name = match.groups()
            return RoleLocator(role.lower(), name)
    return CssLocator(value)


def _parse_call(method: str, argument: str, options: Optional[str]) -> Optional[LocatorExpression]:
    exact = bool(options and _EXACT_OPTION_RE.search(options))
    if method == "locator":
        return _parse_engine(argument.strip())
    if method == "getByTestId":
        return TestIdLocator(argument)
    if method == "getByRole":
        name = None
        if options:
            match = _NAME_OPTION_RE.search(options)
            if match:
                name = _unescape(match.group(2))
        return RoleLocator(argument, name, exact=exact)
    factory = _TEXT_CALLS.get(method)
    if factory is None:
        return None
    return factory(argument, exact=exact)


def parse_locator(selector: str) -> LocatorExpression:
    """Parse one persisted selector string; unrecognised text is treated as CSS."""

    value = (selector or "").strip()
    if not value:
        raise ValueError("empty selector")

    chain = _CHAIN_RE.match(value)
    if chain:
        parent = _parse_engine(_unescape(chain.group(2)).strip())
        child = _parse_engine(_unescape(chain.group(4)).strip())
        return ChainLocator(parent, child)

    call = _CALL_RE.match(value)
    if call:
        method, _, argument, options = call.groups()
        parsed = _parse_call(method, _unescape(argument), options)
        if parsed is not None:
            return parsed

    return _parse_engine(value)


def build_locator(root: Union[Page, Locator], selector: str) -> Locator:
    return parse_locator(selector).build(root)


__all__ = [
    "AltTextLocator",
    "ChainLocator",
    "CssLocator",
    "LabelLocator",
    "LocatorExpression",
    "PlaceholderLocator",
    "RoleLocator",
    "TestIdLocator",
    "TextLocator",
    "TitleLocator",
    "XPathLocator",
    "build_locator",
    "parse_locator",
]
