import pytest

from replayer.locators import (
    AltTextLocator,
    ChainLocator,
    CssLocator,
    LabelLocator,
    PlaceholderLocator,
    RoleLocator,
    TestIdLocator,
    TextLocator,
    TitleLocator,
    XPathLocator,
    parse_locator,
)


@pytest.mark.parametrize(
    "selector, expected",
    [
        ("#submit", CssLocator("#submit")),
        ("css=div.card > a", CssLocator("div.card > a")),
        ("locator('#email')", CssLocator("#email")),
        ('page.locator("input[name=\\"q\\"]")', CssLocator('input[name="q"]')),
        ("xpath=//button[1]", XPathLocator("//button[1]")),
        ("//div[@id='main']", XPathLocator("//div[@id='main']")),
        ("(//a)[2]", XPathLocator("(//a)[2]")),
        ("locator('xpath=//span')", XPathLocator("//span")),
        ("getByTestId('login-btn')", TestIdLocator("login-btn")),
        ("getByRole('button')", RoleLocator("button")),
        ("getByRole('button', { name: 'Sign in' })", RoleLocator("button", "Sign in")),
        ("getByRole('link', { name: \"Docs\", exact: true })", RoleLocator("link", "Docs", exact=True)),
        ("role=checkbox[name=\"Remember me\"]", RoleLocator("checkbox", "Remember me")),
        ("getByText('Don\\'t save')", TextLocator("Don't save")),
        ("text=\"Exact\"", TextLocator("Exact", exact=True)),
        ("text=Loose", TextLocator("Loose")),
        ("getByLabel('Email')", LabelLocator("Email")),
        ("getByPlaceholder('Search...')", PlaceholderLocator("Search...")),
        ("getByAltText('Logo')", AltTextLocator("Logo")),
        ("getByTitle('Close', { exact: true })", TitleLocator("Close", exact=True)),
    ],
)
def test_parse_locator_forms(selector, expected):
    assert parse_locator(selector) == expected


def test_parse_chain_locator():
    parsed = parse_locator("locator('form#login').locator('input[type=\"password\"]')")

    assert parsed == ChainLocator(CssLocator("form#login"), CssLocator('input[type="password"]'))
    assert parsed.descriptor() == {
        "kind": "chain",
        "parent": {"kind": "css", "css": "form#login"},
        "child": {"kind": "css", "css": 'input[type="password"]'},
    }


def test_unknown_call_falls_back_to_css():
    assert parse_locator("getByFoo('x')") == CssLocator("getByFoo('x')")


def test_empty_selector_is_rejected():
    with pytest.raises(ValueError):
        parse_locator("   ")


class RecordingRoot:
    def __init__(self):
        self.calls = []

    def _record(self, name):
        def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self

        return method

    def __getattr__(self, name):
        return self._record(name)


def test_build_uses_matching_playwright_api():
    root = RecordingRoot()

    parse_locator("getByRole('button', { name: 'Save' })").build(root)
    parse_locator("xpath=//a").build(root)
    parse_locator("locator('ul').locator('li')").build(root)

    assert root.calls == [
        ("get_by_role", ("button",), {"name": "Save", "exact": False}),
        ("locator", ("xpath=//a",), {}),
        ("locator", ("ul",), {}),
        ("locator", ("li",), {}),
    ]
