import pytest
from pydantic import ValidationError

from scenario.models import Action, ActionType, BrowserStorage, Element, StatementData, StorageType
from scenario.values import ScrollPosition, WindowSize


def test_element_accepts_plain_and_object_selectors():
    element = Element.model_validate({"selectors": ["#a", {"value": " #b "}, {"value": None}, ""]})

    assert element.selectors == ["#a", "#b"]


def test_element_accepts_single_selector_alias():
    element = Element.model_validate({"selector": "text=Save"})

    assert element.selectors == ["text=Save"]


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("localStorage", StorageType.LOCAL_STORAGE),
        ("local_storage", StorageType.LOCAL_STORAGE),
        ("session_storage", StorageType.SESSION_STORAGE),
        ("cookie", StorageType.COOKIE),
        ("cookies", StorageType.COOKIE),
    ],
)
def test_storage_type_spellings(raw, expected):
    assert BrowserStorage.model_validate({"storage_type": raw}).storage_type is expected


def test_unknown_storage_type_is_rejected():
    with pytest.raises(ValidationError):
        BrowserStorage.model_validate({"storage_type": "indexeddb"})


def test_statement_reads_connection_id_from_connection():
    statement = StatementData.model_validate(
        {"statement_text": "select 1", "connection": {"connection_id": 42}}
    )

    assert statement.query == "select 1"
    assert statement.connection_id == "42"


def test_find_value_scans_all_action_datas():
    action = Action.model_validate(
        {
            "action_type": "input",
            "action_datas": [
                {"statement": {"query": "select 1"}},
                {"value": {"page_index": 2}},
                {"value": {"value": "hello", "page_index": 5}},
            ],
        }
    )

    assert action.find_value("value") == "hello"
    assert action.page_index == 2
    assert action.find_data("statement").query == "select 1"


def test_page_index_defaults_to_zero():
    action = Action.model_validate({"action_type": "click", "action_datas": [{"value": {"page_index": "x"}}]})

    assert action.page_index == 0
    assert Action.model_validate({"action_type": "click"}).page_index == 0


def test_scalar_value_is_wrapped():
    action = Action.model_validate({"action_type": "wait", "action_datas": [{"value": 250}]})

    assert action.find_value("value") == 250
    assert action.action_type is ActionType.WAIT


def test_scroll_position_parsing():
    assert ScrollPosition.parse("X:10,Y:20") == ScrollPosition(10, 20)
    assert ScrollPosition.parse("x : 5 , y : 7") == ScrollPosition(5, 7)
    assert ScrollPosition.parse("garbage") == ScrollPosition(0, 0)
    assert ScrollPosition.parse(None) == ScrollPosition(0, 0)
    assert ScrollPosition(3, 4).encode() == "X:3, Y:4"


def test_window_size_parsing_and_clamping():
    size = WindowSize.parse("Width:100, Height:200")

    assert size == WindowSize(100, 200)
    assert size.clamped(800, 600, 1366, 768) == WindowSize(800, 600)
    assert WindowSize.parse("").clamped(800, 600, 1366, 768) == WindowSize(1366, 768)
    assert WindowSize.parse("width:1920,height:1080").encode() == "Width:1920, Height:1080"
