from datetime import date

import pytest

from taskboard.errors import ValidationFailed
from taskboard.models import BoardCreate, CardCreate, CardUserCreate, ListCreate, UserCreate
from taskboard.validation import validate, with_path_params


def test_validate_returns_typed_entity():
    card = validate(CardCreate, {"title": "  Ship it  ", "due_date": "2026-12-01", "listId": "4"})
    assert card.title == "Ship it"
    assert card.description == ""
    assert card.due_date == date(2026, 12, 1)
    assert card.listId == 4
    assert card.ownerUserId is None


def test_validate_collects_all_violations():
    with pytest.raises(ValidationFailed) as exc:
        validate(BoardCreate, {"name": ""})
    assert [(v.field, v.rule) for v in exc.value.violations] == [
        ("name", "string_too_short"),
        ("adminUserId", "missing"),
    ]


def test_validate_non_object_payload():
    with pytest.raises(ValidationFailed) as exc:
        validate(UserCreate, ["Ada", "ada@example.com"])
    assert [v.field for v in exc.value.violations] == ["body"]


def test_list_board_id_must_be_integer():
    assert validate(ListCreate, {"name": "Todo", "boardId": "7"}).boardId == 7
    with pytest.raises(ValidationFailed):
        validate(ListCreate, {"name": "Todo", "boardId": "seven"})


def test_card_user_owner_flag_defaults_to_false():
    assignment = validate(CardUserCreate, with_path_params(None, cardId=1, userId=2))
    assert assignment.isOwner is False


def test_path_params_override_body():
    merged = with_path_params({"listId": 9, "title": "Hello"}, listId=3)
    assert merged == {"listId": 3, "title": "Hello"}
    assert with_path_params("text", listId=3) == "text"
