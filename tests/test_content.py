import pytest

from chatforge.services.chat_relay import (
    ChatTurn,
    StructuredPart,
    TextPart,
    flatten_content,
    to_provider_messages,
)


def turn(content, role="user"):
    return ChatTurn.model_validate({"role": role, "content": content})


def test_plain_string_passes_through():
    assert flatten_content(turn("ahoy").content) == "ahoy"


def test_missing_content_is_empty():
    assert flatten_content(turn(None).content) == ""


def test_text_parts_are_recognised_and_joined():
    parsed = turn([{"type": "text", "text": "Hello, "}, "world", {"text": "!"}]).content

    assert isinstance(parsed[0], TextPart)
    assert isinstance(parsed[2], TextPart)
    assert flatten_content(parsed) == "Hello, world!"


def test_other_parts_become_structured_parts():
    parsed = turn([{"type": "image_url", "image_url": {"url": "http://x/y.png"}}]).content

    assert isinstance(parsed[0], StructuredPart)
    assert flatten_content(parsed) == '{"type": "image_url", "image_url": {"url": "http://x/y.png"}}'


def test_nested_content_is_walked():
    content = {
        "type": "group",
        "content": [
            {"type": "text", "text": "a"},
            {"type": "group", "content": [{"type": "text", "text": "b"}, "c"]},
        ],
    }

    assert flatten_content(turn(content).content) == "abc"


def test_structured_part_text_wins_over_nested_content():
    content = [{"type": "note", "text": "visible", "content": "hidden"}]

    assert flatten_content(turn(content).content) == "visible"


def test_provider_messages_drop_unknown_roles():
    turns = [turn("sys", "system"), turn("x", "function"), turn("hi"), turn("yo", "assistant")]

    assert to_provider_messages(turns) == [
        {"role": "system", "content": "sys"},
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "yo"},
    ]


def test_role_is_optional():
    parsed = ChatTurn.model_validate({"content": "note"})

    assert parsed.role is None
    assert to_provider_messages([parsed, turn("hi")]) == [{"role": "user", "content": "hi"}]


@pytest.mark.parametrize(
    "content, expected",
    [
        (42, "42"),
        (1.5, "1.5"),
        (False, "false"),
        ([{"type": "text", "text": 5}], "5"),
        (["a", True, 7], "atrue7"),
        ({"type": "note", "text": 0}, "0"),
    ],
)
def test_scalars_are_flattened_to_text(content, expected):
    assert flatten_content(turn(content).content) == expected


def test_integer_text_is_not_read_as_boolean():
    parsed = turn([{"type": "text", "text": 1}]).content

    assert type(parsed[0].text) is int
    assert flatten_content(parsed) == "1"
