import dataclasses

import pytest

from app.core.errors import ValidationError
from app.core.settings import SETTINGS
from app.core.validation import parse_body, sanitize_input, validate_request


def _settings(**overrides):
    base = {"max_messages": 100, "max_message_length": 2000, "max_total_chars": 8000}
    base.update(overrides)
    return dataclasses.replace(SETTINGS, **base)


def test_sanitize_strips_brackets_truncates_and_trims():
    assert sanitize_input("  <b>hello</b>  ", 2000) == "bhello/b"
    assert sanitize_input("abcdef", 3) == "abc"
    once = sanitize_input(" <x> tomate ", 2000)
    assert sanitize_input(once, 2000) == once


def test_validate_rewrites_content_in_place():
    body = {"messages": [{"role": "user", "content": "  <script>Bonjour</script> "}]}
    messages = validate_request(body, _settings())
    assert messages is body["messages"]
    assert messages[0]["content"] == "scriptBonjour/script"


@pytest.mark.parametrize(
    "body",
    [
        None,
        [],
        {},
        {"messages": "hello"},
        {"messages": [{"role": "robot", "content": "hi"}]},
        {"messages": [{"role": "user", "content": 42}]},
        {"messages": [{"role": "user", "content": "  <> "}]},
        {"messages": ["hello"]},
    ],
)
def test_validate_rejects_malformed_bodies(body):
    with pytest.raises(ValidationError):
        validate_request(body, _settings())


def test_validate_limits_message_count():
    settings = _settings(max_messages=2)
    body = {"messages": [{"role": "user", "content": "hi"}] * 3}
    with pytest.raises(ValidationError, match="Too many messages"):
        validate_request(body, settings)


def test_long_content_is_truncated_not_rejected():
    body = {"messages": [{"role": "user", "content": "a" * 2500}]}
    messages = validate_request(body, _settings())
    assert len(messages[0]["content"]) == 2000


def test_validate_limits_total_chars():
    settings = _settings(max_total_chars=10)
    body = {
        "messages": [
            {"role": "user", "content": "123456"},
            {"role": "assistant", "content": "123456"},
        ]
    }
    with pytest.raises(ValidationError, match="Total message length"):
        validate_request(body, settings)


def test_parse_body_rejects_invalid_json():
    with pytest.raises(ValidationError, match="JSON expected"):
        parse_body(b"{invalid")
    assert parse_body(b'{"messages": []}') == {"messages": []}
