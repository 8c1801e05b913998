from __future__ import annotations

import json
import re
from typing import Any

from app.core.errors import ValidationError
from app.core.settings import Settings

ALLOWED_ROLES = ("user", "assistant", "system")
_BRACKETS = re.compile(r"[<>]")


def sanitize_input(text: str, max_length: int) -> str:
    return _BRACKETS.sub("", text)[:max_length].strip()


def parse_body(raw: bytes) -> Any:
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationError("Invalid request body (JSON expected)") from exc


def validate_request(body: Any, settings: Settings) -> list[dict[str, Any]]:
    """Check and normalize ``body["messages"]``; message contents are rewritten in place."""
    if not isinstance(body, dict) or not isinstance(body.get("messages"), list):
        raise ValidationError('Missing or invalid "messages" field')
    messages: list[Any] = body["messages"]

    if len(messages) > settings.max_messages:
        raise ValidationError(f"Too many messages (max {settings.max_messages})")

    total_chars = 0
    for index, message in enumerate(messages):
        if not isinstance(message, dict):
            raise ValidationError(f"Invalid message at index {index}")
        role = message.get("role")
        if role not in ALLOWED_ROLES:
            raise ValidationError(f"Invalid role at message {index}: {role}")
        content = message.get("content")
        if not isinstance(content, str):
            raise ValidationError(f"Invalid content type at message {index}")

        cleaned = sanitize_input(content, settings.max_message_length)
        message["content"] = cleaned
        if not cleaned:
            raise ValidationError(f"Empty content at message {index}")
        if len(cleaned) > settings.max_message_length:
            raise ValidationError(f"Message {index} too long (max {settings.max_message_length} chars)")

        total_chars += len(cleaned)
        if total_chars > settings.max_total_chars:
            raise ValidationError(f"Total message length exceeds {settings.max_total_chars} chars")

    return messages
