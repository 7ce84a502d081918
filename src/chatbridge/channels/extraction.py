"""Chat-room id extraction from Kick channel payloads.

Kick has served the id in several shapes over time, so the payload is
walked in a fixed order:

1. ``chatroom.id``
2. ``chatroom_id``
3. each element of a ``data`` list, first hit wins
4. a ``data`` object
"""

from __future__ import annotations

from typing import Any


def _as_id(value: Any) -> int | None:
    # bool is an int subclass but never a valid id
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def extract_chatroom_id(payload: Any) -> int | None:
    """Return the chat-room id found in ``payload``, or None."""
    if not isinstance(payload, dict):
        return None

    chatroom = payload.get("chatroom")
    if isinstance(chatroom, dict):
        chatroom_id = _as_id(chatroom.get("id"))
        if chatroom_id is not None:
            return chatroom_id

    chatroom_id = _as_id(payload.get("chatroom_id"))
    if chatroom_id is not None:
        return chatroom_id

    data = payload.get("data")
    if isinstance(data, list):
        for item in data:
            nested = extract_chatroom_id(item)
            if nested is not None:
                return nested
    elif isinstance(data, dict):
        return extract_chatroom_id(data)

    return None
