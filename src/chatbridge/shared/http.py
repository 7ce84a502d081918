"""Helpers for reading loosely-typed provider responses.

Provider endpoints sometimes answer with HTML or plain text (for example
an anti-bot interstitial). Such bodies are coerced into a message-bearing
object instead of failing the caller with a parse error.
"""

from __future__ import annotations

import json
from typing import Any

import httpx

DEFAULT_TIMEOUT = 30.0


def parse_unknown_json(text: str) -> Any:
    """Parse ``text`` as JSON, wrapping it as ``{"message": text}`` on failure."""
    try:
        return json.loads(text)
    except ValueError:
        return {"message": text}


def response_payload(response: httpx.Response) -> Any:
    """Decode a response body; an empty body becomes an empty object."""
    text = response.text
    return parse_unknown_json(text) if text else {}


def is_success_status(status: int) -> bool:
    return 200 <= status < 300


def payload_message(payload: Any, fallback: str) -> str:
    """Return the payload's ``message`` field when it is a string, else ``fallback``."""
    if isinstance(payload, dict) and isinstance(payload.get("message"), str):
        return payload["message"]
    return fallback
