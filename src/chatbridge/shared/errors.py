"""Root of the chatbridge exception hierarchy.

Every failure that crosses the caller-facing boundary derives from
ChatBridgeError, and its ``str()`` is the human-readable message shown to
the user.
"""

from __future__ import annotations


class ChatBridgeError(Exception):
    """Base exception for all chatbridge errors."""

    pass
