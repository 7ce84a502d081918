"""Channel lookup models and errors."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from chatbridge.shared.errors import ChatBridgeError

StrategyName = Literal["direct", "browser"]


class ChannelLookupError(ChatBridgeError):
    """Base exception for chat-room resolution failures."""

    pass


class EmptySlugError(ChannelLookupError):
    def __init__(self, message: str = "Kick channel is required."):
        super().__init__(message)


class LookupFailedError(ChannelLookupError):
    """Raised when the channel endpoint could not be read.

    ``status`` is the last HTTP status seen, 0 when none was received.
    """

    def __init__(self, message: str, status: int = 0):
        super().__init__(message)
        self.status = status


class ChatroomNotFoundError(ChannelLookupError):
    def __init__(self, message: str = "Kick chatroom id not found for this channel."):
        super().__init__(message)


@dataclass(frozen=True)
class LookupResult:
    """Transport-level result of one strategy run."""

    ok: bool
    status: int
    payload: Any = field(default_factory=dict)
    message: str = ""
    attempts: int = 1


@dataclass(frozen=True)
class ChannelLookup:
    """Returned to the caller of a successful resolution."""

    slug: str
    chatroom_id: int | None
    strategy_used: StrategyName
    attempts: int
    last_status: int
