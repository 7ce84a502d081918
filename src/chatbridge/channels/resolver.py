"""Kick channel name to chat-room id resolution."""

from __future__ import annotations

import logging

from chatbridge.channels.extraction import extract_chatroom_id
from chatbridge.channels.models import (
    ChannelLookup,
    ChatroomNotFoundError,
    EmptySlugError,
    LookupFailedError,
)
from chatbridge.channels.strategies import (
    BLOCKED_STATUS,
    BrowserEvasionStrategy,
    DirectHttpStrategy,
)

logger = logging.getLogger(__name__)


def normalize_slug(channel: str | None) -> str:
    """Trim and lower-case a human-entered channel name."""
    if not isinstance(channel, str):
        raise EmptySlugError()
    slug = channel.strip().lower()
    if not slug:
        raise EmptySlugError()
    return slug


class ChannelResolver:
    """Resolves a channel slug to the numeric id of its chat room.

    The browser strategy only runs when the direct request was answered
    with exactly 403 and did not already yield an id. Any other failure is
    reported straight away.
    """

    def __init__(
        self,
        direct: DirectHttpStrategy,
        browser: BrowserEvasionStrategy | None = None,
    ):
        self._direct = direct
        self._browser = browser

    async def resolve_chatroom(self, channel: str | None) -> ChannelLookup:
        """Resolve ``channel`` to its chat-room id.

        Raises:
            EmptySlugError: If the channel name is blank
            LookupFailedError: If the channel endpoint could not be read
            ChatroomNotFoundError: If the payload holds no chat-room id
        """
        slug = normalize_slug(channel)

        lookup = await self._direct.lookup(slug)
        strategy = self._direct.name
        attempts = lookup.attempts

        blocked = lookup.status == BLOCKED_STATUS
        if blocked and (not lookup.ok or extract_chatroom_id(lookup.payload) is None):
            if self._browser is not None:
                logger.info(f"Direct lookup for {slug} was blocked, retrying in browser")
                lookup = await self._browser.lookup(slug)
                strategy = self._browser.name
                attempts += lookup.attempts
            else:
                logger.warning(f"Direct lookup for {slug} was blocked and no browser host is available")

        if not lookup.ok:
            logger.warning(f"Kick lookup for {slug} failed with {lookup.status}: {lookup.message}")
            raise LookupFailedError(lookup.message, status=lookup.status)

        chatroom_id = extract_chatroom_id(lookup.payload)
        if chatroom_id is None:
            raise ChatroomNotFoundError()

        logger.info(f"Resolved Kick channel {slug} to chatroom {chatroom_id} via {strategy}")
        return ChannelLookup(
            slug=slug,
            chatroom_id=chatroom_id,
            strategy_used=strategy,
            attempts=attempts,
            last_status=lookup.status,
        )

    async def close(self) -> None:
        await self._direct.close()
