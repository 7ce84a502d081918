"""Sign-in orchestration for all supported providers.

Reads client credentials from the credential store, runs the matching
flow, and writes the result back only once the flow has succeeded.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from chatbridge.auth.models.errors import SignInInProgressError
from chatbridge.auth.models.flow import Provider
from chatbridge.auth.models.tokens import TokenSet
from chatbridge.auth.services.kick import KickPkceFlow
from chatbridge.auth.services.popup import PopupSession
from chatbridge.auth.services.twitch import TwitchImplicitFlow
from chatbridge.settings.config import (
    KICK_DEFAULT_REDIRECT_URI,
    TWITCH_DEFAULT_REDIRECT_URI,
)
from chatbridge.settings.store import CredentialStore
from chatbridge.shared.http import DEFAULT_TIMEOUT
from chatbridge.surface.base import SurfaceHost

logger = logging.getLogger(__name__)


class AuthManager:
    """Signs users in and out of Twitch and Kick.

    At most one sign-in per provider is in flight; a second attempt while
    the first popup is still open is rejected rather than racing it.
    """

    def __init__(
        self,
        store: CredentialStore,
        host: SurfaceHost,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """Initialize the manager.

        Args:
            store: Where credentials are read from and written to
            host: Surface host used for sign-in popups
            timeout: HTTP request timeout in seconds
        """
        self.store = store
        popup = PopupSession(host)
        self.twitch = TwitchImplicitFlow(popup, timeout=timeout)
        self.kick = KickPkceFlow(popup, timeout=timeout)
        self._locks = {provider: asyncio.Lock() for provider in Provider}

    async def sign_in(self, provider: Provider | str) -> dict[str, Any]:
        """Sign in to ``provider`` and return the complete settings record.

        Raises:
            SignInInProgressError: If a sign-in for the provider is running
            OAuth2Error: If the flow fails; the store is left unchanged
        """
        provider = Provider(provider)
        lock = self._locks[provider]
        if lock.locked():
            raise SignInInProgressError(
                f"A {provider.value.capitalize()} sign-in is already in progress."
            )

        async with lock:
            if provider is Provider.TWITCH:
                return await self._sign_in_twitch()
            return await self._sign_in_kick()

    def sign_out(self, provider: Provider | str) -> dict[str, Any]:
        """Clear every stored credential field of ``provider``."""
        provider = Provider(provider)
        logger.info(f"Signing out of {provider.value}")
        if provider is Provider.TWITCH:
            return self.store.set(
                {"twitch_token": "", "twitch_username": "", "twitch_guest": False}
            )
        return self.store.set(
            {
                "kick_access_token": "",
                "kick_refresh_token": "",
                "kick_username": "",
                "kick_guest": False,
            }
        )

    async def _sign_in_twitch(self) -> dict[str, Any]:
        redirect_uri = _stripped(self.store.get("twitch_redirect_uri")) or TWITCH_DEFAULT_REDIRECT_URI
        tokens = await self.twitch.sign_in(self.store.get("twitch_client_id"), redirect_uri)

        if tokens.is_guest:
            return self.store.set(
                {
                    "twitch_token": "",
                    "twitch_username": tokens.username or "",
                    "twitch_guest": True,
                }
            )
        return self.store.set(
            {
                "twitch_token": tokens.access_token,
                "twitch_username": tokens.username or "",
                "twitch_guest": False,
                "twitch_redirect_uri": redirect_uri,
            }
        )

    async def _sign_in_kick(self) -> dict[str, Any]:
        redirect_uri = _stripped(self.store.get("kick_redirect_uri")) or KICK_DEFAULT_REDIRECT_URI
        tokens: TokenSet = await self.kick.sign_in(
            self.store.get("kick_client_id"),
            self.store.get("kick_client_secret"),
            redirect_uri,
        )

        if tokens.is_guest:
            return self.store.set(
                {
                    "kick_access_token": "",
                    "kick_refresh_token": "",
                    "kick_username": tokens.username or "",
                    "kick_guest": True,
                }
            )
        return self.store.set(
            {
                "kick_access_token": tokens.access_token,
                "kick_refresh_token": tokens.refresh_token or "",
                "kick_username": tokens.username or "",
                "kick_guest": False,
                "kick_redirect_uri": redirect_uri,
            }
        )

    async def close(self) -> None:
        """Close all service connections."""
        await self.twitch.close()
        await self.kick.close()


def _stripped(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""
