"""Popup session that captures an OAuth redirect.

Opens an isolated surface at the provider's authorization URL and waits
until it is about to land on the configured redirect URI. The redirect is
never actually loaded: the navigation is cancelled and its URL returned.
"""

from __future__ import annotations

import asyncio
import logging

from chatbridge.auth.models.errors import PopupClosedError, PopupLaunchError
from chatbridge.auth.models.flow import Closed, LoadFailed, MatchedUrl, PopupOutcome
from chatbridge.auth.primitives.redirect import matches_redirect_uri
from chatbridge.surface.base import (
    NavigationEvent,
    Surface,
    SurfaceEvent,
    SurfaceHost,
    SurfaceOptions,
)

logger = logging.getLogger(__name__)

POPUP_OPTIONS = SurfaceOptions(
    width=520, height=760, show=True, modal=True, context_isolation=True
)


class PopupSession:
    """Runs one sign-in popup to a single outcome.

    Resolution happens exactly once. Whichever signal arrives first wins:
    a navigation or redirect toward the redirect URI, a load failure on the
    redirect URI (some providers end the flow that way), or the user closing
    the window. All listeners are detached before the outcome is recorded
    and the surface is closed before ``run`` returns.
    """

    def __init__(self, host: SurfaceHost, options: SurfaceOptions = POPUP_OPTIONS):
        self._host = host
        self._options = options

    async def run(self, start_url: str, redirect_uri: str) -> str:
        """Open the popup and return the matched redirect URL.

        Args:
            start_url: Authorization URL to open
            redirect_uri: Callback address to watch for

        Returns:
            The full redirect URL, including query and fragment

        Raises:
            PopupClosedError: If the user closed the window first
            PopupLaunchError: If the window or its start page failed to open
        """
        try:
            surface = await self._host.open_surface(self._options)
        except Exception as e:
            raise PopupLaunchError(f"Failed to open auth window: {e}") from e

        outcome = await self._await_outcome(surface, start_url, redirect_uri)

        if isinstance(outcome, MatchedUrl):
            logger.debug("Sign-in popup reached the redirect URI")
            return outcome.url
        if isinstance(outcome, Closed):
            logger.info("Sign-in popup closed before completion")
            raise PopupClosedError()
        raise PopupLaunchError(f"Failed to open auth window: {outcome.reason}")

    async def _await_outcome(
        self, surface: Surface, start_url: str, redirect_uri: str
    ) -> PopupOutcome:
        loop = asyncio.get_running_loop()
        result: asyncio.Future[PopupOutcome] = loop.create_future()
        settled = False

        def finish(outcome: PopupOutcome) -> None:
            nonlocal settled
            if settled:
                return
            settled = True
            surface.remove_all_listeners()
            result.set_result(outcome)

        def on_navigate(event: NavigationEvent) -> None:
            if not matches_redirect_uri(event.url, redirect_uri):
                return
            event.prevent_default()
            finish(MatchedUrl(event.url))

        def on_fail_load(url: str, reason: str = "") -> None:
            if matches_redirect_uri(url, redirect_uri):
                finish(MatchedUrl(url))

        surface.add_listener(SurfaceEvent.WILL_REDIRECT, on_navigate)
        surface.add_listener(SurfaceEvent.WILL_NAVIGATE, on_navigate)
        surface.add_listener(SurfaceEvent.DID_FAIL_LOAD, on_fail_load)
        surface.add_listener(SurfaceEvent.CLOSED, lambda: finish(Closed()))

        try:
            try:
                await surface.load(start_url)
            except Exception as e:
                # Ignored when a redirect match already aborted the load
                finish(LoadFailed(url=start_url, reason=str(e)))
            return await result
        finally:
            if not settled:
                surface.remove_all_listeners()
            await surface.close()
