"""Strategies for reading Kick's public channel endpoint.

The endpoint sits behind an anti-bot layer that regularly answers plain
HTTP clients with 403. ``DirectHttpStrategy`` is tried first; when it is
blocked, ``BrowserEvasionStrategy`` loads the channel page in a hidden
surface and repeats the request from inside that page, where it carries
the page's cookies and passes the checks tied to page context.
"""

from __future__ import annotations

import asyncio
import logging
from urllib.parse import quote

import httpx

from chatbridge.channels.models import LookupResult
from chatbridge.shared.http import (
    DEFAULT_TIMEOUT,
    is_success_status,
    parse_unknown_json,
    payload_message,
    response_payload,
)
from chatbridge.surface.base import (
    PageResponse,
    Surface,
    SurfaceEvent,
    SurfaceHost,
    SurfaceOptions,
)

logger = logging.getLogger(__name__)

KICK_BASE_URL = "https://kick.com"
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
)
ACCEPT_HEADER = "application/json, text/plain, */*"
BLOCKED_STATUS = 403

BROWSER_LOOKUP_OPTIONS = SurfaceOptions(
    width=980, height=720, show=False, context_isolation=True, sandbox=True
)


def channel_api_path(slug: str) -> str:
    return f"/api/v2/channels/{quote(slug, safe='')}"


def channel_page_url(slug: str) -> str:
    return f"{KICK_BASE_URL}/{quote(slug, safe='')}"


class DirectHttpStrategy:
    """Single unauthenticated GET that looks like a browser request."""

    name = "direct"

    def __init__(
        self, timeout: float = DEFAULT_TIMEOUT, user_agent: str = BROWSER_USER_AGENT
    ):
        """Initialize the direct strategy.

        Args:
            timeout: HTTP request timeout in seconds
            user_agent: User-Agent header to present
        """
        self.user_agent = user_agent
        self._http_client = httpx.AsyncClient(timeout=timeout)

    async def lookup(self, slug: str) -> LookupResult:
        url = f"{KICK_BASE_URL}{channel_api_path(slug)}"
        logger.debug(f"Direct Kick channel lookup: {url}")

        try:
            response = await self._http_client.get(
                url,
                headers={
                    "Accept": ACCEPT_HEADER,
                    "User-Agent": self.user_agent,
                    "Referer": channel_page_url(slug),
                },
            )
        except httpx.HTTPError as e:
            logger.warning(f"Direct Kick channel lookup failed: {e}")
            return LookupResult(
                ok=False, status=0, payload={}, message=f"Kick lookup failed: {e}"
            )

        payload = response_payload(response)
        return LookupResult(
            ok=is_success_status(response.status_code),
            status=response.status_code,
            payload=payload,
            message=payload_message(
                payload, f"Kick lookup failed ({response.status_code})."
            ),
        )

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()


class BrowserEvasionStrategy:
    """Repeats the lookup from inside a hidden Kick channel page.

    After the page finishes loading, issues up to ``max_attempts``
    same-origin fetches ``retry_delay`` seconds apart. Stops early on a 2xx
    answer, on any status other than 403, or on a fetch that threw. The
    whole lookup is bounded by ``timeout`` seconds; that timer, the user
    closing the surface, and the fetch loop race, and the first to finish
    decides the result. The surface is closed exactly once.
    """

    name = "browser"

    def __init__(
        self,
        host: SurfaceHost,
        max_attempts: int = 8,
        retry_delay: float = 1.2,
        timeout: float = 25.0,
        options: SurfaceOptions = BROWSER_LOOKUP_OPTIONS,
    ):
        self._host = host
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._options = options

    async def lookup(self, slug: str) -> LookupResult:
        try:
            surface = await self._host.open_surface(self._options)
        except Exception as e:
            return LookupResult(
                ok=False,
                status=0,
                payload={},
                message=f"Failed to open Kick channel page: {e}",
                attempts=0,
            )

        loop = asyncio.get_running_loop()
        result: asyncio.Future[LookupResult] = loop.create_future()
        settled = False
        fetch_started = False
        tasks: list[asyncio.Task] = []

        def finalize(outcome: LookupResult) -> None:
            nonlocal settled
            if settled:
                return
            settled = True
            timer.cancel()
            surface.remove_all_listeners()
            result.set_result(outcome)

        timer = loop.call_later(
            self.timeout,
            finalize,
            LookupResult(ok=False, status=0, message="Kick browser lookup timed out."),
        )

        async def load_page() -> None:
            try:
                await surface.load(channel_page_url(slug))
            except Exception as e:
                finalize(
                    LookupResult(
                        ok=False,
                        status=0,
                        message=f"Failed to open Kick channel page: {e}",
                    )
                )

        async def run_fetch_loop() -> None:
            try:
                outcome = await self._fetch_with_retries(surface, slug)
            except Exception as e:
                outcome = LookupResult(ok=False, status=0, message=str(e))
            finalize(outcome)

        def on_finish_load() -> None:
            nonlocal fetch_started
            # Later loads (e.g. a client-side reload) must not start a second loop
            if settled or fetch_started:
                return
            fetch_started = True
            tasks.append(asyncio.ensure_future(run_fetch_loop()))

        surface.add_listener(
            SurfaceEvent.CLOSED,
            lambda: finalize(
                LookupResult(
                    ok=False,
                    status=0,
                    message="Kick browser lookup window closed before completion.",
                )
            ),
        )
        surface.add_listener(SurfaceEvent.DID_FINISH_LOAD, on_finish_load)

        tasks.append(asyncio.ensure_future(load_page()))
        try:
            return await result
        finally:
            timer.cancel()
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            if not settled:
                surface.remove_all_listeners()
            await surface.close()

    async def _fetch_with_retries(self, surface: Surface, slug: str) -> LookupResult:
        path = channel_api_path(slug)
        for attempt in range(1, self.max_attempts + 1):
            response = await surface.fetch_in_page(path, headers={"Accept": ACCEPT_HEADER})
            if response.ok or response.status != BLOCKED_STATUS:
                return self._to_result(response, attempt)

            logger.debug(f"Kick browser lookup attempt {attempt} blocked")
            if attempt < self.max_attempts:
                await asyncio.sleep(self.retry_delay)

        logger.warning(f"Kick browser lookup still blocked after {self.max_attempts} attempts")
        return self._to_result(
            PageResponse(
                ok=False, status=BLOCKED_STATUS, text="Request blocked by security policy."
            ),
            self.max_attempts,
        )

    @staticmethod
    def _to_result(response: PageResponse, attempts: int) -> LookupResult:
        payload = parse_unknown_json(response.text) if response.text else {}
        return LookupResult(
            ok=response.ok,
            status=response.status,
            payload=payload,
            message=payload_message(
                payload, f"Kick browser lookup failed ({response.status})."
            ),
            attempts=attempts,
        )
