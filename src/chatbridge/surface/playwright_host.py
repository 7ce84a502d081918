"""Playwright-backed surface host.

Each surface gets its own browser context, so cookies and storage never
leak between sign-in attempts or channel lookups. Uses system Chrome if
available and falls back to Playwright's bundled Chromium.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import urljoin

from chatbridge.surface.base import (
    Listener,
    ListenerRegistry,
    NavigationEvent,
    PageResponse,
    SurfaceEvent,
    SurfaceOptions,
)

if TYPE_CHECKING:
    from playwright.async_api import (
        Browser,
        BrowserContext,
        Page,
        Playwright,
        Request,
        Route,
    )

logger = logging.getLogger(__name__)

_FETCH_SCRIPT = """
async ({ path, headers }) => {
  try {
    const response = await fetch(path, { credentials: "include", headers });
    const text = await response.text();
    return { ok: response.ok, status: response.status, text };
  } catch (error) {
    return { ok: false, status: 0, text: String(error) };
  }
}
"""


class PlaywrightSurface:
    """A single page in its own browser context."""

    def __init__(self, context: BrowserContext, page: Page) -> None:
        self._context = context
        self._page = page
        self._listeners = ListenerRegistry()
        self._closed = False
        self._loading_url: str | None = None

    async def attach(self) -> None:
        """Wire Playwright callbacks to surface events."""
        await self._page.route("**/*", self._on_route)
        self._page.on("request", self._on_request)
        self._page.on("requestfailed", self._on_request_failed)
        self._page.on("load", self._on_load)
        self._page.on("close", self._on_close)

    @property
    def is_closed(self) -> bool:
        return self._closed

    def add_listener(self, event: SurfaceEvent, listener: Listener) -> None:
        self._listeners.add(event, listener)

    def remove_all_listeners(self, event: SurfaceEvent | None = None) -> None:
        self._listeners.clear(event)

    async def load(self, url: str) -> None:
        self._loading_url = url
        try:
            await self._page.goto(url)
        finally:
            self._loading_url = None

    async def fetch_in_page(
        self, path: str, headers: dict[str, str] | None = None
    ) -> PageResponse:
        result: dict[str, Any] = await self._page.evaluate(
            _FETCH_SCRIPT, {"path": path, "headers": headers or {}}
        )
        return PageResponse(
            ok=bool(result.get("ok")),
            status=int(result.get("status") or 0),
            text=str(result.get("text") or ""),
        )

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._context.close()
        except Exception as e:
            logger.debug(f"Browser context already gone: {e}")

    def _is_main_navigation(self, request: Request) -> bool:
        try:
            return (
                request.is_navigation_request()
                and request.frame == self._page.main_frame
            )
        except Exception:
            # Requests from service workers have no frame
            return False

    async def _navigation_url(self, request: Request) -> str:
        """URL of a navigation request, fragment included.

        The network layer reports request URLs without their fragment, which
        is where implicit-grant providers put the token. For a redirect hop
        the target is rebuilt from the previous response's Location header.
        """
        previous = request.redirected_from
        if previous is None:
            return request.url

        try:
            response = await previous.response()
            location = await response.header_value("location") if response else None
        except Exception as e:
            logger.debug(f"Redirect response unavailable for {request.url}: {e}")
            return request.url
        if not location:
            return request.url

        url = urljoin(previous.url, location)
        # A Location without a fragment inherits the one of the URL it replaces
        if "#" not in url and "#" in previous.url:
            url += previous.url[previous.url.index("#") :]
        return url

    async def _on_route(self, route: Route, request: Request) -> None:
        if self._is_main_navigation(request) and request.url != self._loading_url:
            event = NavigationEvent(url=await self._navigation_url(request))
            self._listeners.emit(SurfaceEvent.WILL_NAVIGATE, event)
            if event.default_prevented:
                # A 204 ends the navigation without a load error
                await route.fulfill(status=204, body="")
                return
        await route.continue_()

    async def _on_request(self, request: Request) -> None:
        # Redirect hops bypass routing, so they can only be observed here
        if request.redirected_from is None or not self._is_main_navigation(request):
            return
        url = await self._navigation_url(request)
        self._listeners.emit(SurfaceEvent.WILL_REDIRECT, NavigationEvent(url=url))

    async def _on_request_failed(self, request: Request) -> None:
        if not self._is_main_navigation(request):
            return
        url = await self._navigation_url(request)
        self._listeners.emit(SurfaceEvent.DID_FAIL_LOAD, url, request.failure or "")

    def _on_load(self, _page: Page) -> None:
        self._listeners.emit(SurfaceEvent.DID_FINISH_LOAD)

    def _on_close(self, _page: Page) -> None:
        self._closed = True
        self._listeners.emit(SurfaceEvent.CLOSED)


class PlaywrightSurfaceHost:
    """Opens surfaces in a Playwright-managed Chromium.

    Usage:
        async with PlaywrightSurfaceHost() as host:
            surface = await host.open_surface(SurfaceOptions())
    """

    def __init__(self, channel: str | None = "chrome") -> None:
        """Initialize the host.

        Args:
            channel: Browser channel to try first (system Chrome by default)
        """
        self.channel = channel
        self._playwright: Playwright | None = None
        self._browsers: dict[tuple[bool, bool], Browser] = {}

    async def __aenter__(self) -> PlaywrightSurfaceHost:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def start(self) -> None:
        if self._playwright is not None:
            return
        from playwright.async_api import async_playwright

        self._playwright = await async_playwright().start()

    async def open_surface(self, options: SurfaceOptions) -> PlaywrightSurface:
        if options.modal:
            logger.debug("Playwright surfaces have no parent window; opening unparented")

        browser = await self._get_browser(
            headless=not options.show, sandbox=options.sandbox
        )
        context = await browser.new_context(
            viewport={"width": options.width, "height": options.height},
            user_agent=options.user_agent,
        )
        page = await context.new_page()
        surface = PlaywrightSurface(context, page)
        await surface.attach()
        return surface

    async def _get_browser(self, headless: bool, sandbox: bool) -> Browser:
        key = (headless, sandbox)
        if key in self._browsers:
            return self._browsers[key]

        await self.start()
        if self._playwright is None:
            raise RuntimeError("Playwright did not start")

        try:
            browser = await self._playwright.chromium.launch(
                headless=headless, chromium_sandbox=sandbox, channel=self.channel
            )
            logger.info(f"Using system browser channel {self.channel}")
        except Exception as e:
            logger.debug(f"Browser channel {self.channel} not available: {e}")
            browser = await self._playwright.chromium.launch(
                headless=headless, chromium_sandbox=sandbox
            )
            logger.info("Using Playwright Chromium")

        self._browsers[key] = browser
        return browser

    async def close(self) -> None:
        """Close all browsers and stop Playwright."""
        for browser in self._browsers.values():
            await browser.close()
        self._browsers.clear()
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
