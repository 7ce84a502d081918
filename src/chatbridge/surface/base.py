"""Interactive browsing surface abstractions.

A surface is a short-lived, isolated, script-capable browser page. Sign-in
popups and the browser-based channel lookup both run inside one. Concrete
hosts (see ``playwright_host``) translate their engine's callbacks into the
events defined here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Protocol


class SurfaceEvent(str, Enum):
    """Signals a surface can emit.

    Listener signatures:
    - WILL_NAVIGATE, WILL_REDIRECT: ``(event: NavigationEvent) -> None``
    - DID_FAIL_LOAD: ``(url: str, reason: str) -> None``
    - DID_FINISH_LOAD: ``() -> None``
    - CLOSED: ``() -> None``
    """

    WILL_NAVIGATE = "will-navigate"
    WILL_REDIRECT = "will-redirect"
    DID_FAIL_LOAD = "did-fail-load"
    DID_FINISH_LOAD = "did-finish-load"
    CLOSED = "closed"


@dataclass
class NavigationEvent:
    """A pending navigation that listeners may cancel."""

    url: str
    default_prevented: bool = False

    def prevent_default(self) -> None:
        self.default_prevented = True


@dataclass(frozen=True)
class SurfaceOptions:
    """How a surface should be opened.

    ``modal`` asks the host to place the surface over the primary
    application window when there is one. ``context_isolation`` keeps page
    scripts away from host privileges; ``sandbox`` additionally restricts
    the renderer.
    """

    width: int = 520
    height: int = 760
    show: bool = True
    modal: bool = False
    context_isolation: bool = True
    sandbox: bool = False
    user_agent: str | None = None


@dataclass(frozen=True)
class PageResponse:
    """Result of a fetch issued from inside the page's script context."""

    ok: bool
    status: int
    text: str = ""


Listener = Callable[..., Any]


class Surface(Protocol):
    """An open browsing surface."""

    @property
    def is_closed(self) -> bool: ...

    def add_listener(self, event: SurfaceEvent, listener: Listener) -> None: ...

    def remove_all_listeners(self, event: SurfaceEvent | None = None) -> None:
        """Detach listeners for ``event``, or for every event when None."""
        ...

    async def load(self, url: str) -> None:
        """Navigate to ``url``; raises when the page cannot be loaded."""
        ...

    async def fetch_in_page(
        self, path: str, headers: dict[str, str] | None = None
    ) -> PageResponse:
        """Run a same-origin fetch from the page, carrying its cookies."""
        ...

    async def close(self) -> None:
        """Tear the surface down. Safe to call more than once."""
        ...


class SurfaceHost(Protocol):
    """Factory for surfaces."""

    async def open_surface(self, options: SurfaceOptions) -> Surface: ...


@dataclass
class ListenerRegistry:
    """Per-event listener lists shared by surface implementations."""

    _listeners: dict[SurfaceEvent, list[Listener]] = field(default_factory=dict)

    def add(self, event: SurfaceEvent, listener: Listener) -> None:
        self._listeners.setdefault(event, []).append(listener)

    def clear(self, event: SurfaceEvent | None = None) -> None:
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)

    def count(self, event: SurfaceEvent | None = None) -> int:
        if event is None:
            return sum(len(items) for items in self._listeners.values())
        return len(self._listeners.get(event, []))

    def emit(self, event: SurfaceEvent, *args: Any) -> None:
        # A listener may detach the others while we iterate
        for listener in list(self._listeners.get(event, [])):
            if listener in self._listeners.get(event, []):
                listener(*args)
