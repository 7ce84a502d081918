"""Redirect URI matching.

Decides whether a URL the sign-in surface is about to visit is the
configured OAuth callback. Only origin and path are compared; query and
fragment are ignored because providers put the code or token there.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlsplit

_DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443, "ftp": 21}


def normalize_path(path: str) -> str:
    """Strip trailing slashes, treating an empty result as the root path."""
    normalized = path.rstrip("/")
    return normalized or "/"


@dataclass(frozen=True)
class RedirectUri:
    """Normalized form of a callback address: exact origin plus path."""

    origin: str
    path: str

    @classmethod
    def parse(cls, url: str) -> RedirectUri:
        """Parse ``url`` into its origin and normalized path.

        Raises:
            ValueError: If the URL has no scheme or host, or an invalid port
        """
        if not isinstance(url, str):
            raise ValueError(f"URL must be a string, got {type(url).__name__}")

        parts = urlsplit(url.strip())
        scheme = parts.scheme.lower()
        host = parts.hostname
        if not scheme or not host:
            raise ValueError(f"URL is missing a scheme or host: {url!r}")

        # Accessing .port validates it and raises ValueError when out of range
        port = parts.port
        if ":" in host:
            host = f"[{host}]"

        if port is None or port == _DEFAULT_PORTS.get(scheme):
            origin = f"{scheme}://{host}"
        else:
            origin = f"{scheme}://{host}:{port}"

        return cls(origin=origin, path=normalize_path(parts.path))

    def matches(self, candidate: str) -> bool:
        try:
            other = RedirectUri.parse(candidate)
        except ValueError:
            return False
        return other.origin == self.origin and other.path == self.path


def matches_redirect_uri(candidate: str, redirect_uri: str) -> bool:
    """Check whether ``candidate`` lands on ``redirect_uri``.

    Fails closed: returns False when either URL cannot be parsed.
    """
    try:
        expected = RedirectUri.parse(redirect_uri)
    except ValueError:
        return False
    return expected.matches(candidate)
