"""Authorization flow models.

Contains the per-attempt authorization request, the parsed provider
redirect, and the outcome of a popup session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import parse_qs, urlencode, urlparse


class Provider(str, Enum):
    TWITCH = "twitch"
    KICK = "kick"


@dataclass(frozen=True)
class PKCEParameters:
    """PKCE (Proof Key for Code Exchange) parameters (RFC 7636).

    Generated once per authorization request and never reused.
    """

    code_verifier: str = field()
    code_challenge: str = field()
    code_challenge_method: str = field(default="S256")

    def __post_init__(self) -> None:
        if not (43 <= len(self.code_verifier) <= 128):
            raise ValueError("code_verifier must be 43-128 characters")
        if not (43 <= len(self.code_challenge) <= 128):
            raise ValueError("code_challenge must be 43-128 characters")
        if self.code_challenge_method != "S256":
            raise ValueError("Only S256 code challenge method is supported")


@dataclass(frozen=True)
class OAuthRequest:
    """A single sign-in attempt against one provider.

    Created per attempt and discarded once the attempt resolves. The state
    nonce and PKCE verifier it carries are never persisted.
    """

    provider: Provider
    authorization_endpoint: str
    client_id: str
    redirect_uri: str
    response_type: str
    scopes: tuple[str, ...]
    state: str
    pkce: PKCEParameters | None = None
    extra_params: tuple[tuple[str, str], ...] = ()

    def build_authorization_url(self) -> str:
        """Build the complete authorization URL."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": self.response_type,
            "scope": " ".join(self.scopes),
            "state": self.state,
        }

        if self.pkce is not None:
            params["code_challenge"] = self.pkce.code_challenge
            params["code_challenge_method"] = self.pkce.code_challenge_method

        params.update(dict(self.extra_params))

        return f"{self.authorization_endpoint}?{urlencode(params)}"


@dataclass(frozen=True)
class AuthorizationResponse:
    """Parameters carried back on the provider redirect."""

    code: str | None = None
    access_token: str | None = None
    state: str | None = None
    error: str | None = None
    error_description: str | None = None

    def is_error(self) -> bool:
        return bool(self.error)

    @classmethod
    def from_params(cls, raw: str) -> AuthorizationResponse:
        """Build a response from an ``a=1&b=2`` parameter string."""
        params = parse_qs(raw, keep_blank_values=True)

        def get_single_param(key: str) -> str | None:
            values = params.get(key, [])
            return values[0] if values else None

        return cls(
            code=get_single_param("code"),
            access_token=get_single_param("access_token"),
            state=get_single_param("state"),
            error=get_single_param("error"),
            error_description=get_single_param("error_description"),
        )

    @classmethod
    def from_fragment(cls, callback_url: str) -> AuthorizationResponse:
        """Parse an implicit-grant redirect, whose parameters live after ``#``."""
        _, sep, fragment = callback_url.partition("#")
        return cls.from_params(fragment if sep else "")

    @classmethod
    def from_query(cls, callback_url: str) -> AuthorizationResponse:
        """Parse an authorization-code redirect, whose parameters live in the query."""
        return cls.from_params(urlparse(callback_url).query)


@dataclass(frozen=True)
class MatchedUrl:
    url: str


@dataclass(frozen=True)
class Closed:
    pass


@dataclass(frozen=True)
class LoadFailed:
    url: str
    reason: str = ""


PopupOutcome = MatchedUrl | Closed | LoadFailed
