"""Token models for provider sign-in.

Contains the token set handed to the credential store and the provider
response payloads parsed along the way.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict


@dataclass(frozen=True)
class TokenSet:
    """Result of a finished sign-in.

    A guest token set never carries an access token.
    """

    access_token: str = ""
    refresh_token: str | None = None
    username: str | None = None
    is_guest: bool = False

    def __post_init__(self) -> None:
        if self.is_guest and self.access_token:
            raise ValueError("Guest token sets cannot carry an access token")

    @classmethod
    def guest(cls, username: str) -> TokenSet:
        return cls(access_token="", refresh_token=None, username=username, is_guest=True)


@dataclass(frozen=True)
class TokenRequest:
    """Authorization code exchange request (RFC 6749 Section 4.1.3).

    Kick is a confidential client, so the secret travels alongside the
    PKCE verifier.
    """

    token_endpoint: str
    code: str
    redirect_uri: str
    client_id: str
    client_secret: str
    code_verifier: str
    grant_type: str = "authorization_code"

    def to_form_data(self) -> dict[str, str]:
        """Form fields for an application/x-www-form-urlencoded POST."""
        return {
            "code": self.code,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": self.redirect_uri,
            "grant_type": self.grant_type,
            "code_verifier": self.code_verifier,
        }


class TwitchValidation(BaseModel):
    """Response of the Twitch token introspection endpoint."""

    model_config = ConfigDict(extra="allow")

    login: str | None = None
    client_id: str | None = None
    user_id: str | None = None
    scopes: list[str] | None = None
    expires_in: int | None = None


class KickTokenResponse(BaseModel):
    """Response of the Kick token endpoint."""

    model_config = ConfigDict(extra="allow")

    access_token: str | None = None
    refresh_token: str | None = None
    token_type: str | None = None
    expires_in: int | None = None
    scope: str | None = None

    def is_success(self) -> bool:
        return bool(self.access_token)


def extract_kick_username(payload: Any) -> str:
    """Pick a display name out of a Kick user-profile payload.

    Probes ``username``, then ``name``, then ``slug`` on the first element of
    a ``data`` array, a ``data`` object, or the payload itself. Returns an
    empty string when nothing usable is present.
    """
    if not isinstance(payload, dict):
        return ""

    data = payload.get("data")
    if isinstance(data, list):
        user = data[0] if data else None
    elif isinstance(data, dict):
        user = data
    else:
        user = payload

    if not isinstance(user, dict):
        return ""

    for key in ("username", "name", "slug"):
        value = user.get(key)
        if isinstance(value, str) and value:
            return value

    return ""
