"""Exception hierarchy for streaming-platform sign-in errors.

Provides specific exception types for the different ways a sign-in attempt
can fail. Every error is terminal to the attempt that raised it.
"""

from __future__ import annotations

from chatbridge.shared.errors import ChatBridgeError


class OAuth2Error(ChatBridgeError):
    """Base exception for all OAuth related errors."""

    pass


class PopupError(OAuth2Error):
    """Raised when the interactive sign-in surface cannot produce a redirect."""

    pass


class PopupClosedError(PopupError):
    """Raised when the user closes the sign-in window before it completes."""

    def __init__(
        self, message: str = "Sign-in window closed before authentication completed."
    ):
        super().__init__(message)


class PopupLaunchError(PopupError):
    """Raised when the sign-in window cannot be opened or its start page
    fails to load."""

    pass


class AuthorizationError(OAuth2Error):
    """Raised when the provider reports an error on the redirect.

    Typically the user denied consent. ``description`` holds the
    provider-supplied text when there was one.
    """

    def __init__(self, message: str, error: str | None = None):
        super().__init__(message)
        self.error = error
        self.description = message


class AuthorizationResponseError(OAuth2Error):
    """Raised when the redirect is malformed or invalid."""

    pass


class StateValidationError(AuthorizationResponseError):
    """Raised when the redirect's state parameter is missing or does not
    match the nonce sent with the request."""

    pass


class MissingTokenError(AuthorizationResponseError):
    """Raised when an implicit-grant redirect carries no access token."""

    pass


class MissingCodeError(AuthorizationResponseError):
    """Raised when an authorization-code redirect carries no code."""

    pass


class TokenError(OAuth2Error):
    """Raised when token operations fail."""

    pass


class TokenValidationError(TokenError):
    """Raised when the provider rejects an access token or omits the login."""

    pass


class TokenExchangeError(TokenError):
    """Raised when authorization code to token exchange fails."""

    pass


class ProfileFetchError(TokenError):
    """Raised when the authenticated user profile cannot be fetched."""

    pass


class SignInInProgressError(OAuth2Error):
    """Raised when a sign-in is started while another one for the same
    provider is still waiting on its popup."""

    pass
