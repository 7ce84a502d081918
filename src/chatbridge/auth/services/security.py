"""Security utilities for OAuth sign-in flows.

Provides cryptographically secure nonce generation and state validation.
"""

from __future__ import annotations

import secrets

from chatbridge.auth.models.errors import StateValidationError

STATE_NONCE_BYTES = 24


def random_token(num_bytes: int = 32) -> str:
    """Return ``num_bytes`` of random data, base64url-encoded without padding."""
    return secrets.token_urlsafe(num_bytes)


def generate_state() -> str:
    """Generate a state nonce for CSRF protection (24 bytes of entropy)."""
    return random_token(STATE_NONCE_BYTES)


def validate_state(expected: str, actual: str | None, provider_label: str) -> None:
    """Validate that the redirect's state matches the request's nonce.

    Args:
        expected: State nonce sent with the authorization request
        actual: State parameter from the redirect, if any
        provider_label: Provider name used in the error message

    Raises:
        StateValidationError: If the state is missing or does not match
    """
    if actual is None or not secrets.compare_digest(
        expected.encode("utf-8"), actual.encode("utf-8")
    ):
        raise StateValidationError(
            f"{provider_label} sign-in was rejected (state mismatch)."
        )
