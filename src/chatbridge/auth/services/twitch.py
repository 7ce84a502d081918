"""Twitch implicit-grant sign-in.

Twitch returns the access token directly in the redirect fragment, so the
flow is: open the popup, read the fragment, check the state nonce, and ask
Twitch's validation endpoint who the token belongs to.
"""

from __future__ import annotations

import logging
import random

import httpx
from pydantic import ValidationError

from chatbridge.auth.models.errors import (
    AuthorizationError,
    MissingTokenError,
    TokenValidationError,
)
from chatbridge.auth.models.flow import AuthorizationResponse, OAuthRequest, Provider
from chatbridge.auth.models.tokens import TokenSet, TwitchValidation
from chatbridge.auth.services.popup import PopupSession
from chatbridge.auth.services.security import generate_state, validate_state
from chatbridge.shared.http import (
    DEFAULT_TIMEOUT,
    is_success_status,
    payload_message,
    response_payload,
)

logger = logging.getLogger(__name__)

TWITCH_AUTHORIZE_ENDPOINT = "https://id.twitch.tv/oauth2/authorize"
TWITCH_VALIDATE_ENDPOINT = "https://id.twitch.tv/oauth2/validate"
TWITCH_SCOPES = ("chat:read", "chat:edit")
TWITCH_GUEST_PREFIX = "justinfan"


def generate_guest_username() -> str:
    """Anonymous Twitch chat login: ``justinfan`` plus five digits."""
    return f"{TWITCH_GUEST_PREFIX}{random.randint(10000, 99999)}"


class TwitchImplicitFlow:
    """Signs a user in to Twitch with the implicit grant.

    Without a client id the flow falls back to guest mode, which can read
    chat anonymously and never touches the network.
    """

    def __init__(
        self,
        popup: PopupSession,
        timeout: float = DEFAULT_TIMEOUT,
        scopes: tuple[str, ...] = TWITCH_SCOPES,
    ):
        """Initialize the Twitch flow.

        Args:
            popup: Popup session used to capture the redirect
            timeout: HTTP request timeout in seconds
            scopes: Scopes to request
        """
        self._popup = popup
        self.scopes = tuple(scopes)
        self._http_client = httpx.AsyncClient(timeout=timeout)

    def build_request(self, client_id: str, redirect_uri: str) -> OAuthRequest:
        return OAuthRequest(
            provider=Provider.TWITCH,
            authorization_endpoint=TWITCH_AUTHORIZE_ENDPOINT,
            client_id=client_id,
            redirect_uri=redirect_uri,
            response_type="token",
            scopes=self.scopes,
            state=generate_state(),
            extra_params=(("force_verify", "true"),),
        )

    async def sign_in(self, client_id: str | None, redirect_uri: str) -> TokenSet:
        """Run the full sign-in.

        Args:
            client_id: Twitch application client id; blank means guest mode
            redirect_uri: Registered redirect URI of the application

        Returns:
            TokenSet: Guest set, or the validated access token and login

        Raises:
            PopupError: If the popup closed or failed to open
            AuthorizationError: If Twitch reported an error on the redirect
            StateValidationError: If the redirect state does not match
            MissingTokenError: If no access token came back
            TokenValidationError: If Twitch did not confirm the token
        """
        client_id = (client_id or "").strip()
        if not client_id:
            username = generate_guest_username()
            logger.info(f"No Twitch client id configured, signing in as guest {username}")
            return TokenSet.guest(username)

        request = self.build_request(client_id, redirect_uri)
        logger.debug(f"Starting Twitch sign-in for client {client_id}")

        callback_url = await self._popup.run(
            request.build_authorization_url(), redirect_uri
        )
        access_token = self.handle_callback(callback_url, request.state)
        username = await self.validate_token(access_token)

        logger.info(f"Signed in to Twitch as {username}")
        return TokenSet(access_token=access_token, username=username, is_guest=False)

    def handle_callback(self, callback_url: str, expected_state: str) -> str:
        """Extract the access token from the redirect fragment.

        The state check runs before the token is even looked at, so a
        redirect with a forged state is rejected whatever else it carries.
        """
        response = AuthorizationResponse.from_fragment(callback_url)

        if response.is_error():
            logger.warning(
                f"Twitch redirect carried error: {response.error} - "
                f"{response.error_description}"
            )
            raise AuthorizationError(
                response.error_description or "Twitch sign-in failed.",
                error=response.error,
            )

        validate_state(expected_state, response.state, "Twitch")

        if not response.access_token:
            raise MissingTokenError("Twitch did not return an access token.")

        return response.access_token

    async def validate_token(self, access_token: str) -> str:
        """Ask Twitch which login the token belongs to.

        Raises:
            TokenValidationError: On a non-2xx answer or a missing login
        """
        try:
            response = await self._http_client.get(
                TWITCH_VALIDATE_ENDPOINT,
                headers={"Authorization": f"OAuth {access_token}"},
            )
        except httpx.HTTPError as e:
            raise TokenValidationError(
                f"HTTP error during Twitch token validation: {e}"
            ) from e

        payload = response_payload(response)
        if not is_success_status(response.status_code):
            logger.warning(f"Twitch token validation failed with {response.status_code}")
            raise TokenValidationError(
                payload_message(
                    payload,
                    f"Twitch token validation request failed ({response.status_code}).",
                )
            )

        try:
            validation = TwitchValidation.model_validate(payload)
        except ValidationError as e:
            raise TokenValidationError(
                f"Invalid Twitch token validation response: {e}"
            ) from e

        if not validation.login:
            raise TokenValidationError(
                "Twitch token validation did not include a username."
            )
        return validation.login

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()
