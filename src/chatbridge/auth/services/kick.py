"""Kick authorization code sign-in with PKCE.

Kick redirects back with a short-lived code in the query string. The code
is exchanged at the token endpoint together with the PKCE verifier, then
the profile endpoint is asked for a display name.
"""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from chatbridge.auth.models.errors import (
    AuthorizationError,
    MissingCodeError,
    ProfileFetchError,
    TokenExchangeError,
)
from chatbridge.auth.models.flow import AuthorizationResponse, OAuthRequest, Provider
from chatbridge.auth.models.tokens import (
    KickTokenResponse,
    TokenRequest,
    TokenSet,
    extract_kick_username,
)
from chatbridge.auth.primitives.pkce import PKCEManager
from chatbridge.auth.services.popup import PopupSession
from chatbridge.auth.services.security import generate_state, validate_state
from chatbridge.shared.http import (
    DEFAULT_TIMEOUT,
    is_success_status,
    payload_message,
    response_payload,
)

logger = logging.getLogger(__name__)

KICK_AUTHORIZE_ENDPOINT = "https://id.kick.com/oauth/authorize"
KICK_TOKEN_ENDPOINT = "https://id.kick.com/oauth/token"
KICK_USERS_ENDPOINT = "https://api.kick.com/public/v1/users"
KICK_SCOPES = ("user:read", "channel:read", "chat:write")
KICK_GUEST_USERNAME = "guest"


class KickPkceFlow:
    """Signs a user in to Kick with the authorization code grant and PKCE.

    Handles the complete flow:
    - PKCE and state generation per attempt
    - Redirect capture through a popup session
    - Error, state and code validation of the redirect
    - Code to token exchange (form encoded)
    - Username lookup from the user profile
    """

    def __init__(
        self,
        popup: PopupSession,
        timeout: float = DEFAULT_TIMEOUT,
        scopes: tuple[str, ...] = KICK_SCOPES,
    ):
        """Initialize the Kick flow.

        Args:
            popup: Popup session used to capture the redirect
            timeout: HTTP request timeout in seconds
            scopes: Scopes to request
        """
        self._popup = popup
        self.scopes = tuple(scopes)
        self._pkce_manager = PKCEManager()
        self._http_client = httpx.AsyncClient(timeout=timeout)

    def build_request(self, client_id: str, redirect_uri: str) -> OAuthRequest:
        return OAuthRequest(
            provider=Provider.KICK,
            authorization_endpoint=KICK_AUTHORIZE_ENDPOINT,
            client_id=client_id,
            redirect_uri=redirect_uri,
            response_type="code",
            scopes=self.scopes,
            state=generate_state(),
            pkce=self._pkce_manager.generate_parameters(),
        )

    async def sign_in(
        self, client_id: str | None, client_secret: str | None, redirect_uri: str
    ) -> TokenSet:
        """Run the full sign-in.

        Args:
            client_id: Kick application client id; blank means guest mode
            client_secret: Kick application secret; blank means guest mode
            redirect_uri: Registered redirect URI of the application

        Returns:
            TokenSet: Guest set, or access/refresh tokens plus username

        Raises:
            PopupError: If the popup closed or failed to open
            AuthorizationError: If Kick reported an error on the redirect
            StateValidationError: If the redirect state does not match
            MissingCodeError: If no authorization code came back
            TokenExchangeError: If the code could not be exchanged
            ProfileFetchError: If the user profile request failed
        """
        client_id = (client_id or "").strip()
        client_secret = (client_secret or "").strip()
        if not client_id or not client_secret:
            logger.info("Kick client credentials missing, signing in as guest")
            return TokenSet.guest(KICK_GUEST_USERNAME)

        request = self.build_request(client_id, redirect_uri)
        if request.pkce is None:
            raise AuthorizationError("Kick sign-in requires PKCE parameters.")
        logger.debug(f"Starting Kick sign-in for client {client_id}")

        callback_url = await self._popup.run(
            request.build_authorization_url(), redirect_uri
        )
        code = self.handle_callback(callback_url, request.state)

        tokens = await self.exchange_code_for_token(
            TokenRequest(
                token_endpoint=KICK_TOKEN_ENDPOINT,
                code=code,
                redirect_uri=redirect_uri,
                client_id=client_id,
                client_secret=client_secret,
                code_verifier=request.pkce.code_verifier,
            )
        )
        username = await self.fetch_username(tokens.access_token or "")

        logger.info(f"Signed in to Kick as {username or '<unnamed>'}")
        return TokenSet(
            access_token=tokens.access_token or "",
            refresh_token=tokens.refresh_token or "",
            username=username,
            is_guest=False,
        )

    def handle_callback(self, callback_url: str, expected_state: str) -> str:
        """Extract the authorization code from the redirect query."""
        response = AuthorizationResponse.from_query(callback_url)

        if response.is_error():
            logger.warning(
                f"Kick redirect carried error: {response.error} - "
                f"{response.error_description}"
            )
            raise AuthorizationError(
                response.error_description or "Kick sign-in failed.",
                error=response.error,
            )

        validate_state(expected_state, response.state, "Kick")

        if not response.code:
            raise MissingCodeError("Kick did not return an authorization code.")

        return response.code

    async def exchange_code_for_token(
        self, token_request: TokenRequest
    ) -> KickTokenResponse:
        """Exchange the authorization code for tokens.

        Raises:
            TokenExchangeError: On transport errors, a non-2xx answer, or a
                response without an access token
        """
        logger.debug(f"Exchanging authorization code at {token_request.token_endpoint}")

        try:
            response = await self._http_client.post(
                token_request.token_endpoint,
                data=token_request.to_form_data(),
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Accept": "application/json",
                },
            )
        except httpx.HTTPError as e:
            raise TokenExchangeError(f"HTTP error during Kick token exchange: {e}") from e

        payload = response_payload(response)
        if not is_success_status(response.status_code):
            logger.warning(f"Kick token exchange failed with {response.status_code}")
            raise TokenExchangeError(
                payload_message(
                    payload,
                    f"Kick token exchange request failed ({response.status_code}).",
                )
            )

        try:
            tokens = KickTokenResponse.model_validate(payload)
        except ValidationError as e:
            raise TokenExchangeError(f"Invalid Kick token response format: {e}") from e

        if not tokens.is_success():
            raise TokenExchangeError(
                "Kick token exchange did not return an access token."
            )
        return tokens

    async def fetch_username(self, access_token: str) -> str:
        """Fetch the signed-in user's name; blank when the profile has none.

        Raises:
            ProfileFetchError: On transport errors or a non-2xx answer
        """
        try:
            response = await self._http_client.get(
                KICK_USERS_ENDPOINT,
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Accept": "application/json",
                },
            )
        except httpx.HTTPError as e:
            raise ProfileFetchError(f"HTTP error during Kick user profile: {e}") from e

        payload = response_payload(response)
        if not is_success_status(response.status_code):
            raise ProfileFetchError(
                payload_message(
                    payload, f"Kick user profile request failed ({response.status_code})."
                )
            )
        return extract_kick_username(payload)

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()
