from dataclasses import replace
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from chatbridge.auth.models.errors import (
    AuthorizationError,
    MissingCodeError,
    ProfileFetchError,
    StateValidationError,
    TokenExchangeError,
)
from chatbridge.auth.models.tokens import TokenRequest, extract_kick_username
from chatbridge.auth.primitives.pkce import compute_code_challenge
from chatbridge.auth.services.kick import (
    KICK_TOKEN_ENDPOINT,
    KICK_USERS_ENDPOINT,
    KickPkceFlow,
)
from chatbridge.auth.services.popup import PopupSession
from chatbridge.surface.base import NavigationEvent, SurfaceEvent
from tests.fakes import FakeSurface, FakeSurfaceHost, make_response, state_of

REDIRECT_URI = "http://localhost:51730/kick/callback"


def redirect_with_query(query: str):
    """Surface loader that redirects with ``query`` and the request's state."""

    def on_load(surface: FakeSurface, url: str) -> None:
        target = f"{REDIRECT_URI}?{query}&state={state_of(url)}"
        surface.emit(SurfaceEvent.WILL_REDIRECT, NavigationEvent(target))

    return on_load


class TestKickGuestMode:
    def setup_method(self):
        self.surface = FakeSurface()
        self.flow = KickPkceFlow(PopupSession(FakeSurfaceHost(self.surface)))
        self.flow._http_client = AsyncMock()

    @pytest.mark.parametrize(
        "client_id,client_secret",
        [("", "secret"), ("cid", ""), ("  ", "  "), (None, None)],
    )
    async def test_missing_credentials_sign_in_as_guest(self, client_id, client_secret):
        tokens = await self.flow.sign_in(client_id, client_secret, REDIRECT_URI)

        assert tokens.is_guest is True
        assert tokens.username == "guest"
        assert tokens.access_token == ""
        assert self.surface.loaded_urls == []
        self.flow._http_client.post.assert_not_called()
        self.flow._http_client.get.assert_not_called()


class TestKickSignIn:
    def setup_method(self):
        self.surface = FakeSurface()
        self.flow = KickPkceFlow(PopupSession(FakeSurfaceHost(self.surface)))
        self.flow._http_client = AsyncMock()

    async def test_successful_sign_in(self):
        # Arrange
        self.surface.on_load = redirect_with_query("code=c0de")
        self.flow._http_client.post.return_value = make_response(
            200,
            {
                "access_token": "kick_access",
                "refresh_token": "kick_refresh",
                "token_type": "Bearer",
                "expires_in": 3600,
            },
        )
        self.flow._http_client.get.return_value = make_response(
            200, {"data": [{"user_id": 1, "name": "bob"}]}
        )

        # Act
        tokens = await self.flow.sign_in("cid", "csecret", REDIRECT_URI)

        # Assert
        assert tokens.access_token == "kick_access"
        assert tokens.refresh_token == "kick_refresh"
        assert tokens.username == "bob"
        assert tokens.is_guest is False

        auth_params = parse_qs(urlparse(self.surface.loaded_urls[0]).query)
        assert auth_params["response_type"] == ["code"]
        assert auth_params["scope"] == ["user:read channel:read chat:write"]
        assert auth_params["code_challenge_method"] == ["S256"]

        post_call = self.flow._http_client.post.call_args
        assert post_call.args[0] == KICK_TOKEN_ENDPOINT
        form = post_call.kwargs["data"]
        assert form["code"] == "c0de"
        assert form["client_id"] == "cid"
        assert form["client_secret"] == "csecret"
        assert form["redirect_uri"] == REDIRECT_URI
        assert form["grant_type"] == "authorization_code"
        assert compute_code_challenge(form["code_verifier"]) == (
            auth_params["code_challenge"][0]
        )
        assert post_call.kwargs["headers"]["Content-Type"] == (
            "application/x-www-form-urlencoded"
        )

        self.flow._http_client.get.assert_called_once_with(
            KICK_USERS_ENDPOINT,
            headers={
                "Authorization": "Bearer kick_access",
                "Accept": "application/json",
            },
        )

    async def test_missing_refresh_token_becomes_empty(self):
        self.surface.on_load = redirect_with_query("code=c0de")
        self.flow._http_client.post.return_value = make_response(
            200, {"access_token": "kick_access"}
        )
        self.flow._http_client.get.return_value = make_response(200, {"data": []})

        tokens = await self.flow.sign_in("cid", "csecret", REDIRECT_URI)

        assert tokens.refresh_token == ""
        assert tokens.username == ""

    async def test_state_mismatch_rejects_before_exchange(self):
        self.surface.on_load = lambda surface, url: surface.emit(
            SurfaceEvent.WILL_REDIRECT,
            NavigationEvent(f"{REDIRECT_URI}?code=c0de&state=forged"),
        )

        with pytest.raises(StateValidationError) as exc_info:
            await self.flow.sign_in("cid", "csecret", REDIRECT_URI)

        assert str(exc_info.value) == "Kick sign-in was rejected (state mismatch)."
        self.flow._http_client.post.assert_not_called()

    async def test_provider_error(self):
        self.surface.on_load = redirect_with_query("error=access_denied")

        with pytest.raises(AuthorizationError) as exc_info:
            await self.flow.sign_in("cid", "csecret", REDIRECT_URI)

        assert str(exc_info.value) == "Kick sign-in failed."
        self.flow._http_client.post.assert_not_called()

    async def test_missing_code(self):
        self.surface.on_load = redirect_with_query("foo=bar")

        with pytest.raises(MissingCodeError) as exc_info:
            await self.flow.sign_in("cid", "csecret", REDIRECT_URI)

        assert str(exc_info.value) == "Kick did not return an authorization code."

    async def test_request_without_pkce_never_opens_popup(self):
        build_request = self.flow.build_request
        self.flow.build_request = lambda client_id, redirect_uri: replace(
            build_request(client_id, redirect_uri), pkce=None
        )

        with pytest.raises(AuthorizationError):
            await self.flow.sign_in("cid", "csecret", REDIRECT_URI)

        assert self.surface.loaded_urls == []


class TestKickTokenExchange:
    def setup_method(self):
        self.flow = KickPkceFlow(MagicMock())
        self.flow._http_client = AsyncMock()
        self.token_request = TokenRequest(
            token_endpoint=KICK_TOKEN_ENDPOINT,
            code="c0de",
            redirect_uri=REDIRECT_URI,
            client_id="cid",
            client_secret="csecret",
            code_verifier="v" * 64,
        )

    async def test_error_status_uses_payload_message(self):
        self.flow._http_client.post.return_value = make_response(
            400, {"message": "invalid_grant"}
        )

        with pytest.raises(TokenExchangeError) as exc_info:
            await self.flow.exchange_code_for_token(self.token_request)

        assert str(exc_info.value) == "invalid_grant"

    async def test_error_status_with_html_body(self):
        self.flow._http_client.post.return_value = make_response(502, "<html>Bad gateway</html>")

        with pytest.raises(TokenExchangeError) as exc_info:
            await self.flow.exchange_code_for_token(self.token_request)

        assert str(exc_info.value) == "<html>Bad gateway</html>"

    async def test_success_without_access_token(self):
        self.flow._http_client.post.return_value = make_response(200, {"token_type": "Bearer"})

        with pytest.raises(TokenExchangeError) as exc_info:
            await self.flow.exchange_code_for_token(self.token_request)

        assert str(exc_info.value) == "Kick token exchange did not return an access token."

    async def test_transport_error(self):
        self.flow._http_client.post.side_effect = httpx.ConnectError("Connection failed")

        with pytest.raises(TokenExchangeError):
            await self.flow.exchange_code_for_token(self.token_request)

    async def test_profile_fetch_failure(self):
        self.flow._http_client.get.return_value = make_response(401)

        with pytest.raises(ProfileFetchError) as exc_info:
            await self.flow.fetch_username("kick_access")

        assert str(exc_info.value) == "Kick user profile request failed (401)."


class TestExtractKickUsername:
    @pytest.mark.parametrize(
        "payload,expected",
        [
            ({"data": [{"username": "u1", "name": "n1"}]}, "u1"),
            ({"data": [{"name": "n1", "slug": "s1"}]}, "n1"),
            ({"data": {"slug": "s1"}}, "s1"),
            ({"username": "top"}, "top"),
            ({"data": [{"name": ""}, {"name": "second"}]}, ""),
            ({"data": []}, ""),
            ({}, ""),
            ([], ""),
            ({"data": [{"username": 42}]}, ""),
        ],
    )
    def test_checks_known_fields_in_order(self, payload, expected):
        assert extract_kick_username(payload) == expected
