import pytest

from chatbridge.auth.primitives.redirect import (
    RedirectUri,
    matches_redirect_uri,
    normalize_path,
)


class TestMatchesRedirectUri:
    def test_trailing_slash_is_ignored(self) -> None:
        assert matches_redirect_uri("https://h/a/", "https://h/a")
        assert matches_redirect_uri("https://h/a", "https://h/a///")

    def test_query_and_fragment_are_ignored(self) -> None:
        assert matches_redirect_uri("https://h/a?x=1#y", "https://h/a")
        assert matches_redirect_uri(
            "http://localhost:51730/twitch/callback#access_token=abc&state=s",
            "http://localhost:51730/twitch/callback",
        )

    def test_different_origins_never_match(self) -> None:
        assert not matches_redirect_uri("https://evil/a", "https://h/a")
        assert not matches_redirect_uri("http://h/a", "https://h/a")
        assert not matches_redirect_uri("https://h:8443/a", "https://h/a")

    def test_default_port_is_part_of_the_origin(self) -> None:
        assert matches_redirect_uri("https://h:443/a", "https://h/a")
        assert matches_redirect_uri("HTTPS://H/a", "https://h/a")

    def test_path_comparison_is_case_sensitive(self) -> None:
        assert not matches_redirect_uri("https://h/A", "https://h/a")
        assert not matches_redirect_uri("https://h/a/b", "https://h/a")

    @pytest.mark.parametrize(
        "candidate",
        ["not a url", "", "https://", "http://[::1", "https://h:99999/a", None],
    )
    def test_malformed_candidate_returns_false(self, candidate) -> None:
        assert matches_redirect_uri(candidate, "https://h/a") is False

    def test_malformed_redirect_uri_returns_false(self) -> None:
        assert matches_redirect_uri("https://h/a", "::nonsense::") is False


class TestRedirectUri:
    def test_parse_normalizes_root_path(self) -> None:
        # Act
        uri = RedirectUri.parse("http://localhost:51730")

        # Assert
        assert uri.origin == "http://localhost:51730"
        assert uri.path == "/"

    def test_normalize_path(self) -> None:
        assert normalize_path("") == "/"
        assert normalize_path("///") == "/"
        assert normalize_path("/kick/callback/") == "/kick/callback"
