# ─────────────────────────────────────────────────────────────────────────────
# OAuth Refresh Tests — token client (respx) and cookie rotation route
# ─────────────────────────────────────────────────────────────────────────────

from urllib.parse import parse_qs

import httpx
import pytest
import respx
from pydantic import SecretStr

from productshot.config import Settings
from productshot.services.oauth import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    OAuthTokenClient,
    TokenRefreshError,
    TokenSet,
)

TOKEN_URL = "https://auth.test/oauth/token"


@pytest.fixture
def oauth_settings() -> Settings:
    return Settings(
        oauth_token_url=TOKEN_URL,
        openai_client_id="client-123",
        openai_client_secret=SecretStr("shh"),
        log_json=False,
    )


class TestOAuthTokenClient:
    @respx.mock
    async def test_refresh_posts_form(self, oauth_settings):
        route = respx.post(TOKEN_URL).mock(
            return_value=httpx.Response(
                200,
                json={"access_token": "new-access", "expires_in": 1800, "refresh_token": "new-r"},
            )
        )
        async with httpx.AsyncClient() as http:
            tokens = await OAuthTokenClient(http, oauth_settings).refresh("old-r")

        assert tokens == TokenSet("new-access", 1800, "new-r")
        form = parse_qs(route.calls.last.request.content.decode())
        assert form == {
            "grant_type": ["refresh_token"],
            "client_id": ["client-123"],
            "client_secret": ["shh"],
            "refresh_token": ["old-r"],
        }

    @respx.mock
    async def test_defaults_when_fields_missing(self, oauth_settings):
        respx.post(TOKEN_URL).mock(
            return_value=httpx.Response(200, json={"access_token": "new-access"})
        )
        async with httpx.AsyncClient() as http:
            tokens = await OAuthTokenClient(http, oauth_settings).refresh("old-r")
        assert tokens == TokenSet("new-access", 3600, None)

    @respx.mock
    async def test_rejected_refresh(self, oauth_settings):
        respx.post(TOKEN_URL).mock(return_value=httpx.Response(400, json={"error": "invalid"}))
        async with httpx.AsyncClient() as http:
            with pytest.raises(TokenRefreshError) as excinfo:
                await OAuthTokenClient(http, oauth_settings).refresh("old-r")
        assert excinfo.value.status_code == 401

    @respx.mock
    async def test_transport_failure(self, oauth_settings):
        respx.post(TOKEN_URL).mock(side_effect=httpx.ConnectError("refused"))
        async with httpx.AsyncClient() as http:
            with pytest.raises(TokenRefreshError) as excinfo:
                await OAuthTokenClient(http, oauth_settings).refresh("old-r")
        assert excinfo.value.status_code == 502


class TestRefreshRoute:
    def test_missing_cookie(self, client, mock_oauth):
        response = client.post("/api/auth/refresh")
        assert response.status_code == 401
        assert response.json()["error"] == "TOKEN_REFRESH_FAILED"
        mock_oauth.refresh.assert_not_called()

    def test_rotates_cookies(self, client, mock_oauth):
        mock_oauth.refresh.return_value = TokenSet("fresh-access", 1200, "fresh-refresh")

        response = client.post(
            "/api/auth/refresh", headers={"Cookie": f"{REFRESH_COOKIE}=old-refresh"}
        )

        assert response.status_code == 200
        assert response.json() == {"success": True}
        mock_oauth.refresh.assert_awaited_once_with("old-refresh")
        set_cookies = response.headers.get_list("set-cookie")
        access = next(c for c in set_cookies if c.startswith(f"{ACCESS_COOKIE}="))
        assert "fresh-access" in access
        assert "Max-Age=1200" in access
        assert "HttpOnly" in access
        assert any(c.startswith(f"{REFRESH_COOKIE}=fresh-refresh") for c in set_cookies)

    def test_refresh_cookie_kept_when_not_rotated(self, client, mock_oauth):
        mock_oauth.refresh.return_value = TokenSet("fresh-access")

        response = client.post(
            "/api/auth/refresh", headers={"Cookie": f"{REFRESH_COOKIE}=old-refresh"}
        )

        set_cookies = response.headers.get_list("set-cookie")
        assert len(set_cookies) == 1
        assert set_cookies[0].startswith(f"{ACCESS_COOKIE}=fresh-access")

    def test_upstream_rejection(self, client, mock_oauth):
        mock_oauth.refresh.side_effect = TokenRefreshError("Failed to refresh token")
        response = client.post(
            "/api/auth/refresh", headers={"Cookie": f"{REFRESH_COOKIE}=old-refresh"}
        )
        assert response.status_code == 401
        assert response.json() == {
            "error": "TOKEN_REFRESH_FAILED",
            "message": "Failed to refresh token",
        }
