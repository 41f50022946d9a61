# OAuth refresh-token exchange. The authorization-code callback is handled
# outside this server; only the refresh capability is implemented here.

from dataclasses import dataclass

import httpx
import structlog

from productshot.config import Settings
from productshot.exceptions import StudioError

logger = structlog.get_logger(__name__)

ACCESS_COOKIE = "openai_access_token"
REFRESH_COOKIE = "openai_refresh_token"
DEFAULT_ACCESS_TTL_S = 3600
REFRESH_TTL_S = 30 * 24 * 60 * 60


class TokenRefreshError(StudioError):
    def __init__(self, message: str, status_code: int = 401):
        super().__init__("TOKEN_REFRESH_FAILED", message, status_code=status_code)


@dataclass(frozen=True)
class TokenSet:
    access_token: str
    expires_in: int = DEFAULT_ACCESS_TTL_S
    refresh_token: str | None = None


class OAuthTokenClient:
    """Exchanges a refresh token for a fresh access token."""

    def __init__(self, http: httpx.AsyncClient, settings: Settings) -> None:
        self._http = http
        self._settings = settings

    async def refresh(self, refresh_token: str) -> TokenSet:
        try:
            response = await self._http.post(
                self._settings.oauth_token_url,
                data={
                    "grant_type": "refresh_token",
                    "client_id": self._settings.openai_client_id,
                    "client_secret": self._settings.openai_client_secret.get_secret_value(),
                    "refresh_token": refresh_token,
                },
                timeout=self._settings.upstream_timeout_seconds,
            )
        except httpx.HTTPError as e:
            logger.warning("token_refresh_transport_error", error=str(e))
            raise TokenRefreshError("Token refresh failed", status_code=502) from e

        if response.is_error:
            logger.warning("token_refresh_rejected", status=response.status_code)
            raise TokenRefreshError("Failed to refresh token")

        try:
            body = response.json()
        except ValueError:
            raise TokenRefreshError("Token refresh failed", status_code=502) from None

        access_token = body.get("access_token") if isinstance(body, dict) else None
        if not access_token:
            raise TokenRefreshError("Token refresh failed", status_code=502)

        return TokenSet(
            access_token=access_token,
            expires_in=int(body.get("expires_in") or DEFAULT_ACCESS_TTL_S),
            refresh_token=body.get("refresh_token") or None,
        )
