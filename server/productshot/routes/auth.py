# POST /api/auth/refresh — rotate the OAuth access token cookie

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from productshot.config import Settings
from productshot.dependencies import get_oauth_client, get_settings_dep
from productshot.services.oauth import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    REFRESH_TTL_S,
    OAuthTokenClient,
    TokenRefreshError,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/auth")


@router.post("/refresh")
async def refresh_token(
    request: Request,
    oauth: OAuthTokenClient = Depends(get_oauth_client),
    settings: Settings = Depends(get_settings_dep),
) -> JSONResponse:
    """Exchange the refresh-token cookie for a new access-token cookie."""
    current = request.cookies.get(REFRESH_COOKIE)
    if not current:
        raise TokenRefreshError("No refresh token available")

    tokens = await oauth.refresh(current)

    response = JSONResponse({"success": True})
    cookie_opts = {"httponly": True, "secure": settings.is_production, "samesite": "lax"}
    response.set_cookie(ACCESS_COOKIE, tokens.access_token, max_age=tokens.expires_in, **cookie_opts)
    if tokens.refresh_token:
        response.set_cookie(REFRESH_COOKIE, tokens.refresh_token, max_age=REFRESH_TTL_S, **cookie_opts)
    logger.info("oauth_token_refreshed", rotated=tokens.refresh_token is not None)
    return response
