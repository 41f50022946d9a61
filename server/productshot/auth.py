# Studio access gate. When API_KEY is configured, every /api/* call must send
# it as X-API-Key. This key only admits callers to the studio; Gemini/OpenAI
# credentials are resolved per request in credentials.py.


import secrets
from typing import Any

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = structlog.get_logger(__name__)

# Probes and scrapes stay reachable without the studio key.
_OPEN_PATHS: frozenset[str] = frozenset(
    {"/", "/health", "/health/ready", "/metrics", "/metrics/prometheus"}
)

_REJECTION = {"error": "UNAUTHORIZED", "message": "Invalid or missing API key"}


def _bypasses_gate(request: Request) -> bool:
    # Browsers never attach custom headers to a CORS preflight.
    return request.method == "OPTIONS" or request.url.path in _OPEN_PATHS


class APIKeyMiddleware(BaseHTTPMiddleware):
    """Reject studio calls that lack the configured X-API-Key."""

    def __init__(self, app: Any, *, api_key: str) -> None:
        super().__init__(app)
        self._expected = api_key.encode()

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if _bypasses_gate(request):
            return await call_next(request)

        presented = request.headers.get("x-api-key", "").encode()
        if presented and secrets.compare_digest(presented, self._expected):
            return await call_next(request)

        logger.warning(
            "studio_access_denied",
            path=request.url.path,
            method=request.method,
            key_present=bool(presented),
        )
        return JSONResponse(status_code=401, content=_REJECTION)
