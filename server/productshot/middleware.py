# ─────────────────────────────────────────────────────────────────────────────
# Request Context — correlation id + latency for every studio request
# ─────────────────────────────────────────────────────────────────────────────
# A caller-supplied X-Request-ID is reused so a browser retry and its server
# log lines share one id. Probe and scrape paths are served but not logged.
# ─────────────────────────────────────────────────────────────────────────────


import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger(__name__)

_UNLOGGED_PREFIXES = ("/health", "/metrics")
_MAX_INCOMING_ID = 64


def _incoming_request_id(request: Request) -> str:
    supplied = request.headers.get("x-request-id", "").strip()
    if supplied and len(supplied) <= _MAX_INCOMING_ID:
        return supplied
    return uuid.uuid4().hex[:8]


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id visible to every log line it produces.

    Admission decisions, per-task upstream outcomes and the final
    request_completed event all carry the same request_id.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = _incoming_request_id(request)
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(request_id=request_id)
        started = time.perf_counter()

        try:
            response: Response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        elapsed_ms = round((time.perf_counter() - started) * 1000, 1)
        path = request.url.path

        if not path.startswith(_UNLOGGED_PREFIXES):
            logger.info(
                "request_completed",
                request_id=request_id,
                method=request.method,
                path=path,
                status=response.status_code,
                duration_ms=elapsed_ms,
            )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time-Ms"] = str(elapsed_ms)
        return response
