# ─────────────────────────────────────────────────────────────────────────────
# Health Check Routes — liveness, readiness, and metrics
# ─────────────────────────────────────────────────────────────────────────────
#   /health        → Liveness. "Is the process alive?" Near-zero cost.
#   /health/ready  → Readiness. Shared upstream HTTP client still open?
#                    Returns 503 if not; the platform withholds traffic.
#   /metrics       → Admission and per-task outcome counters as JSON.
# ─────────────────────────────────────────────────────────────────────────────

from typing import Any

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from productshot.config import Settings
from productshot.dependencies import get_metrics, get_rate_limiter, get_settings_dep
from productshot.rate_limit import FixedWindowRateLimiter
from productshot.schemas import LivenessResponse, ReadinessResponse
from productshot.services.metrics import StudioMetrics

router = APIRouter()


@router.get("/health", response_model=LivenessResponse)
async def liveness() -> LivenessResponse:
    """Liveness probe — no deps, no I/O."""
    return LivenessResponse(status="ok")


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness(
    request: Request,
    limiter: FixedWindowRateLimiter = Depends(get_rate_limiter),
    settings: Settings = Depends(get_settings_dep),
) -> JSONResponse:
    """Readiness probe.

    A configured server-side image key is reported but not required:
    clients may bring their own.
    """
    http: httpx.AsyncClient | None = getattr(request.app.state, "http_client", None)
    http_open = http is not None and not http.is_closed

    response = ReadinessResponse(
        status="ready" if http_open else "not_ready",
        http_client_open=http_open,
        image_key_configured=bool(settings.gemini_api_key.get_secret_value()),
        tracked_clients=limiter.tracked_identifiers,
    )
    return JSONResponse(status_code=200 if http_open else 503, content=response.model_dump())


@router.get("/metrics")
async def metrics_endpoint(metrics: StudioMetrics = Depends(get_metrics)) -> dict[str, Any]:
    """Admissions, rejections, task outcomes by code, upstream latency."""
    return metrics.to_dict()
