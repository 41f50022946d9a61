# FastAPI application factory with lifespan management.
# Entrypoint: uvicorn productshot.main:create_app --factory --host 0.0.0.0 --port 8080

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import httpx
import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from starlette.requests import Request
from starlette.responses import JSONResponse

from productshot.auth import APIKeyMiddleware
from productshot.config import get_settings
from productshot.exceptions import register_exception_handlers
from productshot.logging_config import configure_logging
from productshot.middleware import RequestContextMiddleware
from productshot.providers import GeminiImageClient, OpenAIChatClient
from productshot.rate_limit import FixedWindowRateLimiter, http_limiter
from productshot.routes import auth as auth_routes
from productshot.routes import generate, health, prompt
from productshot.routes import prometheus as prometheus_routes
from productshot.services.metrics import StudioMetrics
from productshot.services.oauth import OAuthTokenClient
from productshot.services.orchestrator import GenerationOrchestrator
from productshot.services.prompt_assistant import PromptAssistant

logger = structlog.get_logger(__name__)


def _parse_retry_after(rate_limit: str) -> int:
    """Extract window duration from slowapi rate limit string."""
    windows = {"second": 1, "minute": 60, "hour": 3600, "day": 86400}
    try:
        _, window = rate_limit.strip().split("/")
        return windows.get(window.strip(), 60)
    except (ValueError, AttributeError):
        return 60


async def _rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Coarse per-address 429, same envelope as the fixed-window limiter's."""
    settings = get_settings()
    retry_after = _parse_retry_after(settings.http_rate_limit)
    logger.warning(
        "http_rate_limit_exceeded",
        path=request.url.path,
        method=request.method,
        detail=str(exc.detail),
    )
    return JSONResponse(
        status_code=429,
        content={
            "error": "RATE_LIMIT_EXCEEDED",
            "message": f"Too many requests: {exc.detail}",
            "retryAfter": retry_after,
        },
        headers={"Retry-After": str(retry_after)},
    )


if TYPE_CHECKING:
    from opentelemetry.sdk.trace import TracerProvider


def _configure_otel(exporter_type: str) -> "TracerProvider | None":
    """Configure OpenTelemetry tracing (console exporter)."""
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

    if exporter_type != "console":
        logger.warning("unknown_otel_exporter", exporter=exporter_type)
        return None

    provider = TracerProvider()
    provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    from opentelemetry import trace

    trace.set_tracer_provider(provider)
    logger.info("otel_configured", exporter=exporter_type)
    return provider


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build shared services on startup; close the upstream HTTP client on shutdown."""
    settings = get_settings()

    otel_provider = None
    otel_exporter = os.environ.get("OTEL_EXPORTER", "")
    if otel_exporter:
        otel_provider = _configure_otel(otel_exporter)

    # One pooled client for every upstream call (Gemini, OpenAI, OAuth).
    http = httpx.AsyncClient(timeout=settings.upstream_timeout_seconds)
    metrics = StudioMetrics()
    rate_limiter = FixedWindowRateLimiter(
        limit=settings.rate_limit_requests,
        window_ms=settings.rate_limit_window_ms,
        sweep_interval_ms=settings.rate_limit_sweep_interval_ms,
    )

    image_client = GeminiImageClient(
        http,
        base_url=settings.gemini_base_url,
        model=settings.gemini_model,
        diagnostic_max_chars=settings.diagnostic_max_chars,
    )
    chat_client = OpenAIChatClient(
        http,
        base_url=settings.openai_base_url,
        model=settings.openai_model,
    )

    app.state.settings = settings
    app.state.http_client = http
    app.state.metrics = metrics
    app.state.rate_limiter = rate_limiter
    app.state.orchestrator = GenerationOrchestrator(image_client, settings, metrics=metrics)
    app.state.prompt_assistant = PromptAssistant(chat_client, settings, metrics=metrics)
    app.state.oauth_client = OAuthTokenClient(http, settings)

    logger.info(
        "startup_complete",
        image_provider=image_client.name,
        text_provider=chat_client.name,
        rate_limit=settings.rate_limit_requests,
        window_ms=settings.rate_limit_window_ms,
    )

    yield

    if otel_provider is not None:
        otel_provider.shutdown()

    await http.aclose()
    logger.info("shutdown_complete")


def _parse_origins(allowed_origins: str) -> list[str]:
    """Parse comma-separated CORS origins. Empty string → deny all."""
    if not allowed_origins.strip():
        logger.warning(
            "cors_no_origins_configured",
            hint="Set ALLOWED_ORIGINS env var. Cross-origin requests will be rejected.",
        )
        return []
    return [origin.strip() for origin in allowed_origins.split(",") if origin.strip()]


def create_app() -> FastAPI:
    """Application factory. Invoked by: uvicorn productshot.main:create_app --factory"""
    settings = get_settings()
    configure_logging(log_level=settings.log_level, json_output=settings.log_json)

    app = FastAPI(
        title="Product Shot Studio",
        description="Rate-limited AI product photography backend",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.limiter = http_limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]

    # Middleware order (Starlette applies in reverse): CORS → APIKey → RequestContext
    app.add_middleware(RequestContextMiddleware)

    api_key_value = settings.api_key.get_secret_value()
    if api_key_value:
        app.add_middleware(APIKeyMiddleware, api_key=api_key_value)
        logger.info("api_key_auth_enabled")
    else:
        logger.warning("api_key_auth_disabled", reason="API_KEY env var not set")

    origins = _parse_origins(settings.allowed_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["POST", "GET", "OPTIONS"],
        allow_headers=["Content-Type", "X-API-Key"],
        expose_headers=["Retry-After", "X-Request-ID"],
    )

    register_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(generate.router, tags=["generate"])
    app.include_router(prompt.router, tags=["prompt"])
    app.include_router(auth_routes.router, tags=["auth"])
    app.include_router(prometheus_routes.router, tags=["prometheus"])

    return app
