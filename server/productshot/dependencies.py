# ─────────────────────────────────────────────────────────────────────────────
# Dependency Injection — FastAPI Depends() providers
# ─────────────────────────────────────────────────────────────────────────────
# State flows: lifespan creates → app.state stores → Depends() injects.
# No global variables. Every dependency is explicit in endpoint signatures.
# ─────────────────────────────────────────────────────────────────────────────


import structlog
from fastapi import Request

from productshot.config import Settings
from productshot.exceptions import RateLimitExceededError
from productshot.rate_limit import FixedWindowRateLimiter, RateDecision, client_identifier
from productshot.services.metrics import StudioMetrics
from productshot.services.oauth import OAuthTokenClient
from productshot.services.orchestrator import GenerationOrchestrator
from productshot.services.prompt_assistant import PromptAssistant

logger = structlog.get_logger(__name__)


def get_settings_dep(request: Request) -> Settings:
    """Inject Settings into endpoints via Depends()."""
    return request.app.state.settings  # type: ignore[no-any-return]


def get_metrics(request: Request) -> StudioMetrics:
    return request.app.state.metrics  # type: ignore[no-any-return]


def get_rate_limiter(request: Request) -> FixedWindowRateLimiter:
    return request.app.state.rate_limiter  # type: ignore[no-any-return]


def get_orchestrator(request: Request) -> GenerationOrchestrator:
    return request.app.state.orchestrator  # type: ignore[no-any-return]


def get_prompt_assistant(request: Request) -> PromptAssistant:
    return request.app.state.prompt_assistant  # type: ignore[no-any-return]


def get_oauth_client(request: Request) -> OAuthTokenClient:
    return request.app.state.oauth_client  # type: ignore[no-any-return]


# async so it runs on the event loop, not the threadpool: the limiter's
# read-modify-write relies on single-threaded access.
async def admit_request(request: Request) -> RateDecision:
    """Fixed-window admission. Runs before the body is read."""
    limiter: FixedWindowRateLimiter = request.app.state.rate_limiter
    metrics: StudioMetrics = request.app.state.metrics
    identifier = client_identifier(request)

    decision = limiter.check(identifier)
    metrics.record_admission(decision.allowed)

    if not decision.allowed:
        logger.warning(
            "rate_limited",
            path=request.url.path,
            limit=decision.limit,
            reset_in_ms=decision.reset_in_ms,
        )
        raise RateLimitExceededError(decision.limit, decision.retry_after_seconds)
    return decision
