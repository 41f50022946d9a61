# ─────────────────────────────────────────────────────────────────────────────
# Test Fixtures — shared across all tests
# ─────────────────────────────────────────────────────────────────────────────

import asyncio
import os
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient

from productshot.config import Settings
from productshot.credentials import require_gemini_key
from productshot.main import create_app
from productshot.pipeline.tasks import GenerationResult, GenerationTask
from productshot.providers.protocol import CompletionResponse
from productshot.rate_limit import FixedWindowRateLimiter, http_limiter
from productshot.services.metrics import StudioMetrics
from productshot.services.oauth import OAuthTokenClient
from productshot.services.orchestrator import GenerationOrchestrator
from productshot.services.prompt_assistant import PromptAssistant

GEMINI_KEY = "AIzaTestKey-0000000000"
OPENAI_KEY = "sk-test-0000000000"
PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image-bytes"
RESULT_URL = "data:image/png;base64,UkVTVUxU"


# ── Test doubles ─────────────────────────────────────────────────────────────


class FakeClock:
    """Millisecond clock the tests move by hand."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class StubImageGenerator:
    """ImageGenerator that records calls instead of reaching Gemini.

    `outcomes` maps a task label to a GenerationResult, an exception to
    raise, or a coroutine function to await (for slow upstreams).
    Unlisted labels succeed with RESULT_URL.
    """

    name = "stub:image"

    def __init__(self) -> None:
        self.calls: list[GenerationTask] = []
        self.credentials: list[str] = []
        self.outcomes: dict[str, object] = {}

    def validate_credential(self, credential: str | None) -> str:
        return require_gemini_key(credential)

    async def generate(self, task: GenerationTask, credential: str) -> GenerationResult:
        self.calls.append(task)
        self.credentials.append(credential)
        outcome = self.outcomes.get(task.label)
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            return await outcome(task)
        if isinstance(outcome, GenerationResult):
            return outcome
        return GenerationResult.success(task.label, RESULT_URL)


class StubCompleter:
    """TextCompleter with a canned CompletionResponse."""

    name = "stub:text"

    def __init__(self, response: CompletionResponse | None = None) -> None:
        self.response = response or CompletionResponse(
            200, {"choices": [{"message": {"content": "  A crisp studio shot.  "}}]}
        )
        self.calls: list[dict[str, object]] = []

    async def complete(self, messages, credential, *, max_tokens, temperature):
        self.calls.append(
            {
                "messages": messages,
                "credential": credential,
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )
        if isinstance(self.response, BaseException):
            raise self.response
        return self.response


async def sleep_forever(task: GenerationTask) -> GenerationResult:
    await asyncio.sleep(60)
    raise AssertionError("timeout should have fired")


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def test_settings() -> Settings:
    """Settings configured for testing — no server-side keys, short timeouts."""
    return Settings(
        gemini_api_key="",
        openai_api_key="",
        api_key="",
        upstream_timeout_seconds=0.05,
        log_json=False,
        log_level="DEBUG",
    )


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def metrics() -> StudioMetrics:
    return StudioMetrics()


@pytest.fixture
def stub_generator() -> StubImageGenerator:
    return StubImageGenerator()


@pytest.fixture
def stub_completer() -> StubCompleter:
    return StubCompleter()


@pytest.fixture
def rate_limiter(test_settings: Settings, fake_clock: FakeClock) -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(
        limit=test_settings.rate_limit_requests,
        window_ms=test_settings.rate_limit_window_ms,
        clock=fake_clock,
    )


@pytest.fixture
def mock_oauth() -> OAuthTokenClient:
    """OAuthTokenClient with refresh() mocked."""
    oauth = MagicMock(spec=OAuthTokenClient)
    oauth.refresh = AsyncMock()
    return oauth


@pytest.fixture
def client(
    test_settings: Settings,
    metrics: StudioMetrics,
    rate_limiter: FixedWindowRateLimiter,
    stub_generator: StubImageGenerator,
    stub_completer: StubCompleter,
    mock_oauth: OAuthTokenClient,
) -> TestClient:
    """FastAPI TestClient with stubbed upstreams.

    We clear the settings cache and set env vars so create_app() builds
    test-safe middleware. The lifespan does not run (no `with` block), so
    app.state is populated here instead. No network calls.
    """
    from productshot.config import get_settings

    get_settings.cache_clear()
    http_limiter.reset()

    env_overrides = {
        "LOG_JSON": "false",
        "LOG_LEVEL": "DEBUG",
        "ALLOWED_ORIGINS": "*",  # Tests need permissive CORS (prod defaults to deny-all)
    }
    for k, v in env_overrides.items():
        os.environ[k] = v

    try:
        app = create_app()
        client = TestClient(app)

        app.state.settings = test_settings
        app.state.http_client = httpx.AsyncClient()
        app.state.metrics = metrics
        app.state.rate_limiter = rate_limiter
        app.state.orchestrator = GenerationOrchestrator(
            stub_generator, test_settings, metrics=metrics
        )
        app.state.prompt_assistant = PromptAssistant(stub_completer, test_settings, metrics=metrics)
        app.state.oauth_client = mock_oauth

        return client
    finally:
        for k in env_overrides:
            os.environ.pop(k, None)
        get_settings.cache_clear()
