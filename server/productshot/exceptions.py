# ─────────────────────────────────────────────────────────────────────────────
# Custom Exceptions + FastAPI Exception Handlers
# ─────────────────────────────────────────────────────────────────────────────
# Every error response carries a stable machine-readable code plus a message:
#   {"error": "NO_IMAGE", "message": "Please upload an image file"}
# ─────────────────────────────────────────────────────────────────────────────


from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


# ── Exception hierarchy ──────────────────────────────────────────────────────


class StudioError(Exception):
    """Base exception for all request-terminating errors."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        extra: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.extra = extra or {}
        super().__init__(message)

    def to_content(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message, **self.extra}


class RateLimitExceededError(StudioError):
    """Raised when a client has used its fixed-window budget.

    retry_after_seconds is rounded up from the time left in the window;
    the handler echoes it as a Retry-After header on the 429.
    """

    def __init__(self, limit: int, retry_after_seconds: int):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            "RATE_LIMIT_EXCEEDED",
            f"Maximum {limit} requests per minute. Retry in {retry_after_seconds} seconds.",
            status_code=429,
            extra={"retryAfter": retry_after_seconds},
        )


class InvalidInputError(StudioError):
    """Missing or malformed request input. No upstream call is attempted."""

    def __init__(self, code: str, message: str):
        super().__init__(code, message, status_code=400)


class MissingCredentialError(StudioError):
    def __init__(self, message: str):
        super().__init__("NO_API_KEY", message, status_code=401)


class InvalidCredentialError(StudioError):
    def __init__(self, message: str):
        super().__init__("INVALID_API_KEY", message, status_code=401)


class GenerationFailedError(StudioError):
    """A single-image action whose only task failed.

    The task's own code (API_ERROR, NO_IMAGE_IN_RESPONSE, ...) becomes the
    response code. Upstream timeouts map to 504, everything else to 502.
    """

    def __init__(self, code: str, message: str, diagnostic: str | None = None):
        extra = {"debug": diagnostic} if diagnostic else None
        status_code = 504 if code == "UPSTREAM_TIMEOUT" else 502
        super().__init__(code, message, status_code=status_code, extra=extra)


class UpstreamError(StudioError):
    """A text-completion upstream call failed (prompt assistant)."""

    def __init__(self, code: str, message: str, status_code: int = 502):
        super().__init__(code, message, status_code=status_code)


# ── Handler registration ────────────────────────────────────────────────────


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI app.

    Endpoints raise StudioError subclasses; these handlers catch them
    and return structured JSON -- no inline try/except in endpoints.
    """

    @app.exception_handler(RateLimitExceededError)
    async def rate_limit_handler(request: Request, exc: RateLimitExceededError) -> JSONResponse:
        """429 with Retry-After header — tells the client exactly when to retry."""
        logger.warning(
            "rate_limited_response",
            path=request.url.path,
            retry_after=exc.retry_after_seconds,
        )
        return JSONResponse(
            status_code=429,
            content=exc.to_content(),
            headers={"Retry-After": str(exc.retry_after_seconds)},
        )

    @app.exception_handler(StudioError)
    async def studio_error_handler(request: Request, exc: StudioError) -> JSONResponse:
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            "request_failed",
            path=request.url.path,
            code=exc.code,
            error=exc.message,
            status=exc.status_code,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_content())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = first.get("msg", "Invalid request")
        if location:
            message = f"{location}: {message}"
        logger.info("request_invalid", path=request.url.path, error=message)
        return JSONResponse(
            status_code=400,
            content={"error": "INVALID_REQUEST", "message": message},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_error", path=request.url.path, error=str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "GENERATION_FAILED",
                "message": "Failed to generate image. Please try again.",
            },
        )
