# ─────────────────────────────────────────────────────────────────────────────
# Generation Tasks — units of upstream work and their outcomes
# ─────────────────────────────────────────────────────────────────────────────
# A task moves PENDING → SUCCEEDED | FAILED exactly once. There is no retry
# state; retrying is the caller's decision.
# ─────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from productshot.pipeline.sizing import OutputSize


class TaskStatus(StrEnum):
    pending = "PENDING"
    succeeded = "SUCCEEDED"
    failed = "FAILED"


class FailureCode(StrEnum):
    """Per-task failure codes surfaced to the client."""

    api_error = "API_ERROR"
    no_image = "NO_IMAGE_IN_RESPONSE"
    timeout = "UPSTREAM_TIMEOUT"
    transport = "TRANSPORT_ERROR"
    malformed = "MALFORMED_RESPONSE"


@dataclass(frozen=True)
class ImageInput:
    data: bytes
    mime_type: str = "image/png"


@dataclass
class GenerationTask:
    """One upstream call: ordered input images + one text prompt."""

    label: str
    prompt: str
    images: list[ImageInput] = field(default_factory=list)
    size: OutputSize | None = None
    status: TaskStatus = TaskStatus.pending


@dataclass
class GenerationResult:
    label: str
    status: TaskStatus
    image_url: str | None = None
    error_code: str | None = None
    message: str | None = None
    diagnostic: str | None = None
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.status is TaskStatus.succeeded

    @classmethod
    def success(cls, label: str, image_url: str) -> GenerationResult:
        return cls(label=label, status=TaskStatus.succeeded, image_url=image_url)

    @classmethod
    def failure(
        cls,
        label: str,
        code: str,
        message: str,
        diagnostic: str | None = None,
    ) -> GenerationResult:
        return cls(
            label=label,
            status=TaskStatus.failed,
            error_code=code,
            message=message,
            diagnostic=diagnostic,
        )
