# ─────────────────────────────────────────────────────────────────────────────
# Provider Protocols — runtime_checkable interfaces for upstream clients
# ─────────────────────────────────────────────────────────────────────────────
# The transport (direct HTTP today) sits behind these so orchestration and
# tests never depend on a specific client. Tests substitute stubs that count
# calls.
# ─────────────────────────────────────────────────────────────────────────────

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from productshot.pipeline.tasks import GenerationResult, GenerationTask


class MalformedResponseError(Exception):
    """Upstream answered with a body that could not be decoded."""


@dataclass
class CompletionResponse:
    """Status + decoded body of a completion call. Non-2xx is not raised."""

    status_code: int
    body: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def error_message(self) -> str | None:
        error = self.body.get("error")
        if isinstance(error, dict):
            message = error.get("message")
            return message if isinstance(message, str) and message else None
        return None

    @property
    def text(self) -> str:
        """choices[0].message.content, stripped; "" when there is no choice.

        Raises MalformedResponseError when the choice structure has the
        wrong JSON types.
        """
        choices = self.body.get("choices")
        if choices is None:
            return ""
        if not isinstance(choices, list):
            raise MalformedResponseError("Completion 'choices' is not a list")
        if not choices:
            return ""
        choice = choices[0]
        if not isinstance(choice, dict):
            raise MalformedResponseError("Completion choice is not an object")
        message = choice.get("message")
        if message is None:
            return ""
        if not isinstance(message, dict):
            raise MalformedResponseError("Completion message is not an object")
        content = message.get("content")
        return content.strip() if isinstance(content, str) else ""


@runtime_checkable
class ImageGenerator(Protocol):
    """Turns one GenerationTask into one GenerationResult (e.g., Gemini)."""

    @property
    def name(self) -> str: ...

    def validate_credential(self, credential: str | None) -> str: ...

    async def generate(self, task: "GenerationTask", credential: str) -> "GenerationResult": ...


@runtime_checkable
class TextCompleter(Protocol):
    """Chat-style text completion (e.g., OpenAI chat completions)."""

    @property
    def name(self) -> str: ...

    async def complete(
        self,
        messages: list[dict[str, Any]],
        credential: str,
        *,
        max_tokens: int,
        temperature: float,
    ) -> CompletionResponse: ...
