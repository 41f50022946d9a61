# ─────────────────────────────────────────────────────────────────────────────
# Prompt Assistant — drafts an image-generation prompt via a text model
# ─────────────────────────────────────────────────────────────────────────────


import asyncio
from typing import Any

import httpx
import structlog

from productshot.config import Settings
from productshot.credentials import require_openai_key
from productshot.exceptions import InvalidCredentialError, UpstreamError
from productshot.pipeline.encoding import encode_bytes, to_data_uri
from productshot.pipeline.prompts import assistant_system_prompt, assistant_user_message
from productshot.pipeline.tasks import ImageInput
from productshot.providers.protocol import MalformedResponseError, TextCompleter
from productshot.services.metrics import StudioMetrics

logger = structlog.get_logger(__name__)

MAX_TOKENS = 500
TEMPERATURE = 0.7


class PromptAssistant:
    """Builds the system/user messages and maps upstream outcomes to errors."""

    def __init__(
        self,
        completer: TextCompleter,
        settings: Settings,
        metrics: StudioMetrics | None = None,
    ) -> None:
        self._completer = completer
        self._settings = settings
        self._metrics = metrics

    def build_messages(
        self,
        product_type: str | None,
        brand_style: str | None,
        target_audience: str | None,
        image: ImageInput | None,
    ) -> list[dict[str, Any]]:
        user_text = assistant_user_message(has_image=image is not None)
        user_content: str | list[dict[str, Any]] = user_text
        if image is not None:
            user_content = [
                {"type": "text", "text": user_text},
                {
                    "type": "image_url",
                    "image_url": {"url": to_data_uri(encode_bytes(image.data), image.mime_type)},
                },
            ]
        return [
            {
                "role": "system",
                "content": assistant_system_prompt(product_type, brand_style, target_audience),
            },
            {"role": "user", "content": user_content},
        ]

    async def draft(
        self,
        messages: list[dict[str, Any]],
        credential: str | None,
        *,
        oauth: bool = False,
    ) -> str:
        """Return the drafted prompt text or raise a StudioError."""
        key = require_openai_key(credential, oauth=oauth)
        timeout_s = self._settings.upstream_timeout_seconds

        try:
            response = await asyncio.wait_for(
                self._completer.complete(
                    messages, key, max_tokens=MAX_TOKENS, temperature=TEMPERATURE
                ),
                timeout_s,
            )
        except (TimeoutError, httpx.TimeoutException):
            raise UpstreamError(
                "UPSTREAM_TIMEOUT",
                f"Prompt service did not answer within {timeout_s:g}s",
                status_code=504,
            ) from None
        except httpx.HTTPError as e:
            raise UpstreamError("TRANSPORT_ERROR", f"Could not reach the prompt service: {e}") from e
        except MalformedResponseError as e:
            raise UpstreamError("MALFORMED_RESPONSE", str(e)) from e

        if response.status_code == 401:
            raise InvalidCredentialError("Your OpenAI API key is invalid or expired")
        if response.status_code == 429:
            raise UpstreamError(
                "UPSTREAM_RATE_LIMITED",
                "OpenAI rate limit exceeded. Please wait and try again.",
                status_code=429,
            )
        if not response.ok:
            logger.warning(
                "prompt_upstream_error",
                provider=self._completer.name,
                status=response.status_code,
                error=response.error_message,
            )
            raise UpstreamError("API_ERROR", response.error_message or "Failed to generate prompt")

        try:
            prompt = response.text
        except MalformedResponseError as e:
            raise UpstreamError("MALFORMED_RESPONSE", str(e)) from e
        if not prompt:
            raise UpstreamError(
                "EMPTY_RESPONSE", "The AI returned an empty prompt. Please try again."
            )

        logger.info("prompt_drafted", provider=self._completer.name, chars=len(prompt))
        if self._metrics:
            self._metrics.record_prompt()
        return prompt
