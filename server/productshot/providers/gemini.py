# ─────────────────────────────────────────────────────────────────────────────
# Gemini Image Client — generateContent over httpx
# ─────────────────────────────────────────────────────────────────────────────
# Request:  inline image parts (in task order) + one text part,
#           generationConfig.imageConfig.imageSize = "WxH".
# Response: candidates[0].content.parts[]; the first part carrying inline
#           data is the image. Text parts are kept as a diagnostic when the
#           model explains instead of drawing.
#
# HTTP status and "no image" outcomes come back as a GenerationResult.
# Transport errors (httpx.HTTPError) and bodies that are not JSON or have the
# wrong shape (MalformedResponseError) propagate to the orchestrator.
# ─────────────────────────────────────────────────────────────────────────────

from typing import Any

import httpx
import structlog

from productshot.credentials import require_gemini_key
from productshot.pipeline.encoding import encode_bytes, to_data_uri, truncate
from productshot.pipeline.sizing import DEFAULT_RESOLUTION, resolve_resolution
from productshot.pipeline.tasks import FailureCode, GenerationResult, GenerationTask
from productshot.providers.protocol import MalformedResponseError

logger = structlog.get_logger(__name__)

NO_IMAGE_MESSAGE = (
    "The model returned text instead of an image. "
    "Model may not support image generation with this prompt."
)


class GeminiImageClient:
    """ImageGenerator backed by the Gemini REST API."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        model: str = "gemini-3-pro-image-preview",
        diagnostic_max_chars: int = 500,
    ) -> None:
        self._http = http
        self._url = f"{base_url.rstrip('/')}/models/{model}:generateContent"
        self._model = model
        self._diagnostic_max_chars = diagnostic_max_chars

    @property
    def name(self) -> str:
        return f"gemini:{self._model}"

    def validate_credential(self, credential: str | None) -> str:
        return require_gemini_key(credential)

    def build_payload(self, task: GenerationTask) -> dict[str, Any]:
        parts: list[dict[str, Any]] = [
            {"inlineData": {"mimeType": image.mime_type, "data": encode_bytes(image.data)}}
            for image in task.images
        ]
        parts.append({"text": task.prompt})
        size = task.size or resolve_resolution(DEFAULT_RESOLUTION)
        return {
            "contents": [{"parts": parts}],
            "generationConfig": {
                "responseModalities": ["TEXT", "IMAGE"],
                "imageConfig": {"imageSize": size.directive},
            },
        }

    async def generate(self, task: GenerationTask, credential: str) -> GenerationResult:
        response = await self._http.post(
            self._url,
            headers={"x-goog-api-key": credential, "Content-Type": "application/json"},
            json=self.build_payload(task),
        )

        if response.is_error:
            message = _error_message(response) or "Failed to generate image via Gemini API"
            logger.warning(
                "gemini_api_error",
                label=task.label,
                status=response.status_code,
                error=message,
            )
            return GenerationResult.failure(task.label, FailureCode.api_error, message)

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Gemini returned invalid JSON: {e}") from None
        if not isinstance(data, dict):
            raise MalformedResponseError("Gemini returned a non-object body")

        parts = _first_candidate_parts(data)
        for part in parts:
            inline = part.get("inlineData") or part.get("inline_data")
            if inline is None:
                continue
            if not isinstance(inline, dict) or not isinstance(inline.get("data"), str):
                raise MalformedResponseError("Gemini inline image data is not a base64 string")
            if inline["data"]:
                mime = inline.get("mimeType") or inline.get("mime_type")
                if not isinstance(mime, str):
                    mime = None
                return GenerationResult.success(task.label, to_data_uri(inline["data"], mime))

        text = "".join(p["text"] for p in parts if isinstance(p.get("text"), str))
        logger.warning("gemini_no_image", label=task.label, text_chars=len(text))
        return GenerationResult.failure(
            task.label,
            FailureCode.no_image,
            NO_IMAGE_MESSAGE,
            diagnostic=truncate(text, self._diagnostic_max_chars) or None,
        )


def _first_candidate_parts(data: dict[str, Any]) -> list[dict[str, Any]]:
    """candidates[0].content.parts, or [] when the model produced no candidate.

    Raises MalformedResponseError when any level has the wrong JSON type.
    """
    candidates = data.get("candidates")
    if candidates is None:
        return []
    if not isinstance(candidates, list):
        raise MalformedResponseError("Gemini 'candidates' is not a list")
    if not candidates:
        return []
    candidate = candidates[0]
    if not isinstance(candidate, dict):
        raise MalformedResponseError("Gemini candidate is not an object")
    content = candidate.get("content")
    if content is None:
        return []
    if not isinstance(content, dict):
        raise MalformedResponseError("Gemini candidate content is not an object")
    parts = content.get("parts")
    if parts is None:
        return []
    if not isinstance(parts, list):
        raise MalformedResponseError("Gemini content parts is not a list")
    return [p for p in parts if isinstance(p, dict)]


def _error_message(response: httpx.Response) -> str | None:
    """Pull error.message out of an upstream error body, if there is one."""
    try:
        body = response.json()
    except ValueError:
        return None
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"] or None
    return None
