# ─────────────────────────────────────────────────────────────────────────────
# Gemini Client Tests — respx
# ─────────────────────────────────────────────────────────────────────────────
# respx intercepts httpx requests at the transport layer (in-process, no
# network). GeminiImageClient gets a plain httpx.AsyncClient; every request
# it makes lands on the mocked routes below.
# ─────────────────────────────────────────────────────────────────────────────

import base64
import json

import httpx
import pytest
import respx

from productshot.exceptions import InvalidCredentialError, MissingCredentialError
from productshot.pipeline.sizing import OutputSize
from productshot.pipeline.tasks import FailureCode, GenerationTask, ImageInput, TaskStatus
from productshot.providers import GeminiImageClient, ImageGenerator, MalformedResponseError
from productshot.providers.gemini import NO_IMAGE_MESSAGE
from productshot.services.orchestrator import GenerationOrchestrator

BASE_URL = "https://gemini.test/v1beta"
MODEL = "gemini-3-pro-image-preview"
ENDPOINT = f"{BASE_URL}/models/{MODEL}:generateContent"
KEY = "AIzaTestKey-0000000000"


def _task(**overrides) -> GenerationTask:
    defaults = {
        "label": "hero",
        "prompt": "Sofa. High quality",
        "images": [ImageInput(b"first", "image/jpeg"), ImageInput(b"second", "image/png")],
        "size": OutputSize(1024, 1536),
    }
    return GenerationTask(**{**defaults, **overrides})


def _image_body(data: str = "QUJD", mime: str = "image/png") -> dict:
    return {
        "candidates": [
            {
                "content": {
                    "parts": [
                        {"text": "here you go"},
                        {"inlineData": {"mimeType": mime, "data": data}},
                    ]
                }
            }
        ]
    }


@pytest.fixture
async def gemini():
    async with httpx.AsyncClient() as http:
        yield GeminiImageClient(http, base_url=BASE_URL, model=MODEL, diagnostic_max_chars=20)


def _offline_client() -> GeminiImageClient:
    """For tests that never send a request."""
    return GeminiImageClient(httpx.AsyncClient(), base_url=BASE_URL, model=MODEL)


class TestRequestShape:
    @respx.mock
    async def test_posts_images_then_prompt(self, gemini):
        route = respx.post(ENDPOINT).mock(return_value=httpx.Response(200, json=_image_body()))

        await gemini.generate(_task(), KEY)

        assert route.call_count == 1
        request = route.calls.last.request
        assert request.headers["x-goog-api-key"] == KEY
        assert "key=" not in str(request.url)

        payload = json.loads(request.content)
        parts = payload["contents"][0]["parts"]
        assert parts[0] == {
            "inlineData": {"mimeType": "image/jpeg", "data": base64.b64encode(b"first").decode()}
        }
        assert parts[1]["inlineData"]["mimeType"] == "image/png"
        assert parts[2] == {"text": "Sofa. High quality"}
        assert payload["generationConfig"] == {
            "responseModalities": ["TEXT", "IMAGE"],
            "imageConfig": {"imageSize": "1024x1536"},
        }

    def test_default_size_when_task_has_none(self):
        payload = _offline_client().build_payload(_task(size=None))
        assert payload["generationConfig"]["imageConfig"]["imageSize"] == "1024x1024"

    def test_satisfies_protocol(self):
        gemini = _offline_client()
        assert isinstance(gemini, ImageGenerator)
        assert gemini.name == f"gemini:{MODEL}"


class TestResponseHandling:
    @respx.mock
    async def test_image_part_becomes_data_uri(self, gemini):
        respx.post(ENDPOINT).mock(
            return_value=httpx.Response(200, json=_image_body("WFla", "image/webp"))
        )
        result = await gemini.generate(_task(), KEY)
        assert result.status is TaskStatus.succeeded
        assert result.image_url == "data:image/webp;base64,WFla"

    @respx.mock
    async def test_snake_case_inline_data_accepted(self, gemini):
        body = {"candidates": [{"content": {"parts": [{"inline_data": {"data": "QUJD"}}]}}]}
        respx.post(ENDPOINT).mock(return_value=httpx.Response(200, json=body))
        result = await gemini.generate(_task(), KEY)
        assert result.image_url == "data:image/png;base64,QUJD"

    @respx.mock
    async def test_text_only_is_no_image_with_truncated_diagnostic(self, gemini):
        refusal = "I cannot draw that, sorry. " * 5
        body = {"candidates": [{"content": {"parts": [{"text": refusal}]}}]}
        respx.post(ENDPOINT).mock(return_value=httpx.Response(200, json=body))

        result = await gemini.generate(_task(), KEY)

        assert result.status is TaskStatus.failed
        assert result.error_code == FailureCode.no_image
        assert result.message == NO_IMAGE_MESSAGE
        assert result.diagnostic == "I cannot draw that, "

    @respx.mock
    async def test_no_candidates_is_no_image(self, gemini):
        respx.post(ENDPOINT).mock(return_value=httpx.Response(200, json={"candidates": []}))
        result = await gemini.generate(_task(), KEY)
        assert result.error_code == FailureCode.no_image
        assert result.diagnostic is None

    @respx.mock
    async def test_upstream_error_message_is_relayed(self, gemini):
        respx.post(ENDPOINT).mock(
            return_value=httpx.Response(400, json={"error": {"message": "API key not valid"}})
        )
        result = await gemini.generate(_task(), KEY)
        assert result.error_code == FailureCode.api_error
        assert result.message == "API key not valid"

    @respx.mock
    async def test_upstream_error_without_body_gets_generic_message(self, gemini):
        respx.post(ENDPOINT).mock(return_value=httpx.Response(500, text="<html>oops</html>"))
        result = await gemini.generate(_task(), KEY)
        assert result.error_code == FailureCode.api_error
        assert result.message == "Failed to generate image via Gemini API"

    @respx.mock
    async def test_invalid_json_raises_malformed(self, gemini):
        respx.post(ENDPOINT).mock(return_value=httpx.Response(200, text="not json"))
        with pytest.raises(MalformedResponseError):
            await gemini.generate(_task(), KEY)

    @pytest.mark.parametrize(
        "body",
        [
            {"candidates": {"x": 1}},
            {"candidates": ["oops"]},
            {"candidates": [{"content": "oops"}]},
            {"candidates": [{"content": {"parts": {"text": "hi"}}}]},
            {"candidates": [{"content": {"parts": [{"inlineData": {"data": 5}}]}}]},
            {"candidates": [{"content": {"parts": [{"inlineData": "QUJD"}]}}]},
        ],
        ids=[
            "candidates-not-list",
            "candidate-not-object",
            "content-not-object",
            "parts-not-list",
            "data-not-string",
            "inline-not-object",
        ],
    )
    @respx.mock
    async def test_misshapen_body_raises_malformed(self, gemini, body):
        respx.post(ENDPOINT).mock(return_value=httpx.Response(200, json=body))
        with pytest.raises(MalformedResponseError):
            await gemini.generate(_task(), KEY)

    @respx.mock
    async def test_missing_content_is_no_image(self, gemini):
        body = {"candidates": [{"finishReason": "SAFETY"}]}
        respx.post(ENDPOINT).mock(return_value=httpx.Response(200, json=body))
        result = await gemini.generate(_task(), KEY)
        assert result.error_code == FailureCode.no_image

    @respx.mock
    async def test_transport_errors_propagate(self, gemini):
        respx.post(ENDPOINT).mock(side_effect=httpx.ConnectError("Connection refused"))
        with pytest.raises(httpx.ConnectError):
            await gemini.generate(_task(), KEY)


class TestCredentialFormat:
    @pytest.fixture(autouse=True)
    def _client(self):
        self.gemini = _offline_client()

    def test_missing_key(self):
        with pytest.raises(MissingCredentialError):
            self.gemini.validate_credential(None)

    def test_wrong_prefix(self):
        with pytest.raises(InvalidCredentialError, match="AIza"):
            self.gemini.validate_credential("sk-not-a-gemini-key")

    def test_valid_key_returned(self):
        assert self.gemini.validate_credential(KEY) == KEY


class TestBatchWithMisshapenBodies:
    """A bad body fails its own task; the rest of the batch still runs."""

    @pytest.mark.parametrize(
        "bad_body",
        [
            {"candidates": {"x": 1}},
            {"candidates": [{"content": "oops"}]},
            {"candidates": [{"content": {"parts": [{"inlineData": {"data": 5}}]}}]},
        ],
    )
    @respx.mock
    async def test_next_task_still_succeeds(self, gemini, test_settings, bad_body):
        respx.post(ENDPOINT).mock(
            side_effect=[
                httpx.Response(200, json=bad_body),
                httpx.Response(200, json=_image_body("R09PRA==")),
            ]
        )
        settings = test_settings.model_copy(update={"upstream_timeout_seconds": 5.0})
        orchestrator = GenerationOrchestrator(gemini, settings)

        first, second = await orchestrator.run([_task(label="a"), _task(label="b")], KEY)

        assert first.status is TaskStatus.failed
        assert first.error_code == FailureCode.malformed
        assert first.image_url is None
        assert second.status is TaskStatus.succeeded
        assert second.image_url == "data:image/png;base64,R09PRA=="
