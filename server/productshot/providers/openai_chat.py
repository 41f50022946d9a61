# OpenAI chat completions over httpx. Returns status + body; the prompt
# assistant decides what each status means for the caller.

from typing import Any

import httpx

from productshot.providers.protocol import CompletionResponse, MalformedResponseError


class OpenAIChatClient:
    """TextCompleter backed by the OpenAI REST API."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o",
    ) -> None:
        self._http = http
        self._url = f"{base_url.rstrip('/')}/chat/completions"
        self._model = model

    @property
    def name(self) -> str:
        return f"openai:{self._model}"

    async def complete(
        self,
        messages: list[dict[str, Any]],
        credential: str,
        *,
        max_tokens: int = 500,
        temperature: float = 0.7,
    ) -> CompletionResponse:
        response = await self._http.post(
            self._url,
            headers={"Authorization": f"Bearer {credential}"},
            json={
                "model": self._model,
                "messages": messages,
                "max_tokens": max_tokens,
                "temperature": temperature,
            },
        )
        try:
            body = response.json()
        except ValueError:
            if response.is_error:
                return CompletionResponse(response.status_code, {})
            raise MalformedResponseError("OpenAI returned invalid JSON") from None
        return CompletionResponse(response.status_code, body if isinstance(body, dict) else {})
