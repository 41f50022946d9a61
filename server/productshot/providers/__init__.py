"""Upstream provider clients — Protocol interfaces and HTTP transports."""

from productshot.providers.gemini import GeminiImageClient
from productshot.providers.openai_chat import OpenAIChatClient
from productshot.providers.protocol import (
    CompletionResponse,
    ImageGenerator,
    MalformedResponseError,
    TextCompleter,
)

__all__ = [
    "CompletionResponse",
    "GeminiImageClient",
    "ImageGenerator",
    "MalformedResponseError",
    "OpenAIChatClient",
    "TextCompleter",
]
