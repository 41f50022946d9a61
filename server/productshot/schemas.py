# ─────────────────────────────────────────────────────────────────────────────
# Pydantic v2 Request / Response Schemas
# ─────────────────────────────────────────────────────────────────────────────
# Wire names are camelCase (imageUrl, rateLimit, resetInMs); Python names are
# snake_case. Image fields hold already-decoded ImageInput values: productshot.forms
# turns uploads or base64 strings into them before validation.
# ─────────────────────────────────────────────────────────────────────────────


import json
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from productshot.pipeline.tasks import ImageInput
from productshot.rate_limit import RateDecision


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )


# ── Requests ─────────────────────────────────────────────────────────────────


class GenerationRequest(CamelModel):
    """Fields shared by every upstream-backed action."""

    image_fields: ClassVar[tuple[str, ...]] = ()

    api_key: str | None = Field(None, description="Client-supplied upstream key")


class HeroRequest(GenerationRequest):
    image_fields: ClassVar[tuple[str, ...]] = ("image",)

    image: ImageInput | None = None
    prompt: str | None = Field(None, max_length=4000)
    resolution: str | None = None


class ProductBedRequest(GenerationRequest):
    image_fields: ClassVar[tuple[str, ...]] = ("bedImage", "productImage")

    bed_image: ImageInput | None = None
    product_image: ImageInput | None = None
    product_type: str | None = Field(None, max_length=200)
    prompt: str | None = Field(None, max_length=4000)
    resolution: str | None = None


class MultiAngleRequest(GenerationRequest):
    image_fields: ClassVar[tuple[str, ...]] = ("image",)

    image: ImageInput | None = None
    angles: list[str] | None = None
    prompt: str | None = Field(None, max_length=4000)
    resolution: str | None = None

    @field_validator("angles", mode="before")
    @classmethod
    def parse_angle_list(cls, v: Any) -> Any:
        """Multipart forms send angles as a JSON array string or 'a,b,c'."""
        if not isinstance(v, str):
            return v
        text = v.strip()
        if not text:
            return None
        if text.startswith("["):
            try:
                return json.loads(text)
            except ValueError:
                raise ValueError("angles must be a JSON array of strings") from None
        return [a.strip() for a in text.split(",") if a.strip()]


class CameraAngleRequest(GenerationRequest):
    image_fields: ClassVar[tuple[str, ...]] = ("image",)

    image: ImageInput | None = None
    angle: str | None = Field(None, max_length=100)
    angle_prompt: str | None = Field(None, max_length=2000)
    custom_prompt: str | None = Field(None, max_length=4000)
    aspect_ratio: str | None = None
    quality: str | None = None


class PromptRequest(GenerationRequest):
    image_fields: ClassVar[tuple[str, ...]] = ("image",)

    image: ImageInput | None = None
    product_type: str | None = Field(None, max_length=200)
    brand_style: str | None = Field(None, max_length=500)
    target_audience: str | None = Field(None, max_length=500)


# ── Responses ────────────────────────────────────────────────────────────────


class RateLimitSnapshot(CamelModel):
    """Budget left for this client after the current request was admitted."""

    remaining: int = Field(..., ge=0)
    reset_in_ms: int = Field(..., ge=0)

    @classmethod
    def from_decision(cls, decision: RateDecision) -> "RateLimitSnapshot":
        return cls(remaining=decision.remaining, reset_in_ms=decision.reset_in_ms)


class ImageResponse(CamelModel):
    image_url: str = Field(..., description="data:<mime>;base64,<bytes>")
    rate_limit: RateLimitSnapshot


class CameraAngleResponse(ImageResponse):
    angle: str | None = None
    used_prompt: str


class AngleImage(CamelModel):
    """One element of a multi-angle batch; succeeds or fails on its own."""

    angle: str
    url: str = ""
    error: str | None = None
    code: str | None = None
    debug: str | None = None


class MultiAngleResponse(CamelModel):
    images: list[AngleImage]
    rate_limit: RateLimitSnapshot


class PromptResponse(CamelModel):
    prompt: str
    rate_limit: RateLimitSnapshot


class LivenessResponse(BaseModel):
    """Liveness probe — minimal, near-zero cost."""

    status: str = "ok"


class ReadinessResponse(BaseModel):
    """Readiness probe — can the instance reach upstream and admit traffic?"""

    status: str  # "ready" or "not_ready"
    http_client_open: bool
    image_key_configured: bool
    tracked_clients: int = Field(..., ge=0)
