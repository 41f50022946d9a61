# ─────────────────────────────────────────────────────────────────────────────
# POST /api/generate-* — image generation endpoints (THIN)
# ─────────────────────────────────────────────────────────────────────────────
# Order on every route: fixed-window admission (dependency) → coarse HTTP
# guard (decorator) → body parsing/validation → credential check →
# upstream call(s). Nothing past admission runs for a rejected client.
# ─────────────────────────────────────────────────────────────────────────────


from fastapi import APIRouter, Depends, Request

from productshot.config import Settings
from productshot.credentials import resolve_credential
from productshot.dependencies import admit_request, get_orchestrator, get_settings_dep
from productshot.forms import parse_body
from productshot.rate_limit import RateDecision, http_limit_value, http_limiter
from productshot.schemas import (
    CameraAngleRequest,
    CameraAngleResponse,
    HeroRequest,
    ImageResponse,
    MultiAngleRequest,
    MultiAngleResponse,
    ProductBedRequest,
    RateLimitSnapshot,
)
from productshot.services import actions
from productshot.services.orchestrator import GenerationOrchestrator

router = APIRouter(prefix="/api")


@router.post("/generate-hero", response_model=ImageResponse)
@http_limiter.limit(http_limit_value)
async def generate_hero(
    request: Request,
    decision: RateDecision = Depends(admit_request),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_settings_dep),
) -> ImageResponse:
    """Studio hero shot from one product photo + prompt."""
    body = await parse_body(request, HeroRequest, settings.max_upload_bytes)
    task = actions.hero_task(body)
    credential = resolve_credential(settings.gemini_api_key, body.api_key)
    result = await orchestrator.run_one(task, credential)
    return ImageResponse(
        image_url=actions.require_image(result),
        rate_limit=RateLimitSnapshot.from_decision(decision),
    )


@router.post("/generate-product-bed", response_model=ImageResponse)
@http_limiter.limit(http_limit_value)
async def generate_product_bed(
    request: Request,
    decision: RateDecision = Depends(admit_request),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_settings_dep),
) -> ImageResponse:
    """Composite of a product placed on a bed photo."""
    body = await parse_body(request, ProductBedRequest, settings.max_upload_bytes)
    task = actions.product_bed_task(body)
    credential = resolve_credential(settings.gemini_api_key, body.api_key)
    result = await orchestrator.run_one(task, credential)
    return ImageResponse(
        image_url=actions.require_image(result),
        rate_limit=RateLimitSnapshot.from_decision(decision),
    )


@router.post(
    "/generate-multi-angle",
    response_model=MultiAngleResponse,
    response_model_exclude_none=True,
)
@http_limiter.limit(http_limit_value)
async def generate_multi_angle(
    request: Request,
    decision: RateDecision = Depends(admit_request),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_settings_dep),
) -> MultiAngleResponse:
    """One upstream call per requested angle, run in order.

    Always 200 once admitted and validated: each element of `images`
    reports its own success or failure.
    """
    body = await parse_body(request, MultiAngleRequest, settings.max_upload_bytes)
    tasks = actions.multi_angle_tasks(body)
    credential = resolve_credential(settings.gemini_api_key, body.api_key)
    results = await orchestrator.run(tasks, credential)
    return MultiAngleResponse(
        images=[actions.to_angle_image(r) for r in results],
        rate_limit=RateLimitSnapshot.from_decision(decision),
    )


@router.post("/generate-camera-angle", response_model=CameraAngleResponse)
@http_limiter.limit(http_limit_value)
async def generate_camera_angle(
    request: Request,
    decision: RateDecision = Depends(admit_request),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_settings_dep),
) -> CameraAngleResponse:
    """One named camera angle at a chosen aspect ratio and quality tier."""
    body = await parse_body(request, CameraAngleRequest, settings.max_upload_bytes)
    task = actions.camera_angle_task(body)
    credential = resolve_credential(settings.gemini_api_key, body.api_key)
    result = await orchestrator.run_one(task, credential)
    return CameraAngleResponse(
        image_url=actions.require_image(result),
        angle=body.angle,
        used_prompt=task.prompt,
        rate_limit=RateLimitSnapshot.from_decision(decision),
    )
