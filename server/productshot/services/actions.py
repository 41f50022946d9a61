# Per-action input checks and task construction. Everything here runs
# before any upstream call; a failure raises InvalidInputError.

from productshot.exceptions import GenerationFailedError, InvalidInputError
from productshot.pipeline.prompts import (
    camera_angle_prompt,
    hero_prompt,
    multi_angle_prompt,
    product_bed_prompt,
)
from productshot.pipeline.sizing import resolve_aspect_ratio, resolve_resolution
from productshot.pipeline.tasks import GenerationResult, GenerationTask
from productshot.schemas import (
    AngleImage,
    CameraAngleRequest,
    HeroRequest,
    MultiAngleRequest,
    ProductBedRequest,
)


def hero_task(body: HeroRequest) -> GenerationTask:
    if body.image is None:
        raise InvalidInputError("NO_IMAGE", "Please upload an image file")
    if not body.prompt or not body.prompt.strip():
        raise InvalidInputError("NO_PROMPT", "Please provide a prompt for the image")
    return GenerationTask(
        label="hero",
        prompt=hero_prompt(body.prompt),
        images=[body.image],
        size=resolve_resolution(body.resolution),
    )


def product_bed_task(body: ProductBedRequest) -> GenerationTask:
    if body.bed_image is None or body.product_image is None:
        raise InvalidInputError("MISSING_IMAGES", "Please upload both bed and product images")
    # Bed first, product second: the prompt refers to "this bed".
    return GenerationTask(
        label="product-bed",
        prompt=product_bed_prompt(body.prompt, body.product_type),
        images=[body.bed_image, body.product_image],
        size=resolve_resolution(body.resolution),
    )


def multi_angle_tasks(body: MultiAngleRequest) -> list[GenerationTask]:
    if body.image is None:
        raise InvalidInputError("NO_IMAGE", "Please upload an image")
    if body.angles is None:
        raise InvalidInputError("NO_ANGLES", "Please select at least one angle")
    angles = [a.strip() for a in body.angles if a and a.strip()]
    if not angles:
        raise InvalidInputError("INVALID_ANGLES", "Please select at least one angle")

    size = resolve_resolution(body.resolution)
    return [
        GenerationTask(
            label=angle,
            prompt=multi_angle_prompt(angle, body.prompt),
            images=[body.image],
            size=size,
        )
        for angle in angles
    ]


def camera_angle_task(body: CameraAngleRequest) -> GenerationTask:
    if body.image is None:
        raise InvalidInputError("NO_IMAGE", "Please upload an image")
    prompt = camera_angle_prompt(body.angle, body.angle_prompt, body.custom_prompt)
    if not prompt:
        raise InvalidInputError("NO_ANGLE", "Please choose a camera angle or describe one")
    return GenerationTask(
        label=(body.angle or "custom").strip() or "custom",
        prompt=prompt,
        images=[body.image],
        size=resolve_aspect_ratio(body.aspect_ratio, body.quality),
    )


def require_image(result: GenerationResult) -> str:
    """Unwrap a single-image action or raise with the task's own code."""
    if result.ok and result.image_url:
        return result.image_url
    raise GenerationFailedError(
        result.error_code or "GENERATION_FAILED",
        result.message or "Failed to generate image",
        diagnostic=result.diagnostic,
    )


def to_angle_image(result: GenerationResult) -> AngleImage:
    if result.ok and result.image_url:
        return AngleImage(angle=result.label, url=result.image_url)
    return AngleImage(
        angle=result.label,
        error=result.message,
        code=result.error_code,
        debug=result.diagnostic,
    )
