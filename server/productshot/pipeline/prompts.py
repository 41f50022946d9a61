# ─────────────────────────────────────────────────────────────────────────────
# Prompt Templates — per-action prompt composition and angle tables
# ─────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

HERO_SUFFIX = "High quality, professional product photography, 4k, detailed."

# ── Multi-angle set (one request, N tasks) ───────────────────────────────────

MULTI_ANGLE_PROMPTS: dict[str, str] = {
    "front": "Front view, straight on, professional photography",
    "side-left": "Left side view, 45 degree angle from left",
    "side-right": "Right side view, 45 degree angle from right",
    "back": "Back view, looking at the rear",
    "top-down": "Top down view, bird's eye perspective",
    "corner": "Corner view, 3/4 perspective",
}

# ── Camera-angle set (one request per angle, driven by the client) ───────────

CAMERA_ANGLE_PROMPTS: dict[str, str] = {
    "front": "Front view, straight on, professional product photography",
    "back": "Back view, looking at the rear, professional product photography",
    "side-left": "Left side view, 45 degree angle from left, professional photography",
    "side-right": "Right side view, 45 degree angle from right, professional photography",
    "corner-left": "Corner view from left, 3/4 perspective, professional photography",
    "corner-right": "Corner view from right, 3/4 perspective, professional photography",
    "top-down": "Top down view, bird's eye perspective, overhead shot",
    "low-angle": "Low angle shot, looking up, dramatic perspective",
    "high-angle": "High angle shot, looking down, elevated perspective",
    "wide": "Wide shot, showing full context and environment",
    "close-up": "Close-up shot, detailed view of product",
    "macro": "Macro shot, extreme close-up, highly detailed",
    "panning-left": "Panning shot from right to left, motion blur edges",
    "panning-right": "Panning shot from left to right, motion blur edges",
    "zoom-in": "Zoom in shot, dynamic perspective compression",
}


def hero_prompt(prompt: str) -> str:
    return f"{prompt.strip()}. {HERO_SUFFIX}"


def product_bed_prompt(prompt: str | None, product_type: str | None) -> str:
    """Client prompt wins; otherwise a placement instruction for the product."""
    if prompt and prompt.strip():
        return prompt.strip()
    product = (product_type or "").strip() or "product"
    return (
        f"Place a {product} naturally on this bed, properly aligned, realistic composition, "
        "professional product photography, 4k quality"
    )


def multi_angle_prompt(angle: str, prompt: str | None) -> str:
    """Compose the prompt for one angle of a multi-angle batch.

    Unknown angle ids still produce a usable instruction rather than an
    error, so a client can ask for angles the table does not list.
    """
    angle_text = MULTI_ANGLE_PROMPTS.get(angle, f"Create a {angle} perspective")
    if prompt and prompt.strip():
        return f"{prompt.strip()}. {angle_text}"
    return f"{angle_text}. Maintain consistent lighting and style."


def camera_angle_prompt(
    angle: str | None, angle_prompt: str | None, custom_prompt: str | None
) -> str:
    """'{angle prompt} {custom prompt}', falling back to the angle table."""
    base = (angle_prompt or "").strip() or CAMERA_ANGLE_PROMPTS.get((angle or "").strip(), "")
    return f"{base} {(custom_prompt or '').strip()}".strip()


def assistant_system_prompt(
    product_type: str | None,
    brand_style: str | None = None,
    target_audience: str | None = None,
) -> str:
    """System prompt for drafting an image-generation prompt."""
    text = "You are an expert e-commerce product photographer and AI image prompt engineer. "

    if product_type and product_type.strip() and product_type.strip() != "general":
        text += (
            "Generate a detailed, high-quality AI image generation prompt "
            f"for a {product_type.strip()} product. "
        )
    else:
        text += "Generate a detailed, high-quality AI image generation prompt for this product. "

    if brand_style and brand_style.strip():
        text += f"The brand style is: {brand_style.strip()}. "
    if target_audience and target_audience.strip():
        text += f"The target audience is: {target_audience.strip()}. "

    text += (
        "\nCreate a detailed prompt that includes:\n"
        "1. Product positioning and composition\n"
        "2. Lighting style (soft, dramatic, natural, studio)\n"
        "3. Background setting (white, lifestyle, contextual, gradient)\n"
        "4. Color mood and palette\n"
        "5. Camera angle and perspective\n"
        "6. Style modifiers (professional, commercial, e-commerce)\n"
        "7. Technical quality (8k, ultra-detailed, professional photography)\n"
        "Format the prompt as a single paragraph optimized for AI image generation."
    )
    return text


def assistant_user_message(has_image: bool) -> str:
    if has_image:
        return (
            "Please analyze this product image and generate an optimized "
            "AI image generation prompt."
        )
    return (
        "Generate a professional AI image generation prompt based on the "
        "product type and brand information provided."
    )
