# ─────────────────────────────────────────────────────────────────────────────
# Output Sizing — client selectors → upstream width × height
# ─────────────────────────────────────────────────────────────────────────────
# Unknown selectors fall back to the square base-tier entry; this module
# never raises.
# ─────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class OutputSize:
    width: int
    height: int

    @property
    def directive(self) -> str:
        """Upstream imageSize string, e.g. '1024x1536'."""
        return f"{self.width}x{self.height}"


DEFAULT_RESOLUTION = "1024x1024"
DEFAULT_QUALITY = "1K"
DEFAULT_ASPECT_RATIO = "1:1"

RESOLUTIONS: dict[str, OutputSize] = {
    "1024x1024": OutputSize(1024, 1024),
    "1024x1536": OutputSize(1024, 1536),
    "1536x1024": OutputSize(1536, 1024),
}

QUALITY_TIERS: dict[str, int] = {
    "1K": 1024,
    "2K": 2048,
    "4K": 4096,
}

# (width factor, height factor) relative to the tier's base size.
ASPECT_RATIOS: dict[str, tuple[float, float]] = {
    "1:1": (1.0, 1.0),
    "4:3": (1.0, 0.75),
    "3:4": (0.75, 1.0),
    "16:9": (1.0, 9 / 16),
    "9:16": (9 / 16, 1.0),
}


def resolve_resolution(resolution: str | None) -> OutputSize:
    """Map a named resolution ('1024x1536') to an OutputSize."""
    key = (resolution or "").strip()
    return RESOLUTIONS.get(key, RESOLUTIONS[DEFAULT_RESOLUTION])


def resolve_aspect_ratio(aspect_ratio: str | None, quality: str | None) -> OutputSize:
    """Map an aspect ratio + quality tier ('16:9', '2K') to an OutputSize.

    The long side is the tier's base size; the short side is rounded.
    """
    base = QUALITY_TIERS.get((quality or "").strip().upper(), QUALITY_TIERS[DEFAULT_QUALITY])
    w_factor, h_factor = ASPECT_RATIOS.get(
        (aspect_ratio or "").strip(), ASPECT_RATIOS[DEFAULT_ASPECT_RATIO]
    )
    return OutputSize(round(base * w_factor), round(base * h_factor))
