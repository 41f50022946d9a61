# ─────────────────────────────────────────────────────────────────────────────
# Output Sizing Tests — named resolutions, aspect ratio × quality tier
# ─────────────────────────────────────────────────────────────────────────────

import pytest
from hypothesis import given
from hypothesis import strategies as st

from productshot.pipeline.sizing import (
    ASPECT_RATIOS,
    QUALITY_TIERS,
    RESOLUTIONS,
    OutputSize,
    resolve_aspect_ratio,
    resolve_resolution,
)


class TestResolveResolution:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("1024x1024", OutputSize(1024, 1024)),
            ("1024x1536", OutputSize(1024, 1536)),
            ("1536x1024", OutputSize(1536, 1024)),
        ],
    )
    def test_known_names(self, name, expected):
        assert resolve_resolution(name) == expected

    @pytest.mark.parametrize("name", [None, "", "8000x8000", "huge", "1024X1024"])
    def test_unknown_falls_back_to_square(self, name):
        assert resolve_resolution(name) == OutputSize(1024, 1024)

    def test_directive_format(self):
        assert resolve_resolution("1024x1536").directive == "1024x1536"


class TestResolveAspectRatio:
    @pytest.mark.parametrize(
        ("ratio", "quality", "expected"),
        [
            ("1:1", "1K", (1024, 1024)),
            ("16:9", "1K", (1024, 576)),
            ("9:16", "1K", (576, 1024)),
            ("4:3", "2K", (2048, 1536)),
            ("3:4", "2K", (1536, 2048)),
            ("16:9", "4K", (4096, 2304)),
        ],
    )
    def test_table(self, ratio, quality, expected):
        size = resolve_aspect_ratio(ratio, quality)
        assert (size.width, size.height) == expected

    def test_quality_is_case_insensitive(self):
        assert resolve_aspect_ratio("1:1", "2k") == OutputSize(2048, 2048)

    def test_unknown_ratio_falls_back_to_square(self):
        assert resolve_aspect_ratio("21:9", "2K") == OutputSize(2048, 2048)

    def test_unknown_quality_falls_back_to_base_tier(self):
        assert resolve_aspect_ratio("16:9", "8K") == OutputSize(1024, 576)

    def test_nothing_selected(self):
        assert resolve_aspect_ratio(None, None) == OutputSize(1024, 1024)


class TestSizingProperties:
    @given(ratio=st.text(max_size=8), quality=st.text(max_size=4))
    def test_never_raises_and_long_side_is_a_tier(self, ratio, quality):
        size = resolve_aspect_ratio(ratio, quality)
        assert max(size.width, size.height) in QUALITY_TIERS.values()
        assert min(size.width, size.height) > 0

    @given(name=st.text(max_size=12))
    def test_resolution_always_known(self, name):
        assert resolve_resolution(name) in RESOLUTIONS.values()

    @given(
        ratio=st.sampled_from(sorted(ASPECT_RATIOS)),
        quality=st.sampled_from(sorted(QUALITY_TIERS)),
    )
    def test_orientation_follows_ratio(self, ratio, quality):
        w, h = (int(p) for p in ratio.split(":"))
        size = resolve_aspect_ratio(ratio, quality)
        assert (size.width > size.height) == (w > h)
        assert (size.width == size.height) == (w == h)
