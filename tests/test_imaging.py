"""
Tests for image probing and normalization (cardsets.imaging).
"""

import io
import re

import pytest
from PIL import Image

from cardsets.imaging import (
    ALLOWED_FORMATS,
    MAX_IMAGE_PIXELS,
    generate_filename,
    normalize_image,
    probe_format,
)

from conftest import declared_png


class TestProbeFormat:

    @pytest.mark.parametrize(
        "fmt,expected",
        [("JPEG", "jpeg"), ("PNG", "png"), ("WEBP", "webp"), ("GIF", "gif"), ("TIFF", "tiff")],
    )
    def test_detects_allowed_formats(self, make_image, fmt, expected):
        detected = probe_format(make_image(fmt))
        assert detected == expected
        assert detected in ALLOWED_FORMATS

    def test_detects_disallowed_format(self, make_image):
        detected = probe_format(make_image("BMP"))
        assert detected == "bmp"
        assert detected not in ALLOWED_FORMATS

    def test_garbage_is_undetermined(self):
        assert probe_format(b"\x00\x01not an image") is None

    def test_empty_is_undetermined(self):
        assert probe_format(b"") is None

    def test_header_only_png_is_detected(self):
        assert probe_format(declared_png(100, 100)) == "png"

    def test_decompression_bomb_is_rejected(self):
        """Far beyond the pixel limit: Pillow refuses to open it at all."""
        assert probe_format(declared_png(20_000, 20_000)) is None

    def test_just_over_pixel_limit_is_rejected(self):
        width = 10_000
        height = MAX_IMAGE_PIXELS // width + 1
        assert probe_format(declared_png(width, height)) is None

    def test_pixel_limit_is_inclusive(self):
        width = 10_000
        assert probe_format(declared_png(width, MAX_IMAGE_PIXELS // width)) == "png"


class TestNormalizeImage:

    def test_output_is_jpeg(self, make_image):
        result = normalize_image(make_image("PNG", (40, 30)))
        with Image.open(io.BytesIO(result.data)) as img:
            assert img.format == "JPEG"
            assert img.mode == "RGB"
            assert img.size == (40, 30)
        assert (result.width, result.height) == (40, 30)

    def test_downscales_keeping_aspect_ratio(self, make_image):
        result = normalize_image(make_image("PNG", (3000, 2000)), max_width=1200)
        assert (result.width, result.height) == (1200, 800)

    def test_never_upscales(self, make_image):
        result = normalize_image(make_image("PNG", (100, 700)), max_width=1200)
        assert (result.width, result.height) == (100, 700)

    def test_exact_width_untouched(self, make_image):
        result = normalize_image(make_image("PNG", (1200, 10)), max_width=1200)
        assert (result.width, result.height) == (1200, 10)

    def test_transparent_png(self):
        img = Image.new("RGBA", (20, 20), (0, 255, 0, 0))
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        result = normalize_image(buf.getvalue())
        with Image.open(io.BytesIO(result.data)) as out:
            assert out.mode == "RGB"

    def test_animated_gif_uses_first_frame(self):
        frames = [Image.new("RGB", (16, 16), color) for color in ((255, 0, 0), (0, 0, 255))]
        buf = io.BytesIO()
        frames[0].save(buf, format="GIF", save_all=True, append_images=frames[1:])

        result = normalize_image(buf.getvalue())
        with Image.open(io.BytesIO(result.data)) as out:
            r, g, b = out.getpixel((8, 8))
        assert r > 200 and b < 60

    def test_quality_affects_size(self):
        # A noisy image so JPEG quality actually matters
        img = Image.effect_noise((300, 300), 80).convert("RGB")
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        data = buf.getvalue()

        low = normalize_image(data, quality=20)
        high = normalize_image(data, quality=95)
        assert len(low.data) < len(high.data)


def test_generated_filenames_are_unique_jpgs():
    names = {generate_filename() for _ in range(50)}
    assert len(names) == 50
    assert all(re.fullmatch(r"\d+-\d+\.jpg", name) for name in names)
