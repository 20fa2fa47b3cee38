"""
Image probing and normalization with Pillow.

Every accepted upload is converted to one canonical representation before it
is stored: the first frame, RGB, at most IMAGE_MAX_WIDTH pixels wide (never
upscaled), re-encoded as JPEG at IMAGE_JPEG_QUALITY. Stored images therefore
have a predictable format and size envelope regardless of what was uploaded.
"""

import io
import random
import time
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

ALLOWED_FORMATS = frozenset({"jpeg", "png", "webp", "gif", "tiff", "avif"})

# Pillow reports some camera JPEGs as MPO (multi-picture container)
_FORMAT_ALIASES = {"mpo": "jpeg"}

# Upper bound on declared width * height. Pillow raises DecompressionBombError
# at twice its own limit, so keep its limit in step with ours.
MAX_IMAGE_PIXELS = 50_000_000
Image.MAX_IMAGE_PIXELS = MAX_IMAGE_PIXELS


@dataclass(frozen=True)
class ProcessedImage:
    data: bytes
    width: int
    height: int


def probe_format(data: bytes) -> str | None:
    """
    Detect the format of an encoded image from its bytes.

    Returns the lowercased format name (e.g. "png"), or None when Pillow
    can't identify the data as an image or the declared dimensions exceed
    MAX_IMAGE_PIXELS. Only the header is read, so oversized images are
    rejected before any pixel data is decoded.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format
            pixels = img.width * img.height
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError):
        return None
    if not fmt or pixels > MAX_IMAGE_PIXELS:
        return None
    fmt = fmt.lower()
    return _FORMAT_ALIASES.get(fmt, fmt)


def normalize_image(data: bytes, max_width: int = 1200, quality: int = 80) -> ProcessedImage:
    """Resize (downscale only) and re-encode an image as JPEG."""
    with Image.open(io.BytesIO(data)) as img:
        img.seek(0)
        frame = img.convert("RGB")

    if frame.width > max_width:
        height = max(1, round(frame.height * max_width / frame.width))
        frame = frame.resize((max_width, height), Image.Resampling.LANCZOS)

    out = io.BytesIO()
    frame.save(out, format="JPEG", quality=quality)
    return ProcessedImage(data=out.getvalue(), width=frame.width, height=frame.height)


def generate_filename() -> str:
    """Unique stored filename: millisecond timestamp plus a random suffix."""
    return f"{int(time.time() * 1000)}-{random.randint(0, 999_999_999)}.jpg"
