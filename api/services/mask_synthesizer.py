"""
Edit mask generation.

The mask is the same size as the normalized image. A full-width band at the
bottom is opaque white (the only region the edit service may change); every
other pixel is fully transparent.
"""
import io
import logging
import math
from dataclasses import dataclass
from fractions import Fraction
from typing import Optional

from PIL import Image, ImageDraw

from core.config import settings

logger = logging.getLogger(__name__)

TRANSPARENT = (0, 0, 0, 0)
OPAQUE_WHITE = (255, 255, 255, 255)


@dataclass
class EditMask:
    """RGBA mask plus its PNG encoding"""

    image: Image.Image
    png_bytes: bytes
    band_top: int  # First editable row


def band_top(height: int, band_fraction: float) -> int:
    """First row of the editable band: the smallest y with y >= height * (1 - fraction)."""
    # Exact decimal arithmetic; 10 * (1 - 0.3) in floats is not exactly 7
    return math.ceil(height * (1 - Fraction(str(band_fraction))))


def synthesize_mask(width: int, height: int, band_fraction: Optional[float] = None) -> EditMask:
    """
    Build a width×height mask with the bottom band_fraction of rows editable.

    Raises:
        ValueError: non-positive dimensions or a fraction outside (0, 1]
    """
    fraction = settings.mask_band_fraction if band_fraction is None else band_fraction
    if width <= 0 or height <= 0:
        raise ValueError(f"Mask dimensions must be positive, got {width}x{height}")
    if not 0 < fraction <= 1:
        raise ValueError(f"Band fraction must be in (0, 1], got {fraction}")

    mask = Image.new("RGBA", (width, height), TRANSPARENT)
    top = band_top(height, fraction)
    if top < height:
        draw = ImageDraw.Draw(mask)
        draw.rectangle([0, top, width - 1, height - 1], fill=OPAQUE_WHITE)

    buffer = io.BytesIO()
    mask.save(buffer, format="PNG")
    png_bytes = buffer.getvalue()
    logger.info(f"Mask created: {width}x{height}, editable rows {top}-{height - 1}, {len(png_bytes)} bytes")

    return EditMask(image=mask, png_bytes=png_bytes, band_top=top)
