"""
Image normalization for the masked edit pipeline.

The edit endpoint only accepts square PNGs of a fixed size, so every upload
is decoded, centre-cropped to a square, flattened against white and scaled
to fill a T×T canvas.
"""
import base64
import binascii
import io
import logging
from dataclasses import dataclass
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from core.config import settings
from core.errors import DecodeError

logger = logging.getLogger(__name__)

WHITE = (255, 255, 255)


@dataclass
class RawImageInput:
    """Uploaded image bytes as received from the caller."""

    data: bytes
    mime_type: str
    encoding: str = "base64"  # "data-uri" or "base64"

    @classmethod
    def from_payload(cls, image: str, image_type: Optional[str] = None) -> "RawImageInput":
        """
        Build from the request body's image string.

        Accepts either a data URI ("data:image/jpeg;base64,...") or raw base64.
        The MIME type declared inside a data URI wins over image_type.
        """
        encoding = "base64"
        mime_type = image_type or "application/octet-stream"
        payload = image.strip()

        if payload.startswith("data:"):
            header, sep, payload = payload.partition(",")
            if not sep:
                raise DecodeError("Malformed data URI: missing ',' separator")
            declared = header[len("data:"):].split(";", 1)[0]
            if declared:
                mime_type = declared
            encoding = "data-uri"

        try:
            data = base64.b64decode(payload)
        except (binascii.Error, ValueError) as e:
            raise DecodeError(f"Image is not valid base64: {e}") from e

        if not data:
            raise DecodeError("Image payload is empty")

        return cls(data=data, mime_type=mime_type, encoding=encoding)


@dataclass
class NormalizedImage:
    """Square RGB canvas ready to be sent for editing."""

    image: Image.Image
    png_bytes: bytes

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height


class ImageNormalizer:
    """Turns arbitrary uploads into the fixed square geometry the edit API needs"""

    def __init__(self, target_size: Optional[int] = None, max_input_bytes: Optional[int] = None):
        self.target_size = target_size or settings.edit_image_size
        self.max_input_bytes = max_input_bytes or settings.max_upload_bytes

    def normalize(self, raw: RawImageInput) -> NormalizedImage:
        """
        Decode, centre-crop to square and scale to target_size × target_size.

        Raises:
            DecodeError: payload is too large or is not a decodable raster image
        """
        if not raw.data:
            raise DecodeError("Image payload is empty")
        if len(raw.data) > self.max_input_bytes:
            raise DecodeError(f"Image is too large ({len(raw.data)} bytes, limit {self.max_input_bytes})")

        try:
            with Image.open(io.BytesIO(raw.data)) as source:
                source.load()
                logger.info(f"Image loaded ({raw.mime_type}), dimensions: {source.width}x{source.height}")
                oriented = ImageOps.exif_transpose(source)
                flattened = self._flatten(oriented)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise DecodeError(f"Could not decode image: {e}") from e

        canvas = self._crop_to_square_canvas(flattened)

        buffer = io.BytesIO()
        canvas.save(buffer, format="PNG")
        png_bytes = buffer.getvalue()
        logger.info(f"Image normalized to {canvas.width}x{canvas.height}, {len(png_bytes)} bytes")

        return NormalizedImage(image=canvas, png_bytes=png_bytes)

    def _flatten(self, image: Image.Image) -> Image.Image:
        """Composite any transparency onto white and return an RGB image"""
        has_alpha = image.mode in ("RGBA", "LA", "PA") or (image.mode == "P" and "transparency" in image.info)
        if not has_alpha:
            return image.convert("RGB")

        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, WHITE)
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background

    def _crop_to_square_canvas(self, image: Image.Image) -> Image.Image:
        width, height = image.size
        side = min(width, height)
        left = (width - side) // 2
        top = (height - side) // 2

        square = image.crop((left, top, left + side, top + side))
        scaled = square.resize((self.target_size, self.target_size), Image.Resampling.LANCZOS)

        canvas = Image.new("RGB", (self.target_size, self.target_size), WHITE)
        canvas.paste(scaled, (0, 0))
        return canvas


# Global service instance
image_normalizer = ImageNormalizer()
