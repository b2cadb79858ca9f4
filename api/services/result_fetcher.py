"""
Downloads the edited image and turns it into an embeddable data URI.
"""
import base64
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from core.config import settings
from core.errors import FetchError, ValidationError
from services.edit_service_client import EditResultReference

logger = logging.getLogger(__name__)

PNG_MEDIA_TYPE = "image/png"


@dataclass(frozen=True)
class EditResponsePayload:
    """Final image returned to the caller"""

    data_uri: str
    byte_length: int
    media_type: str = PNG_MEDIA_TYPE


class ResultFetcher:
    """Retrieves the edit result by URL and validates it"""

    def __init__(
        self,
        timeout: Optional[float] = None,
        min_bytes: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout or settings.fetch_timeout
        self.min_bytes = settings.min_result_bytes if min_bytes is None else min_bytes
        self._transport = transport

    async def fetch(self, reference: EditResultReference) -> EditResponsePayload:
        """
        Download the image behind reference and return it as a PNG data URI.

        Raises:
            FetchError: transport failure or non-2xx response
            ValidationError: empty or truncated image
        """
        logger.info("Fetching generated image...")
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, follow_redirects=True, transport=self._transport
            ) as client:
                response = await client.get(reference.url)
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to fetch image: {type(e).__name__}: {e}") from e

        if not response.is_success:
            raise FetchError(f"Failed to fetch image: {response.status_code} {response.reason_phrase}")

        logger.info(f"Image fetched, size: {len(response.content)} bytes")
        return self.encode_payload(response.content)

    def encode_payload(self, content: bytes) -> EditResponsePayload:
        """Base64-encode content as a PNG data URI after checking it is a plausible image"""
        if not content:
            raise ValidationError("Generated image is empty")
        if len(content) <= self.min_bytes:
            raise ValidationError(
                f"Invalid or corrupted image data received ({len(content)} bytes, expected more than {self.min_bytes})"
            )

        encoded = base64.b64encode(content).decode("ascii")
        logger.info(f"Base64 conversion complete, length: {len(encoded)}")
        return EditResponsePayload(data_uri=f"data:{PNG_MEDIA_TYPE};base64,{encoded}", byte_length=len(content))


# Global fetcher instance
result_fetcher = ResultFetcher()
