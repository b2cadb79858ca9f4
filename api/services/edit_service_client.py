"""
Client for the external masked image edit (OpenAI images.edit).

One call per request, fixed prompt, fixed output geometry. OpenAI SDK errors
are translated into the pipeline's own error types here so nothing above this
module needs to know about the SDK.
"""
import logging
import time
from dataclasses import dataclass
from typing import Optional

import openai

from core.config import settings
from core.errors import EmptyResult, QuotaExceeded, ServiceError
from services.artifact_store import StagedArtifact

logger = logging.getLogger(__name__)

PLANT_EDIT_PROMPT = (
    "Add realistic indoor plants ONLY in the white areas of the mask. Important instructions:\n"
    "1. DO NOT modify ANY existing elements in the room\n"
    "2. DO NOT change lighting, colors, or furniture\n"
    "3. ADD plants of varying sizes (small to large)\n"
    "4. PLACE plants naturally on the floor\n"
    "5. USE common indoor plants like Snake Plants, Peace Lilies, Monstera, and Fiddle Leaf Figs\n"
    "6. ENSURE plants look realistic and properly scaled to the room\n"
    "7. MAINTAIN the exact same room perspective and lighting"
)

# Error codes OpenAI uses for billing / quota exhaustion
QUOTA_ERROR_CODES = {"billing_hard_limit_reached", "insufficient_quota"}


@dataclass(frozen=True)
class EditResultReference:
    """Short-lived URL of the edited image"""

    url: str


class EditServiceClient:
    """Wraps a single images.edit call"""

    def __init__(self, api_key: Optional[str] = None, client: Optional[openai.AsyncOpenAI] = None):
        self.api_key = api_key if api_key is not None else settings.openai_api_key
        self.model = settings.openai_image_model
        self.size = settings.edit_image_size
        self._client = client

    def _get_client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            if not self.api_key:
                raise ServiceError(500, "Missing OPENAI_API_KEY environment variable")
            self._client = openai.AsyncOpenAI(
                api_key=self.api_key,
                timeout=settings.openai_timeout,
                max_retries=settings.openai_max_retries,
            )
        return self._client

    async def edit(self, image: StagedArtifact, mask: StagedArtifact) -> EditResultReference:
        """
        Submit the staged image and mask for editing.

        Returns:
            EditResultReference pointing at the generated image

        Raises:
            QuotaExceeded: billing or quota limit reached
            ServiceError: any other API or transport failure
            EmptyResult: the API succeeded but returned no URL
        """
        client = self._get_client()
        start_time = time.time()
        logger.info(f"Calling OpenAI images.edit (model={self.model}, size={self.size}x{self.size})")

        try:
            with open(image.path, "rb") as image_file, open(mask.path, "rb") as mask_file:
                response = await client.images.edit(
                    image=image_file,
                    mask=mask_file,
                    prompt=PLANT_EDIT_PROMPT,
                    model=self.model,
                    n=1,
                    size=f"{self.size}x{self.size}",
                    response_format="url",
                )
        except openai.APIStatusError as e:
            code = getattr(e, "code", None)
            error_type = getattr(e, "type", None)
            if code in QUOTA_ERROR_CODES or error_type in QUOTA_ERROR_CODES:
                logger.warning(f"OpenAI quota exceeded ({code or error_type}): {e}")
                raise QuotaExceeded() from e
            logger.error(f"OpenAI API error {e.status_code}: {e}")
            raise ServiceError(e.status_code, e.message) from e
        except openai.APIConnectionError as e:
            logger.error(f"OpenAI connection failed: {type(e).__name__}: {e}")
            raise ServiceError(None, f"Could not reach the image edit service: {e}") from e
        except openai.APIError as e:
            logger.error(f"OpenAI API error: {type(e).__name__}: {e}")
            raise ServiceError(None, e.message) from e

        elapsed = time.time() - start_time
        data = response.data or []
        url = data[0].url if data else None
        if not url:
            logger.error(f"OpenAI returned no image URL after {elapsed:.2f}s")
            raise EmptyResult()

        logger.info(f"OpenAI API response received in {elapsed:.2f}s")
        return EditResultReference(url=url)


# Global client instance
edit_service_client = EditServiceClient()
