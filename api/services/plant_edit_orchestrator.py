"""
Plant edit orchestration.

Runs one upload through the whole pipeline:

    RECEIVED → NORMALIZED → MASK_BUILT → STAGED → SUBMITTED → RESULT_FETCHED → RESPOND

Any step can move the request to FAILED instead. The staged image and mask
are released as soon as the edit call returns or raises, before the result is
fetched. There is no retry; a failed request is reported back to the caller.
"""
import asyncio
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import structlog

from core.errors import PlantEditError
from services.artifact_store import EphemeralArtifactStore, artifact_store
from services.edit_service_client import EditServiceClient, edit_service_client
from services.image_normalizer import ImageNormalizer, RawImageInput, image_normalizer
from services.mask_synthesizer import synthesize_mask
from services.result_fetcher import EditResponsePayload, ResultFetcher, result_fetcher

logger = structlog.stdlib.get_logger(__name__)


class EditState(str, Enum):
    """Pipeline states"""

    RECEIVED = "received"
    NORMALIZED = "normalized"
    MASK_BUILT = "mask_built"
    STAGED = "staged"
    SUBMITTED = "submitted"
    RESULT_FETCHED = "result_fetched"
    RESPOND = "respond"
    FAILED = "failed"


@dataclass
class EditFailure:
    """Structured error returned to the caller"""

    kind: str
    message: str
    status_code: int


@dataclass
class PlantEditOutcome:
    """Terminal result of one request"""

    state: EditState
    payload: Optional[EditResponsePayload] = None
    error: Optional[EditFailure] = None
    history: List[EditState] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state == EditState.RESPOND


class PlantEditOrchestrator:
    """Sequences normalization, masking, staging, editing and fetching for one request"""

    def __init__(
        self,
        normalizer: Optional[ImageNormalizer] = None,
        store: Optional[EphemeralArtifactStore] = None,
        edit_client: Optional[EditServiceClient] = None,
        fetcher: Optional[ResultFetcher] = None,
        band_fraction: Optional[float] = None,
    ):
        self.normalizer = normalizer or image_normalizer
        self.store = store or artifact_store
        self.edit_client = edit_client or edit_service_client
        self.fetcher = fetcher or result_fetcher
        self.band_fraction = band_fraction

    async def handle(self, raw: RawImageInput, correlation_id: Optional[str] = None) -> PlantEditOutcome:
        """
        Run the pipeline for one uploaded image.

        Never raises for pipeline failures; the outcome carries either the
        payload (state RESPOND) or an EditFailure (state FAILED).
        """
        correlation_id = correlation_id or uuid.uuid4().hex[:12]
        history = [EditState.RECEIVED]
        start_time = time.time()
        log = logger.bind(correlation_id=correlation_id)

        def advance(state: EditState) -> None:
            history.append(state)
            log.info("Pipeline state changed", state=state.value)

        try:
            # Pillow decode/resize/encode blocks, so it runs off the event loop
            normalized = await asyncio.to_thread(self.normalizer.normalize, raw)
            advance(EditState.NORMALIZED)

            mask = await asyncio.to_thread(synthesize_mask, normalized.width, normalized.height, self.band_fraction)
            advance(EditState.MASK_BUILT)

            with self.store.staged_pair(normalized.png_bytes, mask.png_bytes, correlation_id) as (
                image_artifact,
                mask_artifact,
            ):
                advance(EditState.STAGED)
                reference = await self.edit_client.edit(image_artifact, mask_artifact)
                advance(EditState.SUBMITTED)

            payload = await self.fetcher.fetch(reference)
            advance(EditState.RESULT_FETCHED)

        except PlantEditError as e:
            log.error(
                "Plant edit failed", after_state=history[-1].value, error_kind=e.kind, error_message=e.message
            )
            return self._fail(history, EditFailure(kind=e.kind, message=e.message, status_code=e.status_code))
        except Exception as e:
            log.exception(f"Unexpected error: {e}", after_state=history[-1].value)
            return self._fail(history, EditFailure(kind="internal", message="Failed to edit image", status_code=500))

        advance(EditState.RESPOND)
        log.info(
            "Plant edit completed", duration_s=round(time.time() - start_time, 2), result_bytes=payload.byte_length
        )
        return PlantEditOutcome(state=EditState.RESPOND, payload=payload, history=history)

    def _fail(self, history: List[EditState], failure: EditFailure) -> PlantEditOutcome:
        history.append(EditState.FAILED)
        return PlantEditOutcome(state=EditState.FAILED, error=failure, history=history)


# Global orchestrator instance
plant_edit_orchestrator = PlantEditOrchestrator()
