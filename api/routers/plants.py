"""
Plant edit API routes
"""
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from middleware.logging_middleware import get_logger, new_request_id
from schemas.plant_edit import ErrorResponse, PlantEditRequest, PlantEditResponse
from services.image_normalizer import RawImageInput
from services.plant_edit_orchestrator import plant_edit_orchestrator

from core.errors import DecodeError

logger = get_logger(__name__)
router = APIRouter()  # No prefix here - it's added in main.py


@router.post(
    "/generate-plant",
    response_model=PlantEditResponse,
    responses={402: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def generate_plant(body: PlantEditRequest, request: Request):
    """
    Add plants to the floor area of a room photo.

    The image is squared to 1024x1024, the bottom band is marked editable and
    the edit service fills it with plants. Returns the result as a PNG data URI.
    """
    correlation_id = getattr(request.state, "request_id", None) or new_request_id()
    logger.info("Plant edit requested", image_length=len(body.image), image_type=body.image_type)

    try:
        raw = RawImageInput.from_payload(body.image, body.image_type)
    except DecodeError as e:
        logger.warning("Rejected undecodable payload", error_message=e.message)
        return JSONResponse(status_code=e.status_code, content={"error": e.message})

    outcome = await plant_edit_orchestrator.handle(raw, correlation_id=correlation_id)

    if not outcome.ok:
        logger.warning(
            "Responding with error",
            error_kind=outcome.error.kind,
            status_code=outcome.error.status_code,
        )
        return JSONResponse(status_code=outcome.error.status_code, content={"error": outcome.error.message})

    return PlantEditResponse(image_url=outcome.payload.data_uri)
