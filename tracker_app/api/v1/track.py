import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from tracker_app.schemas.visitor import ClientFingerprint, ErrorResponse, TrackResponse
from tracker_app.services.tracking_service import TrackingService
from tracker_app.dependencies import get_tracking_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["track"])


def tracking_error(message: str) -> JSONResponse:
    """Error envelope returned by the track endpoint"""
    body = ErrorResponse(error="Tracking failed", message=message)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body.model_dump(),
    )


@router.post(
    "/track",
    response_model=TrackResponse,
    responses={500: {"model": ErrorResponse}},
)
async def track_visitor(
    fingerprint: ClientFingerprint,
    request: Request,
    tracking_service: TrackingService = Depends(get_tracking_service)
):
    """
    Track one page load.

    Resolves the client IP and its geolocation, classifies the visitor,
    stores a visitor row and returns the summary plus a detailed analysis.
    Geolocation and storage failures degrade the response instead of
    failing it. Malformed bodies are turned into the same 500 envelope by
    the validation handler in main.py.
    """
    try:
        return await tracking_service.track(fingerprint, request.headers)
    except Exception as e:
        logger.exception("Tracking error")
        return tracking_error(str(e) or e.__class__.__name__)
