import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from tracker_app.schemas.dashboard import DashboardError, DashboardResponse, RecentActivity
from tracker_app.services.dashboard_service import DashboardService
from tracker_app.dependencies import get_dashboard_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _error(error: str, exc: Exception) -> JSONResponse:
    body = DashboardError(
        error=error,
        message=str(exc) or exc.__class__.__name__,
        timestamp=datetime.now(timezone.utc),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body.model_dump(mode="json", by_alias=True),
    )


@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    responses={500: {"model": DashboardError}},
)
async def get_dashboard(
    dashboard_service: DashboardService = Depends(get_dashboard_service)
):
    """Aggregate visitor statistics for the admin dashboard"""
    try:
        return await dashboard_service.get_dashboard()
    except Exception as e:
        logger.exception("Dashboard API error")
        return _error("Failed to fetch dashboard data", e)


@router.post(
    "/dashboard",
    response_model=RecentActivity,
    responses={500: {"model": DashboardError}},
)
async def get_recent_activity(
    dashboard_service: DashboardService = Depends(get_dashboard_service)
):
    """Visits in the last minute, polled by the dashboard for live updates"""
    try:
        return dashboard_service.get_recent_activity()
    except Exception as e:
        logger.exception("Dashboard POST error")
        return _error("Failed to process request", e)
