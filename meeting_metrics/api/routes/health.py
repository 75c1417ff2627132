# meeting_metrics/api/routes/health.py
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from meeting_metrics.core.clock import Clock, get_clock
from meeting_metrics.core.config import get_settings
from meeting_metrics.services.aggregation_dispatcher import AggregationDispatcher, get_dispatcher


router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """
    Response schema for the health check endpoint.
    """

    status: str = Field(
        ...,
        description="Overall health status of the Meeting Metrics service.",
        examples=["ok"],
    )
    app_name: str = Field(
        ...,
        description="Human-friendly name of the running application.",
        examples=["Meeting Metrics"],
    )
    environment: str = Field(
        ...,
        description="Current deployment environment (local/test/dev/stage/prod).",
        examples=["local"],
    )
    timestamp_utc: datetime = Field(
        ...,
        description="Server-side timestamp (UTC) at which this health check was generated.",
        examples=["2025-01-01T10:30:00Z"],
    )
    pending_recomputations: int = Field(
        ...,
        description="Performance recomputations dispatched but not finished yet.",
        examples=[0],
    )
    deferred_recomputations: int = Field(
        ...,
        description=(
            "Recomputations that failed after their attendance write and are "
            "waiting for a retry. Non-zero means some scores may be stale."
        ),
        examples=[0],
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check for the Meeting Metrics service",
    description=(
        "Lightweight endpoint to verify that the Meeting Metrics backend is "
        "up and responding.\n\n"
        "Also reports the background recomputation queue so operators can "
        "spot performance scores lagging behind attendance writes."
    ),
    responses={
        200: {
            "description": "Service is healthy and responding as expected.",
            "content": {
                "application/json": {
                    "example": {
                        "status": "ok",
                        "app_name": "Meeting Metrics",
                        "environment": "local",
                        "timestamp_utc": "2025-01-01T10:30:00Z",
                        "pending_recomputations": 0,
                        "deferred_recomputations": 0,
                    }
                }
            },
        }
    },
)
async def health_check(
    clock: Clock = Depends(get_clock),
    dispatcher: AggregationDispatcher = Depends(get_dispatcher),
) -> HealthResponse:
    """
    Returns the current health status of the service.

    Does **not** touch the database so that it stays reliable even when
    downstream components are degraded.
    """
    settings = get_settings()
    return HealthResponse(
        status="ok",
        app_name=settings.APP_NAME,
        environment=settings.APP_ENV,
        timestamp_utc=clock.now(),
        pending_recomputations=dispatcher.pending_count,
        deferred_recomputations=len(dispatcher.deferred),
    )
