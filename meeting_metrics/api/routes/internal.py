# meeting_metrics/api/routes/internal.py
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy.ext.asyncio import AsyncSession

from meeting_metrics.api.dependencies.internal_auth import verify_internal_api_key
from meeting_metrics.api.routes.performance import to_distinctions
from meeting_metrics.core.clock import Clock, get_clock
from meeting_metrics.core.config import get_settings
from meeting_metrics.core.errors import NotFoundError, UpstreamFailure
from meeting_metrics.db.session import get_db
from meeting_metrics.schemas.performance import (
    Distinctions,
    MirrorRebuildSummary,
    PerformanceRecordRead,
    RecomputeSummary,
)
from meeting_metrics.services.aggregation_dispatcher import AggregationDispatcher, get_dispatcher
from meeting_metrics.services.leaderboard import award_distinctions
from meeting_metrics.services.mirror_sync import rebuild_mirror
from meeting_metrics.services.performance import recompute_all_performance
from meeting_metrics.services.time_windows import month_key

router = APIRouter(
    prefix="/internal",
    tags=["Internal"],
    dependencies=[Depends(verify_internal_api_key)],
)


@router.post(
    "/recompute-performance",
    response_model=RecomputeSummary,
    status_code=HTTPStatus.OK,
    summary="Recompute current-month performance for all active members",
    description=(
        "Recomputes and stores the current month's performance record for "
        "**every active member**.\n\n"
        "Intended for a scheduler or an operator after bulk data changes "
        "(e.g. meetings marked completed, imported tasks) or to catch up on "
        "recomputations that were deferred: deferred entries of the members "
        "just recomputed are dropped and the remaining ones are retried. "
        "Protected via the "
        "`X-Internal-Api-Key` header when configured."
    ),
    responses={
        401: {"description": "Missing or invalid internal API key (if configured)."},
        503: {"description": "The member directory or task ledger could not be queried."},
    },
)
async def run_recompute_performance(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    dispatcher: AggregationDispatcher = Depends(get_dispatcher),
) -> RecomputeSummary:
    now = clock.now()
    try:
        records = await recompute_all_performance(db, now=now)
    except UpstreamFailure as exc:
        raise HTTPException(status_code=HTTPStatus.SERVICE_UNAVAILABLE, detail=str(exc))

    resolved = dispatcher.resolve_deferred(r.member_id for r in records)
    retried = await dispatcher.retry_deferred()

    return RecomputeSummary(
        month_key=month_key(now, get_settings().REPORTING_TIMEZONE),
        members_evaluated=len(records),
        deferred_resolved=resolved,
        deferred_retried=retried,
        records=[PerformanceRecordRead.model_validate(r) for r in records],
    )


@router.post(
    "/award-distinctions",
    response_model=Distinctions,
    status_code=HTTPStatus.OK,
    summary="Persist member of the month / member of the week flags",
    description=(
        "Selects the current distinctions and stores them on this month's "
        "performance records: flags are cleared on every other record of the "
        "month and an award label is added to each winner's record.\n\n"
        "Numeric performance fields are not modified."
    ),
    responses={
        401: {"description": "Missing or invalid internal API key (if configured)."},
        503: {"description": "The task ledger could not be queried."},
    },
)
async def run_award_distinctions(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> Distinctions:
    try:
        result = await award_distinctions(db, now=clock.now())
    except UpstreamFailure as exc:
        raise HTTPException(status_code=HTTPStatus.SERVICE_UNAVAILABLE, detail=str(exc))

    return to_distinctions(result)


@router.post(
    "/meetings/{meeting_id}/rebuild-attendees",
    response_model=MirrorRebuildSummary,
    status_code=HTTPStatus.OK,
    summary="Rebuild a meeting's attendee list from the attendance ledger",
    description=(
        "Discards the meeting's embedded attendee list and re-creates it from "
        "the attendance ledger. Use after a failed attendee sync left the "
        "list stale."
    ),
    responses={
        401: {"description": "Missing or invalid internal API key (if configured)."},
        404: {"description": "No meeting exists with the given ID."},
    },
)
async def run_rebuild_attendees(
    meeting_id: int = Path(..., ge=1, description="Numeric ID of the meeting.", examples=[12]),
    db: AsyncSession = Depends(get_db),
) -> MirrorRebuildSummary:
    try:
        written = await rebuild_mirror(db, meeting_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc))

    return MirrorRebuildSummary(meeting_id=meeting_id, attendees_written=written)
