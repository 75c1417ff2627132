# meeting_metrics/api/routes/performance.py
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from meeting_metrics.core.clock import Clock, get_clock
from meeting_metrics.core.config import get_settings
from meeting_metrics.core.errors import NotFoundError, UpstreamFailure
from meeting_metrics.db.session import get_db
from meeting_metrics.schemas.performance import Distinctions, Leaderboard, PerformanceRecordRead
from meeting_metrics.services.leaderboard import DistinctionResult, select_distinctions
from meeting_metrics.services.performance import (
    get_performance_record,
    list_performance_for_month,
    recompute_performance,
)
from meeting_metrics.services.time_windows import month_key, parse_month_key

router = APIRouter(prefix="/performance", tags=["Performance"])


def _resolve_month(month: str | None, clock: Clock) -> str:
    settings = get_settings()
    if month is None:
        return month_key(clock.now(), settings.REPORTING_TIMEZONE)
    try:
        parse_month_key(month)
    except ValueError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc))
    return month


def to_distinctions(result: DistinctionResult) -> Distinctions:
    return Distinctions(
        month_key=result.month_key,
        monthly=(
            PerformanceRecordRead.model_validate(result.monthly)
            if result.monthly is not None
            else None
        ),
        weekly=result.weekly,
    )


@router.get(
    "",
    response_model=Leaderboard,
    summary="Monthly performance leaderboard",
    description=(
        "Performance records for one month ordered by participation score "
        "(highest first; equal scores keep record creation order).\n\n"
        "`month` defaults to the current month in the reporting time zone, "
        "`limit` to the configured `LEADERBOARD_LIMIT`."
    ),
    responses={400: {"description": "`month` is not in YYYY-MM format."}},
)
async def get_leaderboard(
    month: str | None = Query(
        default=None,
        description="Calendar month in YYYY-MM format.",
        examples=["2025-03"],
    ),
    limit: int | None = Query(
        default=None,
        ge=1,
        le=500,
        description="Maximum number of records to return.",
        examples=[10],
    ),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> Leaderboard:
    key = _resolve_month(month, clock)
    if limit is None:
        limit = get_settings().LEADERBOARD_LIMIT

    records = await list_performance_for_month(db, key, limit=limit)
    return Leaderboard(
        month_key=key,
        records=[PerformanceRecordRead.model_validate(r) for r in records],
    )


@router.get(
    "/distinctions",
    response_model=Distinctions,
    summary="Member of the month and member of the week",
    description=(
        "Computed at request time and never stored by this endpoint.\n\n"
        "- `monthly`: highest participation score this month.\n"
        "- `weekly`: most tasks completed in the last 7 days.\n\n"
        "Either is `null` when there is no candidate."
    ),
    responses={503: {"description": "The task ledger could not be queried."}},
)
async def get_distinctions(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> Distinctions:
    try:
        result = await select_distinctions(db, now=clock.now())
    except UpstreamFailure as exc:
        raise HTTPException(status_code=HTTPStatus.SERVICE_UNAVAILABLE, detail=str(exc))

    return to_distinctions(result)


@router.get(
    "/members/{member_id}",
    response_model=PerformanceRecordRead,
    summary="Get a member's performance record for a month",
    responses={
        400: {"description": "`month` is not in YYYY-MM format."},
        404: {"description": "No record exists for this member and month."},
    },
)
async def get_member_performance(
    member_id: int = Path(..., ge=1, description="Numeric ID of the member.", examples=[7]),
    month: str | None = Query(
        default=None,
        description="Calendar month in YYYY-MM format; defaults to the current month.",
        examples=["2025-03"],
    ),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> PerformanceRecordRead:
    key = _resolve_month(month, clock)
    record = await get_performance_record(db, member_id, key)
    if record is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail=f"No performance record for member {member_id} in {key}.",
        )
    return PerformanceRecordRead.model_validate(record)


@router.post(
    "/members/{member_id}/recompute",
    response_model=PerformanceRecordRead,
    summary="Recompute a member's current-month performance now",
    description=(
        "Synchronously recomputes and stores the member's record for the "
        "current month. Safe to call repeatedly: unchanged facts produce "
        "identical numbers, and award flags are left as they are."
    ),
    responses={
        404: {"description": "Member not found."},
        503: {"description": "The member directory or task ledger could not be queried."},
    },
)
async def post_recompute_member(
    member_id: int = Path(..., ge=1, description="Numeric ID of the member.", examples=[7]),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> PerformanceRecordRead:
    try:
        record = await recompute_performance(db, member_id, now=clock.now())
    except NotFoundError as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc))
    except UpstreamFailure as exc:
        raise HTTPException(status_code=HTTPStatus.SERVICE_UNAVAILABLE, detail=str(exc))

    return PerformanceRecordRead.model_validate(record)
