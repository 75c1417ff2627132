# meeting_metrics/api/routes/attendance.py
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from meeting_metrics.core.clock import Clock, get_clock
from meeting_metrics.core.errors import InvalidStatusError, NotFoundError, UpstreamFailure
from meeting_metrics.db.session import get_db
from meeting_metrics.schemas.attendance import (
    AttendanceRecordCreate,
    AttendanceRecordRead,
    CheckOutRequest,
)
from meeting_metrics.services.aggregation_dispatcher import AggregationDispatcher, get_dispatcher
from meeting_metrics.services.attendance_ledger import record_attendance, record_check_out

router = APIRouter(prefix="/attendance", tags=["Attendance"])


@router.post(
    "",
    response_model=AttendanceRecordRead,
    status_code=HTTPStatus.OK,
    summary="Record or correct a member's attendance at a meeting",
    description=(
        "Writes the attendance fact for `(meeting_id, member_id)`; recording "
        "the same pair again overwrites the status instead of adding a row.\n\n"
        "- `present` / `late` stamp a check-in time on the first such write; "
        "later corrections keep the original check-in.\n"
        "- `absent` / `excused` clear check-in and check-out.\n\n"
        "The meeting's attendee list is refreshed immediately. The member's "
        "monthly performance record is recomputed in the background, so it "
        "may lag this response briefly."
    ),
    responses={
        200: {
            "description": "Attendance recorded.",
            "content": {
                "application/json": {
                    "example": {
                        "id": 41,
                        "meeting_id": 12,
                        "member_id": 7,
                        "status": "present",
                        "check_in_time": "2025-03-14T10:32:05Z",
                        "check_out_time": None,
                        "notes": None,
                        "created_at": "2025-03-14T10:32:05Z",
                        "updated_at": "2025-03-14T10:32:05Z",
                    }
                }
            },
        },
        404: {"description": "Meeting or member not found."},
        422: {"description": "Status is not one of present/absent/late/excused."},
        503: {"description": "Storage unavailable; a recorded fact could not be reloaded."},
    },
)
async def post_attendance(
    payload: AttendanceRecordCreate,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    dispatcher: AggregationDispatcher = Depends(get_dispatcher),
) -> AttendanceRecordRead:
    try:
        fact = await record_attendance(
            db,
            meeting_id=payload.meeting_id,
            member_id=payload.member_id,
            status=payload.status,
            notes=payload.notes,
            clock=clock,
            dispatcher=dispatcher,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc))
    except InvalidStatusError as exc:
        raise HTTPException(status_code=HTTPStatus.UNPROCESSABLE_ENTITY, detail=str(exc))
    except UpstreamFailure as exc:
        raise HTTPException(status_code=HTTPStatus.SERVICE_UNAVAILABLE, detail=str(exc))

    return AttendanceRecordRead.model_validate(fact)


@router.post(
    "/check-out",
    response_model=AttendanceRecordRead,
    summary="Check a present or late member out of a meeting",
    responses={
        404: {"description": "No attendance has been recorded for this member at this meeting."},
        422: {"description": "The member is recorded as absent or excused."},
        503: {"description": "Storage unavailable; the check-out could not be reloaded."},
    },
)
async def post_check_out(
    payload: CheckOutRequest,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> AttendanceRecordRead:
    try:
        fact = await record_check_out(
            db,
            meeting_id=payload.meeting_id,
            member_id=payload.member_id,
            clock=clock,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc))
    except InvalidStatusError as exc:
        raise HTTPException(status_code=HTTPStatus.UNPROCESSABLE_ENTITY, detail=str(exc))
    except UpstreamFailure as exc:
        raise HTTPException(status_code=HTTPStatus.SERVICE_UNAVAILABLE, detail=str(exc))

    return AttendanceRecordRead.model_validate(fact)
