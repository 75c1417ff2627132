# meeting_metrics/api/routes/meetings.py
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from meeting_metrics.core.errors import NotFoundError
from meeting_metrics.db.session import get_db
from meeting_metrics.models.meeting import Meeting
from meeting_metrics.schemas.attendance import AttendanceRecordRead
from meeting_metrics.schemas.meeting import MeetingCreate, MeetingRead, MeetingStatusUpdate
from meeting_metrics.services.attendance_ledger import list_meeting_attendance
from meeting_metrics.services.time_windows import to_utc

router = APIRouter(prefix="/meetings", tags=["Meetings"])


async def _load_meeting(db: AsyncSession, meeting_id: int) -> Meeting:
    result = await db.execute(
        select(Meeting)
        .options(selectinload(Meeting.attendees))
        .where(Meeting.id == meeting_id)
        .execution_options(populate_existing=True)
    )
    meeting = result.scalar_one_or_none()
    if meeting is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail=f"Meeting with id {meeting_id} not found.",
        )
    return meeting


@router.post(
    "",
    response_model=MeetingRead,
    status_code=HTTPStatus.CREATED,
    summary="Register a meeting",
    description=(
        "Create the minimal meeting entry attendance is recorded against. "
        "Only meetings whose status is `completed` count towards monthly "
        "attendance rates."
    ),
)
async def create_meeting(
    payload: MeetingCreate,
    db: AsyncSession = Depends(get_db),
) -> MeetingRead:
    meeting = Meeting(
        title=payload.title,
        meeting_date=to_utc(payload.meeting_date),
        status=payload.status.value,
    )
    db.add(meeting)
    await db.commit()

    return MeetingRead.model_validate(await _load_meeting(db, meeting.id))


@router.get(
    "/{meeting_id}",
    response_model=MeetingRead,
    summary="Get a meeting with its attendee list",
    description=(
        "Returns the meeting together with its embedded attendee list. The "
        "list is a cached copy of the attendance ledger and is refreshed on "
        "every attendance write."
    ),
    responses={404: {"description": "No meeting exists with the given ID."}},
)
async def get_meeting(
    meeting_id: int = Path(..., ge=1, description="Numeric ID of the meeting.", examples=[12]),
    db: AsyncSession = Depends(get_db),
) -> MeetingRead:
    return MeetingRead.model_validate(await _load_meeting(db, meeting_id))


@router.patch(
    "/{meeting_id}/status",
    response_model=MeetingRead,
    summary="Change a meeting's lifecycle status",
    description=(
        "Marking a meeting `completed` adds it to the denominator of every "
        "member's attendance rate for that month. Existing performance "
        "records pick the change up on their next recomputation."
    ),
    responses={404: {"description": "No meeting exists with the given ID."}},
)
async def update_meeting_status(
    payload: MeetingStatusUpdate,
    meeting_id: int = Path(..., ge=1, description="Numeric ID of the meeting.", examples=[12]),
    db: AsyncSession = Depends(get_db),
) -> MeetingRead:
    meeting = await _load_meeting(db, meeting_id)
    meeting.status = payload.status.value
    await db.commit()

    return MeetingRead.model_validate(await _load_meeting(db, meeting_id))


@router.get(
    "/{meeting_id}/attendance",
    response_model=list[AttendanceRecordRead],
    summary="List attendance ledger rows for a meeting",
    description="Authoritative attendance facts for the meeting, most recently recorded first.",
    responses={404: {"description": "No meeting exists with the given ID."}},
)
async def get_meeting_attendance(
    meeting_id: int = Path(..., ge=1, description="Numeric ID of the meeting.", examples=[12]),
    db: AsyncSession = Depends(get_db),
) -> list[AttendanceRecordRead]:
    try:
        facts = await list_meeting_attendance(db, meeting_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc))

    return [AttendanceRecordRead.model_validate(fact) for fact in facts]
