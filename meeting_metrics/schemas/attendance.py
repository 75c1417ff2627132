# meeting_metrics/schemas/attendance.py
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class AttendanceStatus(str, Enum):
    """
    Possible attendance outcomes for a member at a meeting.
    """

    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"


# Statuses for which a check-in timestamp is meaningful.
CHECKED_IN_STATUSES = frozenset({AttendanceStatus.PRESENT, AttendanceStatus.LATE})


class AttendanceRecordCreate(BaseModel):
    """
    Request body for recording (or correcting) a member's attendance.

    `status` is kept as a plain string so an unknown value reaches the
    attendance ledger and is reported as an invalid status.
    """

    meeting_id: int = Field(..., ge=1, description="Meeting the attendance belongs to.", examples=[12])
    member_id: int = Field(..., ge=1, description="Member whose attendance is recorded.", examples=[7])
    status: str = Field(
        ...,
        description="One of: present, absent, late, excused.",
        examples=["present"],
    )
    notes: str | None = Field(
        default=None,
        description="Free-form notes (e.g. reason for being excused).",
    )


class CheckOutRequest(BaseModel):
    meeting_id: int = Field(..., ge=1, examples=[12])
    member_id: int = Field(..., ge=1, examples=[7])


class AttendanceRecordRead(BaseModel):
    """
    Public representation of an attendance ledger row.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Database identifier of the attendance fact.")
    meeting_id: int
    member_id: int
    status: AttendanceStatus
    check_in_time: datetime | None = Field(
        None,
        description="UTC check-in instant; only set for present/late.",
    )
    check_out_time: datetime | None = Field(None, description="UTC check-out instant.")
    notes: str | None = None
    created_at: datetime = Field(..., description="When the fact was first recorded.")
    updated_at: datetime = Field(..., description="When the fact was last written.")


class MeetingAttendeeRead(BaseModel):
    """
    Attendee entry as embedded in a meeting.
    """

    model_config = ConfigDict(from_attributes=True)

    member_id: int
    status: AttendanceStatus
    check_in_time: datetime | None = None
    check_out_time: datetime | None = None
