# meeting_metrics/schemas/meeting.py
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from meeting_metrics.schemas.attendance import MeetingAttendeeRead


class MeetingStatus(str, Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MeetingCreate(BaseModel):
    """
    Minimal meeting registration: only what attendance and scoring depend on.
    """

    title: str = Field(..., min_length=1, description="Meeting title.", examples=["General Body Meeting"])
    meeting_date: datetime = Field(
        ...,
        description="Meeting date/time. Naive values are interpreted as UTC.",
        examples=["2025-03-14T10:30:00Z"],
    )
    status: MeetingStatus = Field(
        default=MeetingStatus.SCHEDULED,
        description="Lifecycle status. Only completed meetings count towards attendance rates.",
    )


class MeetingStatusUpdate(BaseModel):
    status: MeetingStatus = Field(..., examples=["completed"])


class MeetingRead(BaseModel):
    """
    Meeting with its embedded attendee list.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    meeting_date: datetime
    status: MeetingStatus
    attendees: list[MeetingAttendeeRead] = Field(
        default_factory=list,
        description="Denormalized copy of the attendance ledger for this meeting.",
    )
