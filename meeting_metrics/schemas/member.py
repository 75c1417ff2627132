# meeting_metrics/schemas/member.py
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class MemberRole(str, Enum):
    PRESIDENT = "President"
    VICE_PRESIDENT = "Vice President"
    SECRETARY = "Secretary"
    TREASURER = "Treasurer"
    PRO = "PRO"
    CLUB_COORDINATOR = "Club Coordinator"
    MEMBER = "Member"
    GUEST = "Guest"


class MemberStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class MemberCreate(BaseModel):
    name: str = Field(..., min_length=1, examples=["Asha Verma"])
    email: str = Field(..., min_length=3, examples=["asha@example.org"])
    role: MemberRole = Field(default=MemberRole.MEMBER)
    status: MemberStatus = Field(default=MemberStatus.ACTIVE)


class MemberRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    role: MemberRole
    status: MemberStatus
    created_at: datetime


class MemberSummary(BaseModel):
    """
    Compact member view used for the "member of the week" distinction.
    """

    member_id: int = Field(..., description="Identifier of the member.", examples=[7])
    name: str = Field(..., examples=["Asha Verma"])
    email: str = Field(..., examples=["asha@example.org"])
    role: str = Field(..., examples=["Secretary"])
    tasks_completed: int = Field(
        ...,
        description="Tasks completed by this member inside the trailing 7-day window.",
        examples=[4],
    )
