# meeting_metrics/schemas/performance.py
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from meeting_metrics.schemas.member import MemberSummary


class PerformanceRecordRead(BaseModel):
    """
    Public representation of a member's monthly performance rollup.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Database identifier of the record.")
    member_id: int = Field(..., examples=[7])
    month_key: str = Field(..., description="Calendar month, YYYY-MM.", examples=["2025-03"])
    attendance_rate: float = Field(
        ...,
        description=(
            "Present count / completed meetings this month * 100. "
            "0.0 when no meeting was completed."
        ),
        examples=[70.0],
    )
    tasks_completed: int = Field(..., examples=[4])
    tasks_assigned: int = Field(..., examples=[5])
    participation_score: float = Field(
        ...,
        description="attendance_rate * 0.4 + task completion rate * 0.6.",
        examples=[76.0],
    )
    member_of_month: bool = False
    member_of_week: bool = False
    awards: list[str] = Field(default_factory=list)
    updated_at: datetime | None = None


class Leaderboard(BaseModel):
    """
    Performance records for one month, best participation score first.
    """

    month_key: str = Field(..., examples=["2025-03"])
    records: list[PerformanceRecordRead]


class Distinctions(BaseModel):
    """
    Leaderboard distinctions derived at request time.

    A `null` weekly value means nobody completed a task in the trailing
    7-day window.
    """

    month_key: str = Field(..., examples=["2025-03"])
    monthly: PerformanceRecordRead | None = Field(
        None,
        description="Highest participation score this month (earliest record wins ties).",
    )
    weekly: MemberSummary | None = Field(
        None,
        description="Most tasks completed in the last 7 days (lowest member id wins ties).",
    )


class RecomputeSummary(BaseModel):
    """
    Result of a bulk performance recomputation.
    """

    month_key: str = Field(..., examples=["2025-03"])
    members_evaluated: int = Field(..., examples=[24])
    deferred_resolved: int = Field(
        0,
        description="Deferred recomputations made obsolete by this run.",
        examples=[1],
    )
    deferred_retried: int = Field(
        0,
        description="Deferred recomputations of members outside this run that were retried.",
        examples=[0],
    )
    records: list[PerformanceRecordRead]


class MirrorRebuildSummary(BaseModel):
    meeting_id: int = Field(..., examples=[12])
    attendees_written: int = Field(
        ...,
        description="Number of attendee entries projected from the attendance ledger.",
        examples=[18],
    )
