# meeting_metrics/models/performance.py
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from meeting_metrics.db.base import Base
from meeting_metrics.db.types import UTCDateTime, utcnow


class PerformanceRecord(Base):
    """
    Monthly performance rollup for one member.

    The numeric columns are rewritten by every recomputation; the award
    columns are only written by the distinction awarding job.
    """

    __tablename__ = "performance_records"

    id = Column(Integer, primary_key=True, index=True)

    member_id = Column(
        Integer,
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    month_key = Column(String(7), nullable=False, index=True)

    attendance_rate = Column(Float, nullable=False, default=0.0)
    tasks_completed = Column(Integer, nullable=False, default=0)
    tasks_assigned = Column(Integer, nullable=False, default=0)
    participation_score = Column(Float, nullable=False, default=0.0)

    member_of_month = Column(Boolean, nullable=False, default=False)
    member_of_week = Column(Boolean, nullable=False, default=False)
    awards = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow)

    member = relationship("Member")

    __table_args__ = (
        UniqueConstraint(
            "member_id",
            "month_key",
            name="uq_performance_records_member_month",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<PerformanceRecord id={self.id} member_id={self.member_id} "
            f"month={self.month_key} score={self.participation_score}>"
        )
