# meeting_metrics/models/attendance.py
from sqlalchemy import Column, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from meeting_metrics.db.base import Base
from meeting_metrics.db.types import UTCDateTime, utcnow


class AttendanceRecord(Base):
    """
    Authoritative attendance fact for one member at one meeting.

    Re-recording attendance for the same pair updates this row in place.
    """

    __tablename__ = "attendance_records"

    id = Column(Integer, primary_key=True, index=True)

    meeting_id = Column(
        Integer,
        ForeignKey("meetings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    member_id = Column(
        Integer,
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    status = Column(String(16), nullable=False)
    check_in_time = Column(UTCDateTime, nullable=True)
    check_out_time = Column(UTCDateTime, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow)

    member = relationship("Member")

    __table_args__ = (
        UniqueConstraint(
            "meeting_id",
            "member_id",
            name="uq_attendance_records_meeting_member",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<AttendanceRecord id={self.id} meeting_id={self.meeting_id} "
            f"member_id={self.member_id} status={self.status}>"
        )
