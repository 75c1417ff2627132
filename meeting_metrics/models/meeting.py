# meeting_metrics/models/meeting.py
from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from meeting_metrics.db.base import Base
from meeting_metrics.db.types import UTCDateTime, utcnow


class Meeting(Base):
    """
    A scheduled meeting, reduced to what attendance and scoring need:
    its date, its lifecycle status and the embedded attendee list.
    """

    __tablename__ = "meetings"

    id = Column(Integer, primary_key=True, index=True)

    title = Column(String(255), nullable=False)
    meeting_date = Column(UTCDateTime, nullable=False, index=True)
    status = Column(String(16), nullable=False, default="scheduled", index=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    attendees = relationship(
        "MeetingAttendee",
        back_populates="meeting",
        cascade="all, delete-orphan",
        order_by="MeetingAttendee.member_id",
    )

    def __repr__(self) -> str:
        return f"<Meeting id={self.id} date={self.meeting_date} status={self.status}>"


class MeetingAttendee(Base):
    """
    Denormalized attendee entry embedded in a meeting (the attendee mirror).

    There is intentionally no unique constraint on (meeting_id, member_id):
    the attendance ledger owns uniqueness, and the mirror synchronizer keeps
    exactly one row per member by deleting before inserting.
    """

    __tablename__ = "meeting_attendees"

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

    status = Column(String(16), nullable=False, default="absent")
    check_in_time = Column(UTCDateTime, nullable=True)
    check_out_time = Column(UTCDateTime, nullable=True)

    meeting = relationship("Meeting", back_populates="attendees")

    def __repr__(self) -> str:
        return (
            f"<MeetingAttendee meeting_id={self.meeting_id} "
            f"member_id={self.member_id} status={self.status}>"
        )
