# meeting_metrics/models/task.py
from sqlalchemy import Column, ForeignKey, Integer, String

from meeting_metrics.db.base import Base
from meeting_metrics.db.types import UTCDateTime, utcnow


class Task(Base):
    """
    Action item assigned to a member. Owned by the task ledger; the
    performance services only count these rows.
    """

    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)

    title = Column(String(255), nullable=False)
    assigned_to = Column(
        Integer,
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status = Column(String(16), nullable=False, default="pending", index=True)
    deadline = Column(UTCDateTime, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow, index=True)
    completed_at = Column(UTCDateTime, nullable=True, index=True)

    def __repr__(self) -> str:
        return f"<Task id={self.id} assigned_to={self.assigned_to} status={self.status}>"
