# meeting_metrics/models/member.py
from sqlalchemy import Column, Integer, String

from meeting_metrics.db.base import Base
from meeting_metrics.db.types import UTCDateTime, utcnow


class Member(Base):
    """
    Organization member. Only the fields the attendance and performance
    services read are kept here; profile data lives elsewhere.
    """

    __tablename__ = "members"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    role = Column(String(32), nullable=False, default="Member")
    status = Column(String(16), nullable=False, default="active", index=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<Member id={self.id} email={self.email} status={self.status}>"
