# meeting_metrics/db/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models in the Meeting Metrics service.
    """
    pass


# Import ORM models so that Base.metadata is aware of them
# This import should stay at the bottom to avoid circular dependencies.
import meeting_metrics.models.member  # noqa: E402,F401
import meeting_metrics.models.meeting  # noqa: E402,F401
import meeting_metrics.models.attendance  # noqa: E402,F401
import meeting_metrics.models.task  # noqa: E402,F401
import meeting_metrics.models.performance  # noqa: E402,F401
