# meeting_metrics/services/directory.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from meeting_metrics.core.errors import UpstreamFailure
from meeting_metrics.models.meeting import Meeting
from meeting_metrics.models.member import Member
from meeting_metrics.schemas.meeting import MeetingStatus
from meeting_metrics.schemas.member import MemberStatus
from meeting_metrics.services.time_windows import TimeWindow


class MemberDirectory:
    """
    Read-only view of the member directory.

    Storage errors surface as UpstreamFailure so callers can tell
    "directory unreachable" apart from "member does not exist".
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def member_exists(self, member_id: int) -> bool:
        return await self.get_member(member_id) is not None

    async def get_member(self, member_id: int) -> Member | None:
        try:
            result = await self.db.execute(select(Member).where(Member.id == member_id))
        except SQLAlchemyError as exc:
            raise UpstreamFailure(f"Member directory unavailable: {exc}") from exc
        return result.scalar_one_or_none()

    async def list_active_member_ids(self) -> list[int]:
        stmt = (
            select(Member.id)
            .where(Member.status == MemberStatus.ACTIVE.value)
            .order_by(Member.id.asc())
        )
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            raise UpstreamFailure(f"Member directory unavailable: {exc}") from exc
        return list(result.scalars().all())


class MeetingDirectory:
    """
    Read-only view of the meeting directory.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _get(self, meeting_id: int) -> Meeting | None:
        try:
            result = await self.db.execute(select(Meeting).where(Meeting.id == meeting_id))
        except SQLAlchemyError as exc:
            raise UpstreamFailure(f"Meeting directory unavailable: {exc}") from exc
        return result.scalar_one_or_none()

    async def meeting_exists(self, meeting_id: int) -> bool:
        return await self._get(meeting_id) is not None

    async def meeting_status(self, meeting_id: int) -> MeetingStatus | None:
        meeting = await self._get(meeting_id)
        return MeetingStatus(meeting.status) if meeting is not None else None

    async def meeting_date(self, meeting_id: int) -> datetime | None:
        meeting = await self._get(meeting_id)
        return meeting.meeting_date if meeting is not None else None

    async def count_completed_in(self, window: TimeWindow) -> int:
        """
        Number of completed meetings whose date falls inside `window`.
        """
        stmt = (
            select(func.count())
            .select_from(Meeting)
            .where(
                Meeting.status == MeetingStatus.COMPLETED.value,
                Meeting.meeting_date >= window.start,
                Meeting.meeting_date < window.end,
            )
        )
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            raise UpstreamFailure(f"Meeting directory unavailable: {exc}") from exc
        return int(result.scalar_one())
