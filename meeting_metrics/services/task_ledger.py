# meeting_metrics/services/task_ledger.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from meeting_metrics.core.errors import UpstreamFailure
from meeting_metrics.models.task import Task
from meeting_metrics.schemas.task import TaskStatus
from meeting_metrics.services.time_windows import TimeWindow


@dataclass(frozen=True)
class CompletedTask:
    member_id: int
    completed_at: datetime


class TaskLedger:
    """
    Read-only access to task facts.

    The attendance and performance services never change task state; they
    only ask for counts inside a time window.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def count_tasks(
        self,
        member_id: int,
        window: TimeWindow,
        status: TaskStatus | None = None,
    ) -> int:
        """
        Count tasks assigned to `member_id` that were created inside `window`,
        optionally restricted to a single status.
        """
        conditions = [
            Task.assigned_to == member_id,
            Task.created_at >= window.start,
            Task.created_at < window.end,
        ]
        if status is not None:
            conditions.append(Task.status == status.value)

        stmt = select(func.count()).select_from(Task).where(*conditions)
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            raise UpstreamFailure(f"Task ledger unavailable: {exc}") from exc
        return int(result.scalar_one())

    async def tasks_completed_within(self, window: TimeWindow) -> list[CompletedTask]:
        """
        All completed tasks whose completion instant falls inside `window`,
        oldest completion first.
        """
        stmt = (
            select(Task.assigned_to, Task.completed_at)
            .where(
                Task.status == TaskStatus.COMPLETED.value,
                Task.completed_at.is_not(None),
                Task.completed_at >= window.start,
                Task.completed_at < window.end,
            )
            .order_by(Task.completed_at.asc(), Task.id.asc())
        )
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            raise UpstreamFailure(f"Task ledger unavailable: {exc}") from exc
        return [
            CompletedTask(member_id=member_id, completed_at=completed_at)
            for member_id, completed_at in result.all()
        ]
