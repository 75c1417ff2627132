# meeting_metrics/services/performance.py
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from meeting_metrics.core.config import get_settings
from meeting_metrics.core.errors import NotFoundError
from meeting_metrics.core.locks import KeyedLock
from meeting_metrics.models.attendance import AttendanceRecord
from meeting_metrics.models.performance import PerformanceRecord
from meeting_metrics.schemas.attendance import AttendanceStatus
from meeting_metrics.schemas.task import TaskStatus
from meeting_metrics.services.directory import MeetingDirectory, MemberDirectory
from meeting_metrics.services.task_ledger import TaskLedger
from meeting_metrics.services.time_windows import TimeWindow, month_key, month_window

logger = logging.getLogger(__name__)

ATTENDANCE_WEIGHT = 0.4
COMPLETION_WEIGHT = 0.6
MAX_RATE = 100.0

# Held across both the counting reads and the upsert of a (member_id, month_key) record.
_record_locks = KeyedLock()


def rate(part: int, whole: int) -> float:
    """
    part / whole * 100, or 0.0 when there is nothing to divide by.
    """
    if whole <= 0:
        return 0.0
    return (part / float(whole)) * 100.0


def participation_score(attendance_rate: float, completion_rate: float) -> float:
    return attendance_rate * ATTENDANCE_WEIGHT + completion_rate * COMPLETION_WEIGHT


async def recompute_performance(
    db: AsyncSession,
    member_id: int,
    *,
    now: datetime,
    tz_name: str | None = None,
) -> PerformanceRecord:
    """
    Recompute and persist a member's performance record for the month
    containing `now`.

    Steps
    -----
    1) Derive the calendar-month window [month start, next month start).
    2) Count:
        - completed meetings dated inside the window (all of them, not only
          the ones the member was expected at)
        - the member's attendance facts with status "present" first
          recorded inside the window
        - tasks assigned to the member and created inside the window, and
          how many of those are completed
    3) Compute:
        - attendance_rate = present / completed meetings * 100 (0 if none,
          capped at 100)
        - completion_rate = completed tasks / assigned tasks * 100 (0 if none)
        - participation_score = attendance_rate * 0.4 + completion_rate * 0.6
    4) Upsert the (member_id, month_key) record. Only the numeric fields are
       written; award flags set by the distinction job are kept.

    Given unchanged facts, repeated calls write identical values.

    Raises
    ------
    NotFoundError:
        The member does not exist. Nothing is written.
    UpstreamFailure:
        The member directory or task ledger could not be queried.
    """
    if tz_name is None:
        tz_name = get_settings().REPORTING_TIMEZONE

    if not await MemberDirectory(db).member_exists(member_id):
        raise NotFoundError(f"Member with id={member_id} not found")

    window = month_window(now, tz_name)
    key = month_key(now, tz_name)

    async with _record_locks.hold((member_id, key)):
        meetings_completed = await MeetingDirectory(db).count_completed_in(window)
        present_count = await _count_present(db, member_id, window)

        task_ledger = TaskLedger(db)
        tasks_assigned = await task_ledger.count_tasks(member_id, window)
        tasks_completed = await task_ledger.count_tasks(
            member_id, window, status=TaskStatus.COMPLETED
        )

        # Presence at meetings that are not completed yet is not in the
        # denominator; cap so the rate stays within 0-100.
        attendance_rate = min(rate(present_count, meetings_completed), MAX_RATE)
        completion_rate = rate(tasks_completed, tasks_assigned)
        score = participation_score(attendance_rate, completion_rate)

        record = await get_performance_record(db, member_id, key)
        if record is None:
            record = PerformanceRecord(
                member_id=member_id,
                month_key=key,
                member_of_month=False,
                member_of_week=False,
                awards=[],
                created_at=now,
            )
            db.add(record)

        record.attendance_rate = attendance_rate
        record.tasks_completed = tasks_completed
        record.tasks_assigned = tasks_assigned
        record.participation_score = score
        record.updated_at = now

        await db.commit()

    logger.info(
        "Recomputed performance member=%s month=%s attendance=%.2f completion=%.2f score=%.2f",
        member_id,
        key,
        attendance_rate,
        completion_rate,
        score,
    )
    return record


async def recompute_all_performance(
    db: AsyncSession,
    *,
    now: datetime,
    tz_name: str | None = None,
) -> list[PerformanceRecord]:
    """
    Recompute the current month's record for every active member, in member
    id order.
    """
    member_ids = await MemberDirectory(db).list_active_member_ids()
    records: list[PerformanceRecord] = []
    for member_id in member_ids:
        records.append(await recompute_performance(db, member_id, now=now, tz_name=tz_name))
    return records


async def get_performance_record(
    db: AsyncSession,
    member_id: int,
    key: str,
) -> PerformanceRecord | None:
    result = await db.execute(
        select(PerformanceRecord).where(
            PerformanceRecord.member_id == member_id,
            PerformanceRecord.month_key == key,
        )
    )
    return result.scalar_one_or_none()


async def list_performance_for_month(
    db: AsyncSession,
    key: str,
    limit: int | None = None,
) -> list[PerformanceRecord]:
    """
    All records of a month, highest participation score first. Equal scores
    keep record creation order.
    """
    stmt = (
        select(PerformanceRecord)
        .where(PerformanceRecord.month_key == key)
        .order_by(
            PerformanceRecord.participation_score.desc(),
            PerformanceRecord.id.asc(),
        )
    )
    if limit is not None:
        stmt = stmt.limit(limit)

    result = await db.execute(stmt)
    return list(result.scalars().all())


async def _count_present(db: AsyncSession, member_id: int, window: TimeWindow) -> int:
    stmt = (
        select(func.count())
        .select_from(AttendanceRecord)
        .where(
            AttendanceRecord.member_id == member_id,
            AttendanceRecord.status == AttendanceStatus.PRESENT.value,
            AttendanceRecord.created_at >= window.start,
            AttendanceRecord.created_at < window.end,
        )
    )
    result = await db.execute(stmt)
    return int(result.scalar_one())
