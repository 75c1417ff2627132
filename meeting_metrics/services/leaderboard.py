# meeting_metrics/services/leaderboard.py
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from meeting_metrics.core.config import get_settings
from meeting_metrics.models.performance import PerformanceRecord
from meeting_metrics.schemas.member import MemberSummary
from meeting_metrics.services.directory import MemberDirectory
from meeting_metrics.services.performance import list_performance_for_month
from meeting_metrics.services.task_ledger import TaskLedger
from meeting_metrics.services.time_windows import month_key, to_utc, trailing_week_window

logger = logging.getLogger(__name__)


@dataclass
class DistinctionResult:
    month_key: str
    monthly: PerformanceRecord | None
    weekly: MemberSummary | None


async def select_distinctions(
    db: AsyncSession,
    *,
    now: datetime,
    tz_name: str | None = None,
    task_ledger: TaskLedger | None = None,
) -> DistinctionResult:
    """
    Pick "member of the month" and "member of the week".

    Rules
    -----
    - Monthly: the current month's performance record with the highest
      participation score. Equal scores go to the record created first.
      None when the month has no records.
    - Weekly: the member with the most tasks completed in the 7 days ending
      at `now`. Equal counts go to the lowest member id. None when nothing
      was completed in the window.

    Read-only. Task ledger failures propagate unchanged (UpstreamFailure);
    no partial result is returned in that case.
    """
    if tz_name is None:
        tz_name = get_settings().REPORTING_TIMEZONE
    key = month_key(now, tz_name)

    ranked = await list_performance_for_month(db, key, limit=1)
    monthly = ranked[0] if ranked else None

    weekly = await _select_weekly(db, now, task_ledger or TaskLedger(db))

    return DistinctionResult(month_key=key, monthly=monthly, weekly=weekly)


async def award_distinctions(
    db: AsyncSession,
    *,
    now: datetime,
    tz_name: str | None = None,
) -> DistinctionResult:
    """
    Persist the current distinctions onto the month's performance records.

    Clears both flags on every record of the month, then flags the winners
    and appends a dated award label to their `awards` list (once). The
    weekly winner is flagged only when they already have a record this
    month; numeric fields are never touched.
    """
    if tz_name is None:
        tz_name = get_settings().REPORTING_TIMEZONE

    result = await select_distinctions(db, now=now, tz_name=tz_name)

    records_result = await db.execute(
        select(PerformanceRecord).where(PerformanceRecord.month_key == result.month_key)
    )
    records = list(records_result.scalars().all())
    by_member = {record.member_id: record for record in records}

    for record in records:
        record.member_of_month = False
        record.member_of_week = False

    if result.monthly is not None:
        winner = by_member[result.monthly.member_id]
        winner.member_of_month = True
        _add_award(winner, f"Member of the Month {result.month_key}")

    if result.weekly is not None:
        weekly_record = by_member.get(result.weekly.member_id)
        if weekly_record is None:
            logger.info(
                "Member of the week %s has no %s performance record; flag not persisted",
                result.weekly.member_id,
                result.month_key,
            )
        else:
            weekly_record.member_of_week = True
            _add_award(weekly_record, f"Member of the Week {to_utc(now).date().isoformat()}")

    await db.commit()
    return result


async def _select_weekly(
    db: AsyncSession,
    now: datetime,
    task_ledger: TaskLedger,
) -> MemberSummary | None:
    completed = await task_ledger.tasks_completed_within(trailing_week_window(now))
    if not completed:
        return None

    counts = Counter(task.member_id for task in completed)
    member_id, tasks_completed = min(counts.items(), key=lambda item: (-item[1], item[0]))

    member = await MemberDirectory(db).get_member(member_id)
    if member is None:
        return None

    return MemberSummary(
        member_id=member.id,
        name=member.name,
        email=member.email,
        role=member.role,
        tasks_completed=tasks_completed,
    )


def _add_award(record: PerformanceRecord, label: str) -> None:
    awards = list(record.awards or [])
    if label not in awards:
        awards.append(label)
    # Reassign so the JSON column registers the change.
    record.awards = awards
