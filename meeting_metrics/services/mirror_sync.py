# meeting_metrics/services/mirror_sync.py
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from meeting_metrics.core.errors import NotFoundError
from meeting_metrics.models.attendance import AttendanceRecord
from meeting_metrics.models.meeting import MeetingAttendee
from meeting_metrics.services.directory import MeetingDirectory

logger = logging.getLogger(__name__)


async def sync_mirror(
    db: AsyncSession,
    meeting_id: int,
    member_id: int,
    status: str,
    check_in_time: datetime | None,
    check_out_time: datetime | None,
) -> None:
    """
    Replace the member's entry in the meeting's embedded attendee list.

    Every existing entry for (meeting_id, member_id) is deleted and a single
    fresh entry is inserted, in one transaction. Deleting by member rather
    than updating in place means duplicates left behind by earlier drift are
    removed as well, so the meeting ends up with exactly one entry for the
    member.
    """
    await db.execute(
        delete(MeetingAttendee).where(
            MeetingAttendee.meeting_id == meeting_id,
            MeetingAttendee.member_id == member_id,
        )
    )
    db.add(
        MeetingAttendee(
            meeting_id=meeting_id,
            member_id=member_id,
            status=status,
            check_in_time=check_in_time,
            check_out_time=check_out_time,
        )
    )
    await db.commit()


async def rebuild_mirror(db: AsyncSession, meeting_id: int) -> int:
    """
    Re-project the whole attendee list of a meeting from the attendance ledger.

    Used to recover a mirror left stale by a failed sync. Returns the number
    of attendee entries written.
    """
    if not await MeetingDirectory(db).meeting_exists(meeting_id):
        raise NotFoundError(f"Meeting with id={meeting_id} not found")

    facts_result = await db.execute(
        select(AttendanceRecord)
        .where(AttendanceRecord.meeting_id == meeting_id)
        .order_by(AttendanceRecord.member_id.asc())
    )
    facts = list(facts_result.scalars().all())

    await db.execute(delete(MeetingAttendee).where(MeetingAttendee.meeting_id == meeting_id))
    db.add_all(
        [
            MeetingAttendee(
                meeting_id=fact.meeting_id,
                member_id=fact.member_id,
                status=fact.status,
                check_in_time=fact.check_in_time,
                check_out_time=fact.check_out_time,
            )
            for fact in facts
        ]
    )
    await db.commit()

    logger.info("Rebuilt attendee mirror for meeting %s (%d entries)", meeting_id, len(facts))
    return len(facts)
