# meeting_metrics/services/attendance_ledger.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from meeting_metrics.core.clock import Clock, get_clock
from meeting_metrics.core.errors import InvalidStatusError, NotFoundError, UpstreamFailure
from meeting_metrics.core.locks import KeyedLock
from meeting_metrics.models.attendance import AttendanceRecord
from meeting_metrics.schemas.attendance import CHECKED_IN_STATUSES, AttendanceStatus
from meeting_metrics.services.aggregation_dispatcher import get_dispatcher
from meeting_metrics.services.directory import MeetingDirectory, MemberDirectory
from meeting_metrics.services.mirror_sync import sync_mirror

logger = logging.getLogger(__name__)

# Serializes writes to the same (meeting_id, member_id) fact in arrival order.
_fact_locks = KeyedLock()


class Dispatcher(Protocol):
    def dispatch(self, member_id: int): ...


def parse_attendance_status(status: str | AttendanceStatus) -> AttendanceStatus:
    try:
        return AttendanceStatus(status)
    except ValueError:
        allowed = ", ".join(s.value for s in AttendanceStatus)
        raise InvalidStatusError(
            f"Invalid attendance status {status!r}; expected one of: {allowed}"
        ) from None


async def record_attendance(
    db: AsyncSession,
    meeting_id: int,
    member_id: int,
    status: str | AttendanceStatus,
    notes: str | None = None,
    *,
    clock: Clock | None = None,
    dispatcher: Dispatcher | None = None,
) -> AttendanceRecord:
    """
    Record (or correct) a member's attendance at a meeting.

    Behavior
    --------
    1) Validate the status and that both meeting and member exist.
    2) Upsert the attendance fact keyed by (meeting_id, member_id):
        - status is always overwritten; notes are replaced when given.
        - present/late: check_in_time is stamped with "now" only if the fact
          has none yet; an existing check-in is preserved.
        - absent/excused: check_in_time and check_out_time are cleared.
    3) Commit the fact, then replace the meeting's attendee entry for the
       member. A failed attendee sync is logged; the committed fact stays.
    4) Dispatch a performance recomputation for the member without waiting
       for it.

    Raises
    ------
    InvalidStatusError:
        `status` is not present/absent/late/excused.
    NotFoundError:
        The meeting or the member does not exist. Nothing is written.
    UpstreamFailure:
        A directory could not be queried, or the mirror sync failed and the
        committed fact could not be reloaded. In the latter case the fact
        stays recorded and the recomputation is still dispatched.
    """
    status_enum = parse_attendance_status(status)
    clock = clock or get_clock()

    async with _fact_locks.hold((meeting_id, member_id)):
        if not await MeetingDirectory(db).meeting_exists(meeting_id):
            raise NotFoundError(f"Meeting with id={meeting_id} not found")
        if not await MemberDirectory(db).member_exists(member_id):
            raise NotFoundError(f"Member with id={member_id} not found")

        now = clock.now()
        fact = await _get_fact(db, meeting_id, member_id)
        if fact is None:
            fact = AttendanceRecord(
                meeting_id=meeting_id,
                member_id=member_id,
                created_at=now,
            )
            db.add(fact)

        _apply_status(fact, status_enum, now)
        if notes is not None:
            fact.notes = notes
        fact.updated_at = now

        await db.commit()
        logger.info(
            "Recorded attendance meeting=%s member=%s status=%s",
            meeting_id,
            member_id,
            status_enum.value,
        )
        try:
            await _sync_mirror_for(db, fact)
        finally:
            # The fact is committed; recompute even if the mirror step failed.
            (dispatcher or get_dispatcher()).dispatch(member_id)

    return fact


async def record_check_out(
    db: AsyncSession,
    meeting_id: int,
    member_id: int,
    *,
    clock: Clock | None = None,
) -> AttendanceRecord:
    """
    Stamp the check-out time on an existing present/late attendance fact and
    refresh the meeting's attendee entry.
    """
    clock = clock or get_clock()

    async with _fact_locks.hold((meeting_id, member_id)):
        fact = await _get_fact(db, meeting_id, member_id)
        if fact is None:
            raise NotFoundError(
                f"No attendance recorded for member {member_id} at meeting {meeting_id}"
            )
        if AttendanceStatus(fact.status) not in CHECKED_IN_STATUSES:
            raise InvalidStatusError(
                f"Cannot check out a member whose attendance status is {fact.status!r}"
            )

        now = clock.now()
        fact.check_out_time = now
        fact.updated_at = now

        await db.commit()
        await _sync_mirror_for(db, fact)

    return fact


async def list_meeting_attendance(db: AsyncSession, meeting_id: int) -> list[AttendanceRecord]:
    """
    Attendance ledger rows for one meeting, most recently recorded first.
    """
    if not await MeetingDirectory(db).meeting_exists(meeting_id):
        raise NotFoundError(f"Meeting with id={meeting_id} not found")

    result = await db.execute(
        select(AttendanceRecord)
        .where(AttendanceRecord.meeting_id == meeting_id)
        .order_by(AttendanceRecord.created_at.desc(), AttendanceRecord.id.desc())
    )
    return list(result.scalars().all())


async def _get_fact(
    db: AsyncSession,
    meeting_id: int,
    member_id: int,
) -> AttendanceRecord | None:
    result = await db.execute(
        select(AttendanceRecord).where(
            AttendanceRecord.meeting_id == meeting_id,
            AttendanceRecord.member_id == member_id,
        )
    )
    return result.scalar_one_or_none()


def _apply_status(fact: AttendanceRecord, status: AttendanceStatus, now: datetime) -> None:
    fact.status = status.value
    if status in CHECKED_IN_STATUSES:
        if fact.check_in_time is None:
            fact.check_in_time = now
    else:
        fact.check_in_time = None
        fact.check_out_time = None


async def _sync_mirror_for(db: AsyncSession, fact: AttendanceRecord) -> None:
    meeting_id, member_id = fact.meeting_id, fact.member_id
    try:
        await sync_mirror(
            db,
            meeting_id=fact.meeting_id,
            member_id=fact.member_id,
            status=fact.status,
            check_in_time=fact.check_in_time,
            check_out_time=fact.check_out_time,
        )
    except SQLAlchemyError:
        # The ledger row is already committed; the mirror catches up on the
        # next write for this pair or on an explicit rebuild.
        logger.warning(
            "Attendee mirror sync failed for meeting=%s member=%s",
            meeting_id,
            member_id,
            exc_info=True,
        )
        try:
            await db.rollback()
            await db.refresh(fact)
        except SQLAlchemyError as exc:
            raise UpstreamFailure(
                f"Attendance for member {member_id} at meeting {meeting_id} was recorded "
                f"but could not be reloaded: {exc}"
            ) from exc
