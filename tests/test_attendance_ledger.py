# tests/test_attendance_ledger.py
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from meeting_metrics.core.errors import InvalidStatusError, NotFoundError, UpstreamFailure
from meeting_metrics.models.attendance import AttendanceRecord
from meeting_metrics.models.meeting import MeetingAttendee
from meeting_metrics.services import attendance_ledger
from meeting_metrics.services.attendance_ledger import (
    list_meeting_attendance,
    record_attendance,
    record_check_out,
)

NOW = datetime(2025, 3, 20, 12, 0, tzinfo=timezone.utc)


async def _attendees(session, meeting_id, member_id):
    result = await session.execute(
        select(MeetingAttendee).where(
            MeetingAttendee.meeting_id == meeting_id,
            MeetingAttendee.member_id == member_id,
        )
    )
    return list(result.scalars().all())


async def _fact_count(session, meeting_id, member_id):
    result = await session.execute(
        select(func.count())
        .select_from(AttendanceRecord)
        .where(
            AttendanceRecord.meeting_id == meeting_id,
            AttendanceRecord.member_id == member_id,
        )
    )
    return result.scalar_one()


@pytest.mark.asyncio
async def test_present_creates_fact_with_check_in_and_mirror_entry(
    session, clock, recording_dispatcher, make_member, make_meeting
):
    member = await make_member()
    meeting = await make_meeting()

    fact = await record_attendance(
        session, meeting.id, member.id, "present",
        clock=clock, dispatcher=recording_dispatcher,
    )

    assert fact.status == "present"
    assert fact.check_in_time == NOW
    assert fact.check_out_time is None
    assert fact.created_at == NOW

    attendees = await _attendees(session, meeting.id, member.id)
    assert len(attendees) == 1
    assert attendees[0].status == "present"
    assert attendees[0].check_in_time == NOW

    assert recording_dispatcher.dispatched == [member.id]


@pytest.mark.asyncio
async def test_correction_keeps_original_check_in(
    session, clock, recording_dispatcher, make_member, make_meeting
):
    """
    Re-recording present -> late later on overwrites the status but keeps the
    first check-in instant.
    """
    member = await make_member()
    meeting = await make_meeting()

    await record_attendance(
        session, meeting.id, member.id, "present", clock=clock, dispatcher=recording_dispatcher
    )
    clock.advance(minutes=20)
    fact = await record_attendance(
        session, meeting.id, member.id, "late", clock=clock, dispatcher=recording_dispatcher
    )

    assert fact.status == "late"
    assert fact.check_in_time == NOW
    assert fact.updated_at == NOW + timedelta(minutes=20)
    assert await _fact_count(session, meeting.id, member.id) == 1


@pytest.mark.asyncio
async def test_absent_and_excused_clear_check_in_and_out(
    session, clock, recording_dispatcher, make_member, make_meeting
):
    member = await make_member()
    meeting = await make_meeting()

    await record_attendance(
        session, meeting.id, member.id, "present", clock=clock, dispatcher=recording_dispatcher
    )
    await record_check_out(session, meeting.id, member.id, clock=clock)

    fact = await record_attendance(
        session, meeting.id, member.id, "excused", notes="Exam",
        clock=clock, dispatcher=recording_dispatcher,
    )
    assert fact.status == "excused"
    assert fact.check_in_time is None
    assert fact.check_out_time is None
    assert fact.notes == "Exam"

    # Notes survive a write that does not pass any
    fact = await record_attendance(
        session, meeting.id, member.id, "absent", clock=clock, dispatcher=recording_dispatcher
    )
    assert fact.notes == "Exam"

    # Absent -> present stamps a fresh check-in
    clock.advance(hours=1)
    fact = await record_attendance(
        session, meeting.id, member.id, "present", clock=clock, dispatcher=recording_dispatcher
    )
    assert fact.check_in_time == NOW + timedelta(hours=1)


@pytest.mark.asyncio
async def test_invalid_status_is_rejected_before_any_write(
    session, clock, recording_dispatcher, make_member, make_meeting
):
    member = await make_member()
    meeting = await make_meeting()

    with pytest.raises(InvalidStatusError):
        await record_attendance(
            session, meeting.id, member.id, "sleeping",
            clock=clock, dispatcher=recording_dispatcher,
        )

    assert await _fact_count(session, meeting.id, member.id) == 0
    assert await _attendees(session, meeting.id, member.id) == []
    assert recording_dispatcher.dispatched == []


@pytest.mark.asyncio
async def test_unknown_meeting_or_member_raises_not_found(
    session, clock, recording_dispatcher, make_member, make_meeting
):
    member = await make_member()
    meeting = await make_meeting()

    with pytest.raises(NotFoundError):
        await record_attendance(
            session, 9999, member.id, "present", clock=clock, dispatcher=recording_dispatcher
        )
    with pytest.raises(NotFoundError):
        await record_attendance(
            session, meeting.id, 9999, "present", clock=clock, dispatcher=recording_dispatcher
        )

    result = await session.execute(select(func.count()).select_from(AttendanceRecord))
    assert result.scalar_one() == 0
    assert recording_dispatcher.dispatched == []


@pytest.mark.asyncio
async def test_repeated_writes_leave_exactly_one_fact_and_one_attendee(
    session, clock, recording_dispatcher, make_member, make_meeting
):
    member = await make_member()
    meeting = await make_meeting()

    for status in ["present", "late", "absent", "present", "excused", "late"]:
        clock.advance(minutes=1)
        fact = await record_attendance(
            session, meeting.id, member.id, status, clock=clock, dispatcher=recording_dispatcher
        )

    attendees = await _attendees(session, meeting.id, member.id)
    assert await _fact_count(session, meeting.id, member.id) == 1
    assert len(attendees) == 1
    assert attendees[0].status == fact.status == "late"
    assert attendees[0].check_in_time == fact.check_in_time
    assert len(recording_dispatcher.dispatched) == 6


@pytest.mark.asyncio
async def test_write_removes_duplicate_attendee_entries(
    session, clock, recording_dispatcher, make_member, make_meeting
):
    """
    An attendee list that drifted into duplicates for a member is collapsed
    back to one entry by the next write for that member.
    """
    member = await make_member()
    meeting = await make_meeting()

    session.add_all(
        [
            MeetingAttendee(meeting_id=meeting.id, member_id=member.id, status="absent"),
            MeetingAttendee(meeting_id=meeting.id, member_id=member.id, status="late"),
        ]
    )
    await session.commit()

    await record_attendance(
        session, meeting.id, member.id, "present", clock=clock, dispatcher=recording_dispatcher
    )

    attendees = await _attendees(session, meeting.id, member.id)
    assert len(attendees) == 1
    assert attendees[0].status == "present"


@pytest.mark.asyncio
async def test_other_members_attendee_entries_are_untouched(
    session, clock, recording_dispatcher, make_member, make_meeting
):
    first = await make_member()
    second = await make_member()
    meeting = await make_meeting()

    await record_attendance(
        session, meeting.id, first.id, "present", clock=clock, dispatcher=recording_dispatcher
    )
    await record_attendance(
        session, meeting.id, second.id, "absent", clock=clock, dispatcher=recording_dispatcher
    )
    await record_attendance(
        session, meeting.id, first.id, "late", clock=clock, dispatcher=recording_dispatcher
    )

    assert [a.status for a in await _attendees(session, meeting.id, second.id)] == ["absent"]
    assert [a.status for a in await _attendees(session, meeting.id, first.id)] == ["late"]


@pytest.mark.asyncio
async def test_failed_mirror_sync_keeps_the_recorded_fact(
    session, clock, recording_dispatcher, make_member, make_meeting, monkeypatch
):
    member = await make_member()
    meeting = await make_meeting()

    async def broken_sync(*args, **kwargs):
        raise OperationalError("DELETE FROM meeting_attendees", {}, Exception("db locked"))

    monkeypatch.setattr(attendance_ledger, "sync_mirror", broken_sync)

    fact = await record_attendance(
        session, meeting.id, member.id, "present", clock=clock, dispatcher=recording_dispatcher
    )

    assert fact.status == "present"
    assert await _fact_count(session, meeting.id, member.id) == 1
    assert await _attendees(session, meeting.id, member.id) == []
    assert recording_dispatcher.dispatched == [member.id]


@pytest.mark.asyncio
async def test_check_out_stamps_time_and_refreshes_mirror(
    session, clock, recording_dispatcher, make_member, make_meeting
):
    member = await make_member()
    meeting = await make_meeting()

    await record_attendance(
        session, meeting.id, member.id, "late", clock=clock, dispatcher=recording_dispatcher
    )
    clock.advance(hours=2)
    fact = await record_check_out(session, meeting.id, member.id, clock=clock)

    assert fact.check_out_time == NOW + timedelta(hours=2)
    attendees = await _attendees(session, meeting.id, member.id)
    assert attendees[0].check_out_time == NOW + timedelta(hours=2)


@pytest.mark.asyncio
async def test_check_out_requires_a_checked_in_fact(
    session, clock, recording_dispatcher, make_member, make_meeting
):
    member = await make_member()
    meeting = await make_meeting()

    with pytest.raises(NotFoundError):
        await record_check_out(session, meeting.id, member.id, clock=clock)

    await record_attendance(
        session, meeting.id, member.id, "absent", clock=clock, dispatcher=recording_dispatcher
    )
    with pytest.raises(InvalidStatusError):
        await record_check_out(session, meeting.id, member.id, clock=clock)


@pytest.mark.asyncio
async def test_list_meeting_attendance_most_recent_first(
    session, make_member, make_meeting, make_attendance
):
    first = await make_member()
    second = await make_member()
    meeting = await make_meeting()

    await make_attendance(meeting.id, first.id, created_at=NOW - timedelta(hours=1))
    await make_attendance(meeting.id, second.id, status="absent", created_at=NOW)

    facts = await list_meeting_attendance(session, meeting.id)
    assert [f.member_id for f in facts] == [second.id, first.id]

    with pytest.raises(NotFoundError):
        await list_meeting_attendance(session, 9999)


@pytest.mark.asyncio
async def test_unreloadable_fact_after_mirror_failure_still_dispatches(
    session, clock, recording_dispatcher, make_member, make_meeting, monkeypatch
):
    """
    If the storage drops out right after the fact is committed, both the
    mirror sync and the reload fail. The caller gets UpstreamFailure, but the
    fact stays recorded and the recomputation is still requested.
    """
    member = await make_member()
    meeting = await make_meeting()

    async def broken_sync(*args, **kwargs):
        raise OperationalError("DELETE FROM meeting_attendees", {}, Exception("db gone"))

    async def broken_refresh(*args, **kwargs):
        raise OperationalError("SELECT attendance_records", {}, Exception("db gone"))

    monkeypatch.setattr(attendance_ledger, "sync_mirror", broken_sync)
    monkeypatch.setattr(AsyncSession, "refresh", broken_refresh)

    with pytest.raises(UpstreamFailure):
        await record_attendance(
            session, meeting.id, member.id, "present", clock=clock, dispatcher=recording_dispatcher
        )

    assert recording_dispatcher.dispatched == [member.id]
    assert await _fact_count(session, meeting.id, member.id) == 1
