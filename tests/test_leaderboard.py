# tests/test_leaderboard.py
from datetime import datetime, timedelta, timezone

import pytest

from meeting_metrics.core.errors import UpstreamFailure
from meeting_metrics.services.leaderboard import award_distinctions, select_distinctions
from meeting_metrics.services.performance import recompute_performance

NOW = datetime(2025, 3, 20, 12, 0, tzinfo=timezone.utc)


class OfflineTaskLedger:
    async def tasks_completed_within(self, window):
        raise UpstreamFailure("Task ledger unavailable: connection refused")


@pytest.mark.asyncio
async def test_no_records_and_no_completions_yield_no_distinctions(session, make_member):
    await make_member()

    result = await select_distinctions(session, now=NOW)

    assert result.month_key == "2025-03"
    assert result.monthly is None
    assert result.weekly is None


@pytest.mark.asyncio
async def test_monthly_winner_is_highest_score(
    session, make_member, make_meeting, make_attendance
):
    low = await make_member()
    high = await make_member()
    meeting = await make_meeting()
    await make_attendance(meeting.id, high.id)

    await recompute_performance(session, low.id, now=NOW)
    await recompute_performance(session, high.id, now=NOW)

    result = await select_distinctions(session, now=NOW)

    assert result.monthly.member_id == high.id
    assert result.monthly.participation_score == pytest.approx(40.0)


@pytest.mark.asyncio
async def test_monthly_tie_goes_to_earliest_record(session, make_member):
    """
    Equal scores: the record created first wins, regardless of member id.
    """
    first_member = await make_member()
    second_member = await make_member()

    # second_member's record is created first
    await recompute_performance(session, second_member.id, now=NOW)
    await recompute_performance(session, first_member.id, now=NOW)

    result = await select_distinctions(session, now=NOW)

    assert result.monthly.member_id == second_member.id


@pytest.mark.asyncio
async def test_weekly_winner_counts_completions_in_trailing_week(
    session, make_member, make_task
):
    alice = await make_member(name="Alice")
    bob = await make_member(name="Bob")

    await make_task(alice.id, status="completed", completed_at=NOW - timedelta(days=1))
    await make_task(bob.id, status="completed", completed_at=NOW - timedelta(days=2))
    await make_task(bob.id, status="completed", completed_at=NOW - timedelta(days=6))
    # Outside the 7-day window
    await make_task(alice.id, status="completed", completed_at=NOW - timedelta(days=8))
    await make_task(alice.id, status="completed", completed_at=NOW - timedelta(days=10))

    result = await select_distinctions(session, now=NOW)

    assert result.weekly is not None
    assert result.weekly.member_id == bob.id
    assert result.weekly.name == "Bob"
    assert result.weekly.tasks_completed == 2


@pytest.mark.asyncio
async def test_weekly_tie_goes_to_lowest_member_id(session, make_member, make_task):
    lower = await make_member()
    higher = await make_member()

    await make_task(higher.id, status="completed", completed_at=NOW - timedelta(hours=3))
    await make_task(lower.id, status="completed", completed_at=NOW - timedelta(days=3))

    result = await select_distinctions(session, now=NOW)

    assert result.weekly.member_id == lower.id
    assert result.weekly.tasks_completed == 1


@pytest.mark.asyncio
async def test_select_distinctions_is_read_only(session, make_member, make_task):
    member = await make_member()
    await make_task(member.id, status="completed", completed_at=NOW - timedelta(days=1))
    record = await recompute_performance(session, member.id, now=NOW)

    await select_distinctions(session, now=NOW)
    await session.refresh(record)

    assert record.member_of_month is False
    assert record.member_of_week is False
    assert record.awards == []


@pytest.mark.asyncio
async def test_task_ledger_failure_propagates(session, make_member):
    member = await make_member()
    await recompute_performance(session, member.id, now=NOW)

    with pytest.raises(UpstreamFailure):
        await select_distinctions(session, now=NOW, task_ledger=OfflineTaskLedger())


@pytest.mark.asyncio
async def test_award_distinctions_flags_winners_and_keeps_numbers(
    session, make_member, make_meeting, make_task, make_attendance
):
    """
    Alice: present at the only meeting, 1/1 tasks -> score 100 (month).
    Bob: 2/3 tasks completed this week -> score 40 (week).
    """
    alice = await make_member(name="Alice")
    bob = await make_member(name="Bob")
    meeting = await make_meeting()
    await make_attendance(meeting.id, alice.id)

    await make_task(alice.id, status="completed", completed_at=NOW - timedelta(days=1))
    await make_task(bob.id, status="completed", completed_at=NOW - timedelta(hours=5))
    await make_task(bob.id, status="completed", completed_at=NOW - timedelta(hours=4))
    await make_task(bob.id)

    alice_record = await recompute_performance(session, alice.id, now=NOW)
    bob_record = await recompute_performance(session, bob.id, now=NOW)
    bob_score = bob_record.participation_score

    result = await award_distinctions(session, now=NOW)
    await session.refresh(alice_record)
    await session.refresh(bob_record)

    assert result.monthly.member_id == alice.id
    assert result.weekly.member_id == bob.id

    assert alice_record.member_of_month is True
    assert alice_record.member_of_week is False
    assert alice_record.awards == ["Member of the Month 2025-03"]
    assert alice_record.participation_score == pytest.approx(100.0)

    assert bob_record.member_of_month is False
    assert bob_record.member_of_week is True
    assert bob_record.awards == ["Member of the Week 2025-03-20"]
    assert bob_record.participation_score == pytest.approx(bob_score)
    assert bob_record.tasks_completed == 2
    assert bob_record.tasks_assigned == 3

    # Awarding again on the same day does not duplicate labels
    await award_distinctions(session, now=NOW)
    await session.refresh(alice_record)
    assert alice_record.awards == ["Member of the Month 2025-03"]


@pytest.mark.asyncio
async def test_award_moves_flag_to_new_winner(session, make_member, make_task):
    first = await make_member()
    second = await make_member()
    first_record = await recompute_performance(session, first.id, now=NOW)
    second_record = await recompute_performance(session, second.id, now=NOW)

    await award_distinctions(session, now=NOW)
    await session.refresh(first_record)
    assert first_record.member_of_month is True

    await make_task(second.id, status="completed", completed_at=NOW - timedelta(hours=1))
    await recompute_performance(session, second.id, now=NOW)
    await award_distinctions(session, now=NOW)
    await session.refresh(first_record)
    await session.refresh(second_record)

    assert first_record.member_of_month is False
    assert second_record.member_of_month is True
    assert second_record.member_of_week is True
    # Earlier labels stay in the history
    assert first_record.awards == ["Member of the Month 2025-03"]
