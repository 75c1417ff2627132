# tests/conftest.py
import asyncio
import os
import tempfile
from datetime import datetime, timezone

# Configure the app for tests before anything imports the settings/engine.
_TEST_DB_DIR = tempfile.mkdtemp(prefix="meeting-metrics-tests-")
os.environ["APP_ENV"] = "test"
os.environ["DB_URL"] = "sqlite+aiosqlite:///" + os.path.join(_TEST_DB_DIR, "test.db")
os.environ.pop("INTERNAL_API_KEY", None)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from meeting_metrics.core.clock import FixedClock, get_clock  # noqa: E402
from meeting_metrics.db.session import AsyncSessionLocal, init_db  # noqa: E402
from meeting_metrics.main import create_app  # noqa: E402
from meeting_metrics.models.attendance import AttendanceRecord  # noqa: E402
from meeting_metrics.models.meeting import Meeting  # noqa: E402
from meeting_metrics.models.member import Member  # noqa: E402
from meeting_metrics.models.task import Task  # noqa: E402
from meeting_metrics.services.aggregation_dispatcher import (  # noqa: E402
    AggregationDispatcher,
    get_dispatcher,
)

# Mid-month instant used as "now" unless a test needs something else.
NOW = datetime(2025, 3, 20, 12, 0, tzinfo=timezone.utc)


class RecordingDispatcher:
    """
    Stand-in for AggregationDispatcher that only remembers which members a
    recomputation was requested for.
    """

    def __init__(self) -> None:
        self.dispatched: list[int] = []
        self.deferred: list = []
        self.pending_count = 0

    def dispatch(self, member_id: int) -> None:
        self.dispatched.append(member_id)

    async def drain(self) -> None:
        return None

    def resolve_deferred(self, member_ids) -> int:
        done = set(member_ids)
        before = len(self.deferred)
        self.deferred = [f for f in self.deferred if f.member_id not in done]
        return before - len(self.deferred)

    async def retry_deferred(self) -> int:
        member_ids = sorted({f.member_id for f in self.deferred})
        self.deferred.clear()
        self.dispatched.extend(member_ids)
        return len(member_ids)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def recording_dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def dispatcher(clock) -> AggregationDispatcher:
    return AggregationDispatcher(session_factory=AsyncSessionLocal, clock=clock)


@pytest_asyncio.fixture
async def session():
    """
    Fresh schema + open AsyncSession for service-level tests.
    """
    await init_db()
    async with AsyncSessionLocal() as db:
        yield db


@pytest.fixture
def client(clock, recording_dispatcher):
    """
    TestClient on a clean database with the clock frozen at NOW and
    background recomputation replaced by RecordingDispatcher.
    """
    asyncio.run(init_db())

    app = create_app()
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_dispatcher] = lambda: recording_dispatcher

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Row builders for service tests
# ---------------------------------------------------------------------------

@pytest.fixture
def make_member(session):
    counter = {"n": 0}

    async def _make(name: str | None = None, status: str = "active", role: str = "Member") -> Member:
        counter["n"] += 1
        n = counter["n"]
        member = Member(
            name=name or f"Member {n}",
            email=f"member{n}@example.org",
            role=role,
            status=status,
        )
        session.add(member)
        await session.commit()
        await session.refresh(member)
        return member

    return _make


@pytest.fixture
def make_meeting(session):
    async def _make(
        meeting_date: datetime = NOW,
        status: str = "completed",
        title: str = "General Body Meeting",
    ) -> Meeting:
        meeting = Meeting(title=title, meeting_date=meeting_date, status=status)
        session.add(meeting)
        await session.commit()
        await session.refresh(meeting)
        return meeting

    return _make


@pytest.fixture
def make_task(session):
    async def _make(
        member_id: int,
        status: str = "pending",
        created_at: datetime = NOW,
        completed_at: datetime | None = None,
        title: str = "Action item",
    ) -> Task:
        task = Task(
            title=title,
            assigned_to=member_id,
            status=status,
            created_at=created_at,
            completed_at=completed_at,
        )
        session.add(task)
        await session.commit()
        await session.refresh(task)
        return task

    return _make


@pytest.fixture
def make_attendance(session):
    """
    Inserts a ledger row directly, bypassing record_attendance.
    """

    async def _make(
        meeting_id: int,
        member_id: int,
        status: str = "present",
        created_at: datetime = NOW,
    ) -> AttendanceRecord:
        fact = AttendanceRecord(
            meeting_id=meeting_id,
            member_id=member_id,
            status=status,
            check_in_time=created_at if status in ("present", "late") else None,
            created_at=created_at,
            updated_at=created_at,
        )
        session.add(fact)
        await session.commit()
        await session.refresh(fact)
        return fact

    return _make
