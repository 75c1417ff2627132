# meeting_metrics/services/aggregation_dispatcher.py
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from functools import lru_cache
from typing import Any

from meeting_metrics.core.clock import Clock, get_clock
from meeting_metrics.core.errors import AggregationDeferred
from meeting_metrics.db.session import AsyncSessionLocal
from meeting_metrics.services.performance import recompute_performance

logger = logging.getLogger(__name__)


class AggregationDispatcher:
    """
    Runs performance recomputations in the background.

    `dispatch()` schedules a recomputation on the running event loop and
    returns at once, so the write that triggered it never waits for (or is
    rolled back by) the aggregation. Each run opens its own session.

    A failed run is logged and kept in `deferred`; the next trigger for the
    same member, or `retry_deferred()`, brings the record up to date again
    and drops the entry.
    """

    def __init__(
        self,
        session_factory: Callable[[], Any] | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock
        self._pending: set[asyncio.Task] = set()
        self.deferred: list[AggregationDeferred] = []

    def dispatch(self, member_id: int) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(
            self._run(member_id),
            name=f"recompute-performance-{member_id}",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """
        Wait for every in-flight recomputation to finish.
        """
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def retry_deferred(self) -> int:
        """
        Re-dispatch every member whose recomputation was deferred and wait for
        the retries. Returns the number of members retried.
        """
        member_ids = sorted({failure.member_id for failure in self.deferred})
        self.deferred.clear()
        for member_id in member_ids:
            self.dispatch(member_id)
        await self.drain()
        return len(member_ids)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def _run(self, member_id: int) -> None:
        session_factory = self._session_factory or AsyncSessionLocal
        clock = self._clock or get_clock()
        try:
            async with session_factory() as session:
                await recompute_performance(session, member_id, now=clock.now())
        except Exception as exc:
            # Aggregation must never surface to the attendance writer.
            failure = AggregationDeferred(member_id, exc)
            self.deferred.append(failure)
            logger.warning("%s", failure, exc_info=True)
        else:
            self._forget_deferred([member_id])

    def _forget_deferred(self, member_ids: Iterable[int]) -> None:
        done = set(member_ids)
        self.deferred = [failure for failure in self.deferred if failure.member_id not in done]

    def resolve_deferred(self, member_ids: Iterable[int]) -> int:
        """
        Drop deferred entries for members whose record has just been
        recomputed elsewhere (e.g. by the bulk job). Returns how many entries
        were dropped.
        """
        before = len(self.deferred)
        self._forget_deferred(member_ids)
        return before - len(self.deferred)


@lru_cache()
def get_dispatcher() -> AggregationDispatcher:
    """
    Process-wide dispatcher, also usable as a FastAPI dependency.
    """
    return AggregationDispatcher()
