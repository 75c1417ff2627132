# meeting_metrics/core/errors.py
from __future__ import annotations


class MeetingMetricsError(Exception):
    """
    Base class for all domain errors raised by the attendance and
    performance services.
    """


class NotFoundError(MeetingMetricsError, LookupError):
    """
    Raised when a referenced meeting, member, attendance fact or
    performance record does not exist.
    """


class InvalidStatusError(MeetingMetricsError, ValueError):
    """
    Raised when a status is outside its enumeration, or is not allowed for
    the requested operation (e.g. checking out an absent member).
    """


class UpstreamFailure(MeetingMetricsError, RuntimeError):
    """
    Raised when a collaborator (member directory, meeting directory or task
    ledger) cannot be reached. Always propagated to the caller.
    """


class AggregationDeferred(MeetingMetricsError, RuntimeError):
    """
    A performance recomputation failed after the attendance write that
    triggered it had already been committed.

    Never raised to the recording caller; the dispatcher logs it and keeps
    it around so the member can be recomputed later.
    """

    def __init__(self, member_id: int, cause: BaseException) -> None:
        super().__init__(f"Performance recomputation deferred for member {member_id}: {cause}")
        self.member_id = member_id
        self.cause = cause
