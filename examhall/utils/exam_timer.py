"""Deadline arithmetic for exam sessions.

Everything here is pure: callers pass `now` explicitly so a request, or a
whole sweep, evaluates every deadline against one consistent instant.
Datetimes are naive UTC, matching what the database stores.
"""
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from examhall.core.config import settings
from examhall.core.constants import AutoSubmitReasonEnum


@dataclass(frozen=True)
class RemainingTime:
    millis_left: int
    hours: int
    minutes: int
    seconds: int
    has_expired: bool
    effective_deadline: datetime


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def duration_deadline(started_at: datetime, duration_minutes: int) -> datetime:
    return started_at + timedelta(minutes=duration_minutes)


def effective_deadline(started_at: datetime, duration_minutes: int, available_until: datetime) -> datetime:
    return min(duration_deadline(started_at, duration_minutes), available_until)


def remaining_time(started_at: datetime, duration_minutes: int, available_until: datetime,
                   now: datetime) -> RemainingTime:
    deadline = effective_deadline(started_at, duration_minutes, available_until)

    if deadline <= now:
        return RemainingTime(
            millis_left=0,
            hours=0,
            minutes=0,
            seconds=0,
            has_expired=True,
            effective_deadline=deadline,
        )

    # Round up so a session still open reports at least one millisecond
    millis_left = math.ceil((deadline - now) / timedelta(milliseconds=1))
    return RemainingTime(
        millis_left=millis_left,
        hours=millis_left // 3_600_000,
        minutes=(millis_left % 3_600_000) // 60_000,
        seconds=(millis_left % 60_000) // 1000,
        has_expired=False,
        effective_deadline=deadline,
    )


def remaining_time_for(session, exam, now: datetime) -> RemainingTime:
    return remaining_time(session.started_at, exam.duration, exam.available_until, now)


def auto_submit_reason(session, exam, now: datetime,
                       abandoned_after: Optional[timedelta] = None) -> Optional[AutoSubmitReasonEnum]:
    """Why a session must be closed without the student, or None if it may stay open."""
    if session.submitted_at is not None:
        return None

    if now >= duration_deadline(session.started_at, exam.duration):
        return AutoSubmitReasonEnum.TIME_EXPIRED

    if now >= exam.available_until:
        return AutoSubmitReasonEnum.DEADLINE_PASSED

    if abandoned_after is None:
        abandoned_after = timedelta(hours=settings.ABANDONED_SESSION_HOURS)
    last_activity = session.last_activity_at or session.started_at
    if now - last_activity >= abandoned_after:
        return AutoSubmitReasonEnum.ABANDONED

    return None


def is_auto_submit_due(session, exam, now: datetime, abandoned_after: Optional[timedelta] = None) -> bool:
    return auto_submit_reason(session, exam, now, abandoned_after) is not None


def elapsed_minutes(started_at: datetime, now: datetime) -> int:
    return max(int((now - started_at) // timedelta(minutes=1)), 0)


def capped_elapsed_minutes(started_at: datetime, duration_minutes: int, now: datetime) -> int:
    """Minutes spent, never more than the allotted duration."""
    return min(elapsed_minutes(started_at, now), duration_minutes)


def within_cancel_grace(started_at: datetime, now: datetime, grace_minutes: Optional[int] = None) -> bool:
    if grace_minutes is None:
        grace_minutes = settings.CANCEL_GRACE_MINUTES
    return now - started_at <= timedelta(minutes=grace_minutes)
