# cbt/services/session_state.py
"""
Explicit states of a student's attempt, derived from the stored Submission.

    NotStarted -> Running -> Submitted
    Running -> Expired (detected lazily on next access, no row change)

All transition logic works against these values instead of checking
nullable columns directly.
"""
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

from cbt.models.submission import Submission


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Stored timestamps come back naive from SQLite; they are UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class NotStarted:
    pass


@dataclass(frozen=True)
class Running:
    started_at: datetime
    duration_minutes: int
    elapsed_seconds: float

    @property
    def remaining_seconds(self) -> int:
        return max(0, math.ceil(self.duration_minutes * 60 - self.elapsed_seconds))


@dataclass(frozen=True)
class Expired:
    started_at: datetime
    duration_minutes: int
    elapsed_seconds: float

    @property
    def overdue_seconds(self) -> float:
        return self.elapsed_seconds - self.duration_minutes * 60


@dataclass(frozen=True)
class Submitted:
    score: Optional[int]
    total: Optional[int]
    submitted_at: datetime


SessionState = Union[NotStarted, Running, Expired, Submitted]


def derive_state(submission: Optional[Submission], now: datetime) -> SessionState:
    """
    Classifies a submission row at instant ``now``.

    Elapsed time is always ``now - exam_started_at``; a session whose elapsed
    time has reached its snapshotted duration is Expired.
    """
    if submission is None:
        return NotStarted()

    if submission.submitted_at is not None:
        return Submitted(
            score=submission.score,
            total=submission.total_questions,
            submitted_at=as_utc(submission.submitted_at),
        )

    started_at = as_utc(submission.exam_started_at)
    # clamp clock skew between app servers
    elapsed = max(0.0, (as_utc(now) - started_at).total_seconds())
    duration = int(submission.duration_minutes)

    if elapsed >= duration * 60:
        return Expired(started_at=started_at, duration_minutes=duration, elapsed_seconds=elapsed)
    return Running(started_at=started_at, duration_minutes=duration, elapsed_seconds=elapsed)


def accepts_submit(state: SessionState, grace_seconds: int) -> bool:
    """Running sessions, and expired ones still inside the grace window."""
    if isinstance(state, Running):
        return True
    if isinstance(state, Expired):
        return state.overdue_seconds <= grace_seconds
    return False
