"""
Session history: summaries and cascading filters.

Summaries are what history lists show (names, score, duration, status).
Filters cascade grade -> subject -> topic -> sub-topic, and a date range is
applied to the completion time in the reference timezone. In-progress
sessions always pass the date filter so they stay resumable from the list.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Sequence

from .limits import localize_midnight
from .models import PracticeSession
from .transitions import compute_score


class DateRange(str, Enum):
    TODAY = "today"
    LAST_7_DAYS = "last7days"
    LAST_30_DAYS = "last30days"
    ALL_TIME = "alltime"


_RANGE_DAYS = {
    DateRange.TODAY: 0,
    DateRange.LAST_7_DAYS: 7,
    DateRange.LAST_30_DAYS: 30,
}


@dataclass(frozen=True)
class SessionSummary:
    id: str
    grade_level_name: str
    subject_name: str
    topic_name: str
    sub_topic_name: str
    total_questions: int
    answered: int
    correct_answers: int
    score: Optional[int]
    duration_seconds: Optional[int]
    created_at: dt.datetime
    completed_at: Optional[dt.datetime]
    xp_earned: Optional[int] = None
    coins_earned: Optional[int] = None

    @property
    def status(self) -> str:
        return "completed" if self.completed_at else "in_progress"


@dataclass(frozen=True)
class HistoryFilters:
    grade_level_name: Optional[str] = None
    subject_name: Optional[str] = None
    topic_name: Optional[str] = None
    sub_topic_name: Optional[str] = None
    date_range: DateRange = DateRange.ALL_TIME


def summarize_session(session: PracticeSession) -> SessionSummary:
    """Score and duration are only reported for completed sessions."""
    correct = sum(1 for a in session.answers if a.is_correct)
    completed = session.is_completed
    return SessionSummary(
        id=session.id,
        grade_level_name=session.grade_level_name,
        subject_name=session.subject_name,
        topic_name=session.topic_name,
        sub_topic_name=session.sub_topic_name,
        total_questions=session.total_questions,
        answered=len(session.answers),
        correct_answers=correct,
        score=compute_score(correct, session.total_questions) if completed else None,
        duration_seconds=sum(a.time_spent_seconds for a in session.answers) if completed else None,
        created_at=session.created_at,
        completed_at=session.completed_at,
        xp_earned=session.xp_earned,
        coins_earned=session.coins_earned,
    )


def date_range_start(date_range: DateRange, now: dt.datetime, tz: dt.tzinfo) -> Optional[dt.datetime]:
    """Local midnight `n` days back, as UTC; None for all time."""
    days = _RANGE_DAYS.get(DateRange(date_range))
    if days is None:
        return None
    if now.tzinfo is None:
        now = now.replace(tzinfo=dt.timezone.utc)
    first_day = now.astimezone(tz).date() - dt.timedelta(days=days)
    return localize_midnight(tz, first_day).astimezone(dt.timezone.utc)


def filter_sessions(
    sessions: Iterable[SessionSummary],
    filters: HistoryFilters,
    now: dt.datetime,
    tz: dt.tzinfo,
) -> list[SessionSummary]:
    start = date_range_start(filters.date_range, now, tz)

    def keep(s: SessionSummary) -> bool:
        if filters.grade_level_name and s.grade_level_name != filters.grade_level_name:
            return False
        if filters.subject_name and s.subject_name != filters.subject_name:
            return False
        if filters.topic_name and s.topic_name != filters.topic_name:
            return False
        if filters.sub_topic_name and s.sub_topic_name != filters.sub_topic_name:
            return False
        if start and s.completed_at and s.completed_at < start:
            return False
        return True

    return [s for s in sessions if keep(s)]


def unique_values(
    sessions: Sequence[SessionSummary],
    field: str,
    **narrow_by: Optional[str],
) -> list[str]:
    """
    Sorted distinct values of `field`, optionally narrowed by parent levels.

    Example: unique_values(s, "topic_name", subject_name="Math")
    """
    rows = [
        s for s in sessions
        if all(value is None or getattr(s, key) == value for key, value in narrow_by.items())
    ]
    return sorted({getattr(s, field) for s in rows})
