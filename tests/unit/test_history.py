"""
Tests for session history summaries and filters.
"""

from datetime import datetime, timedelta, timezone

import pytz

from practice_engine.practice.history import (
    DateRange,
    HistoryFilters,
    date_range_start,
    filter_sessions,
    summarize_session,
    unique_values,
)
from practice_engine.practice.models import PracticeAnswer, PracticeSession
from builders import STUDENT_ID

KL = pytz.timezone("Asia/Kuala_Lumpur")
NOW = datetime(2024, 3, 15, 2, 0, tzinfo=timezone.utc)  # 10:00 local


def make_session(session_id, subject="Mathematics", topic="Numbers", sub_topic="Fractions",
                 grade="Grade 5", created_days_ago=0, completed=True, correct=(True, True, False)):
    created_at = NOW - timedelta(days=created_days_ago)
    answers = tuple(
        PracticeAnswer(question_id=f"q{i}", is_correct=ok, time_spent_seconds=10, answered_at=created_at)
        for i, ok in enumerate(correct)
    )
    return PracticeSession(
        id=session_id,
        student_id=STUDENT_ID,
        sub_topic_id=f"sub-{sub_topic}",
        question_ids=tuple(f"q{i}" for i in range(len(correct))),
        created_at=created_at,
        sub_topic_name=sub_topic,
        topic_name=topic,
        subject_name=subject,
        grade_level_name=grade,
        answers=answers,
        completed_at=created_at + timedelta(minutes=5) if completed else None,
        correct_count=sum(correct),
        total_time_seconds=10 * len(correct),
    )


class TestSummaries:
    def test_completed(self):
        summary = summarize_session(make_session("s1"))

        assert summary.status == "completed"
        assert summary.score == 67
        assert summary.correct_answers == 2
        assert summary.duration_seconds == 30
        assert summary.answered == 3

    def test_in_progress_has_no_score(self):
        summary = summarize_session(make_session("s1", completed=False, correct=(True,)))

        assert summary.status == "in_progress"
        assert summary.score is None
        assert summary.duration_seconds is None
        assert summary.answered == 1


class TestDateRange:
    def test_today_starts_at_local_midnight(self):
        assert date_range_start(DateRange.TODAY, NOW, KL) == datetime(2024, 3, 14, 16, 0, tzinfo=timezone.utc)

    def test_last_seven_days(self):
        assert date_range_start(DateRange.LAST_7_DAYS, NOW, KL) == datetime(2024, 3, 7, 16, 0, tzinfo=timezone.utc)

    def test_all_time(self):
        assert date_range_start(DateRange.ALL_TIME, NOW, KL) is None

    def test_accepts_plain_string(self):
        assert date_range_start("last30days", NOW, KL) == datetime(2024, 2, 13, 16, 0, tzinfo=timezone.utc)


class TestFilters:
    def summaries(self):
        return [
            summarize_session(make_session("recent")),
            summarize_session(make_session("old", created_days_ago=10)),
            summarize_session(make_session("ancient-open", created_days_ago=40, completed=False)),
            summarize_session(make_session("science", subject="Science", topic="Plants", sub_topic="Leaves")),
        ]

    def test_date_range_keeps_in_progress(self):
        kept = filter_sessions(self.summaries(), HistoryFilters(date_range=DateRange.LAST_7_DAYS), NOW, KL)
        assert [s.id for s in kept] == ["recent", "ancient-open", "science"]

    def test_all_time_keeps_everything(self):
        assert len(filter_sessions(self.summaries(), HistoryFilters(), NOW, KL)) == 4

    def test_subject_filter(self):
        kept = filter_sessions(self.summaries(), HistoryFilters(subject_name="Science"), NOW, KL)
        assert [s.id for s in kept] == ["science"]

    def test_combined(self):
        filters = HistoryFilters(subject_name="Mathematics", date_range=DateRange.TODAY)
        kept = filter_sessions(self.summaries(), filters, NOW, KL)
        assert [s.id for s in kept] == ["recent", "ancient-open"]

    def test_unique_values_cascade(self):
        summaries = self.summaries()

        assert unique_values(summaries, "subject_name") == ["Mathematics", "Science"]
        assert unique_values(summaries, "topic_name", subject_name="Science") == ["Plants"]
        assert unique_values(summaries, "topic_name", subject_name=None) == ["Numbers", "Plants"]
