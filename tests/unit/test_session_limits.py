"""
Tests for the daily session quota.
"""

from datetime import datetime, timedelta, timezone

import pytest
import pytz

from config import Settings
from practice_engine.practice.limits import SessionLimitGate, local_day_window
from practice_engine.practice.models import PracticeSession, SessionLimitStatus
from builders import STUDENT_ID, SUB_TOPIC_ID

KL = pytz.timezone("Asia/Kuala_Lumpur")


def stored_session(gateway, session_id, created_at, student_id=STUDENT_ID):
    gateway.sessions[session_id] = PracticeSession(
        id=session_id,
        student_id=student_id,
        sub_topic_id=SUB_TOPIC_ID,
        question_ids=("q01",),
        created_at=created_at,
    )


class TestDayWindow:
    def test_local_day_in_utc(self):
        now = datetime(2024, 3, 15, 2, 0, tzinfo=timezone.utc)  # 10:00 local

        start, end = local_day_window(now, KL)

        assert start == datetime(2024, 3, 14, 16, 0, tzinfo=timezone.utc)
        assert end == datetime(2024, 3, 15, 16, 0, tzinfo=timezone.utc)

    def test_late_utc_evening_is_next_local_day(self):
        now = datetime(2024, 3, 15, 17, 0, tzinfo=timezone.utc)  # 01:00 on the 16th locally

        start, _ = local_day_window(now, KL)

        assert start == datetime(2024, 3, 15, 16, 0, tzinfo=timezone.utc)

    def test_dst_day_is_23_hours(self):
        new_york = pytz.timezone("America/New_York")
        now = datetime(2024, 3, 10, 18, 0, tzinfo=timezone.utc)

        start, end = local_day_window(now, new_york)

        assert end - start == timedelta(hours=23)

    def test_naive_now_is_treated_as_utc(self):
        start, _ = local_day_window(datetime(2024, 3, 15, 2, 0), KL)
        assert start == datetime(2024, 3, 14, 16, 0, tzinfo=timezone.utc)


class TestStatus:
    def test_compute(self):
        status = SessionLimitStatus.compute(3, 10)
        assert status.can_start_session is True
        assert status.remaining_sessions == 7

    def test_over_limit_never_negative(self):
        status = SessionLimitStatus.compute(12, 10)
        assert status.can_start_session is False
        assert status.remaining_sessions == 0


class TestTiers:
    @pytest.mark.parametrize(
        "tier,expected",
        [("core", 3), ("plus", 10), ("pro", 25), ("max", 50), (None, 3), ("legacy", 3)],
    )
    def test_sessions_per_day(self, tier, expected):
        assert Settings(log_file=None).sessions_per_day(tier) == expected


class TestSessionLimitGate:
    @pytest.mark.asyncio
    async def test_counts_only_today(self, gateway, limit_gate, clock):
        stored_session(gateway, "today-1", clock.now - timedelta(hours=1))
        stored_session(gateway, "today-2", datetime(2024, 3, 14, 16, 0, tzinfo=timezone.utc))
        stored_session(gateway, "yesterday", datetime(2024, 3, 14, 15, 59, tzinfo=timezone.utc))
        stored_session(gateway, "other", clock.now, student_id="student-2")

        status = await limit_gate.check_limit(STUDENT_ID)

        assert status.sessions_today == 2
        assert status.session_limit == 10
        assert status.remaining_sessions == 8

    @pytest.mark.asyncio
    async def test_cached_within_ttl(self, gateway, limit_gate, clock, monotonic):
        first = await limit_gate.check_limit(STUDENT_ID)
        stored_session(gateway, "s1", clock.now)

        monotonic.advance(29)
        assert await limit_gate.check_limit(STUDENT_ID) == first

        monotonic.advance(2)
        assert (await limit_gate.check_limit(STUDENT_ID)).sessions_today == 1

    @pytest.mark.asyncio
    async def test_force_bypasses_cache(self, gateway, limit_gate, clock):
        await limit_gate.check_limit(STUDENT_ID)
        stored_session(gateway, "s1", clock.now)

        status = await limit_gate.check_limit(STUDENT_ID, force=True)

        assert status.sessions_today == 1

    @pytest.mark.asyncio
    async def test_invalidate(self, gateway, limit_gate, clock):
        await limit_gate.check_limit(STUDENT_ID)
        stored_session(gateway, "s1", clock.now)

        limit_gate.invalidate(STUDENT_ID)

        assert (await limit_gate.check_limit(STUDENT_ID)).sessions_today == 1

    @pytest.mark.asyncio
    async def test_unsubscribed_student_gets_default_tier(self, limit_gate):
        status = await limit_gate.check_limit("nobody")
        assert status.session_limit == 3

    @pytest.mark.asyncio
    async def test_quota_resets_at_local_midnight(self, gateway, settings, clock, monotonic):
        gate = SessionLimitGate(gateway, settings, clock=clock, monotonic=monotonic)
        stored_session(gateway, "s1", clock.now)
        assert (await gate.check_limit(STUDENT_ID)).sessions_today == 1

        clock.now = datetime(2024, 3, 15, 16, 0, tzinfo=timezone.utc)  # local midnight
        assert (await gate.check_limit(STUDENT_ID, force=True)).sessions_today == 0
