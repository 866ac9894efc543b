"""
Daily session quota per subscription tier.

A "day" is a calendar day in the deployment's reference timezone, not UTC,
so the quota resets at local midnight for the students it serves. The check
here is advisory: the store re-validates inside the gateway's atomic
create-within-quota call.
"""

from __future__ import annotations

import datetime as dt
import time
from typing import Callable

import pytz
from loguru import logger

from config import Settings, get_settings

from .gateway import PersistenceGateway
from .models import SessionLimitStatus


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def local_day_window(now: dt.datetime, tz: dt.tzinfo) -> tuple[dt.datetime, dt.datetime]:
    """
    Return the [start, end) UTC bounds of the local calendar day containing `now`.

    `tz` is a pytz timezone; midnight is localized explicitly so DST days are
    23 or 25 hours long rather than shifted.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=dt.timezone.utc)
    local = now.astimezone(tz)
    today = local.date()
    tomorrow = today + dt.timedelta(days=1)
    start = localize_midnight(tz, today)
    end = localize_midnight(tz, tomorrow)
    return start.astimezone(dt.timezone.utc), end.astimezone(dt.timezone.utc)


def localize_midnight(tz: dt.tzinfo, day: dt.date) -> dt.datetime:
    naive = dt.datetime(day.year, day.month, day.day)
    if hasattr(tz, "localize"):
        return tz.localize(naive)
    return naive.replace(tzinfo=tz)


class SessionLimitGate:
    """Decides whether a student may start another session today."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        settings: Settings | None = None,
        clock: Callable[[], dt.datetime] = utc_now,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.gateway = gateway
        self.settings = settings or get_settings()
        self.timezone = pytz.timezone(self.settings.reference_timezone)
        self._clock = clock
        self._monotonic = monotonic
        self._cache: dict[str, tuple[float, SessionLimitStatus]] = {}

    def day_window(self, now: dt.datetime | None = None) -> tuple[dt.datetime, dt.datetime]:
        return local_day_window(now or self._clock(), self.timezone)

    async def daily_limit(self, student_id: str) -> int:
        tier = await self.gateway.get_subscription_tier(student_id)
        return self.settings.sessions_per_day(tier)

    async def check_limit(self, student_id: str, force: bool = False) -> SessionLimitStatus:
        """Return today's usage for the student, reusing a fresh cached value unless forced."""
        if not force:
            cached = self._cache.get(student_id)
            if cached and self._monotonic() - cached[0] < self.settings.session_limit_cache_ttl_seconds:
                return cached[1]

        limit = await self.daily_limit(student_id)
        start, end = self.day_window()
        sessions_today = await self.gateway.count_sessions_between(student_id, start, end)
        status = SessionLimitStatus.compute(sessions_today, limit)

        logger.debug(
            f"Session limit for {student_id}: {status.sessions_today}/{status.session_limit}"
        )
        self._cache[student_id] = (self._monotonic(), status)
        return status

    def invalidate(self, student_id: str | None = None) -> None:
        """Forget cached status for one student, or for everyone."""
        if student_id is None:
            self._cache.clear()
        else:
            self._cache.pop(student_id, None)
