"""
In-process implementations of the content catalog and persistence gateway.

Used by tests and local demos. They follow the same contracts as the
PostgreSQL implementations in `practice_engine.db`: sessions are stored
without hydrated questions, answers are unique per (session, question), and
quota-checked creation is atomic with respect to other coroutines.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import replace
from datetime import datetime
from typing import Iterable

from loguru import logger

from .errors import AlreadyAnswered, NotFound, QuotaExceededAtCreation
from .models import (
    CompletionTotals,
    PracticeAnswer,
    PracticeSession,
    Question,
    QuestionProgress,
    RewardGrant,
    SessionLimitStatus,
    SubTopic,
)
from .transitions import local_totals


class InMemoryContentCatalog:
    """Catalog backed by dictionaries."""

    def __init__(
        self,
        sub_topics: Iterable[SubTopic] = (),
        questions: Iterable[Question] = (),
        rng: random.Random | None = None,
        shuffle: bool = False,
    ):
        self.sub_topics: dict[str, SubTopic] = {s.id: s for s in sub_topics}
        self.questions: dict[str, Question] = {q.id: q for q in questions}
        self._rng = rng or random.Random()
        self._shuffle = shuffle

    def add_sub_topic(self, sub_topic: SubTopic) -> None:
        self.sub_topics[sub_topic.id] = sub_topic

    def add_question(self, question: Question) -> None:
        self.questions[question.id] = question

    def remove_question(self, question_id: str) -> None:
        self.questions.pop(question_id, None)

    async def sub_topic(self, sub_topic_id: str) -> SubTopic | None:
        return self.sub_topics.get(sub_topic_id)

    async def questions_for_sub_topic(
        self,
        sub_topic_id: str,
        cycle_number: int,
        *,
        exclude: Iterable[str] = (),
        limit: int | None = None,
    ) -> list[Question]:
        excluded = set(exclude)
        pool = [
            q for q in self.questions.values()
            if q.sub_topic_id == sub_topic_id and q.id not in excluded
        ]
        if self._shuffle:
            self._rng.shuffle(pool)
        return pool[:limit] if limit is not None else pool

    async def questions_by_ids(self, question_ids: Iterable[str]) -> dict[str, Question]:
        return {qid: self.questions[qid] for qid in question_ids if qid in self.questions}


class InMemoryPersistenceGateway:
    """Gateway backed by dictionaries, safe for concurrent coroutines."""

    def __init__(self, subscription_tiers: dict[str, str] | None = None):
        self.sessions: dict[str, PracticeSession] = {}
        self.subscription_tiers: dict[str, str] = dict(subscription_tiers or {})
        # (student_id, sub_topic_id) -> {cycle_number: {question_id, ...}}
        self.question_progress: dict[tuple[str, str], dict[int, set[str]]] = {}
        self._lock = asyncio.Lock()

    async def create_session_within_quota(
        self,
        session: PracticeSession,
        *,
        daily_limit: int,
        day_start: datetime,
        day_end: datetime,
    ) -> PracticeSession:
        async with self._lock:
            today = self._count(session.student_id, day_start, day_end)
            if today >= daily_limit:
                raise QuotaExceededAtCreation(SessionLimitStatus.compute(today, daily_limit))

            stored = replace(session, questions=())
            self.sessions[session.id] = stored
            cycles = self.question_progress.setdefault((session.student_id, session.sub_topic_id), {})
            cycles.setdefault(session.cycle_number, set()).update(session.question_ids)
            logger.debug(f"Stored session {session.id} ({today + 1}/{daily_limit} today)")
            return session

    async def get_session(self, session_id: str) -> PracticeSession | None:
        return self.sessions.get(session_id)

    async def list_sessions(self, student_id: str) -> list[PracticeSession]:
        owned = [s for s in self.sessions.values() if s.student_id == student_id]
        return sorted(owned, key=lambda s: s.created_at, reverse=True)

    async def insert_answer(self, session_id: str, answer: PracticeAnswer) -> None:
        async with self._lock:
            session = self._require(session_id)
            if session.answer_for(answer.question_id) is not None:
                raise AlreadyAnswered(answer.question_id)
            self.sessions[session_id] = replace(
                session,
                answers=session.answers + (answer,),
                correct_count=session.correct_count + (1 if answer.is_correct else 0),
            )

    async def update_current_index(self, session_id: str, index: int) -> None:
        async with self._lock:
            session = self._require(session_id)
            self.sessions[session_id] = replace(session, current_question_index=index)

    async def mark_complete(self, session_id: str, completed_at: datetime) -> CompletionTotals:
        async with self._lock:
            session = self._require(session_id)
            if session.is_completed:
                raise NotFound(f"Session already completed: {session_id}")
            totals = local_totals(session, completed_at)
            self.sessions[session_id] = replace(
                session,
                completed_at=totals.completed_at,
                correct_count=totals.correct_count,
                total_time_seconds=totals.total_time_seconds,
            )
            return totals

    async def record_rewards(self, session_id: str, reward: RewardGrant) -> None:
        async with self._lock:
            session = self._require(session_id)
            self.sessions[session_id] = replace(
                session, xp_earned=reward.xp, coins_earned=reward.coins
            )

    async def count_sessions_between(self, student_id: str, start: datetime, end: datetime) -> int:
        return self._count(student_id, start, end)

    async def get_subscription_tier(self, student_id: str) -> str | None:
        return self.subscription_tiers.get(student_id)

    async def get_question_progress(self, student_id: str, sub_topic_id: str) -> QuestionProgress:
        cycles = self.question_progress.get((student_id, sub_topic_id))
        if not cycles:
            return QuestionProgress()
        latest = max(cycles)
        return QuestionProgress(cycle_number=latest, used_question_ids=frozenset(cycles[latest]))

    def _count(self, student_id: str, start: datetime, end: datetime) -> int:
        return sum(
            1 for s in self.sessions.values()
            if s.student_id == student_id and start <= s.created_at < end
        )

    def _require(self, session_id: str) -> PracticeSession:
        session = self.sessions.get(session_id)
        if session is None:
            raise NotFound(f"Session not found: {session_id}")
        return session
