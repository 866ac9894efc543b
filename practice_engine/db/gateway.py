"""
PostgreSQL persistence gateway.

Two operations must be atomic:

- create_session_within_quota: a transaction-scoped advisory lock keyed on
  the student serializes concurrent creates, so count-then-insert cannot
  overshoot the daily quota.
- mark_complete: the session row is locked FOR UPDATE while totals are
  aggregated from the stored answers.

Answer uniqueness is enforced by the (session_id, question_id) constraint.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from loguru import logger
from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from practice_engine.practice.errors import AlreadyAnswered, NotFound, QuotaExceededAtCreation
from practice_engine.practice.models import (
    CompletionTotals,
    PracticeAnswer,
    PracticeSession,
    QuestionProgress,
    RewardGrant,
    SessionLimitStatus,
)

from .database import async_session_scope
from .models import (
    PracticeAnswerRow,
    PracticeSessionRow,
    SessionQuestionRow,
    StudentQuestionProgressRow,
    StudentSubscriptionRow,
)


def answer_from_row(row: PracticeAnswerRow) -> PracticeAnswer:
    return PracticeAnswer(
        question_id=row.question_id,
        is_correct=row.is_correct,
        time_spent_seconds=row.time_spent_seconds or 0,
        answered_at=row.answered_at,
        selected_option_ids=tuple(row.selected_options) if row.selected_options is not None else None,
        text_answer=row.text_answer,
    )


def session_from_row(row: PracticeSessionRow) -> PracticeSession:
    """Map a loaded row (questions and answers eager-loaded) to the domain type."""
    ordered = sorted(row.questions, key=lambda q: q.question_order)
    return PracticeSession(
        id=row.id,
        student_id=row.student_id,
        sub_topic_id=row.sub_topic_id,
        question_ids=tuple(q.question_id for q in ordered),
        created_at=row.created_at,
        sub_topic_name=row.sub_topic_name,
        topic_id=row.topic_id,
        topic_name=row.topic_name,
        subject_id=row.subject_id,
        subject_name=row.subject_name,
        grade_level_id=row.grade_level_id,
        grade_level_name=row.grade_level_name,
        current_question_index=row.current_question_index,
        answers=tuple(answer_from_row(a) for a in row.answers),
        completed_at=row.completed_at,
        total_time_seconds=row.total_time_seconds or 0,
        correct_count=row.correct_count or 0,
        xp_earned=row.xp_earned,
        coins_earned=row.coins_earned,
        cycle_number=row.cycle_number,
    )


def _with_children():
    return select(PracticeSessionRow).options(
        selectinload(PracticeSessionRow.questions),
        selectinload(PracticeSessionRow.answers),
    )


class SqlPersistenceGateway:
    """PersistenceGateway over the practice_* tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None):
        self._factory = session_factory

    async def create_session_within_quota(
        self,
        session: PracticeSession,
        *,
        daily_limit: int,
        day_start: datetime,
        day_end: datetime,
    ) -> PracticeSession:
        async with async_session_scope(self._factory) as db:
            await db.execute(
                select(func.pg_advisory_xact_lock(func.hashtext(f"practice:{session.student_id}")))
            )
            today = await self._count(db, session.student_id, day_start, day_end)
            if today >= daily_limit:
                raise QuotaExceededAtCreation(SessionLimitStatus.compute(today, daily_limit))

            db.add(
                PracticeSessionRow(
                    id=session.id,
                    student_id=session.student_id,
                    sub_topic_id=session.sub_topic_id,
                    sub_topic_name=session.sub_topic_name,
                    topic_id=session.topic_id,
                    topic_name=session.topic_name,
                    subject_id=session.subject_id,
                    subject_name=session.subject_name,
                    grade_level_id=session.grade_level_id,
                    grade_level_name=session.grade_level_name,
                    total_questions=session.total_questions,
                    current_question_index=session.current_question_index,
                    cycle_number=session.cycle_number,
                    created_at=session.created_at,
                )
            )
            await db.flush()
            db.add_all(
                SessionQuestionRow(session_id=session.id, question_id=qid, question_order=order)
                for order, qid in enumerate(session.question_ids, start=1)
            )
            if session.question_ids:
                await db.execute(
                    pg_insert(StudentQuestionProgressRow)
                    .values([
                        {
                            "id": str(uuid.uuid4()),
                            "student_id": session.student_id,
                            "sub_topic_id": session.sub_topic_id,
                            "question_id": qid,
                            "cycle_number": session.cycle_number,
                        }
                        for qid in session.question_ids
                    ])
                    .on_conflict_do_nothing(constraint="uq_progress_student_question_cycle")
                )

        logger.info(f"Created session {session.id} for {session.student_id} ({today + 1}/{daily_limit} today)")
        return session

    async def get_session(self, session_id: str) -> PracticeSession | None:
        async with async_session_scope(self._factory) as db:
            row = (await db.execute(_with_children().where(PracticeSessionRow.id == session_id))).scalar_one_or_none()
            return session_from_row(row) if row else None

    async def list_sessions(self, student_id: str) -> list[PracticeSession]:
        stmt = (
            _with_children()
            .where(PracticeSessionRow.student_id == student_id)
            .order_by(PracticeSessionRow.created_at.desc())
        )
        async with async_session_scope(self._factory) as db:
            rows = (await db.execute(stmt)).scalars().all()
            return [session_from_row(r) for r in rows]

    async def insert_answer(self, session_id: str, answer: PracticeAnswer) -> None:
        async with async_session_scope(self._factory) as db:
            if await db.get(PracticeSessionRow, session_id) is None:
                raise NotFound(f"Session not found: {session_id}")
            db.add(
                PracticeAnswerRow(
                    session_id=session_id,
                    question_id=answer.question_id,
                    selected_options=list(answer.selected_option_ids) if answer.selected_option_ids is not None else None,
                    text_answer=answer.text_answer,
                    is_correct=answer.is_correct,
                    time_spent_seconds=answer.time_spent_seconds,
                    answered_at=answer.answered_at,
                )
            )
            try:
                await db.flush()
            except IntegrityError as exc:
                raise AlreadyAnswered(answer.question_id) from exc

    async def update_current_index(self, session_id: str, index: int) -> None:
        async with async_session_scope(self._factory) as db:
            result = await db.execute(
                update(PracticeSessionRow)
                .where(PracticeSessionRow.id == session_id)
                .values(current_question_index=index)
            )
            if result.rowcount == 0:
                raise NotFound(f"Session not found: {session_id}")

    async def mark_complete(self, session_id: str, completed_at: datetime) -> CompletionTotals:
        async with async_session_scope(self._factory) as db:
            row = (
                await db.execute(
                    select(PracticeSessionRow).where(PracticeSessionRow.id == session_id).with_for_update()
                )
            ).scalar_one_or_none()
            if row is None:
                raise NotFound(f"Session not found: {session_id}")
            if row.completed_at is not None:
                raise NotFound(f"Session already completed: {session_id}")

            correct, total_time = (
                await db.execute(
                    select(
                        func.count().filter(PracticeAnswerRow.is_correct.is_(True)),
                        func.coalesce(func.sum(PracticeAnswerRow.time_spent_seconds), 0),
                    ).where(PracticeAnswerRow.session_id == session_id)
                )
            ).one()

            row.completed_at = completed_at
            row.correct_count = int(correct)
            row.total_time_seconds = int(total_time)

        logger.info(f"Completed session {session_id}: {correct} correct in {total_time}s")
        return CompletionTotals(
            completed_at=completed_at,
            correct_count=int(correct),
            total_time_seconds=int(total_time),
        )

    async def record_rewards(self, session_id: str, reward: RewardGrant) -> None:
        async with async_session_scope(self._factory) as db:
            result = await db.execute(
                update(PracticeSessionRow)
                .where(PracticeSessionRow.id == session_id)
                .values(xp_earned=reward.xp, coins_earned=reward.coins)
            )
            if result.rowcount == 0:
                raise NotFound(f"Session not found: {session_id}")

    async def count_sessions_between(self, student_id: str, start: datetime, end: datetime) -> int:
        async with async_session_scope(self._factory) as db:
            return await self._count(db, student_id, start, end)

    async def get_subscription_tier(self, student_id: str) -> str | None:
        stmt = (
            select(StudentSubscriptionRow.tier)
            .where(
                StudentSubscriptionRow.student_id == student_id,
                StudentSubscriptionRow.is_active.is_(True),
            )
            .order_by(StudentSubscriptionRow.updated_at.desc())
            .limit(1)
        )
        async with async_session_scope(self._factory) as db:
            return (await db.execute(stmt)).scalar_one_or_none()

    async def get_question_progress(self, student_id: str, sub_topic_id: str) -> QuestionProgress:
        scope = (
            StudentQuestionProgressRow.student_id == student_id,
            StudentQuestionProgressRow.sub_topic_id == sub_topic_id,
        )
        async with async_session_scope(self._factory) as db:
            latest = (
                await db.execute(select(func.max(StudentQuestionProgressRow.cycle_number)).where(*scope))
            ).scalar_one_or_none()
            if latest is None:
                return QuestionProgress()
            used = (
                await db.execute(
                    select(StudentQuestionProgressRow.question_id).where(
                        *scope, StudentQuestionProgressRow.cycle_number == latest
                    )
                )
            ).scalars().all()
        return QuestionProgress(cycle_number=latest, used_question_ids=frozenset(used))

    @staticmethod
    async def _count(db: AsyncSession, student_id: str, start: datetime, end: datetime) -> int:
        stmt = select(func.count()).select_from(PracticeSessionRow).where(
            PracticeSessionRow.student_id == student_id,
            PracticeSessionRow.created_at >= start,
            PracticeSessionRow.created_at < end,
        )
        return int((await db.execute(stmt)).scalar_one())
