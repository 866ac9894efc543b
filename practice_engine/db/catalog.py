"""
PostgreSQL content catalog.

Reads the curriculum hierarchy and questions. Selection for a new session is
random within the sub-topic, skipping deactivated questions and the ones
already used in the student's current cycle.
"""

from __future__ import annotations

from typing import Any, Iterable

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from practice_engine.practice.models import Question, QuestionOption, QuestionType, SubTopic

from .database import async_session_scope
from .models import GradeLevelRow, QuestionRow, SubjectRow, SubTopicRow, TopicRow


def option_from_json(raw: dict[str, Any]) -> QuestionOption:
    return QuestionOption(
        id=str(raw["id"]),
        text=raw.get("text"),
        image_path=raw.get("image_path"),
        is_correct=bool(raw.get("is_correct", False)),
    )


def question_from_row(row: QuestionRow) -> Question:
    return Question(
        id=row.id,
        type=QuestionType(row.type),
        prompt=row.prompt,
        options=tuple(option_from_json(o) for o in (row.options or [])),
        image_path=row.image_path,
        explanation=row.explanation,
        answer=row.answer,
        sub_topic_id=row.sub_topic_id,
    )


class SqlContentCatalog:
    """ContentCatalog over the grade/subject/topic/sub-topic/question tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None):
        self._factory = session_factory

    async def sub_topic(self, sub_topic_id: str) -> SubTopic | None:
        stmt = (
            select(SubTopicRow, TopicRow, SubjectRow, GradeLevelRow)
            .join(TopicRow, SubTopicRow.topic_id == TopicRow.id)
            .join(SubjectRow, TopicRow.subject_id == SubjectRow.id)
            .join(GradeLevelRow, SubjectRow.grade_level_id == GradeLevelRow.id)
            .where(SubTopicRow.id == sub_topic_id)
        )
        async with async_session_scope(self._factory) as db:
            row = (await db.execute(stmt)).first()

        if row is None:
            return None
        sub_topic, topic, subject, grade = row
        return SubTopic(
            id=sub_topic.id,
            name=sub_topic.name,
            topic_id=topic.id,
            topic_name=topic.name,
            subject_id=subject.id,
            subject_name=subject.name,
            grade_level_id=grade.id,
            grade_level_name=grade.name,
        )

    async def questions_for_sub_topic(
        self,
        sub_topic_id: str,
        cycle_number: int,
        *,
        exclude: Iterable[str] = (),
        limit: int | None = None,
    ) -> list[Question]:
        excluded = list(exclude)
        stmt = select(QuestionRow).where(
            QuestionRow.sub_topic_id == sub_topic_id,
            QuestionRow.is_active.is_(True),
        )
        if excluded:
            stmt = stmt.where(QuestionRow.id.not_in(excluded))
        stmt = stmt.order_by(func.random())
        if limit is not None:
            stmt = stmt.limit(limit)

        async with async_session_scope(self._factory) as db:
            rows = (await db.execute(stmt)).scalars().all()

        logger.debug(
            f"Selected {len(rows)} questions from {sub_topic_id} "
            f"(cycle {cycle_number}, {len(excluded)} excluded)"
        )
        return [question_from_row(r) for r in rows]

    async def questions_by_ids(self, question_ids: Iterable[str]) -> dict[str, Question]:
        ids = list(question_ids)
        if not ids:
            return {}
        async with async_session_scope(self._factory) as db:
            rows = (await db.execute(select(QuestionRow).where(QuestionRow.id.in_(ids)))).scalars().all()
        return {r.id: question_from_row(r) for r in rows}
