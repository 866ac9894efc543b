"""
Practice session models.

- PracticeSessionRow: one session; names are denormalized for history lists
- SessionQuestionRow: the fixed question order of a session
- PracticeAnswerRow: at most one answer per (session, question)
- StudentQuestionProgressRow: questions used per student/sub-topic/cycle
- StudentSubscriptionRow: subscription tier that drives the daily quota
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class PracticeSessionRow(Base):
    __tablename__ = "practice_sessions"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=_uuid)
    student_id: Mapped[str] = mapped_column(Text, nullable=False)

    # Curriculum (ids plus display names at creation time)
    sub_topic_id: Mapped[str] = mapped_column(Text, nullable=False)
    sub_topic_name: Mapped[str] = mapped_column(Text, default="Unknown")
    topic_id: Mapped[str | None] = mapped_column(Text)
    topic_name: Mapped[str] = mapped_column(Text, default="Unknown")
    subject_id: Mapped[str | None] = mapped_column(Text)
    subject_name: Mapped[str] = mapped_column(Text, default="Unknown")
    grade_level_id: Mapped[str | None] = mapped_column(Text)
    grade_level_name: Mapped[str] = mapped_column(Text, default="Unknown")

    # Progress (current_question_index is 1-based)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    current_question_index: Mapped[int] = mapped_column(Integer, default=1)
    correct_count: Mapped[int] = mapped_column(Integer, default=0)
    total_time_seconds: Mapped[int] = mapped_column(Integer, default=0)
    cycle_number: Mapped[int] = mapped_column(Integer, default=1)

    # Rewards (set by the caller after completion)
    xp_earned: Mapped[int | None] = mapped_column(Integer)
    coins_earned: Mapped[int | None] = mapped_column(Integer)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=func.now())
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    questions: Mapped[list[SessionQuestionRow]] = relationship(
        back_populates="session", order_by="SessionQuestionRow.question_order"
    )
    answers: Mapped[list[PracticeAnswerRow]] = relationship(
        back_populates="session", order_by="PracticeAnswerRow.answered_at"
    )

    __table_args__ = (
        Index("idx_practice_sessions_student_created", "student_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<PracticeSessionRow id={self.id} student={self.student_id} completed={self.completed_at}>"


class SessionQuestionRow(Base):
    """Question order of a session. No FK to questions: deleted questions stay referenced."""

    __tablename__ = "session_questions"

    session_id: Mapped[str] = mapped_column(
        ForeignKey("practice_sessions.id", ondelete="CASCADE"), primary_key=True
    )
    question_order: Mapped[int] = mapped_column(Integer, primary_key=True)
    question_id: Mapped[str] = mapped_column(Text, nullable=False)

    session: Mapped[PracticeSessionRow] = relationship(back_populates="questions")


class PracticeAnswerRow(Base):
    __tablename__ = "practice_answers"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=_uuid)
    session_id: Mapped[str] = mapped_column(
        ForeignKey("practice_sessions.id", ondelete="CASCADE"), nullable=False
    )
    question_id: Mapped[str] = mapped_column(Text, nullable=False)
    selected_options: Mapped[list[str] | None] = mapped_column(ARRAY(Text))
    text_answer: Mapped[str | None] = mapped_column(Text)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    time_spent_seconds: Mapped[int] = mapped_column(Integer, default=0)
    answered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=func.now())

    session: Mapped[PracticeSessionRow] = relationship(back_populates="answers")

    __table_args__ = (
        UniqueConstraint("session_id", "question_id", name="uq_answer_session_question"),
    )


class StudentQuestionProgressRow(Base):
    """A question served to a student within one cycle of a sub-topic."""

    __tablename__ = "student_question_progress"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=_uuid)
    student_id: Mapped[str] = mapped_column(Text, nullable=False)
    sub_topic_id: Mapped[str] = mapped_column(Text, nullable=False)
    question_id: Mapped[str] = mapped_column(Text, nullable=False)
    cycle_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    served_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=func.now())

    __table_args__ = (
        UniqueConstraint(
            "student_id", "sub_topic_id", "question_id", "cycle_number",
            name="uq_progress_student_question_cycle",
        ),
        Index("idx_progress_lookup", "student_id", "sub_topic_id", "cycle_number"),
    )


class StudentSubscriptionRow(Base):
    __tablename__ = "student_subscriptions"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=_uuid)
    student_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    tier: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )
