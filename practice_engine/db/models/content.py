"""
Content catalog models.

Curriculum hierarchy: grade level -> subject -> topic -> sub-topic.
Questions belong to a sub-topic; choice options are stored as JSONB:

    [
        {"id": "a", "text": "4", "image_path": null, "is_correct": true},
        {"id": "b", "text": "5", "image_path": null, "is_correct": false}
    ]

Free-text questions keep their expected answer in `answer`.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class GradeLevelRow(Base):
    __tablename__ = "grade_levels"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(Text, nullable=False)

    subjects: Mapped[list[SubjectRow]] = relationship(back_populates="grade_level")


class SubjectRow(Base):
    __tablename__ = "subjects"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=_uuid)
    grade_level_id: Mapped[str] = mapped_column(
        ForeignKey("grade_levels.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)

    grade_level: Mapped[GradeLevelRow] = relationship(back_populates="subjects")
    topics: Mapped[list[TopicRow]] = relationship(back_populates="subject")


class TopicRow(Base):
    __tablename__ = "topics"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=_uuid)
    subject_id: Mapped[str] = mapped_column(ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)

    subject: Mapped[SubjectRow] = relationship(back_populates="topics")
    sub_topics: Mapped[list[SubTopicRow]] = relationship(back_populates="topic")


class SubTopicRow(Base):
    __tablename__ = "sub_topics"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=_uuid)
    topic_id: Mapped[str] = mapped_column(ForeignKey("topics.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)

    topic: Mapped[TopicRow] = relationship(back_populates="sub_topics")
    questions: Mapped[list[QuestionRow]] = relationship(back_populates="sub_topic")


class QuestionRow(Base):
    """A question in the catalog. Deactivated questions are never served again."""

    __tablename__ = "questions"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=_uuid)
    sub_topic_id: Mapped[str] = mapped_column(
        ForeignKey("sub_topics.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(Text, nullable=False)  # single-choice, multi-choice, free-text
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    image_path: Mapped[str | None] = mapped_column(Text)
    explanation: Mapped[str | None] = mapped_column(Text)
    answer: Mapped[str | None] = mapped_column(Text)
    options: Mapped[list[dict]] = mapped_column(JSONB, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=func.now())

    sub_topic: Mapped[SubTopicRow] = relationship(back_populates="questions")

    __table_args__ = (
        Index("idx_questions_sub_topic_active", "sub_topic_id", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<QuestionRow id={self.id} type={self.type}>"
