"""
Domain types for practice sessions.

Questions and sub-topics are owned by the content catalog and are read-only
here. A PracticeSession is the aggregate root: its question list is fixed at
creation, answers are appended once per question, and completion is one-way.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

DELETED_QUESTION_PROMPT = "[Question has been deleted]"


class QuestionType(str, Enum):
    """Supported question types."""

    SINGLE_CHOICE = "single-choice"
    MULTI_CHOICE = "multi-choice"
    FREE_TEXT = "free-text"

    @property
    def is_choice(self) -> bool:
        return self is not QuestionType.FREE_TEXT


class SessionState(str, Enum):
    """Lifecycle of a session as seen by the store."""

    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    COMPLETED = "completed"


@dataclass(frozen=True)
class QuestionOption:
    id: str
    text: str | None = None
    image_path: str | None = None
    is_correct: bool = False

    @property
    def is_filled(self) -> bool:
        """An option is displayable when it has non-blank text or an image."""
        return bool(self.text and self.text.strip()) or bool(self.image_path)


@dataclass(frozen=True)
class Question:
    """A single content unit served in a session."""

    id: str
    type: QuestionType
    prompt: str
    options: tuple[QuestionOption, ...] = ()
    image_path: str | None = None
    explanation: str | None = None
    answer: str | None = None  # free-text only
    sub_topic_id: str | None = None
    is_deleted: bool = False

    @property
    def correct_option_ids(self) -> frozenset[str]:
        return frozenset(o.id for o in self.options if o.is_correct)

    def option(self, option_id: str) -> QuestionOption | None:
        for opt in self.options:
            if opt.id == option_id:
                return opt
        return None

    @classmethod
    def placeholder(cls, question_id: str, sub_topic_id: str | None = None) -> "Question":
        """Stand-in for a question that was removed from the catalog after use."""
        return cls(
            id=question_id,
            type=QuestionType.SINGLE_CHOICE,
            prompt=DELETED_QUESTION_PROMPT,
            sub_topic_id=sub_topic_id,
            is_deleted=True,
        )


@dataclass(frozen=True)
class SubTopic:
    """Leaf of the grade -> subject -> topic -> sub-topic hierarchy."""

    id: str
    name: str
    topic_id: str | None = None
    topic_name: str = "Unknown"
    subject_id: str | None = None
    subject_name: str = "Unknown"
    grade_level_id: str | None = None
    grade_level_name: str = "Unknown"


@dataclass(frozen=True)
class PracticeAnswer:
    question_id: str
    is_correct: bool
    time_spent_seconds: int
    answered_at: datetime
    selected_option_ids: tuple[str, ...] | None = None
    text_answer: str | None = None


@dataclass(frozen=True)
class PracticeSession:
    """
    One attempt at a batch of questions from a sub-topic.

    `question_ids` is the authoritative, immutable question order.
    `questions` holds the same questions hydrated from the catalog; it may be
    empty on a record freshly loaded from persistence.
    """

    id: str
    student_id: str
    sub_topic_id: str
    question_ids: tuple[str, ...]
    created_at: datetime
    questions: tuple[Question, ...] = ()
    sub_topic_name: str = "Unknown"
    topic_id: str | None = None
    topic_name: str = "Unknown"
    subject_id: str | None = None
    subject_name: str = "Unknown"
    grade_level_id: str | None = None
    grade_level_name: str = "Unknown"
    current_question_index: int = 1
    answers: tuple[PracticeAnswer, ...] = ()
    completed_at: datetime | None = None
    total_time_seconds: int = 0
    correct_count: int = 0
    xp_earned: int | None = None
    coins_earned: int | None = None
    cycle_number: int = 1

    @property
    def total_questions(self) -> int:
        return len(self.question_ids)

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    @property
    def state(self) -> SessionState:
        return SessionState.COMPLETED if self.is_completed else SessionState.ACTIVE

    def answer_for(self, question_id: str) -> PracticeAnswer | None:
        for answer in self.answers:
            if answer.question_id == question_id:
                return answer
        return None


@dataclass(frozen=True)
class SessionLimitStatus:
    sessions_today: int
    session_limit: int
    can_start_session: bool
    remaining_sessions: int

    @classmethod
    def compute(cls, sessions_today: int, session_limit: int) -> "SessionLimitStatus":
        return cls(
            sessions_today=sessions_today,
            session_limit=session_limit,
            can_start_session=sessions_today < session_limit,
            remaining_sessions=max(0, session_limit - sessions_today),
        )


@dataclass(frozen=True)
class CompletionSummary:
    """Handed to the external reward function once a session is finished."""

    total_questions: int
    correct_count: int
    score: int
    duration_seconds: int


@dataclass(frozen=True)
class CompletionTotals:
    """Totals the persistence layer derives from stored answers on completion."""

    completed_at: datetime
    correct_count: int
    total_time_seconds: int


@dataclass(frozen=True)
class RewardGrant:
    xp: int
    coins: int


@dataclass(frozen=True)
class QuestionProgress:
    """Which questions of a sub-topic a student has used in the current cycle."""

    cycle_number: int = 1
    used_question_ids: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class SessionResults:
    """Live progress of a session, scored over answered questions."""

    total: int
    answered: int
    correct: int
    incorrect: int
    score: int
