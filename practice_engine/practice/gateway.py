"""
Collaborators the session engine consumes but does not implement.

- ContentCatalog: questions and the curriculum hierarchy
- PersistenceGateway: session/answer storage plus the two atomic operations
  (create within the daily quota, mark complete with totals)
- RewardFunction: turns a completion summary into XP/coin deltas; invoked by
  the caller, never by the store

Implementations live in `practice_engine.practice.memory` (in-process) and
`practice_engine.db` (PostgreSQL).
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Iterable, Protocol

from .models import (
    CompletionSummary,
    CompletionTotals,
    PracticeAnswer,
    PracticeSession,
    Question,
    QuestionProgress,
    RewardGrant,
    SubTopic,
)

RewardFunction = Callable[[CompletionSummary], RewardGrant]


class ContentCatalog(Protocol):
    """Read-only access to questions and curriculum."""

    async def sub_topic(self, sub_topic_id: str) -> SubTopic | None:
        """Return the sub-topic with its hierarchy names, or None if unknown."""
        ...

    async def questions_for_sub_topic(
        self,
        sub_topic_id: str,
        cycle_number: int,
        *,
        exclude: Iterable[str] = (),
        limit: int | None = None,
    ) -> list[Question]:
        """Return an ordered batch of questions not in `exclude` for the cycle."""
        ...

    async def questions_by_ids(self, question_ids: Iterable[str]) -> dict[str, Question]:
        """Return the questions that still exist, keyed by id."""
        ...


class PersistenceGateway(Protocol):
    """Storage for sessions and answers."""

    async def create_session_within_quota(
        self,
        session: PracticeSession,
        *,
        daily_limit: int,
        day_start: datetime,
        day_end: datetime,
    ) -> PracticeSession:
        """
        Atomically count the student's sessions in [day_start, day_end) and
        insert `session` if the count is below `daily_limit`.

        Also records the session's questions as used in `session.cycle_number`.
        Raises QuotaExceededAtCreation when the quota is already used up.
        """
        ...

    async def get_session(self, session_id: str) -> PracticeSession | None:
        """Load a session with its question ids and answers (questions not hydrated)."""
        ...

    async def list_sessions(self, student_id: str) -> list[PracticeSession]:
        """All sessions of a student, newest first."""
        ...

    async def insert_answer(self, session_id: str, answer: PracticeAnswer) -> None:
        """Store an answer. Raises AlreadyAnswered if the question already has one."""
        ...

    async def update_current_index(self, session_id: str, index: int) -> None:
        ...

    async def mark_complete(self, session_id: str, completed_at: datetime) -> CompletionTotals:
        """
        Atomically set the completion time and the correct-count/time totals
        derived from stored answers. Raises NotFound for a missing or already
        completed session.
        """
        ...

    async def record_rewards(self, session_id: str, reward: RewardGrant) -> None:
        ...

    async def count_sessions_between(self, student_id: str, start: datetime, end: datetime) -> int:
        ...

    async def get_subscription_tier(self, student_id: str) -> str | None:
        ...

    async def get_question_progress(self, student_id: str, sub_topic_id: str) -> QuestionProgress:
        """Return the latest cycle number and the question ids used in it."""
        ...
