"""
Practice Session Store: lifecycle owner of one practice session.

States: UNINITIALIZED -> ACTIVE -> COMPLETED.

The store keeps the active session as an immutable PracticeSession and
applies the pure functions in `transitions` for every command. In-memory
state is swapped only after the persistence call for that command succeeds,
so an operation that raises leaves the previous state intact. Operations on
one store instance are serialized with an asyncio lock; one store drives one
session at a time.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Callable, Iterable, Optional

from loguru import logger

from config import Settings, get_settings

from . import transitions
from .errors import AlreadyAnswered, LimitReached, NoQuestionsAvailable, NotFound, SessionNotActive, UnknownSubTopic
from .evaluators.base import Submission
from .gateway import ContentCatalog, PersistenceGateway
from .limits import SessionLimitGate, utc_now
from .models import (
    CompletionSummary,
    PracticeAnswer,
    PracticeSession,
    Question,
    QuestionOption,
    RewardGrant,
    SessionResults,
    SessionState,
    SubTopic,
)
from .shuffle import ShuffleCache


def new_session_id() -> str:
    return str(uuid.uuid4())


class PracticeSessionStore:
    """
    Drives a single practice session.

    Usage:
        store = PracticeSessionStore(catalog, gateway)
        await store.start_session(student_id, sub_topic_id)
        question = store.current_question()
        options = store.display_options()
        await store.submit_answer(options[0].id, time_spent_seconds=12)
        await store.next_question()
        ...
        summary = await store.complete_session()
    """

    def __init__(
        self,
        catalog: ContentCatalog,
        gateway: PersistenceGateway,
        limit_gate: Optional[SessionLimitGate] = None,
        shuffle_cache: Optional[ShuffleCache] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = new_session_id,
    ):
        self.catalog = catalog
        self.gateway = gateway
        self.settings = settings or get_settings()
        self.limit_gate = limit_gate or SessionLimitGate(gateway, self.settings, clock=clock)
        self.shuffle_cache = shuffle_cache or ShuffleCache()
        self._clock = clock
        self._id_factory = id_factory
        self._session: PracticeSession | None = None
        self._lock = asyncio.Lock()

    # ========================================
    # Read-only views
    # ========================================

    @property
    def session(self) -> PracticeSession | None:
        return self._session

    @property
    def state(self) -> SessionState:
        if self._session is None:
            return SessionState.UNINITIALIZED
        return self._session.state

    @property
    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE

    @property
    def current_question_number(self) -> int:
        return self._session.current_question_index if self._session else 0

    @property
    def total_questions(self) -> int:
        return self._session.total_questions if self._session else 0

    def current_question(self) -> Question:
        """Question at the current index. Raises SessionNotActive outside ACTIVE."""
        return transitions.current_question(transitions.ensure_active(self._session))

    @property
    def current_answer(self) -> PracticeAnswer | None:
        if not self.is_active:
            return None
        return self._session.answer_for(self.current_question().id)

    @property
    def is_current_question_answered(self) -> bool:
        return self.current_answer is not None

    def display_options(self) -> list[QuestionOption]:
        """Shuffled options of the current question, stable for this session."""
        session = transitions.ensure_active(self._session)
        return self.shuffle_cache.options_for(session.id, transitions.current_question(session))

    def results(self) -> SessionResults | None:
        return transitions.results(self._session) if self._session else None

    # ========================================
    # Commands
    # ========================================

    async def start_session(self, student_id: str, sub_topic_id: str) -> PracticeSession:
        """
        Create a new session for a sub-topic.

        Raises:
            LimitReached: the daily quota is used up (no session is created)
            QuotaExceededAtCreation: the quota ran out between check and create
            UnknownSubTopic / NoQuestionsAvailable: nothing to practice
        """
        async with self._lock:
            status = await self.limit_gate.check_limit(student_id, force=True)
            if not status.can_start_session:
                logger.info(
                    f"Session limit reached for {student_id} "
                    f"({status.sessions_today}/{status.session_limit})"
                )
                raise LimitReached(status)

            sub_topic = await self.catalog.sub_topic(sub_topic_id)
            if sub_topic is None:
                raise UnknownSubTopic(f"Sub-topic not found: {sub_topic_id}")

            questions, cycle_number = await self._select_questions(student_id, sub_topic)

            draft = transitions.new_session(
                self._id_factory(),
                student_id,
                sub_topic,
                questions,
                created_at=self._clock(),
                cycle_number=cycle_number,
            )
            day_start, day_end = self.limit_gate.day_window(draft.created_at)
            try:
                created = await self.gateway.create_session_within_quota(
                    draft,
                    daily_limit=status.session_limit,
                    day_start=day_start,
                    day_end=day_end,
                )
            except LimitReached:
                logger.warning(f"Session quota for {student_id} ran out during creation")
                raise
            finally:
                self.limit_gate.invalidate(student_id)

            if not created.questions:
                created = transitions.hydrate(created, {q.id: q for q in questions})
            self._activate(created)
            logger.info(
                f"Started session {created.id} for {student_id} "
                f"({created.total_questions} questions, cycle {created.cycle_number})"
            )
            return created

    async def resume_session(self, session_id: str, student_id: str) -> PracticeSession:
        """
        Reload an unfinished session exactly as it was persisted.

        Raises NotFound when the session is missing, completed, or owned by
        another student.
        """
        async with self._lock:
            stored = await self.gateway.get_session(session_id)
            if stored is None or stored.student_id != student_id:
                raise NotFound(f"Session not found: {session_id}")
            if stored.is_completed:
                raise NotFound(f"Session is already completed: {session_id}")

            found = await self.catalog.questions_by_ids(stored.question_ids)
            missing = len(set(stored.question_ids) - set(found))
            if missing:
                logger.warning(f"Session {session_id} references {missing} deleted question(s)")

            session = transitions.hydrate(stored, found)
            self._activate(session)
            logger.info(
                f"Resumed session {session_id} at question "
                f"{session.current_question_index}/{session.total_questions}"
            )
            return session

    async def submit_answer(
        self,
        selection: str | Iterable[str] | None = None,
        text: str | None = None,
        time_spent_seconds: int = 0,
    ) -> PracticeAnswer:
        """
        Answer the current question. The current index does not move.

        Raises AlreadyAnswered, EmptySubmission or InvalidSubmission without
        changing the session. When storage already holds an answer for the
        question (written from another tab), that answer is adopted before
        AlreadyAnswered is raised, so the session can still be completed.
        """
        async with self._lock:
            session = transitions.ensure_active(self._session)
            updated, answer = transitions.answer_current(
                session,
                Submission.of(selection, text),
                time_spent_seconds,
                answered_at=self._clock(),
            )
            try:
                await self.gateway.insert_answer(session.id, answer)
            except AlreadyAnswered:
                # Another tab got there first; adopt its answer before re-raising
                await self._adopt_persisted_answer(session, answer.question_id)
                raise
            self._session = updated
            logger.debug(
                f"Session {session.id}: answered {answer.question_id} "
                f"({'correct' if answer.is_correct else 'incorrect'})"
            )
            return answer

    async def next_question(self) -> bool:
        return await self._navigate(lambda s: transitions.step(s, 1))

    async def previous_question(self) -> bool:
        return await self._navigate(lambda s: transitions.step(s, -1))

    async def go_to_question(self, index: int) -> bool:
        """Jump to a 1-based question number, clamped to the session's range."""
        return await self._navigate(lambda s: transitions.move_to(s, index))

    async def complete_session(self) -> CompletionSummary:
        """
        Finish a fully answered session and return the summary for rewards.

        Raises IncompleteAnswers while any question is unanswered.
        """
        async with self._lock:
            session = transitions.check_completable(self._session)
            totals = await self.gateway.mark_complete(session.id, self._clock())
            finished, summary = transitions.complete(session, totals)
            self._session = finished
            logger.info(
                f"Completed session {session.id}: {summary.correct_count}/"
                f"{summary.total_questions} correct, score {summary.score}"
            )
            return summary

    async def record_rewards(self, reward: RewardGrant) -> PracticeSession:
        """Persist XP/coins computed by the caller's reward function."""
        async with self._lock:
            session = self._session
            if session is None or not session.is_completed:
                raise SessionNotActive("Rewards can only be recorded for a completed session.")
            await self.gateway.record_rewards(session.id, reward)
            self._session = replace(session, xp_earned=reward.xp, coins_earned=reward.coins)
            return self._session

    async def end_session(self) -> None:
        """Forget the in-memory session; the persisted copy stays resumable."""
        async with self._lock:
            if self._session is not None:
                logger.debug(f"Ended session {self._session.id} in memory")
            self._session = None
            self.shuffle_cache.bind(None)

    # ========================================
    # Internals
    # ========================================

    async def _adopt_persisted_answer(self, session: PracticeSession, question_id: str) -> None:
        stored = await self.gateway.get_session(session.id)
        persisted = stored.answer_for(question_id) if stored is not None else None
        if persisted is not None:
            self._session = transitions.record_answer(session, persisted)

    async def _navigate(self, move: Callable[[PracticeSession], PracticeSession]) -> bool:
        async with self._lock:
            session = transitions.ensure_active(self._session)
            moved = move(session)
            if moved.current_question_index == session.current_question_index:
                return False
            await self.gateway.update_current_index(session.id, moved.current_question_index)
            self._session = moved
            return True

    async def _select_questions(self, student_id: str, sub_topic: SubTopic) -> tuple[list[Question], int]:
        """
        Pick the next batch, starting a new cycle once the current one is used up.

        Within a cycle no question is served twice across sessions.
        """
        limit = self.settings.questions_per_session
        progress = await self.gateway.get_question_progress(student_id, sub_topic.id)
        cycle_number = progress.cycle_number

        questions = await self.catalog.questions_for_sub_topic(
            sub_topic.id,
            cycle_number,
            exclude=progress.used_question_ids,
            limit=limit,
        )
        if not questions and progress.used_question_ids:
            cycle_number += 1
            logger.info(f"{student_id} exhausted sub-topic {sub_topic.id}; starting cycle {cycle_number}")
            questions = await self.catalog.questions_for_sub_topic(
                sub_topic.id, cycle_number, exclude=(), limit=limit
            )

        if not questions:
            raise NoQuestionsAvailable()
        return list(questions)[:limit], cycle_number

    def _activate(self, session: PracticeSession) -> None:
        self._session = session
        self.shuffle_cache.bind(session.id)
        self.shuffle_cache.clear()
