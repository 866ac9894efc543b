"""
Pure state transitions for a practice session.

Every function takes a PracticeSession and returns a new one (or raises),
never touching I/O, so the same rules apply whether the caller is the store,
an HTTP handler or a test.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Sequence

from .errors import AlreadyAnswered, IncompleteAnswers, SessionNotActive
from .evaluators import evaluate
from .evaluators.base import Submission
from .models import (
    CompletionSummary,
    CompletionTotals,
    PracticeAnswer,
    PracticeSession,
    Question,
    SessionResults,
    SubTopic,
)


def compute_score(correct: int, total: int) -> int:
    """Nearest whole percentage, halves rounded up; 0 when there is nothing to score."""
    if total <= 0:
        return 0
    return (200 * correct + total) // (2 * total)


def clamp_index(index: int, total: int) -> int:
    if total <= 0:
        return 1
    return max(1, min(index, total))


def new_session(
    session_id: str,
    student_id: str,
    sub_topic: SubTopic,
    questions: Sequence[Question],
    created_at: datetime,
    cycle_number: int = 1,
) -> PracticeSession:
    return PracticeSession(
        id=session_id,
        student_id=student_id,
        sub_topic_id=sub_topic.id,
        sub_topic_name=sub_topic.name,
        topic_id=sub_topic.topic_id,
        topic_name=sub_topic.topic_name,
        subject_id=sub_topic.subject_id,
        subject_name=sub_topic.subject_name,
        grade_level_id=sub_topic.grade_level_id,
        grade_level_name=sub_topic.grade_level_name,
        question_ids=tuple(q.id for q in questions),
        questions=tuple(questions),
        created_at=created_at,
        current_question_index=1,
        cycle_number=cycle_number,
    )


def hydrate(session: PracticeSession, found: dict[str, Question]) -> PracticeSession:
    """Attach catalog questions in stored order, with placeholders for deleted ones."""
    questions = tuple(
        found.get(qid) or Question.placeholder(qid, session.sub_topic_id)
        for qid in session.question_ids
    )
    return replace(
        session,
        questions=questions,
        current_question_index=clamp_index(session.current_question_index, len(questions)),
    )


def ensure_active(session: PracticeSession | None) -> PracticeSession:
    if session is None:
        raise SessionNotActive()
    if session.is_completed:
        raise SessionNotActive("This session is already completed.")
    return session


def current_question(session: PracticeSession) -> Question:
    return session.questions[session.current_question_index - 1]


def answer_current(
    session: PracticeSession,
    submission: Submission,
    time_spent_seconds: int,
    answered_at: datetime,
) -> tuple[PracticeSession, PracticeAnswer]:
    """Score the current question and append the answer; the index does not move."""
    session = ensure_active(session)
    question = current_question(session)
    if session.answer_for(question.id) is not None:
        raise AlreadyAnswered(question.id)

    result = evaluate(question, submission)
    answer = PracticeAnswer(
        question_id=question.id,
        is_correct=result.correct,
        time_spent_seconds=max(0, int(time_spent_seconds or 0)),
        answered_at=answered_at,
        selected_option_ids=result.selected_option_ids,
        text_answer=result.text_answer,
    )
    return record_answer(session, answer), answer


def record_answer(session: PracticeSession, answer: PracticeAnswer) -> PracticeSession:
    if session.answer_for(answer.question_id) is not None:
        raise AlreadyAnswered(answer.question_id)
    return replace(
        session,
        answers=session.answers + (answer,),
        correct_count=session.correct_count + (1 if answer.is_correct else 0),
    )


def move_to(session: PracticeSession, index: int) -> PracticeSession:
    """Jump to a 1-based index, clamped to the question range."""
    session = ensure_active(session)
    target = clamp_index(index, session.total_questions)
    if target == session.current_question_index:
        return session
    return replace(session, current_question_index=target)


def step(session: PracticeSession, delta: int) -> PracticeSession:
    return move_to(session, session.current_question_index + delta)


def check_completable(session: PracticeSession) -> PracticeSession:
    session = ensure_active(session)
    if len(session.answers) != session.total_questions:
        raise IncompleteAnswers(len(session.answers), session.total_questions)
    return session


def complete(session: PracticeSession, totals: CompletionTotals) -> tuple[PracticeSession, CompletionSummary]:
    """Finalize a fully answered session with the persisted totals."""
    session = check_completable(session)
    finished = replace(
        session,
        completed_at=totals.completed_at,
        correct_count=totals.correct_count,
        total_time_seconds=totals.total_time_seconds,
    )
    return finished, summarize(finished)


def local_totals(session: PracticeSession, completed_at: datetime) -> CompletionTotals:
    """Totals derived from the in-memory answers."""
    return CompletionTotals(
        completed_at=completed_at,
        correct_count=sum(1 for a in session.answers if a.is_correct),
        total_time_seconds=sum(a.time_spent_seconds for a in session.answers),
    )


def summarize(session: PracticeSession) -> CompletionSummary:
    if session.is_completed:
        correct, duration = session.correct_count, session.total_time_seconds
    else:
        correct = sum(1 for a in session.answers if a.is_correct)
        duration = sum(a.time_spent_seconds for a in session.answers)
    return CompletionSummary(
        total_questions=session.total_questions,
        correct_count=correct,
        score=compute_score(correct, session.total_questions),
        duration_seconds=duration,
    )


def results(session: PracticeSession) -> SessionResults:
    answered = len(session.answers)
    correct = sum(1 for a in session.answers if a.is_correct)
    return SessionResults(
        total=session.total_questions,
        answered=answered,
        correct=correct,
        incorrect=answered - correct,
        score=compute_score(correct, answered),
    )
