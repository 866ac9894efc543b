"""
Practice router: session lifecycle over HTTP.

Endpoints for:
- Daily session quota
- Starting and resuming sessions
- Current question (shuffled options, no correctness flags)
- Answer submission and navigation
- Completion with caller-supplied rewards
- Session history with cascading filters

The student is identified by the `X-Student-Id` header. Each session is
driven by one PracticeSessionStore kept in the app's registry; a session
that is not in the registry (e.g. after a restart) is resumed from storage.
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from loguru import logger
from pydantic import BaseModel, Field

from practice_engine.api.store_registry import StoreRegistry
from practice_engine.practice import history
from practice_engine.practice.errors import (
    AlreadyAnswered,
    EmptySubmission,
    IncompleteAnswers,
    InvalidSubmission,
    LimitReached,
    NoQuestionsAvailable,
    NotFound,
    PracticeError,
    SessionNotActive,
    UnknownSubTopic,
)
from practice_engine.practice.limits import utc_now
from practice_engine.practice.models import PracticeAnswer, SessionLimitStatus
from practice_engine.practice.session_store import PracticeSessionStore

router = APIRouter()

STATUS_CODES: Dict[type, int] = {
    LimitReached: 429,
    NotFound: 404,
    UnknownSubTopic: 404,
    NoQuestionsAvailable: 404,
    AlreadyAnswered: 409,
    IncompleteAnswers: 409,
    SessionNotActive: 409,
    EmptySubmission: 422,
    InvalidSubmission: 422,
}


def _http_error(exc: PracticeError) -> HTTPException:
    status = next((code for cls, code in STATUS_CODES.items() if isinstance(exc, cls)), 400)
    detail: Dict[str, object] = {"code": exc.code, "message": exc.message}
    if isinstance(exc, LimitReached) and exc.status is not None:
        detail["limit"] = LimitStatusResponse.from_status(exc.status).model_dump()
    logger.info(f"Practice request rejected ({status} {exc.code}): {exc.message}")
    return HTTPException(status_code=status, detail=detail)


# ========================================
# Request/Response Models
# ========================================


class LimitStatusResponse(BaseModel):
    """Today's session quota for a student."""

    sessions_today: int
    session_limit: int
    can_start_session: bool
    remaining_sessions: int

    @classmethod
    def from_status(cls, status: SessionLimitStatus) -> "LimitStatusResponse":
        return cls(
            sessions_today=status.sessions_today,
            session_limit=status.session_limit,
            can_start_session=status.can_start_session,
            remaining_sessions=status.remaining_sessions,
        )


class StartSessionRequest(BaseModel):
    sub_topic_id: str = Field(..., description="Sub-topic to practice")


class ResultsResponse(BaseModel):
    total: int
    answered: int
    correct: int
    incorrect: int
    score: int


class SessionResponse(BaseModel):
    """State of a session as seen by its store."""

    id: str
    state: str
    sub_topic_id: str
    sub_topic_name: str
    topic_name: str
    subject_name: str
    grade_level_name: str
    current_question_index: int
    total_questions: int
    cycle_number: int
    created_at: datetime
    completed_at: Optional[datetime]
    results: ResultsResponse


class OptionResponse(BaseModel):
    id: str
    text: Optional[str]
    image_path: Optional[str]


class AnswerResponse(BaseModel):
    question_id: str
    is_correct: bool
    time_spent_seconds: int
    answered_at: datetime
    selected_option_ids: Optional[List[str]]
    text_answer: Optional[str]


class QuestionResponse(BaseModel):
    """The current question. Correctness is only revealed once answered."""

    session_id: str
    index: int
    total_questions: int
    question_id: str
    type: str
    prompt: str
    image_path: Optional[str]
    is_deleted: bool
    options: List[OptionResponse]
    answer: Optional[AnswerResponse] = None
    correct_option_ids: Optional[List[str]] = None
    explanation: Optional[str] = None


class SubmitAnswerRequest(BaseModel):
    selected_option_ids: List[str] = Field(default_factory=list, description="Chosen option ids (choice types)")
    text_answer: Optional[str] = Field(None, description="Typed answer (free-text type)")
    time_spent_seconds: int = Field(0, description="Seconds spent; negative values count as 0")


class NavigateRequest(BaseModel):
    action: str = Field(..., pattern="^(next|previous|goto)$")
    index: Optional[int] = Field(None, description="1-based target for goto")


class NavigateResponse(BaseModel):
    moved: bool
    current_question_index: int
    total_questions: int


class RewardResponse(BaseModel):
    xp: int
    coins: int


class CompletionResponse(BaseModel):
    session_id: str
    total_questions: int
    correct_count: int
    score: int
    duration_seconds: int
    completed_at: datetime
    rewards: Optional[RewardResponse] = None


class SessionSummaryResponse(BaseModel):
    id: str
    status: str
    grade_level_name: str
    subject_name: str
    topic_name: str
    sub_topic_name: str
    total_questions: int
    answered: int
    correct_answers: int
    score: Optional[int]
    duration_seconds: Optional[int]
    created_at: datetime
    completed_at: Optional[datetime]
    xp_earned: Optional[int]
    coins_earned: Optional[int]


class HistoryResponse(BaseModel):
    sessions: List[SessionSummaryResponse]
    grade_levels: List[str]
    subjects: List[str]
    topics: List[str]
    sub_topics: List[str]


# ========================================
# Dependencies
# ========================================


def get_student_id(x_student_id: str = Header(..., alias="X-Student-Id")) -> str:
    if not x_student_id.strip():
        raise HTTPException(status_code=401, detail="Missing student id")
    return x_student_id.strip()


def _new_store(request: Request) -> PracticeSessionStore:
    state = request.app.state
    return PracticeSessionStore(
        state.catalog,
        state.gateway,
        limit_gate=state.limit_gate,
        settings=state.settings,
    )


async def _store_for(request: Request, session_id: str, student_id: str) -> PracticeSessionStore:
    stores: StoreRegistry = request.app.state.stores
    store = stores.get(session_id)
    if store is not None and store.session is not None:
        if store.session.student_id != student_id:
            raise _http_error(NotFound(f"Session not found: {session_id}"))
        return store

    store = _new_store(request)
    try:
        await store.resume_session(session_id, student_id)
    except PracticeError as exc:
        raise _http_error(exc)
    stores.put(session_id, store)
    return store


def _session_response(store: PracticeSessionStore) -> SessionResponse:
    session = store.session
    results = store.results()
    return SessionResponse(
        id=session.id,
        state=store.state.value,
        sub_topic_id=session.sub_topic_id,
        sub_topic_name=session.sub_topic_name,
        topic_name=session.topic_name,
        subject_name=session.subject_name,
        grade_level_name=session.grade_level_name,
        current_question_index=session.current_question_index,
        total_questions=session.total_questions,
        cycle_number=session.cycle_number,
        created_at=session.created_at,
        completed_at=session.completed_at,
        results=ResultsResponse(
            total=results.total,
            answered=results.answered,
            correct=results.correct,
            incorrect=results.incorrect,
            score=results.score,
        ),
    )


def _answer_response(answer: PracticeAnswer) -> AnswerResponse:
    return AnswerResponse(
        question_id=answer.question_id,
        is_correct=answer.is_correct,
        time_spent_seconds=answer.time_spent_seconds,
        answered_at=answer.answered_at,
        selected_option_ids=list(answer.selected_option_ids) if answer.selected_option_ids is not None else None,
        text_answer=answer.text_answer,
    )


# ========================================
# Quota
# ========================================


@router.get("/limits", response_model=LimitStatusResponse, summary="Today's session quota")
async def get_limits(
    request: Request,
    force: bool = Query(False, description="Bypass the short-lived cache"),
    student_id: str = Depends(get_student_id),
) -> LimitStatusResponse:
    status = await request.app.state.limit_gate.check_limit(student_id, force=force)
    return LimitStatusResponse.from_status(status)


# ========================================
# Session Lifecycle
# ========================================


@router.post("/sessions", response_model=SessionResponse, status_code=201, summary="Start a session")
async def start_session(
    body: StartSessionRequest,
    request: Request,
    student_id: str = Depends(get_student_id),
) -> SessionResponse:
    logger.info(f"Starting session for {student_id} on sub-topic {body.sub_topic_id}")
    store = _new_store(request)
    try:
        session = await store.start_session(student_id, body.sub_topic_id)
    except PracticeError as exc:
        raise _http_error(exc)

    request.app.state.stores.put(session.id, store)
    return _session_response(store)


@router.get("/sessions/{session_id}", response_model=SessionResponse, summary="Session state")
async def get_session(
    session_id: str,
    request: Request,
    student_id: str = Depends(get_student_id),
) -> SessionResponse:
    store = await _store_for(request, session_id, student_id)
    return _session_response(store)


@router.get("/sessions/{session_id}/question", response_model=QuestionResponse, summary="Current question")
async def get_current_question(
    session_id: str,
    request: Request,
    student_id: str = Depends(get_student_id),
) -> QuestionResponse:
    store = await _store_for(request, session_id, student_id)
    try:
        question = store.current_question()
        options = store.display_options()
    except PracticeError as exc:
        raise _http_error(exc)

    answer = store.current_answer
    response = QuestionResponse(
        session_id=session_id,
        index=store.current_question_number,
        total_questions=store.total_questions,
        question_id=question.id,
        type=question.type.value,
        prompt=question.prompt,
        image_path=question.image_path,
        is_deleted=question.is_deleted,
        options=[OptionResponse(id=o.id, text=o.text, image_path=o.image_path) for o in options],
    )
    if answer is not None:
        response.answer = _answer_response(answer)
        response.correct_option_ids = sorted(question.correct_option_ids)
        response.explanation = question.explanation
    return response


@router.post("/sessions/{session_id}/answers", response_model=AnswerResponse, summary="Answer the current question")
async def submit_answer(
    session_id: str,
    body: SubmitAnswerRequest,
    request: Request,
    student_id: str = Depends(get_student_id),
) -> AnswerResponse:
    store = await _store_for(request, session_id, student_id)
    try:
        answer = await store.submit_answer(
            body.selected_option_ids,
            text=body.text_answer,
            time_spent_seconds=body.time_spent_seconds,
        )
    except PracticeError as exc:
        raise _http_error(exc)
    return _answer_response(answer)


@router.post("/sessions/{session_id}/navigate", response_model=NavigateResponse, summary="Move between questions")
async def navigate(
    session_id: str,
    body: NavigateRequest,
    request: Request,
    student_id: str = Depends(get_student_id),
) -> NavigateResponse:
    store = await _store_for(request, session_id, student_id)
    try:
        if body.action == "next":
            moved = await store.next_question()
        elif body.action == "previous":
            moved = await store.previous_question()
        else:
            if body.index is None:
                raise HTTPException(status_code=422, detail="index is required for goto")
            moved = await store.go_to_question(body.index)
    except PracticeError as exc:
        raise _http_error(exc)

    return NavigateResponse(
        moved=moved,
        current_question_index=store.current_question_number,
        total_questions=store.total_questions,
    )


@router.post("/sessions/{session_id}/complete", response_model=CompletionResponse, summary="Finish the session")
async def complete_session(
    session_id: str,
    request: Request,
    student_id: str = Depends(get_student_id),
) -> CompletionResponse:
    store = await _store_for(request, session_id, student_id)
    try:
        summary = await store.complete_session()
    except PracticeError as exc:
        raise _http_error(exc)

    response = CompletionResponse(
        session_id=session_id,
        total_questions=summary.total_questions,
        correct_count=summary.correct_count,
        score=summary.score,
        duration_seconds=summary.duration_seconds,
        completed_at=store.session.completed_at,
    )

    reward_function = request.app.state.reward_function
    if reward_function is not None:
        # Completion is already persisted; a failed grant is logged, not raised
        try:
            grant = reward_function(summary)
            await store.record_rewards(grant)
        except Exception as e:
            logger.error(f"Session {session_id} completed but rewards were not recorded: {e}")
        else:
            response.rewards = RewardResponse(xp=grant.xp, coins=grant.coins)
            logger.info(f"Session {session_id} rewarded {grant.xp} XP, {grant.coins} coins")

    request.app.state.stores.pop(session_id)
    return response


@router.delete("/sessions/{session_id}", status_code=204, summary="Leave the session")
async def end_session(
    session_id: str,
    request: Request,
    student_id: str = Depends(get_student_id),
) -> None:
    """Drop the in-memory store. An unfinished session stays resumable."""
    stores: StoreRegistry = request.app.state.stores
    store = stores.get(session_id)
    if store is None or store.session is None or store.session.student_id != student_id:
        raise _http_error(NotFound(f"Session not found: {session_id}"))
    await store.end_session()
    stores.pop(session_id)


# ========================================
# History
# ========================================


@router.get("/history", response_model=HistoryResponse, summary="Past and in-progress sessions")
async def get_history(
    request: Request,
    grade_level_name: Optional[str] = Query(None),
    subject_name: Optional[str] = Query(None),
    topic_name: Optional[str] = Query(None),
    sub_topic_name: Optional[str] = Query(None),
    date_range: history.DateRange = Query(history.DateRange.ALL_TIME),
    student_id: str = Depends(get_student_id),
) -> HistoryResponse:
    state = request.app.state
    sessions = await state.gateway.list_sessions(student_id)
    summaries = [history.summarize_session(s) for s in sessions]
    filters = history.HistoryFilters(
        grade_level_name=grade_level_name,
        subject_name=subject_name,
        topic_name=topic_name,
        sub_topic_name=sub_topic_name,
        date_range=date_range,
    )
    kept = history.filter_sessions(summaries, filters, utc_now(), state.limit_gate.timezone)

    return HistoryResponse(
        sessions=[
            SessionSummaryResponse(status=s.status, **{k: getattr(s, k) for k in _SUMMARY_FIELDS})
            for s in kept
        ],
        grade_levels=history.unique_values(summaries, "grade_level_name"),
        subjects=history.unique_values(summaries, "subject_name", grade_level_name=grade_level_name),
        topics=history.unique_values(
            summaries, "topic_name", grade_level_name=grade_level_name, subject_name=subject_name
        ),
        sub_topics=history.unique_values(
            summaries,
            "sub_topic_name",
            grade_level_name=grade_level_name,
            subject_name=subject_name,
            topic_name=topic_name,
        ),
    )


_SUMMARY_FIELDS = [name for name in SessionSummaryResponse.model_fields if name != "status"]
