"""
Practice: timed quiz sessions for students.

Components:
- evaluators: Per question type answer checking (single/multi choice, free text)
- shuffle: Stable per-session option order
- limits: Daily session quota per subscription tier
- transitions: Pure session state transitions
- session_store: Session lifecycle (start, resume, answer, navigate, complete)
"""

from .errors import (
    AlreadyAnswered,
    EmptySubmission,
    IncompleteAnswers,
    InvalidSubmission,
    LimitReached,
    NoQuestionsAvailable,
    NotFound,
    PracticeError,
    QuotaExceededAtCreation,
    SessionNotActive,
    UnknownSubTopic,
)
from .evaluators import EVALUATORS, evaluate, get_evaluator
from .limits import SessionLimitGate
from .models import (
    CompletionSummary,
    PracticeAnswer,
    PracticeSession,
    Question,
    QuestionOption,
    QuestionType,
    RewardGrant,
    SessionLimitStatus,
    SessionState,
    SubTopic,
)
from .session_store import PracticeSessionStore
from .shuffle import ShuffleCache

__all__ = [
    "AlreadyAnswered",
    "CompletionSummary",
    "EVALUATORS",
    "EmptySubmission",
    "IncompleteAnswers",
    "InvalidSubmission",
    "LimitReached",
    "NoQuestionsAvailable",
    "NotFound",
    "PracticeAnswer",
    "PracticeError",
    "PracticeSession",
    "PracticeSessionStore",
    "Question",
    "QuestionOption",
    "QuestionType",
    "QuotaExceededAtCreation",
    "RewardGrant",
    "SessionLimitGate",
    "SessionLimitStatus",
    "SessionNotActive",
    "SessionState",
    "ShuffleCache",
    "SubTopic",
    "UnknownSubTopic",
    "evaluate",
    "get_evaluator",
]
