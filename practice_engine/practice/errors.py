"""
Recoverable errors raised by the practice engine.

Each error carries a stable `code` for API clients and a user-facing message.
None of them is fatal: the operation that raised leaves the previous session
state untouched.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import SessionLimitStatus


class PracticeError(Exception):
    """Base class for practice session errors."""

    code = "practice_error"

    def __init__(self, message: str | None = None):
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)


class LimitReached(PracticeError):
    """Daily session limit reached. Upgrade your plan or try again tomorrow."""

    code = "limit_reached"

    def __init__(self, status: SessionLimitStatus | None = None, message: str | None = None):
        self.status = status
        if message is None and status is not None:
            message = (
                f"Daily session limit reached ({status.sessions_today} of "
                f"{status.session_limit} sessions)"
            )
        super().__init__(message)


class QuotaExceededAtCreation(LimitReached):
    """Daily session limit was reached while the session was being created."""

    code = "limit_reached_at_creation"


class NotFound(PracticeError):
    """Session not found."""

    code = "not_found"


class AlreadyAnswered(PracticeError):
    """This question has already been answered."""

    code = "already_answered"

    def __init__(self, question_id: str | None = None, message: str | None = None):
        self.question_id = question_id
        super().__init__(message)


class EmptySubmission(PracticeError):
    """Please choose an answer before submitting."""

    code = "empty_submission"


class InvalidSubmission(PracticeError):
    """The submitted answer does not fit this question type."""

    code = "invalid_submission"


class IncompleteAnswers(PracticeError):
    """Answer every question before finishing the session."""

    code = "incomplete_answers"

    def __init__(self, answered: int = 0, total: int = 0, message: str | None = None):
        self.answered = answered
        self.total = total
        if message is None and total:
            message = f"Answer every question before finishing ({answered} of {total} answered)"
        super().__init__(message)


class SessionNotActive(PracticeError):
    """There is no active session."""

    code = "session_not_active"


class UnknownSubTopic(PracticeError):
    """Sub-topic not found."""

    code = "unknown_sub_topic"


class NoQuestionsAvailable(PracticeError):
    """No questions available for this sub-topic."""

    code = "no_questions_available"
