"""
Answer evaluators per question type.

Each question type has its own module with:
- validate(): Check that a submission fits the question type
- check(): Decide correctness and normalize the submission
"""

from typing import TYPE_CHECKING

from ..errors import InvalidSubmission
from ..models import Question, QuestionType

if TYPE_CHECKING:
    from .base import AnswerEvaluator, EvaluationResult, Submission


# Evaluator registry - populated by @register decorator
EVALUATORS: dict[QuestionType, "AnswerEvaluator"] = {}


def register(question_type: QuestionType):
    """Decorator to register an answer evaluator."""
    def decorator(cls):
        EVALUATORS[question_type] = cls()
        return cls
    return decorator


def get_evaluator(question_type: str | QuestionType) -> "AnswerEvaluator | None":
    """Get the evaluator for a question type."""
    if isinstance(question_type, str):
        try:
            question_type = QuestionType(question_type.lower())
        except ValueError:
            return None
    return EVALUATORS.get(question_type)


def evaluate(question: Question, submission: "Submission") -> "EvaluationResult":
    """
    Score a submission against a question.

    Raises EmptySubmission when nothing was chosen or typed, and
    InvalidSubmission when the submission shape does not fit the type.
    """
    evaluator = get_evaluator(question.type)
    if evaluator is None:
        raise InvalidSubmission(f"Unsupported question type: {question.type}")
    evaluator.validate(question, submission)
    return evaluator.check(question, submission)


# Import evaluators to trigger registration
from . import single_choice
from . import multi_choice
from . import free_text

__all__ = [
    "EVALUATORS",
    "evaluate",
    "get_evaluator",
    "register",
]
