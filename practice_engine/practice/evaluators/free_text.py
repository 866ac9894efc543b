"""
Free-text evaluator.

Exact string match after trimming, case-insensitive. No fuzzy matching.
"""

from ..errors import EmptySubmission
from ..models import Question, QuestionType
from . import register
from .base import EvaluationResult, Submission


@register(QuestionType.FREE_TEXT)
class FreeTextEvaluator:
    """Evaluator for free-text questions."""

    def validate(self, question: Question, submission: Submission) -> None:
        if not (submission.text and submission.text.strip()):
            raise EmptySubmission("Please type an answer before submitting.")

    def check(self, question: Question, submission: Submission) -> EvaluationResult:
        text = submission.text.strip()
        return EvaluationResult(
            correct=self._grade(text, question.answer or ""),
            text_answer=text,
        )

    def _grade(self, user_answer: str, correct: str) -> bool:
        """Exact string match grading."""
        if not correct.strip():
            return False
        return user_answer.strip().casefold() == correct.strip().casefold()
