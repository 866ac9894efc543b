"""
Multi-choice evaluator.

All-or-nothing: the set of selected ids must equal the set of correct ids.
Missing or extra selections both fail; there is no partial credit.
"""

from ..errors import EmptySubmission
from ..models import Question, QuestionType
from . import register
from .base import EvaluationResult, Submission, unique_ids


@register(QuestionType.MULTI_CHOICE)
class MultiChoiceEvaluator:
    """Evaluator for multi-choice questions."""

    def validate(self, question: Question, submission: Submission) -> None:
        if not submission.selected_option_ids:
            raise EmptySubmission()

    def check(self, question: Question, submission: Submission) -> EvaluationResult:
        selected = unique_ids(submission.selected_option_ids)
        # A question with nothing flagged correct can never be answered correctly
        correct = bool(question.correct_option_ids) and set(selected) == question.correct_option_ids
        return EvaluationResult(correct=correct, selected_option_ids=selected)
