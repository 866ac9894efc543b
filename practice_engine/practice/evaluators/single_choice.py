"""
Single-choice evaluator.

Exactly one option is selected; the answer is correct when that option is
flagged correct. An id that is not one of the question's options is wrong.
"""

from ..errors import EmptySubmission, InvalidSubmission
from ..models import Question, QuestionType
from . import register
from .base import EvaluationResult, Submission, unique_ids


@register(QuestionType.SINGLE_CHOICE)
class SingleChoiceEvaluator:
    """Evaluator for single-choice questions."""

    def validate(self, question: Question, submission: Submission) -> None:
        ids = unique_ids(submission.selected_option_ids)
        if not ids:
            raise EmptySubmission()
        if len(ids) > 1:
            raise InvalidSubmission("Select only one option for this question")

    def check(self, question: Question, submission: Submission) -> EvaluationResult:
        option_id = submission.selected_option_ids[0]
        option = question.option(option_id)
        return EvaluationResult(
            correct=bool(option and option.is_correct),
            selected_option_ids=(option_id,),
        )
