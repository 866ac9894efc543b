"""
Base protocol and types for answer evaluators.
"""

from dataclasses import dataclass
from typing import Iterable, Protocol

from ..models import Question


@dataclass(frozen=True)
class Submission:
    """What the student sent for one question."""
    selected_option_ids: tuple[str, ...] = ()
    text: str | None = None

    @classmethod
    def of(cls, selection: str | Iterable[str] | None = None, text: str | None = None) -> "Submission":
        """Build a submission from a single option id, several ids, or free text."""
        if selection is None:
            ids: tuple[str, ...] = ()
        elif isinstance(selection, str):
            ids = (selection,)
        else:
            ids = tuple(selection)
        return cls(selected_option_ids=ids, text=text)


@dataclass(frozen=True)
class EvaluationResult:
    """Normalized, scored submission."""
    correct: bool
    selected_option_ids: tuple[str, ...] | None = None
    text_answer: str | None = None


class AnswerEvaluator(Protocol):
    """Protocol for question type evaluators."""

    def validate(self, question: Question, submission: Submission) -> None:
        """Raise EmptySubmission/InvalidSubmission when the submission cannot be scored."""
        ...

    def check(self, question: Question, submission: Submission) -> EvaluationResult:
        """Decide correctness. Never raises for a validated submission."""
        ...


def unique_ids(ids: Iterable[str]) -> tuple[str, ...]:
    """Drop duplicate option ids, keeping first-seen order."""
    return tuple(dict.fromkeys(ids))
