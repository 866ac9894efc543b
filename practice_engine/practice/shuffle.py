"""
Per-session option shuffling.

Options are shuffled once per question the first time it is shown and the
same order is returned on every later view, so navigating back to a question
never reorders its answers. The cache only lives as long as one session.
"""

from __future__ import annotations

import random
from typing import Sequence, TypeVar

from .models import Question, QuestionOption

T = TypeVar("T")


def fisher_yates(items: Sequence[T], rng: random.Random | None = None) -> list[T]:
    """Return a uniformly shuffled copy of `items`."""
    rng = rng or random
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randint(0, i)
        result[i], result[j] = result[j], result[i]
    return result


class ShuffleCache:
    """Caches the displayed option order per question for one session."""

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.Random()
        self._session_id: str | None = None
        self._options: dict[str, list[QuestionOption]] = {}

    @property
    def session_id(self) -> str | None:
        return self._session_id

    def __len__(self) -> int:
        return len(self._options)

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._options

    def bind(self, session_id: str | None) -> None:
        """Scope the cache to a session, dropping permutations of any other session."""
        if session_id != self._session_id:
            self._options.clear()
            self._session_id = session_id

    def clear(self) -> None:
        self._options.clear()

    def options_for(self, session_id: str, question: Question) -> list[QuestionOption]:
        """Return the filtered, shuffled options of `question` within `session_id`."""
        self.bind(session_id)
        if not question.type.is_choice:
            return []

        cached = self._options.get(question.id)
        if cached is None:
            filled = [opt for opt in question.options if opt.is_filled]
            cached = fisher_yates(filled, self._rng)
            self._options[question.id] = cached
        return list(cached)
