"""
Tests for answer evaluators.
"""

import pytest

from practice_engine.practice.errors import EmptySubmission, InvalidSubmission
from practice_engine.practice.evaluators import EVALUATORS, evaluate, get_evaluator
from practice_engine.practice.evaluators.base import Submission
from practice_engine.practice.models import Question, QuestionType
from builders import choice_question, free_text_question


class TestRegistry:
    def test_all_types_registered(self):
        assert set(EVALUATORS) == set(QuestionType)

    @pytest.mark.parametrize("name", ["single-choice", "MULTI-CHOICE", "free-text"])
    def test_lookup_by_name(self, name):
        assert get_evaluator(name) is not None

    def test_unknown_name(self):
        assert get_evaluator("matching") is None


class TestSingleChoice:
    question = choice_question("q1", correct=("b",))

    def test_correct(self):
        result = evaluate(self.question, Submission.of("b"))
        assert result.correct is True
        assert result.selected_option_ids == ("b",)

    def test_incorrect(self):
        assert evaluate(self.question, Submission.of("a")).correct is False

    def test_unknown_option_is_wrong(self):
        assert evaluate(self.question, Submission.of("zz")).correct is False

    def test_empty(self):
        with pytest.raises(EmptySubmission):
            evaluate(self.question, Submission.of(None))

    def test_two_options_rejected(self):
        with pytest.raises(InvalidSubmission):
            evaluate(self.question, Submission.of(["a", "b"]))

    def test_repeated_id_counts_once(self):
        assert evaluate(self.question, Submission.of(["b", "b"])).correct is True


class TestMultiChoice:
    question = choice_question("q1", correct=("a", "b"), option_ids=("a", "b", "c"), multi=True)

    def test_exact_set_is_correct(self):
        assert evaluate(self.question, Submission.of(["b", "a"])).correct is True

    def test_subset_is_wrong(self):
        assert evaluate(self.question, Submission.of(["a"])).correct is False

    def test_superset_is_wrong(self):
        assert evaluate(self.question, Submission.of(["a", "b", "c"])).correct is False

    def test_empty(self):
        with pytest.raises(EmptySubmission):
            evaluate(self.question, Submission.of([]))

    def test_no_correct_options_never_correct(self):
        question = choice_question("q2", correct=(), multi=True)
        assert evaluate(question, Submission.of(["a"])).correct is False


class TestFreeText:
    question = free_text_question("q1", answer="Kuala Lumpur")

    @pytest.mark.parametrize("text", ["Kuala Lumpur", "  kuala lumpur ", "KUALA LUMPUR"])
    def test_trimmed_case_insensitive_match(self, text):
        result = evaluate(self.question, Submission.of(text=text))
        assert result.correct is True
        assert result.text_answer == text.strip()

    def test_no_fuzzy_matching(self):
        assert evaluate(self.question, Submission.of(text="Kuala Lumpor")).correct is False

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_blank(self, text):
        with pytest.raises(EmptySubmission):
            evaluate(self.question, Submission.of(text=text))

    def test_missing_stored_answer_is_wrong(self):
        question = Question(id="q2", type=QuestionType.FREE_TEXT, prompt="?", answer=None)
        assert evaluate(question, Submission.of(text="anything")).correct is False
