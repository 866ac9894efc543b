"""Question and clock builders shared by the test suites."""

from datetime import timedelta

from practice_engine.practice.models import Question, QuestionOption, QuestionType

SUB_TOPIC_ID = "sub-fractions"
STUDENT_ID = "student-1"


def choice_question(qid, correct=("a",), option_ids=("a", "b", "c", "d"), multi=False, sub_topic_id=SUB_TOPIC_ID):
    """A choice question whose option text is `<qid>-<option id>`."""
    return Question(
        id=qid,
        type=QuestionType.MULTI_CHOICE if multi else QuestionType.SINGLE_CHOICE,
        prompt=f"Prompt for {qid}",
        options=tuple(
            QuestionOption(id=oid, text=f"{qid}-{oid}", is_correct=oid in correct) for oid in option_ids
        ),
        explanation=f"Because {','.join(correct)}",
        sub_topic_id=sub_topic_id,
    )


def free_text_question(qid, answer="Paris", sub_topic_id=SUB_TOPIC_ID):
    return Question(
        id=qid,
        type=QuestionType.FREE_TEXT,
        prompt=f"Prompt for {qid}",
        answer=answer,
        sub_topic_id=sub_topic_id,
    )


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class FakeMonotonic:
    def __init__(self):
        self.value = 1000.0

    def __call__(self):
        return self.value

    def advance(self, seconds):
        self.value += seconds
