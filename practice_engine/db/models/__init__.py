# SQLAlchemy models
from .base import Base
from .content import (
    GradeLevelRow,
    QuestionRow,
    SubjectRow,
    SubTopicRow,
    TopicRow,
)
from .practice import (
    PracticeAnswerRow,
    PracticeSessionRow,
    SessionQuestionRow,
    StudentQuestionProgressRow,
    StudentSubscriptionRow,
)

__all__ = [
    # Base
    "Base",
    # Content
    "GradeLevelRow",
    "SubjectRow",
    "TopicRow",
    "SubTopicRow",
    "QuestionRow",
    # Practice
    "PracticeSessionRow",
    "SessionQuestionRow",
    "PracticeAnswerRow",
    "StudentQuestionProgressRow",
    "StudentSubscriptionRow",
]
