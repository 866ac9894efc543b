"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import itertools
import random
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))
sys.path.insert(0, str(PROJECT_ROOT / "tests"))

from config import Settings
from practice_engine.practice.memory import InMemoryContentCatalog, InMemoryPersistenceGateway
from practice_engine.practice.limits import SessionLimitGate
from practice_engine.practice.models import SubTopic
from practice_engine.practice.session_store import PracticeSessionStore
from practice_engine.practice.shuffle import ShuffleCache
from builders import STUDENT_ID, SUB_TOPIC_ID, FakeClock, FakeMonotonic, choice_question, free_text_question


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (require database)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


# ========================================
# Fixtures
# ========================================


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def settings():
    return Settings(
        questions_per_session=10,
        session_limit_cache_ttl_seconds=30.0,
        reference_timezone="Asia/Kuala_Lumpur",
        log_file=None,
    )


@pytest.fixture
def clock():
    # 10:00 in Kuala Lumpur
    return FakeClock(datetime(2024, 3, 15, 2, 0, tzinfo=timezone.utc))


@pytest.fixture
def monotonic():
    return FakeMonotonic()


@pytest.fixture
def sub_topic():
    return SubTopic(
        id=SUB_TOPIC_ID,
        name="Fractions",
        topic_id="topic-numbers",
        topic_name="Numbers",
        subject_id="subject-math",
        subject_name="Mathematics",
        grade_level_id="grade-5",
        grade_level_name="Grade 5",
    )


@pytest.fixture
def question_bank():
    """Twelve questions: ten single-choice, one multi-choice, one free-text."""
    questions = [choice_question(f"q{i:02d}") for i in range(1, 11)]
    questions.append(choice_question("q11", correct=("a", "b"), multi=True))
    questions.append(free_text_question("q12"))
    return questions


@pytest.fixture
def catalog(sub_topic, question_bank):
    return InMemoryContentCatalog([sub_topic], question_bank)


@pytest.fixture
def gateway():
    return InMemoryPersistenceGateway({STUDENT_ID: "plus"})


@pytest.fixture
def limit_gate(gateway, settings, clock, monotonic):
    return SessionLimitGate(gateway, settings, clock=clock, monotonic=monotonic)


@pytest.fixture
def make_store(catalog, gateway, limit_gate, settings, clock):
    """Factory for stores sharing one catalog, gateway and limit gate."""
    counter = itertools.count(1)

    def _make(**overrides):
        kwargs = dict(
            catalog=catalog,
            gateway=gateway,
            limit_gate=limit_gate,
            shuffle_cache=ShuffleCache(random.Random(7)),
            settings=settings,
            clock=clock,
            id_factory=lambda: f"session-{next(counter)}",
        )
        kwargs.update(overrides)
        return PracticeSessionStore(**kwargs)

    return _make


@pytest.fixture
def store(make_store):
    return make_store()
