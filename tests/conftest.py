"""Test fixtures and utilities."""

import random
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from pym_write.config import ScorerConfig
from pym_write.errors import PersistenceError
from pym_write.local_store import LocalStore

# 150 characters of prose
SAMPLE_TEXT_150 = (
    "The committee reviewed the proposal in detail and agreed that the new "
    "schedule would reduce delays, although several members asked for more hard data."
)

SAMPLE_TEXT_50 = "This note is far too short to scan for AI writing."


class StepClock:
    """Clock that advances by a fixed step on every call."""

    def __init__(self, start: datetime | None = None, step_ms: int = 1000):
        self.now = start or datetime(2026, 10, 18, 9, 30, 0)
        self.step = timedelta(milliseconds=step_ms)

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


@pytest.fixture
def sample_text() -> str:
    """Text long enough to scan."""
    assert len(SAMPLE_TEXT_150) == 150
    return SAMPLE_TEXT_150


@pytest.fixture
def short_text() -> str:
    """Text below the minimum scan length."""
    return SAMPLE_TEXT_50


@pytest.fixture
def temp_db(tmp_path) -> Path:
    """Temporary database path for testing."""
    return tmp_path / "test_store.db"


@pytest.fixture
def store(temp_db) -> LocalStore:
    """Fresh local store."""
    return LocalStore(temp_db)


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def scorer_config() -> ScorerConfig:
    """Scorer config pointing at test URLs."""
    return ScorerConfig(
        api_url="https://llm.test/api/v1",
        classifier_url="https://classifier.test/models/detector",
        default_model="test/model-a",
        timeout_seconds=5,
    )


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


class FailingStore(LocalStore):
    """Local store whose writes fail after being armed."""

    def __init__(self, db_path):
        super().__init__(db_path)
        self.fail_writes = False

    def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise PersistenceError("quota exceeded")
        super().set(key, value)


@pytest.fixture
def failing_store(temp_db) -> FailingStore:
    """Local store whose writes can be made to fail."""
    return FailingStore(temp_db)
