from __future__ import annotations

import random
from datetime import datetime, timedelta

import pytest

from duelboard.constants import QualificationState
from duelboard.database.duckdb_manager import DuckDBStorageManager
from duelboard.database.rating_store import RatingStore
from duelboard.engine import RankingEngine

START_TIME = datetime(2024, 3, 1, 12, 0, 0)


class StepClock:
    """Deterministic clock: every call is one second after the previous one."""

    def __init__(self, start: datetime = START_TIME) -> None:
        self.current = start

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def temp_db(tmp_path):
    """DuckDB file inside pytest's temporary directory."""
    return tmp_path / "duelboard.duckdb"


@pytest.fixture
def storage(temp_db):
    """Storage manager on a temporary database file."""
    manager = DuckDBStorageManager(db_path=temp_db)
    yield manager
    manager.close()


@pytest.fixture
def store(storage, clock) -> RatingStore:
    return RatingStore(storage, clock=clock)


@pytest.fixture
def engine(storage, clock) -> RankingEngine:
    """Engine with a seeded random generator and a stepping clock."""
    return RankingEngine(storage, rng=random.Random(1234), clock=clock)


@pytest.fixture
def contest(engine) -> RankingEngine:
    """Three approved photos owned by alice, bob and carol, plus one landscape."""
    engine.add_submission("photo-a", "alice@example.com", "portrait", qualification=QualificationState.APPROVED)
    engine.add_submission("photo-b", "bob@example.com", "portrait", qualification=QualificationState.APPROVED)
    engine.add_submission("photo-c", "carol@example.com", "portrait", qualification=QualificationState.APPROVED)
    engine.add_submission("land-1", "alice@example.com", "landscape", qualification=QualificationState.APPROVED)
    return engine
