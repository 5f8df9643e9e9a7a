"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures/variables required for testing multiple layers.
"""

from typing import Generator

import pytest
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

from src.core.exceptions import ConcurrentWriteError, StorageError
from src.core.models import Identity, LeaderboardRecord, MatchLabel, PlayerProfile
from src.core.shared_types import OpCode
from src.db.schema import Base

# Setup an in-memory SQLite database for testing
DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autoflush=False, bind=engine)


@pytest.fixture
def test_engine():
    """The in-memory engine, with fresh tables for every test."""
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session_repo(test_engine) -> Generator[Session, None, None]:
    """Connection to a test database. Tables are removed at teardown to make unit tests of repository independent of each other."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


# --- IN-MEMORY DOUBLES ----
class MockProfileRepository:
    """Mock the ProfileRepository using a dictionary of (profile, version)."""

    def __init__(self) -> None:
        self.records: dict[Identity, tuple[PlayerProfile, int]] = {}
        self.writes = 0
        self.fail_for: set[Identity] = set()
        self.conflicts_left = 0

    def get_profile(self, identity: Identity) -> tuple[PlayerProfile, int] | None:
        if identity in self.fail_for:
            raise StorageError(f"storage down for {identity}")
        return self.records.get(identity)

    def create_profile(self, identity: Identity, profile: PlayerProfile) -> int:
        if identity in self.records:
            raise ConcurrentWriteError(f"{identity} exists")
        self.records[identity] = (profile, 1)
        self.writes += 1
        return 1

    def update_profile(self, identity: Identity, profile: PlayerProfile, expected_version: int) -> int:
        if self.conflicts_left > 0:
            self.conflicts_left -= 1
            raise ConcurrentWriteError("somebody else wrote first")
        _, version = self.records[identity]
        if version != expected_version:
            raise ConcurrentWriteError("version mismatch")
        self.records[identity] = (profile, version + 1)
        self.writes += 1
        return version + 1


class MockLeaderboardRepository:
    """Mock the LeaderboardRepository: a dictionary of owner -> (score, subscore)."""

    def __init__(self) -> None:
        self.scores: dict[Identity, tuple[int, int]] = {}
        self.fail = False

    def write_record(self, owner_id: Identity, score: int, subscore: int) -> LeaderboardRecord:
        if self.fail:
            raise StorageError("leaderboard down")
        self.scores[owner_id] = (score, subscore)
        return LeaderboardRecord(owner_id, score, subscore, rank=0, update_time=0)

    def list_records(self, limit: int) -> list[LeaderboardRecord]:
        if self.fail:
            raise StorageError("leaderboard down")
        ordered = sorted(self.scores.items(), key=lambda item: item[1], reverse=True)[:limit]
        return [
            LeaderboardRecord(owner, score, subscore, rank=rank, update_time=0)
            for rank, (owner, (score, subscore)) in enumerate(ordered, start=1)
        ]


class MockDispatcher:
    """Records everything a match sends out."""

    def __init__(self) -> None:
        self.messages: list[tuple[OpCode, dict]] = []
        self.labels: list[MatchLabel] = []

    def broadcast(self, op_code: OpCode, payload: dict) -> None:
        self.messages.append((op_code, payload))

    def update_label(self, label: MatchLabel) -> None:
        self.labels.append(label)

    def op_codes(self) -> list[OpCode]:
        return [op_code for op_code, _ in self.messages]


@pytest.fixture
def profile_repository() -> MockProfileRepository:
    return MockProfileRepository()


@pytest.fixture
def leaderboard_repository() -> MockLeaderboardRepository:
    return MockLeaderboardRepository()


@pytest.fixture
def dispatcher() -> MockDispatcher:
    return MockDispatcher()
