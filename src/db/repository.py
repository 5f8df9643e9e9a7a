"""Protocol repositories (SQLAlchemy implementations live in sql_repository.py, tests use in-memory doubles)"""

from typing import Protocol

from src.core.models import (
    Identity,
    LeaderboardRecord,
    MatchListing,
    MatchQuery,
    PlayerProfile,
)


class ProfileRepository(Protocol):
    """Key-value storage of player profiles. Writes are optimistic: they carry the version that was read."""

    def get_profile(self, identity: Identity) -> tuple[PlayerProfile, int] | None:
        """Stored profile and its version, if a record exists."""
        ...

    def create_profile(self, identity: Identity, profile: PlayerProfile) -> int:
        """Store a new profile and return its version. Raises ConcurrentWriteError if one already exists."""
        ...

    def update_profile(self, identity: Identity, profile: PlayerProfile, expected_version: int) -> int:
        """Overwrite the profile if it is still at `expected_version`, return the new version."""
        ...


class LeaderboardRepository(Protocol):
    """Sorted-score service. Last writer wins."""

    def write_record(self, owner_id: Identity, score: int, subscore: int) -> LeaderboardRecord:
        """Set the owner's score (creates the record if needed)."""
        ...

    def list_records(self, limit: int) -> list[LeaderboardRecord]:
        """Top records, highest score first."""
        ...


class MatchDirectory(Protocol):
    """Registry of live matches, searchable by label."""

    def list_matches(self, query: MatchQuery) -> list[MatchListing]:
        """Matches whose label satisfies the query, at most `query.limit` of them."""
        ...

    def create_match(self, kind: str) -> str:
        """Start a new match of the given kind and return its ID."""
        ...
