"""Player Profile Store: stats materialization, reads, and the leaderboard."""

import logging

from src.core.exceptions import StorageError
from src.core.models import Identity, LeaderboardRecord, PlayerProfile
from src.db.repository import LeaderboardRepository, ProfileRepository
from src.tictactoe.match import now_ms
from src.tictactoe.rating import STARTING_RATING, default_profile

logger = logging.getLogger(__name__)


class ProfileService:
    """Orchestration of the profile and leaderboard repositories."""

    def __init__(self, profiles: ProfileRepository, leaderboard: LeaderboardRepository) -> None:
        self.profiles = profiles
        self.leaderboard = leaderboard

    def ensure_profile(self, identity: Identity) -> bool:
        """
        Post-authentication hook: create stats (and a leaderboard entry) for a player seen for the first time.
        ----
        Returns True if a profile was created. Storage trouble is logged, authentication itself must still succeed.
        """
        try:
            if self.profiles.get_profile(identity) is not None:
                return False

            initial = default_profile()
            initial.created_at = now_ms()
            self.profiles.create_profile(identity, initial)
            self.leaderboard.write_record(identity, STARTING_RATING, STARTING_RATING)
        except StorageError:
            logger.exception("Error initializing player stats for %s", identity)
            return False

        logger.info("Initialized stats for new player: %s", identity)
        return True

    def get_stats(self, identity: Identity) -> PlayerProfile:
        """Stored stats, or the defaults. The defaults are NOT written (only the authentication hook writes)."""
        stored = self.profiles.get_profile(identity)
        if stored is None:
            return default_profile()
        profile, _ = stored
        return profile

    def get_leaderboard(self, limit: int = 20) -> list[LeaderboardRecord]:
        return self.leaderboard.list_records(limit)
