"""Rating Engine: applies a finished game's result to every participant's stats and leaderboard score."""

import logging
from typing import Optional

from src.core.exceptions import ConcurrentWriteError, StorageError
from src.core.models import Identity, PlayerProfile
from src.core.shared_types import Seat
from src.db.repository import LeaderboardRepository, ProfileRepository
from src.tictactoe.rating import apply_result, default_profile

logger = logging.getLogger(__name__)


class RatingService:
    def __init__(
        self,
        profiles: ProfileRepository,
        leaderboard: LeaderboardRepository,
        write_attempts: int = 3,
    ) -> None:
        self.profiles = profiles
        self.leaderboard = leaderboard
        self.write_attempts = write_attempts

    def update_ratings(self, players: dict[Identity, Seat], winner: Optional[Seat]) -> list[Identity]:
        """
        Score one finished game (winner None means draw) for all players.

        Failures are per player: they are logged and the remaining players are still updated.
        Returns the identities whose stats and leaderboard entry were both written.
        """
        updated: list[Identity] = []
        for identity, seat in players.items():
            try:
                profile = self._store_result(identity, seat, winner)
                self.leaderboard.write_record(identity, profile.rating, profile.rating)
            except StorageError:
                logger.exception("Error updating stats for %s", identity)
                continue
            updated.append(identity)
            logger.info(
                "Stats updated for %s: rating %d (%d-%d-%d)",
                identity,
                profile.rating,
                profile.wins,
                profile.losses,
                profile.draws,
            )
        return updated

    def _store_result(self, identity: Identity, seat: Seat, winner: Optional[Seat]) -> PlayerProfile:
        """Read-modify-write with a version check, re-reading when somebody else wrote in between."""
        for attempt in range(1, self.write_attempts + 1):
            stored = self.profiles.get_profile(identity)
            try:
                if stored is None:
                    profile = apply_result(default_profile(), seat, winner)
                    self.profiles.create_profile(identity, profile)
                else:
                    current, version = stored
                    profile = apply_result(current, seat, winner)
                    self.profiles.update_profile(identity, profile, version)
                return profile
            except ConcurrentWriteError:
                logger.warning(
                    "Concurrent write on stats of %s (attempt %d/%d)", identity, attempt, self.write_attempts
                )
        raise StorageError(f"Gave up writing stats for {identity=} after {self.write_attempts} attempts.")
