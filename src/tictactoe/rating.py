"""Rating arithmetic applied to a player's profile once a game has a result."""

from dataclasses import replace
from typing import Optional

from src.core.models import PlayerProfile
from src.core.shared_types import Seat

STARTING_RATING = 1000
WIN_BONUS = 25
LOSS_PENALTY = 15
RATING_FLOOR = 100


def default_profile() -> PlayerProfile:
    return PlayerProfile(rating=STARTING_RATING)


def apply_result(profile: PlayerProfile, seat: Seat, winner: Optional[Seat]) -> PlayerProfile:
    """
    Return the profile after one finished game.

    A draw (no winner) only counts the game. A loss never drops the rating below the floor.
    """
    total_games = profile.total_games + 1
    if winner is None:
        return replace(profile, total_games=total_games, draws=profile.draws + 1)
    if seat == winner:
        return replace(
            profile,
            total_games=total_games,
            wins=profile.wins + 1,
            rating=profile.rating + WIN_BONUS,
        )
    return replace(
        profile,
        total_games=total_games,
        losses=profile.losses + 1,
        rating=max(RATING_FLOOR, profile.rating - LOSS_PENALTY),
    )
