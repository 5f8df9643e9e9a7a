"""Unit tests for src/core/models.py"""

import pytest

from src.core.models import MatchLabel, PlayerProfile
from src.core.shared_types import Seat


@pytest.mark.parametrize(
    "profile",
    [
        PlayerProfile(),
        PlayerProfile(wins=10, losses=4, draws=2, total_games=16, rating=1190),
        PlayerProfile(rating=100, losses=70, total_games=70, created_at=1_700_000_000_000),
    ],
)
def test_profile_roundtrip(profile: PlayerProfile) -> None:
    assert PlayerProfile.from_dict(profile.to_dict()) == profile


def test_profile_json_keys() -> None:
    """Stored stats use the same keys the clients read."""
    assert PlayerProfile(created_at=5).to_dict() == {
        "wins": 0,
        "losses": 0,
        "draws": 0,
        "totalGames": 0,
        "rating": 1000,
        "createdAt": 5,
    }
    assert "createdAt" not in PlayerProfile().to_dict()


@pytest.mark.parametrize(
    "required, expected",
    [
        ({}, True),
        ({"mode": "tic_tac_toe"}, True),
        ({"mode": "tic_tac_toe", "status": "open"}, True),
        ({"status": "playing"}, False),
        ({"mode": "chess"}, False),
        ({"colour": "red"}, False),
    ],
)
def test_label_matches(required: dict[str, str], expected: bool) -> None:
    assert MatchLabel().matches(required) is expected


def test_seat_opponent() -> None:
    assert Seat.PLAYER_1.opponent is Seat.PLAYER_2
    assert Seat.PLAYER_2.opponent is Seat.PLAYER_1
