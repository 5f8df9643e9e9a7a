"""
Boundary layer data model(s).

These objects can be used to communicate with the Services.
Hence, both the API layer (higher) and domain/db layers (lower) will use model(s) defined here to send to/receive from the Service
(Decouples the data model specific to the DB layer, API layer, or domain layer from the information needed to send across boundaries)
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Self

from src.core.shared_types import MATCH_MODE, LabelStatus

# Type aliases to make the models easier to read
Identity = str
SeatNumber = int


@dataclass
class PlayerProfile:
    """Persisted statistics of one player. JSON keys follow the client contract (camelCase)."""

    wins: int = 0
    losses: int = 0
    draws: int = 0
    total_games: int = 0
    rating: int = 1000
    created_at: Optional[int] = None  # epoch milliseconds, only set by the authentication hook

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "wins": self.wins,
            "losses": self.losses,
            "draws": self.draws,
            "totalGames": self.total_games,
            "rating": self.rating,
        }
        if self.created_at is not None:
            data["createdAt"] = self.created_at
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            wins=int(data.get("wins", 0)),
            losses=int(data.get("losses", 0)),
            draws=int(data.get("draws", 0)),
            total_games=int(data.get("totalGames", 0)),
            rating=int(data.get("rating", 1000)),
            created_at=data.get("createdAt"),
        )


@dataclass
class MatchModel:
    """Transport-safe representation of a match state, shaped like the JSON the clients receive."""

    board: list[int]
    current_player: SeatNumber
    players: dict[Identity, SeatNumber]
    winner: Optional[SeatNumber]
    game_over: bool
    start_time: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "board": list(self.board),
            "currentPlayer": self.current_player,
            "players": dict(self.players),
            "winner": self.winner,
            "gameOver": self.game_over,
            "startTime": self.start_time,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            board=data["board"],
            current_player=data["currentPlayer"],
            players=data["players"],
            winner=data.get("winner"),
            game_over=data["gameOver"],
            start_time=data["startTime"],
        )


@dataclass(frozen=True)
class MatchLabel:
    """Discovery metadata attached to a match and queried by matchmaking."""

    mode: str = MATCH_MODE
    status: LabelStatus = LabelStatus.OPEN

    def matches(self, required: dict[str, str]) -> bool:
        """True if every required label field has the requested value."""
        fields = {"mode": self.mode, "status": str(self.status)}
        return all(fields.get(key) == value for key, value in required.items())


@dataclass
class MatchListing:
    """One entry of a match registry query."""

    match_id: str
    label: MatchLabel
    authoritative: bool = True
    size: int = 0


@dataclass
class MatchQuery:
    label: dict[str, str] = field(default_factory=dict)
    limit: int = 10
    authoritative: bool = True


@dataclass
class LeaderboardRecord:
    owner_id: Identity
    score: int
    subscore: int
    rank: int
    update_time: int  # epoch milliseconds
