"""Requests and Response models"""

import json
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from src.core.exceptions import InvalidRequestError
from src.core.models import LeaderboardRecord, PlayerProfile
from src.core.shared_types import OpCode


class CamelModel(BaseModel):
    """JSON contract of the clients is camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- RPC RESPONSE MODELS ---
class FindMatchResponse(CamelModel):
    match_ids: list[str]


class LeaderboardEntry(CamelModel):
    owner_id: str
    score: int
    subscore: int
    rank: int
    update_time: int

    @classmethod
    def from_record(cls, record: LeaderboardRecord) -> "LeaderboardEntry":
        return cls(
            owner_id=record.owner_id,
            score=record.score,
            subscore=record.subscore,
            rank=record.rank,
            update_time=record.update_time,
        )


class LeaderboardResponse(CamelModel):
    leaderboard: list[LeaderboardEntry]


class PlayerStatsResponse(CamelModel):
    wins: int
    losses: int
    draws: int
    total_games: int
    rating: int

    @classmethod
    def from_profile(cls, profile: PlayerProfile) -> "PlayerStatsResponse":
        return cls(
            wins=profile.wins,
            losses=profile.losses,
            draws=profile.draws,
            total_games=profile.total_games,
            rating=profile.rating,
        )


class AuthResponse(CamelModel):
    user_id: str
    created: bool


class ErrorResponse(BaseModel):
    error: str


# --- SESSION (WEBSOCKET) MODELS ---
class ClientEnvelope(BaseModel):
    """One message a client sends over its session."""

    type: Literal["match_join", "match_leave", "match_data"]
    match_id: str
    op_code: Optional[int] = None
    data: Any = None

    @field_validator("match_id")
    @classmethod
    def validate_match_id(cls, value: str) -> str:
        if not value.strip():
            raise InvalidRequestError("match_id must not be empty.")
        return value

    @field_validator("op_code")
    @classmethod
    def validate_op_code(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value != OpCode.PLAYER_MOVE:
            raise InvalidRequestError(f"Clients may only send op code {int(OpCode.PLAYER_MOVE)}, got {value}.")
        return value

    def encoded_data(self) -> str:
        """Match data is forwarded as the JSON text the match decodes itself."""
        if isinstance(self.data, str):
            return self.data
        return json.dumps(self.data)

