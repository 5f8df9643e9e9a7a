"""Match messages: the client move payload (validated with pydantic) and the payloads broadcast to clients."""

from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, StrictInt

from src.core.models import Identity
from src.core.shared_types import EndReason, Seat
from src.tictactoe.match_state import MatchState


@dataclass
class MatchMessage:
    """One inbound message delivered to a match tick."""

    sender: Identity
    op_code: int
    data: str | bytes


class PlayerMoveMessage(BaseModel):
    """Opcode 4 payload. Range and occupancy are rules, checked by the match, not here."""

    model_config = ConfigDict(extra="ignore")

    position: StrictInt


def game_start_payload(state: MatchState) -> dict[str, Any]:
    return {
        "type": "game_start",
        "players": state.players_payload(),
        "currentPlayer": int(state.current_player),
        "board": state.board.to_list(),
    }


def move_payload(state: MatchState, position: int, player: Seat) -> dict[str, Any]:
    return {
        "type": "move",
        "board": state.board.to_list(),
        "currentPlayer": int(state.current_player),
        "position": position,
        "player": int(player),
    }


def game_end_payload(
    state: MatchState, draw: bool = False, reason: Optional[EndReason] = None
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "type": "game_end",
        "board": state.board.to_list(),
        "winner": int(state.winner) if state.winner is not None else None,
        "players": state.players_payload(),
    }
    if draw:
        payload["draw"] = True
    if reason is not None:
        payload["reason"] = str(reason)
    return payload
