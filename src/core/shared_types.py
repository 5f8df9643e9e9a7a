"""
Type definitions used across layers
"""

from enum import IntEnum, StrEnum

# Value of a cell that nobody has played yet
EMPTY_CELL = 0

MATCH_MODE = "tic_tac_toe"


class Seat(IntEnum):
    """Which side of the game a joined identity plays. Doubles as the value stored in a board cell."""

    PLAYER_1 = 1
    PLAYER_2 = 2

    @property
    def opponent(self) -> "Seat":
        return Seat.PLAYER_2 if self == Seat.PLAYER_1 else Seat.PLAYER_1


class MatchStatus(StrEnum):
    AWAITING_PLAYERS = "awaiting players"
    PLAYING = "playing"
    TERMINATED = "terminated"


class LabelStatus(StrEnum):
    """Discovery status published on the match label."""

    OPEN = "open"
    PLAYING = "playing"


class OpCode(IntEnum):
    GAME_START = 1
    MOVE = 2
    GAME_END = 3
    PLAYER_MOVE = 4  # client -> server


class EndReason(StrEnum):
    PLAYER_LEFT = "player_left"
