"""The Board implements all rules that affect the position (which cells are taken, and by whom)."""

from dataclasses import dataclass
from typing import Optional, Self

from src.core.exceptions import IllegalMoveError
from src.core.shared_types import EMPTY_CELL, Seat

# Tic-tac-toe board is always 3x3, stored row by row
BOARD_SIZE = 9

# Evaluated in this order: rows, columns, diagonals
WIN_LINES: tuple[tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)

VALID_CELL_VALUES = frozenset({EMPTY_CELL, *(int(seat) for seat in Seat)})


@dataclass(frozen=True)
class Board:
    cells: tuple[int, ...]

    def __post_init__(self) -> None:
        if len(self.cells) != BOARD_SIZE:
            raise ValueError(f"A board has {BOARD_SIZE} cells, got {len(self.cells)}.")

    @classmethod
    def empty(cls) -> Self:
        return cls((EMPTY_CELL,) * BOARD_SIZE)

    @classmethod
    def from_list(cls, cells: list[int]) -> Self:
        return cls(tuple(cells))

    def to_list(self) -> list[int]:
        return list(self.cells)

    def __getitem__(self, cell: int) -> int:
        return self.cells[cell]

    def empty_cells(self) -> list[int]:
        return [cell for cell, value in enumerate(self.cells) if value == EMPTY_CELL]

    def is_full(self) -> bool:
        return EMPTY_CELL not in self.cells

    def place(self, cell: int, seat: Seat) -> Self:
        """Return a copy of the board with the seat's mark on the given cell."""
        cells = list(self.cells)
        cells[cell] = int(seat)
        return type(self)(tuple(cells))


def is_valid_cell(cell: object) -> bool:
    """Integers in range only. A bool is not a cell index."""
    return isinstance(cell, int) and not isinstance(cell, bool) and 0 <= cell < BOARD_SIZE


def apply_move(board: Board, cell: int, seat: Seat) -> Board:
    """Place a mark. The given board is not modified."""
    if not is_valid_cell(cell):
        raise IllegalMoveError(f"Cell {cell!r} is not on the board (0-{BOARD_SIZE - 1}).")
    if board[cell] != EMPTY_CELL:
        raise IllegalMoveError(f"Cell {cell} is already taken by player {board[cell]}.")
    return board.place(cell, seat)


def detect_winner(board: Board) -> Optional[Seat]:
    """Owner of the first line with three identical marks, if any."""
    for a, b, c in WIN_LINES:
        if board[a] != EMPTY_CELL and board[a] == board[b] == board[c]:
            return Seat(board[a])
    return None


def is_draw(board: Board) -> bool:
    return board.is_full() and detect_winner(board) is None
