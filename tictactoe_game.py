"""
Tic Tac Toe Game Engine
Board state, rules and win/draw detection
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Tuple

import numpy as np


# ==================== CONSTANTS ====================

EMPTY = 0
BOARD_CELLS = 9
CENTER = 4
CORNERS = (0, 2, 6, 8)
DEFAULT_MARKS: Tuple[str, str] = ("X", "O")

# Rows, columns, diagonals
WIN_LINES: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)

# Win lines that pass through each cell
LINES_THROUGH: Tuple[Tuple[Tuple[int, int, int], ...], ...] = tuple(
    tuple(line for line in WIN_LINES if cell in line) for cell in range(BOARD_CELLS)
)


# ==================== ERRORS ====================

class TicTacToeError(Exception):
    """Base class for recoverable game errors."""


class InvalidMove(TicTacToeError):
    """Out-of-range index, occupied cell, or game already over."""


class NothingToUndo(TicTacToeError):
    """Empty history or game already over."""


class NoLegalMoves(TicTacToeError):
    """An AI was asked to move on a finished or full board."""


# ==================== GAME STATUS ====================

class GameResult(Enum):
    """Game result types."""
    IN_PROGRESS = -1
    DRAW = 0
    WON = 1


@dataclass(frozen=True)
class Status:
    """Outcome of a position: in progress, won (with mark and line) or drawn."""
    result: GameResult = GameResult.IN_PROGRESS
    mark: Optional[str] = None
    line: Optional[Tuple[int, int, int]] = None

    @property
    def is_terminal(self) -> bool:
        return self.result != GameResult.IN_PROGRESS

    @property
    def is_won(self) -> bool:
        return self.result == GameResult.WON

    @property
    def is_draw(self) -> bool:
        return self.result == GameResult.DRAW

    def __str__(self):
        if self.result == GameResult.WON:
            return f"{self.mark} wins on {list(self.line)}"
        if self.result == GameResult.DRAW:
            return "Draw"
        return "In progress"


IN_PROGRESS = Status()
DRAW = Status(GameResult.DRAW)


# ==================== BOARD ====================

def _empty_cells() -> np.ndarray:
    return np.zeros(BOARD_CELLS, dtype=np.int8)


@dataclass(eq=False)
class Board:
    """
    The complete state of one game.

    Cells hold 0 for empty, 1 for the first mark and 2 for the second mark;
    ``marks`` maps those slots back to the symbols shown to players. The
    board is only changed through apply_move / undo_move.
    """

    marks: Tuple[str, str] = DEFAULT_MARKS
    cells: np.ndarray = field(default_factory=_empty_cells)
    turn_index: int = 0
    move_history: List[int] = field(default_factory=list)
    status: Status = IN_PROGRESS

    def __post_init__(self):
        marks = tuple(self.marks)
        if len(marks) != 2 or not all(isinstance(m, str) and m for m in marks):
            raise ValueError(f"Board needs exactly two non-empty mark symbols, got {self.marks!r}")
        if marks[0] == marks[1]:
            raise ValueError(f"Marks must be distinct, got {marks[0]!r} twice")
        self.marks = marks

    # ---------- Marks ----------

    @property
    def current_mark(self) -> str:
        """Mark placed by the next move."""
        return self.marks[self.turn_index % 2]

    def slot_of(self, mark: str) -> int:
        """Cell value used for ``mark`` (1 or 2)."""
        try:
            return self.marks.index(mark) + 1
        except ValueError:
            raise ValueError(f"Unknown mark {mark!r}; board plays {self.marks}") from None

    def opponent_of(self, mark: str) -> str:
        return self.marks[2 - self.slot_of(mark)]

    def mark_at(self, cell: int) -> Optional[str]:
        """Symbol on ``cell``, or None when it is empty."""
        value = int(self.cells[cell])
        return self.marks[value - 1] if value else None

    def symbols(self) -> List[Optional[str]]:
        return [self.mark_at(i) for i in range(BOARD_CELLS)]

    # ---------- Queries ----------

    def is_empty(self, cell: int) -> bool:
        return self.cells[cell] == EMPTY

    @property
    def is_over(self) -> bool:
        return self.status.is_terminal

    @property
    def last_move(self) -> Optional[int]:
        return self.move_history[-1] if self.move_history else None

    def key(self) -> str:
        """Hashable board configuration, e.g. ``"120000000"``."""
        return ''.join(map(str, self.cells.tolist()))

    def copy(self) -> "Board":
        """Create an independent copy of the board."""
        return Board(
            marks=self.marks,
            cells=self.cells.copy(),
            turn_index=self.turn_index,
            move_history=list(self.move_history),
            status=self.status,
        )

    def __eq__(self, other):
        if not isinstance(other, Board):
            return NotImplemented
        return (
            self.marks == other.marks
            and np.array_equal(self.cells, other.cells)
            and self.turn_index == other.turn_index
            and self.move_history == other.move_history
            and self.status == other.status
        )

    def render(self) -> str:
        """Text rendering of the board."""
        rows = []
        for row in range(3):
            rows.append(" | ".join(self.mark_at(row * 3 + col) or " " for col in range(3)))
        return "\n---------\n".join(rows)

    def __str__(self):
        return self.render()


def new_game(marks: Tuple[str, str] = DEFAULT_MARKS) -> Board:
    """Create an empty board for the given mark assignment (first mover first)."""
    return Board(marks=tuple(marks))


# ==================== RULES ENGINE ====================

def evaluate_status(board: Board) -> Status:
    """
    Compute the status of the position without changing the board.

    Win lines are checked in WIN_LINES order; a full board without a line
    is a draw.
    """
    cells = board.cells.tolist()
    for line in WIN_LINES:
        a, b, c = line
        if cells[a] != EMPTY and cells[a] == cells[b] == cells[c]:
            return Status(GameResult.WON, board.marks[cells[a] - 1], line)
    if EMPTY not in cells:
        return DRAW
    return IN_PROGRESS


def legal_moves(board: Board) -> List[int]:
    """Empty cells in ascending order, whether or not the game is over."""
    return [i for i, v in enumerate(board.cells.tolist()) if v == EMPTY]


def _check_index(cell) -> int:
    if isinstance(cell, bool) or not isinstance(cell, (int, np.integer)):
        raise InvalidMove(f"Cell index must be an integer, got {cell!r}")
    if not 0 <= cell < BOARD_CELLS:
        raise InvalidMove(f"Cell index {cell} out of range 0-{BOARD_CELLS - 1}")
    return int(cell)


def apply_move(board: Board, cell: int) -> Board:
    """
    Place the current mark on ``cell``.

    Args:
        board: Board to update in place.
        cell: Cell index 0-8.

    Returns:
        The same board, for chaining.

    Raises:
        InvalidMove: The index is out of range, the cell is taken, or the
            game is already over. The board is left untouched.
    """
    if board.status.is_terminal:
        raise InvalidMove(f"Game is already over ({board.status})")
    cell = _check_index(cell)
    if board.cells[cell] != EMPTY:
        raise InvalidMove(f"Cell {cell} is already occupied by {board.mark_at(cell)}")

    board.cells[cell] = board.turn_index % 2 + 1
    board.move_history.append(cell)
    board.turn_index += 1
    board.status = evaluate_status(board)
    return board


def retract_move(board: Board) -> int:
    """Take back the last move even from a finished position. Returns the cell."""
    if not board.move_history:
        raise NothingToUndo("No moves to undo")
    cell = board.move_history.pop()
    board.cells[cell] = EMPTY
    board.turn_index -= 1
    board.status = evaluate_status(board)
    return cell


def undo_move(board: Board) -> Board:
    """
    Take back the last move.

    Undo is refused once the game has ended; a finished game can only be
    reset.

    Raises:
        NothingToUndo: History is empty or the game is over.
    """
    if board.status.is_terminal:
        raise NothingToUndo(f"Cannot undo a finished game ({board.status})")
    retract_move(board)
    return board


def completes_line(board: Board, cell: int, mark: str) -> bool:
    """Whether putting ``mark`` on the empty ``cell`` would make three in a row."""
    slot = board.slot_of(mark)
    cells = board.cells
    for line in LINES_THROUGH[cell]:
        if all(cells[i] == slot for i in line if i != cell):
            return True
    return False


def play_moves(moves, marks: Tuple[str, str] = DEFAULT_MARKS) -> Iterator[Board]:
    """Apply ``moves`` to a new board, yielding the board after each move."""
    board = new_game(marks)
    for cell in moves:
        apply_move(board, cell)
        yield board
