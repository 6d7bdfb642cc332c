"""
Game sessions: one context object per game window.

A session ties the rules engine to the players (human or AI), turns rule
violations into ignored input, offers hints, and records finished games so
they can be replayed move by move.
"""

import json
import logging
import os
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterator, List, Mapping, Optional, Tuple

from tictactoe_agents import HeuristicAgent, MinMaxAgent, RandomAgent, StrategyKind, create_agent
from tictactoe_game import (
    DEFAULT_MARKS,
    Board,
    InvalidMove,
    NothingToUndo,
    apply_move,
    new_game,
    play_moves,
    undo_move,
)
from tictactoe_settings import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 10


class GameMode(Enum):
    """Who sits on the second seat."""
    PVP = "pvp"    # two humans
    PVC = "pvc"    # human vs computer
    PVQ = "pvq"    # human vs trained agent

    @property
    def has_ai(self) -> bool:
        return self is not GameMode.PVP


# ==================== HISTORY ====================

@dataclass
class GameRecord:
    """A finished game, enough to replay it move by move."""
    mode: str
    players: Tuple[str, str]
    marks: Tuple[str, str]
    result: str
    moves: List[int]
    date: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "players": list(self.players),
            "icons": list(self.marks),
            "result": self.result,
            "date": self.date,
            "moves": list(self.moves),
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "GameRecord":
        return cls(
            mode=data["mode"],
            players=tuple(data["players"]),
            marks=tuple(data["icons"]),
            result=data["result"],
            moves=[int(m) for m in data["moves"]],
            date=data["date"],
        )


class GameHistory:
    """
    Most recent finished games, newest first.

    Kept in memory, and written to ``path`` as a JSON array after every
    change when a path is given.
    """

    def __init__(self, path: Optional[str] = None, limit: int = DEFAULT_HISTORY_LIMIT):
        if limit < 1:
            raise ValueError(f"History limit must be positive, got {limit}")
        self.path = path
        self.limit = limit
        self.records: List[GameRecord] = self._load() if path else []

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any]) -> "GameHistory":
        """Build the history from load_settings() output."""
        limit = settings.get("history_limit", DEFAULT_HISTORY_LIMIT)
        if not isinstance(limit, int) or isinstance(limit, bool) or limit < 1:
            raise ConfigurationError(f"history_limit must be a positive integer, got {limit!r}")
        return cls(settings.get("history_path") or None, limit)

    def _load(self) -> List[GameRecord]:
        """
        Read the saved records.

        Raises:
            ConfigurationError: The file exists but does not hold a list of
                game records.
        """
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.debug("No history file at %s, starting empty", self.path)
            return []
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {self.path}: {e}") from e

        if not isinstance(data, list):
            raise ConfigurationError(f"{self.path} must contain a JSON array")
        try:
            return [GameRecord.from_dict(item) for item in data][:self.limit]
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Malformed game record in {self.path}: {e!r}") from e

    def save(self):
        if not self.path:
            return
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump([r.to_dict() for r in self.records], f, ensure_ascii=False, indent=2)

    def add(self, record: GameRecord):
        self.records.insert(0, record)
        del self.records[self.limit:]
        self.save()

    def clear(self):
        self.records = []
        self.save()

    def __len__(self):
        return len(self.records)

    def __iter__(self):
        return iter(self.records)

    def __getitem__(self, index) -> GameRecord:
        return self.records[index]


def iter_replay(record: GameRecord) -> Iterator[Board]:
    """
    Boards after each move of ``record``, as independent copies.

    Raises:
        InvalidMove: The record contains a move that cannot be played.
    """
    for board in play_moves(record.moves, record.marks):
        yield board.copy()


def replay(record: GameRecord) -> Board:
    """Final board of a recorded game."""
    board = new_game(record.marks)
    for cell in record.moves:
        apply_move(board, cell)
    return board


# ==================== SESSION ====================

@dataclass(frozen=True)
class Hint:
    cell: int
    explanation: str


class GameSession:
    """
    Orchestrates one game between two seats.

    The first seat is always human. In AI modes the second seat is played
    by the selected strategy; ``GameMode.PVQ`` always uses the learned one.
    """

    def __init__(self, mode: GameMode = GameMode.PVP,
                 player1: str = "Player 1",
                 player2: Optional[str] = None,
                 marks: Tuple[str, str] = DEFAULT_MARKS,
                 strategy: StrategyKind = StrategyKind.HEURISTIC,
                 value_table: Optional[Mapping[str, Mapping[int, float]]] = None,
                 history: Optional[GameHistory] = None,
                 rng: Optional[random.Random] = None):
        self.mode = mode
        if player2 is None:
            player2 = "Computer" if mode.has_ai else "Player 2"
        self.players: Tuple[str, str] = (player1, player2)
        self.marks: Tuple[str, str] = tuple(marks)
        self.strategy = StrategyKind.LEARNED if mode is GameMode.PVQ else strategy
        self.history = history
        self.rng = rng if rng is not None else random.Random()
        self.ai = create_agent(self.strategy, self.marks[1], value_table, self.rng) if mode.has_ai else None
        self.board: Board = new_game(self.marks)
        self.last_record: Optional[GameRecord] = None

    # ---------- State ----------

    @property
    def current_player(self) -> str:
        return self.players[self.board.turn_index % 2]

    @property
    def is_ai_turn(self) -> bool:
        return self.ai is not None and not self.board.is_over and self.board.turn_index % 2 == 1

    @property
    def winner_name(self) -> Optional[str]:
        status = self.board.status
        if not status.is_won:
            return None
        return self.players[self.marks.index(status.mark)]

    def outcome_label(self) -> Optional[str]:
        """Result text for history: '<name> wins', 'Draw', or None while running."""
        if self.board.status.is_won:
            return f"{self.winner_name} wins"
        if self.board.status.is_draw:
            return "Draw"
        return None

    # ---------- Actions ----------

    def reset(self):
        """Start over with the same players and strategy."""
        self.board = new_game(self.marks)
        self.last_record = None

    def play(self, cell: int) -> bool:
        """
        Human move on ``cell``.

        Returns:
            False when the move was ignored (AI to move, bad cell, game over).
        """
        if self.is_ai_turn:
            logger.debug("Ignoring click on %s: waiting for the computer", cell)
            return False
        return self._apply(cell)

    def ai_move(self) -> Optional[int]:
        """Let the AI play if it is its turn. Returns the cell played."""
        if not self.is_ai_turn:
            return None
        cell = self.ai.choose_action(self.board)
        self._apply(cell)
        return cell

    def play_turn(self, cell: int) -> bool:
        """Human move followed by the AI reply, if any."""
        if not self.play(cell):
            return False
        self.ai_move()
        return True

    def undo(self) -> bool:
        """
        Take back the last move, or in AI modes everything back to the
        human's previous turn. Refused once the game is over.
        """
        try:
            undo_move(self.board)
            if self.ai is not None and self.board.turn_index % 2 == 1:
                undo_move(self.board)
        except NothingToUndo as e:
            logger.debug("Undo ignored: %s", e)
            return False
        return True

    def hint(self) -> Optional[Hint]:
        """Suggest a move for whoever is to play."""
        if self.board.is_over:
            return None
        mark = self.board.current_mark
        if self.strategy is StrategyKind.MINIMAX:
            cell = MinMaxAgent(mark, self.rng).choose_action(self.board)
            return Hint(cell, f"Best move: cell {cell + 1}.")
        if self.strategy is StrategyKind.HEURISTIC:
            cell = HeuristicAgent(mark, self.rng).choose_action(self.board)
            return Hint(cell, f"Try cell {cell + 1} to block or win.")
        cell = RandomAgent(mark, self.rng).choose_action(self.board)
        return Hint(cell, f"Try cell {cell + 1}.")

    # ---------- Internals ----------

    def _apply(self, cell) -> bool:
        try:
            apply_move(self.board, cell)
        except InvalidMove as e:
            logger.debug("Move ignored: %s", e)
            return False
        if self.board.is_over:
            self._finish()
        return True

    def _finish(self):
        self.last_record = GameRecord(
            mode=self.mode.value,
            players=self.players,
            marks=self.marks,
            result=self.outcome_label(),
            moves=list(self.board.move_history),
        )
        logger.info("Game over (%s): %s after %d moves",
                    self.mode.value, self.last_record.result, self.board.turn_index)
        if self.history is not None:
            self.history.add(self.last_record)
