"""
Tic Tac Toe AI Agents
Random, heuristic, minimax (alpha-beta) and learned value-table players
"""

import logging
import random
from abc import ABC, abstractmethod
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from tictactoe_game import (
    CENTER,
    CORNERS,
    Board,
    NoLegalMoves,
    apply_move,
    completes_line,
    legal_moves,
    retract_move,
)

logger = logging.getLogger(__name__)

# board key -> cell index -> value estimate
ValueTable = Dict[str, Dict[int, float]]


class StrategyKind(Enum):
    """Available AI strategies."""
    RANDOM = "random"
    HEURISTIC = "heuristic"
    MINIMAX = "minimax"
    LEARNED = "learned"

    def __str__(self):
        return self.value

    @classmethod
    def from_level(cls, level: str) -> "StrategyKind":
        """
        Map a difficulty level or strategy name to a strategy.

        Accepts "easy", "medium", "hard", "train" as well as the enum values.
        """
        levels = {
            "easy": cls.RANDOM,
            "medium": cls.HEURISTIC,
            "hard": cls.MINIMAX,
            "train": cls.LEARNED,
        }
        name = level.strip().lower()
        if name in levels:
            return levels[name]
        return cls(name)


# ==================== BASE AGENT CLASS ====================

class BaseAgent(ABC):
    """Abstract base class for all agents."""

    def __init__(self, name: str, mark: str, rng: Optional[random.Random] = None):
        """
        Initialize agent.

        Args:
            name: Agent name
            mark: Mark symbol this agent places
            rng: Random source; a fresh unseeded one when omitted
        """
        self.name = name
        self.mark = mark
        self.rng = rng if rng is not None else random.Random()
        self.games_played = 0
        self.wins = 0
        self.losses = 0
        self.draws = 0

    def choose_action(self, board: Board) -> int:
        """
        Choose a cell for ``self.mark`` on the given board.

        Raises:
            NoLegalMoves: The game is over or the board is full.
        """
        available = legal_moves(board)
        if board.status.is_terminal or not available:
            raise NoLegalMoves(f"{self.name} has no legal move ({board.status})")
        return self._choose(board, available)

    @abstractmethod
    def _choose(self, board: Board, available) -> int:
        """Pick one of ``available`` (never empty)."""

    def reset_stats(self):
        """Reset agent statistics."""
        self.games_played = 0
        self.wins = 0
        self.losses = 0
        self.draws = 0

    def update_stats(self, result: str):
        """
        Update agent statistics.

        Args:
            result: 'win', 'loss', or 'draw'
        """
        self.games_played += 1
        if result == 'win':
            self.wins += 1
        elif result == 'loss':
            self.losses += 1
        elif result == 'draw':
            self.draws += 1

    def get_win_rate(self) -> float:
        if self.games_played == 0:
            return 0.0
        return self.wins / self.games_played

    def get_stats(self) -> dict:
        return {
            'name': self.name,
            'games_played': self.games_played,
            'wins': self.wins,
            'losses': self.losses,
            'draws': self.draws,
            'win_rate': self.get_win_rate()
        }

    def __str__(self):
        return f"{self.name} ({self.mark})"


# ==================== AI AGENTS ====================

class RandomAgent(BaseAgent):
    """Agent that chooses random valid moves."""

    def __init__(self, mark: str, rng: Optional[random.Random] = None):
        super().__init__("Random", mark, rng)

    def _choose(self, board: Board, available) -> int:
        return self.rng.choice(available)


class HeuristicAgent(BaseAgent):
    """
    One-ply rule player.

    Priority order:
    1. Win if possible
    2. Block the opponent's immediate win
    3. Take the center
    4. Take a random free corner
    5. Any random free cell
    """

    def __init__(self, mark: str, rng: Optional[random.Random] = None):
        super().__init__("Heuristic", mark, rng)

    def _choose(self, board: Board, available) -> int:
        for cell in available:
            if completes_line(board, cell, self.mark):
                return cell

        opponent = board.opponent_of(self.mark)
        for cell in available:
            if completes_line(board, cell, opponent):
                return cell

        if CENTER in available:
            return CENTER

        corners = [c for c in CORNERS if c in available]
        if corners:
            return self.rng.choice(corners)
        return self.rng.choice(available)


def score_position(board: Board, depth: int, maximizer_mark: str) -> Optional[int]:
    """
    Depth-weighted score of a finished position.

    Returns ``10 - depth`` when ``maximizer_mark`` won, ``depth - 10`` when
    the other side won, 0 for a draw and None while the game is running.
    """
    status = board.status
    if status.is_won:
        return 10 - depth if status.mark == maximizer_mark else depth - 10
    if status.is_draw:
        return 0
    return None


class MinMaxAgent(BaseAgent):
    """Minimax agent with alpha-beta pruning, searching to the end of the game."""

    def __init__(self, mark: str, rng: Optional[random.Random] = None):
        super().__init__("MinMax Alpha-Beta", mark, rng)
        # Positions visited by the last search
        self.moves_evaluated = 0

    def _choose(self, board: Board, available) -> int:
        self.moves_evaluated = 0
        work = board.copy()
        best_action = available[0]
        best_score = -float('inf')

        for action in available:
            apply_move(work, action)
            score = self._minimax(work, depth=0, alpha=-float('inf'), beta=float('inf'))
            retract_move(work)
            if score > best_score:
                best_score = score
                best_action = action

        logger.debug("%s evaluated %d positions, best move %d (score %s)",
                     self.name, self.moves_evaluated, best_action, best_score)
        return best_action

    def evaluate(self, board: Board) -> float:
        """Minimax value of ``board`` from this agent's point of view."""
        self.moves_evaluated = 0
        return self._minimax(board.copy(), 0, -float('inf'), float('inf'))

    def _minimax(self, board: Board, depth: int, alpha: float, beta: float) -> float:
        """Minimax algorithm with alpha-beta pruning over apply/retract pairs."""
        self.moves_evaluated += 1
        score = score_position(board, depth, self.mark)
        if score is not None:
            return score

        if board.current_mark == self.mark:
            max_score = -float('inf')
            for action in legal_moves(board):
                apply_move(board, action)
                score = self._minimax(board, depth + 1, alpha, beta)
                retract_move(board)
                max_score = max(max_score, score)
                alpha = max(alpha, score)
                if beta <= alpha:
                    break  # Beta cutoff
            return max_score
        else:
            min_score = float('inf')
            for action in legal_moves(board):
                apply_move(board, action)
                score = self._minimax(board, depth + 1, alpha, beta)
                retract_move(board)
                min_score = min(min_score, score)
                beta = min(beta, score)
                if beta <= alpha:
                    break  # Alpha cutoff
            return min_score


def snapshot_value_table(value_table: Optional[Mapping[str, Mapping[int, float]]]) -> Mapping[str, Mapping[int, float]]:
    """Read-only copy of a value table for play-time lookups."""
    if not value_table:
        return MappingProxyType({})
    return MappingProxyType({
        key: MappingProxyType(dict(actions)) for key, actions in value_table.items()
    })


def best_known_action(actions: Optional[Mapping[int, float]], board: Board) -> Optional[int]:
    """
    Highest-valued entry of ``actions`` whose cell is still empty.

    Ties go to the lowest cell index. None when nothing usable is known.
    """
    if not actions:
        return None
    best_action = None
    best_value = -float('inf')
    for cell in sorted(actions):
        if not board.is_empty(cell):
            continue
        value = actions[cell]
        if value > best_value:
            best_value = value
            best_action = cell
    return best_action


class LearnedAgent(BaseAgent):
    """Greedy player over a trained value table, heuristic when the position is unknown."""

    def __init__(self, mark: str, value_table: Optional[Mapping[str, Mapping[int, float]]] = None,
                 rng: Optional[random.Random] = None):
        super().__init__("Learned", mark, rng)
        self.value_table = snapshot_value_table(value_table)
        self._fallback = HeuristicAgent(mark, self.rng)

    def _choose(self, board: Board, available) -> int:
        action = best_known_action(self.value_table.get(board.key()), board)
        if action is not None:
            return action
        self._fallback.mark = self.mark
        return self._fallback._choose(board, available)


# ==================== HELPER FUNCTIONS ====================

AGENT_CLASSES = {
    StrategyKind.RANDOM: RandomAgent,
    StrategyKind.HEURISTIC: HeuristicAgent,
    StrategyKind.MINIMAX: MinMaxAgent,
    StrategyKind.LEARNED: LearnedAgent,
}


def create_agent(kind: StrategyKind, mark: str,
                 value_table: Optional[Mapping[str, Mapping[int, float]]] = None,
                 rng: Optional[random.Random] = None) -> BaseAgent:
    """Build the agent for ``kind`` playing ``mark``."""
    if kind is StrategyKind.LEARNED:
        return LearnedAgent(mark, value_table, rng)
    return AGENT_CLASSES[kind](mark, rng)


def choose_ai_move(board: Board, kind: StrategyKind, mark: str,
                   value_table: Optional[Mapping[str, Mapping[int, float]]] = None,
                   rng: Optional[random.Random] = None) -> int:
    """
    Pick a cell for ``mark`` using the given strategy.

    Args:
        board: Current position (not modified)
        kind: Strategy to use
        mark: Mark the AI plays
        value_table: Learned values, only used by StrategyKind.LEARNED
        rng: Random source for the stochastic strategies

    Returns:
        A legal cell index.

    Raises:
        NoLegalMoves: The game is over or the board is full.
    """
    return create_agent(kind, mark, value_table, rng).choose_action(board)
