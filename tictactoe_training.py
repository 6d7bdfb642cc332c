"""
Self-play training for the learned Tic Tac Toe agent.

The learner always plays the second mark against a uniformly random
first player. After each game the terminal reward is propagated backwards
through the learner's (board key, action) pairs with a geometric discount:

    value = (1 - alpha) * value + alpha * reward;  reward *= gamma

Training runs in batches; ``train_async`` hands control back to the event
loop between batches and both entry points honour a stop event there.
"""

import asyncio
import logging
import random
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from tictactoe_agents import ValueTable, best_known_action
from tictactoe_game import DEFAULT_MARKS, Board, apply_move, legal_moves, new_game
from tictactoe_settings import ConfigurationError

logger = logging.getLogger(__name__)

WIN_REWARD = 1.0
LOSS_REWARD = -1.0
DRAW_REWARD = 0.5


@dataclass(frozen=True)
class TrainingConfig:
    """
    Hyperparameters for one training run.

    Attributes:
        episodes: Number of self-play games (0 runs nothing)
        alpha: Learning rate, in (0, 1]
        gamma: Discount applied per earlier step, in [0, 1]
        epsilon: Exploration probability, in [0, 1]
        report_every: Progress cadence in episodes; max(1, episodes // 100) when None
        yield_every: Episodes per batch between yield points
        marks: Mark symbols (first = random opponent, second = learner)
        seed: Seed for the random source when none is injected
    """
    episodes: int = 1000
    alpha: float = 0.2
    gamma: float = 0.9
    epsilon: float = 0.2
    report_every: Optional[int] = None
    yield_every: int = 50
    marks: Tuple[str, str] = DEFAULT_MARKS
    seed: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "marks", tuple(self.marks))
        self.validate()

    def validate(self):
        """Raise ConfigurationError for any out-of-range setting."""
        if not _is_int(self.episodes) or self.episodes < 0:
            raise ConfigurationError(f"episodes must be a non-negative integer, got {self.episodes!r}")
        if not _is_number(self.alpha) or not 0.0 < self.alpha <= 1.0:
            raise ConfigurationError(f"alpha must be in (0, 1], got {self.alpha!r}")
        for name in ("gamma", "epsilon"):
            value = getattr(self, name)
            if not _is_number(value) or not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must be in [0, 1], got {value!r}")
        if self.report_every is not None and (not _is_int(self.report_every) or self.report_every < 1):
            raise ConfigurationError(f"report_every must be a positive integer, got {self.report_every!r}")
        if not _is_int(self.yield_every) or self.yield_every < 1:
            raise ConfigurationError(f"yield_every must be a positive integer, got {self.yield_every!r}")
        if (len(self.marks) != 2 or self.marks[0] == self.marks[1]
                or not all(isinstance(m, str) and m for m in self.marks)):
            raise ConfigurationError(f"marks must be two distinct symbols, got {self.marks!r}")

    @property
    def progress_interval(self) -> int:
        if self.report_every is not None:
            return self.report_every
        return max(1, self.episodes // 100)

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any], **overrides) -> "TrainingConfig":
        """Build a config from load_settings() output; keyword overrides win."""
        params = {
            "episodes": settings.get("training_episodes", cls.episodes),
            "alpha": settings.get("learning_rate", cls.alpha),
            "gamma": settings.get("gamma", cls.gamma),
            "epsilon": settings.get("epsilon", cls.epsilon),
            "yield_every": settings.get("yield_every", cls.yield_every),
            "marks": tuple(settings.get("marks", DEFAULT_MARKS)),
        }
        params.update(overrides)
        return cls(**params)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class TrainingStats:
    """Cumulative outcomes from the learner's point of view."""
    wins: int = 0
    draws: int = 0
    losses: int = 0

    @property
    def total(self) -> int:
        return self.wins + self.draws + self.losses

    def record(self, result: str):
        """Count one game; ``result`` is 'win', 'draw' or 'loss'."""
        if result == 'win':
            self.wins += 1
        elif result == 'draw':
            self.draws += 1
        elif result == 'loss':
            self.losses += 1
        else:
            raise ValueError(f"Unknown result {result!r}")

    def rates(self) -> Tuple[float, float, float]:
        """(win, draw, loss) fractions; zeros before any game."""
        if self.total == 0:
            return 0.0, 0.0, 0.0
        return self.wins / self.total, self.draws / self.total, self.losses / self.total

    def copy(self) -> "TrainingStats":
        return TrainingStats(self.wins, self.draws, self.losses)

    def as_dict(self) -> Dict[str, int]:
        return {"win": self.wins, "draw": self.draws, "loss": self.losses}


@dataclass(frozen=True)
class ProgressSample:
    episode: int
    stats: TrainingStats


@dataclass
class TrainingResult:
    value_table: ValueTable
    stats: TrainingStats
    history: List[ProgressSample] = field(default_factory=list)
    cancelled: bool = False

    @property
    def episodes(self) -> int:
        return self.stats.total


ProgressCallback = Callable[[int, TrainingStats], None]


class Trainer:
    """
    Runs self-play episodes and owns the value table while doing so.

    Usage:
        trainer = Trainer(config)
        while trainer.run_batch():
            ...  # yield point
        result = trainer.result()
    """

    def __init__(self, config: TrainingConfig,
                 value_table: Optional[Mapping[str, Mapping[int, float]]] = None,
                 rng: Optional[random.Random] = None,
                 on_progress: Optional[ProgressCallback] = None,
                 stop_event: Optional[threading.Event] = None):
        config.validate()
        self.config = config
        self.rng = rng if rng is not None else random.Random(config.seed)
        self.on_progress = on_progress
        self.stop_event = stop_event
        # Continue from a previous table without aliasing it
        self.value_table: ValueTable = {
            key: dict(actions) for key, actions in (value_table or {}).items()
        }
        self.stats = TrainingStats()
        self.history: List[ProgressSample] = []
        self.episodes_run = 0
        self.cancelled = False

    @property
    def done(self) -> bool:
        return self.cancelled or self.episodes_run >= self.config.episodes

    def _stop_requested(self) -> bool:
        if self.stop_event is not None and self.stop_event.is_set():
            if not self.cancelled:
                logger.info("Training cancelled after %d/%d episodes",
                            self.episodes_run, self.config.episodes)
            self.cancelled = True
        return self.cancelled

    def run_batch(self) -> bool:
        """
        Run up to ``yield_every`` episodes.

        Returns:
            True while more episodes remain and no stop was requested.
        """
        if self._stop_requested():
            return False
        end = min(self.config.episodes, self.episodes_run + self.config.yield_every)
        while self.episodes_run < end:
            self.run_episode()
        return not self.done and not self._stop_requested()

    def run_episode(self) -> str:
        """Play and learn from one game. Returns 'win', 'draw' or 'loss'."""
        board = new_game(self.config.marks)
        learner = board.marks[1]
        trajectory: List[Tuple[str, int]] = []

        while not board.status.is_terminal:
            moves = legal_moves(board)
            if board.turn_index % 2 == 1:
                key = board.key()
                action = self._select_action(key, board, moves)
                trajectory.append((key, action))
            else:
                action = self.rng.choice(moves)
            apply_move(board, action)

        if board.status.is_draw:
            result, reward = 'draw', DRAW_REWARD
        elif board.status.mark == learner:
            result, reward = 'win', WIN_REWARD
        else:
            result, reward = 'loss', LOSS_REWARD

        alpha, gamma = self.config.alpha, self.config.gamma
        for key, action in reversed(trajectory):
            actions = self.value_table.setdefault(key, {})
            actions[action] = (1 - alpha) * actions.get(action, 0.0) + alpha * reward
            reward *= gamma

        self.episodes_run += 1
        self.stats.record(result)
        if self.episodes_run % self.config.progress_interval == 0:
            self._report()
        return result

    def _select_action(self, key: str, board: Board, moves: List[int]) -> int:
        """Epsilon-greedy over the known values for ``key``."""
        if self.rng.random() < self.config.epsilon:
            return self.rng.choice(moves)
        action = best_known_action(self.value_table.get(key), board)
        if action is None:
            return self.rng.choice(moves)
        return action

    def _report(self):
        snapshot = self.stats.copy()
        self.history.append(ProgressSample(self.episodes_run, snapshot))
        logger.debug("Episode %d/%d: win=%d draw=%d loss=%d",
                     self.episodes_run, self.config.episodes,
                     snapshot.wins, snapshot.draws, snapshot.losses)
        if self.on_progress is not None:
            self.on_progress(self.episodes_run, snapshot)

    def result(self) -> TrainingResult:
        """Hand off the value table and the statistics gathered so far."""
        return TrainingResult(
            value_table=self.value_table,
            stats=self.stats.copy(),
            history=list(self.history),
            cancelled=self.cancelled,
        )


def train(config: Optional[TrainingConfig] = None,
          value_table: Optional[Mapping[str, Mapping[int, float]]] = None,
          rng: Optional[random.Random] = None,
          on_progress: Optional[ProgressCallback] = None,
          stop_event: Optional[threading.Event] = None) -> TrainingResult:
    """
    Train a value table by self-play against a random opponent.

    Args:
        config: Hyperparameters; TrainingConfig() defaults when omitted
        value_table: Table to continue from (copied)
        rng: Random source; seeded from config.seed when omitted
        on_progress: Called with (episode, cumulative stats) every
            config.progress_interval episodes
        stop_event: Checked between batches; setting it ends training early

    Returns:
        TrainingResult with the learned table and win/draw/loss counts.
    """
    config = config if config is not None else TrainingConfig()
    trainer = Trainer(config, value_table, rng, on_progress, stop_event)
    logger.info("Training %d episodes (alpha=%s gamma=%s epsilon=%s)",
                config.episodes, config.alpha, config.gamma, config.epsilon)
    while trainer.run_batch():
        pass
    result = trainer.result()
    logger.info("Training finished: %s over %d episodes, %d states learned",
                result.stats.as_dict(), result.episodes, len(result.value_table))
    return result


async def train_async(config: Optional[TrainingConfig] = None,
                      value_table: Optional[Mapping[str, Mapping[int, float]]] = None,
                      rng: Optional[random.Random] = None,
                      on_progress: Optional[ProgressCallback] = None,
                      stop_event: Optional[threading.Event] = None) -> TrainingResult:
    """Same as train(), but awaits between batches so other tasks can run."""
    config = config if config is not None else TrainingConfig()
    trainer = Trainer(config, value_table, rng, on_progress, stop_event)
    logger.info("Training %d episodes in the background", config.episodes)
    while trainer.run_batch():
        await asyncio.sleep(0)
    result = trainer.result()
    logger.info("Training finished: %s over %d episodes", result.stats.as_dict(), result.episodes)
    return result
