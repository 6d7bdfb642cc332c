"""
AI-vs-AI games, matches and a small benchmark.

    python tictactoe_arena.py [episodes]
"""

import logging
import sys
import time
from typing import Dict, List, Tuple

from tictactoe_agents import BaseAgent, HeuristicAgent, LearnedAgent, MinMaxAgent, RandomAgent
from tictactoe_game import DEFAULT_MARKS, Board, apply_move, new_game
from tictactoe_settings import load_settings, setup_logging
from tictactoe_training import TrainingConfig, train

logger = logging.getLogger(__name__)


def play_game(first: BaseAgent, second: BaseAgent, marks: Tuple[str, str] = DEFAULT_MARKS) -> Board:
    """
    Play one full game; ``first`` moves first with marks[0].

    Both agents are re-pointed at their mark for this game.
    """
    board = new_game(marks)
    first.mark, second.mark = marks
    while not board.status.is_terminal:
        agent = first if board.turn_index % 2 == 0 else second
        apply_move(board, agent.choose_action(board))
    return board


def _result_for(board: Board, agent: BaseAgent) -> str:
    status = board.status
    if status.is_draw:
        return 'draw'
    return 'win' if status.mark == agent.mark else 'loss'


def run_match(agent1: BaseAgent, agent2: BaseAgent, num_games: int = 10,
              swap_sides: bool = True, marks: Tuple[str, str] = DEFAULT_MARKS) -> Dict[str, int]:
    """
    Play ``num_games`` games between two agents.

    With ``swap_sides`` the agents alternate who moves first, starting with
    agent1. Each agent's win/loss/draw counters are updated.

    Returns:
        Dict with agent1_wins, agent2_wins, draws and games.
    """
    stats = {'agent1_wins': 0, 'agent2_wins': 0, 'draws': 0, 'games': 0}
    for game_no in range(num_games):
        if swap_sides and game_no % 2 == 1:
            board = play_game(agent2, agent1, marks)
        else:
            board = play_game(agent1, agent2, marks)

        result1 = _result_for(board, agent1)
        agent1.update_stats(result1)
        agent2.update_stats(_result_for(board, agent2))
        stats['games'] += 1
        if result1 == 'win':
            stats['agent1_wins'] += 1
        elif result1 == 'loss':
            stats['agent2_wins'] += 1
        else:
            stats['draws'] += 1

    logger.debug("%s vs %s: %s", agent1.name, agent2.name, stats)
    return stats


def get_leaderboard(agents: List[BaseAgent]) -> List[BaseAgent]:
    """Agents sorted by wins, then win rate."""
    return sorted(agents, key=lambda a: (a.wins, a.get_win_rate()), reverse=True)


def print_leaderboard(agents: List[BaseAgent]):
    """Print tournament leaderboard."""
    print(f"\n{'='*60}")
    print("LEADERBOARD")
    print(f"{'='*60}")
    print(f"{'Rank':<6} {'Agent':<25} {'Wins':<8} {'Losses':<8} {'Draws':<8} {'Win%':<8}")
    print(f"{'-'*60}")

    for rank, agent in enumerate(get_leaderboard(agents), 1):
        print(f"{rank:<6} {agent.name:<25} {agent.wins:<8} {agent.losses:<8} "
              f"{agent.draws:<8} {agent.get_win_rate() * 100:<8.1f}")

    print(f"{'='*60}\n")


# ==================== BENCHMARK (optional manual run) ====================

if __name__ == "__main__":
    setup_logging()
    settings = load_settings()
    overrides = {"episodes": int(sys.argv[1])} if len(sys.argv) > 1 else {}
    config = TrainingConfig.from_settings(settings, **overrides)

    t0 = time.perf_counter()
    result = train(config)
    print(f"Training ({config.episodes} episodes) elapsed: {time.perf_counter() - t0:.2f}s, "
          f"results {result.stats.as_dict()}")

    agents: List[BaseAgent] = [
        RandomAgent(config.marks[0]),
        HeuristicAgent(config.marks[0]),
        MinMaxAgent(config.marks[0]),
        LearnedAgent(config.marks[1], result.value_table),
    ]

    games_per_match = 20
    t1 = time.perf_counter()
    for i, agent1 in enumerate(agents):
        for agent2 in agents[i + 1:]:
            stats = run_match(agent1, agent2, games_per_match, marks=config.marks)
            print(f"{agent1.name} vs {agent2.name}: {stats['agent1_wins']}-{stats['agent2_wins']} "
                  f"({stats['draws']} draws)")
    print(f"Matches elapsed: {time.perf_counter() - t1:.2f}s")
    print_leaderboard(agents)
