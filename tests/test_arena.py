import random

from tictactoe_agents import HeuristicAgent, MinMaxAgent, RandomAgent
from tictactoe_arena import get_leaderboard, play_game, print_leaderboard, run_match


def test_play_game_assigns_marks_and_finishes():
    first = RandomAgent("?", random.Random(1))
    second = RandomAgent("?", random.Random(2))
    board = play_game(first, second, marks=("A", "B"))
    assert (first.mark, second.mark) == ("A", "B")
    assert board.status.is_terminal
    assert board.mark_at(board.move_history[0]) == "A"


def test_run_match_counts_and_updates_stats():
    agent1 = RandomAgent("X", random.Random(3))
    agent2 = HeuristicAgent("O", random.Random(4))
    stats = run_match(agent1, agent2, num_games=30)
    assert stats['games'] == 30
    assert stats['agent1_wins'] + stats['agent2_wins'] + stats['draws'] == 30
    assert agent1.games_played == agent2.games_played == 30
    assert agent1.wins == agent2.losses == stats['agent1_wins']
    assert agent1.draws == agent2.draws == stats['draws']


def test_run_match_swaps_who_starts():
    agent1 = MinMaxAgent("X")
    agent2 = MinMaxAgent("O")
    stats = run_match(agent1, agent2, num_games=2)
    assert stats['draws'] == 2
    # The last game was started by agent2
    assert agent2.mark == "X"


def test_run_match_without_swapping():
    agent1 = RandomAgent("X", random.Random(5))
    agent2 = RandomAgent("O", random.Random(6))
    run_match(agent1, agent2, num_games=4, swap_sides=False)
    assert agent1.mark == "X"


def test_leaderboard_orders_by_wins(capsys):
    random_agent = RandomAgent("X", random.Random(7))
    minimax = MinMaxAgent("O")
    run_match(random_agent, minimax, num_games=10)
    assert get_leaderboard([random_agent, minimax])[0] is minimax
    print_leaderboard([random_agent, minimax])
    out = capsys.readouterr().out
    assert "LEADERBOARD" in out
    assert "MinMax Alpha-Beta" in out
