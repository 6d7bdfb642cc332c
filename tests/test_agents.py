import random

import pytest

from tictactoe_agents import (
    HeuristicAgent,
    LearnedAgent,
    MinMaxAgent,
    RandomAgent,
    StrategyKind,
    choose_ai_move,
    create_agent,
    score_position,
)
from tictactoe_arena import play_game
from tictactoe_game import CORNERS, NoLegalMoves, apply_move, legal_moves, new_game


def board_from(moves, marks=("X", "O")):
    board = new_game(marks)
    for cell in moves:
        apply_move(board, cell)
    return board


# ---------- Heuristic ----------

def test_heuristic_takes_immediate_win():
    # X on 0, 1; O on 3, 4; X to move wins at 2
    board = board_from([0, 3, 1, 4])
    assert HeuristicAgent("X").choose_action(board) == 2


def test_heuristic_prefers_win_over_block():
    # O to move: O can win at 5, X threatens 2
    board = board_from([0, 3, 1, 4, 8])
    assert HeuristicAgent("O").choose_action(board) == 5


def test_heuristic_blocks_opponent_win():
    # X on 0, 1; O on 4; O to move must block 2
    board = board_from([0, 4, 1])
    assert HeuristicAgent("O").choose_action(board) == 2


def test_heuristic_takes_lowest_winning_cell():
    # X on 0, 4, 6 threatens 8 (diagonal), 3 (column); lowest first
    board = board_from([0, 1, 4, 2, 6, 5])
    assert HeuristicAgent("X").choose_action(board) == 3


def test_heuristic_takes_center_then_corners():
    assert HeuristicAgent("X").choose_action(new_game()) == 4
    board = board_from([4])
    rng = random.Random(3)
    picks = {HeuristicAgent("O", rng).choose_action(board) for _ in range(100)}
    assert picks == set(CORNERS)


def test_heuristic_finds_win_on_an_edge():
    board = board_from([4, 0, 8, 2, 6, 3])
    # X on 4, 8, 6; O on 0, 2, 3 -> X threatens 7 (6-7-8), so it wins there
    assert HeuristicAgent("X").choose_action(board) == 7


def test_heuristic_has_no_side_effects():
    board = board_from([0, 4, 1])
    before = board.copy()
    HeuristicAgent("O").choose_action(board)
    assert board == before


# ---------- Minimax ----------

def test_score_position():
    won = board_from([0, 3, 1, 4, 2])
    assert score_position(won, 2, "X") == 8
    assert score_position(won, 2, "O") == -8
    assert score_position(board_from([0, 1, 2, 4, 3, 5, 7, 6, 8]), 3, "X") == 0
    assert score_position(new_game(), 0, "X") is None


def test_minimax_takes_win_and_blocks():
    assert MinMaxAgent("X").choose_action(board_from([0, 3, 1, 4])) == 2
    assert MinMaxAgent("O").choose_action(board_from([0, 4, 1])) == 2


def test_minimax_prefers_faster_win():
    # X can win at 2 now; other moves also win later
    board = board_from([0, 3, 1, 4, 8, 7])
    assert MinMaxAgent("X").choose_action(board) == 2


def test_minimax_empty_board_is_a_draw():
    agent = MinMaxAgent("X")
    assert agent.evaluate(new_game()) == 0
    assert agent.moves_evaluated > 0


def test_minimax_leaves_board_untouched():
    board = board_from([4])
    before = board.copy()
    MinMaxAgent("O").choose_action(board)
    assert board == before


def test_minimax_first_move_is_deterministic():
    assert MinMaxAgent("X").choose_action(new_game()) == MinMaxAgent("X").choose_action(new_game())


@pytest.mark.parametrize("opponent_cls", [RandomAgent, HeuristicAgent, MinMaxAgent])
def test_minimax_never_loses(opponent_cls):
    rng = random.Random(2024)
    # Minimax vs minimax is deterministic, a couple of games cover both sides
    trials = {RandomAgent: 100, HeuristicAgent: 20, MinMaxAgent: 2}[opponent_cls]
    for game_no in range(trials):
        minimax = MinMaxAgent("X")
        opponent = opponent_cls("O", rng)
        if game_no % 2 == 0:
            board = play_game(minimax, opponent)
        else:
            board = play_game(opponent, minimax)
        assert board.status.is_terminal
        assert board.status.is_draw or board.status.mark == minimax.mark


def test_minimax_self_play_draws():
    board = play_game(MinMaxAgent("X"), MinMaxAgent("O"))
    assert board.status.is_draw


# ---------- Learned ----------

def test_learned_picks_highest_empty_action():
    board = board_from([0])
    table = {board.key(): {0: 5.0, 4: 0.2, 8: 0.7, 2: -0.1}}
    assert LearnedAgent("O", table).choose_action(board) == 8


def test_learned_ties_go_to_lowest_cell():
    board = new_game()
    table = {board.key(): {6: 0.5, 2: 0.5, 7: 0.1}}
    assert LearnedAgent("X", table).choose_action(board) == 2


def test_learned_falls_back_to_heuristic():
    board = board_from([0, 4, 1])
    # Unknown position: heuristic blocks at 2
    assert LearnedAgent("O", {}).choose_action(board) == 2
    # Known position but only occupied cells recorded
    assert LearnedAgent("O", {board.key(): {0: 1.0, 4: 1.0}}).choose_action(board) == 2


def test_learned_agent_keeps_read_only_snapshot():
    board = new_game()
    table = {board.key(): {3: 1.0}}
    agent = LearnedAgent("X", table)
    table[board.key()][3] = -1.0
    table[board.key()][5] = 2.0
    assert agent.choose_action(board) == 3
    with pytest.raises(TypeError):
        agent.value_table[board.key()][3] = 0.0


# ---------- Dispatch ----------

def test_choose_ai_move_dispatches_every_kind():
    board = board_from([0, 3, 1, 4])
    for kind in StrategyKind:
        move = choose_ai_move(board, kind, "X", rng=random.Random(0))
        assert move in legal_moves(board)
    assert choose_ai_move(board, StrategyKind.MINIMAX, "X") == 2
    assert choose_ai_move(board, StrategyKind.HEURISTIC, "X") == 2


@pytest.mark.parametrize("kind", list(StrategyKind))
def test_no_legal_moves_on_finished_board(kind):
    board = board_from([0, 3, 1, 4, 2])
    with pytest.raises(NoLegalMoves):
        choose_ai_move(board, kind, "O")


def test_strategy_from_level():
    assert StrategyKind.from_level("easy") is StrategyKind.RANDOM
    assert StrategyKind.from_level("Medium") is StrategyKind.HEURISTIC
    assert StrategyKind.from_level("hard") is StrategyKind.MINIMAX
    assert StrategyKind.from_level("train") is StrategyKind.LEARNED
    assert StrategyKind.from_level("minimax") is StrategyKind.MINIMAX
    with pytest.raises(ValueError):
        StrategyKind.from_level("impossible")


def test_create_agent_stats():
    agent = create_agent(StrategyKind.RANDOM, "X")
    agent.update_stats('win')
    agent.update_stats('draw')
    assert agent.get_stats()['games_played'] == 2
    assert agent.get_win_rate() == 0.5
    agent.reset_stats()
    assert agent.games_played == 0
