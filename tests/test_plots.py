import base64
import math

from tictactoe_plots import EMPTY_KEY, plot_training_progress, plot_value_heatmap, value_grid
from tictactoe_training import TrainingConfig, train

PNG_SIGNATURE = b"\x89PNG"


def test_training_progress_figure(tmp_path):
    result = train(TrainingConfig(episodes=60, report_every=10, seed=1))
    path = tmp_path / "plots" / "progress.png"
    encoded = plot_training_progress(result.history, save_path=str(path))
    assert base64.b64decode(encoded).startswith(PNG_SIGNATURE)
    assert path.read_bytes().startswith(PNG_SIGNATURE)


def test_training_progress_with_single_or_no_sample():
    one = train(TrainingConfig(episodes=5, report_every=5, seed=1))
    assert len(one.history) == 1
    assert plot_training_progress(one.history)
    assert plot_training_progress([])


def test_value_grid_masks_unknown_and_taken_cells():
    key = "100000000"
    grid = value_grid({key: {0: 9.0, 4: 0.25, 8: -0.5}}, key)
    assert grid.shape == (3, 3)
    assert math.isnan(grid[0, 0])
    assert grid[1, 1] == 0.25
    assert grid[2, 2] == -0.5
    assert math.isnan(grid[0, 1])


def test_value_heatmap_for_empty_board():
    table = {EMPTY_KEY: {4: 0.8, 0: 0.1}}
    encoded = plot_value_heatmap(table)
    assert base64.b64decode(encoded).startswith(PNG_SIGNATURE)
    assert plot_value_heatmap({}, "120000000")
