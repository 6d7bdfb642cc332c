"""
Figures for training runs and learned value tables.
Every function returns the PNG as a base64 string so a UI can embed it,
and optionally writes it to disk.
"""

import base64
import io
import os
from typing import List, Mapping, Optional

import numpy as np
import matplotlib
matplotlib.use('Agg')  # Use non-interactive backend
import matplotlib.pyplot as plt
import seaborn as sns

from tictactoe_game import BOARD_CELLS

EMPTY_KEY = "0" * BOARD_CELLS


def fig_to_base64(fig, save_path: Optional[str] = None) -> str:
    buf = io.BytesIO()
    fig.savefig(buf, format="png", bbox_inches="tight", dpi=150, facecolor=fig.get_facecolor())
    if save_path:
        directory = os.path.dirname(save_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(save_path, "wb") as f:
            f.write(buf.getvalue())
    plt.close(fig)
    return base64.b64encode(buf.getvalue()).decode("ascii")


def plot_training_progress(history: List, save_path: Optional[str] = None) -> str:
    """
    Win / draw / loss rates at each progress sample of a training run.

    Args:
        history: ``TrainingResult.history`` (ProgressSample items)
        save_path: Optional PNG path

    Returns:
        The figure as a base64 PNG.
    """
    episodes = np.array([s.episode for s in history], dtype=int)
    rates = np.array([s.stats.rates() for s in history], dtype=float).reshape(-1, 3)

    fig, ax = plt.subplots(1, 1, figsize=(6, 3.6))
    colors = {"Win": "#00b8a9", "Draw": "#f6c90e", "Loss": "#e84a8a"}
    for i, (label, color) in enumerate(colors.items()):
        if len(episodes) >= 2:
            ax.plot(episodes, rates[:, i] * 100, color=color, linewidth=2.0, label=label)
        elif len(episodes) == 1:
            ax.scatter(episodes, rates[:, i] * 100, color=color, s=24, label=label)
    ax.set_title("Learner Results During Training")
    ax.set_xlabel("Episode")
    ax.set_ylabel("Share of games (%)")
    ax.set_ylim(0, 100)
    ax.grid(True, alpha=0.3)
    if len(episodes):
        ax.legend()
    return fig_to_base64(fig, save_path)


def value_grid(value_table: Mapping[str, Mapping[int, float]], key: str = EMPTY_KEY) -> np.ndarray:
    """3x3 grid of learned values for ``key``; NaN where nothing is known or the cell is taken."""
    grid = np.full(BOARD_CELLS, np.nan)
    for cell, value in value_table.get(key, {}).items():
        if key[cell] == "0":
            grid[cell] = value
    return grid.reshape(3, 3)


def plot_value_heatmap(value_table: Mapping[str, Mapping[int, float]], key: str = EMPTY_KEY,
                       save_path: Optional[str] = None) -> str:
    """Heatmap of the learned action values for one board configuration."""
    grid = value_grid(value_table, key)

    fig, ax = plt.subplots(1, 1, figsize=(4.8, 4.2))
    sns.heatmap(grid, annot=True, fmt=".2f", cmap="RdYlGn", vmin=-1, vmax=1,
                linewidths=1, linecolor="white", square=True,
                cbar_kws={"label": "Value"}, ax=ax)
    ax.set_title(f"Learned values for {key}")
    ax.set_xticks([])
    ax.set_yticks([])
    return fig_to_base64(fig, save_path)
