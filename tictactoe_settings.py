"""
Settings and logging setup for the Tic Tac Toe arena.
"""

import json
import logging
import os
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = os.path.join(os.path.dirname(__file__), "config", "settings.json")

DEFAULT_SETTINGS: Dict[str, Any] = {
    "training_episodes": 1000,
    "learning_rate": 0.2,
    "gamma": 0.9,
    "epsilon": 0.2,
    "yield_every": 50,
    "marks": ["X", "O"],
    "history_limit": 10,
    "history_path": "ttt-history.json",
}

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


class ConfigurationError(ValueError):
    """Malformed settings file or training configuration."""


def load_settings(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load settings, filling in defaults for anything the file leaves out.

    Args:
        path: JSON file to read; config/settings.json next to this module
            when omitted.

    Returns:
        Dict with every key of DEFAULT_SETTINGS. Unknown keys in the file
        are ignored.

    Raises:
        ConfigurationError: The file exists but is not a JSON object.
    """
    cfg_path = path or DEFAULT_SETTINGS_PATH
    settings = dict(DEFAULT_SETTINGS)
    try:
        with open(cfg_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.debug("No settings file at %s, using defaults", cfg_path)
        return settings
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {cfg_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{cfg_path} must contain a JSON object")
    settings.update({k: data.get(k, settings[k]) for k in settings})
    return settings


def setup_logging(level="INFO"):
    """Configure root logging for command-line runs."""
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
