import logging
import os
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "CEREBRO_CONFIG_DIR"
CONFIG_FILENAME = "config.yml"
DB_FILENAME = "cerebro.db"

DEFAULT_CONFIG: dict = {
    "default_port": 3030,
    "github_token": None,
    "store_path": None,  # None = <config dir>/cerebro.db
}

# Keys written back by save_config. Anything else in the dict (CLI-only
# overrides, resolved tokens from the environment) stays in memory.
_PERSISTED_KEYS = ("default_port", "github_token", "store_path")


def get_config_dir() -> Path:
    """Return the config directory, read from the environment at call time for testability."""
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override).expanduser().resolve()
    return Path.home() / ".config" / "cerebro"


def default_config_path() -> Path:
    return get_config_dir() / CONFIG_FILENAME


def load_config(config_path: Optional[str] = None, cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. config.yml in the config directory (or ``config_path``)
      3. CLI argument overrides

    A corrupted file is logged and ignored; reading config never raises.
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path) if config_path else default_config_path()
    if path.exists():
        try:
            with open(path) as f:
                file_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Ignoring unreadable config file %s: %s", path, e)
            file_config = {}
        if isinstance(file_config, dict):
            config.update(file_config)
        else:
            logger.warning("Ignoring config file %s: expected a mapping, got %s", path, type(file_config).__name__)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    if not config.get("store_path"):
        config["store_path"] = str(get_config_dir() / DB_FILENAME)

    return config


def save_config(config: dict, config_path: Optional[str] = None) -> Path:
    """Write the persistable keys of ``config`` as YAML. Failures propagate."""
    path = Path(config_path) if config_path else default_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    data = {key: config.get(key, DEFAULT_CONFIG[key]) for key in _PERSISTED_KEYS}
    if data["store_path"] == str(get_config_dir() / DB_FILENAME):
        data["store_path"] = None
    with open(path, "w") as f:
        yaml.safe_dump(data, f, sort_keys=False)
    return path
