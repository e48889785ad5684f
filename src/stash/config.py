"""Configuration management for stash."""

import os
import tomllib
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import ConfigError
from .paths import expand_path, get_default_log_dir

DEFAULT_RETAIN = 20


def get_config_path() -> Path:
    """Get the path to the stash config file."""
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    config_dir = Path(xdg_config) if xdg_config else Path.home() / ".config"
    return config_dir / "stash" / "stash.toml"


def get_default_config() -> str:
    """Return the default config file contents."""
    return """\
# stash configuration

# Programs that get the terminal directly and are never logged
# (matched against the command's base name, e.g. "vim" matches /usr/bin/vim).
ignore = ["vim", "nvim", "less", "man", "top", "htop", "ssh", "tmux"]

# Where per-command logs are kept.
# log_dir = "~/.cache/stash"

# How many logs to keep before the oldest are pruned.
# retain = 20
"""


@dataclass
class Config:
    """stash configuration."""

    ignore: list[str] = field(default_factory=list)
    log_dir: Path = field(default_factory=get_default_log_dir)
    retain: int = DEFAULT_RETAIN


def merge_ignore(defaults: Iterable[str], extra: Iterable[str]) -> frozenset[str]:
    """Combine the configured ignore list with extra entries (set union)."""
    return frozenset(defaults) | frozenset(extra)


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from file, or return defaults if there is none.

    Raises:
        ConfigError: the file exists but is not valid TOML or has bad values.
    """
    if config_path is None:
        config_path = get_config_path()

    if not config_path.exists():
        return Config()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"invalid TOML in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"could not read {config_path}: {e}") from e

    return _parse_config(data)


def _parse_config(data: dict[str, Any]) -> Config:
    """Parse config dict into Config object."""
    config = Config()

    ignore = data.get("ignore", [])
    if not isinstance(ignore, list) or not all(isinstance(p, str) for p in ignore):
        raise ConfigError("'ignore' must be a list of program names")
    config.ignore = ignore

    if "log_dir" in data:
        if not isinstance(data["log_dir"], str):
            raise ConfigError("'log_dir' must be a string")
        config.log_dir = expand_path(data["log_dir"])

    if "retain" in data:
        retain = data["retain"]
        # bool is an int subclass; `retain = true` is a mistake, not 1
        if isinstance(retain, bool) or not isinstance(retain, int) or retain < 1:
            raise ConfigError("'retain' must be a positive integer")
        config.retain = retain

    return config


def ensure_config_exists(config_path: Path | None = None) -> Path:
    """Ensure the config file exists, creating with defaults if needed."""
    if config_path is None:
        config_path = get_config_path()

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(get_default_config())

    return config_path
