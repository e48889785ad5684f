"""Path utilities for stash."""

from pathlib import Path


def expand_path(path: str | Path) -> Path:
    """Expand a leading ``~`` to the user's home directory."""
    return Path(path).expanduser()


def get_default_log_dir() -> Path:
    """Get the default directory for per-command logs (~/.cache/stash)."""
    return Path.home() / ".cache" / "stash"


def get_state_dir() -> Path:
    """Get the stash state directory.

    Uses XDG state directory: ~/.local/state/stash/
    """
    return Path.home() / ".local" / "state" / "stash"
