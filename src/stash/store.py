"""Log directory management: naming new logs and pruning old ones.

Log files are named by UTC creation time (``20250712-153045.123456.log``), so
sorting names sorts them chronologically. Anything in the directory with a
``.log`` extension is treated as one of ours.
"""

from datetime import datetime, timezone
from pathlib import Path

from .log import get_logger

_log = get_logger("store")

LOG_SUFFIX = ".log"

# Upper bound on same-timestamp retries in create_new_log
_MAX_COLLISIONS = 999


def log_name(now: datetime, collision: int = 0) -> str:
    """Build a log file name for the given time.

    Names created at the same microsecond get a counter suffix, which sorts
    after the bare name ("_" > ".").
    """
    stem = now.strftime("%Y%m%d-%H%M%S.%f")
    if collision:
        stem = f"{stem}_{collision:03d}"
    return stem + LOG_SUFFIX


def create_new_log(directory: Path, now: datetime | None = None) -> Path:
    """Create a new empty log file in ``directory`` and return its path.

    The directory tree is created if needed. The file is created exclusively,
    so two invocations in the same clock tick never share a log.

    Raises:
        OSError: the directory or file could not be created.
    """
    directory.mkdir(parents=True, exist_ok=True)
    if now is None:
        # UTC so names keep sorting across DST changes
        now = datetime.now(timezone.utc)

    for collision in range(_MAX_COLLISIONS + 1):
        path = directory / log_name(now, collision)
        try:
            with open(path, "xb"):
                pass
        except FileExistsError:
            continue
        _log.debug("created %s", path)
        return path

    raise FileExistsError(f"no free log name for {now.isoformat()} in {directory}")


def list_logs(directory: Path) -> list[Path]:
    """List recognized log files in ``directory``, oldest first."""
    try:
        entries = list(directory.iterdir())
    except FileNotFoundError:
        return []
    except OSError as e:
        _log.warning("cannot list %s: %s", directory, e)
        return []

    logs = [p for p in entries if p.suffix == LOG_SUFFIX and p.is_file()]
    return sorted(logs, key=lambda p: p.name)


def rotate(directory: Path, retain: int) -> None:
    """Delete the oldest logs until at most ``retain`` remain.

    Best effort: a file that can't be removed (already gone, permissions,
    still held open on some platforms) is skipped and the rest are still
    pruned. Never raises.
    """
    logs = list_logs(directory)
    excess = len(logs) - max(retain, 0)
    if excess <= 0:
        return

    for old in logs[:excess]:
        try:
            old.unlink()
        except OSError as e:
            _log.debug("could not remove %s: %s", old, e)
            continue
        _log.debug("removed %s", old)
