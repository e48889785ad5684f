"""Diagnostic logging for stash.

Everything logs to ~/.local/state/stash/stash.log via Python's logging module.
The terminal belongs to the wrapped command, so nothing here writes to it.
Filter with grep: grep 'stash.tee' ~/.local/state/stash/stash.log
"""

import logging

from .paths import get_state_dir

_root = logging.getLogger("stash")
_root.setLevel(logging.DEBUG)
# don't propagate to root logger (avoids diagnostics leaking onto the
# terminal if someone configures the root logger elsewhere)
_root.propagate = False


def _attach_handler() -> None:
    log_path = get_state_dir() / "stash.log"
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_path, delay=True)
    except OSError:
        handler = logging.NullHandler()
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(process)d %(name)s %(message)s", datefmt="%H:%M:%S")
    )
    _root.addHandler(handler)


_attach_handler()


def get_logger(name: str) -> logging.Logger:
    return _root.getChild(name)
