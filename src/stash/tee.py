"""Tee one of the child's output streams to the terminal and the log file.

Each captured stream (stdout, stderr) gets its own Broadcaster running on its
own thread. A broadcaster copies the stream line by line: terminal first,
then log, then the next line. Failures degrade instead of aborting:

- a log write failure drops the log copy; the terminal keeps getting output
- a terminal write failure drops the terminal copy; the log keeps getting
  output and the pipe keeps draining so the child never blocks on it
- a read failure ends the broadcaster
"""

from __future__ import annotations

import threading
from typing import BinaryIO

from .errors import BroadcastError
from .log import get_logger

_log = get_logger("tee")


class Broadcaster:
    """Copies a readable byte stream to a terminal stream and a log stream."""

    def __init__(
        self,
        name: str,
        source: BinaryIO,
        terminal: BinaryIO | None,
        log: BinaryIO | None,
        terminal_lock: threading.Lock | None = None,
    ):
        self.name = name
        self.source = source
        self.terminal = terminal
        self.log = log
        # Shared with any other broadcaster writing to the same terminal stream
        self.terminal_lock = terminal_lock or threading.Lock()
        self.errors: list[BroadcastError] = []
        self.lines = 0
        self._thread: threading.Thread | None = None

    def run(self) -> None:
        """Copy the source until end-of-stream or a read error."""
        while True:
            try:
                line = self.source.readline()
            except (OSError, ValueError) as e:
                self._fail("read", e)
                return
            if not line:
                return

            self.lines += 1
            self._write_terminal(line)
            self._write_log(line)

    def start(self) -> None:
        """Run the broadcaster on a background thread."""
        self._thread = threading.Thread(
            target=self.run, name=f"stash-tee-{self.name}", daemon=True
        )
        self._thread.start()

    def join(self) -> None:
        """Wait until the source has been fully drained."""
        if self._thread is not None:
            self._thread.join()

    def _write_terminal(self, line: bytes) -> None:
        if self.terminal is None:
            return
        try:
            with self.terminal_lock:
                self.terminal.write(line)
                self.terminal.flush()
        except (OSError, ValueError) as e:
            self._fail("terminal", e)
            self.terminal = None

    def _write_log(self, line: bytes) -> None:
        if self.log is None:
            return
        try:
            self.log.write(line)
            self.log.flush()
        except (OSError, ValueError) as e:
            self._fail("log", e)
            self.log = None

    def _fail(self, stage: str, cause: BaseException) -> None:
        error = BroadcastError(self.name, stage, cause)
        _log.warning("%s", error)
        self.errors.append(error)


def terminal_locks(*terminals: BinaryIO | None) -> list[threading.Lock]:
    """Return one lock per terminal stream, shared where streams are the same object."""
    locks: dict[int, threading.Lock] = {}
    return [locks.setdefault(id(t), threading.Lock()) for t in terminals]
