"""Run the wrapped command, either logged (captured) or straight on the terminal (bypass)."""

from __future__ import annotations

import contextlib
import enum
import os
import signal
import subprocess
import sys
import threading
from collections.abc import Collection, Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

from . import store
from .errors import LaunchError
from .log import get_logger
from .tee import Broadcaster, terminal_locks

_log = get_logger("supervisor")

# Exit status when the child died without an exit code (killed by a signal)
ABNORMAL_EXIT = 1
# Exit status when the child could not be started (same as a shell's "command not found")
LAUNCH_FAILURE_EXIT = 127

FORWARDED_SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGHUP)


class Mode(enum.Enum):
    BYPASS = "bypass"
    CAPTURED = "captured"


@dataclass
class Invocation:
    """One run of a wrapped command."""

    cmd: list[str]
    log_dir: Path
    retain: int
    ignore: frozenset[str] = field(default_factory=frozenset)

    @property
    def mode(self) -> Mode:
        return resolve_mode(self.cmd, self.ignore)


def program_name(cmd: Sequence[str]) -> str:
    """Base name of the program being run (``/usr/bin/vim`` -> ``vim``)."""
    return os.path.basename(cmd[0])


def resolve_mode(cmd: Sequence[str], ignore: Collection[str]) -> Mode:
    """Ignored programs get the terminal to themselves; everything else is logged."""
    if program_name(cmd) in ignore:
        return Mode.BYPASS
    return Mode.CAPTURED


def exit_code(returncode: int) -> int:
    """Map a Popen returncode to our own exit status.

    Negative returncodes mean the child was killed by a signal and has no
    exit code of its own.
    """
    if returncode < 0:
        return ABNORMAL_EXIT
    return returncode


def _launch(cmd: Sequence[str], **kwargs) -> subprocess.Popen:
    try:
        return subprocess.Popen(list(cmd), **kwargs)
    except FileNotFoundError as e:
        raise LaunchError(cmd[0], "command not found") from e
    except PermissionError as e:
        raise LaunchError(cmd[0], "permission denied") from e
    except OSError as e:
        raise LaunchError(cmd[0], e.strerror or str(e)) from e


def _child_has_terminal(proc: subprocess.Popen) -> bool:
    """Whether the child is in the terminal's foreground process group.

    If so, a Ctrl+C typed at the terminal already reached it.
    """
    try:
        return os.tcgetpgrp(sys.stdin.fileno()) == os.getpgid(proc.pid)
    except (OSError, ValueError, AttributeError):
        return False


@contextlib.contextmanager
def forward_signals(proc: subprocess.Popen) -> Iterator[None]:
    """Forward SIGINT/SIGTERM/SIGHUP received by stash to the child.

    stash itself keeps running so it can finish draining the child's output
    once the child reacts. Handlers can only be installed from the main
    thread; elsewhere this is a no-op.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def handler(signum: int, frame) -> None:
        if signum == signal.SIGINT and _child_has_terminal(proc):
            return
        if proc.poll() is None:
            _log.info("forwarding signal %d to pid %d", signum, proc.pid)
            with contextlib.suppress(ProcessLookupError):
                proc.send_signal(signum)

    previous = {}
    for signum in FORWARDED_SIGNALS:
        previous[signum] = signal.signal(signum, handler)
    try:
        yield
    finally:
        for signum, old in previous.items():
            signal.signal(signum, old)


def run_bypass(cmd: Sequence[str]) -> int:
    """Run the command with stdin/stdout/stderr inherited. Nothing is logged."""
    _log.info("bypass: %s", cmd)
    proc = _launch(cmd)
    with forward_signals(proc):
        returncode = proc.wait()
    _log.info("bypass: %s exited %d", program_name(cmd), returncode)
    return exit_code(returncode)


def run_captured(
    cmd: Sequence[str],
    log_dir: Path,
    retain: int,
    stdout: BinaryIO | None = None,
    stderr: BinaryIO | None = None,
) -> int:
    """Run the command with its stdout/stderr teed to the terminal and a new log file.

    Old logs are pruned first, so that with the new one at most ``retain``
    logs remain. stdin is inherited. ``stdout``/``stderr`` are the terminal
    destinations (default: our own standard streams).

    Raises:
        ValueError: ``retain`` is less than 1.
        OSError: the log directory or file could not be created.
        LaunchError: the command could not be started. The (empty) log
            file created for it is left in place.
    """
    if retain < 1:
        raise ValueError(f"retain must be at least 1, got {retain}")
    if stdout is None:
        sys.stdout.flush()
        stdout = sys.stdout.buffer
    if stderr is None:
        sys.stderr.flush()
        stderr = sys.stderr.buffer

    store.rotate(log_dir, retain - 1)
    log_path = store.create_new_log(log_dir)
    _log.info("captured: %s -> %s", cmd, log_path)

    with open(log_path, "ab") as out_log, open(log_path, "ab") as err_log:
        out_lock, err_lock = terminal_locks(stdout, stderr)
        proc = _launch(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE)

        with forward_signals(proc):
            broadcasters = [
                Broadcaster("stdout", proc.stdout, stdout, out_log, out_lock),
                Broadcaster("stderr", proc.stderr, stderr, err_log, err_lock),
            ]
            for b in broadcasters:
                b.start()

            returncode = proc.wait()
            # the child exiting doesn't mean its output has been drained
            for b in broadcasters:
                b.join()

        proc.stdout.close()
        proc.stderr.close()

    for b in broadcasters:
        if b.errors:
            _log.warning("%s: %d tee error(s), first: %s", b.name, len(b.errors), b.errors[0])

    _log.info(
        "captured: %s exited %d (%d stdout / %d stderr lines)",
        program_name(cmd),
        returncode,
        broadcasters[0].lines,
        broadcasters[1].lines,
    )
    return exit_code(returncode)


def run(invocation: Invocation) -> int:
    """Run an invocation in whichever mode its program calls for."""
    if invocation.mode is Mode.BYPASS:
        return run_bypass(invocation.cmd)
    return run_captured(invocation.cmd, invocation.log_dir, invocation.retain)
