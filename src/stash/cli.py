"""CLI entry point for stash.

Run any command, tee its output to a timestamped log, and keep only the
last N logs:

    stash -- make test
    stash --retain 50 --ignore htop -- ./long-job.sh
"""

import argparse
import sys
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from . import __version__, supervisor
from .config import ensure_config_exists, get_config_path, load_config, merge_ignore
from .errors import ConfigError, LaunchError
from .log import get_logger
from .paths import expand_path

_log = get_logger("cli")

_console = Console(stderr=True, highlight=False)

CONFIG_ERROR_EXIT = 2
IO_ERROR_EXIT = 1


def _error(message: str) -> None:
    _console.print(f"[bold red]stash:[/] {escape(message)}", soft_wrap=True)


def positive_int(value: str) -> int:
    """argparse type for --retain."""
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid count: {value!r}") from None
    if n < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stash",
        description=(
            "Run any command, tee its output to a timestamped log, "
            "and keep only the last N logs."
        ),
    )
    parser.add_argument(
        "--log-dir",
        help="Where to store rolling logs of past commands (default: ~/.cache/stash)",
    )
    parser.add_argument(
        "--retain",
        type=positive_int,
        help="Max number of log files to retain (default: 20)",
    )
    parser.add_argument(
        "--ignore",
        nargs="+",
        action="extend",
        default=[],
        metavar="PROG",
        help="Programs to run without logging, in addition to the config file's list",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Config file to use (default: $XDG_CONFIG_HOME/stash/stash.toml)",
    )
    parser.add_argument(
        "--config-path",
        action="store_true",
        help="Print the config file path and exit",
    )
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Create a default config file if there isn't one, and exit",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "cmd",
        nargs=argparse.REMAINDER,
        help="The command to run and log (put it after --)",
    )
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(argv)

    cmd = args.cmd
    if cmd and cmd[0] == "--":
        cmd = cmd[1:]
    args.cmd = cmd

    if not cmd and not (args.config_path or args.init_config):
        parser.error("no command given (usage: stash [options] -- COMMAND [ARGS...])")
    return args


def build_invocation(args: argparse.Namespace) -> supervisor.Invocation:
    """Combine CLI arguments with the config file. CLI values win.

    Raises:
        ConfigError: the config file is malformed.
    """
    config = load_config(args.config)
    log_dir = expand_path(args.log_dir) if args.log_dir else config.log_dir
    retain = args.retain if args.retain is not None else config.retain

    return supervisor.Invocation(
        cmd=args.cmd,
        log_dir=log_dir,
        retain=retain,
        ignore=merge_ignore(config.ignore, args.ignore),
    )


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    if args.config_path:
        print(args.config or get_config_path())
        return
    if args.init_config:
        print(f"Config file at: {ensure_config_exists(args.config)}")
        return

    try:
        invocation = build_invocation(args)
    except ConfigError as e:
        _error(str(e))
        sys.exit(CONFIG_ERROR_EXIT)

    try:
        code = supervisor.run(invocation)
    except LaunchError as e:
        _log.error("%s", e)
        _error(str(e))
        sys.exit(supervisor.LAUNCH_FAILURE_EXIT)
    except OSError as e:
        _log.error("log setup failed: %s", e)
        _error(f"cannot write log in {invocation.log_dir}: {e}")
        sys.exit(IO_ERROR_EXIT)

    sys.exit(code)


if __name__ == "__main__":
    main()
