"""stash - run a command, tee its output to a timestamped log, keep the last N logs."""

__version__ = "0.1.0"
