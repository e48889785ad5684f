"""Exceptions raised by stash."""


class StashError(Exception):
    """Base class for stash errors."""


class ConfigError(StashError):
    """The configuration file could not be parsed or has invalid values."""


class LaunchError(StashError):
    """The child program could not be found or executed."""

    def __init__(self, program: str, reason: str):
        super().__init__(f"cannot run {program!r}: {reason}")
        self.program = program
        self.reason = reason


class BroadcastError(StashError):
    """A read or write failed while teeing one of the child's streams."""

    def __init__(self, stream: str, stage: str, cause: BaseException):
        super().__init__(f"{stream}: {stage} failed: {cause}")
        self.stream = stream
        self.stage = stage  # "read", "terminal" or "log"
        self.cause = cause
