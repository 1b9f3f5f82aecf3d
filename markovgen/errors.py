"""Error types raised by markovgen."""

import argparse


class MarkovError(Exception):
    """Base class for all markovgen errors."""

    exit_code = 1


class ArgumentError(MarkovError, argparse.ArgumentTypeError):
    """A numeric argument could not be parsed or is out of range."""

    exit_code = 2


class InputUnavailableError(MarkovError):
    """A named input file cannot be opened or read."""

    def __init__(self, path, reason: str = ''):
        self.path = path
        message = f"cannot read {path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class MalformedRecordError(MarkovError):
    """A persisted table record violates the format."""


class UnknownCommandError(MarkovError):
    """The requested mode is neither train nor generate."""

    exit_code = 2


class TableWriteError(MarkovError):
    """A table could not be written to its destination."""

    def __init__(self, path, reason: str = ''):
        self.path = path
        message = f"cannot write {path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
