"""Error types raised by the learning engine and its persistence layer."""
from typing import Optional


class VocabulatorError(Exception):
    """Base class for all application errors."""


class CorruptData(VocabulatorError):
    """The progress store exists but cannot be interpreted."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class IoFailure(VocabulatorError):
    """A seed source could not be read or the store could not be written."""


class InvalidTransition(VocabulatorError):
    """A state machine was driven into a state it does not allow.

    Only raised for programming errors: every public event is guarded, so
    callers never see this through the event interface.
    """


class SeedParseWarning(UserWarning):
    """A seed line that could not be parsed and was skipped."""

    def __init__(self, line_number: int, line: str, reason: str):
        super().__init__(f"line {line_number}: {reason}: {line!r}")
        self.line_number = line_number
        self.line = line
        self.reason = reason
