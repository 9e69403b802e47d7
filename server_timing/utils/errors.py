"""Exceptions raised by the timing ledger.

All of them are raised synchronously at the offending call. Nothing here is
raised at render time.
"""


class ServerTimingError(Exception):
    """Base class for every error raised by this package."""


class ValidationError(ServerTimingError, ValueError):
    """A label, description, duration or precision is not acceptable."""


class NotStartedError(ServerTimingError, LookupError):
    """``end`` was called for a label that has no entry in the ledger."""

    def __init__(self, label: str) -> None:
        super().__init__(f"timing '{label}' was never started")
        self.label = label


class NestingError(ServerTimingError, RuntimeError):
    """``group`` was called on a ledger that is already a group."""

    def __init__(self) -> None:
        super().__init__("groups cannot be more than one level deep")
