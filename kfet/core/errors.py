"""
Error taxonomy shared by every ledger layer.

- RecordValidationError: caught before dispatch, never reaches the channel
- ChannelError: the channel could not run the call, nothing was applied
- DecodingError: a returned row does not match the declared columns
- NotFoundError: the targeted row does not exist
"""

from typing import Optional, Sequence


class LedgerError(Exception):
    """Base class for all ledger failures."""


class RecordValidationError(LedgerError):
    """A record is missing required fields or carries invalid values."""

    def __init__(self, message: str, fields: Sequence[str] = ()):
        super().__init__(message)
        self.fields = tuple(fields)


class ChannelError(LedgerError):
    """Transport or remote execution failure for a whole call."""


class EmptyResultError(ChannelError):
    """A `get` statement produced no row, so the call was aborted."""

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message)
        self.index = index


class DecodingError(LedgerError):
    """Row arity or value type differs from the declared schema."""


class NotFoundError(LedgerError):
    """The referenced row does not exist."""
