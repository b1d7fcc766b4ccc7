"""
Error taxonomy for the stream store.

Only the errors defined here are raised by the store itself. Anything else a
backend raises (connection failures, timeouts, locked databases) is passed
through untouched so callers can tell a business conflict from an
infrastructure failure.
"""
from typing import Any, Dict


class EventStoreError(Exception):
    """Base class for errors that carry diagnostic context."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def __str__(self):
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v!r}" for k, v in self.context.items() if k != "events")
        return f"{self.message} ({details})"


class NotFoundError(EventStoreError):
    """No record matched the requested stream or version."""


class ConflictError(EventStoreError):
    """A commit already occupies the requested (stream_id, version)."""


class ValidationError(EventStoreError):
    """The event batch was rejected before any write was attempted."""


class ConditionalWriteFailed(Exception):
    """
    Raised by backend adapters when an insert-if-absent write finds the key
    already present. Adapters map their native error into this one.
    """

    def __init__(self, table: str, key: Dict[str, Any]):
        super().__init__(f"Conditional write failed on {table} for key {key}")
        self.table = table
        self.key = key
