"""
An event-sourced stream store on top of a document database with
conditional writes and secondary indexes.
"""
from .clock import FixedClock, SystemClock
from .config import StoreConfig
from .errors import (
    ConditionalWriteFailed,
    ConflictError,
    EventStoreError,
    NotFoundError,
    ValidationError,
)
from .models import AppendResult, EventRecord, FoldResult, SnapshotRecord
from .store import EventStore
from .adaptors.sqlite import sqlite_document_store, sqlite_event_store

__all__ = [
    "AppendResult",
    "ConditionalWriteFailed",
    "ConflictError",
    "EventRecord",
    "EventStore",
    "EventStoreError",
    "FixedClock",
    "FoldResult",
    "NotFoundError",
    "SnapshotRecord",
    "StoreConfig",
    "SystemClock",
    "ValidationError",
    "sqlite_document_store",
    "sqlite_event_store",
]
