"""
Explicit configuration for the stream store.

A `StoreConfig` is built once at startup and handed to the factory and the
components it wires up. Nothing reads the process environment implicitly;
`from_env` only reads the mapping it is given.
"""
from typing import Mapping, Optional

from pydantic import BaseModel, Field

EVENT_INDEX_NAME = "active-committed_at-index"


class StoreConfig(BaseModel):
    db_path: str = ":memory:"
    events_table: str = "eventstore"
    snapshots_table: str = "snapshots"
    # Rows per backend page. Remote document stores cut pages by size; the
    # SQLite adaptor cuts them by row count.
    page_size: int = Field(default=100, gt=0)
    snapshot_threshold: int = Field(default=10, ge=0)
    pool_size: int = Field(default=10, gt=0)
    cache_size_kib: int = -16384
    busy_timeout_ms: int = 5000
    encryption_key: Optional[bytes] = None  # Fernet key; batches stored in plaintext JSON when unset

    @classmethod
    def from_env(cls, environ: Mapping[str, str], **overrides) -> "StoreConfig":
        values = {}
        if environ.get("EVENTSTORE_TABLE"):
            values["events_table"] = environ["EVENTSTORE_TABLE"]
        if environ.get("SNAPSHOT_TABLE"):
            values["snapshots_table"] = environ["SNAPSHOT_TABLE"]
        if environ.get("EVENTSTORE_DB_PATH"):
            values["db_path"] = environ["EVENTSTORE_DB_PATH"]
        if environ.get("EVENTSTORE_PAGE_SIZE"):
            values["page_size"] = int(environ["EVENTSTORE_PAGE_SIZE"])
        values.update(overrides)
        return cls(**values)
