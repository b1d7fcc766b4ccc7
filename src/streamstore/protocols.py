"""
This module defines the abstract protocols the stream store is built on.

The components only talk to these `Protocol`-based interfaces, so the store is
decoupled from any concrete backend, clock or validation scheme. A backend
adapter (SQLite today, a remote document database tomorrow) only has to
implement `DocumentStore`, including the mapping of its native
"condition failed" error into `ConditionalWriteFailed`.
"""
from typing import Any, Dict, List, Optional, Protocol

from .models import Query, QueryPage, TableSchema


class DocumentStore(Protocol):
    """
    Defines the contract that all storage adapters must implement.
    Items are flat dicts of JSON-compatible values keyed by the table's
    partition and sort attributes.
    """

    async def create_table(self, schema: TableSchema):
        ...

    async def put_item(self, table: str, item: Dict[str, Any], *, if_absent: bool = False):
        """Write `item`. With `if_absent`, raise `ConditionalWriteFailed` if its key exists."""
        ...

    async def query(self, query: Query) -> QueryPage:
        """Return one page of items matching the key condition, sort key ascending."""
        ...

    async def delete_item(self, table: str, key: Dict[str, Any]):
        ...

    async def close(self):
        ...


class Validator(Protocol):
    def validate(self, events: List[Dict[str, Any]]) -> Optional[Exception]:
        ...


class Clock(Protocol):
    def now(self) -> int:
        """Milliseconds since the epoch."""
        ...


class Reducer(Protocol):
    def __call__(self, state: Any, events: List[Dict[str, Any]]) -> Any:
        ...


class StateSerializer(Protocol):
    def dumps(self, state: Any) -> bytes:
        ...

    def loads(self, data: bytes) -> Any:
        ...
