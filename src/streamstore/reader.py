from typing import Any, Dict, List

from .codec import Codec
from .errors import NotFoundError
from .models import EventRecord, KeyCondition, Query
from .pagination import fetch_all
from .protocols import DocumentStore


class StreamReader:
    """
    Reads one stream back as an ordered, flattened list of events. Queries are
    strongly consistent and followed through every page, so a read observes
    every commit acknowledged before it was issued.
    """

    def __init__(self, store: DocumentStore, table: str, codec: Codec, page_size: int | None = None):
        self.store = store
        self.table = table
        self.codec = codec
        self.page_size = page_size

    def _query(self, stream_id: str, op: str, version: int) -> Query:
        return Query(
            table=self.table,
            condition=KeyCondition(partition_value=stream_id, sort_op=op, sort_value=version),
            consistent_read=True,
            limit=self.page_size,
        )

    async def _fetch_records(self, query: Query) -> List[EventRecord]:
        result = await fetch_all(self.store, query)
        return [EventRecord.model_validate(item) for item in result.items]

    def _flatten(self, records: List[EventRecord]) -> List[Dict[str, Any]]:
        events: List[Dict[str, Any]] = []
        for record in records:
            events.extend(self.codec.decode_events(record.events))
        return events

    async def get_records(
        self,
        stream_id: str,
        from_version: int = 0,
        allow_empty: bool = False,
        operation: str = "get_records",
    ) -> List[EventRecord]:
        """
        Returns the committed records with `version >= from_version`, ascending.
        `operation` names the public call in error messages.
        """
        if not stream_id:
            raise ValueError(f"`stream_id` must be provided to {operation}().")
        records = await self._fetch_records(self._query(stream_id, ">=", from_version))
        if not records and not allow_empty:
            raise NotFoundError("resource not found", stream_id=stream_id, from_version=from_version)
        return records

    async def get_range(
        self, stream_id: str, from_version: int = 0, allow_empty: bool = False
    ) -> List[Dict[str, Any]]:
        records = await self.get_records(stream_id, from_version, allow_empty, operation="get_range")
        return self._flatten(records)

    async def get_at(self, stream_id: str, version: int) -> List[Dict[str, Any]]:
        if not stream_id:
            raise ValueError("`stream_id` must be provided to get_at().")
        records = await self._fetch_records(self._query(stream_id, "=", version))
        if not records:
            raise NotFoundError("resource not found", stream_id=stream_id, version=version)
        return self._flatten(records)
