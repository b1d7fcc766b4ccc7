"""
Global, time-ordered reads across every stream.

The commit-time index is maintained by the backend and lags primary writes:
a record that was just committed may not be visible yet. Such records are
simply missing from the result until the index catches up. Callers that need
a linearizable history of one stream should use `StreamReader` instead.
"""
from typing import Any, Dict, List

from .codec import Codec
from .config import EVENT_INDEX_NAME
from .models import ACTIVE, EventRecord, KeyCondition, Query
from .pagination import fetch_all
from .protocols import DocumentStore


class TimestampIndexReader:
    def __init__(
        self,
        store: DocumentStore,
        table: str,
        codec: Codec,
        index: str = EVENT_INDEX_NAME,
        page_size: int | None = None,
    ):
        self.store = store
        self.table = table
        self.codec = codec
        self.index = index
        self.page_size = page_size

    async def get_since(self, timestamp: int) -> List[Dict[str, Any]]:
        """
        Returns every indexed event committed at or after `timestamp`, each
        tagged with its record's `committed_at`, in commit-time order.
        """
        query = Query(
            table=self.table,
            index=self.index,
            condition=KeyCondition(partition_value=ACTIVE, sort_op=">=", sort_value=timestamp),
            limit=self.page_size,
        )
        result = await fetch_all(self.store, query)

        events: List[Dict[str, Any]] = []
        for item in result.items:
            record = EventRecord.model_validate(item)
            for event in self.codec.decode_events(record.events):
                events.append({**event, "committed_at": record.committed_at})
        return events
