"""
The `EventStore` facade wires the appender, the readers and the snapshot
cache onto one backend, one configuration, one validator and one clock.
"""
from typing import Any, Dict, List, Optional

from .appender import Appender
from .clock import SystemClock
from .codec import Codec
from .config import StoreConfig
from .models import AppendResult, FoldResult
from .protocols import Clock, DocumentStore, Reducer, StateSerializer, Validator
from .reader import StreamReader
from .snapshots import SnapshotCache
from .timestamp_index import TimestampIndexReader
from .validation import PydanticEventValidator


class EventStore:
    def __init__(
        self,
        store: DocumentStore,
        config: StoreConfig,
        *,
        validator: Validator | None = None,
        clock: Clock | None = None,
    ):
        self.store = store
        self.config = config
        self.codec = Codec(config.encryption_key)
        self.clock = clock or SystemClock()

        self.appender = Appender(
            store,
            config.events_table,
            self.codec,
            validator or PydanticEventValidator(),
            self.clock,
        )
        self.reader = StreamReader(store, config.events_table, self.codec, page_size=config.page_size)
        self.timestamp_index = TimestampIndexReader(store, config.events_table, self.codec, page_size=config.page_size)
        self.snapshots = SnapshotCache(
            store,
            config.snapshots_table,
            self.reader,
            self.codec,
            threshold=config.snapshot_threshold,
            clock=self.clock,
        )

    async def append(
        self, stream_id: str, expected_version: int, events: List[Optional[Dict[str, Any]]]
    ) -> AppendResult:
        return await self.appender.append(stream_id, expected_version, events)

    async def get_range(self, stream_id: str, from_version: int = 0, allow_empty: bool = False) -> List[Dict[str, Any]]:
        return await self.reader.get_range(stream_id, from_version, allow_empty)

    async def get_at(self, stream_id: str, version: int) -> List[Dict[str, Any]]:
        return await self.reader.get_at(stream_id, version)

    async def get_since(self, timestamp: int) -> List[Dict[str, Any]]:
        return await self.timestamp_index.get_since(timestamp)

    async def get_or_rebuild(
        self,
        stream_id: str,
        reducer_id: str,
        reducer_version: Any,
        reducer: Reducer,
        serializer: StateSerializer | None = None,
    ) -> FoldResult:
        return await self.snapshots.get_or_rebuild(stream_id, reducer_id, reducer_version, reducer, serializer)
