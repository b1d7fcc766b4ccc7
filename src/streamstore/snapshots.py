"""
A lazy snapshot cache for folded stream state.

Snapshots are keyed by stream and by reducer identity ("{reducer_id}:{reducer_version}"),
so bumping a reducer's version starts a fresh cache instead of feeding the new
logic a state built by the old one.

A snapshot is never a source of truth. It can lag the stream arbitrarily,
it can be deleted at any time, and concurrent rebuilders may overwrite each
other's writes. None of that changes the answer `get_or_rebuild` returns,
only how much of the stream has to be replayed to get it. For the same
reason a state is only cached when the serializer gives it back unchanged.
"""
import logging
from typing import Any, List

from .clock import SystemClock
from .codec import Codec, JsonStateSerializer
from .models import FoldResult, KeyCondition, Query, SnapshotRecord
from .protocols import Clock, DocumentStore, Reducer, StateSerializer
from .reader import StreamReader

DEFAULT_THRESHOLD = 10


def snapshot_id(reducer_id: str, reducer_version: Any) -> str:
    return f"{reducer_id}:{reducer_version}"


class SnapshotCache:
    def __init__(
        self,
        store: DocumentStore,
        table: str,
        reader: StreamReader,
        codec: Codec,
        threshold: int = DEFAULT_THRESHOLD,
        clock: Clock | None = None,
    ):
        self.store = store
        self.table = table
        self.reader = reader
        self.codec = codec
        self.threshold = threshold
        self.clock = clock or SystemClock()

    async def load(
        self,
        stream_id: str,
        reducer_id: str,
        reducer_version: Any,
        serializer: StateSerializer | None = None,
    ) -> FoldResult:
        """Returns the cached fold, or watermark 0 with no state when nothing is cached."""
        serializer = serializer or JsonStateSerializer()
        page = await self.store.query(
            Query(
                table=self.table,
                condition=KeyCondition(
                    partition_value=stream_id,
                    sort_op="=",
                    sort_value=snapshot_id(reducer_id, reducer_version),
                ),
                consistent_read=True,
            )
        )
        if not page.items:
            return FoldResult(state=None, version=0)
        record = SnapshotRecord.model_validate(page.items[0])
        state = serializer.loads(self.codec.decode_state(record.state))
        return FoldResult(state=state, version=record.version)

    async def save(
        self,
        stream_id: str,
        reducer_id: str,
        reducer_version: Any,
        result: FoldResult,
        serializer: StateSerializer | None = None,
    ) -> bool:
        """
        Persists `result` unless its state does not survive a serializer round
        trip. Returns whether a snapshot was written.
        """
        serializer = serializer or JsonStateSerializer()
        sid = snapshot_id(reducer_id, reducer_version)
        try:
            data = serializer.dumps(result.state)
            faithful = serializer.loads(data) == result.state
        except (TypeError, ValueError) as e:
            logging.warning(f"Snapshot {sid} for stream {stream_id} not saved: state is not serializable: {e}")
            return False
        if not faithful:
            logging.warning(f"Snapshot {sid} for stream {stream_id} not saved: state changes when serialized")
            return False

        record = SnapshotRecord(
            stream_id=stream_id,
            snapshot_id=sid,
            version=result.version,
            state=self.codec.encode_state(data),
            taken_at=self.clock.now(),
        )
        # Unconditional: the last writer wins.
        await self.store.put_item(self.table, record.model_dump())
        logging.info(f"Saved snapshot {sid} for stream {stream_id} at version {record.version}")
        return True

    async def invalidate(self, stream_id: str, reducer_id: str, reducer_version: Any):
        await self.store.delete_item(
            self.table,
            {"stream_id": stream_id, "snapshot_id": snapshot_id(reducer_id, reducer_version)},
        )

    async def get_or_rebuild(
        self,
        stream_id: str,
        reducer_id: str,
        reducer_version: Any,
        reducer: Reducer,
        serializer: StateSerializer | None = None,
    ) -> FoldResult:
        cached = await self.load(stream_id, reducer_id, reducer_version, serializer)
        records = await self.reader.get_records(
            stream_id, from_version=cached.version, allow_empty=True, operation="get_or_rebuild"
        )

        new_events: List[dict] = []
        for record in records:
            new_events.extend(self.codec.decode_events(record.events))

        # The watermark is the next version to read, so a later rebuild never
        # folds the same record twice even when batches hold several events.
        version = records[-1].version + 1 if records else cached.version
        current = FoldResult(state=reducer(cached.state, new_events), version=version)

        if len(new_events) > self.threshold:
            await self.save(stream_id, reducer_id, reducer_version, current, serializer)
        else:
            logging.debug(
                f"Snapshot {snapshot_id(reducer_id, reducer_version)} for stream {stream_id} "
                f"not saved: {len(new_events)} new event(s), threshold {self.threshold}"
            )
        return current
