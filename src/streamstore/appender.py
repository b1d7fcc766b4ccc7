import json
import logging
from typing import Any, Dict, List, Optional

from .codec import Codec
from .errors import ConditionalWriteFailed, ConflictError, ValidationError
from .models import ACTIVE, AppendResult, EventRecord
from .protocols import Clock, DocumentStore, Validator


class Appender:
    """
    Commits one event batch at a caller-chosen version. The backend's
    insert-if-absent write is the only concurrency control: at most one
    writer wins a given (stream_id, version), the others get `ConflictError`
    and decide for themselves whether to refetch and retry.
    """

    def __init__(
        self,
        store: DocumentStore,
        table: str,
        codec: Codec,
        validator: Validator,
        clock: Clock,
    ):
        self.store = store
        self.table = table
        self.codec = codec
        self.validator = validator
        self.clock = clock

    async def append(
        self,
        stream_id: str,
        expected_version: int,
        events: List[Optional[Dict[str, Any]]],
    ) -> AppendResult:
        if not stream_id:
            raise ValueError("`stream_id` must be provided to append().")
        if isinstance(expected_version, bool) or not isinstance(expected_version, int) or expected_version < 0:
            raise ValueError(f"`expected_version` must be a non-negative integer, got {expected_version!r}")

        committed_at = self.clock.now()
        stamped = []
        for event in events:
            if event is None:
                continue
            if isinstance(event, dict) and not event.get("timestamp"):
                event = {**event, "timestamp": committed_at}
            stamped.append(event)
        if not stamped:
            raise ValidationError("Event batch is empty", stream_id=stream_id, expected_version=expected_version)

        error = self.validator.validate(stamped)
        if error is not None:
            logging.warning(f"Rejected event batch for stream {stream_id}: {json.dumps(stamped, default=str)}")
            raise ValidationError(
                f"Event batch failed validation: {error}",
                stream_id=stream_id,
                expected_version=expected_version,
            ) from error

        record = EventRecord(
            stream_id=stream_id,
            version=expected_version,
            commit_id=f"{committed_at}:{stream_id}",
            committed_at=committed_at,
            active=ACTIVE,
            events=self.codec.encode_events(stamped),
        )
        try:
            await self.store.put_item(self.table, record.model_dump(), if_absent=True)
        except ConditionalWriteFailed as e:
            raise ConflictError(
                "A commit already exists with the specified version",
                stream_id=stream_id,
                expected_version=expected_version,
                events=stamped,
            ) from e
        return AppendResult(id=stream_id)
