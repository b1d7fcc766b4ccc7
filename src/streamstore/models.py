"""
This module defines the core data models for the stream store using Pydantic.
Records map one-to-one onto backend items; the query models describe a
key-condition query and its paged result independently of any backend.
"""
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field

ACTIVE = 1  # Constant partition key of the commit-time index


class EventRecord(BaseModel):
    stream_id: str
    version: int = Field(ge=0)
    commit_id: str
    committed_at: int
    active: int = ACTIVE
    events: str  # Serialized event batch

    def key(self) -> Dict[str, Any]:
        return {"stream_id": self.stream_id, "version": self.version}


class SnapshotRecord(BaseModel):
    stream_id: str
    # "{reducer_id}:{reducer_version}" so incompatible reducers never share state.
    snapshot_id: str
    version: int  # Next stream version not yet folded in
    state: str  # Serialized state
    taken_at: int  # Milliseconds since the epoch, from the store clock


class FoldResult(BaseModel):
    state: Any = None
    version: int = 0


class AppendResult(BaseModel):
    id: str


Operator = Literal["=", "<", "<=", ">", ">=", "begins_with"]


class KeyCondition(BaseModel):
    partition_value: Any
    sort_op: Optional[Operator] = None
    sort_value: Any = None


class Query(BaseModel):
    table: str
    condition: KeyCondition
    index: Optional[str] = None
    consistent_read: bool = False
    limit: Optional[int] = None
    exclusive_start_key: Optional[Dict[str, Any]] = None


class QueryPage(BaseModel):
    items: List[Dict[str, Any]] = []
    count: int = 0
    scanned_count: int = 0
    last_evaluated_key: Optional[Dict[str, Any]] = None


class QueryResult(BaseModel):
    items: List[Dict[str, Any]] = []
    count: int = 0
    scanned_count: int = 0
    pages: int = 0


class TableSchema(BaseModel):
    name: str
    partition_key: str
    sort_key: str
    # index name -> (partition attribute, sort attribute)
    indexes: Dict[str, Tuple[str, str]] = {}
