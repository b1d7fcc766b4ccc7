from .config import EVENT_INDEX_NAME
from .models import TableSchema


def event_table_schema(name: str) -> TableSchema:
    return TableSchema(
        name=name,
        partition_key="stream_id",
        sort_key="version",
        indexes={EVENT_INDEX_NAME: ("active", "committed_at")},
    )


def snapshot_table_schema(name: str) -> TableSchema:
    return TableSchema(name=name, partition_key="stream_id", sort_key="snapshot_id")
