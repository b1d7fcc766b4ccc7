import pytest
from pytest_asyncio import fixture
import os
import tempfile

from streamstore import ConditionalWriteFailed, StoreConfig, sqlite_document_store
from streamstore.config import EVENT_INDEX_NAME
from streamstore.models import KeyCondition, Query, TableSchema


@fixture
async def store():
    """
    Provides a SQLiteDocumentStore with a clean file database for each test function.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        config = StoreConfig(db_path=os.path.join(tmpdir, "docs.db"), events_table="events", snapshots_table="snaps")
        async with sqlite_document_store(config) as document_store:
            yield document_store


def event_item(stream_id, version, committed_at, active=1):
    item = {
        "stream_id": stream_id,
        "version": version,
        "commit_id": f"{committed_at}:{stream_id}",
        "committed_at": committed_at,
        "events": "[]",
    }
    if active is not None:
        item["active"] = active
    return item


@pytest.mark.asyncio
async def test_tables_are_provisioned(store):
    assert set(store.schemas) == {"events", "snaps"}
    assert EVENT_INDEX_NAME in store.schemas["events"].indexes


@pytest.mark.asyncio
async def test_put_if_absent_rejects_existing_key(store):
    await store.put_item("events", event_item("s", 0, 10), if_absent=True)

    with pytest.raises(ConditionalWriteFailed) as excinfo:
        await store.put_item("events", event_item("s", 0, 20), if_absent=True)
    assert excinfo.value.key == {"stream_id": "s", "version": 0}

    page = await store.query(Query(table="events", condition=KeyCondition(partition_value="s")))
    assert page.items == [event_item("s", 0, 10)]


@pytest.mark.asyncio
async def test_unconditional_put_overwrites(store):
    await store.put_item("snaps", {"stream_id": "s", "snapshot_id": "r:1", "version": 1})
    await store.put_item("snaps", {"stream_id": "s", "snapshot_id": "r:1", "version": 7})

    page = await store.query(Query(table="snaps", condition=KeyCondition(partition_value="s")))
    assert [item["version"] for item in page.items] == [7]


@pytest.mark.asyncio
async def test_write_connection_usable_after_conflict(store):
    await store.put_item("events", event_item("s", 0, 10), if_absent=True)
    with pytest.raises(ConditionalWriteFailed):
        await store.put_item("events", event_item("s", 0, 10), if_absent=True)

    await store.put_item("events", event_item("s", 1, 11), if_absent=True)
    page = await store.query(Query(table="events", condition=KeyCondition(partition_value="s")))
    assert page.count == 2


@pytest.mark.asyncio
async def test_query_pages_by_sort_key(store):
    for version in [3, 0, 4, 1, 2]:
        await store.put_item("events", event_item("s", version, 100 + version), if_absent=True)

    query = Query(
        table="events",
        condition=KeyCondition(partition_value="s", sort_op=">=", sort_value=1),
        consistent_read=True,
        limit=2,
    )
    first = await store.query(query)
    assert [i["version"] for i in first.items] == [1, 2]
    assert first.last_evaluated_key == {"stream_id": "s", "version": 2}

    second = await store.query(query.model_copy(update={"exclusive_start_key": first.last_evaluated_key}))
    assert [i["version"] for i in second.items] == [3, 4]
    assert second.last_evaluated_key is None


@pytest.mark.asyncio
async def test_last_full_page_has_no_continuation(store):
    for version in range(2):
        await store.put_item("events", event_item("s", version, version), if_absent=True)

    page = await store.query(Query(table="events", condition=KeyCondition(partition_value="s"), limit=2))
    assert page.count == 2
    assert page.last_evaluated_key is None


@pytest.mark.asyncio
async def test_index_query_orders_by_commit_time(store):
    await store.put_item("events", event_item("b", 0, 30), if_absent=True)
    await store.put_item("events", event_item("a", 0, 10), if_absent=True)
    await store.put_item("events", event_item("a", 1, 30), if_absent=True)
    await store.put_item("events", event_item("c", 0, 5), if_absent=True)
    await store.put_item("events", event_item("hidden", 0, 50, active=None), if_absent=True)

    query = Query(
        table="events",
        index=EVENT_INDEX_NAME,
        condition=KeyCondition(partition_value=1, sort_op=">=", sort_value=10),
        limit=1,
    )
    seen = []
    while True:
        page = await store.query(query)
        seen.extend((i["stream_id"], i["version"]) for i in page.items)
        if not page.last_evaluated_key:
            break
        query = query.model_copy(update={"exclusive_start_key": page.last_evaluated_key})

    # Ties on commit time fall back to primary key order; unindexed items never appear.
    assert seen == [("a", 0), ("a", 1), ("b", 0)]


@pytest.mark.asyncio
async def test_begins_with(store):
    for snapshot_id in ["counter:1", "counter:2", "other:1"]:
        await store.put_item("snaps", {"stream_id": "s", "snapshot_id": snapshot_id, "version": 0})

    page = await store.query(
        Query(table="snaps", condition=KeyCondition(partition_value="s", sort_op="begins_with", sort_value="counter:"))
    )
    assert [i["snapshot_id"] for i in page.items] == ["counter:1", "counter:2"]


@pytest.mark.asyncio
async def test_delete_item(store):
    await store.put_item("snaps", {"stream_id": "s", "snapshot_id": "r:1", "version": 1})
    await store.delete_item("snaps", {"stream_id": "s", "snapshot_id": "r:1"})

    page = await store.query(Query(table="snaps", condition=KeyCondition(partition_value="s")))
    assert page.items == []


@pytest.mark.asyncio
async def test_unknown_table_and_index(store):
    with pytest.raises(ValueError, match="Unknown table"):
        await store.put_item("nope", {"stream_id": "s", "version": 0})
    with pytest.raises(ValueError, match="has no index"):
        await store.query(Query(table="snaps", index="missing", condition=KeyCondition(partition_value=1)))


@pytest.mark.asyncio
async def test_only_one_index_per_table(store):
    schema = TableSchema(
        name="wide",
        partition_key="id",
        sort_key="n",
        indexes={"one": ("a", "b"), "two": ("c", "d")},
    )
    with pytest.raises(ValueError):
        await store.create_table(schema)


@pytest.mark.asyncio
async def test_leaving_context_closes_connections():
    with tempfile.TemporaryDirectory() as tmpdir:
        config = StoreConfig(db_path=os.path.join(tmpdir, "docs.db"), pool_size=3)
        async with sqlite_document_store(config) as document_store:
            assert document_store.read_pool.qsize() == 3
            assert not document_store.closed

        assert document_store.closed
        assert document_store.read_pool.empty()
        # A second close is a no-op.
        await document_store.close()
        assert document_store.closed
