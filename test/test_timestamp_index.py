import pytest
from pytest_asyncio import fixture
import os
import tempfile

from streamstore import EventStore, FixedClock, StoreConfig, sqlite_document_store


class LaggingIndexStore:
    """
    Hides index entries committed after `visible_until`, the way a replicated
    secondary index trails the primary table.
    """

    def __init__(self, inner):
        self.inner = inner
        self.visible_until = None

    async def query(self, query):
        page = await self.inner.query(query)
        if query.index and self.visible_until is not None:
            items = [i for i in page.items if i["committed_at"] <= self.visible_until]
            page = page.model_copy(update={"items": items, "count": len(items)})
        return page

    def __getattr__(self, name):
        return getattr(self.inner, name)


@fixture
def clock():
    return FixedClock(start=100)


@fixture
async def lagging(clock):
    with tempfile.TemporaryDirectory() as tmpdir:
        config = StoreConfig(db_path=os.path.join(tmpdir, "index.db"), page_size=2)
        async with sqlite_document_store(config) as document_store:
            store = LaggingIndexStore(document_store)
            yield store, EventStore(store, config, clock=clock)


@pytest.mark.asyncio
async def test_events_since_timestamp_across_streams(lagging, clock):
    store, event_store = lagging
    await event_store.append("a", 0, [{"type": "A0"}])
    clock.advance(10)
    await event_store.append("b", 0, [{"type": "B0"}, {"type": "B0'"}])
    clock.advance(10)
    await event_store.append("a", 1, [{"type": "A1"}])
    clock.advance(10)
    await event_store.append("c", 0, [{"type": "C0"}])

    events = await event_store.get_since(110)

    assert [(e["type"], e["committed_at"]) for e in events] == [
        ("B0", 110),
        ("B0'", 110),
        ("A1", 120),
        ("C0", 130),
    ]


@pytest.mark.asyncio
async def test_pages_to_exhaustion(lagging, clock):
    store, event_store = lagging
    for version in range(9):
        await event_store.append("s", version, [{"type": "E", "n": version}])
        clock.advance()

    events = await event_store.get_since(0)

    assert [e["n"] for e in events] == list(range(9))


@pytest.mark.asyncio
async def test_nothing_since_future_timestamp(lagging, clock):
    store, event_store = lagging
    await event_store.append("s", 0, [{"type": "E"}])

    assert await event_store.get_since(clock.now() + 1) == []


@pytest.mark.asyncio
async def test_invisible_records_are_omitted_not_errors(lagging, clock):
    store, event_store = lagging
    await event_store.append("s", 0, [{"type": "Seen"}])
    store.visible_until = clock.now()
    clock.advance(5)
    await event_store.append("s", 1, [{"type": "Lagging"}])

    events = await event_store.get_since(0)
    assert [e["type"] for e in events] == ["Seen"]

    # The primary table is strongly consistent and already has both.
    assert [e["type"] for e in await event_store.get_range("s")] == ["Seen", "Lagging"]

    store.visible_until = None
    events = await event_store.get_since(0)
    assert [e["type"] for e in events] == ["Seen", "Lagging"]


@pytest.mark.asyncio
async def test_event_timestamp_is_kept_next_to_commit_time(lagging, clock):
    store, event_store = lagging
    await event_store.append("s", 0, [{"type": "Backdated", "timestamp": 7}])

    events = await event_store.get_since(0)

    assert events == [{"type": "Backdated", "timestamp": 7, "committed_at": 100}]
