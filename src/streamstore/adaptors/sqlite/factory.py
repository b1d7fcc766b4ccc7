from contextlib import asynccontextmanager
from typing import AsyncIterator
import asyncio
import logging
import uuid

import aiosqlite

from ...config import StoreConfig
from ...protocols import Clock, Validator
from ...schema import event_table_schema, snapshot_table_schema
from ...store import EventStore
from .handle import SQLiteDocumentStore


async def _configure(conn: aiosqlite.Connection, config: StoreConfig, *, wal: bool = False):
    if wal:
        await conn.execute("PRAGMA journal_mode=WAL;")
        await conn.execute("PRAGMA synchronous = NORMAL;")
    await conn.execute(f"PRAGMA cache_size = {config.cache_size_kib};")
    await conn.execute(f"PRAGMA busy_timeout = {config.busy_timeout_ms};")


@asynccontextmanager
async def sqlite_document_store(config: StoreConfig) -> AsyncIterator[SQLiteDocumentStore]:
    """
    Opens the SQLite resources described by `config` and yields a
    `SQLiteDocumentStore` with the event and snapshot tables provisioned.
    Every connection is closed on exit.

    A file database gets one write connection and a pool of read-only
    connections. An in-memory database lives only as long as its
    connections, so a single connection serves both roles.
    """
    db_path = config.db_path
    if not db_path:
        raise ValueError("`db_path` must be provided in the configuration.")

    is_memory_db = db_path == ":memory:"
    # A private name per store keeps in-memory databases from leaking between stores.
    db_connect_string = f"file:streamstore_{uuid.uuid4().hex}?mode=memory" if is_memory_db else db_path

    write_conn = await aiosqlite.connect(db_connect_string, uri=is_memory_db)
    read_connections = []
    store = None
    try:
        await _configure(write_conn, config, wal=not is_memory_db)
        pool: asyncio.Queue[aiosqlite.Connection] = asyncio.Queue()
        if is_memory_db:
            await pool.put(write_conn)
        else:
            for _ in range(config.pool_size):
                conn = await aiosqlite.connect(f"file:{db_connect_string}?mode=ro", uri=True)
                read_connections.append(conn)
                await _configure(conn, config)
                await pool.put(conn)

        store = SQLiteDocumentStore(write_conn, asyncio.Lock(), pool)
        await store.create_table(event_table_schema(config.events_table))
        await store.create_table(snapshot_table_schema(config.snapshots_table))
        logging.info(f"SQLite document store opened at {db_path}")

        yield store
    finally:
        if store is not None:
            await store.close()
        else:
            await asyncio.gather(*(conn.close() for conn in read_connections))
            await write_conn.close()
        logging.info(f"SQLite document store closed at {db_path}")


@asynccontextmanager
async def sqlite_event_store(
    config: StoreConfig | None = None,
    *,
    validator: Validator | None = None,
    clock: Clock | None = None,
) -> AsyncIterator[EventStore]:
    """
    A factory for an `EventStore` backed by SQLite. Used as an async context
    manager; the backend's resources are released when the block exits.
    """
    config = config or StoreConfig()
    async with sqlite_document_store(config) as store:
        yield EventStore(store, config, validator=validator, clock=clock)
