"""
This module provides the SQLite implementation of the `DocumentStore`
protocol. Each logical table is one SQLite table holding the item as JSON
next to its key columns, plus an optional pair of columns for a secondary
index. Pages are cut by row count and continued with an exclusive start key,
the same contract a remote document database offers.
"""
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Tuple
import asyncio
import json
import logging

import aiosqlite

from ...errors import ConditionalWriteFailed
from ...models import Query, QueryPage, TableSchema
from ...protocols import DocumentStore


def _quote(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


class SQLiteDocumentStore(DocumentStore):
    """
    Serves writes from a single dedicated connection guarded by a lock and
    reads from a pool of connections. SQLite reads are always consistent, so
    `consistent_read` needs no special handling here.
    """

    def __init__(
        self,
        write_conn: aiosqlite.Connection,
        write_lock: asyncio.Lock,
        read_pool: asyncio.Queue,
    ):
        self.write_conn = write_conn
        self.write_lock = write_lock
        self.read_pool = read_pool
        self.schemas: Dict[str, TableSchema] = {}
        self.closed = False

    @asynccontextmanager
    async def _read_conn(self) -> AsyncIterator[aiosqlite.Connection]:
        """Provides a connection from the read pool."""
        conn = await self.read_pool.get()
        try:
            yield conn
        finally:
            await self.read_pool.put(conn)

    def _schema(self, table: str) -> TableSchema:
        try:
            return self.schemas[table]
        except KeyError:
            raise ValueError(f"Unknown table '{table}'. Call create_table() first.") from None

    async def create_table(self, schema: TableSchema):
        if len(schema.indexes) > 1:
            raise ValueError("The SQLite adaptor supports at most one secondary index per table.")
        name = _quote(schema.name)
        async with self.write_lock:
            await self.write_conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {name} (
                    pk NOT NULL,
                    sk NOT NULL,
                    idx_pk,
                    idx_sk,
                    item TEXT NOT NULL,
                    PRIMARY KEY (pk, sk)
                )
                """
            )
            # Rows without the index attributes stay out of the index, like a
            # sparse secondary index.
            for index_name in schema.indexes:
                await self.write_conn.execute(
                    f"CREATE INDEX IF NOT EXISTS {_quote(schema.name + '__' + index_name)} "
                    f"ON {name} (idx_pk, idx_sk, pk, sk) WHERE idx_pk IS NOT NULL"
                )
            await self.write_conn.commit()
        self.schemas[schema.name] = schema

    async def put_item(self, table: str, item: Dict[str, Any], *, if_absent: bool = False):
        schema = self._schema(table)
        index_attrs = next(iter(schema.indexes.values()), None)
        params = (
            item[schema.partition_key],
            item[schema.sort_key],
            item.get(index_attrs[0]) if index_attrs else None,
            item.get(index_attrs[1]) if index_attrs else None,
            json.dumps(item),
        )
        verb = "INSERT" if if_absent else "INSERT OR REPLACE"
        async with self.write_lock:
            try:
                await self.write_conn.execute(
                    f"{verb} INTO {_quote(table)} (pk, sk, idx_pk, idx_sk, item) VALUES (?, ?, ?, ?, ?)",
                    params,
                )
                await self.write_conn.commit()
            except aiosqlite.IntegrityError as e:
                await self.write_conn.rollback()
                key = {schema.partition_key: params[0], schema.sort_key: params[1]}
                raise ConditionalWriteFailed(table, key) from e
            except Exception as e:
                await self.write_conn.rollback()
                logging.error(f"Failed to write item to SQLite table {table}: {e}")
                raise

    async def delete_item(self, table: str, key: Dict[str, Any]):
        schema = self._schema(table)
        async with self.write_lock:
            try:
                await self.write_conn.execute(
                    f"DELETE FROM {_quote(table)} WHERE pk = ? AND sk = ?",
                    (key[schema.partition_key], key[schema.sort_key]),
                )
                await self.write_conn.commit()
            except Exception as e:
                await self.write_conn.rollback()
                logging.error(f"Failed to delete item from SQLite table {table}: {e}")
                raise

    def _build_select(self, query: Query) -> Tuple[str, List[Any], Tuple[str, str], List[str]]:
        schema = self._schema(query.table)
        if query.index:
            if query.index not in schema.indexes:
                raise ValueError(f"Table '{query.table}' has no index '{query.index}'.")
            key_attrs = schema.indexes[query.index]
            part_col, sort_col = "idx_pk", "idx_sk"
            order = ["idx_sk", "pk", "sk"]
        else:
            key_attrs = (schema.partition_key, schema.sort_key)
            part_col, sort_col = "pk", "sk"
            order = ["sk"]

        condition = query.condition
        clauses = [f"{part_col} = ?"]
        params: List[Any] = [condition.partition_value]
        if condition.sort_op == "begins_with":
            clauses.append(f"substr({sort_col}, 1, length(?)) = ?")
            params.extend([condition.sort_value, condition.sort_value])
        elif condition.sort_op:
            clauses.append(f"{sort_col} {condition.sort_op} ?")
            params.append(condition.sort_value)

        start = query.exclusive_start_key
        if start:
            if query.index:
                clauses.append("(idx_sk, pk, sk) > (?, ?, ?)")
                params.extend([start[key_attrs[1]], start[schema.partition_key], start[schema.sort_key]])
            else:
                clauses.append("sk > ?")
                params.append(start[schema.sort_key])

        sql = f"SELECT item FROM {_quote(query.table)} WHERE {' AND '.join(clauses)} ORDER BY {', '.join(order)}"
        if query.limit:
            # One extra row tells us whether another page exists.
            sql += " LIMIT ?"
            params.append(query.limit + 1)
        return sql, params, key_attrs, [schema.partition_key, schema.sort_key]

    async def query(self, query: Query) -> QueryPage:
        sql, params, key_attrs, primary_attrs = self._build_select(query)
        async with self._read_conn() as conn:
            async with conn.execute(sql, params) as cursor:
                rows = await cursor.fetchall()

        items = [json.loads(row[0]) for row in rows]
        last_evaluated_key = None
        if query.limit and len(items) > query.limit:
            items = items[: query.limit]
            last = items[-1]
            last_evaluated_key = {attr: last[attr] for attr in {*key_attrs, *primary_attrs}}
        return QueryPage(
            items=items,
            count=len(items),
            scanned_count=len(items),
            last_evaluated_key=last_evaluated_key,
        )

    async def close(self):
        """Closes the pooled read connections and the write connection. Idempotent."""
        if self.closed:
            return
        async with self.write_lock:
            pooled = []
            while not self.read_pool.empty():
                pooled.append(self.read_pool.get_nowait())
            await asyncio.gather(*(conn.close() for conn in pooled if conn is not self.write_conn))
            await self.write_conn.close()
            self.closed = True
