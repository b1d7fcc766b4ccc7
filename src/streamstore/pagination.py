import logging

from .models import Query, QueryResult
from .protocols import DocumentStore


async def fetch_all(store: DocumentStore, query: Query) -> QueryResult:
    """
    Runs `query` until the backend stops returning a continuation token and
    merges every page. There is no page limit: stopping early would silently
    truncate a stream.
    """
    result = QueryResult()
    page_query = query
    while True:
        page = await store.query(page_query)
        result.items.extend(page.items)
        result.count += page.count
        result.scanned_count += page.scanned_count
        result.pages += 1
        if not page.last_evaluated_key:
            break
        page_query = query.model_copy(update={"exclusive_start_key": page.last_evaluated_key})
    logging.debug(f"Fetched {result.count} items from {query.table} in {result.pages} page(s)")
    return result
