import argparse
import asyncio
import os
import tempfile
import time

from cryptography.fernet import Fernet

from streamstore import StoreConfig, sqlite_event_store


def counter(state, events):
    state = state or {"count": 0}
    for event in events:
        if event["type"] == "Increment":
            state["count"] += 1
        elif event["type"] == "Decrement":
            state["count"] -= 1
    return state


async def run_mode(mode: str, config: StoreConfig, num_commits: int, batch_size: int):
    async with sqlite_event_store(config) as store:
        # --- Append benchmark ---
        start_append = time.perf_counter()
        for version in range(num_commits):
            await store.append("bench", version, [{"type": "Increment", "n": i} for i in range(batch_size)])
        append_time = time.perf_counter() - start_append

        # --- Read benchmark ---
        start_read = time.perf_counter()
        events = await store.get_range("bench")
        read_time = time.perf_counter() - start_read
        assert len(events) == num_commits * batch_size

        # --- Snapshot benchmark: cold rebuild, then a warm one off the snapshot ---
        start_cold = time.perf_counter()
        cold = await store.get_or_rebuild("bench", "counter", 1, counter)
        cold_time = time.perf_counter() - start_cold
        start_warm = time.perf_counter()
        warm = await store.get_or_rebuild("bench", "counter", 1, counter)
        warm_time = time.perf_counter() - start_warm
        assert cold.state == warm.state

    total = num_commits * batch_size
    print(
        f"{mode:<22} - Append: {append_time:.4f}s ({num_commits / append_time:,.0f} commits/s), "
        f"Read: {read_time:.4f}s ({total / read_time:,.0f} events/s), "
        f"Rebuild cold/warm: {cold_time:.4f}s/{warm_time:.4f}s"
    )


async def benchmark(num_commits: int, batch_size: int, page_size: int):
    print(f"Benchmarking with {num_commits} commits of {batch_size} event(s), page size {page_size}...")

    await run_mode("In-memory SQLite", StoreConfig(db_path=":memory:", page_size=page_size), num_commits, batch_size)

    with tempfile.TemporaryDirectory() as tmpdir:
        config = StoreConfig(db_path=os.path.join(tmpdir, "bench.db"), page_size=page_size)
        await run_mode("File-based SQLite", config, num_commits, batch_size)

    with tempfile.TemporaryDirectory() as tmpdir:
        config = StoreConfig(
            db_path=os.path.join(tmpdir, "bench.db"),
            page_size=page_size,
            encryption_key=Fernet.generate_key(),
        )
        await run_mode("File-based, encrypted", config, num_commits, batch_size)


async def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--num-commits", type=int, default=1000)
    parser.add_argument("--batch-size", type=int, default=1)
    parser.add_argument("--page-size", type=int, default=100)
    args = parser.parse_args()
    await benchmark(args.num_commits, args.batch_size, args.page_size)


if __name__ == "__main__":
    asyncio.run(main())
