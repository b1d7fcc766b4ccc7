import argparse
import asyncio
import logging

from streamstore import ConflictError, StoreConfig, sqlite_event_store


def titles(state, events):
    state = state or {"title": None, "renames": 0}
    for event in events:
        if event["type"] == "Created":
            state["title"] = event["title"]
        elif event["type"] == "Renamed":
            state["title"] = event["title"]
            state["renames"] += 1
    return state


async def main():
    parser = argparse.ArgumentParser(description="Append to a stream and fold it back.")
    parser.add_argument("--db-path", default=":memory:")
    parser.add_argument("--stream", default="doc-1")
    parser.add_argument("--renames", type=int, default=12)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    async with sqlite_event_store(StoreConfig(db_path=args.db_path)) as store:
        await store.append(args.stream, 0, [{"type": "Created", "title": "draft"}])
        try:
            await store.append(args.stream, 0, [{"type": "Created", "title": "duplicate"}])
        except ConflictError as e:
            print(f"Second writer lost: {e}")

        for version in range(1, args.renames + 1):
            await store.append(args.stream, version, [{"type": "Renamed", "title": f"draft v{version}"}])

        events = await store.get_range(args.stream)
        print(f"{len(events)} event(s) in {args.stream}")

        result = await store.get_or_rebuild(args.stream, "titles", 1, titles)
        print(f"Folded state at version {result.version}: {result.state}")


if __name__ == "__main__":
    asyncio.run(main())
