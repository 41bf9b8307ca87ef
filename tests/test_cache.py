from __future__ import annotations

import threading

from feedsync.cache import LookupCache
from feedsync.records import FeedRecord, LookupTable


def make_table(generation: int, keys: list[str]) -> LookupTable:
    entries = {key: FeedRecord(key, (("generation", str(generation)),)) for key in keys}
    return LookupTable(entries, revision=str(generation))


def test_empty_cache_returns_none() -> None:
    cache = LookupCache()
    assert not cache.loaded
    assert cache.lookup("1.2.3.4") is None
    assert list(cache.dump()) == []
    assert cache.size == 0
    assert cache.revision is None


def test_publish_swaps_whole_table() -> None:
    cache = LookupCache()
    first = make_table(1, ["a", "b"])
    assert cache.publish(first) is None
    previous = cache.publish(make_table(2, ["b", "c"]))
    assert previous is first
    assert cache.lookup("a") is None
    assert cache.lookup("c").get("generation") == "2"
    assert cache.revision == "2"
    assert cache.generation == 2


def test_table_is_immutable_copy() -> None:
    scratch = {"a": FeedRecord("a")}
    table = LookupTable(scratch)
    scratch["b"] = FeedRecord("b")
    assert list(table) == ["a"]
    try:
        table._entries["c"] = FeedRecord("c")  # type: ignore[index]
    except TypeError:
        pass
    else:  # pragma: no cover
        raise AssertionError("table should be read-only")


def test_dump_iterates_snapshot_taken_at_call() -> None:
    cache = LookupCache()
    cache.publish(make_table(1, ["a", "b", "c"]))
    items = cache.dump()
    cache.publish(make_table(2, ["x"]))
    dumped = list(items)
    assert [key for key, _ in dumped] == ["a", "b", "c"]
    assert {record.get("generation") for _, record in dumped} == {"1"}
    assert [key for key, _ in cache.dump()] == ["x"]


def test_readers_never_see_mixed_tables() -> None:
    cache = LookupCache()
    keys = [f"10.0.0.{i}" for i in range(50)]
    cache.publish(make_table(0, keys))
    stop = threading.Event()
    mixed: list[set[str]] = []

    def reader() -> None:
        while not stop.is_set():
            table = cache.table
            generations = {record.get("generation") for record in table.values()}
            if len(generations) != 1:
                mixed.append(generations)

    def writer() -> None:
        for generation in range(1, 200):
            cache.publish(make_table(generation, keys))
        stop.set()

    threads = [threading.Thread(target=reader) for _ in range(3)] + [threading.Thread(target=writer)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)
    assert mixed == []
    assert cache.lookup("10.0.0.1").get("generation") == "199"
