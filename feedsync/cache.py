"""Hot-swappable lookup cache.

Readers only ever dereference ``LookupCache._table`` once per call, so they see
either the previous table or the new one in full. Tables are built privately by
the parser and never mutated after publication; the previous table is freed by
reference counting once the last reader drops it.
"""

from __future__ import annotations

from threading import Lock
from typing import Iterator

from .records import FeedRecord, LookupTable


class LookupCache:
    """Hold the currently published table and swap it atomically."""

    def __init__(self) -> None:
        self._table: LookupTable | None = None
        self._publish_lock = Lock()
        self._generation = 0

    @property
    def loaded(self) -> bool:
        return self._table is not None

    @property
    def table(self) -> LookupTable | None:
        return self._table

    @property
    def size(self) -> int:
        table = self._table
        return len(table) if table is not None else 0

    @property
    def revision(self) -> str | None:
        table = self._table
        return table.revision if table is not None else None

    @property
    def generation(self) -> int:
        """Number of publishes so far."""

        return self._generation

    def lookup(self, key: str) -> FeedRecord | None:
        table = self._table
        if table is None:
            return None
        return table.get(key)

    def publish(self, table: LookupTable) -> LookupTable | None:
        """Make ``table`` visible to readers and return the one it replaced."""

        with self._publish_lock:
            previous = self._table
            self._table = table
            self._generation += 1
        return previous

    def dump(self) -> Iterator[tuple[str, FeedRecord]]:
        """Iterate the table that is current now, even if a publish follows."""

        table = self._table
        return self._iterate(table)

    @staticmethod
    def _iterate(table: LookupTable | None) -> Iterator[tuple[str, FeedRecord]]:
        if table is None:
            return
        yield from table.items()


__all__ = ["LookupCache", "LookupTable"]
