"""Value types shared by the parser, the encoder and the lookup cache."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Iterator


@dataclass(frozen=True, slots=True)
class FeedRecord:
    """One parsed row: lookup key plus encoded field values."""

    key: str
    fields: tuple[tuple[str, str], ...] = ()

    def as_dict(self) -> dict[str, str]:
        return dict(self.fields)

    def get(self, name: str, default: str | None = None) -> str | None:
        for field_name, value in self.fields:
            if field_name == name:
                return value
        return default


class LookupTable(Mapping[str, FeedRecord]):
    """Read-only mapping of lookup key to record, plus load metadata."""

    __slots__ = ("_entries", "revision", "loaded_at", "skipped")

    def __init__(
        self,
        entries: dict[str, FeedRecord] | None = None,
        *,
        revision: str | None = None,
        skipped: int = 0,
    ) -> None:
        # copy so the caller's scratch dict cannot leak mutations in
        self._entries = MappingProxyType(dict(entries or {}))
        self.revision = revision
        self.skipped = skipped
        self.loaded_at = datetime.now(timezone.utc)

    def __getitem__(self, key: str) -> FeedRecord:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"LookupTable(size={len(self)}, revision={self.revision!r})"


__all__ = ["FeedRecord", "LookupTable"]
