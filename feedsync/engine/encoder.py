"""Turn parsed row fields into opaque feed records."""

from __future__ import annotations

from typing import Mapping, Protocol, Sequence

from ..records import FeedRecord


class RecordEncoder(Protocol):
    """Encoding collaborator contract."""

    def encode(self, key: str, row: Sequence[str]) -> FeedRecord:
        ...


class FieldMapEncoder:
    """Pick configured columns out of a row, in mapping order."""

    def __init__(self, fields: Mapping[str, int]) -> None:
        self.fields = dict(fields)

    @property
    def required_columns(self) -> int:
        return max(self.fields.values(), default=-1) + 1

    def encode(self, key: str, row: Sequence[str]) -> FeedRecord:
        values: list[tuple[str, str]] = []
        for name, column in self.fields.items():
            if column >= len(row):
                continue
            value = row[column].strip()
            if value:
                values.append((name, value))
        return FeedRecord(key=key, fields=tuple(values))


__all__ = ["FeedRecord", "FieldMapEncoder", "RecordEncoder"]
