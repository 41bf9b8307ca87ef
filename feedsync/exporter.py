"""Serialise lookup cache dumps as JSONL, CSV or TXT."""

from __future__ import annotations

import csv
import json
from typing import Iterable, Optional, Sequence, TextIO

from .records import FeedRecord

DUMP_FORMATS = ("jsonl", "csv", "txt")


class DumpExporter:
    """Write ``(key, record)`` pairs to a text stream in one of DUMP_FORMATS."""

    def __init__(
        self,
        stream: TextIO,
        fmt: str = "jsonl",
        field_names: Sequence[str] | None = None,
    ) -> None:
        if fmt not in DUMP_FORMATS:
            raise ValueError(f"Unsupported dump format: {fmt}")
        self.stream = stream
        self.format = fmt
        self.field_names = list(field_names) if field_names is not None else None
        self._csv_writer: Optional[csv.DictWriter] = None
        self.count = 0

    def export(self, key: str, record: FeedRecord) -> None:
        fields = record.as_dict()
        if self.format == "jsonl":
            json.dump({"key": key, "fields": fields}, self.stream, ensure_ascii=False)
            self.stream.write("\n")
        elif self.format == "csv":
            if not self._csv_writer:
                names = self.field_names if self.field_names is not None else list(fields)
                self._csv_writer = csv.DictWriter(
                    self.stream, fieldnames=["key", *names], extrasaction="ignore"
                )
                self._csv_writer.writeheader()
            self._csv_writer.writerow({"key": key, **fields})
        else:  # txt
            ops = json.dumps(fields, ensure_ascii=False, indent=2)
            self.stream.write(f'{{key: "{key}", ops:\n{ops}}},\n')
        self.count += 1

    def export_many(self, items: Iterable[tuple[str, FeedRecord]]) -> int:
        for key, record in items:
            self.export(key, record)
        return self.count

    def flush(self) -> None:
        self.stream.flush()


__all__ = ["DUMP_FORMATS", "DumpExporter"]
