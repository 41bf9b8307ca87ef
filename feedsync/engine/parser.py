"""Delimiter separated feed parsing."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator

import structlog

from ..exceptions import ParseError
from ..records import FeedRecord, LookupTable
from .encoder import FieldMapEncoder, RecordEncoder

# number of skipped rows reported individually at debug level
_SKIP_LOG_LIMIT = 5


@dataclass(slots=True)
class ParseResult:
    """Fully built table plus row accounting."""

    table: LookupTable
    loaded: int
    skipped: int


class FeedParser:
    """Build a LookupTable from ``key<delim>field<delim>...`` rows."""

    def __init__(
        self,
        encoder: RecordEncoder | None = None,
        *,
        delimiter: str = "#",
        min_fields: int = 8,
        key_column: int = 0,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.encoder = encoder or FieldMapEncoder({})
        self.delimiter = delimiter
        self.min_fields = min_fields
        self.key_column = key_column
        self.logger = logger or structlog.get_logger("feedsync.parser")

    def parse(
        self,
        source: Path | bytes | str | Iterable[str],
        revision: str | None = None,
    ) -> ParseResult:
        """Parse ``source`` into a new table; malformed rows are skipped, never fatal.

        Args:
            source: Path to the payload file, raw bytes/text, or an iterable of lines.
            revision: Revision token stamped on the resulting table.

        Raises:
            ParseError: The payload cannot be read at all.
        """

        entries: dict[str, FeedRecord] = {}
        loaded = 0
        skipped = 0
        try:
            with self._open(source) as lines:
                reader = csv.reader(lines, delimiter=self.delimiter)
                for row in reader:
                    if not row or not any(cell.strip() for cell in row):
                        continue
                    key = row[self.key_column].strip() if len(row) > self.key_column else ""
                    if len(row) < self.min_fields or not key:
                        skipped += 1
                        if skipped <= _SKIP_LOG_LIMIT:
                            self.logger.debug(
                                "row_skipped",
                                line=reader.line_num,
                                columns=len(row),
                                required=self.min_fields,
                            )
                        continue
                    # later rows overwrite earlier ones with the same key
                    entries[key] = self.encoder.encode(key, row)
                    loaded += 1
        except (OSError, csv.Error) as exc:
            raise ParseError(f"Unreadable feed payload: {exc}") from exc

        if skipped:
            self.logger.info("rows_skipped", skipped=skipped, required=self.min_fields)
        table = LookupTable(entries, revision=revision, skipped=skipped)
        self.logger.info("parse_complete", loaded=loaded, entries=len(table), skipped=skipped)
        return ParseResult(table=table, loaded=loaded, skipped=skipped)

    @staticmethod
    def _open(source: Path | bytes | str | Iterable[str]) -> "_LineSource":
        if isinstance(source, Path):
            return _LineSource(source.open("r", encoding="utf-8", errors="replace", newline=""))
        if isinstance(source, bytes):
            return _LineSource(io.StringIO(source.decode("utf-8", errors="replace"), newline=""))
        if isinstance(source, str):
            return _LineSource(io.StringIO(source, newline=""))
        return _LineSource(iter(source))


class _LineSource:
    """Context manager closing file-like sources, passing iterables through."""

    def __init__(self, lines: Iterable[str]) -> None:
        self._lines = lines

    def __enter__(self) -> Iterator[str]:
        return iter(self._lines)

    def __exit__(self, *exc_info: object) -> None:
        close = getattr(self._lines, "close", None)
        if close is not None:
            close()


__all__ = ["FeedParser", "ParseResult"]
