from __future__ import annotations

import io
import json

import pytest

from feedsync.exporter import DumpExporter
from feedsync.records import FeedRecord

ITEMS = [
    ("1.2.3.4", FeedRecord("1.2.3.4", (("alienvault.id", "11"), ("alienvault.activity", "Scanning Host")))),
    ("5.6.7.8", FeedRecord("5.6.7.8", (("alienvault.id", "12"),))),
]


def test_jsonl_dump() -> None:
    stream = io.StringIO()
    count = DumpExporter(stream, "jsonl").export_many(ITEMS)
    assert count == 2
    lines = [json.loads(line) for line in stream.getvalue().splitlines()]
    assert lines[0] == {
        "key": "1.2.3.4",
        "fields": {"alienvault.id": "11", "alienvault.activity": "Scanning Host"},
    }
    assert lines[1]["key"] == "5.6.7.8"


def test_csv_dump_uses_field_names() -> None:
    stream = io.StringIO()
    DumpExporter(stream, "csv", ["alienvault.id", "alienvault.activity"]).export_many(ITEMS)
    lines = stream.getvalue().splitlines()
    assert lines[0] == "key,alienvault.id,alienvault.activity"
    assert lines[1] == "1.2.3.4,11,Scanning Host"
    assert lines[2] == "5.6.7.8,12,"


def test_txt_dump_keeps_key_ops_layout() -> None:
    stream = io.StringIO()
    DumpExporter(stream, "txt").export_many(ITEMS[:1])
    text = stream.getvalue()
    assert text.startswith('{key: "1.2.3.4", ops:\n')
    assert text.endswith("},\n")
    assert '"alienvault.id": "11"' in text


def test_unknown_format_rejected() -> None:
    with pytest.raises(ValueError):
        DumpExporter(io.StringIO(), "xml")
