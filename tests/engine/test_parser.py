from __future__ import annotations

from pathlib import Path

import pytest

from feedsync.config import DEFAULT_FIELDS
from feedsync.engine import FeedParser, FieldMapEncoder
from feedsync.exceptions import ParseError


def build_parser(**kwargs) -> FeedParser:
    return FeedParser(FieldMapEncoder(DEFAULT_FIELDS), **kwargs)


def test_parse_counts_loaded_and_skipped(make_row) -> None:
    payload = "\n".join(
        [
            make_row("1.1.1.1"),
            "2.2.2.2#4#2#Short",
            make_row("3.3.3.3"),
            "",
            "4.4.4.4#1",
            make_row("5.5.5.5"),
        ]
    )
    result = build_parser().parse(payload, revision="77")
    assert result.loaded == 3
    assert result.skipped == 2
    assert sorted(result.table) == ["1.1.1.1", "3.3.3.3", "5.5.5.5"]
    assert result.table.revision == "77"
    assert result.table.skipped == 2


def test_parse_encodes_configured_columns(make_row) -> None:
    result = build_parser().parse(make_row("1.2.3.4", reliability="5", threat="3", activity="C&C", ident="99"))
    record = result.table["1.2.3.4"]
    assert record.key == "1.2.3.4"
    assert record.as_dict() == {
        "alienvault.id": "99",
        "alienvault.reliability": "5",
        "alienvault.threat-level": "3",
        "alienvault.activity": "C&C",
    }


def test_duplicate_key_last_row_wins(make_row) -> None:
    payload = "\n".join([make_row("1.2.3.4", activity="a"), make_row("1.2.3.4", activity="b")])
    result = build_parser().parse(payload)
    assert len(result.table) == 1
    assert result.loaded == 2
    assert result.table["1.2.3.4"].get("alienvault.activity") == "b"


def test_empty_key_is_skipped(make_row) -> None:
    result = build_parser().parse(make_row(""))
    assert len(result.table) == 0
    assert result.skipped == 1


def test_parse_accepts_path_bytes_and_lines(tmp_path: Path, make_row) -> None:
    text = make_row("9.9.9.9") + "\n"
    path = tmp_path / "feed.data"
    path.write_text(text, encoding="utf-8")
    parser = build_parser()
    for source in (path, text.encode("utf-8"), [text]):
        assert list(parser.parse(source).table) == ["9.9.9.9"]


def test_custom_delimiter_and_field_count() -> None:
    parser = FeedParser(FieldMapEncoder({"score": 1}), delimiter=",", min_fields=2)
    result = parser.parse("10.0.0.1,90\n10.0.0.2\n")
    assert result.table["10.0.0.1"].as_dict() == {"score": "90"}
    assert result.skipped == 1


def test_missing_payload_raises_parse_error(tmp_path: Path) -> None:
    with pytest.raises(ParseError):
        build_parser().parse(tmp_path / "absent.data")


def test_directory_payload_raises_parse_error(tmp_path: Path) -> None:
    with pytest.raises(ParseError):
        build_parser().parse(tmp_path)


def test_stray_non_utf8_bytes_do_not_reject_payload(tmp_path: Path, make_row) -> None:
    good = "\n".join(make_row(f"10.0.0.{i}") for i in range(3)) + "\n"
    latin = "#".join(["10.0.0.9", "4", "2", "Scanning Host", "CO", "Bogot\xe1", "4.6,-74.1", "19"])
    payload = good.encode("utf-8") + latin.encode("latin-1") + b"\n"
    path = tmp_path / "feed.data"
    path.write_bytes(payload)

    for source in (payload, path):
        result = build_parser().parse(source)
        assert result.loaded == 4
        assert result.skipped == 0
        assert {"10.0.0.0", "10.0.0.1", "10.0.0.2"} <= set(result.table)
        assert result.table["10.0.0.9"].get("alienvault.id") == "19"


def test_encoder_drops_empty_and_missing_columns() -> None:
    encoder = FieldMapEncoder({"a": 1, "b": 2, "c": 9})
    record = encoder.encode("k", ["k", "x", "  "])
    assert record.fields == (("a", "x"),)
    assert encoder.required_columns == 10


def test_oversized_field_raises_parse_error() -> None:
    with pytest.raises(ParseError):
        build_parser().parse("a" * 200_000 + "\n")
