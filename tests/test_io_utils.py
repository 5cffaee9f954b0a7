"""Tests for bdlaw.io_utils: deterministic JSON and JSONL helpers."""
from __future__ import annotations

from pathlib import Path

from bdlaw.io_utils import dumps_json, load_json, load_jsonl, save_json, save_jsonl, utc_now_iso


def test_dumps_sorts_keys() -> None:
    assert dumps_json({"b": 1, "a": 2}, pretty=False) == b'{"a":2,"b":1}'
    assert dumps_json({"b": 1, "a": 2}) == dumps_json({"a": 2, "b": 1})


def test_save_creates_parents(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "dir" / "x.json"
    save_json({"ধারা": "১৷"}, path)
    assert load_json(path) == {"ধারা": "১৷"}


def test_jsonl_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "log.jsonl"
    save_jsonl([{"n": 1}, {"n": 2}], path)
    assert path.read_bytes().count(b"\n") == 2
    assert load_jsonl(path) == [{"n": 1}, {"n": 2}]


def test_empty_jsonl(tmp_path: Path) -> None:
    path = tmp_path / "empty.jsonl"
    save_jsonl([], path)
    assert path.read_bytes() == b""
    assert load_jsonl(path) == []


def test_utc_now_iso_is_aware() -> None:
    assert utc_now_iso().endswith("+00:00")
