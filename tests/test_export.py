"""Tests for bdlaw.export: per-document export record."""
from __future__ import annotations

import hashlib
from pathlib import Path

from bdlaw.derivation import StructureData
from bdlaw.export import (
    act_record_from_export,
    build_document_export,
    referenced_act_ids_from_exports,
    serialize_export,
    write_export,
)
from bdlaw.io_utils import load_json
from bdlaw.reference_anchor import LinkCandidate
from bdlaw.structure_builder import section_fragment_from_dom

NOW = "2024-01-01T00:00:00+00:00"
TITLE = "সংজ্ঞা ১৷"
BODY = "(ক) Act XV of 1984 &amp; ১৯৯১ সনের ২২ নং আইন"
RAW = f"{TITLE}\n{BODY}"


def _data() -> StructureData:
    offset = RAW.index("১৯৯১")
    return StructureData(
        sections=(section_fragment_from_dom(TITLE, BODY, dom_index=0),),
        link_candidates=(
            LinkCandidate("১৯৯১ সনের ২২ নং আইন", offset, "/act-details-712.html", "712"),
        ),
    )


def _record() -> dict[str, object]:
    return build_document_export(
        RAW, internal_id="42", title="পরিবেশ আইন", volume_number="5",
        structure_data=_data(), now=NOW,
    )


def test_record_fields() -> None:
    record = _record()
    assert record["internal_id"] == "42"
    assert record["captured_at"] == NOW
    assert record["schema_version"] == "2.0"
    assert record["content_raw"] == RAW
    assert record["content_corrected"] == RAW.replace("&amp;", "&")
    assert record["content_hash"] == "sha256:" + hashlib.sha256(RAW.encode("utf-8")).hexdigest()
    assert record["hash_source"] == "content_raw"
    assert record["content_language"] == "bengali"
    assert record["flagged_transformation_count"] == 0
    assert len(record["transformation_log"]) == 1  # type: ignore[arg-type]
    assert record["marker_counts"]["numeral_danda_count"] == 1  # type: ignore[index]
    assert "structure_derivation_error" not in record


def test_references_and_lexical_scan() -> None:
    record = _record()
    refs = record["cross_references"]
    assert [r["act_id"] for r in refs] == [None, "712"]  # type: ignore[union-attr]
    lexical = record["lexical_references"]
    assert {c["pattern_type"] for c in lexical} == {"ENGLISH_ACT_SHORT", "BENGALI_ACT_SHORT"}  # type: ignore[union-attr]


def test_serialization_is_deterministic() -> None:
    assert serialize_export(_record()) == serialize_export(_record())
    compact = serialize_export(_record(), pretty=False)
    assert b"\n" not in compact.replace(b"\\n", b"")


def test_write_and_manifest_record(tmp_path: Path) -> None:
    record = _record()
    path = tmp_path / "out" / "act_42.json"
    write_export(record, path)
    assert path.read_bytes() == serialize_export(record)
    act = act_record_from_export(load_json(path), file_path=str(path))
    assert act.internal_id == "42"
    assert act.content_hash == record["content_hash"]
    assert act.content_length == len(RAW)
    assert act.cross_reference_count == 2
    assert act.capture_timestamp == NOW
    assert act.file_path == str(path)


def test_missing_raw_reports_hash_failure() -> None:
    record = build_document_export("", internal_id="1", now=NOW)
    assert record["content_hash"] is None
    assert record["reason"] == "missing_input"
    assert record["structure"] is None


def test_referenced_act_ids() -> None:
    records = [
        {"cross_references": [{"act_id": "712"}, {"act_id": None}, {"act_id": "712"}]},
        {"cross_references": [{"act_id": "9"}]},
        {},
    ]
    assert referenced_act_ids_from_exports(records) == ["712", "9"]
