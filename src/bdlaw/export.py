"""Per-document export record and deterministic serialization.

The export fragment (``structure`` + ``cross_references``) is a pure function
of content_raw and the DOM fragments. The full document record wraps it with
the three content versions, the content hash, language, title, marker
statistics, the transformation log and the lexical citation scan.
Serialization sorts keys, so equal records give equal bytes.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from bdlaw.citations import detect_cross_references
from bdlaw.config import DEFAULT_CONFIG, PipelineConfig
from bdlaw.content_versioning import (
    compute_content_hash,
    detect_content_language,
    freeze,
    hash_result_to_dict,
    preserve_title,
)
from bdlaw.corpus_manifest import ActRecord
from bdlaw.derivation import RAW_KEY, DerivationResult, StructureData, derive
from bdlaw.io_utils import dumps_json, save_json, utc_now_iso
from bdlaw.markers import count_bengali_section_markers
from bdlaw.transformations import flagged_transformations, repair_encoding


def export_fragment(result: DerivationResult) -> dict[str, Any]:
    """``{structure, cross_references[, structure_derivation_error]}``."""
    return result.to_dict()


def serialize_export(record: Mapping[str, Any], *, pretty: bool = True) -> bytes:
    return dumps_json(dict(record), pretty=pretty)


def write_export(record: Mapping[str, Any], path: Path) -> None:
    save_json(dict(record), path, pretty=True)


def build_document_export(
    raw: str,
    *,
    internal_id: str,
    title: str | None = None,
    volume_number: str | None = None,
    structure_data: StructureData | None = None,
    config: PipelineConfig = DEFAULT_CONFIG,
    now: str | None = None,
) -> dict[str, Any]:
    """Freeze ``raw``, hash it, repair a corrected copy, derive structure."""
    stamp = now or utc_now_iso()
    content = freeze(raw)
    corrected, log = repair_encoding(content, config, now=stamp)
    title_kept = preserve_title(title)
    derivation = derive({RAW_KEY: content.raw}, structure_data)
    lexical = detect_cross_references(content.raw, config)

    return {
        "internal_id": internal_id,
        "title_raw": title_kept.title_raw,
        "title_normalized": title_kept.title_normalized,
        "volume_number": volume_number,
        "captured_at": stamp,
        "schema_version": config.schema_version,
        "extractor_version": config.extractor_version,
        **corrected.to_dict(),
        **hash_result_to_dict(compute_content_hash(content)),
        "content_language": detect_content_language(content.raw),
        "marker_counts": count_bengali_section_markers(content.raw),
        "transformation_log": [e.to_dict() for e in log],
        "flagged_transformation_count": len(flagged_transformations(log)),
        "lexical_references": [c.to_dict() for c in lexical],
        **export_fragment(derivation),
    }


def act_record_from_export(
    record: Mapping[str, Any],
    *,
    file_path: str | None = None,
) -> ActRecord:
    """Manifest input for a document record built by :func:`build_document_export`."""
    return ActRecord(
        internal_id=str(record["internal_id"]),
        title=str(record.get("title_raw") or ""),
        volume_number=record.get("volume_number"),
        capture_timestamp=record.get("captured_at"),
        file_path=file_path,
        content_hash=record.get("content_hash"),
        content_language=record.get("content_language"),
        content_length=len(record.get(RAW_KEY) or ""),
        cross_reference_count=len(record.get("cross_references") or ()),
    )


def referenced_act_ids_from_exports(records: Iterable[Mapping[str, Any]]) -> list[str]:
    """Distinct ``act_id`` values across the records' cross references."""
    out: list[str] = []
    for record in records:
        for ref in record.get("cross_references") or ():
            act_id = ref.get("act_id") if isinstance(ref, Mapping) else None
            if act_id and act_id not in out:
                out.append(str(act_id))
    return out
