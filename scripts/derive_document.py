#!/usr/bin/env python3
"""Derive the export record for one captured act.

Input is either an act detail page (``.html``) or a JSON capture::

    {"internal_id": "42", "title": "...", "volume_number": "5",
     "content_raw": "...",
     "sections": [{"title": "...", "body": "..."}],
     "preamble": "...", "enactment": "...",
     "links": [{"text": "...", "href": "...", "dom_section_index": 0}]}

With ``--store`` the record is also checked against the corpus manifest
(language-aware duplicate check + idempotency), recorded, and logged in the
audit log.

Usage:
    python3 scripts/derive_document.py --input act_42.html --internal-id 42
    python3 scripts/derive_document.py --input capture.json --store corpus/ --force

Structured JSON output goes to stdout; human messages go to stderr.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import orjson

from bdlaw.audit_log import log_extraction_operation
from bdlaw.config import PipelineConfig, load_config
from bdlaw.corpus_manifest import (
    check_extraction_idempotency,
    check_language_aware_duplicate,
    force_re_extraction,
    update_manifest,
)
from bdlaw.derivation import StructureData
from bdlaw.dom_adapter import (
    capture_raw_text,
    extract_structure_data,
    read_html,
    structure_data_from_capture,
)
from bdlaw.errors import ManifestSchemaError
from bdlaw.export import act_record_from_export, build_document_export, write_export
from bdlaw.io_utils import load_json
from bdlaw.manifest_store import (
    ManifestStore,
    close_store,
    load_corpus_manifest,
    open_store,
    save_corpus_manifest,
)


def dump_json(obj: Any) -> None:
    sys.stdout.buffer.write(orjson.dumps(obj, option=orjson.OPT_INDENT_2))
    sys.stdout.buffer.write(b"\n")


def log(msg: str) -> None:
    print(msg, file=sys.stderr)


def load_input(path: Path) -> tuple[str, StructureData, dict[str, Any]]:
    """Return ``(content_raw, structure data, capture metadata)``."""
    if path.suffix.lower() in (".html", ".htm"):
        doc = read_html(path)
        raw = capture_raw_text(doc)
        return raw, extract_structure_data(doc, raw), {}
    capture = load_json(path)
    if not isinstance(capture, dict):
        raise ValueError(f"Invalid capture payload in {path}")
    raw = capture.get("content_raw")
    if not isinstance(raw, str):
        raise ValueError(f"Capture {path} has no content_raw string")
    return raw, structure_data_from_capture(capture, raw), capture


def record_in_manifest(
    store: ManifestStore,
    record: dict[str, Any],
    *,
    force: bool,
    config: PipelineConfig,
    now: str | None,
) -> dict[str, Any]:
    """Apply the duplicate policy and record the act; returns the decision."""
    internal_id = str(record["internal_id"])
    volume = record.get("volume_number")
    manifest = load_corpus_manifest(store, config, now=now)

    duplicate = check_language_aware_duplicate(manifest, internal_id, record["content_language"])
    idempotency = check_extraction_idempotency(manifest, internal_id, record.get("content_hash"))
    log_extraction_operation(
        store, "duplicate_check", internal_id=internal_id, volume_number=volume,
        result=duplicate.flag, details={"message": duplicate.message},
        config=config, now=now,
    )
    log_extraction_operation(
        store, "idempotency_check", internal_id=internal_id, volume_number=volume,
        result=idempotency.flag or ("identical" if idempotency.is_identical else "new"),
        details=idempotency.to_dict(), config=config, now=now,
    )

    act = act_record_from_export(record)
    recorded = True
    if force and internal_id in manifest.acts:
        manifest = force_re_extraction(manifest, internal_id, act, now=now)
        log_extraction_operation(
            store, "force_re_extract", internal_id=internal_id, volume_number=volume,
            result="success", config=config, now=now,
        )
    elif duplicate.allow_extraction:
        manifest = update_manifest(manifest, act, now=now)
        log_extraction_operation(
            store, "extract", internal_id=internal_id, volume_number=volume,
            result="success", config=config, now=now,
        )
    else:
        recorded = False
        log(f"Skipped: {duplicate.message}")

    if recorded:
        save_corpus_manifest(store, manifest, config)
    return {
        "recorded": recorded,
        "duplicate_check": duplicate.to_dict(),
        "idempotency": idempotency.to_dict(),
    }


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Derive the export record for one captured act."
    )
    parser.add_argument(
        "--input",
        type=Path,
        required=True,
        help="Act detail page (.html) or JSON capture.",
    )
    parser.add_argument("--internal-id", default=None, help="Act id (default: from the capture).")
    parser.add_argument("--title", default=None, help="Act title (default: from the capture).")
    parser.add_argument("--volume", default=None, help="Volume number (default: from the capture).")
    parser.add_argument("--config", type=Path, default=None, help="Pipeline config JSON.")
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Also write the record to this path.",
    )
    parser.add_argument(
        "--store",
        type=Path,
        default=None,
        help="Manifest store: a directory, or a .duckdb file.",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Re-extract an act already in the manifest (archives the old entry).",
    )
    parser.add_argument(
        "--now",
        default=None,
        help="Override the capture timestamp (ISO-8601).",
    )
    args = parser.parse_args()

    try:
        config = load_config(args.config)
        raw, structure_data, capture = load_input(args.input)
    except (OSError, ValueError) as exc:
        log(f"Error: {exc}")
        sys.exit(1)

    internal_id = args.internal_id or capture.get("internal_id")
    if not internal_id:
        log("Error: --internal-id is required when the capture has none.")
        sys.exit(1)

    record = build_document_export(
        raw,
        internal_id=str(internal_id),
        title=args.title if args.title is not None else capture.get("title"),
        volume_number=args.volume or capture.get("volume_number"),
        structure_data=structure_data,
        config=config,
        now=args.now,
    )
    failed = False
    error = record.get("structure_derivation_error")
    if error:
        log(f"Error: structure derivation failed ({error})")
        failed = True
    if record.get("content_hash") is None:
        log(f"Error: content hash unavailable ({record.get('reason')})")
        failed = True

    if args.output is not None:
        write_export(record, args.output)
        log(f"Wrote {args.output}")

    if args.store is not None and not failed:
        store = open_store(args.store)
        try:
            record["manifest"] = record_in_manifest(
                store, record, force=args.force, config=config, now=args.now,
            )
        except ManifestSchemaError as exc:
            log(f"Error: {exc}")
            failed = True
        finally:
            close_store(store)
    elif args.store is not None and error:
        store = open_store(args.store)
        try:
            log_extraction_operation(
                store, "derivation_error", internal_id=str(internal_id),
                result=error, config=config, now=args.now,
            )
        finally:
            close_store(store)

    structure = record.get("structure") or {}
    meta = structure.get("metadata") or {}
    log(
        f"Act {internal_id}: {meta.get('total_sections', 0)} sections, "
        f"{len(record.get('cross_references') or [])} cross references, "
        f"language={record['content_language']}"
    )
    dump_json(record)
    if failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
