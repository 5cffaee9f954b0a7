#!/usr/bin/env python3
"""Inspect and maintain the corpus manifest and the extraction audit log.

Usage:
    python3 scripts/corpus_manifest_tool.py --store corpus/ show
    python3 scripts/corpus_manifest_tool.py --store corpus/ record exports/*.json
    python3 scripts/corpus_manifest_tool.py --store corpus/ check-duplicate --internal-id 42 --language bengali
    python3 scripts/corpus_manifest_tool.py --store corpus/ check-idempotency --internal-id 42 --hash sha256:...
    python3 scripts/corpus_manifest_tool.py --store corpus/ coverage exports/*.json
    python3 scripts/corpus_manifest_tool.py --store corpus/ log --operation extract --limit 20
    python3 scripts/corpus_manifest_tool.py --store corpus.duckdb export-log --output log.jsonl
    python3 scripts/corpus_manifest_tool.py --store corpus/ clear --include-log

``--store`` is a directory (one JSON file per key) or a ``.duckdb`` file.
Structured JSON output goes to stdout; human messages go to stderr.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import orjson

from bdlaw.audit_log import (
    clear_extraction_log,
    export_extraction_log,
    get_extraction_log,
    log_extraction_operation,
)
from bdlaw.config import PipelineConfig, load_config
from bdlaw.corpus_manifest import (
    check_extraction_idempotency,
    check_language_aware_duplicate,
    force_re_extraction,
    update_cross_reference_coverage,
    update_manifest,
)
from bdlaw.export import act_record_from_export, referenced_act_ids_from_exports
from bdlaw.io_utils import load_json
from bdlaw.manifest_store import (
    ManifestStore,
    clear_corpus_manifest,
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


def _load_exports(paths: list[Path]) -> list[tuple[Path, dict[str, Any]]]:
    records: list[tuple[Path, dict[str, Any]]] = []
    for path in paths:
        record = load_json(path)
        if not isinstance(record, dict) or "internal_id" not in record:
            raise ValueError(f"Invalid export payload in {path}")
        records.append((path, record))
    return records


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_show(store: ManifestStore, args: argparse.Namespace, config: PipelineConfig) -> dict[str, Any]:
    manifest = load_corpus_manifest(store, config, now=args.now)
    return manifest.to_dict()


def cmd_record(store: ManifestStore, args: argparse.Namespace, config: PipelineConfig) -> dict[str, Any]:
    manifest = load_corpus_manifest(store, config, now=args.now)
    results: list[dict[str, Any]] = []
    for path, record in _load_exports(args.exports):
        internal_id = str(record["internal_id"])
        act = act_record_from_export(record, file_path=str(path))
        language = act.content_language or "english"
        check = check_language_aware_duplicate(manifest, internal_id, language)
        log_extraction_operation(
            store, "duplicate_check", internal_id=internal_id,
            volume_number=act.volume_number, result=check.flag,
            details={"message": check.message}, config=config, now=args.now,
        )
        if args.force and internal_id in manifest.acts:
            manifest = force_re_extraction(manifest, internal_id, act, now=args.now)
            operation, recorded = "force_re_extract", True
        elif check.allow_extraction:
            manifest = update_manifest(manifest, act, now=args.now)
            operation, recorded = "extract", True
        else:
            operation, recorded = None, False
            log(f"Skipped {path}: {check.message}")
        if operation is not None:
            log_extraction_operation(
                store, operation, internal_id=internal_id,
                volume_number=act.volume_number, result="success",
                details={"file_path": str(path)}, config=config, now=args.now,
            )
        results.append({
            "file": str(path),
            "internal_id": internal_id,
            "recorded": recorded,
            "flag": check.flag,
            "message": check.message,
        })
    save_corpus_manifest(store, manifest, config)
    return {
        "recorded": sum(1 for r in results if r["recorded"]),
        "skipped": sum(1 for r in results if not r["recorded"]),
        "results": results,
        "corpus_stats": manifest.corpus_stats.to_dict(),
    }


def cmd_check_duplicate(
    store: ManifestStore, args: argparse.Namespace, config: PipelineConfig,
) -> dict[str, Any]:
    manifest = load_corpus_manifest(store, config, now=args.now)
    return check_language_aware_duplicate(manifest, args.internal_id, args.language).to_dict()


def cmd_check_idempotency(
    store: ManifestStore, args: argparse.Namespace, config: PipelineConfig,
) -> dict[str, Any]:
    manifest = load_corpus_manifest(store, config, now=args.now)
    return check_extraction_idempotency(manifest, args.internal_id, args.hash).to_dict()


def cmd_coverage(store: ManifestStore, args: argparse.Namespace, config: PipelineConfig) -> dict[str, Any]:
    manifest = load_corpus_manifest(store, config, now=args.now)
    records = [record for _path, record in _load_exports(args.exports)]
    manifest = update_cross_reference_coverage(
        manifest, referenced_act_ids_from_exports(records), now=args.now,
    )
    save_corpus_manifest(store, manifest, config)
    return manifest.coverage.to_dict()


def cmd_log(store: ManifestStore, args: argparse.Namespace, config: PipelineConfig) -> dict[str, Any]:
    entries = get_extraction_log(
        store,
        operation=args.operation,
        internal_id=args.internal_id,
        limit=args.limit,
        config=config,
    )
    return {"count": len(entries), "entries": [e.to_dict() for e in entries]}


def cmd_export_log(store: ManifestStore, args: argparse.Namespace, config: PipelineConfig) -> dict[str, Any]:
    written = export_extraction_log(store, args.output, config)
    log(f"Wrote {written} entries to {args.output}")
    return {"output": str(args.output), "entries": written}


def cmd_clear(store: ManifestStore, args: argparse.Namespace, config: PipelineConfig) -> dict[str, Any]:
    clear_corpus_manifest(store, config)
    if args.include_log:
        clear_extraction_log(store, config)
    return {"cleared_manifest": True, "cleared_log": bool(args.include_log)}


COMMANDS = {
    "show": cmd_show,
    "record": cmd_record,
    "check-duplicate": cmd_check_duplicate,
    "check-idempotency": cmd_check_idempotency,
    "coverage": cmd_coverage,
    "log": cmd_log,
    "export-log": cmd_export_log,
    "clear": cmd_clear,
}


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Inspect and maintain the corpus manifest and extraction log."
    )
    parser.add_argument(
        "--store",
        type=Path,
        required=True,
        help="Manifest store: a directory, or a .duckdb file.",
    )
    parser.add_argument("--config", type=Path, default=None, help="Pipeline config JSON.")
    parser.add_argument(
        "--now",
        default=None,
        help="Override the timestamp used for updates (ISO-8601).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("show", help="Print the manifest.")

    p_record = sub.add_parser("record", help="Record export files in the manifest.")
    p_record.add_argument("exports", type=Path, nargs="+", help="Export record JSON files.")
    p_record.add_argument(
        "--force",
        action="store_true",
        help="Archive and replace acts already in the manifest.",
    )

    p_dup = sub.add_parser("check-duplicate", help="Language-aware duplicate check.")
    p_dup.add_argument("--internal-id", required=True, help="Act id.")
    p_dup.add_argument(
        "--language",
        required=True,
        choices=["bengali", "english"],
        help="Language of the new capture.",
    )

    p_idem = sub.add_parser("check-idempotency", help="Compare a content hash with the stored one.")
    p_idem.add_argument("--internal-id", required=True, help="Act id.")
    p_idem.add_argument("--hash", default=None, help="Tagged content hash (e.g. sha256:...).")

    p_cov = sub.add_parser("coverage", help="Recompute cross-reference coverage.")
    p_cov.add_argument("exports", type=Path, nargs="+", help="Export record JSON files.")

    p_log = sub.add_parser("log", help="Print extraction log entries.")
    p_log.add_argument("--operation", default=None, help="Only this operation type.")
    p_log.add_argument("--internal-id", default=None, help="Only this act.")
    p_log.add_argument("--limit", type=int, default=None, help="Most recent N entries.")

    p_export = sub.add_parser("export-log", help="Write the extraction log as JSON Lines.")
    p_export.add_argument("--output", type=Path, required=True, help="Output .jsonl path.")

    p_clear = sub.add_parser("clear", help="Remove the manifest (explicit corpus clear).")
    p_clear.add_argument(
        "--include-log",
        action="store_true",
        help="Also remove the extraction log.",
    )

    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except (OSError, ValueError) as exc:
        log(f"Error: {exc}")
        sys.exit(1)

    store = open_store(args.store)
    try:
        output = COMMANDS[args.command](store, args, config)
    except (OSError, ValueError) as exc:
        log(f"Error: {exc}")
        sys.exit(1)
    finally:
        close_store(store)
    dump_json(output)


if __name__ == "__main__":
    main()
