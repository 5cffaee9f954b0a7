"""Append-only extraction audit log.

Each extraction-related operation (``extract``, ``export``,
``duplicate_check``, ``force_re_extract``, ``idempotency_check``,
``derivation_error``) appends one entry. The log lives in the same
:class:`~bdlaw.manifest_store.ManifestStore` as the manifest, under
``config.extraction_log_key``, and is capped to the newest
``config.max_log_entries`` entries.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from bdlaw.config import DEFAULT_CONFIG, PipelineConfig
from bdlaw.io_utils import load_jsonl, save_jsonl, utc_now_iso
from bdlaw.manifest_store import ManifestStore

OPERATIONS: tuple[str, ...] = (
    "extract",
    "export",
    "duplicate_check",
    "force_re_extract",
    "idempotency_check",
    "derivation_error",
)


@dataclass(frozen=True, slots=True)
class AuditEntry:
    timestamp: str
    operation: str
    internal_id: str | None = None
    volume_number: str | None = None
    result: str = "unknown"
    details: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "operation": self.operation,
            "internal_id": self.internal_id,
            "volume_number": self.volume_number,
            "result": self.result,
            "details": dict(self.details),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AuditEntry:
        details = data.get("details")
        return cls(
            timestamp=str(data.get("timestamp") or ""),
            operation=str(data.get("operation") or ""),
            internal_id=data.get("internal_id"),
            volume_number=data.get("volume_number"),
            result=str(data.get("result") or "unknown"),
            details=details if isinstance(details, dict) else {},
        )


def _read(store: ManifestStore, config: PipelineConfig) -> list[dict[str, Any]]:
    blob = store.get(config.extraction_log_key)
    if not isinstance(blob, list):
        return []
    return [e for e in blob if isinstance(e, dict)]


def log_extraction_operation(
    store: ManifestStore,
    operation: str,
    *,
    internal_id: str | None = None,
    volume_number: str | None = None,
    result: str = "unknown",
    details: Mapping[str, Any] | None = None,
    config: PipelineConfig = DEFAULT_CONFIG,
    now: str | None = None,
) -> AuditEntry:
    """Append one entry and trim the stored log to the newest N."""
    if not operation:
        raise ValueError("operation type is required")
    entry = AuditEntry(
        timestamp=now or utc_now_iso(),
        operation=operation,
        internal_id=internal_id,
        volume_number=volume_number,
        result=result,
        details=dict(details or {}),
    )
    records = [*_read(store, config), entry.to_dict()]
    store.set(config.extraction_log_key, records[-config.max_log_entries:])
    return entry


def get_extraction_log(
    store: ManifestStore,
    *,
    operation: str | None = None,
    internal_id: str | None = None,
    limit: int | None = None,
    config: PipelineConfig = DEFAULT_CONFIG,
) -> list[AuditEntry]:
    """Entries oldest-first, filtered; ``limit`` keeps the most recent."""
    entries = [AuditEntry.from_dict(e) for e in _read(store, config)]
    if operation:
        entries = [e for e in entries if e.operation == operation]
    if internal_id:
        entries = [e for e in entries if e.internal_id == internal_id]
    if limit and limit > 0:
        entries = entries[-limit:]
    return entries


def clear_extraction_log(
    store: ManifestStore, config: PipelineConfig = DEFAULT_CONFIG,
) -> None:
    store.remove(config.extraction_log_key)


def export_extraction_log(
    store: ManifestStore,
    path: Path,
    config: PipelineConfig = DEFAULT_CONFIG,
) -> int:
    """Write the log as JSON Lines; returns the number of entries written."""
    records = [e.to_dict() for e in get_extraction_log(store, config=config)]
    save_jsonl(records, path)
    return len(records)


def import_extraction_log(
    store: ManifestStore,
    path: Path,
    config: PipelineConfig = DEFAULT_CONFIG,
) -> int:
    """Append entries from a JSON Lines file (capped like any append)."""
    incoming = [AuditEntry.from_dict(r).to_dict() for r in load_jsonl(path)]
    records = [*_read(store, config), *incoming]
    store.set(config.extraction_log_key, records[-config.max_log_entries:])
    return len(incoming)
