"""Corpus manifest: the durable index of every extracted act.

A :class:`CorpusManifest` is an immutable value. Every operation takes the
current manifest and returns the next one; nothing is mutated in place, so a
manifest that was handed out stays valid for readers while a writer prepares
its successor. Persistence is a separate concern (:mod:`bdlaw.manifest_store`);
the caller serializes load -> apply -> save cycles.

Aggregate statistics and volume tracking are recomputed from the act entries
on every update rather than adjusted incrementally, so they cannot drift from
the entries they describe.

Decision results (:class:`DuplicateCheck`, :class:`IdempotencyCheck`) always
carry a human-readable ``message`` and a machine-readable ``flag``. Every
operation accepts ``None`` for the manifest and treats it as empty.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, TypeVar

from bdlaw.config import EXTRACTOR_VERSION, SCHEMA_VERSION
from bdlaw.errors import (
    DUPLICATE_BLOCKED,
    HASH_COMPUTATION_FAILED,
    NO_PREVIOUS_HASH,
    SOURCE_CHANGED,
    ManifestSchemaError,
)
from bdlaw.io_utils import utc_now_iso

BENGALI = "bengali"
ENGLISH = "english"
UNKNOWN_VOLUME = "unknown"
FORCE_RE_EXTRACTION = "force_re_extraction"

# Duplicate-check flags
FLAG_NEW = "new"
FLAG_REPLACE_EXISTING = "replace_existing"
FLAG_BENGALI_PREFERRED = "bengali_preferred"
FLAG_LANGUAGE_DIFFERS = "language_differs"


V = TypeVar("V")


def _frozen(mapping: Mapping[str, V] | None = None) -> Mapping[str, V]:
    return MappingProxyType(dict(mapping or {}))


# ---------------------------------------------------------------------------
# Entries
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ActRecord:
    """One finished extraction, as offered to the manifest."""

    internal_id: str
    title: str = ""
    volume_number: str | None = None
    capture_timestamp: str | None = None
    file_path: str | None = None
    content_hash: str | None = None
    content_language: str | None = None
    content_length: int = 0
    cross_reference_count: int = 0


@dataclass(frozen=True, slots=True)
class ManifestEntry:
    internal_id: str
    title: str
    volume_number: str
    capture_timestamp: str
    file_path: str
    content_hash: str | None
    content_language: str
    content_length: int
    cross_reference_count: int
    extraction_version: str = EXTRACTOR_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {
            "internal_id": self.internal_id,
            "title": self.title,
            "volume_number": self.volume_number,
            "capture_timestamp": self.capture_timestamp,
            "file_path": self.file_path,
            "content_hash": self.content_hash,
            "content_language": self.content_language,
            "content_length": self.content_length,
            "cross_reference_count": self.cross_reference_count,
            "extraction_version": self.extraction_version,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ManifestEntry:
        return cls(
            internal_id=str(data["internal_id"]),
            title=str(data.get("title") or ""),
            volume_number=str(data.get("volume_number") or UNKNOWN_VOLUME),
            capture_timestamp=str(data.get("capture_timestamp") or ""),
            file_path=str(data.get("file_path") or ""),
            content_hash=data.get("content_hash") or None,
            content_language=str(data.get("content_language") or ENGLISH),
            content_length=int(data.get("content_length") or 0),
            cross_reference_count=int(data.get("cross_reference_count") or 0),
            extraction_version=str(data.get("extraction_version") or EXTRACTOR_VERSION),
        )


@dataclass(frozen=True, slots=True)
class ArchivedEntry:
    """A superseded entry in an act's version history."""

    entry: ManifestEntry
    archived_at: str
    reason: str = FORCE_RE_EXTRACTION

    def to_dict(self) -> dict[str, Any]:
        return {**self.entry.to_dict(), "archived_at": self.archived_at, "reason": self.reason}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ArchivedEntry:
        return cls(
            entry=ManifestEntry.from_dict(data),
            archived_at=str(data.get("archived_at") or ""),
            reason=str(data.get("reason") or FORCE_RE_EXTRACTION),
        )


@dataclass(frozen=True, slots=True)
class VolumeEntry:
    volume_number: str
    capture_timestamp: str
    extracted_acts: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "volume_number": self.volume_number,
            "capture_timestamp": self.capture_timestamp,
            "extracted_acts": list(self.extracted_acts),
        }


@dataclass(frozen=True, slots=True)
class CorpusStats:
    total_acts: int = 0
    total_volumes: int = 0
    total_characters: int = 0
    earliest: str | None = None
    latest: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_acts": self.total_acts,
            "total_volumes": self.total_volumes,
            "total_characters": self.total_characters,
            "extraction_date_range": {"earliest": self.earliest, "latest": self.latest},
        }


@dataclass(frozen=True, slots=True)
class CoverageReport:
    """Referenced act ids split by presence in the corpus.

    The two lists are disjoint and duplicate-free. The percentage is 100 when
    nothing is referenced.
    """

    in_corpus: tuple[str, ...] = ()
    missing: tuple[str, ...] = ()
    percentage: int = 100

    def __post_init__(self) -> None:
        if set(self.in_corpus) & set(self.missing):
            raise ValueError("in_corpus and missing must be disjoint")
        if not 0 <= self.percentage <= 100:
            raise ValueError(f"coverage percentage out of range: {self.percentage}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "referenced_acts_in_corpus": list(self.in_corpus),
            "referenced_acts_missing": list(self.missing),
            "coverage_percentage": self.percentage,
        }


@dataclass(frozen=True, slots=True)
class CorpusManifest:
    version: str
    created_at: str
    updated_at: str
    corpus_stats: CorpusStats = field(default_factory=CorpusStats)
    coverage: CoverageReport = field(default_factory=CoverageReport)
    acts: Mapping[str, ManifestEntry] = field(default_factory=_frozen)
    volumes: Mapping[str, VolumeEntry] = field(default_factory=_frozen)
    version_history: Mapping[str, tuple[ArchivedEntry, ...]] = field(default_factory=_frozen)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "corpus_stats": self.corpus_stats.to_dict(),
            "cross_reference_coverage": self.coverage.to_dict(),
            "acts": {k: v.to_dict() for k, v in self.acts.items()},
            "volumes": {k: v.to_dict() for k, v in self.volumes.items()},
            "version_history": {
                k: [a.to_dict() for a in v] for k, v in self.version_history.items()
            },
        }


# ---------------------------------------------------------------------------
# Construction / (de)serialization
# ---------------------------------------------------------------------------


def create_empty_manifest(*, now: str | None = None) -> CorpusManifest:
    stamp = now or utc_now_iso()
    return CorpusManifest(version=SCHEMA_VERSION, created_at=stamp, updated_at=stamp)


def manifest_from_dict(data: Any) -> CorpusManifest:
    """Rebuild a manifest from its persisted record.

    Statistics, volumes and the coverage split are recomputed from ``acts``;
    the stored copies are not trusted.
    """
    if not isinstance(data, Mapping):
        raise ManifestSchemaError(f"Manifest record must be an object, got {type(data).__name__}")
    acts_raw = data.get("acts") or {}
    history_raw = data.get("version_history") or {}
    coverage_raw = data.get("cross_reference_coverage") or {}
    if not isinstance(acts_raw, Mapping) or not isinstance(history_raw, Mapping):
        raise ManifestSchemaError("Manifest 'acts' and 'version_history' must be objects")
    try:
        acts = {str(k): ManifestEntry.from_dict(v) for k, v in acts_raw.items()}
        history = {
            str(k): tuple(ArchivedEntry.from_dict(a) for a in v)
            for k, v in history_raw.items()
        }
        coverage = CoverageReport(
            in_corpus=tuple(coverage_raw.get("referenced_acts_in_corpus") or ()),
            missing=tuple(coverage_raw.get("referenced_acts_missing") or ()),
            percentage=int(coverage_raw.get("coverage_percentage", 100)),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ManifestSchemaError(f"Malformed manifest record: {exc}") from exc

    created = str(data.get("created_at") or "")
    base = CorpusManifest(
        version=str(data.get("version") or SCHEMA_VERSION),
        created_at=created,
        updated_at=str(data.get("updated_at") or created),
        coverage=coverage,
        version_history=_frozen(history),
    )
    return _with_acts(base, acts, updated_at=base.updated_at)


def _coerce(manifest: CorpusManifest | None, now: str | None) -> CorpusManifest:
    return manifest if manifest is not None else create_empty_manifest(now=now)


# ---------------------------------------------------------------------------
# Derived state
# ---------------------------------------------------------------------------


def _compute_volumes(acts: Mapping[str, ManifestEntry]) -> dict[str, VolumeEntry]:
    volumes: dict[str, list[ManifestEntry]] = {}
    for entry in acts.values():
        if entry.volume_number and entry.volume_number != UNKNOWN_VOLUME:
            volumes.setdefault(entry.volume_number, []).append(entry)
    return {
        vol: VolumeEntry(
            volume_number=vol,
            capture_timestamp=min(e.capture_timestamp for e in entries),
            extracted_acts=tuple(e.internal_id for e in entries),
        )
        for vol, entries in volumes.items()
    }


def _compute_stats(
    acts: Mapping[str, ManifestEntry], volumes: Mapping[str, VolumeEntry],
) -> CorpusStats:
    stamps = [e.capture_timestamp for e in acts.values() if e.capture_timestamp]
    return CorpusStats(
        total_acts=len(acts),
        total_volumes=len(volumes),
        total_characters=sum(e.content_length for e in acts.values()),
        earliest=min(stamps) if stamps else None,
        latest=max(stamps) if stamps else None,
    )


def _with_acts(
    manifest: CorpusManifest, acts: Mapping[str, ManifestEntry], *, updated_at: str,
) -> CorpusManifest:
    volumes = _compute_volumes(acts)
    referenced = (*manifest.coverage.in_corpus, *manifest.coverage.missing)
    return replace(
        manifest,
        updated_at=updated_at,
        acts=_frozen(acts),
        volumes=_frozen(volumes),
        corpus_stats=_compute_stats(acts, volumes),
        coverage=_partition_references(referenced, acts),
    )


def _default_file_path(internal_id: str, stamp: str) -> str:
    safe = stamp.replace(":", "-").replace(".", "-")[:19]
    return f"bdlaw_act_{internal_id}_{safe}.json"


def _entry_for(act: ActRecord, stamp: str) -> ManifestEntry:
    return ManifestEntry(
        internal_id=act.internal_id,
        title=act.title or "",
        volume_number=act.volume_number or UNKNOWN_VOLUME,
        capture_timestamp=act.capture_timestamp or stamp,
        file_path=act.file_path or _default_file_path(act.internal_id, stamp),
        content_hash=act.content_hash or None,
        content_language=act.content_language or ENGLISH,
        content_length=max(0, int(act.content_length or 0)),
        cross_reference_count=max(0, int(act.cross_reference_count or 0)),
    )


# ---------------------------------------------------------------------------
# Updates
# ---------------------------------------------------------------------------


def update_manifest(
    manifest: CorpusManifest | None,
    act: ActRecord | None,
    *,
    now: str | None = None,
) -> CorpusManifest:
    """Upsert ``act`` and recompute statistics and volumes from the entry set.

    A missing act or an act without ``internal_id`` leaves the manifest as is.
    """
    stamp = now or utc_now_iso()
    current = _coerce(manifest, stamp)
    if act is None or not act.internal_id:
        return current
    acts = dict(current.acts)
    acts[act.internal_id] = _entry_for(act, stamp)
    return _with_acts(current, acts, updated_at=stamp)


def force_re_extraction(
    manifest: CorpusManifest | None,
    internal_id: str | None,
    act: ActRecord | None,
    *,
    now: str | None = None,
) -> CorpusManifest:
    """Archive the current entry for ``internal_id``, then upsert ``act``.

    History only grows. An id with no current entry gets no archive record.
    """
    stamp = now or utc_now_iso()
    current = _coerce(manifest, stamp)
    if not internal_id or act is None:
        return current
    if act.internal_id != internal_id:
        act = replace(act, internal_id=internal_id)

    history = dict(current.version_history)
    existing = current.acts.get(internal_id)
    if existing is not None:
        history[internal_id] = (
            *history.get(internal_id, ()),
            ArchivedEntry(entry=existing, archived_at=stamp),
        )
    return update_manifest(replace(current, version_history=_frozen(history)), act, now=stamp)


# ---------------------------------------------------------------------------
# Duplicate checks
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DuplicateCheck:
    is_duplicate: bool
    allow_extraction: bool
    flag: str
    message: str
    replace_existing: bool = False
    existing_language: str | None = None
    new_language: str | None = None
    existing_entry: ManifestEntry | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_duplicate": self.is_duplicate,
            "allow_extraction": self.allow_extraction,
            "replace_existing": self.replace_existing,
            "flag": self.flag,
            "message": self.message,
            "existing_language": self.existing_language,
            "new_language": self.new_language,
            "existing_entry": self.existing_entry.to_dict() if self.existing_entry else None,
        }


def is_duplicate(manifest: CorpusManifest | None, internal_id: str | None) -> DuplicateCheck:
    existing = manifest.acts.get(internal_id) if manifest and internal_id else None
    if existing is None:
        return DuplicateCheck(
            is_duplicate=False, allow_extraction=True, flag=FLAG_NEW,
            message=f"Act {internal_id} not in corpus",
        )
    return DuplicateCheck(
        is_duplicate=True,
        allow_extraction=False,
        flag=DUPLICATE_BLOCKED,
        message=f"Act {internal_id} already captured on {existing.capture_timestamp}",
        existing_entry=existing,
    )


def is_duplicate_volume(manifest: CorpusManifest | None, volume_number: str | None) -> DuplicateCheck:
    existing = manifest.volumes.get(volume_number) if manifest and volume_number else None
    if existing is None:
        return DuplicateCheck(
            is_duplicate=False, allow_extraction=True, flag=FLAG_NEW,
            message=f"Volume {volume_number} not in corpus",
        )
    return DuplicateCheck(
        is_duplicate=True,
        allow_extraction=False,
        flag=DUPLICATE_BLOCKED,
        message=f"Volume {volume_number} already captured on {existing.capture_timestamp}",
    )


def check_language_aware_duplicate(
    manifest: CorpusManifest | None,
    internal_id: str | None,
    new_language: str,
) -> DuplicateCheck:
    """Duplicate policy with Bengali preferred over English.

    ============  ========  ===================================
    existing      new       decision
    ============  ========  ===================================
    absent        any       allow
    X             X         block (standard duplicate)
    english       bengali   allow, replace existing
    bengali       english   block
    ============  ========  ===================================

    An entry with no stored language counts as English.
    """
    existing = manifest.acts.get(internal_id) if manifest and internal_id else None
    if existing is None:
        return DuplicateCheck(
            is_duplicate=False, allow_extraction=True, flag=FLAG_NEW,
            message=f"Act {internal_id} not in corpus", new_language=new_language,
        )

    old = existing.content_language or ENGLISH
    common = {
        "is_duplicate": True,
        "existing_language": old,
        "new_language": new_language,
        "existing_entry": existing,
    }
    if old == new_language:
        return DuplicateCheck(
            allow_extraction=False,
            flag=DUPLICATE_BLOCKED,
            message=(
                f"Act {internal_id} already captured in {old} "
                f"on {existing.capture_timestamp}"
            ),
            **common,
        )
    if old == ENGLISH and new_language == BENGALI:
        return DuplicateCheck(
            allow_extraction=True,
            replace_existing=True,
            flag=FLAG_REPLACE_EXISTING,
            message=(
                f"Act {internal_id} exists in English. "
                "Bengali version will replace it (Bengali preferred)."
            ),
            **common,
        )
    if old == BENGALI and new_language == ENGLISH:
        return DuplicateCheck(
            allow_extraction=False,
            flag=FLAG_BENGALI_PREFERRED,
            message=(
                f"Act {internal_id} already captured in Bengali on "
                f"{existing.capture_timestamp}. Bengali version is preferred - "
                "English extraction blocked."
            ),
            **common,
        )
    return DuplicateCheck(
        allow_extraction=True,
        flag=FLAG_LANGUAGE_DIFFERS,
        message=f"Act {internal_id} exists in {old}; {new_language} capture allowed",
        **common,
    )


# ---------------------------------------------------------------------------
# Idempotency
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class IdempotencyCheck:
    is_new: bool
    is_identical: bool
    flag: str | None
    message: str
    previous_hash: str | None = None
    new_hash: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_new": self.is_new,
            "is_identical": self.is_identical,
            "flag": self.flag,
            "message": self.message,
            "previous_hash": self.previous_hash,
            "new_hash": self.new_hash,
        }


def check_extraction_idempotency(
    manifest: CorpusManifest | None,
    internal_id: str | None,
    new_raw_hash: str | None,
) -> IdempotencyCheck:
    """Compare a fresh content_raw hash against the stored one."""
    existing = manifest.acts.get(internal_id) if manifest and internal_id else None
    if existing is None:
        return IdempotencyCheck(
            is_new=True, is_identical=False, flag=None,
            message=f"Act {internal_id} has not been extracted before",
            new_hash=new_raw_hash,
        )
    if not existing.content_hash:
        return IdempotencyCheck(
            is_new=False, is_identical=False, flag=NO_PREVIOUS_HASH,
            message="No previous content hash available for comparison",
            new_hash=new_raw_hash,
        )
    if not new_raw_hash:
        return IdempotencyCheck(
            is_new=False, is_identical=False, flag=HASH_COMPUTATION_FAILED,
            message="Failed to compute hash for new content",
            previous_hash=existing.content_hash,
        )
    if existing.content_hash == new_raw_hash:
        return IdempotencyCheck(
            is_new=False, is_identical=True, flag=None,
            message="Content unchanged from previous extraction",
            previous_hash=existing.content_hash, new_hash=new_raw_hash,
        )
    return IdempotencyCheck(
        is_new=False, is_identical=False, flag=SOURCE_CHANGED,
        message="Source content has changed since last extraction",
        previous_hash=existing.content_hash, new_hash=new_raw_hash,
    )


# ---------------------------------------------------------------------------
# Cross-reference coverage
# ---------------------------------------------------------------------------


def _percent(part: int, total: int) -> int:
    """Round-half-up percentage; 100 when there is nothing to cover."""
    if total <= 0:
        return 100
    return (200 * part + total) // (2 * total)


def compute_coverage(
    manifest: CorpusManifest | None,
    referenced_ids: Iterable[str | None] | None,
) -> CoverageReport:
    """Partition the distinct referenced ids by presence in ``manifest.acts``."""
    acts = manifest.acts if manifest is not None else {}
    return _partition_references(referenced_ids, acts)


def _partition_references(
    referenced_ids: Iterable[str | None] | None,
    acts: Mapping[str, ManifestEntry],
) -> CoverageReport:
    distinct: list[str] = []
    for ref in referenced_ids or ():
        if ref and str(ref) not in distinct:
            distinct.append(str(ref))
    in_corpus = tuple(r for r in distinct if r in acts)
    missing = tuple(r for r in distinct if r not in acts)
    percentage = _percent(len(in_corpus), len(distinct))
    return CoverageReport(in_corpus=in_corpus, missing=missing, percentage=percentage)


def update_cross_reference_coverage(
    manifest: CorpusManifest | None,
    referenced_ids: Iterable[str | None] | None,
    *,
    now: str | None = None,
) -> CorpusManifest:
    stamp = now or utc_now_iso()
    current = _coerce(manifest, stamp)
    return replace(
        current,
        coverage=compute_coverage(current, referenced_ids),
        updated_at=stamp,
    )
