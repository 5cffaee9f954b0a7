"""Risk-classified transformation log for the corrected content copy.

Every proposed edit is logged with the offset where it was found in
``content_raw`` and a risk level looked up in
:data:`bdlaw.patterns.RISK_CLASSIFICATION`:

- ``non-semantic`` (mojibake, HTML entities, broken unicode, encoding rules)
  is applied to ``content_corrected``.
- ``potential-semantic`` (OCR word fixes, spelling, punctuation) is logged
  with ``applied=False`` and never applied.

``content_raw`` is never touched. The log is a tuple; logging returns a new
tuple rather than appending in place.
"""
from __future__ import annotations

import html
import re
from dataclasses import dataclass, replace

from bdlaw.config import DEFAULT_CONFIG, PipelineConfig
from bdlaw.content_versioning import VersionedContent
from bdlaw.io_utils import utc_now_iso
from bdlaw.patterns import NON_SEMANTIC, POTENTIAL_SEMANTIC, risk_level

# Named (&amp;), decimal (&#2453;) and hex (&#x995;) character references.
_HTML_ENTITY_RE = re.compile(r"&(?:#[0-9]{1,7}|#[xX][0-9a-fA-F]{1,6}|[A-Za-z][A-Za-z0-9]{1,31});")

# UTF-8 bytes mis-decoded as Latin-1: a lead byte (U+00C2..U+00F4) followed
# by one to three continuation bytes (U+0080..U+00BF).
_MOJIBAKE_RE = re.compile(r"(?:[Â-ô][\u0080-¿]{1,3})+")


# ---------------------------------------------------------------------------
# Log entries
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class TransformationEntry:
    """One proposed edit and whether it reached the corrected copy."""

    transformation_type: str
    original: str
    corrected: str
    position: int           # offset in content_raw
    risk_level: str         # "non-semantic" | "potential-semantic"
    applied: bool
    timestamp: str
    note: str = ""          # "" unless applied=False for a non-semantic edit

    def __post_init__(self) -> None:
        if self.risk_level not in (NON_SEMANTIC, POTENTIAL_SEMANTIC):
            raise ValueError(f"Unknown risk level: {self.risk_level!r}")
        if self.risk_level == POTENTIAL_SEMANTIC and self.applied:
            raise ValueError(
                "potential-semantic transformations can never be applied "
                f"({self.transformation_type} at {self.position})"
            )

    def to_dict(self) -> dict[str, str | int | bool]:
        out: dict[str, str | int | bool] = {
            "transformation_type": self.transformation_type,
            "original": self.original,
            "corrected": self.corrected,
            "position": self.position,
            "risk_level": self.risk_level,
            "applied": self.applied,
            "timestamp": self.timestamp,
        }
        if self.note:
            out["note"] = self.note
        return out


@dataclass(frozen=True, slots=True)
class ProposedEdit:
    """A candidate edit found by a scanner, positioned in content_raw."""

    transformation_type: str
    original: str
    corrected: str
    position: int


def is_transformation_safe(transformation_type: str) -> bool:
    return risk_level(transformation_type) == NON_SEMANTIC


def log_transformation(
    log: tuple[TransformationEntry, ...],
    edit: ProposedEdit,
    *,
    applied: bool | None = None,
    note: str = "",
    now: str | None = None,
) -> tuple[tuple[TransformationEntry, ...], TransformationEntry]:
    """Append an entry for ``edit`` and return ``(new_log, entry)``.

    ``applied`` defaults to "safe to apply"; passing ``applied=True`` for a
    potential-semantic edit is downgraded to False, never honoured.
    """
    level = risk_level(edit.transformation_type)
    safe = level == NON_SEMANTIC
    entry = TransformationEntry(
        transformation_type=edit.transformation_type,
        original=edit.original,
        corrected=edit.corrected,
        position=edit.position,
        risk_level=level,
        applied=safe if applied is None else (applied and safe),
        timestamp=now or utc_now_iso(),
        note=note,
    )
    return (*log, entry), entry


def flagged_transformations(
    log: tuple[TransformationEntry, ...],
) -> list[TransformationEntry]:
    """Entries that were logged but not applied."""
    return [e for e in log if not e.applied]


def applied_transformations(
    log: tuple[TransformationEntry, ...],
) -> list[TransformationEntry]:
    return [e for e in log if e.applied]


# ---------------------------------------------------------------------------
# Scanners (raw text -> proposed edits)
# ---------------------------------------------------------------------------

def propose_html_entity_edits(raw: str) -> list[ProposedEdit]:
    edits: list[ProposedEdit] = []
    for m in _HTML_ENTITY_RE.finditer(raw):
        decoded = html.unescape(m.group(0))
        if decoded != m.group(0):
            edits.append(ProposedEdit("html_entity", m.group(0), decoded, m.start()))
    return edits


def propose_mojibake_edits(raw: str) -> list[ProposedEdit]:
    """Runs that round-trip cleanly through Latin-1 -> UTF-8."""
    edits: list[ProposedEdit] = []
    for m in _MOJIBAKE_RE.finditer(raw):
        run = m.group(0)
        try:
            repaired = run.encode("latin-1").decode("utf-8")
        except UnicodeError:
            continue
        if repaired != run:
            edits.append(ProposedEdit("mojibake", run, repaired, m.start()))
    return edits


def propose_encoding_rule_edits(
    raw: str, config: PipelineConfig = DEFAULT_CONFIG,
) -> list[ProposedEdit]:
    edits: list[ProposedEdit] = []
    for rule in config.encoding_rules:
        for m in re.finditer(rule.pattern, raw):
            edits.append(ProposedEdit(
                rule.transformation_type, m.group(0), rule.replacement, m.start(),
            ))
    return edits


def propose_ocr_edits(
    raw: str, config: PipelineConfig = DEFAULT_CONFIG,
) -> list[ProposedEdit]:
    edits: list[ProposedEdit] = []
    for fix in config.ocr_corrections:
        if not fix.incorrect:
            continue
        start = raw.find(fix.incorrect)
        while start >= 0:
            edits.append(ProposedEdit("ocr_word_correction", fix.incorrect, fix.correct, start))
            start = raw.find(fix.incorrect, start + len(fix.incorrect))
    return edits


def propose_edits(raw: str, config: PipelineConfig = DEFAULT_CONFIG) -> list[ProposedEdit]:
    """All scanner proposals, ordered by position then scanner order."""
    edits = [
        *propose_html_entity_edits(raw),
        *propose_mojibake_edits(raw),
        *propose_encoding_rule_edits(raw, config),
        *propose_ocr_edits(raw, config),
    ]
    # sorted() is stable, so scanner order breaks position ties
    return sorted(edits, key=lambda e: e.position)


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

def _overlaps(start: int, end: int, taken: list[tuple[int, int]]) -> bool:
    return any(start < t_end and t_start < end for t_start, t_end in taken)


def apply_transformations(
    content: VersionedContent,
    edits: list[ProposedEdit],
    log: tuple[TransformationEntry, ...] = (),
    *,
    now: str | None = None,
) -> tuple[VersionedContent, tuple[TransformationEntry, ...]]:
    """Log every edit; apply the safe ones to the corrected copy.

    Edits are positioned in content_raw. A safe edit is applied only when the
    corrected copy still holds ``original`` at that position (NFC can shift
    offsets) and it does not overlap an edit already taken; otherwise it is
    logged with ``applied=False`` and a note. Applied edits are spliced right
    to left so earlier positions stay valid.
    """
    stamp = now or utc_now_iso()
    corrected = content.corrected
    taken: list[tuple[int, int]] = []
    to_apply: list[ProposedEdit] = []

    for edit in edits:
        end = edit.position + len(edit.original)
        if not is_transformation_safe(edit.transformation_type):
            log, _ = log_transformation(log, edit, now=stamp)
            continue
        if corrected[edit.position:end] != edit.original:
            log, _ = log_transformation(log, edit, applied=False, note="offset_drift", now=stamp)
            continue
        if _overlaps(edit.position, end, taken):
            log, _ = log_transformation(log, edit, applied=False, note="overlapping_edit", now=stamp)
            continue
        taken.append((edit.position, end))
        to_apply.append(edit)
        log, _ = log_transformation(log, edit, now=stamp)

    for edit in sorted(to_apply, key=lambda e: e.position, reverse=True):
        end = edit.position + len(edit.original)
        corrected = corrected[:edit.position] + edit.corrected + corrected[end:]

    return replace(content, corrected=corrected), log


def repair_encoding(
    content: VersionedContent,
    config: PipelineConfig = DEFAULT_CONFIG,
    *,
    now: str | None = None,
) -> tuple[VersionedContent, tuple[TransformationEntry, ...]]:
    """Scan content_raw and run the full propose/log/apply cycle."""
    return apply_transformations(content, propose_edits(content.raw, config), now=now)
