"""Structure + reference derivation over one extraction record.

The extraction record is the per-document dict produced at capture time
(``content_raw`` plus metadata). Derivation adds ``structure`` and
``cross_references`` to a copy of it and never writes to the record itself.

content_raw is checksummed before and after derivation. If the two differ,
the derivation is void: the copy gets ``structure = None``,
``cross_references = []`` and ``structure_derivation_error =
"content_raw_modified"``.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from bdlaw.citations import pattern_candidates_for_sections
from bdlaw.content_versioning import content_hash_or_none
from bdlaw.errors import ContentMutationDetected
from bdlaw.reference_anchor import (
    CrossReference,
    LinkCandidate,
    PatternCandidate,
    build_cross_references,
    place_links_in_sections,
)
from bdlaw.structure_builder import (
    SectionFragment,
    StructureTree,
    TextFragment,
    build_structure_tree,
)

RAW_KEY = "content_raw"


@dataclass(frozen=True, slots=True)
class StructureData:
    """What the DOM layer hands over for one document.

    ``pattern_candidates=None`` means "detect them from the section bodies".
    """

    sections: tuple[SectionFragment, ...] = ()
    preamble: TextFragment | None = None
    enactment: TextFragment | None = None
    link_candidates: tuple[LinkCandidate, ...] = ()
    pattern_candidates: tuple[PatternCandidate, ...] | None = None


@dataclass(frozen=True, slots=True)
class DerivationResult:
    structure: StructureTree | None
    cross_references: tuple[CrossReference, ...]
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "structure": self.structure.to_dict() if self.structure else None,
            "cross_references": [r.to_dict() for r in self.cross_references],
        }
        if self.error is not None:
            out["structure_derivation_error"] = self.error
        return out


def _checksum(raw: object) -> str:
    return content_hash_or_none(raw if isinstance(raw, str) else None) or ""


def _derive(raw: str, data: StructureData) -> DerivationResult:
    structure = build_structure_tree(
        data.sections, raw, preamble=data.preamble, enactment=data.enactment,
    )
    patterns = data.pattern_candidates
    if patterns is None:
        patterns = tuple(pattern_candidates_for_sections(structure, raw))
    links = place_links_in_sections(data.link_candidates, structure, raw)
    refs = build_cross_references(links, patterns, structure)
    return DerivationResult(structure=structure, cross_references=tuple(refs))


def derive(extraction: Mapping[str, Any], data: StructureData | None) -> DerivationResult:
    """Build the structure tree and anchored references for ``extraction``.

    Never raises. A content_raw change observed across the derivation is
    reported as ``error="content_raw_modified"``; any other failure (for
    example a malformed fragment) as ``"<ExceptionType>: <message>"``. Both
    leave ``structure`` at None and ``cross_references`` empty.
    """
    raw = extraction.get(RAW_KEY) if extraction else None
    if not isinstance(raw, str) or not raw or data is None:
        return DerivationResult(structure=None, cross_references=())

    before = _checksum(raw)
    try:
        result = _derive(raw, data)
        after = _checksum(extraction.get(RAW_KEY))
        if after != before:
            raise ContentMutationDetected(before, after)
    except ContentMutationDetected as exc:
        return DerivationResult(structure=None, cross_references=(), error=exc.reason)
    except Exception as exc:
        return DerivationResult(
            structure=None, cross_references=(), error=f"{type(exc).__name__}: {exc}",
        )
    return result


def derive_structure_and_references(
    extraction: Mapping[str, Any],
    data: StructureData | None,
) -> dict[str, Any]:
    """Return a copy of ``extraction`` with ``structure`` and ``cross_references``."""
    return {**(extraction or {}), **derive(extraction, data).to_dict()}
