"""Pattern-derived citation detection.

Two entry points:

- :func:`detect_citations_in_content` scans a section body for the short
  Bengali and English act citations (``১৯৯১ সনের ২২ নং আইন``,
  ``Act XV of 1984``). These become pattern candidates for
  :mod:`bdlaw.reference_anchor` via :func:`pattern_candidates_for_sections`.
- :func:`detect_cross_references` runs every citation pattern over a whole
  document and annotates each hit with its components, surrounding context,
  a negation check and a lexical relation class.

The relation class is keyword proximity only. A negation word within the
negation window forces the class to ``"mention"``.
"""
from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from bdlaw.config import DEFAULT_CONFIG, PipelineConfig
from bdlaw.parsing_types import NOT_FOUND
from bdlaw.patterns import (
    CITATION_PATTERNS,
    DEFAULT_RELATION,
    LEXICAL_RELATION_KEYWORDS,
    NEGATION_WORDS,
    SECTION_BODY_CITATION_TYPES,
    first_keyword_category,
)
from bdlaw.reference_anchor import PatternCandidate
from bdlaw.structure_builder import StructureTree, locate

LEXICAL_RELATION_DISCLAIMER = (
    "Detected via pattern matching. No legal force or applicability implied."
)
NEGATION_NOTE = "Negation detected - forced to mention type"

# Longest first so "নাই" is reported rather than its prefix "না".
_NEGATION_BY_LENGTH: tuple[str, ...] = tuple(
    sorted(NEGATION_WORDS, key=len, reverse=True)
)


# ---------------------------------------------------------------------------
# Section-body citations
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ContentCitation:
    citation_text: str
    relative_offset: int
    pattern_type: str       # "bengali_citation" | "english_citation"


def detect_citations_in_content(text: str | None) -> list[ContentCitation]:
    """Short-form citations in ``text``, ordered by offset."""
    if not text:
        return []
    hits: list[ContentCitation] = []
    for pattern_name, pattern_type in SECTION_BODY_CITATION_TYPES.items():
        for m in CITATION_PATTERNS[pattern_name].finditer(text):
            hits.append(ContentCitation(m.group(0), m.start(), pattern_type))
    hits.sort(key=lambda c: c.relative_offset)
    return hits


def pattern_candidates_for_sections(
    structure: StructureTree | None,
    raw: str,
) -> list[PatternCandidate]:
    """Locate each section body's citations inside that section's raw range.

    Searches advance through the section range, so a citation string that
    repeats in one section maps to successive occurrences. A citation that
    cannot be found is kept at ``-1`` (the merge step drops it).
    """
    if structure is None or not raw:
        return []
    out: list[PatternCandidate] = []
    for section in structure.sections:
        cursor = section.content_start
        for hit in detect_citations_in_content(section.body_text):
            offset = locate(hit.citation_text, raw, cursor, section.content_end)
            out.append(PatternCandidate(
                citation_text=hit.citation_text,
                character_offset=offset,
                pattern_type=hit.pattern_type,
                dom_section_index=section.dom_index,
            ))
            if offset > NOT_FOUND:
                cursor = offset + len(hit.citation_text)
    return out


# ---------------------------------------------------------------------------
# Whole-document detection
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CitationComponents:
    act_name: str | None = None
    citation_year: str | None = None
    citation_serial: str | None = None
    act_type: str | None = None
    script: str = "unknown"


@dataclass(frozen=True, slots=True)
class NegationCheck:
    present: bool
    word: str | None = None
    position: int | None = None
    context: str | None = None


@dataclass(frozen=True, slots=True)
class DetectedCitation:
    citation_text: str
    pattern_type: str
    line_number: int            # 1-based
    position: int               # offset in the scanned text
    components: CitationComponents
    context_before: str
    context_after: str
    lexical_relation_type: str
    lexical_relation_confidence: str
    negation: NegationCheck = field(default_factory=lambda: NegationCheck(False))

    @property
    def end(self) -> int:
        return self.position + len(self.citation_text)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "citation_text": self.citation_text,
            "pattern_type": self.pattern_type,
            "line_number": self.line_number,
            "position": self.position,
            "act_name": self.components.act_name,
            "citation_year": self.components.citation_year,
            "citation_serial": self.components.citation_serial,
            "script": self.components.script,
            "context_before": self.context_before,
            "context_after": self.context_after,
            "lexical_relation_type": self.lexical_relation_type,
            "lexical_relation_confidence": self.lexical_relation_confidence,
            "negation_present": self.negation.present,
            "relation_disclaimer": LEXICAL_RELATION_DISCLAIMER,
        }
        if self.components.act_type is not None:
            out["act_type"] = self.components.act_type
        if self.negation.present:
            out["negation_word"] = self.negation.word
            out["negation_context"] = self.negation.context
            out["classification_note"] = NEGATION_NOTE
        return out


def _group(m: re.Match[str], idx: int) -> str | None:
    value = m.group(idx)
    return value.strip() if value else None


def extract_citation_components(pattern_name: str, m: re.Match[str]) -> CitationComponents:
    """Pull act name / year / serial out of a match, per pattern layout."""
    match pattern_name:
        case "ENGLISH_ACT_FULL":
            return CitationComponents(
                act_name=_group(m, 1),
                citation_year=_group(m, 2) or _group(m, 4),
                citation_serial=_group(m, 3),
                script="english",
            )
        case "ENGLISH_ACT_SHORT" | "PRESIDENTS_ORDER":
            return CitationComponents(
                citation_serial=_group(m, 1),
                citation_year=_group(m, 2),
                script="english",
            )
        case "BENGALI_ACT_FULL":
            return CitationComponents(
                act_name=_group(m, 1),
                citation_year=_group(m, 2) or _group(m, 3),
                citation_serial=_group(m, 4),
                script="bengali",
            )
        case "BENGALI_ACT_SHORT":
            return CitationComponents(
                citation_year=_group(m, 1),
                citation_serial=_group(m, 2),
                act_type=_group(m, 3),
                script="bengali",
            )
        case "BENGALI_ORDINANCE":
            return CitationComponents(
                act_name=_group(m, 1),
                citation_year=_group(m, 2) or _group(m, 4),
                citation_serial=_group(m, 3),
                script="bengali",
            )
    return CitationComponents()


def context_before(text: str, position: int, length: int = 50) -> str:
    if not text or position <= 0:
        return ""
    return text[max(0, position - length):position].strip()


def context_after(text: str, position: int, length: int = 50) -> str:
    if not text or position < 0 or position >= len(text):
        return ""
    return text[position:position + length].strip()


def check_negation_context(text: str, position: int, window: int = 20) -> NegationCheck:
    """Look for a negation word within ``±window`` characters of ``position``."""
    if not text or position < 0:
        return NegationCheck(False)
    start = max(0, position - window)
    region = text[start:position + window]
    for word in _NEGATION_BY_LENGTH:
        idx = region.find(word)
        if idx >= 0:
            return NegationCheck(True, word=word, position=start + idx, context=region)
    return NegationCheck(False)


def classify_lexical_relation(context: str, negation: NegationCheck) -> str:
    """First keyword category present in ``context``; negation forces mention."""
    if negation.present:
        return DEFAULT_RELATION
    return first_keyword_category(context, LEXICAL_RELATION_KEYWORDS, default=DEFAULT_RELATION)


def assign_lexical_confidence(components: CitationComponents | None) -> str:
    """Pattern clarity only: name+year+serial high, year+serial medium, else low."""
    if components is None:
        return "low"
    has_name = bool(components.act_name and components.act_name.strip())
    has_year = bool(components.citation_year)
    has_serial = bool(components.citation_serial)
    if has_name and has_year and has_serial:
        return "high"
    if has_year and has_serial:
        return "medium"
    return "low"


def deduplicate_overlapping(citations: Iterable[DetectedCitation]) -> list[DetectedCitation]:
    """Drop matches that overlap an earlier kept one; longest wins a tie on position."""
    ordered = sorted(citations, key=lambda c: (c.position, -len(c.citation_text)))
    kept: list[DetectedCitation] = []
    last_end = NOT_FOUND
    for c in ordered:
        if c.position < last_end:
            continue
        kept.append(c)
        last_end = c.end
    return kept


def detect_cross_references(
    text: str | None,
    config: PipelineConfig = DEFAULT_CONFIG,
) -> list[DetectedCitation]:
    """Run every citation pattern line by line over ``text``.

    Positions are absolute offsets in ``text``. Matches never span lines.
    """
    if not text:
        return []
    found: list[DetectedCitation] = []
    line_start = 0
    for line_number, line in enumerate(text.split("\n"), start=1):
        for pattern_name, pattern in CITATION_PATTERNS.items():
            for m in pattern.finditer(line):
                position = line_start + m.start()
                citation_text = m.group(0)
                before = context_before(text, position, config.context_window)
                after = context_after(text, position + len(citation_text), config.context_window)
                negation = check_negation_context(text, position, config.negation_window)
                components = extract_citation_components(pattern_name, m)
                found.append(DetectedCitation(
                    citation_text=citation_text,
                    pattern_type=pattern_name,
                    line_number=line_number,
                    position=position,
                    components=components,
                    context_before=before,
                    context_after=after,
                    lexical_relation_type=classify_lexical_relation(
                        f"{before} {citation_text} {after}", negation,
                    ),
                    lexical_relation_confidence=assign_lexical_confidence(components),
                    negation=negation,
                ))
        line_start += len(line) + 1
    return deduplicate_overlapping(found)
