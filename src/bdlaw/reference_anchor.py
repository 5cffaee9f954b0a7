"""Cross-reference merge, scope anchoring and ordering.

Two candidate streams feed in: link-derived candidates (``<a href>`` to
another act, carrying the link target and act id) and pattern-derived
candidates (citation strings found by :mod:`bdlaw.citations`). Both carry a
character offset into content_raw.

Merge keeps at most one reference per offset. Link candidates are processed
first, so a link wins over a pattern match at the same offset. Candidates at
``-1`` or with a malformed offset are dropped. Each kept reference is
anchored to the section whose ``[content_start, content_end)`` range contains
it, then to the closest preceding subsection and clause. The scan over
subsections and clauses overwrites on every qualifying node and never stops
at the first one: the last marker at or before the offset wins.

References are lexical. Every entry carries ``reference_semantics`` and
``reference_warning`` so no consumer can mistake a string match for a legal
relationship.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import Any

from bdlaw.parsing_types import NOT_FOUND, Scope
from bdlaw.structure_builder import ClauseNode, SectionNode, StructureTree, locate

REFERENCE_SEMANTICS = "string_match_only"
REFERENCE_WARNING = (
    "Keywords detected in proximity to citation strings. No legal relationship, "
    "effect, direction, or applicability is implied."
)

LINK_SOURCE = "link"
PATTERN_SOURCE = "pattern"


# ---------------------------------------------------------------------------
# Candidates
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LinkCandidate:
    """An ``act-details`` hyperlink located in content_raw."""

    citation_text: str
    character_offset: int
    href: str | None = None
    act_id: str | None = None
    dom_section_index: int | None = None


@dataclass(frozen=True, slots=True)
class PatternCandidate:
    """A citation string matched by a pattern, located in content_raw."""

    citation_text: str
    character_offset: int
    pattern_type: str = ""
    dom_section_index: int | None = None


@dataclass(frozen=True, slots=True)
class CrossReference:
    citation_text: str
    character_offset: int
    href: str | None
    act_id: str | None
    scope: Scope
    source: str             # "link" | "pattern"

    def to_dict(self) -> dict[str, Any]:
        return {
            "citation_text": self.citation_text,
            "character_offset": self.character_offset,
            "href": self.href,
            "act_id": self.act_id,
            "scope": self.scope.to_dict(),
            "reference_semantics": REFERENCE_SEMANTICS,
            "reference_warning": REFERENCE_WARNING,
        }


# ---------------------------------------------------------------------------
# Scope anchoring
# ---------------------------------------------------------------------------


def _closest_clause(clauses: tuple[ClauseNode, ...], offset: int) -> str | None:
    marker: str | None = None
    for clause in clauses:
        if NOT_FOUND < clause.marker_offset <= offset:
            marker = clause.marker
    return marker


def _scope_in_section(section: SectionNode, offset: int) -> Scope:
    subsection: str | None = None
    clause: str | None = None
    for sub in section.subsections:
        if NOT_FOUND < sub.marker_offset <= offset:
            subsection = sub.marker
            clause = _closest_clause(sub.clauses, offset)
    if subsection is None:
        clause = _closest_clause(section.clauses, offset)
    return Scope(
        section=section.section_number,
        subsection=subsection,
        clause=clause,
        dom_section_index=section.dom_index,
    )


def anchor_reference_scope(offset: int, structure: StructureTree | None) -> Scope:
    """Nearest enclosing section / subsection / clause of ``offset``.

    Nodes at ``-1`` never qualify. An offset outside every section range, or
    a missing structure, gives an all-null scope.
    """
    if structure is None or not _valid_offset(offset):
        return Scope()
    for section in structure.sections:
        if section.contains(offset):
            return _scope_in_section(section, offset)
    return Scope()


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


def place_links_in_sections(
    link_candidates: Iterable[LinkCandidate] | None,
    structure: StructureTree | None,
    raw: str,
) -> list[LinkCandidate]:
    """Re-locate each link inside the raw range of the section row it sits in.

    Links of one section share a cursor, so repeated anchor text maps to
    successive occurrences within that section. A link whose section was not
    located (or that has no section) keeps its offset; a link whose text is
    not in its section range goes to ``-1``.
    """
    links = list(link_candidates or ())
    if structure is None or not raw:
        return links
    located = {s.dom_index: s for s in structure.sections if s.content_start > NOT_FOUND}
    cursors: dict[int, int] = {}
    out: list[LinkCandidate] = []
    for link in links:
        section = (
            located.get(link.dom_section_index)
            if isinstance(link, LinkCandidate) and isinstance(link.citation_text, str)
            else None
        )
        if section is None:
            out.append(link)
            continue
        start = cursors.get(section.dom_index, section.content_start)
        offset = locate(link.citation_text, raw, start, section.content_end)
        if offset > NOT_FOUND:
            cursors[section.dom_index] = offset + len(link.citation_text.strip())
        out.append(replace(link, character_offset=offset))
    return out



def _valid_offset(offset: object) -> bool:
    # bool is an int subclass; True/False are not offsets
    return isinstance(offset, int) and not isinstance(offset, bool) and offset >= 0


def _usable(candidate: object) -> bool:
    if not isinstance(candidate, (LinkCandidate, PatternCandidate)):
        return False
    if not isinstance(candidate.citation_text, str) or not candidate.citation_text:
        return False
    return _valid_offset(candidate.character_offset)


def build_cross_references(
    link_candidates: Iterable[LinkCandidate] | None,
    pattern_candidates: Iterable[PatternCandidate] | None,
    structure: StructureTree | None,
) -> list[CrossReference]:
    """Merge, anchor and sort the two candidate streams.

    Never raises; unusable candidates are skipped.
    """
    seen: set[int] = set()
    refs: list[CrossReference] = []

    for source, candidates in (
        (LINK_SOURCE, link_candidates or ()),
        (PATTERN_SOURCE, pattern_candidates or ()),
    ):
        for cand in candidates:
            if not _usable(cand) or cand.character_offset in seen:
                continue
            seen.add(cand.character_offset)
            is_link = source == LINK_SOURCE and isinstance(cand, LinkCandidate)
            refs.append(CrossReference(
                citation_text=cand.citation_text,
                character_offset=cand.character_offset,
                href=(cand.href or None) if is_link else None,
                act_id=(cand.act_id or None) if is_link else None,
                scope=anchor_reference_scope(cand.character_offset, structure),
                source=source,
            ))

    refs.sort(key=lambda r: r.character_offset)
    return refs
