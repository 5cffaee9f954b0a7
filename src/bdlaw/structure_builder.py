"""Structure tree builder: DOM fragments -> offset-anchored section tree.

Takes section fragments already grouped by the DOM layer (section number,
heading, subsection and clause markers) and locates every marker inside
content_raw by forward substring search:

    1. Sections are located in input order. Each search starts after the
       previous section's located text, so offsets never go backwards and an
       earlier duplicate marker is never picked up.
    2. A section's content range is ``[marker offset (or heading offset),
       next section's heading offset (or its start))``; the last section
       ends at ``len(content_raw)``.
    3. Subsections are searched inside the section range, clauses inside
       their subsection's range (or the section range for direct clauses).
    4. Input order is kept; nothing is re-sorted.
    5. Text that cannot be found gets offset ``-1``. A node at ``-1``
       disables the search for all of its descendants, which are reported
       at ``-1`` as well.

The output is a pure function of the inputs (no timestamps, no ids), so
repeated builds serialize byte-identically.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from bdlaw.markers import (
    detect_clauses_in_content,
    detect_subsections_in_content,
    split_section_title,
)
from bdlaw.parsing_types import NOT_FOUND

EXTRACTION_METHOD = "dom_first"
SECTION_DOM_SOURCE = ".lineremoves"
PREAMBLE_DOM_SOURCE = ".lineremove"


# ---------------------------------------------------------------------------
# Input fragments (produced by the DOM layer)
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ClauseFragment:
    marker: str         # "(ক)"


@dataclass(frozen=True, slots=True)
class SubsectionFragment:
    marker: str         # "(১)"
    clauses: tuple[ClauseFragment, ...] = ()


@dataclass(frozen=True, slots=True)
class SectionFragment:
    """One ``.lineremoves`` row as the DOM layer saw it."""

    section_number: str | None      # "১৷"
    heading: str | None             # text before the number in the title
    subsections: tuple[SubsectionFragment, ...] = ()
    clauses: tuple[ClauseFragment, ...] = ()   # direct children of the section
    dom_index: int | None = None
    body_text: str = ""


@dataclass(frozen=True, slots=True)
class TextFragment:
    """Preamble or enactment clause text taken verbatim from the DOM."""

    text: str
    dom_source: str = PREAMBLE_DOM_SOURCE


# ---------------------------------------------------------------------------
# Output nodes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ClauseNode:
    marker: str
    marker_offset: int      # -1 if not found
    index: int              # position among its siblings (input order)
    content_start: int
    content_end: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "marker": self.marker,
            "marker_offset": self.marker_offset,
            "content_start": self.content_start,
            "content_end": self.content_end,
        }


@dataclass(frozen=True, slots=True)
class SubsectionNode:
    marker: str
    marker_offset: int
    index: int
    content_start: int
    content_end: int
    clauses: tuple[ClauseNode, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "marker": self.marker,
            "marker_offset": self.marker_offset,
            "content_start": self.content_start,
            "content_end": self.content_end,
            "clauses": [c.to_dict() for c in self.clauses],
        }


@dataclass(frozen=True, slots=True)
class SectionNode:
    """A located section. ``[content_start, content_end)`` is half-open."""

    dom_index: int
    index: int
    section_number: str | None
    heading: str | None
    heading_offset: int
    number_offset: int
    content_start: int
    content_end: int
    subsections: tuple[SubsectionNode, ...]
    clauses: tuple[ClauseNode, ...]
    body_text: str = ""
    dom_source: str = SECTION_DOM_SOURCE

    def __post_init__(self) -> None:
        if self.content_start > NOT_FOUND and self.content_end < self.content_start:
            raise ValueError(
                f"Section {self.section_number!r}: content_end ({self.content_end}) "
                f"< content_start ({self.content_start})"
            )

    def contains(self, offset: int) -> bool:
        return self.content_start > NOT_FOUND and self.content_start <= offset < self.content_end

    def to_dict(self) -> dict[str, Any]:
        return {
            "dom_index": self.dom_index,
            "section_number": self.section_number,
            "heading": self.heading,
            "heading_offset": self.heading_offset,
            "number_offset": self.number_offset,
            "content_start": self.content_start,
            "content_end": self.content_end,
            "subsections": [s.to_dict() for s in self.subsections],
            "clauses": [c.to_dict() for c in self.clauses],
            "dom_source": self.dom_source,
        }


@dataclass(frozen=True, slots=True)
class LocatedText:
    """Preamble / enactment clause with its raw offset."""

    kind: str               # "preamble" | "enactment_clause"
    text: str
    offset: int
    dom_source: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "offset": self.offset,
            f"has_{self.kind}": True,
            "dom_source": self.dom_source,
        }


@dataclass(frozen=True, slots=True)
class StructureMetadata:
    total_sections: int
    total_subsections: int
    total_clauses: int
    offsets_not_found: int
    extraction_method: str = EXTRACTION_METHOD
    deterministic: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_sections": self.total_sections,
            "total_subsections": self.total_subsections,
            "total_clauses": self.total_clauses,
            "offsets_not_found": self.offsets_not_found,
            "extraction_method": self.extraction_method,
            "deterministic": self.deterministic,
        }


@dataclass(frozen=True, slots=True)
class StructureTree:
    preamble: LocatedText | None
    enactment_clause: LocatedText | None
    sections: tuple[SectionNode, ...]
    metadata: StructureMetadata = field(
        default_factory=lambda: StructureMetadata(0, 0, 0, 0)
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "preamble": self.preamble.to_dict() if self.preamble else None,
            "enactment_clause": (
                self.enactment_clause.to_dict() if self.enactment_clause else None
            ),
            "sections": [s.to_dict() for s in self.sections],
            "metadata": self.metadata.to_dict(),
        }


# ---------------------------------------------------------------------------
# Offset search
# ---------------------------------------------------------------------------


def locate(
    text: str | None,
    raw: str | None,
    search_start: int = 0,
    search_end: int | None = None,
) -> int:
    """Offset of ``text.strip()`` in ``raw[search_start:search_end]``, or -1.

    A negative ``search_start`` means the anchor itself was not found and
    the search is not attempted.
    """
    if not text or not raw or search_start < 0:
        return NOT_FOUND
    needle = text.strip()
    if not needle:
        return NOT_FOUND
    end = len(raw) if search_end is None else search_end
    return raw.find(needle, search_start, end)


def _locate_sections(
    fragments: list[SectionFragment], raw: str,
) -> list[tuple[int, int]]:
    """Pass 1: ``(heading_offset, number_offset)`` per fragment, monotonic."""
    located: list[tuple[int, int]] = []
    cursor = 0
    for frag in fragments:
        heading_offset = locate(frag.heading, raw, cursor) if frag.heading else NOT_FOUND
        number_anchor = heading_offset if heading_offset > NOT_FOUND else cursor
        number_offset = (
            locate(frag.section_number, raw, number_anchor)
            if frag.section_number else NOT_FOUND
        )
        located.append((heading_offset, number_offset))

        if number_offset > NOT_FOUND:
            cursor = number_offset + len(frag.section_number.strip())  # type: ignore[union-attr]
        elif heading_offset > NOT_FOUND:
            cursor = heading_offset + len(frag.heading.strip())  # type: ignore[union-attr]
    return located


def _next_section_boundary(
    located: list[tuple[int, int]], after: int, raw_len: int,
) -> int:
    """Heading offset (else start) of the first located section after ``after``."""
    for heading_offset, number_offset in located[after + 1:]:
        if heading_offset > NOT_FOUND:
            return heading_offset
        if number_offset > NOT_FOUND:
            return number_offset
    return raw_len


def _build_clauses(
    fragments: tuple[ClauseFragment, ...],
    raw: str,
    range_start: int,
    range_end: int,
) -> tuple[ClauseNode, ...]:
    offsets: list[int] = []
    cursor = range_start
    for frag in fragments:
        off = locate(frag.marker, raw, cursor, range_end) if range_start > NOT_FOUND else NOT_FOUND
        offsets.append(off)
        if off > NOT_FOUND:
            cursor = off + len(frag.marker.strip())

    nodes: list[ClauseNode] = []
    for i, (frag, off) in enumerate(zip(fragments, offsets, strict=True)):
        end = NOT_FOUND
        if off > NOT_FOUND:
            end = next((o for o in offsets[i + 1:] if o > NOT_FOUND), range_end)
        nodes.append(ClauseNode(
            marker=frag.marker,
            marker_offset=off,
            index=i,
            content_start=off,
            content_end=end,
        ))
    return tuple(nodes)


def _build_subsections(
    fragments: tuple[SubsectionFragment, ...],
    raw: str,
    range_start: int,
    range_end: int,
) -> tuple[SubsectionNode, ...]:
    offsets: list[int] = []
    cursor = range_start
    for frag in fragments:
        off = locate(frag.marker, raw, cursor, range_end) if range_start > NOT_FOUND else NOT_FOUND
        offsets.append(off)
        if off > NOT_FOUND:
            cursor = off + len(frag.marker.strip())

    nodes: list[SubsectionNode] = []
    for i, (frag, off) in enumerate(zip(fragments, offsets, strict=True)):
        end = NOT_FOUND
        if off > NOT_FOUND:
            end = next((o for o in offsets[i + 1:] if o > NOT_FOUND), range_end)
        nodes.append(SubsectionNode(
            marker=frag.marker,
            marker_offset=off,
            index=i,
            content_start=off,
            content_end=end,
            clauses=_build_clauses(frag.clauses, raw, off, end),
        ))
    return tuple(nodes)


def _locate_text(
    kind: str, fragment: TextFragment | None, raw: str,
) -> LocatedText | None:
    if fragment is None or not fragment.text:
        return None
    return LocatedText(
        kind=kind,
        text=fragment.text,
        offset=locate(fragment.text, raw),
        dom_source=fragment.dom_source,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build_structure_tree(
    sections: list[SectionFragment] | tuple[SectionFragment, ...] | None,
    raw: str,
    *,
    preamble: TextFragment | None = None,
    enactment: TextFragment | None = None,
) -> StructureTree:
    """Locate every fragment in ``raw`` and assemble the ordered tree."""
    fragments = list(sections or [])
    raw = raw or ""
    located = _locate_sections(fragments, raw)

    nodes: list[SectionNode] = []
    for i, (frag, (heading_offset, number_offset)) in enumerate(
        zip(fragments, located, strict=True)
    ):
        content_start = number_offset if number_offset > NOT_FOUND else heading_offset
        content_end = (
            _next_section_boundary(located, i, len(raw))
            if content_start > NOT_FOUND else NOT_FOUND
        )
        nodes.append(SectionNode(
            dom_index=frag.dom_index if frag.dom_index is not None else i,
            index=i,
            section_number=frag.section_number,
            heading=frag.heading,
            heading_offset=heading_offset,
            number_offset=number_offset,
            content_start=content_start,
            content_end=content_end,
            subsections=_build_subsections(frag.subsections, raw, content_start, content_end),
            clauses=_build_clauses(frag.clauses, raw, content_start, content_end),
            body_text=frag.body_text,
        ))

    total_subsections = sum(len(s.subsections) for s in nodes)
    total_clauses = sum(
        len(s.clauses) + sum(len(sub.clauses) for sub in s.subsections) for s in nodes
    )
    return StructureTree(
        preamble=_locate_text("preamble", preamble, raw),
        enactment_clause=_locate_text("enactment_clause", enactment, raw),
        sections=tuple(nodes),
        metadata=StructureMetadata(
            total_sections=len(nodes),
            total_subsections=total_subsections,
            total_clauses=total_clauses,
            offsets_not_found=sum(1 for off in iter_node_offsets(nodes) if off == NOT_FOUND),
        ),
    )


def iter_node_offsets(sections: list[SectionNode] | tuple[SectionNode, ...]) -> list[int]:
    """Every node offset in document order (section starts, then children)."""
    out: list[int] = []
    for s in sections:
        out.append(s.content_start)
        for sub in s.subsections:
            out.append(sub.marker_offset)
            out.extend(c.marker_offset for c in sub.clauses)
        out.extend(c.marker_offset for c in s.clauses)
    return out


def section_fragment_from_dom(
    title_text: str | None,
    body_text: str | None,
    dom_index: int | None = None,
) -> SectionFragment:
    """Build a fragment from a section row's title and body text.

    Each clause marker is nested under the closest preceding subsection
    marker in the body; clauses that appear before any subsection become
    direct children of the section.
    """
    number, heading = split_section_title(title_text)
    body = (body_text or "").strip()
    sub_hits = detect_subsections_in_content(body)
    clause_hits = detect_clauses_in_content(body)

    nested: list[list[ClauseFragment]] = [[] for _ in sub_hits]
    direct: list[ClauseFragment] = []
    for clause in clause_hits:
        owner = NOT_FOUND
        for j, sub in enumerate(sub_hits):
            if sub.relative_offset <= clause.relative_offset:
                owner = j
        if owner == NOT_FOUND:
            direct.append(ClauseFragment(clause.marker))
        else:
            nested[owner].append(ClauseFragment(clause.marker))

    return SectionFragment(
        section_number=number,
        heading=heading,
        subsections=tuple(
            SubsectionFragment(hit.marker, tuple(clauses))
            for hit, clauses in zip(sub_hits, nested, strict=True)
        ),
        clauses=tuple(direct),
        dom_index=dom_index,
        body_text=body,
    )
