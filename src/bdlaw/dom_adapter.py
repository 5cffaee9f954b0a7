"""BeautifulSoup-backed document accessor for act detail pages.

Page layout (act detail page)::

    .boxed-layout                      act container
      .lineremove                      preamble / enactment rows (singular)
      .lineremoves                     one row per section (plural)
        .col-sm-3.txt-head             "<heading> ১৷"
        .col-sm-9.txt-details          section body
          a[href*="act-details"]       link to another act

Text is always the element's full text content (``get_text()``), never a
rendered or whitespace-collapsed view. :func:`capture_raw_text` assembles
content_raw from the same elements the fragments come from, so every
fragment can be found in it.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Protocol

from bs4 import BeautifulSoup
from bs4.element import Tag

from bdlaw.derivation import StructureData
from bdlaw.markers import detect_enactment_clause, detect_preamble
from bdlaw.parsing_types import NOT_FOUND
from bdlaw.patterns import ACT_LINK_RE
from bdlaw.reference_anchor import LinkCandidate
from bdlaw.structure_builder import (
    PREAMBLE_DOM_SOURCE,
    SectionFragment,
    TextFragment,
    locate,
    section_fragment_from_dom,
)

ACT_CONTAINER = ".boxed-layout"
SECTION_ROWS = ".lineremoves"
SECTION_TITLE = ".col-sm-3.txt-head"
SECTION_BODY = ".col-sm-9.txt-details"
PREAMBLE_ROWS = ".lineremove"
STATUTORY_LINKS = 'a[href*="act-details"]'
SECTION_ROW_CLASS = "lineremoves"


class DocumentAccessor(Protocol):
    """Minimal DOM query capability the extraction layer needs."""

    @property
    def text(self) -> str: ...

    def select_text(self, selector: str) -> str | None: ...

    def select_all(self, selector: str) -> list[DocumentAccessor]: ...

    def attr(self, name: str) -> str | None: ...

    def has_class(self, name: str) -> bool: ...

    def contains(self, other: DocumentAccessor) -> bool: ...


class SoupAccessor:
    """DocumentAccessor over a bs4 ``Tag`` (or a whole ``BeautifulSoup``)."""

    def __init__(self, node: Tag) -> None:
        self._node = node

    @property
    def node(self) -> Tag:
        return self._node

    @property
    def text(self) -> str:
        return self._node.get_text()

    def select_text(self, selector: str) -> str | None:
        found = self._node.select_one(selector)
        return found.get_text() if found is not None else None

    def select_all(self, selector: str) -> list[DocumentAccessor]:
        return [SoupAccessor(t) for t in self._node.select(selector)]

    def attr(self, name: str) -> str | None:
        value = self._node.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value

    def has_class(self, name: str) -> bool:
        classes = self._node.get("class") or []
        return name in classes

    def contains(self, other: DocumentAccessor) -> bool:
        if not isinstance(other, SoupAccessor):
            return False
        return any(parent is self._node for parent in other.node.parents)


def accessor_from_html(html: str) -> SoupAccessor:
    """Parse a page; scope to the act container when the page has one."""
    soup = BeautifulSoup(html, "html.parser")
    container = soup.select_one(ACT_CONTAINER)
    return SoupAccessor(container if container is not None else soup)


def read_html(path: Path) -> SoupAccessor:
    return accessor_from_html(path.read_text(encoding="utf-8"))


# ---------------------------------------------------------------------------
# Raw capture
# ---------------------------------------------------------------------------


def _preamble_rows(doc: DocumentAccessor) -> list[DocumentAccessor]:
    return [
        row for row in doc.select_all(PREAMBLE_ROWS)
        if not row.has_class(SECTION_ROW_CLASS) and row.text.strip()
    ]


def _section_parts(row: DocumentAccessor) -> tuple[str, str]:
    title = (row.select_text(SECTION_TITLE) or "").strip()
    body = (row.select_text(SECTION_BODY) or "").strip()
    return title, body


def capture_raw_text(doc: DocumentAccessor) -> str:
    """Assemble content_raw: preamble rows, then ``title\\nbody`` per section.

    Parts are joined with a blank line. This is the capture; it is never
    altered afterwards.
    """
    parts: list[str] = []
    preamble = [row.text.strip() for row in _preamble_rows(doc)]
    if preamble:
        parts.append("\n\n".join(preamble))
    for row in doc.select_all(SECTION_ROWS):
        title, body = _section_parts(row)
        section = "\n".join(p for p in (title, body) if p)
        if section:
            parts.append(section)
    return "\n\n".join(parts)


# ---------------------------------------------------------------------------
# Fragments
# ---------------------------------------------------------------------------


def extract_section_fragments(doc: DocumentAccessor) -> list[SectionFragment]:
    fragments: list[SectionFragment] = []
    for index, row in enumerate(doc.select_all(SECTION_ROWS)):
        title, body = _section_parts(row)
        fragments.append(section_fragment_from_dom(title, body, dom_index=index))
    return fragments


def extract_preamble(doc: DocumentAccessor) -> TextFragment | None:
    for row in _preamble_rows(doc):
        text = row.text.strip()
        if detect_preamble(text).present:
            return TextFragment(text=text, dom_source=PREAMBLE_DOM_SOURCE)
    return None


def extract_enactment(doc: DocumentAccessor) -> TextFragment | None:
    for row in _preamble_rows(doc):
        text = row.text.strip()
        if detect_enactment_clause(text).present:
            return TextFragment(text=text, dom_source=PREAMBLE_DOM_SOURCE)
    return None


def act_id_from_href(href: str | None) -> str | None:
    m = ACT_LINK_RE.search(href) if href else None
    return m.group(1) if m else None


def locate_links(
    links: Iterable[tuple[str, str | None, int | None]],
    raw: str,
) -> list[LinkCandidate]:
    """Locate ``(text, href, dom_section_index)`` links in ``raw``, in order.

    Each search starts after the previous located link so that two links
    with the same text map to successive occurrences. Empty link text is
    skipped; text that is not in ``raw`` is kept at ``-1``. Derivation later
    re-locates each link inside the raw range of its own section row.
    """
    candidates: list[LinkCandidate] = []
    cursor = 0
    for text, href, dom_index in links:
        citation_text = (text or "").strip()
        if not citation_text:
            continue
        offset = locate(citation_text, raw, cursor)
        if offset > NOT_FOUND:
            cursor = offset + len(citation_text)
        candidates.append(LinkCandidate(
            citation_text=citation_text,
            character_offset=offset,
            href=href or None,
            act_id=act_id_from_href(href),
            dom_section_index=dom_index,
        ))
    return candidates


def extract_link_candidates(doc: DocumentAccessor, raw: str) -> list[LinkCandidate]:
    """``act-details`` links in document order, located in ``raw``."""
    rows = doc.select_all(SECTION_ROWS)
    links = [
        (
            link.text,
            link.attr("href"),
            next((i for i, row in enumerate(rows) if row.contains(link)), None),
        )
        for link in doc.select_all(STATUTORY_LINKS)
    ]
    return locate_links(links, raw)


def extract_structure_data(doc: DocumentAccessor, raw: str) -> StructureData:
    """Everything derivation needs from the page; pattern candidates are left
    for derivation to detect from the section bodies."""
    return StructureData(
        sections=tuple(extract_section_fragments(doc)),
        preamble=extract_preamble(doc),
        enactment=extract_enactment(doc),
        link_candidates=tuple(extract_link_candidates(doc, raw)),
    )


def _capture_rows(capture: Mapping[str, Any], key: str) -> list[Mapping[str, Any]]:
    rows = capture.get(key) or []
    if not isinstance(rows, list):
        raise ValueError(f"Capture {key!r} must be a list, got {type(rows).__name__}")
    for i, row in enumerate(rows):
        if not isinstance(row, Mapping):
            raise ValueError(f"Capture {key}[{i}] must be an object, got {type(row).__name__}")
        for field_name in ("title", "body", "text", "href"):
            value = row.get(field_name)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"Capture {key}[{i}].{field_name} must be a string")
    return rows


def _capture_text(capture: Mapping[str, Any], key: str) -> str | None:
    value = capture.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"Capture {key!r} must be a string, got {type(value).__name__}")
    return value


def structure_data_from_capture(capture: Mapping[str, Any], raw: str) -> StructureData:
    """Same as :func:`extract_structure_data` for a capture saved as JSON::

        {"sections": [{"title": "...", "body": "..."}],
         "preamble": "...", "enactment": "...",
         "links": [{"text": "...", "href": "...", "dom_section_index": 0}]}

    Raises ValueError when ``sections`` or ``links`` is not a list of objects,
    or when a text field holds something other than a string.
    """
    section_rows = _capture_rows(capture, "sections")
    link_rows = _capture_rows(capture, "links")
    sections = tuple(
        section_fragment_from_dom(s.get("title"), s.get("body"), dom_index=i)
        for i, s in enumerate(section_rows)
    )
    preamble = _capture_text(capture, "preamble")
    enactment = _capture_text(capture, "enactment")
    links = [
        (str(link.get("text") or ""), link.get("href"), link.get("dom_section_index"))
        for link in link_rows
    ]
    return StructureData(
        sections=sections,
        preamble=TextFragment(preamble.strip()) if preamble and preamble.strip() else None,
        enactment=TextFragment(enactment.strip()) if enactment and enactment.strip() else None,
        link_candidates=tuple(locate_links(links, raw)),
    )
