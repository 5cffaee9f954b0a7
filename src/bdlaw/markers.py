"""Observation-only marker detection over Bengali legal text.

Nothing here modifies the text it scans. Offsets returned by the
``*_in_content`` helpers are relative to the string passed in; callers that
need content_raw offsets go through :func:`bdlaw.structure_builder.locate`.
"""
from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from bdlaw.patterns import (
    ENACTMENT_PATTERNS,
    PREAMBLE_PATTERNS,
    SECTION_MARKER_WORDS,
    STRUCTURE_PATTERNS,
)


@dataclass(frozen=True, slots=True)
class MarkerHit:
    """A verbatim marker and its offset relative to the scanned text."""

    marker: str
    relative_offset: int


@dataclass(frozen=True, slots=True)
class PatternPresence:
    """Presence of preamble or enactment wording in a text."""

    present: bool
    position: int | None        # earliest match offset, None if absent
    markers: tuple[str, ...]    # distinct matched strings, in discovery order
    categories: tuple[str, ...] # pattern categories that matched


def _scan(pattern: re.Pattern[str], text: str | None) -> list[MarkerHit]:
    if not text:
        return []
    return [MarkerHit(m.group(0), m.start()) for m in pattern.finditer(text)]


def detect_section_numbers(text: str | None) -> list[MarkerHit]:
    """Bengali numeral + danda markers: ``১৷``, ``১০৷``."""
    return _scan(STRUCTURE_PATTERNS["section_number"], text)


def detect_subsections_in_content(text: str | None) -> list[MarkerHit]:
    """Parenthesised Bengali numerals: ``(১)``, ``(১০)``."""
    return _scan(STRUCTURE_PATTERNS["subsection_marker"], text)


def detect_clauses_in_content(text: str | None) -> list[MarkerHit]:
    """Parenthesised Bengali letters ``(ক)`` through ``(ঢ)``."""
    return _scan(STRUCTURE_PATTERNS["clause_marker"], text)


def split_section_title(title: str | None) -> tuple[str | None, str | None]:
    """Split a ``.txt-head`` title into ``(section_number, heading)``.

    The heading is the text before the first numeral+danda marker; a title
    without a marker is all heading.
    """
    if not title or not title.strip():
        return None, None
    text = title.strip()
    m = STRUCTURE_PATTERNS["section_number"].search(text)
    if m is None:
        return None, text
    heading = text[:m.start()].strip()
    return m.group(0), (heading or None)


def _detect_presence(
    text: str | None,
    table: Mapping[str, Sequence[re.Pattern[str]]],
) -> PatternPresence:
    if not text:
        return PatternPresence(present=False, position=None, markers=(), categories=())
    earliest: int | None = None
    markers: list[str] = []
    categories: list[str] = []
    for category, patterns in table.items():
        for pattern in patterns:
            for m in pattern.finditer(text):
                if m.group(0) not in markers:
                    markers.append(m.group(0))
                if category not in categories:
                    categories.append(category)
                if earliest is None or m.start() < earliest:
                    earliest = m.start()
    return PatternPresence(
        present=earliest is not None,
        position=earliest,
        markers=tuple(markers),
        categories=tuple(categories),
    )


def detect_preamble(text: str | None) -> PatternPresence:
    """``যেহেতু`` / ``এবং যেহেতু`` / ``WHEREAS`` / ``Preamble``."""
    return _detect_presence(text, PREAMBLE_PATTERNS)


def detect_enactment_clause(text: str | None) -> PatternPresence:
    """``সেহেতু এতদ্বারা আইন করা হইল`` / ``Be it enacted`` and variants."""
    return _detect_presence(text, ENACTMENT_PATTERNS)


def count_bengali_section_markers(text: str | None) -> dict[str, int]:
    """Marker frequencies: ধারা, numeral+danda, their sum, অধ্যায়, তফসিল."""
    counts = {
        "dhara_count": 0,
        "numeral_danda_count": 0,
        "bengali_numbered_sections": 0,
        "chapter_count": 0,
        "schedule_count": 0,
    }
    if not text:
        return counts
    counts["dhara_count"] = text.count(SECTION_MARKER_WORDS["dhara"])
    counts["numeral_danda_count"] = len(detect_section_numbers(text))
    counts["bengali_numbered_sections"] = (
        counts["dhara_count"] + counts["numeral_danda_count"]
    )
    counts["chapter_count"] = text.count(SECTION_MARKER_WORDS["chapter"])
    counts["schedule_count"] = text.count(SECTION_MARKER_WORDS["schedule"])
    return counts
