"""Tests for bdlaw.structure_builder — offset-anchored section tree."""
from __future__ import annotations

import pytest

from bdlaw.io_utils import dumps_json
from bdlaw.parsing_types import NOT_FOUND
from bdlaw.structure_builder import (
    ClauseFragment,
    SectionFragment,
    SectionNode,
    SubsectionFragment,
    TextFragment,
    build_structure_tree,
    iter_node_offsets,
    locate,
    section_fragment_from_dom,
)

TWO_SECTIONS = "ধারা ১৷ প্রথম বিধান (ক) কিছু কথা ধারা ২৷ দ্বিতীয় বিধান"


def _two_section_fragments() -> list[SectionFragment]:
    return [
        SectionFragment("১৷", "ধারা", clauses=(ClauseFragment("(ক)"),)),
        SectionFragment("২৷", "ধারা"),
    ]


class TestLocate:
    def test_forward_search(self) -> None:
        raw = "ab ab ab"
        assert locate("ab", raw) == 0
        assert locate("ab", raw, 1) == 3
        assert locate("ab", raw, 4, 6) == NOT_FOUND

    def test_strips_needle(self) -> None:
        assert locate("  ধারা ", "এই ধারা") == 3

    def test_not_found_and_empty(self) -> None:
        assert locate("xyz", "abc") == NOT_FOUND
        assert locate("", "abc") == NOT_FOUND
        assert locate("   ", "abc") == NOT_FOUND
        assert locate(None, "abc") == NOT_FOUND
        assert locate("a", "") == NOT_FOUND

    def test_negative_anchor_disables_search(self) -> None:
        assert locate("a", "abc", NOT_FOUND) == NOT_FOUND


class TestSectionRanges:
    def test_section_ends_at_next_heading(self) -> None:
        tree = build_structure_tree(_two_section_fragments(), TWO_SECTIONS)
        first, second = tree.sections
        assert first.number_offset == TWO_SECTIONS.index("১৷")
        assert first.content_start == first.number_offset
        assert first.content_end == TWO_SECTIONS.index("ধারা ২৷")
        assert second.heading_offset == first.content_end
        assert second.content_end == len(TWO_SECTIONS)

    def test_clause_is_inside_its_section(self) -> None:
        tree = build_structure_tree(_two_section_fragments(), TWO_SECTIONS)
        clause = tree.sections[0].clauses[0]
        assert clause.marker_offset == TWO_SECTIONS.index("(ক)")
        assert tree.sections[0].contains(clause.marker_offset)
        assert not tree.sections[1].contains(clause.marker_offset)
        assert clause.content_end == tree.sections[0].content_end

    def test_offsets_are_monotonic_and_in_input_order(self) -> None:
        raw = "ধারা ১৷ এক ধারা ২৷ দুই ধারা ৩৷ তিন"
        fragments = [SectionFragment(n, "ধারা") for n in ("১৷", "২৷", "৩৷")]
        tree = build_structure_tree(fragments, raw)
        starts = [s.content_start for s in tree.sections]
        assert starts == sorted(starts)
        assert [s.section_number for s in tree.sections] == ["১৷", "২৷", "৩৷"]
        assert [s.index for s in tree.sections] == [0, 1, 2]
        for left, right in zip(tree.sections, tree.sections[1:]):
            assert left.content_end == right.heading_offset

    def test_repeated_heading_maps_to_successive_occurrences(self) -> None:
        raw = "সংজ্ঞা ১৷ এক সংজ্ঞা ২৷ দুই"
        fragments = [SectionFragment("১৷", "সংজ্ঞা"), SectionFragment("২৷", "সংজ্ঞা")]
        tree = build_structure_tree(fragments, raw)
        assert tree.sections[0].heading_offset == 0
        assert tree.sections[1].heading_offset == raw.index("সংজ্ঞা", 1)

    def test_marker_before_section_is_not_picked_up(self) -> None:
        raw = "ভূমিকায় (১) উল্লেখ আছে\n\nধারা ১৷ (১) প্রথম উপধারা"
        fragments = [SectionFragment("১৷", "ধারা", subsections=(SubsectionFragment("(১)"),))]
        tree = build_structure_tree(fragments, raw)
        sub = tree.sections[0].subsections[0]
        assert sub.marker_offset == raw.index("(১)", raw.index("১৷"))
        assert sub.marker_offset > raw.index("(১)")


class TestNotFound:
    def test_missing_section_propagates_to_children(self) -> None:
        raw = "ধারা ১৷ (১) এক (ক) কথা"
        fragments = [
            SectionFragment(
                "৯৷",
                None,
                subsections=(SubsectionFragment("(১)", (ClauseFragment("(ক)"),)),),
                clauses=(ClauseFragment("(ক)"),),
            )
        ]
        tree = build_structure_tree(fragments, raw)
        section = tree.sections[0]
        assert section.content_start == NOT_FOUND
        assert section.content_end == NOT_FOUND
        assert section.subsections[0].marker_offset == NOT_FOUND
        assert section.subsections[0].clauses[0].marker_offset == NOT_FOUND
        assert section.clauses[0].marker_offset == NOT_FOUND
        assert tree.metadata.offsets_not_found == 4

    def test_missing_number_falls_back_to_heading(self) -> None:
        raw = "সংজ্ঞা এই আইনে"
        tree = build_structure_tree([SectionFragment("১৷", "সংজ্ঞা")], raw)
        section = tree.sections[0]
        assert section.number_offset == NOT_FOUND
        assert section.content_start == 0
        assert section.content_end == len(raw)

    def test_located_sibling_after_missing_one(self) -> None:
        raw = "ধারা ১৷ (১) এক (৩) তিন"
        fragments = [
            SectionFragment(
                "১৷",
                "ধারা",
                subsections=(
                    SubsectionFragment("(১)"),
                    SubsectionFragment("(২)"),
                    SubsectionFragment("(৩)"),
                ),
            )
        ]
        tree = build_structure_tree(fragments, raw)
        subs = tree.sections[0].subsections
        assert [s.marker_offset for s in subs] == [
            raw.index("(১)"), NOT_FOUND, raw.index("(৩)"),
        ]
        assert subs[0].content_end == raw.index("(৩)")
        assert subs[1].content_end == NOT_FOUND

    def test_end_before_start_rejected(self) -> None:
        with pytest.raises(ValueError):
            SectionNode(
                dom_index=0, index=0, section_number="১৷", heading=None,
                heading_offset=-1, number_offset=10, content_start=10,
                content_end=5, subsections=(), clauses=(),
            )


class TestTreeOutput:
    def test_metadata_counts(self) -> None:
        raw = "ধারা ১৷ (১) এক (ক) কথা (খ) কথা (২) দুই ধারা ২৷ (গ) সরাসরি"
        fragments = [
            SectionFragment(
                "১৷",
                "ধারা",
                subsections=(
                    SubsectionFragment("(১)", (ClauseFragment("(ক)"), ClauseFragment("(খ)"))),
                    SubsectionFragment("(২)"),
                ),
            ),
            SectionFragment("২৷", "ধারা", clauses=(ClauseFragment("(গ)"),)),
        ]
        tree = build_structure_tree(fragments, raw)
        meta = tree.metadata
        assert meta.total_sections == 2
        assert meta.total_subsections == 2
        assert meta.total_clauses == 3
        assert meta.offsets_not_found == 0
        assert meta.extraction_method == "dom_first"
        assert meta.deterministic is True
        assert len(iter_node_offsets(tree.sections)) == 7

    def test_preamble_and_enactment_located(self) -> None:
        raw = "যেহেতু ইহা সমীচীন;\n\nসেহেতু এতদ্বারা আইন করা হইল:\n\nধারা ১৷ এক"
        tree = build_structure_tree(
            [SectionFragment("১৷", "ধারা")],
            raw,
            preamble=TextFragment("যেহেতু ইহা সমীচীন;"),
            enactment=TextFragment("সেহেতু এতদ্বারা আইন করা হইল:"),
        )
        out = tree.to_dict()
        assert out["preamble"]["offset"] == 0
        assert out["preamble"]["has_preamble"] is True
        assert out["enactment_clause"]["offset"] == raw.index("সেহেতু")
        assert out["enactment_clause"]["has_enactment_clause"] is True
        assert out["enactment_clause"]["dom_source"] == ".lineremove"

    def test_empty_input(self) -> None:
        tree = build_structure_tree(None, "")
        assert tree.sections == ()
        assert tree.preamble is None
        assert tree.metadata.total_sections == 0

    def test_dom_index_defaults_to_position(self) -> None:
        tree = build_structure_tree(_two_section_fragments(), TWO_SECTIONS)
        assert [s.dom_index for s in tree.sections] == [0, 1]
        assert tree.to_dict()["sections"][0]["dom_source"] == ".lineremoves"

    def test_repeated_builds_serialize_identically(self) -> None:
        a = build_structure_tree(_two_section_fragments(), TWO_SECTIONS)
        b = build_structure_tree(_two_section_fragments(), TWO_SECTIONS)
        assert dumps_json(a.to_dict()) == dumps_json(b.to_dict())


class TestSectionFragmentFromDom:
    def test_clause_nesting(self) -> None:
        frag = section_fragment_from_dom(
            "সংজ্ঞা ২৷",
            "(ক) সরাসরি (১) প্রথম (খ) উপদফা (২) দ্বিতীয় (গ) শেষ",
            dom_index=3,
        )
        assert frag.section_number == "২৷"
        assert frag.heading == "সংজ্ঞা"
        assert frag.dom_index == 3
        assert [c.marker for c in frag.clauses] == ["(ক)"]
        assert [s.marker for s in frag.subsections] == ["(১)", "(২)"]
        assert [c.marker for c in frag.subsections[0].clauses] == ["(খ)"]
        assert [c.marker for c in frag.subsections[1].clauses] == ["(গ)"]

    def test_empty_row(self) -> None:
        frag = section_fragment_from_dom(None, None)
        assert frag.section_number is None
        assert frag.heading is None
        assert frag.subsections == ()
        assert frag.body_text == ""
