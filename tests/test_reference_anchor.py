"""Tests for bdlaw.reference_anchor — merge, scope anchoring and ordering."""
from __future__ import annotations

from bdlaw.parsing_types import NOT_FOUND, Scope
from bdlaw.reference_anchor import (
    REFERENCE_SEMANTICS,
    REFERENCE_WARNING,
    LinkCandidate,
    PatternCandidate,
    anchor_reference_scope,
    build_cross_references,
    place_links_in_sections,
)
from bdlaw.structure_builder import (
    ClauseFragment,
    SectionFragment,
    SubsectionFragment,
    StructureTree,
    build_structure_tree,
)

RAW = (
    "যেহেতু ইহা সমীচীন;\n\n"
    "ধারা ১৷ (ক) প্রথম দফা ১৯৯১ সনের ২২ নং আইন\n\n"
    "ধারা ২৷ (১) এক (ক) কথা Act XV of 1984 (২) দুই উল্লেখ"
)


def _structure() -> StructureTree:
    return build_structure_tree(
        [
            SectionFragment("১৷", "ধারা", clauses=(ClauseFragment("(ক)"),)),
            SectionFragment(
                "২৷",
                "ধারা",
                subsections=(
                    SubsectionFragment("(১)", (ClauseFragment("(ক)"),)),
                    SubsectionFragment("(২)"),
                ),
            ),
        ],
        RAW,
    )


class TestAnchorReferenceScope:
    def test_direct_clause_of_section(self) -> None:
        offset = RAW.index("১৯৯১")
        scope = anchor_reference_scope(offset, _structure())
        assert scope == Scope(section="১৷", subsection=None, clause="(ক)", dom_section_index=0)

    def test_clause_inside_subsection(self) -> None:
        offset = RAW.index("Act XV")
        scope = anchor_reference_scope(offset, _structure())
        assert scope.section == "২৷"
        assert scope.subsection == "(১)"
        assert scope.clause == "(ক)"
        assert scope.dom_section_index == 1

    def test_later_subsection_does_not_inherit_clause(self) -> None:
        offset = RAW.index("উল্লেখ")
        scope = anchor_reference_scope(offset, _structure())
        assert scope.subsection == "(২)"
        assert scope.clause is None

    def test_section_marker_itself_is_in_range(self) -> None:
        structure = _structure()
        start = structure.sections[1].content_start
        assert anchor_reference_scope(start, structure).section == "২৷"

    def test_offset_outside_sections(self) -> None:
        assert anchor_reference_scope(0, _structure()) == Scope()

    def test_no_structure_or_bad_offset(self) -> None:
        assert anchor_reference_scope(5, None) == Scope()
        assert anchor_reference_scope(NOT_FOUND, _structure()) == Scope()

    def test_unlocated_markers_never_qualify(self) -> None:
        raw = "ধারা ১৷ কোনো দফা নেই Act XV of 1984"
        structure = build_structure_tree(
            [SectionFragment("১৷", "ধারা", clauses=(ClauseFragment("(ক)"),))], raw,
        )
        assert structure.sections[0].clauses[0].marker_offset == NOT_FOUND
        scope = anchor_reference_scope(raw.index("Act"), structure)
        assert scope.section == "১৷"
        assert scope.clause is None


class TestBuildCrossReferences:
    def test_link_wins_over_pattern_at_same_offset(self) -> None:
        offset = RAW.index("১৯৯১")
        text = "১৯৯১ সনের ২২ নং আইন"
        refs = build_cross_references(
            [LinkCandidate(text, offset, href="/act-details-712.html", act_id="712")],
            [PatternCandidate(text, offset, pattern_type="bengali_citation")],
            _structure(),
        )
        assert len(refs) == 1
        assert refs[0].href == "/act-details-712.html"
        assert refs[0].act_id == "712"
        assert refs[0].source == "link"

    def test_pattern_only_reference_has_no_link_fields(self) -> None:
        offset = RAW.index("Act XV")
        refs = build_cross_references(
            None, [PatternCandidate("Act XV of 1984", offset)], _structure(),
        )
        assert refs[0].href is None
        assert refs[0].act_id is None
        assert refs[0].source == "pattern"

    def test_sorted_by_offset_and_unique(self) -> None:
        late = RAW.index("Act XV")
        early = RAW.index("১৯৯১")
        refs = build_cross_references(
            [LinkCandidate("Act XV of 1984", late)],
            [
                PatternCandidate("১৯৯১ সনের ২২ নং আইন", early),
                PatternCandidate("Act XV of 1984", late),
            ],
            _structure(),
        )
        offsets = [r.character_offset for r in refs]
        assert offsets == [early, late]
        assert len(set(offsets)) == len(offsets)

    def test_unusable_candidates_are_skipped(self) -> None:
        refs = build_cross_references(
            [
                LinkCandidate("missing", NOT_FOUND),
                LinkCandidate("", 10),
                LinkCandidate("bool", True),  # type: ignore[arg-type]
            ],
            [PatternCandidate("float", 3.5)],  # type: ignore[arg-type]
            _structure(),
        )
        assert refs == []

    def test_empty_inputs(self) -> None:
        assert build_cross_references(None, None, None) == []

    def test_to_dict_carries_disclaimer(self) -> None:
        offset = RAW.index("Act XV")
        ref = build_cross_references([LinkCandidate("Act XV of 1984", offset)], [], _structure())[0]
        out = ref.to_dict()
        assert out["reference_semantics"] == REFERENCE_SEMANTICS == "string_match_only"
        assert out["reference_warning"] == REFERENCE_WARNING
        assert out["scope"]["section"] == "২৷"
        assert out["character_offset"] == offset
        assert "source" not in out


class TestPlaceLinksInSections:
    def test_link_moves_into_its_section(self) -> None:
        link = LinkCandidate("Act XV of 1984", 0, "/act-details-77.html", "77", 1)
        placed = place_links_in_sections([link], _structure(), RAW)
        assert placed[0].character_offset == RAW.index("Act XV of 1984")
        assert placed[0].act_id == "77"

    def test_text_outside_its_section_is_not_found(self) -> None:
        text = "১৯৯১ সনের ২২ নং আইন"
        link = LinkCandidate(text, RAW.index(text), None, None, 1)
        assert place_links_in_sections([link], _structure(), RAW)[0].character_offset == NOT_FOUND

    def test_links_without_a_located_section_keep_their_offset(self) -> None:
        links = [
            LinkCandidate("Act XV of 1984", 5, None, None, None),
            LinkCandidate("Act XV of 1984", 6, None, None, 7),
        ]
        assert place_links_in_sections(links, _structure(), RAW) == links
        assert place_links_in_sections(links, None, RAW) == links
