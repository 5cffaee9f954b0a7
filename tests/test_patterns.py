"""Tests for bdlaw.patterns: data-driven pattern tables and resolution."""
from __future__ import annotations

from bdlaw.patterns import (
    ACT_LINK_RE,
    CITATION_PATTERNS,
    DEFAULT_RELATION,
    LEXICAL_RELATION_KEYWORDS,
    NON_SEMANTIC,
    POTENTIAL_SEMANTIC,
    RISK_CLASSIFICATION,
    STRUCTURE_PATTERNS,
    first_category,
    first_keyword_category,
    risk_level,
)


class TestCitationPatterns:
    def test_bengali_short(self) -> None:
        m = CITATION_PATTERNS["BENGALI_ACT_SHORT"].search("দেখুন ১৯৯১ সনের ২২ নং আইন")
        assert m is not None
        assert m.group(0) == "১৯৯১ সনের ২২ নং আইন"
        assert m.group(1) == "১৯৯১"
        assert m.group(2) == "২২"
        assert m.group(3) == "আইন"

    def test_bengali_short_ordinance(self) -> None:
        m = CITATION_PATTERNS["BENGALI_ACT_SHORT"].search("১৯৮৪ সনের ৩৬ নং অধ্যাদেশ")
        assert m is not None
        assert m.group(3) == "অধ্যাদেশ"

    def test_english_short(self) -> None:
        m = CITATION_PATTERNS["ENGLISH_ACT_SHORT"].search("as amended by Act XV of 1984")
        assert m is not None
        assert m.groups() == ("XV", "1984")

    def test_english_full(self) -> None:
        m = CITATION_PATTERNS["ENGLISH_ACT_FULL"].search(
            "Income Tax Ordinance, 1984 (XXXVI of 1984)"
        )
        assert m is not None
        assert m.group(1) == "Income Tax Ordinance"
        assert m.group(3) == "XXXVI"

    def test_presidents_order(self) -> None:
        m = CITATION_PATTERNS["PRESIDENTS_ORDER"].search("under P.O. No. 12 of 1972")
        assert m is not None
        assert m.groups() == ("12", "1972")

    def test_act_link(self) -> None:
        m = ACT_LINK_RE.search("http://bdlaws.minlaw.gov.bd/act-details-367.html")
        assert m is not None
        assert m.group(1) == "367"


class TestStructurePatterns:
    def test_section_number_uses_bengali_danda(self) -> None:
        pattern = STRUCTURE_PATTERNS["section_number"]
        assert pattern.fullmatch("১০৷")
        # U+0964 is the sentence terminator, not a section marker
        assert pattern.fullmatch("১০।") is None

    def test_clause_range(self) -> None:
        pattern = STRUCTURE_PATTERNS["clause_marker"]
        assert pattern.fullmatch("(ক)")
        assert pattern.fullmatch("(ঢ)")
        assert pattern.fullmatch("(১)") is None


class TestResolution:
    def test_first_category_declaration_order(self) -> None:
        table = {"a": ("x", "y"), "b": ("y",)}
        assert first_category("y", table, default="none") == "a"
        assert first_category("z", table, default="none") == "none"

    def test_first_category_case_insensitive(self) -> None:
        table = {"a": ("Hello",)}
        assert first_category("hello", table, default="-") == "-"
        assert first_category("hello", table, default="-", case_insensitive=True) == "a"

    def test_first_keyword_category_first_wins(self) -> None:
        text = "section 3 was repealed and later amended"
        assert first_keyword_category(text, LEXICAL_RELATION_KEYWORDS, default=DEFAULT_RELATION) == "amendment"

    def test_first_keyword_category_default(self) -> None:
        assert first_keyword_category("", LEXICAL_RELATION_KEYWORDS, default="mention") == "mention"
        assert first_keyword_category("plain text", {"k": ("zzz",)}, default="mention") == "mention"

    def test_bengali_keyword(self) -> None:
        assert first_keyword_category("আইনটি রহিত করা হইল", LEXICAL_RELATION_KEYWORDS, default="mention") == "repeal"


class TestRiskLevel:
    def test_every_listed_type_resolves_to_its_class(self) -> None:
        for level, types in RISK_CLASSIFICATION.items():
            for t in types:
                assert risk_level(t) == level

    def test_unknown_type_is_potential_semantic(self) -> None:
        assert risk_level("brand_new_fix") == POTENTIAL_SEMANTIC
        assert risk_level("html_entity") == NON_SEMANTIC
