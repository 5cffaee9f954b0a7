"""Tests for bdlaw.markers: observation-only marker detection."""
from __future__ import annotations

from bdlaw.markers import (
    count_bengali_section_markers,
    detect_clauses_in_content,
    detect_enactment_clause,
    detect_preamble,
    detect_section_numbers,
    detect_subsections_in_content,
    split_section_title,
)


def test_section_numbers_with_offsets() -> None:
    text = "১৷ প্রথম ধারা ১০৷ দশম ধারা"
    hits = detect_section_numbers(text)
    assert [h.marker for h in hits] == ["১৷", "১০৷"]
    assert [h.relative_offset for h in hits] == [0, text.index("১০৷")]


def test_subsections_and_clauses() -> None:
    text = "(১) এই আইনে (ক) প্রথম (খ) দ্বিতীয় (২) অন্য"
    assert [h.marker for h in detect_subsections_in_content(text)] == ["(১)", "(২)"]
    clauses = detect_clauses_in_content(text)
    assert [h.marker for h in clauses] == ["(ক)", "(খ)"]
    assert clauses[0].relative_offset == text.index("(ক)")


def test_detection_on_empty_text() -> None:
    assert detect_section_numbers(None) == []
    assert detect_subsections_in_content("") == []
    assert detect_clauses_in_content(None) == []


class TestSplitSectionTitle:
    def test_heading_and_number(self) -> None:
        assert split_section_title("সংক্ষিপ্ত শিরোনাম ১৷") == ("১৷", "সংক্ষিপ্ত শিরোনাম")

    def test_number_only(self) -> None:
        assert split_section_title(" ৫৷ ") == ("৫৷", None)

    def test_heading_without_number(self) -> None:
        assert split_section_title("সংজ্ঞা") == (None, "সংজ্ঞা")

    def test_blank(self) -> None:
        assert split_section_title("   ") == (None, None)
        assert split_section_title(None) == (None, None)


class TestPreambleAndEnactment:
    def test_bengali_preamble(self) -> None:
        result = detect_preamble("যেহেতু নিম্নবর্ণিত উদ্দেশ্যে বিধান করা সমীচীন")
        assert result.present
        assert result.position == 0
        assert "bengali_start" in result.categories

    def test_continuation_reports_both_categories(self) -> None:
        result = detect_preamble("এবং যেহেতু ইহা প্রয়োজনীয়")
        assert result.categories[0] == "bengali_continuation"
        assert "যেহেতু" in result.markers

    def test_english_preamble(self) -> None:
        result = detect_preamble("WHEREAS it is expedient to provide")
        assert result.present
        assert result.categories == ("english",)

    def test_enactment(self) -> None:
        text = "সেহেতু এতদ্বারা আইন করা হইল:"
        result = detect_enactment_clause(text)
        assert result.present
        assert result.categories == ("bengali_primary",)

    def test_english_enactment(self) -> None:
        result = detect_enactment_clause("It is hereby enacted as follows")
        assert result.present

    def test_absent(self) -> None:
        assert not detect_preamble("ধারা ১৷").present
        assert detect_enactment_clause("").position is None


def test_count_bengali_section_markers() -> None:
    text = "অধ্যায় ১ ধারা ১৷ কিছু ধারা ২৷ তফসিল"
    counts = count_bengali_section_markers(text)
    assert counts["dhara_count"] == 2
    assert counts["numeral_danda_count"] == 2
    assert counts["bengali_numbered_sections"] == 4
    assert counts["chapter_count"] == 1
    assert counts["schedule_count"] == 1
    assert count_bengali_section_markers(None)["dhara_count"] == 0
