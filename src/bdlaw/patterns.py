"""Pattern tables for citations, structure markers, risk and relation classes.

Every table is data: an ordered mapping from category to its patterns.
Resolution is always first-category-wins in declaration order, so the
scanning loops elsewhere never encode precedence in control flow.

Bengali numerals are U+09E6..U+09EF; the danda used in section numbers is
U+09F7 (``৷``), not the Devanagari danda U+0964 (``।``) used as a sentence
terminator.
"""
from __future__ import annotations

import re
from collections.abc import Mapping, Sequence

# ---------------------------------------------------------------------------
# Citation patterns (pattern-derived reference candidates)
# ---------------------------------------------------------------------------

_BN_DIGIT = "[০-৯]"

CITATION_PATTERNS: Mapping[str, re.Pattern[str]] = {
    # "Income Tax Ordinance, 1984 (XXXVI of 1984)"
    "ENGLISH_ACT_FULL": re.compile(
        r"([A-Z][a-zA-Z\s]+(?:Act|Ordinance)),?\s*(\d{4})\s*"
        r"\(([IVXLCDM]+|\d+)\s+of\s+(\d{4})\)"
    ),
    # "Act XV of 1984"
    "ENGLISH_ACT_SHORT": re.compile(
        r"(?:Act|Ordinance)\s+([IVXLCDM]+|\d+)\s+of\s+(\d{4})"
    ),
    # "<name> আইন, ১৯৯১ (১৯৯১ সনের ২২ নং আইন)"
    "BENGALI_ACT_FULL": re.compile(
        r"([^\s,।]+(?:\s+[^\s,।]+)*\s+আইন),?\s*(" + _BN_DIGIT + r"{4})\s*"
        r"\((" + _BN_DIGIT + r"{4})\s*সনের\s*(" + _BN_DIGIT + r"+)\s*নং\s*আইন\)"
    ),
    # "১৯৯১ সনের ২২ নং আইন"
    "BENGALI_ACT_SHORT": re.compile(
        r"(" + _BN_DIGIT + r"{4})\s*সনের\s*(" + _BN_DIGIT + r"+)\s*নং\s*(আইন|অধ্যাদেশ)"
    ),
    # "<name> অধ্যাদেশ, ১৯৮৪ (অধ্যাদেশ নং ৩৬, ১৯৮৪)"
    "BENGALI_ORDINANCE": re.compile(
        r"([^\s,।]+(?:\s+[^\s,।]+)*\s+অধ্যাদেশ),?\s*(" + _BN_DIGIT + r"{4})\s*"
        r"\(অধ্যাদেশ\s*নং\s*(" + _BN_DIGIT + r"+),?\s*(" + _BN_DIGIT + r"{4})\)"
    ),
    # "P.O. No. 12 of 1972"
    "PRESIDENTS_ORDER": re.compile(
        r"P\.?O\.?\s*(?:No\.?)?\s*(\d+)\s+of\s+(\d{4})", re.IGNORECASE
    ),
}

# Subset scanned inside section bodies (non-linked references), mapped to the
# pattern_type label recorded on the candidate.
SECTION_BODY_CITATION_TYPES: Mapping[str, str] = {
    "BENGALI_ACT_SHORT": "bengali_citation",
    "ENGLISH_ACT_SHORT": "english_citation",
}

ACT_LINK_RE = re.compile(r"act-details-(\d+)")


# ---------------------------------------------------------------------------
# Structure markers
# ---------------------------------------------------------------------------

STRUCTURE_PATTERNS: Mapping[str, re.Pattern[str]] = {
    # "১৷", "১০৷", "১০০৷"
    "section_number": re.compile(r"[০-৯]+৷"),
    # "(১)", "(১০)"
    "subsection_marker": re.compile(r"\([০-৯]+\)"),
    # "(ক)" .. "(ঢ)"
    "clause_marker": re.compile(r"\([ক-ঢ]\)"),
}

SECTION_MARKER_WORDS: Mapping[str, str] = {
    "dhara": "ধারা",
    "chapter": "অধ্যায়",
    "schedule": "তফসিল",
}

PREAMBLE_PATTERNS: Mapping[str, Sequence[re.Pattern[str]]] = {
    "bengali_continuation": (re.compile(r"এবং\s*যেহেতু"),),
    "bengali_start": (re.compile(r"যেহেতু"), re.compile(r"প্রস্তাবনা")),
    "english": (
        re.compile(r"\bWHEREAS\b", re.IGNORECASE),
        re.compile(r"\bPreamble\b", re.IGNORECASE),
    ),
}

ENACTMENT_PATTERNS: Mapping[str, Sequence[re.Pattern[str]]] = {
    "bengali_primary": (re.compile(r"সেহেতু\s*এতদ্বারা\s*আইন\s*করা\s*হইল"),),
    "bengali_variation": (
        re.compile(r"এতদ্বারা\s*নিম্নরূপ\s*আইন\s*করা\s*হইল"),
        re.compile(r"এতদ্দ্বারা\s*প্রণীত\s*হইল"),
        re.compile(r"এতদ্দ্বারা\s*আইন\s*প্রণয়ন\s*করা\s*হইল"),
        re.compile(r"নিম্নরূপ\s*আইন\s*প্রণয়ন\s*করা\s*হইল"),
    ),
    "english": (
        re.compile(r"\bBe\s+it\s+(?:therefore\s+)?enacted\b", re.IGNORECASE),
        re.compile(r"\bIt\s+is\s+hereby\s+enacted\b", re.IGNORECASE),
    ),
}

BENGALI_CHAR_RE = re.compile(r"[ঀ-৿]")


# ---------------------------------------------------------------------------
# Lexical relation classification (string proximity only)
# ---------------------------------------------------------------------------

LEXICAL_RELATION_KEYWORDS: Mapping[str, Sequence[str]] = {
    "amendment": ("সংশোধন", "সংশোধিত", "amendment", "amended", "amending"),
    "repeal": ("রহিত", "রহিতকরণ", "বিলুপ্ত", "repeal", "repealed", "repealing"),
    "substitution": ("প্রতিস্থাপিত", "প্রতিস্থাপন", "substituted", "substitution", "replaced"),
    "dependency": ("সাপেক্ষে", "অধীন", "অনুসারে", "subject to", "under", "pursuant to"),
    "incorporation": ("সন্নিবেশিত", "অন্তর্ভুক্ত", "inserted", "incorporated", "added"),
}

DEFAULT_RELATION = "mention"

NEGATION_WORDS: tuple[str, ...] = ("না", "নয়", "নহে", "নাই", "নেই", "ব্যতীত", "ছাড়া")


# ---------------------------------------------------------------------------
# Transformation risk classes
# ---------------------------------------------------------------------------

NON_SEMANTIC = "non-semantic"
POTENTIAL_SEMANTIC = "potential-semantic"

RISK_CLASSIFICATION: Mapping[str, Sequence[str]] = {
    NON_SEMANTIC: (
        "mojibake",
        "html_entity",
        "broken_unicode",
        "unicode_normalization",
        "encoding_fix",
    ),
    POTENTIAL_SEMANTIC: (
        "ocr_word_correction",
        "ocr_correction",
        "spelling_correction",
        "punctuation_change",
        "word_substitution",
    ),
}


# ---------------------------------------------------------------------------
# Resolution helpers
# ---------------------------------------------------------------------------

def first_category(
    value: str,
    table: Mapping[str, Sequence[str]],
    *,
    default: str,
    case_insensitive: bool = False,
) -> str:
    """Return the first category whose members equal ``value``."""
    needle = value.lower() if case_insensitive else value
    for category, members in table.items():
        for member in members:
            m = member.lower() if case_insensitive else member
            if needle == m:
                return category
    return default


def first_keyword_category(
    text: str,
    table: Mapping[str, Sequence[str]],
    *,
    default: str,
) -> str:
    """Return the first category with any keyword contained in ``text``.

    Containment is checked verbatim and case-folded (Bengali has no case, so
    the fold only matters for the English keywords).
    """
    if not text:
        return default
    lowered = text.lower()
    for category, keywords in table.items():
        for kw in keywords:
            if kw in text or kw.lower() in lowered:
                return category
    return default


def risk_level(transformation_type: str) -> str:
    """Risk class of a transformation type; unknown types are potential-semantic."""
    return first_category(
        transformation_type, RISK_CLASSIFICATION, default=POTENTIAL_SEMANTIC,
    )
