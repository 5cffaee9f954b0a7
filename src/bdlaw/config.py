"""Pipeline configuration.

Defaults live here; a JSON file can override any subset of fields::

    {
      "context_window": 60,
      "ocr_corrections": [{"incorrect": "...", "correct": "...", "context": "..."}]
    }

Unknown keys are rejected so a typo never silently falls back to a default.
"""
from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from bdlaw.io_utils import load_json

SCHEMA_VERSION = "2.0"
EXTRACTOR_VERSION = "1.2.0"


@dataclass(frozen=True, slots=True)
class EncodingRule:
    """Literal character repair applied to the corrected copy only."""

    pattern: str            # regex source
    description: str
    replacement: str
    transformation_type: str = "encoding_fix"


@dataclass(frozen=True, slots=True)
class OcrCorrection:
    """Proposed word-level correction. Always flag-only."""

    incorrect: str
    correct: str
    context: str = ""


_DEFAULT_ENCODING_RULES: tuple[EncodingRule, ...] = (
    EncodingRule(pattern="æ", description="Corrupted quotation mark", replacement='"'),
    EncodingRule(
        pattern="[ìíîï]",
        description="Corrupted table border",
        replacement="\n",
    ),
)

_DEFAULT_OCR_CORRECTIONS: tuple[OcrCorrection, ...] = (
    OcrCorrection(incorrect="প্রম্্নফ", correct="প্রুফ", context="London Proof"),
    OcrCorrection(incorrect="অতগরটির", correct="অক্ষরটির", context="letter reference"),
)


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    """Tunables shared by the core modules and the CLI scripts."""

    encoding_rules: tuple[EncodingRule, ...] = _DEFAULT_ENCODING_RULES
    ocr_corrections: tuple[OcrCorrection, ...] = _DEFAULT_OCR_CORRECTIONS
    context_window: int = 50
    negation_window: int = 20
    max_log_entries: int = 1000
    manifest_key: str = "bdlaw_corpus_manifest"
    extraction_log_key: str = "bdlaw_extraction_log"
    schema_version: str = SCHEMA_VERSION
    extractor_version: str = EXTRACTOR_VERSION

    def __post_init__(self) -> None:
        if self.context_window < 0 or self.negation_window < 0:
            raise ValueError("context/negation windows must be >= 0")
        if self.max_log_entries < 1:
            raise ValueError(
                f"max_log_entries must be >= 1, got {self.max_log_entries}"
            )


DEFAULT_CONFIG = PipelineConfig()


def config_from_dict(payload: dict[str, Any]) -> PipelineConfig:
    """Build a PipelineConfig from a JSON-compatible dict of overrides."""
    known = {f.name for f in fields(PipelineConfig)}
    unknown = sorted(set(payload) - known)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

    overrides: dict[str, Any] = {}
    for key, value in payload.items():
        if key == "encoding_rules":
            overrides[key] = tuple(EncodingRule(**r) for r in value)
        elif key == "ocr_corrections":
            overrides[key] = tuple(OcrCorrection(**c) for c in value)
        else:
            overrides[key] = value
    return replace(DEFAULT_CONFIG, **overrides)


def load_config(path: Path | None) -> PipelineConfig:
    """Load config overrides from JSON; ``None`` returns the defaults."""
    if path is None:
        return DEFAULT_CONFIG
    data = load_json(path)
    if not isinstance(data, dict):
        raise ValueError(f"Invalid config payload in {path}")
    return config_from_dict(data)
