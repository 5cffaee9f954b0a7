"""Tests for bdlaw.config: pipeline tunables and JSON overrides."""
from __future__ import annotations

from pathlib import Path

import pytest

from bdlaw.config import (
    DEFAULT_CONFIG,
    EncodingRule,
    OcrCorrection,
    PipelineConfig,
    config_from_dict,
    load_config,
)
from bdlaw.io_utils import save_json


def test_defaults() -> None:
    assert DEFAULT_CONFIG.context_window == 50
    assert DEFAULT_CONFIG.negation_window == 20
    assert DEFAULT_CONFIG.max_log_entries == 1000
    assert len(DEFAULT_CONFIG.encoding_rules) == 2
    assert len(DEFAULT_CONFIG.ocr_corrections) == 2


def test_overrides_build_typed_rules() -> None:
    config = config_from_dict({
        "context_window": 10,
        "encoding_rules": [{"pattern": "x", "description": "d", "replacement": "y"}],
        "ocr_corrections": [{"incorrect": "a", "correct": "b"}],
    })
    assert config.context_window == 10
    assert config.encoding_rules == (EncodingRule(pattern="x", description="d", replacement="y"),)
    assert config.ocr_corrections == (OcrCorrection(incorrect="a", correct="b"),)
    assert config.negation_window == DEFAULT_CONFIG.negation_window


def test_unknown_key_rejected() -> None:
    with pytest.raises(ValueError, match="contxt_window"):
        config_from_dict({"contxt_window": 10})


def test_invalid_values_rejected() -> None:
    with pytest.raises(ValueError):
        PipelineConfig(max_log_entries=0)
    with pytest.raises(ValueError):
        PipelineConfig(context_window=-1)


def test_load_config(tmp_path: Path) -> None:
    assert load_config(None) is DEFAULT_CONFIG
    path = tmp_path / "config.json"
    save_json({"max_log_entries": 5}, path)
    assert load_config(path).max_log_entries == 5


def test_load_config_rejects_non_object(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    save_json([1, 2], path)
    with pytest.raises(ValueError):
        load_config(path)
