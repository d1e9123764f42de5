from __future__ import annotations

import pytest

from fek_ingest.ingestion.models import QualityMetrics
from fek_ingest.ingestion.quality import (
    MIN_USABLE_CHARS,
    assess_text_quality,
    detect_mojibake,
    is_text_usable,
    recode_windows1253,
    score_quality,
)
from tests.conftest import GREEK_FILLER


def _metrics(**kwargs) -> QualityMetrics:
    return QualityMetrics(**kwargs)


def test_assess_counts_headings_and_greek(usable_act_text: str) -> None:
    metrics = assess_text_quality(usable_act_text)

    assert metrics.char_count == len(usable_act_text)
    assert metrics.article_heading_count == 3
    assert metrics.greek_ratio > 0.9
    assert metrics.mojibake_ratio == 0.0
    assert is_text_usable(metrics)


def test_assess_empty_text() -> None:
    metrics = assess_text_quality("")
    assert metrics == QualityMetrics()
    assert not is_text_usable(metrics)


def test_inline_article_references_are_not_headings() -> None:
    text = "σύμφωνα με το άρθρο 5 του νόμου\nΆρθρο 6\nκατά το Άρθρο 7"
    assert assess_text_quality(text).article_heading_count == 1


@pytest.mark.parametrize(
    "metrics, usable",
    [
        (_metrics(char_count=MIN_USABLE_CHARS - 1, greek_ratio=1.0, article_heading_count=50), False),
        (_metrics(char_count=1200, greek_ratio=0.30, article_heading_count=2), True),
        (_metrics(char_count=1200, greek_ratio=0.29, article_heading_count=2), False),
        (_metrics(char_count=1200, greek_ratio=0.20, article_heading_count=8), True),
        (_metrics(char_count=1200, greek_ratio=0.19, article_heading_count=8), False),
        (_metrics(char_count=5001, greek_ratio=0.55, article_heading_count=0), True),
        (_metrics(char_count=5000, greek_ratio=0.90, article_heading_count=0), False),
        (_metrics(char_count=9000, greek_ratio=0.54, article_heading_count=1), False),
    ],
)
def test_usability_rules(metrics: QualityMetrics, usable: bool) -> None:
    assert is_text_usable(metrics) is usable


def test_mojibake_detection_and_recode() -> None:
    original = "\n".join([GREEK_FILLER] * 5)
    garbled = original.encode("cp1253").decode("latin-1")

    assert detect_mojibake(garbled)
    assert not detect_mojibake(original)
    assert recode_windows1253(garbled) == original


def test_short_latin_text_is_not_mojibake() -> None:
    assert not detect_mojibake("Café résumé " * 10)


def test_score_prefers_greek_with_headings() -> None:
    greek = _metrics(char_count=1000, greek_ratio=0.9, article_heading_count=1)
    garbled = _metrics(char_count=1000, greek_ratio=0.0, mojibake_ratio=0.8)

    assert score_quality(greek) > score_quality(garbled)
    assert score_quality(greek) == pytest.approx(1000 * 0.95 + 4000)
