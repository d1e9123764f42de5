"""Quality policy for extracted gazette text.

All thresholds are module constants so callers and tests share one source.
"""

from __future__ import annotations

import re

from fek_ingest.ingestion.models import QualityMetrics

MIN_USABLE_CHARS = 1200

# (minimum article headings, minimum greek ratio) pairs; any one passing is enough.
HEADING_RULES = ((2, 0.30), (8, 0.20))

# Long texts with no detectable headings are still usable if clearly Greek.
LONG_TEXT_CHARS = 5000
LONG_TEXT_MIN_GREEK_RATIO = 0.55

MOJIBAKE_MIN_LATIN_EXTENDED = 250
MOJIBAKE_GREEK_DIVISOR = 4

SCORE_GREEK_BIAS = 0.05
SCORE_HEADING_WEIGHT = 4000

ARTICLE_MARKER_RE = re.compile(
    r"^\s*(?:Άρθρο|Αρθρο|ΑΡΘΡΟ|Άρδρο|Αρδρο|ΑΡΔΡΟ|Αρϑρο)\s+[0-9Α-Ωα-ωάέήίόύώA-Za-z]",
    re.MULTILINE,
)
_GREEK_RE = re.compile(r"[\u0370-\u03ff\u1f00-\u1fff]")
_LATIN_EXTENDED_RE = re.compile(r"[\u00c0-\u00ff]")


def count_greek(text: str) -> int:
    return len(_GREEK_RE.findall(text))


def count_latin_extended(text: str) -> int:
    return len(_LATIN_EXTENDED_RE.findall(text))


def assess_text_quality(text: str) -> QualityMetrics:
    """Compute quality metrics for normalized text.

    Args:
        text: Normalized extracted text

    Returns:
        QualityMetrics with ``char_count == len(text)``
    """
    char_count = len(text)
    letters = sum(1 for ch in text if ch.isalpha())
    return QualityMetrics(
        char_count=char_count,
        greek_ratio=count_greek(text) / letters if letters else 0.0,
        article_heading_count=len(ARTICLE_MARKER_RE.findall(text)),
        mojibake_ratio=count_latin_extended(text) / char_count if char_count else 0.0,
    )


def is_text_usable(metrics: QualityMetrics) -> bool:
    """Decide whether extracted text is good enough to parse."""
    if metrics.char_count < MIN_USABLE_CHARS:
        return False
    for min_headings, min_greek in HEADING_RULES:
        if metrics.article_heading_count >= min_headings and metrics.greek_ratio >= min_greek:
            return True
    return metrics.char_count > LONG_TEXT_CHARS and metrics.greek_ratio >= LONG_TEXT_MIN_GREEK_RATIO


def detect_mojibake(raw: str) -> bool:
    """Detect Greek text that was decoded with a Latin-1 style codepage.

    Triggers only when extended-Latin characters are plentiful and real Greek
    letters are rare by comparison.
    """
    latin_extended = count_latin_extended(raw)
    return (
        latin_extended > MOJIBAKE_MIN_LATIN_EXTENDED
        and count_greek(raw) < latin_extended / MOJIBAKE_GREEK_DIVISOR
    )


def recode_windows1253(raw: str) -> str:
    """Re-read each character's low byte as Windows-1253 (Greek)."""
    data = bytes(ord(ch) & 0xFF for ch in raw)
    return data.decode("cp1253", errors="replace")


def score_quality(metrics: QualityMetrics) -> float:
    """Rank candidate extractions when none is usable."""
    return (
        metrics.char_count * (metrics.greek_ratio + SCORE_GREEK_BIAS)
        + metrics.article_heading_count * SCORE_HEADING_WEIGHT
        - metrics.mojibake_ratio * metrics.char_count
    )


def summarize_quality(metrics: QualityMetrics) -> str:
    return (
        f"chars={metrics.char_count}, greek={metrics.greek_ratio:.3f}, "
        f"headings={metrics.article_heading_count}, mojibake={metrics.mojibake_ratio:.3f}"
    )
