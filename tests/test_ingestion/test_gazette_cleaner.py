"""Tests for GazetteTextCleaner."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from fek_ingest.ingestion.text_cleaner import GazetteTextCleaner, fold_greek
from fek_ingest.utils.config import TextCleaningConfig

RAW_PAGE = (
    "ΕΦΗΜΕΡΙΣ ΤΗΣ ΚΥΒΕΡΝΗΣΕΩΣ\r\n"
    "ΤΕΥΧΟΣ ΠΡΩΤΟ Αρ. Φύλλου 137 29 Αυγούστου 2019\n"
    "Αρ. Φύλλου 137\n"
    "Άρθρο 1   \n"
    "Σκοπός\x07\n"
    "\n\n\n\n"
    "Ο παρών νόμος ρυθμίζει την προστασία δεδομένων.\n"
    "2417\n"
    "-----\n"
    "\f"
    "Άρθρο 2\n"
)


def test_fold_greek_strips_accents_and_keeps_length() -> None:
    for text in ["Άρθρο 1", "ΥΠ’ ΑΡΙΘΜ.", "Ορισμοί: «όρος»", "ΐ ΰ ά΄"]:
        assert len(fold_greek(text)) == len(text)
    assert fold_greek("Άρθρο πρώτο") == "ΑΡΘΡΟ ΠΡΩΤΟ"


def test_fold_greek_maps_latin_homoglyphs() -> None:
    # "APΘPO" typed with Latin A, P and O
    assert fold_greek("APΘPO") == "ΑΡΘΡΟ"


def test_normalize_removes_page_furniture() -> None:
    cleaner = GazetteTextCleaner()

    text = cleaner.normalize(RAW_PAGE)

    assert "ΕΦΗΜΕΡΙΣ" not in text
    assert "Φύλλου" not in text
    assert "2417" not in text
    assert "-----" not in text
    assert "\r" not in text and "\f" not in text and "\x07" not in text
    assert "\n\n\n" not in text
    assert text.startswith("Άρθρο 1\nΣκοπός")
    assert text.endswith("Άρθρο 2")


def test_normalize_is_idempotent() -> None:
    cleaner = GazetteTextCleaner()
    once = cleaner.normalize(RAW_PAGE)
    assert cleaner.normalize(once) == once


def test_normalize_empty() -> None:
    assert GazetteTextCleaner().normalize("") == ""


def test_numbered_paragraphs_are_kept() -> None:
    cleaner = GazetteTextCleaner()
    assert not cleaner.is_noise_line("1. Οι διατάξεις του παρόντος εφαρμόζονται.")
    assert cleaner.is_noise_line("  12  ")


def test_patterns_file_overrides_defaults(tmp_path: Path) -> None:
    patterns_file = tmp_path / "patterns.yaml"
    patterns_file.write_text(
        yaml.safe_dump(
            {
                "page_numbers": {"enabled": False, "patterns": [r"^\d+$"]},
                "headers": {"enabled": True, "patterns": [r"^ΠΡΟΣΧΕΔΙΟ$"]},
            },
            allow_unicode=True,
        ),
        encoding="utf-8",
    )
    cleaner = GazetteTextCleaner(TextCleaningConfig(patterns_file=str(patterns_file)))

    text = cleaner.normalize("Προσχέδιο\n42\nΆρθρο 1")

    # matched on the folded line, so lower case and accents do not matter
    assert text == "42\nΆρθρο 1"


def test_missing_patterns_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        GazetteTextCleaner(patterns_file=tmp_path / "absent.yaml")


def test_non_mapping_patterns_file_raises(tmp_path: Path) -> None:
    patterns_file = tmp_path / "patterns.yaml"
    patterns_file.write_text(yaml.safe_dump(["a", "b"]), encoding="utf-8")

    with pytest.raises(ValueError, match="mapping"):
        GazetteTextCleaner(patterns_file=patterns_file)


def test_shipped_patterns_match_defaults() -> None:
    repo_root = Path(__file__).resolve().parents[2]
    shipped = GazetteTextCleaner(patterns_file=repo_root / "config" / "cleaning_patterns.yaml")
    builtin = GazetteTextCleaner()

    assert shipped.normalize(RAW_PAGE) == builtin.normalize(RAW_PAGE)
