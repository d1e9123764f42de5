"""End-to-end tests over synthetic gazette documents.

These run the extraction strategy selector, provision segmenter and definition
extractor together, then the corpus pipeline on top of them, with the PDF and
OCR backends replaced by stubs.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from fek_ingest.errors import ExtractionQualityError
from fek_ingest.ingestion.definitions import DefinitionExtractor
from fek_ingest.ingestion.models import ExtractionMethod, ExtractionOptions, ParsedAct
from fek_ingest.ingestion.pdf_extractor import PdfTextExtractor
from fek_ingest.ingestion.segmenter import ProvisionSegmenter
from fek_ingest.pipeline.ingestion_pipeline import IngestionPipeline
from fek_ingest.storage.act_store import ActStore
from fek_ingest.utils.config import Config
from tests.conftest import GREEK_FILLER, StubOcr, StubToolkit, build_act_text, greek_body

pytestmark = pytest.mark.e2e


TWO_ARTICLE_ACT = build_act_text(
    [
        ("1", "Σκοπός", "Σκοπός του παρόντος είναι η προστασία των δεδομένων.\n" + greek_body(5)),
        ("2", "Ορισμοί", "Για την εφαρμογή του παρόντος νοείται ως:\n"
         "«υπεύθυνος επεξεργασίας»: ο φορέας που καθορίζει τους σκοπούς της επεξεργασίας,\n"
         + greek_body(5)),
    ]
)


def test_two_article_act_to_provisions_and_definitions() -> None:
    extractor = PdfTextExtractor(toolkit=StubToolkit(TWO_ARTICLE_ACT, pages=2), ocr_engine=StubOcr())
    segmenter = ProvisionSegmenter()

    result = extractor.extract(b"%PDF")
    provisions = segmenter.segment(result.text, law_number="4624", catalogue="1")
    definitions = DefinitionExtractor().extract(provisions)

    assert result.method is ExtractionMethod.NATIVE_TEXT
    assert result.page_count == 2
    assert [p.reference for p in provisions] == ["Art. 1", "Art. 2"]
    assert provisions[1].title == "Ορισμοί"
    assert [(d.term, d.source_provision) for d in definitions] == [("υπεύθυνος επεξεργασίας", "Art. 2")]
    # segmenting already-segmented output is stable
    assert segmenter.segment(result.text, law_number="4624", catalogue="1") == provisions


def test_short_document_is_rejected() -> None:
    text = ("Άρθρο 1\n" + GREEK_FILLER + "\n") * 6
    text = text[:800]
    extractor = PdfTextExtractor(toolkit=StubToolkit(text), ocr_engine=StubOcr())

    with pytest.raises(ExtractionQualityError) as exc_info:
        extractor.extract(b"%PDF", ExtractionOptions())

    assert "too low" in exc_info.value.reason


def test_long_scan_skips_ocr_with_warning() -> None:
    toolkit = StubToolkit("", pages=40)
    ocr = StubOcr(TWO_ARTICLE_ACT)
    extractor = PdfTextExtractor(toolkit=toolkit, ocr_engine=ocr)

    outcome = extractor.attempt(b"%PDF", ExtractionOptions(ocr_enabled=True, max_ocr_pages=35))

    assert not outcome.ok
    assert "OCR skipped: 40 pages exceeds limit 35" in outcome.warnings
    assert toolkit.render_calls == 0
    assert ocr.calls == 0


def test_scanned_act_through_corpus_pipeline(tmp_path: Path) -> None:
    class _Session:
        def close(self) -> None:
            pass

    class _Client:
        session = _Session()

        def fetch_pdf(self, url: str) -> bytes:
            return b"%PDF-scan"

    config = Config(extraction={"ocr_enabled": True})
    extractor = PdfTextExtractor(
        config.extraction, toolkit=StubToolkit("", pages=1), ocr_engine=StubOcr(TWO_ARTICLE_ACT)
    )
    pipeline = IngestionPipeline(config, client=_Client(), extractor=extractor)
    record = ParsedAct(id="law-4624-2019", title="Δοκιμή", url="https://blob.test/scan.pdf")

    run = pipeline.run_corpus([record], tmp_path / "out", progress_file=tmp_path / "_progress.json")

    assert run.totals.written == 1
    act = ActStore(tmp_path / "out").read_act("law-4624-2019")
    assert act.extraction_method == "ocr_tesseract"
    assert [p.reference for p in act.provisions] == ["Art. 1", "Art. 2"]
    assert [d.term for d in act.definitions] == ["υπεύθυνος επεξεργασίας"]
    assert any("recognition noise" in w for w in act.extraction_warnings)
