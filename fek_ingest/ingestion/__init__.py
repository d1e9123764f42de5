"""Text extraction and parsing for gazette PDFs.

NOTE: Keep this module lightweight.

The PDF and OCR backends pull in pypdf, PyMuPDF and pytesseract. We therefore
expose public symbols via lazy imports.
"""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Any

__all__ = [
    "DefinitionExtractor",
    "ExtractionOptions",
    "ExtractionResult",
    "GazetteTextCleaner",
    "ParsedAct",
    "PdfTextExtractor",
    "Provision",
    "ProvisionSegmenter",
]


_LAZY_EXPORTS = {
    # models
    "ExtractionOptions": ("fek_ingest.ingestion.models", "ExtractionOptions"),
    "ExtractionResult": ("fek_ingest.ingestion.models", "ExtractionResult"),
    "ParsedAct": ("fek_ingest.ingestion.models", "ParsedAct"),
    "Provision": ("fek_ingest.ingestion.models", "Provision"),
    # cleaning
    "GazetteTextCleaner": ("fek_ingest.ingestion.text_cleaner", "GazetteTextCleaner"),
    # extraction
    "PdfTextExtractor": ("fek_ingest.ingestion.pdf_extractor", "PdfTextExtractor"),
    # parsing
    "ProvisionSegmenter": ("fek_ingest.ingestion.segmenter", "ProvisionSegmenter"),
    "DefinitionExtractor": ("fek_ingest.ingestion.definitions", "DefinitionExtractor"),
}


def __getattr__(name: str) -> Any:
    if name not in _LAZY_EXPORTS:
        raise AttributeError(name)
    module_name, attr_name = _LAZY_EXPORTS[name]
    module = importlib.import_module(module_name)
    return getattr(module, attr_name)


if TYPE_CHECKING:
    from fek_ingest.ingestion.definitions import DefinitionExtractor
    from fek_ingest.ingestion.models import (
        ExtractionOptions,
        ExtractionResult,
        ParsedAct,
        Provision,
    )
    from fek_ingest.ingestion.pdf_extractor import PdfTextExtractor
    from fek_ingest.ingestion.segmenter import ProvisionSegmenter
    from fek_ingest.ingestion.text_cleaner import GazetteTextCleaner
