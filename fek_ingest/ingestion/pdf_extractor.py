"""Extraction strategy selection for gazette PDFs.

Strategies are tried in ascending cost and the first one whose text passes the
quality policy wins:

1. native text layer
2. Windows-1253 re-decode of the native text (only when it looks like mojibake)
3. OCR of rendered pages (opt-in, bounded by page count)
4. best low-quality candidate (opt-in)

If nothing qualifies the outcome is a failure; text is never returned silently
below the quality bar.
"""

from __future__ import annotations

from typing import List, Optional

from loguru import logger

from fek_ingest.errors import ExtractionQualityError
from fek_ingest.ingestion.models import (
    ExtractionMethod,
    ExtractionOptions,
    ExtractionOutcome,
    ExtractionResult,
    QualityMetrics,
)
from fek_ingest.ingestion.pdf_backends import (
    DefaultPdfToolkit,
    OcrEngine,
    PdfToolkit,
    TesseractOcrEngine,
)
from fek_ingest.ingestion.quality import (
    assess_text_quality,
    detect_mojibake,
    is_text_usable,
    recode_windows1253,
    score_quality,
    summarize_quality,
)
from fek_ingest.ingestion.text_cleaner import GazetteTextCleaner
from fek_ingest.utils.config import ExtractionConfig

OCR_NOISE_WARNING = "OCR-derived text may include recognition noise from source scan quality."


class _Candidate:
    __slots__ = ("text", "method", "metrics")

    def __init__(self, text: str, method: ExtractionMethod, metrics: QualityMetrics) -> None:
        self.text = text
        self.method = method
        self.metrics = metrics


class PdfTextExtractor:
    """Pick the cheapest extraction strategy that yields usable text.

    Example:
        >>> extractor = PdfTextExtractor(config.extraction)
        >>> result = extractor.extract(pdf_bytes, ExtractionOptions(ocr_enabled=True))
        >>> print(result.method, result.metrics.char_count)
    """

    def __init__(
        self,
        config: Optional[ExtractionConfig] = None,
        toolkit: Optional[PdfToolkit] = None,
        ocr_engine: Optional[OcrEngine] = None,
        cleaner: Optional[GazetteTextCleaner] = None,
    ) -> None:
        """Initialize the extractor.

        Args:
            config: Extraction configuration. If None, uses default settings.
            toolkit: Native text, page count and rendering backend
            ocr_engine: OCR backend
            cleaner: Text normalizer shared with the segmenter
        """
        self.config = config or ExtractionConfig()
        self.toolkit = toolkit or DefaultPdfToolkit()
        self.ocr_engine = ocr_engine or TesseractOcrEngine(
            language=self.config.ocr_language, psm=self.config.ocr_psm
        )
        self.cleaner = cleaner or GazetteTextCleaner()

    def default_options(self) -> ExtractionOptions:
        return ExtractionOptions(
            ocr_enabled=self.config.ocr_enabled,
            max_ocr_pages=self.config.max_ocr_pages,
            allow_low_quality_fallback=self.config.allow_low_quality_fallback,
        )

    def extract(
        self, pdf_bytes: bytes, options: Optional[ExtractionOptions] = None
    ) -> ExtractionResult:
        """Extract text or raise.

        Raises:
            ExtractionQualityError: If no strategy produced usable text and no
                fallback was allowed
        """
        outcome = self.attempt(pdf_bytes, options)
        if outcome.result is None:
            raise ExtractionQualityError(outcome.reason or "extraction failed", outcome.warnings)
        return outcome.result

    def attempt(
        self, pdf_bytes: bytes, options: Optional[ExtractionOptions] = None
    ) -> ExtractionOutcome:
        """Run the strategy chain and return a tagged outcome.

        Backend errors (unreadable PDF, rendering or OCR failure) end only the
        strategy that raised them and are recorded in ``warnings``.

        Args:
            pdf_bytes: Raw PDF document
            options: Per-call options. Defaults come from config.

        Returns:
            ExtractionOutcome with ``result`` on success or ``reason`` on failure
        """
        options = options or self.default_options()
        warnings: List[str] = []
        attempted: List[ExtractionMethod] = []
        candidates: List[_Candidate] = []

        try:
            page_count = self.toolkit.page_count(pdf_bytes)
        except Exception as exc:  # noqa: BLE001
            logger.warning(f"Could not read PDF page count: {exc}")
            page_count = 0

        def _success(candidate: _Candidate) -> ExtractionOutcome:
            logger.info(
                f"Extracted text via {candidate.method.value} "
                f"({summarize_quality(candidate.metrics)}, pages={page_count})"
            )
            result = ExtractionResult(
                text=candidate.text,
                method=candidate.method,
                page_count=page_count,
                metrics=candidate.metrics,
                warnings=list(warnings),
            )
            return ExtractionOutcome(result=result, warnings=list(warnings), attempted=attempted)

        # 1. Native text layer
        try:
            raw = self.toolkit.extract_text(pdf_bytes)
        except Exception as exc:  # noqa: BLE001
            logger.warning(f"Native text extraction failed: {exc}")
            warnings.append(f"Native text extraction failed: {type(exc).__name__}: {exc}")
            raw = ""
        native = self._candidate(raw, ExtractionMethod.NATIVE_TEXT)
        attempted.append(native.method)
        candidates.append(native)
        if is_text_usable(native.metrics):
            return _success(native)

        # 2. Windows-1253 re-decode
        if detect_mojibake(raw):
            recoded = self._candidate(
                recode_windows1253(raw), ExtractionMethod.NATIVE_TEXT_WINDOWS1253
            )
            attempted.append(recoded.method)
            candidates.append(recoded)
            if is_text_usable(recoded.metrics):
                return _success(recoded)
            warnings.append(
                f"windows-1253 recode quality low ({summarize_quality(recoded.metrics)})"
            )

        # 3. OCR
        if options.ocr_enabled:
            ocr = self._run_ocr(pdf_bytes, page_count, options.max_ocr_pages, warnings)
            if ocr is not None:
                attempted.append(ocr.method)
                candidates.append(ocr)
                if is_text_usable(ocr.metrics):
                    return _success(ocr)
        else:
            warnings.append(
                f"OCR disabled after low-quality native text ({summarize_quality(native.metrics)})"
            )

        # 4. Low-quality fallback
        if options.allow_low_quality_fallback:
            viable = [c for c in candidates if c.text.strip()]
            if viable:
                best = max(viable, key=lambda c: score_quality(c.metrics))
                warnings.append(
                    f"Returning low-quality fallback ({best.method.value}; "
                    f"{summarize_quality(best.metrics)})"
                )
                return _success(best)

        reason = (
            "PDF text quality too low and no fallback available "
            f"({summarize_quality(native.metrics)})"
        )
        logger.warning(reason)
        return ExtractionOutcome(reason=reason, warnings=warnings, attempted=attempted)

    def _candidate(self, raw: str, method: ExtractionMethod) -> _Candidate:
        text = self.cleaner.normalize(raw)
        return _Candidate(text, method, assess_text_quality(text))

    def _run_ocr(
        self,
        pdf_bytes: bytes,
        page_count: int,
        max_pages: int,
        warnings: List[str],
    ) -> Optional[_Candidate]:
        if page_count > max_pages:
            warnings.append(f"OCR skipped: {page_count} pages exceeds limit {max_pages}")
            return None

        try:
            images = self.toolkit.render_pages(pdf_bytes, self.config.ocr_dpi)
        except Exception as exc:  # noqa: BLE001
            logger.warning(f"Page rendering failed: {exc}")
            warnings.append(f"OCR failed: page rendering error ({type(exc).__name__}: {exc})")
            return None
        if not images:
            warnings.append("OCR failed: no page images rendered")
            return None

        logger.info(f"Running OCR on {len(images)} pages")
        try:
            page_texts = [self.ocr_engine.recognize(image).strip() for image in images]
        except Exception as exc:  # noqa: BLE001
            logger.warning(f"OCR engine failed: {exc}")
            warnings.append(f"OCR failed: engine error ({type(exc).__name__}: {exc})")
            return None
        candidate = self._candidate("\n\n".join(page_texts), ExtractionMethod.OCR_TESSERACT)

        warnings.append(OCR_NOISE_WARNING)
        if not is_text_usable(candidate.metrics):
            warnings.append(f"OCR quality low ({summarize_quality(candidate.metrics)})")
        return candidate
