"""Resumable gazette ingestion pipeline.

Each act moves through::

    pending -> resolving_metadata -> extracting -> segmenting -> written
                                                              \\-> skipped | failed

Two run modes share the per-act machinery:

1. ``run_targets``: a curated list of acts, resolved against the registry and
   written to the seed directory with an ``_ingestion-meta.json`` summary.
2. ``run_corpus``: a pre-collected metadata list, with hand-curated overrides
   taking precedence and a progress snapshot rewritten as the run advances.

Existing records are skipped unless forced, so an interrupted run resumes
where it stopped. Per-act failures are recorded and never abort a run.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from types import TracebackType
from typing import Any, Dict, List, Optional, Sequence

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from fek_ingest.errors import (
    ExtractionQualityError,
    IngestError,
    ResourceMissingError,
    SegmentationEmptyError,
    TransportError,
)
from fek_ingest.ingestion.definitions import DefinitionExtractor
from fek_ingest.ingestion.models import (
    ExtractionOptions,
    ExtractionOutcome,
    ExtractionResult,
    ParsedAct,
    Provision,
)
from fek_ingest.ingestion.pdf_extractor import PdfTextExtractor
from fek_ingest.ingestion.segmenter import ProvisionSegmenter
from fek_ingest.ingestion.text_cleaner import GazetteTextCleaner
from fek_ingest.sources.catalogue import (
    TARGET_ACTS,
    parse_search_result_to_act,
    pick_best_search_result,
)
from fek_ingest.sources.fetcher import RegistryClient
from fek_ingest.sources.models import ActTarget
from fek_ingest.storage.act_store import ActStore
from fek_ingest.utils.config import Config

FULLTEXT_SECTION = "0"
FULLTEXT_TITLE = "Πλήρες κείμενο"
META_FILENAME = "_ingestion-meta.json"
SOURCE_NAME = "search.et.gr (official Greek National Printing House registry)"
NO_SEARCH_RESULT = "No official result for law number/year in search API"
UNEXPECTED_ERROR = "unexpected_error"
LIMITATIONS = [
    "The registry exposes act metadata only; provision text is extracted from the gazette PDF.",
    "Provisions reflect the act as originally published, not a consolidated version.",
]


class ActState(str, Enum):
    PENDING = "pending"
    RESOLVING_METADATA = "resolving_metadata"
    EXTRACTING = "extracting"
    SEGMENTING = "segmenting"
    WRITTEN = "written"
    SKIPPED = "skipped"
    FAILED = "failed"


class ActOutcome(BaseModel):
    """Final state of one act in a run."""

    model_config = ConfigDict(extra="allow")

    act_id: str
    url: str = ""
    state: ActState = ActState.PENDING
    reason: Optional[str] = None
    reason_code: Optional[str] = None
    method: Optional[str] = None
    provisions: int = 0
    definitions: int = 0
    used_override: bool = False
    used_fulltext_fallback: bool = False
    processing_time: float = 0.0


class FailureRecord(BaseModel):
    id: str
    url: str = ""
    reason: str


class ProgressTotals(BaseModel):
    candidate_documents: int = 0
    existing_output_files: int = 0
    attempted: int = 0
    written: int = 0
    skipped_existing: int = 0
    skipped_missing_source: int = 0
    from_target_override: int = 0
    from_pdf_extraction: int = 0
    with_article_provisions: int = 0
    with_fulltext_fallback_provision: int = 0
    failed: int = 0


class IngestionProgress(BaseModel):
    """Snapshot written while a corpus run advances."""

    generated_at: str
    source_file: Optional[str] = None
    output_dir: str
    options: Dict[str, Any] = Field(default_factory=dict)
    totals: ProgressTotals = Field(default_factory=ProgressTotals)
    failures: List[FailureRecord] = Field(default_factory=list)
    failures_truncated: bool = False


class IngestionRun(BaseModel):
    """Result of one pipeline run."""

    mode: str
    outcomes: List[ActOutcome] = Field(default_factory=list)
    totals: ProgressTotals = Field(default_factory=ProgressTotals)
    failures: List[FailureRecord] = Field(default_factory=list)
    processing_time: float = 0.0

    def by_state(self, state: ActState) -> List[ActOutcome]:
        return [o for o in self.outcomes if o.state == state]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class IngestionPipeline:
    """Orchestrate metadata resolution, extraction, parsing and persistence.

    Example:
        >>> with IngestionPipeline(config) as pipeline:
        ...     run = pipeline.run_targets()
        >>> print(run.totals.written, "acts written")
    """

    def __init__(
        self,
        config: Config,
        client: Optional[RegistryClient] = None,
        extractor: Optional[PdfTextExtractor] = None,
        segmenter: Optional[ProvisionSegmenter] = None,
        definition_extractor: Optional[DefinitionExtractor] = None,
    ) -> None:
        """Initialize the ingestion pipeline.

        Components left as None are created from config on first use.

        Args:
            config: Application configuration
            client: Registry client
            extractor: PDF text extractor
            segmenter: Provision segmenter
            definition_extractor: Definition extractor
        """
        self.config = config
        self.client = client
        self.extractor = extractor
        self.segmenter = segmenter
        self.definition_extractor = definition_extractor
        self._debug_logging = str(config.logging.level).upper() == "DEBUG"

        # Per-run extraction cache keyed by PDF URL
        self._extraction_cache: Dict[str, ExtractionOutcome] = {}

        self.stats = {
            "runs": 0,
            "acts_written": 0,
            "acts_failed": 0,
            "pdf_downloads": 0,
            "extraction_cache_hits": 0,
        }

        logger.info("IngestionPipeline initialized")

    def initialize_components(self) -> None:
        """Create any component not injected by the caller."""
        self._silence_external_logs()

        cleaner: Optional[GazetteTextCleaner] = None
        if self.extractor is None or self.segmenter is None:
            cleaner = GazetteTextCleaner(self.config.text_cleaning)

        if self.client is None:
            self.client = RegistryClient(self.config.source)
        if self.extractor is None:
            self.extractor = PdfTextExtractor(self.config.extraction, cleaner=cleaner)
        if self.segmenter is None:
            self.segmenter = ProvisionSegmenter(self.config.segmentation, cleaner=cleaner)
        if self.definition_extractor is None:
            self.definition_extractor = DefinitionExtractor(self.config.definitions)

    # ------------------------------------------------------------------
    # Per-act stages
    # ------------------------------------------------------------------

    def resolve_target(self, target: ActTarget) -> ParsedAct:
        """Resolve a curated target to a metadata-only act record.

        Raises:
            ResourceMissingError: If the registry has no result for the target
            TransportError: On network failure
            EnvelopeError: On an undecodable registry response
        """
        self.initialize_components()
        assert self.client is not None

        rows = self.client.search_legislation(target.catalogue, target.law_number, [target.year])
        row = pick_best_search_result(rows, target)
        if row is None:
            raise ResourceMissingError(NO_SEARCH_RESULT)
        return parse_search_result_to_act(row, target, self.config.source.pdf_base)

    def extract_document(self, url: str, options: ExtractionOptions) -> ExtractionResult:
        """Download and extract one PDF, reusing earlier work for the same URL.

        Raises:
            ResourceMissingError: If the document store has no file at ``url``
            TransportError: On other network failures
            ExtractionQualityError: If no strategy produced usable text
        """
        self.initialize_components()
        assert self.client is not None and self.extractor is not None

        outcome = self._extraction_cache.get(url)
        if outcome is not None:
            self.stats["extraction_cache_hits"] += 1
            logger.debug(f"Extraction cache hit for {url}")
        else:
            try:
                pdf_bytes = self.client.fetch_pdf(url)
            except TransportError as exc:
                if exc.status_code == 404:
                    raise ResourceMissingError(f"Gazette PDF not found: {url}") from exc
                raise
            self.stats["pdf_downloads"] += 1
            outcome = self.extractor.attempt(pdf_bytes, options)
            self._extraction_cache[url] = outcome

        if outcome.result is None:
            raise ExtractionQualityError(outcome.reason or "extraction failed", outcome.warnings)
        return outcome.result

    def parse_act(
        self,
        act: ParsedAct,
        extraction: ExtractionResult,
        *,
        allow_fulltext_fallback: bool,
    ) -> ParsedAct:
        """Segment extracted text into provisions and definitions.

        Returns:
            A new act record; ``act`` is not modified

        Raises:
            SegmentationEmptyError: If no headings were found and the full-text
                fallback is not allowed
        """
        self.initialize_components()
        assert self.segmenter is not None and self.definition_extractor is not None

        provisions = self.segmenter.segment(extraction.text, act.law_number, act.catalogue)
        if not provisions:
            if not allow_fulltext_fallback:
                raise SegmentationEmptyError(f"No article headings found in {act.url}")
            logger.warning(f"{act.id}: no article headings, storing full text as one provision")
            provisions = [
                Provision(
                    reference=f"Art. {FULLTEXT_SECTION}",
                    section=FULLTEXT_SECTION,
                    title=FULLTEXT_TITLE,
                    content=extraction.text,
                )
            ]

        definitions = self.definition_extractor.extract(provisions)
        return act.model_copy(
            update={
                "provisions": provisions,
                "definitions": definitions,
                "extraction_method": extraction.method.value,
                "extraction_warnings": list(extraction.warnings),
            }
        )

    def enrich_act(
        self,
        act: ParsedAct,
        options: Optional[ExtractionOptions] = None,
        *,
        allow_fulltext_fallback: Optional[bool] = None,
    ) -> ParsedAct:
        """Fetch, extract and parse the PDF behind a metadata-only act record.

        Args:
            act: Act record with at least ``id`` and ``url``
            options: Extraction options (default: the extractor's configured options)
            allow_fulltext_fallback: Emit a single full-text provision when no
                headings are found (default: ``pipeline.allow_fulltext_fallback``)

        Returns:
            A new act record with provisions, definitions and extraction details
        """
        self.initialize_components()
        assert self.extractor is not None

        if allow_fulltext_fallback is None:
            allow_fulltext_fallback = self.config.pipeline.allow_fulltext_fallback
        extraction = self.extract_document(act.url, options or self.extractor.default_options())
        return self.parse_act(act, extraction, allow_fulltext_fallback=allow_fulltext_fallback)

    # ------------------------------------------------------------------
    # Run modes
    # ------------------------------------------------------------------

    def run_targets(
        self,
        targets: Optional[Sequence[ActTarget]] = None,
        output_dir: Optional[str | Path] = None,
        *,
        force: bool = False,
    ) -> IngestionRun:
        """Ingest curated target acts.

        Args:
            targets: Acts to ingest (default: the built-in target list)
            output_dir: Destination directory (default: ``config.seed_dir``)
            force: Re-ingest acts that already have a record

        Returns:
            IngestionRun with one outcome per target
        """
        self.initialize_components()
        targets = list(TARGET_ACTS if targets is None else targets)
        store = ActStore(output_dir or self.config.seed_dir)
        options = ExtractionOptions(
            ocr_enabled=self.config.extraction.ocr_enabled,
            max_ocr_pages=self.config.extraction.max_ocr_pages,
            allow_low_quality_fallback=self.config.pipeline.targets_allow_low_quality_fallback,
        )
        run = self._start_run("targets")
        run.totals.candidate_documents = len(targets)
        existing = store.existing_ids()
        run.totals.existing_output_files = len(existing)

        fetched: List[Dict[str, Any]] = []
        skipped: List[Dict[str, Any]] = []
        start_time = time.time()

        for index, target in enumerate(targets, 1):
            logger.info(f"[{index}/{len(targets)}] {target.id} ({target.law_number}/{target.year})")
            outcome = ActOutcome(act_id=target.id)

            if not force and target.id in existing:
                self._skip_existing(run, outcome)
                skipped.append(self._meta_skip(target, "Record already exists"))
                continue

            run.totals.attempted += 1
            try:
                act = self._process(
                    outcome,
                    lambda: self.resolve_target(target),
                    options,
                    allow_fulltext_fallback=False,
                )
                store.write_act(act)
            except ResourceMissingError as exc:
                self._record_skip(run, outcome, exc)
                skipped.append(self._meta_skip(target, str(exc)))
                continue
            except Exception as exc:  # noqa: BLE001
                self._record_failure(run, outcome, exc, url=outcome.url)
                skipped.append(self._meta_skip(target, str(exc)))
                continue

            self._record_written(run, outcome, act)
            run.totals.from_pdf_extraction += 1
            fetched.append(
                {
                    "id": act.id,
                    "law_number": target.law_number,
                    "year": target.year,
                    "official_label": act.official_label,
                    "official_search_id": act.official_search_id,
                    "pdf_url": act.url,
                    "extraction_method": act.extraction_method,
                    "provisions": len(act.provisions),
                    "definitions": len(act.definitions),
                }
            )

        store.write_snapshot(
            store.output_dir / META_FILENAME,
            {
                "source": SOURCE_NAME,
                "generated_at": _now_iso(),
                "fetched": fetched,
                "skipped": skipped,
                "limitations": LIMITATIONS,
            },
        )
        return self._finish_run(run, start_time)

    def run_corpus(
        self,
        records: Sequence[ParsedAct],
        output_dir: Optional[str | Path] = None,
        *,
        overrides: Optional[Dict[str, ParsedAct]] = None,
        force: bool = False,
        limit: Optional[int] = None,
        progress_file: Optional[str | Path] = None,
        source_file: Optional[str | Path] = None,
    ) -> IngestionRun:
        """Ingest a pre-collected corpus of act metadata records.

        Args:
            records: Metadata records in processing order
            output_dir: Destination directory (default: ``config.fulltext_dir``)
            overrides: Hand-curated acts used instead of extraction, by id
            force: Re-ingest acts that already have a record
            limit: Process at most this many records
            progress_file: Snapshot path (default: ``config.progress_file``)
            source_file: Corpus file name recorded in the snapshot

        Returns:
            IngestionRun with one outcome per processed record

        Raises:
            ValueError: If ``limit`` is negative
        """
        if limit is not None and limit < 0:
            raise ValueError("limit must be >= 0")

        self.initialize_components()
        store = ActStore(output_dir or self.config.fulltext_dir)
        progress_path = Path(progress_file or self.config.progress_file)
        overrides = overrides or {}
        candidates = list(records[:limit] if limit is not None else records)
        status_every = self.config.pipeline.status_every

        options = ExtractionOptions(
            ocr_enabled=self.config.extraction.ocr_enabled,
            max_ocr_pages=self.config.extraction.max_ocr_pages,
            allow_low_quality_fallback=self.config.pipeline.corpus_allow_low_quality_fallback,
        )
        run = self._start_run("corpus")
        existing = store.existing_ids()
        run.totals.candidate_documents = len(candidates)
        run.totals.existing_output_files = len(existing)

        progress = IngestionProgress(
            generated_at=_now_iso(),
            source_file=str(source_file) if source_file else None,
            output_dir=str(store.output_dir),
            options={
                "limit": limit,
                "force": force,
                "ocr_enabled": options.ocr_enabled,
                "max_ocr_pages": options.max_ocr_pages,
                "allow_low_quality_fallback": options.allow_low_quality_fallback,
                "status_every": status_every,
                "overrides": len(overrides),
            },
            totals=run.totals,
            failures=run.failures,
        )
        start_time = time.time()

        for index, record in enumerate(candidates, 1):
            outcome = ActOutcome(act_id=record.id)

            if not force and record.id in existing:
                self._skip_existing(run, outcome)
            else:
                run.totals.attempted += 1
                override = overrides.get(record.id)
                try:
                    if override is not None:
                        act = self._apply_override(outcome, record, override)
                    else:
                        act = self._process(
                            outcome,
                            lambda: record,
                            options,
                            allow_fulltext_fallback=self.config.pipeline.allow_fulltext_fallback,
                        )
                    store.write_act(act)
                except ResourceMissingError as exc:
                    self._record_skip(run, outcome, exc)
                except Exception as exc:  # noqa: BLE001
                    self._record_failure(run, outcome, exc, url=record.url)
                else:
                    self._record_written(run, outcome, act)
                    if override is not None:
                        run.totals.from_target_override += 1
                    else:
                        run.totals.from_pdf_extraction += 1

            if index % status_every == 0:
                self._write_progress(store, progress_path, progress, run)
                logger.info(
                    f"Progress {index}/{len(candidates)}: written={run.totals.written}, "
                    f"skipped={run.totals.skipped_existing}, failed={run.totals.failed}"
                )

        self._write_progress(store, progress_path, progress, run)
        return self._finish_run(run, start_time)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _process(
        self,
        outcome: ActOutcome,
        resolve: Any,
        options: ExtractionOptions,
        *,
        allow_fulltext_fallback: bool,
    ) -> ParsedAct:
        act_start = time.time()
        self._transition(outcome, ActState.RESOLVING_METADATA)
        act = resolve()
        outcome.url = act.url

        self._transition(outcome, ActState.EXTRACTING)
        extraction = self.extract_document(act.url, options)
        outcome.method = extraction.method.value

        self._transition(outcome, ActState.SEGMENTING)
        parsed = self.parse_act(act, extraction, allow_fulltext_fallback=allow_fulltext_fallback)
        outcome.used_fulltext_fallback = self._is_fulltext_fallback(parsed)
        outcome.processing_time = time.time() - act_start
        return parsed

    def _apply_override(self, outcome: ActOutcome, record: ParsedAct, override: ParsedAct) -> ParsedAct:
        outcome.used_override = True
        self._transition(outcome, ActState.RESOLVING_METADATA)
        # Curated text wins; registry metadata fills whatever the override left empty.
        merged = record.model_copy(
            update={
                key: value
                for key, value in override.model_dump(
                    exclude_unset=True, exclude={"provisions", "definitions"}
                ).items()
                if value not in (None, "", [])
            }
        )
        return merged.model_copy(
            update={"provisions": override.provisions, "definitions": override.definitions}
        )

    @staticmethod
    def _is_fulltext_fallback(act: ParsedAct) -> bool:
        return len(act.provisions) == 1 and act.provisions[0].section == FULLTEXT_SECTION

    def _transition(self, outcome: ActOutcome, state: ActState) -> None:
        logger.debug(f"{outcome.act_id}: {outcome.state.value} -> {state.value}")
        outcome.state = state

    def _skip_existing(self, run: IngestionRun, outcome: ActOutcome) -> None:
        self._transition(outcome, ActState.SKIPPED)
        outcome.reason = "already ingested"
        outcome.reason_code = "existing"
        run.totals.skipped_existing += 1
        run.outcomes.append(outcome)

    def _record_skip(self, run: IngestionRun, outcome: ActOutcome, exc: IngestError) -> None:
        self._transition(outcome, ActState.SKIPPED)
        outcome.reason = str(exc)
        outcome.reason_code = exc.reason_code
        run.totals.skipped_missing_source += 1
        run.outcomes.append(outcome)
        logger.warning(f"{outcome.act_id}: skipped ({exc})")
    def _record_failure(
        self, run: IngestionRun, outcome: ActOutcome, exc: Exception, *, url: str
    ) -> None:
        self._transition(outcome, ActState.FAILED)
        reason = str(exc) or type(exc).__name__
        if isinstance(exc, IngestError):
            outcome.reason_code = exc.reason_code
        else:
            outcome.reason_code = UNEXPECTED_ERROR
            reason = f"{type(exc).__name__}: {reason}"
        outcome.reason = reason
        run.totals.failed += 1
        self.stats["acts_failed"] += 1
        if len(run.failures) < self.config.pipeline.max_failures_recorded:
            run.failures.append(FailureRecord(id=outcome.act_id, url=url, reason=reason))
        run.outcomes.append(outcome)
        if isinstance(exc, IngestError):
            logger.error(f"{outcome.act_id}: failed [{outcome.reason_code}] {reason}")
        else:
            logger.opt(exception=exc).error(f"{outcome.act_id}: failed [{outcome.reason_code}] {reason}")
        logger.error(f"{outcome.act_id}: failed [{exc.reason_code}] {exc}")

    def _record_written(self, run: IngestionRun, outcome: ActOutcome, act: ParsedAct) -> None:
        self._transition(outcome, ActState.WRITTEN)
        outcome.provisions = len(act.provisions)
        outcome.definitions = len(act.definitions)
        run.totals.written += 1
        if self._is_fulltext_fallback(act):
            run.totals.with_fulltext_fallback_provision += 1
        else:
            run.totals.with_article_provisions += 1
        self.stats["acts_written"] += 1
        run.outcomes.append(outcome)
        logger.success(
            f"{act.id}: {outcome.provisions} provisions, {outcome.definitions} definitions"
            + (f" via {outcome.method}" if outcome.method else " (override)")
        )

    @staticmethod
    def _meta_skip(target: ActTarget, reason: str) -> Dict[str, Any]:
        return {
            "id": target.id,
            "law_number": target.law_number,
            "year": target.year,
            "reason": reason,
        }

    def _write_progress(
        self,
        store: ActStore,
        path: Path,
        progress: IngestionProgress,
        run: IngestionRun,
    ) -> None:
        snapshot = progress.model_copy(
            update={
                "generated_at": _now_iso(),
                "totals": run.totals,
                "failures": run.failures,
                "failures_truncated": run.totals.failed > len(run.failures),
            }
        )
        store.write_snapshot(path, snapshot.model_dump(mode="json"))

    def _start_run(self, mode: str) -> IngestionRun:
        self._extraction_cache.clear()
        self.stats["runs"] += 1
        logger.info(f"Starting {mode} run")
        return IngestionRun(mode=mode)

    def _finish_run(self, run: IngestionRun, start_time: float) -> IngestionRun:
        run.processing_time = time.time() - start_time
        self._extraction_cache.clear()
        totals = run.totals
        logger.info(
            f"{run.mode} run complete: {totals.written} written, "
            f"{totals.skipped_existing} skipped (existing), "
            f"{totals.skipped_missing_source} skipped (no source), "
            f"{totals.failed} failed, {run.processing_time:.2f}s"
        )
        return run

    def _silence_external_logs(self) -> None:
        """Reduce noisy third-party logs unless debug logging is enabled."""
        if self._debug_logging:
            return
        for name in ("urllib3", "pypdf", "PIL"):
            logging.getLogger(name).setLevel(logging.ERROR)

    def get_statistics(self) -> Dict[str, Any]:
        """Get pipeline processing statistics."""
        return self.stats.copy()

    def close(self) -> None:
        """Clean up pipeline resources."""
        if self.client is not None:
            self.client.session.close()
        self._extraction_cache.clear()
        logger.info("IngestionPipeline closed")

    def __enter__(self) -> "IngestionPipeline":
        """Context manager entry."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Context manager exit."""
        self.close()
