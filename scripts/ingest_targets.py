#!/usr/bin/env python3
"""Ingest the curated target acts from the official registry.

Each target is resolved through the registry search API, its gazette PDF is
downloaded and parsed into provisions, and one JSON record per act is written
to the seed directory together with an ``_ingestion-meta.json`` summary.

Usage:
    python scripts/ingest_targets.py
    python scripts/ingest_targets.py --only law-4624-2019 --force
    python scripts/ingest_targets.py --ocr --output-dir data/seed

Options:
    --config, -c: Path to config file (default: config/config.yaml)
    --output-dir: Destination directory (default: seed_dir from config)
    --only: Restrict to these target ids (repeatable)
    --ocr: Enable OCR for scanned issues
    --ocr-max-pages: Skip OCR for PDFs with more pages (default: from config)
    --force: Re-ingest targets that already have a record
    --verbose, -v: Enable verbose logging
    --dry-run: List the targets without contacting the registry
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger

from fek_ingest.pipeline.ingestion_pipeline import ActState, IngestionPipeline
from fek_ingest.sources.catalogue import TARGET_ACTS
from fek_ingest.utils.config import load_config
from fek_ingest.utils.log_setup import setup_logging


def main() -> int:
    """Main CLI function."""
    parser = argparse.ArgumentParser(
        description="Ingest curated Greek acts from the official gazette",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=Path("config/config.yaml"),
        help="Path to configuration file (default: config/config.yaml)",
    )
    parser.add_argument("--output-dir", type=Path, help="Destination directory")
    parser.add_argument(
        "--only", action="append", metavar="ID", help="Target id to ingest (repeatable)"
    )
    parser.add_argument("--ocr", action="store_true", help="Enable OCR for scanned issues")
    parser.add_argument("--ocr-max-pages", type=int, help="Maximum pages to OCR per PDF")
    parser.add_argument(
        "--force", action="store_true", help="Re-ingest targets that already have a record"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument(
        "--dry-run", action="store_true", help="List targets without contacting the registry"
    )
    args = parser.parse_args()

    if args.ocr_max_pages is not None and args.ocr_max_pages < 1:
        parser.error("--ocr-max-pages must be >= 1")

    try:
        logger.info(f"Loading configuration from {args.config}")
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    setup_logging(config.logging, verbose=args.verbose, log_file="logs/ingest_targets.log")

    if args.ocr:
        config.extraction.ocr_enabled = True
    if args.ocr_max_pages is not None:
        config.extraction.max_ocr_pages = args.ocr_max_pages

    targets = TARGET_ACTS
    if args.only:
        known = {t.id for t in TARGET_ACTS}
        unknown = sorted(set(args.only) - known)
        if unknown:
            parser.error(f"Unknown target id(s): {', '.join(unknown)}")
        targets = [t for t in TARGET_ACTS if t.id in set(args.only)]

    logger.info(f"{len(targets)} targets selected")
    if args.dry_run:
        for target in targets:
            logger.info(f"  {target.id}: {target.law_number}/{target.year} ({target.catalogue.name})")
        return 0

    with IngestionPipeline(config) as pipeline:
        run = pipeline.run_targets(targets, args.output_dir, force=args.force)

        logger.info("=" * 50)
        logger.info("TARGET INGESTION SUMMARY")
        logger.info("=" * 50)
        for key, value in run.totals.model_dump().items():
            logger.info(f"  {key}: {value}")

        problems = run.by_state(ActState.FAILED) + run.by_state(ActState.SKIPPED)
        for outcome in problems:
            if outcome.reason_code != "existing":
                logger.warning(f"  - {outcome.act_id} [{outcome.state.value}]: {outcome.reason}")

        for key, value in pipeline.get_statistics().items():
            logger.debug(f"  {key}: {value}")

    return 1 if run.totals.failed and not run.totals.written else 0


if __name__ == "__main__":
    sys.exit(main())
