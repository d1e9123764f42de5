#!/usr/bin/env python3
"""Extract full text for every act in the collected corpus.

Reads the corpus metadata list (see ``collect_corpus.py``), prefers curated
seed records where they exist, and otherwise downloads and parses the gazette
PDF. Runs are resumable: acts that already have a record are skipped unless
``--force`` is given, and a progress snapshot is rewritten as the run advances.

Usage:
    python scripts/ingest_corpus.py --limit 50
    python scripts/ingest_corpus.py --ocr --ocr-max-pages 20 --oldest-first

Options:
    --config, -c: Path to config file (default: config/config.yaml)
    --limit: Process at most this many corpus records
    --ocr: Enable OCR for scanned issues
    --ocr-max-pages: Skip OCR for PDFs with more pages (default: from config)
    --force: Re-ingest acts that already have a record
    --status-every: Write progress every N records (default: from config)
    --oldest-first: Process oldest acts first (default: newest first)
    --verbose, -v: Enable verbose logging
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger

from fek_ingest.pipeline.ingestion_pipeline import IngestionPipeline
from fek_ingest.storage.act_store import load_corpus_records, load_target_overrides
from fek_ingest.utils.config import load_config
from fek_ingest.utils.log_setup import setup_logging


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return number


def main() -> int:
    """Main CLI function."""
    parser = argparse.ArgumentParser(
        description="Extract full text for the collected gazette corpus",
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
    parser.add_argument("--limit", type=_positive_int, help="Maximum records to process")
    parser.add_argument("--ocr", action="store_true", help="Enable OCR for scanned issues")
    parser.add_argument("--ocr-max-pages", type=_positive_int, help="Maximum pages to OCR per PDF")
    parser.add_argument("--force", action="store_true", help="Re-ingest existing records")
    parser.add_argument("--status-every", type=_positive_int, help="Progress interval")
    parser.add_argument(
        "--oldest-first", action="store_true", help="Process oldest acts first"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    setup_logging(config.logging, verbose=args.verbose, log_file="logs/ingest_corpus.log")

    if args.ocr:
        config.extraction.ocr_enabled = True
    if args.ocr_max_pages is not None:
        config.extraction.max_ocr_pages = args.ocr_max_pages
    if args.status_every is not None:
        config.pipeline.status_every = args.status_every
    newest_first = config.pipeline.newest_first and not args.oldest_first

    try:
        records = load_corpus_records(config.corpus_file, newest_first=newest_first)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"{e} (run scripts/collect_corpus.py first)")
        return 2

    overrides = load_target_overrides(config.seed_dir)
    logger.info(
        f"{len(records)} corpus records, {len(overrides)} curated overrides, "
        f"output to {config.fulltext_dir}"
    )

    with IngestionPipeline(config) as pipeline:
        run = pipeline.run_corpus(
            records,
            overrides=overrides,
            force=args.force,
            limit=args.limit,
            source_file=config.corpus_file.name,
        )

    logger.info("=" * 50)
    logger.info("CORPUS INGESTION SUMMARY")
    logger.info("=" * 50)
    for key, value in run.totals.model_dump().items():
        logger.info(f"  {key}: {value}")
    logger.info(f"Progress written to {config.progress_file}")

    return 1 if run.totals.attempted and not run.totals.written else 0


if __name__ == "__main__":
    sys.exit(main())
