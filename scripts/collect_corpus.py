#!/usr/bin/env python3
"""Collect act metadata for a range of years from the official registry.

Runs a broad registry search (no act number) per catalogue and year and
writes the merged metadata list that ``ingest_corpus.py`` consumes.

Usage:
    python scripts/collect_corpus.py --from-year 2015 --to-year 2024
    python scripts/collect_corpus.py --catalogue 1 --catalogue 2 --from-year 2019

Options:
    --config, -c: Path to config file (default: config/config.yaml)
    --from-year / --to-year: Inclusive year range (default: current year only)
    --catalogue: Catalogue code, 1=law, 2=presidential decree, 3=legislative act
    --output: Corpus file (default: corpus_file from config)
    --verbose, -v: Enable verbose logging
"""

import argparse
import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger

from fek_ingest.errors import IngestError
from fek_ingest.sources.catalogue import build_corpus_records
from fek_ingest.sources.fetcher import RegistryClient
from fek_ingest.sources.models import Catalogue
from fek_ingest.storage.act_store import ActStore
from fek_ingest.utils.config import load_config
from fek_ingest.utils.log_setup import setup_logging


def main() -> int:
    """Main CLI function."""
    parser = argparse.ArgumentParser(
        description="Collect Greek act metadata from the official registry",
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
    parser.add_argument("--from-year", type=int, default=date.today().year)
    parser.add_argument("--to-year", type=int, default=date.today().year)
    parser.add_argument(
        "--catalogue",
        action="append",
        choices=[c.value for c in Catalogue],
        help="Catalogue code (repeatable, default: 1 and 2)",
    )
    parser.add_argument("--output", type=Path, help="Corpus file to write")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    args = parser.parse_args()

    if args.from_year > args.to_year:
        parser.error("--from-year must not be after --to-year")

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    setup_logging(config.logging, verbose=args.verbose, log_file="logs/collect_corpus.log")

    catalogues = [Catalogue(c) for c in (args.catalogue or ["1", "2"])]
    years = list(range(args.from_year, args.to_year + 1))
    output = args.output or config.corpus_file
    client = RegistryClient(config.source)

    records = []
    seen = set()
    failures = 0
    try:
        for catalogue in catalogues:
            for year in years:
                try:
                    rows = client.search_legislation(catalogue, "", [year])
                except IngestError as e:
                    failures += 1
                    logger.error(f"{catalogue.name} {year}: {e}")
                    continue
                batch = build_corpus_records(rows, catalogue, config.source.pdf_base)
                new = [r for r in batch if r.id not in seen]
                seen.update(r.id for r in new)
                records.extend(new)
                logger.info(f"{catalogue.name} {year}: {len(rows)} rows, {len(new)} new records")
    finally:
        client.session.close()

    ActStore(output.parent).write_snapshot(
        output, [r.model_dump(mode="json", exclude_none=True) for r in records]
    )
    logger.success(f"Wrote {len(records)} corpus records to {output}")
    return 1 if failures and not records else 0


if __name__ == "__main__":
    sys.exit(main())
