from __future__ import annotations

import json
from pathlib import Path

from loguru import logger

from fek_ingest.utils.config import LoggingConfig
from fek_ingest.utils.log_setup import setup_logging


def test_file_sink_receives_debug_messages(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "run.log"
    setup_logging(LoggingConfig(level="INFO", file=str(log_file)))
    try:
        logger.debug("segmenting law-4624-2019")
    finally:
        logger.remove()

    assert "segmenting law-4624-2019" in log_file.read_text(encoding="utf-8")


def test_json_format_serializes_records(tmp_path: Path) -> None:
    log_file = tmp_path / "run.jsonl"
    setup_logging(LoggingConfig(format="json"), log_file=log_file)
    try:
        logger.info("written")
    finally:
        logger.remove()

    record = json.loads(log_file.read_text(encoding="utf-8").splitlines()[0])
    assert record["record"]["message"] == "written"
