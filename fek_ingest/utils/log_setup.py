"""Loguru sink setup shared by the CLI scripts."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from fek_ingest.utils.config import LoggingConfig

_CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"
)


def setup_logging(
    config: LoggingConfig | None = None,
    *,
    verbose: bool = False,
    log_file: str | Path | None = None,
) -> None:
    """Replace loguru's default handler with console and rotating file sinks.

    Args:
        config: Logging configuration. If None, uses default settings.
        verbose: Force DEBUG on the console sink
        log_file: Overrides ``config.file``
    """
    config = config or LoggingConfig()
    level = "DEBUG" if verbose else config.level.upper()

    logger.remove()
    logger.add(sys.stderr, format=_CONSOLE_FORMAT, level=level)

    path = Path(log_file or config.file)
    path.parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        path,
        rotation=f"{config.max_size_mb} MB",
        retention=config.retention,
        level="DEBUG",
        serialize=config.format == "json",
        encoding="utf-8",
    )
