"""JSON file store for act records, overrides, corpus lists and run snapshots."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from loguru import logger
from pydantic import ValidationError

from fek_ingest.ingestion.models import ParsedAct
from fek_ingest.utils.io_utils import atomic_write_json, read_json


class ActStore:
    """One ``<id>.json`` record per act in ``output_dir``.

    Files whose name starts with ``_`` are run metadata (summaries, progress,
    corpus lists) and are never treated as act records.

    Example:
        >>> store = ActStore("data/seed")
        >>> if not store.exists(act.id):
        ...     store.write_act(act)
    """

    def __init__(self, output_dir: str | Path) -> None:
        self.output_dir = Path(output_dir)

    def path_for(self, act_id: str) -> Path:
        if not act_id or "/" in act_id or "\\" in act_id or act_id.startswith((".", "_")):
            raise ValueError(f"Invalid act id: {act_id!r}")
        return self.output_dir / f"{act_id}.json"

    def exists(self, act_id: str) -> bool:
        return self.path_for(act_id).exists()

    def existing_ids(self) -> Set[str]:
        """Ids of every act record currently in the store."""
        if not self.output_dir.exists():
            return set()
        return {
            p.stem
            for p in self.output_dir.glob("*.json")
            if not p.name.startswith("_") and not p.name.startswith(".")
        }

    def write_act(self, act: ParsedAct) -> Path:
        """Atomically write (or overwrite) an act record."""
        path = atomic_write_json(self.path_for(act.id), act.model_dump(mode="json", exclude_none=True))
        logger.debug(f"Wrote {path}")
        return path

    def read_act(self, act_id: str) -> ParsedAct:
        return ParsedAct.model_validate(read_json(self.path_for(act_id)))

    def write_snapshot(self, path: str | Path, payload: Any) -> Path:
        """Atomically write a run summary or progress file."""
        return atomic_write_json(path, payload)


def load_target_overrides(seed_dir: str | Path) -> Dict[str, ParsedAct]:
    """Load hand-curated act records that take precedence over extraction.

    Only ``*.json`` files not starting with ``_`` that parse as an act with at
    least one provision are used.
    """
    seed_dir = Path(seed_dir)
    overrides: Dict[str, ParsedAct] = {}
    if not seed_dir.is_dir():
        return overrides

    for path in sorted(seed_dir.glob("*.json")):
        if path.name.startswith("_"):
            continue
        try:
            act = ParsedAct.model_validate(read_json(path))
        except (json.JSONDecodeError, ValidationError, OSError) as exc:
            logger.warning(f"Ignoring unreadable override {path.name}: {exc}")
            continue
        if act.provisions:
            overrides[act.id] = act

    logger.info(f"Loaded {len(overrides)} target overrides from {seed_dir}")
    return overrides


def _valid_record(raw: Any) -> Optional[ParsedAct]:
    if not isinstance(raw, dict):
        return None
    if not all(isinstance(raw.get(key), str) for key in ("id", "url", "title")):
        return None
    if not raw["id"] or not raw["url"]:
        return None
    try:
        return ParsedAct.model_validate(raw)
    except ValidationError:
        return None


def load_corpus_records(path: str | Path, newest_first: bool = True) -> List[ParsedAct]:
    """Load the corpus metadata list.

    Records need string ``id``, ``url`` and ``title`` fields (id and url
    non-empty); others are dropped, as are repeats of an id already seen.
    Records are ordered by ``issued_date:id``, newest first by default.

    Raises:
        FileNotFoundError: If the corpus file doesn't exist
        ValueError: If the file is not a JSON array
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Corpus file not found: {path}")

    raw = read_json(path)
    if not isinstance(raw, list):
        raise ValueError(f"Corpus file must contain a JSON array: {path}")

    records: List[ParsedAct] = []
    seen: Set[str] = set()
    dropped = duplicates = 0
    for item in raw:
        record = _valid_record(item)
        if record is None:
            dropped += 1
            continue
        if record.id in seen:
            duplicates += 1
            continue
        seen.add(record.id)
        records.append(record)
    if dropped:
        logger.warning(f"Dropped {dropped} invalid corpus records from {path.name}")
    if duplicates:
        logger.warning(f"Dropped {duplicates} duplicate corpus ids from {path.name}")

    records.sort(key=lambda r: f"{r.issued_date or ''}:{r.id}", reverse=newest_first)
    return records
