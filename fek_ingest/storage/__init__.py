"""Act record persistence."""

from fek_ingest.storage.act_store import ActStore, load_corpus_records, load_target_overrides

__all__ = ["ActStore", "load_corpus_records", "load_target_overrides"]
