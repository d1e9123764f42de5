"""Pipeline orchestrators for end-to-end workflows."""

from fek_ingest.pipeline.ingestion_pipeline import IngestionPipeline, IngestionRun

__all__ = ["IngestionPipeline", "IngestionRun"]
