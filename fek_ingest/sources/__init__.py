"""Official registry client and act catalogue."""

from fek_ingest.sources.catalogue import TARGET_ACTS, build_pdf_url, pick_best_search_result
from fek_ingest.sources.fetcher import RegistryClient
from fek_ingest.sources.models import ActTarget, Catalogue, DocumentEntity, SourceRow

__all__ = [
    "ActTarget",
    "Catalogue",
    "DocumentEntity",
    "RegistryClient",
    "SourceRow",
    "TARGET_ACTS",
    "build_pdf_url",
    "pick_best_search_result",
]
