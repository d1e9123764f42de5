"""Exception types raised by the ingestion stages.

Expected per-act failures derive from :class:`IngestError` and carry a
``reason_code``. The pipeline also isolates any other exception raised while
processing one act, recording it as ``unexpected_error``. Configuration problems
are reported with ``FileNotFoundError``/``ValueError`` before a run starts.
"""

from __future__ import annotations

from typing import List, Optional


class IngestError(Exception):
    """Base class for recoverable, per-act ingestion failures."""

    reason_code = "ingest_error"


class TransportError(IngestError):
    """Network failure or non-success HTTP response from an official source."""

    reason_code = "transport"

    def __init__(
        self,
        message: str,
        *,
        url: str = "",
        status_code: Optional[int] = None,
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.body = body


class EnvelopeError(IngestError):
    """Registry response could not be decoded, or reported a non-ok status."""

    reason_code = "envelope"

    def __init__(self, message: str, *, url: str = "") -> None:
        super().__init__(message)
        self.url = url


class ExtractionQualityError(IngestError):
    """No extraction strategy produced text that passed the quality policy."""

    reason_code = "extraction_quality"

    def __init__(self, reason: str, warnings: Optional[List[str]] = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.warnings = list(warnings or [])


class SegmentationEmptyError(IngestError):
    """Extracted text contained no article headings."""

    reason_code = "no_provisions"


class ResourceMissingError(IngestError):
    """The official registry has no record for the requested act."""

    reason_code = "missing_source"
