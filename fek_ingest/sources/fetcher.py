"""Rate-limited client for the official Greek legislation registry.

The registry exposes act metadata through a small JSON API and serves the
gazette issues themselves as PDF files from a blob store. Every outbound call,
retries included, passes through one shared :class:`MinIntervalRateLimiter`.
"""

from __future__ import annotations

import json
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

import requests
from loguru import logger
from pydantic import ValidationError
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from fek_ingest.errors import EnvelopeError, TransportError
from fek_ingest.sources.models import Catalogue, DocumentEntity, SourceRow
from fek_ingest.utils.config import SourceClientConfig
from fek_ingest.utils.rate_limit import MinIntervalRateLimiter

JSON_ACCEPT = "application/json"
PDF_ACCEPT = "application/pdf,application/octet-stream,*/*"
ERROR_BODY_LIMIT = 200


class _RetryableTransportError(TransportError):
    """Throttling, server-side or connection failure worth another attempt."""


class RegistryClient:
    """Client for registry search, record detail and PDF download.

    Example:
        >>> client = RegistryClient(config.source)
        >>> rows = client.search_legislation(Catalogue.LAW, "4624", [2019])
        >>> pdf = client.fetch_pdf(build_pdf_url(rows[0]))
    """

    def __init__(
        self,
        config: Optional[SourceClientConfig] = None,
        limiter: Optional[MinIntervalRateLimiter] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            config: Source client configuration. If None, uses default settings.
            limiter: Shared pacing limiter. Created from config if None.
            session: HTTP session (injected in tests)
            sleep: Sleep used between retries
        """
        self.config = config or SourceClientConfig()
        self.limiter = limiter or MinIntervalRateLimiter(self.config.min_delay_seconds)
        self.session = session or requests.Session()
        self._sleep = sleep

        self.stats = {"requests": 0, "retries": 0}

        logger.info(
            f"Initialized RegistryClient for {self.config.api_base} "
            f"(min delay {self.config.min_delay_seconds}s, retries {self.config.max_retries})"
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def search_legislation(
        self,
        catalogue: Catalogue | str,
        law_number: str,
        years: Sequence[int | str],
    ) -> List[SourceRow]:
        """Search the registry for acts in a catalogue.

        Args:
            catalogue: Legislation catalogue code
            law_number: Act number, or "" to list every act of the given years
            years: Issue years to search

        Returns:
            Matching rows in registry order (possibly empty)

        Raises:
            TransportError: On network failure or non-success HTTP status
            EnvelopeError: If the response envelope cannot be decoded
        """
        body = {
            "legislationCatalogues": Catalogue(catalogue).value,
            "legislationNumber": str(law_number),
            "selectYear": [str(y) for y in years],
        }
        records = self._request_json("/searchlegislation", "POST", body)
        return self._validate_rows(records, SourceRow, "/searchlegislation")

    def get_document_entity(self, search_id: str) -> List[DocumentEntity]:
        """Fetch detail rows (pages, topics, subjects) for one registry record."""
        path = f"/documententitybyid/{search_id}"
        records = self._request_json(path, "GET")
        return self._validate_rows(records, DocumentEntity, path)

    def fetch_pdf(self, url: str) -> bytes:
        """Download a gazette PDF.

        Raises:
            TransportError: On network failure or non-success HTTP status
        """
        response = self._send("GET", url, accept=PDF_ACCEPT)
        logger.debug(f"Fetched {len(response.content)} bytes from {url}")
        return response.content

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _send(
        self,
        method: str,
        url: str,
        *,
        accept: str,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        retrying = Retrying(
            stop=stop_after_attempt(self.config.max_retries + 1),
            wait=wait_exponential(multiplier=self.config.backoff_base_seconds, exp_base=2),
            retry=retry_if_exception_type(_RetryableTransportError),
            sleep=self._sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        try:
            return retrying(self._attempt, method, url, accept=accept, json_body=json_body)
        except _RetryableTransportError as exc:
            raise TransportError(
                f"Failed to fetch {url} after {self.config.max_retries} retries: {exc}",
                url=url,
                status_code=exc.status_code,
                body=exc.body,
            ) from exc

    def _attempt(
        self,
        method: str,
        url: str,
        *,
        accept: str,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        headers = {"User-Agent": self.config.user_agent, "Accept": accept}
        if json_body is not None:
            headers["Content-Type"] = "application/json"

        with self.limiter.slot():
            self.stats["requests"] += 1
            try:
                response = self.session.request(
                    method,
                    url,
                    headers=headers,
                    json=json_body,
                    timeout=self.config.timeout,
                    allow_redirects=True,
                )
            except requests.RequestException as exc:
                raise _RetryableTransportError(f"Request to {url} failed: {exc}", url=url) from exc

        status = response.status_code
        if status == 429 or status >= 500:
            body = response.text[:ERROR_BODY_LIMIT]
            raise _RetryableTransportError(
                f"HTTP {status} for {url}: {body}", url=url, status_code=status, body=body
            )
        if not response.ok:
            body = response.text[:ERROR_BODY_LIMIT]
            raise TransportError(
                f"HTTP {status} for {url}: {body}", url=url, status_code=status, body=body
            )
        return response

    def _log_retry(self, retry_state: Any) -> None:
        self.stats["retries"] += 1
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(f"{exc}; retrying in {delay:.1f}s (attempt {retry_state.attempt_number})")

    # ------------------------------------------------------------------
    # Envelope decoding
    # ------------------------------------------------------------------

    def _request_json(
        self, path: str, method: str, body: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        url = f"{self.config.api_base.rstrip('/')}{path}"
        response = self._send(method, url, accept=JSON_ACCEPT, json_body=body)
        return decode_envelope(response.text, url=url, path=path)

    @staticmethod
    def _validate_rows(records: List[Dict[str, Any]], model: Any, path: str) -> List[Any]:
        try:
            return [model.model_validate(record) for record in records]
        except ValidationError as exc:
            raise EnvelopeError(f"Unexpected record shape from {path}: {exc}") from exc


def decode_envelope(text: str, *, url: str = "", path: str = "") -> List[Dict[str, Any]]:
    """Decode the registry's double-encoded ``{status, message, data}`` envelope.

    ``data`` is itself a JSON document serialised into a string. A missing
    ``data`` field decodes as an empty list.

    Raises:
        EnvelopeError: If either layer is not valid JSON, the status is not
            ``"ok"``, or the payload is not a list of objects
    """
    try:
        envelope = json.loads(text)
    except json.JSONDecodeError as exc:
        raise EnvelopeError(f"Non-JSON response from {url}", url=url) from exc

    if not isinstance(envelope, dict):
        raise EnvelopeError(f"Unexpected envelope type from {url}", url=url)

    if envelope.get("status") != "ok":
        message = envelope.get("message") or "unknown error"
        raise EnvelopeError(f"API error for {path or url}: {message}", url=url)

    raw_data = envelope.get("data")
    if raw_data is None:
        raw_data = "[]"
    if isinstance(raw_data, str):
        try:
            payload = json.loads(raw_data)
        except json.JSONDecodeError as exc:
            raise EnvelopeError(f"Invalid nested JSON payload from {url}", url=url) from exc
    else:
        payload = raw_data

    if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
        raise EnvelopeError(f"Nested payload from {url} is not a list of records", url=url)
    return payload
