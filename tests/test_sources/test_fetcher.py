from __future__ import annotations

import json
from typing import Any, List

import pytest
import requests

from fek_ingest.errors import EnvelopeError, TransportError
from fek_ingest.sources.fetcher import PDF_ACCEPT, RegistryClient, decode_envelope
from fek_ingest.sources.models import Catalogue
from fek_ingest.utils.config import SourceClientConfig
from fek_ingest.utils.rate_limit import MinIntervalRateLimiter


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = "", content: bytes = b"") -> None:
        self.status_code = status_code
        self.text = text
        self.content = content or text.encode("utf-8")

    @property
    def ok(self) -> bool:
        return self.status_code < 400


class FakeSession:
    def __init__(self, responses: List[Any]) -> None:
        self.responses = list(responses)
        self.calls: List[dict] = []
        self.closed = False

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self) -> None:
        self.closed = True


class FakeClock:
    def __init__(self) -> None:
        self.t = 0.0
        self.sleeps: list[float] = []

    def now(self) -> float:
        return self.t

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.t += seconds


def _envelope(rows: list, status: str = "ok", message: str = "") -> str:
    return json.dumps({"status": status, "message": message, "data": json.dumps(rows)})


ROW = {
    "search_ID": "123456",
    "search_DocumentNumber": "137",
    "search_IssueGroupID": "1",
    "search_IssueDate": "08/29/2019 00:00:00",
    "search_PublicationDate": "08/29/2019 00:00:00",
    "search_Pages": "88",
    "search_PrimaryLabel": "Α 137/2019",
    "search_LawID": "999",
    "search_LawProtocolNumber": "4624",
    "search_Description": "Αρχή Προστασίας Δεδομένων Προσωπικού Χαρακτήρα",
    "search_Score": 12.5,
}


def _client(session: FakeSession, *, retry_sleeps: list | None = None, **cfg: Any) -> RegistryClient:
    clock = FakeClock()
    config = SourceClientConfig(**cfg)
    limiter = MinIntervalRateLimiter(config.min_delay_seconds, now=clock.now, sleep=clock.sleep)
    sleeps = retry_sleeps if retry_sleeps is not None else []
    client = RegistryClient(config, limiter=limiter, session=session, sleep=sleeps.append)
    client._test_clock = clock  # type: ignore[attr-defined]
    return client


def test_search_posts_request_body_and_decodes_rows() -> None:
    session = FakeSession([FakeResponse(200, _envelope([ROW]))])
    client = _client(session)

    rows = client.search_legislation(Catalogue.LAW, "4624", [2019])

    assert len(rows) == 1
    assert rows[0].search_id == "123456"
    assert rows[0].law_number == "4624"
    assert rows[0].score == "12.5"
    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["url"].endswith("/searchlegislation")
    assert call["json"] == {
        "legislationCatalogues": "1",
        "legislationNumber": "4624",
        "selectYear": ["2019"],
    }
    assert call["headers"]["User-Agent"]


def test_retries_throttling_with_exponential_backoff() -> None:
    retry_sleeps: list = []
    session = FakeSession(
        [
            FakeResponse(429, "slow down"),
            FakeResponse(503, "unavailable"),
            FakeResponse(200, _envelope([ROW])),
        ]
    )
    client = _client(session, retry_sleeps=retry_sleeps)

    rows = client.search_legislation("1", "4624", [2019])

    assert len(rows) == 1
    assert len(session.calls) == 3
    assert retry_sleeps == [pytest.approx(2.0), pytest.approx(4.0)]
    assert client.stats["retries"] == 2


def test_every_attempt_passes_through_limiter() -> None:
    session = FakeSession(
        [FakeResponse(500, "err"), FakeResponse(500, "err"), FakeResponse(200, _envelope([]))]
    )
    client = _client(session, backoff_base_seconds=0.0)

    client.search_legislation("1", "1", [2000])

    # no clock progress between attempts, so each retry waits the full interval
    assert client._test_clock.sleeps == [pytest.approx(1.2), pytest.approx(1.2)]  # type: ignore[attr-defined]


def test_exhausted_retries_raise_transport_error() -> None:
    session = FakeSession([FakeResponse(503, "down")] * 4)
    client = _client(session)

    with pytest.raises(TransportError) as exc_info:
        client.search_legislation("1", "4624", [2019])

    assert exc_info.value.status_code == 503
    assert len(session.calls) == 4


def test_client_error_is_not_retried_and_body_truncated() -> None:
    body = "x" * 500
    session = FakeSession([FakeResponse(404, body)])
    client = _client(session)

    with pytest.raises(TransportError) as exc_info:
        client.fetch_pdf("https://example.test/missing.pdf")

    assert len(session.calls) == 1
    assert exc_info.value.status_code == 404
    assert exc_info.value.body == "x" * 200
    assert "HTTP 404" in str(exc_info.value)


def test_connection_errors_are_retried() -> None:
    session = FakeSession(
        [requests.ConnectionError("reset"), FakeResponse(200, content=b"%PDF-1.4")]
    )
    client = _client(session)

    data = client.fetch_pdf("https://example.test/a.pdf")

    assert data == b"%PDF-1.4"
    assert session.calls[-1]["headers"]["Accept"] == PDF_ACCEPT


def test_document_entity_lookup() -> None:
    detail = {
        "documententitybyid_Pages": "88",
        "documententitybyid_PrimaryLabel": "Α 137/2019",
        "documententitybyid_topics_Name": "ΔΕΔΟΜΕΝΑ",
    }
    session = FakeSession([FakeResponse(200, _envelope([detail]))])
    client = _client(session)

    rows = client.get_document_entity("123456")

    assert session.calls[0]["method"] == "GET"
    assert session.calls[0]["url"].endswith("/documententitybyid/123456")
    assert rows[0].pages == "88"
    assert rows[0].topic_name == "ΔΕΔΟΜΕΝΑ"


def test_decode_envelope_rejects_non_json() -> None:
    with pytest.raises(EnvelopeError, match="Non-JSON"):
        decode_envelope("<html>maintenance</html>", url="u")


def test_decode_envelope_rejects_invalid_nested_payload() -> None:
    text = json.dumps({"status": "ok", "message": "", "data": "[{broken"})
    with pytest.raises(EnvelopeError, match="Invalid nested JSON"):
        decode_envelope(text, url="u")


def test_decode_envelope_rejects_error_status() -> None:
    text = _envelope([], status="error", message="bad request")
    with pytest.raises(EnvelopeError, match="bad request"):
        decode_envelope(text, url="u", path="/searchlegislation")


def test_decode_envelope_rejects_non_list_payload() -> None:
    text = json.dumps({"status": "ok", "data": json.dumps({"a": 1})})
    with pytest.raises(EnvelopeError):
        decode_envelope(text, url="u")


def test_decode_envelope_missing_data_is_empty() -> None:
    assert decode_envelope(json.dumps({"status": "ok", "message": ""})) == []


def test_envelope_error_surfaces_from_client() -> None:
    session = FakeSession([FakeResponse(200, "not json")])
    client = _client(session)

    with pytest.raises(EnvelopeError):
        client.search_legislation("1", "4624", [2019])
