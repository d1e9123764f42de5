"""Curated target acts and registry-row to act-record mapping."""

from __future__ import annotations

import re
from typing import Iterable, List, Optional

from loguru import logger

from fek_ingest.ingestion.models import ParsedAct
from fek_ingest.sources.models import ActStatus, ActTarget, Catalogue, SourceRow

DEFAULT_PDF_BASE = "https://ia37rg02wpsa01.blob.core.windows.net/fek"

_US_DATE_RE = re.compile(r"^\s*(\d{1,2})/(\d{1,2})/(\d{4})")

_SHORT_NAME_PREFIX = {
    Catalogue.LAW: "Ν.",
    Catalogue.PRESIDENTIAL_DECREE: "Π.Δ.",
    Catalogue.LEGISLATIVE_ACT: "Π.Ν.Π.",
}

_ID_PREFIX = {
    Catalogue.LAW: "law",
    Catalogue.PRESIDENTIAL_DECREE: "pd",
    Catalogue.LEGISLATIVE_ACT: "pnp",
}


# law-4577-2018 is listed twice on purpose: the NIS and critical-infrastructure
# views resolve to the same official act.
TARGET_ACTS: List[ActTarget] = [
    ActTarget(id="law-1733-1987", law_number="1733", year=1987, short_name="Ν. 1733/1987", status=ActStatus.AMENDED),
    ActTarget(id="law-2472-1997", law_number="2472", year=1997, short_name="Ν. 2472/1997", status=ActStatus.AMENDED),
    ActTarget(id="law-3979-2011", law_number="3979", year=2011, short_name="Ν. 3979/2011", status=ActStatus.AMENDED),
    ActTarget(id="law-4070-2012", law_number="4070", year=2012, short_name="Ν. 4070/2012"),
    ActTarget(id="law-4577-2018-nis", law_number="4577", year=2018, short_name="Ν. 4577/2018"),
    ActTarget(id="law-4577-2018-cii", law_number="4577", year=2018, short_name="Ν. 4577/2018"),
    ActTarget(id="law-4624-2019", law_number="4624", year=2019, short_name="Ν. 4624/2019"),
    ActTarget(id="law-4727-2020", law_number="4727", year=2020, short_name="Ν. 4727/2020"),
    ActTarget(
        id="pd-131-2003",
        law_number="131",
        year=2003,
        catalogue=Catalogue.PRESIDENTIAL_DECREE,
        short_name="Π.Δ. 131/2003",
    ),
    ActTarget(id="penal-code-cybercrime", law_number="4619", year=2019, short_name="Ποινικός Κώδικας"),
]


def _collapse(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def parse_us_date_to_iso(value: Optional[str]) -> Optional[str]:
    """Convert the registry's ``MM/DD/YYYY HH:mm:ss`` dates to ``YYYY-MM-DD``.

    Returns:
        ISO date, or None if the value is empty or not in the expected shape
    """
    if not value:
        return None
    match = _US_DATE_RE.match(value)
    if not match:
        return None
    month, day, year = match.groups()
    return f"{year}-{month.zfill(2)}-{day.zfill(2)}"


def row_year(row: SourceRow) -> Optional[int]:
    iso = parse_us_date_to_iso(row.issue_date)
    return int(iso[:4]) if iso else None


def build_pdf_url(row: SourceRow, pdf_base: str = DEFAULT_PDF_BASE) -> str:
    """Derive the blob-store URL of the gazette issue a row was published in.

    The file id is ``<year><issue group:02><document number:05>``.
    """
    issue_group = row.issue_group_id.strip().zfill(2)
    iso = parse_us_date_to_iso(row.issue_date)
    year = iso[:4] if iso else "0000"
    document_number = row.document_number.strip().zfill(5)
    return f"{pdf_base.rstrip('/')}/{issue_group}/{year}/{year}{issue_group}{document_number}.pdf"


def pick_best_search_result(rows: List[SourceRow], target: ActTarget) -> Optional[SourceRow]:
    """Pick the row describing ``target``.

    Preference: exact law number and year, then law number alone, then the
    registry's first row.
    """
    if not rows:
        return None

    for row in rows:
        if _collapse(row.law_number) == target.law_number and row_year(row) == target.year:
            return row

    for row in rows:
        if _collapse(row.law_number) == target.law_number:
            logger.debug(f"{target.id}: no exact year match, using law-number match {row.search_id}")
            return row

    logger.warning(f"{target.id}: no law-number match in {len(rows)} rows, using first result")
    return rows[0]


def default_short_name(catalogue: Catalogue | str, law_number: str, year: int | str) -> str:
    prefix = _SHORT_NAME_PREFIX.get(Catalogue(catalogue), "Ν.")
    return f"{prefix} {law_number}/{year}"


def parse_search_result_to_act(
    row: SourceRow, target: ActTarget, pdf_base: str = DEFAULT_PDF_BASE
) -> ParsedAct:
    """Build a metadata-only act record (no provisions yet) for a target."""
    title = _collapse(row.description or row.primary_label)
    return ParsedAct(
        id=target.id,
        title=title,
        title_en=target.title_en or "",
        short_name=target.short_name
        or default_short_name(target.catalogue, target.law_number, target.year),
        status=target.status.value,
        issued_date=parse_us_date_to_iso(row.issue_date),
        url=build_pdf_url(row, pdf_base),
        description=title,
        law_number=target.law_number,
        year=target.year,
        catalogue=target.catalogue.value,
        official_search_id=row.search_id,
        official_label=_collapse(row.primary_label) or None,
    )


def build_corpus_records(
    rows: Iterable[SourceRow],
    catalogue: Catalogue | str,
    pdf_base: str = DEFAULT_PDF_BASE,
) -> List[ParsedAct]:
    """Turn a broad registry listing into metadata-only corpus records.

    Rows without a law number or a parseable issue date are dropped, and the
    first row wins for a repeated ``<kind>-<number>-<year>`` id.
    """
    catalogue = Catalogue(catalogue)
    records: List[ParsedAct] = []
    seen: set[str] = set()
    dropped = 0

    for row in rows:
        law_number = _collapse(row.law_number)
        year = row_year(row)
        if not law_number or year is None:
            dropped += 1
            continue
        act_id = f"{_ID_PREFIX[catalogue]}-{law_number}-{year}"
        if act_id in seen:
            continue
        seen.add(act_id)

        title = _collapse(row.description or row.primary_label)
        records.append(
            ParsedAct(
                id=act_id,
                title=title,
                short_name=default_short_name(catalogue, law_number, year),
                issued_date=parse_us_date_to_iso(row.issue_date),
                url=build_pdf_url(row, pdf_base),
                description=title,
                law_number=law_number,
                year=year,
                catalogue=catalogue.value,
                official_search_id=row.search_id,
                official_label=_collapse(row.primary_label) or None,
            )
        )

    if dropped:
        logger.debug(f"Dropped {dropped} registry rows without law number or issue date")
    return records
