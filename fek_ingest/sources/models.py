"""Data models for official registry records and curated act targets."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Catalogue(str, Enum):
    """Legislation catalogue codes accepted by the registry search."""

    LAW = "1"
    PRESIDENTIAL_DECREE = "2"
    LEGISLATIVE_ACT = "3"


class ActStatus(str, Enum):
    IN_FORCE = "in_force"
    AMENDED = "amended"
    REPEALED = "repealed"
    NOT_YET_IN_FORCE = "not_yet_in_force"


def _as_text(value: Any) -> Any:
    # The registry mixes strings, numbers and nulls in the same column.
    if value is None:
        return ""
    if isinstance(value, (int, float)):
        return str(value)
    return value


class SourceRow(BaseModel):
    """One row of a registry legislation search."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    search_id: str = Field(alias="search_ID")
    law_number: str = Field(default="", alias="search_LawProtocolNumber")
    issue_date: str = Field(default="", alias="search_IssueDate")
    issue_group_id: str = Field(default="", alias="search_IssueGroupID")
    document_number: str = Field(default="", alias="search_DocumentNumber")
    primary_label: str = Field(default="", alias="search_PrimaryLabel")
    description: str = Field(default="", alias="search_Description")
    publication_date: str = Field(default="", alias="search_PublicationDate")
    pages: str = Field(default="", alias="search_Pages")
    law_id: str = Field(default="", alias="search_LawID")
    score: str = Field(default="", alias="search_Score")

    @field_validator("*", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Any:
        return _as_text(v)


class DocumentEntity(BaseModel):
    """One row of the per-record detail lookup."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    document_number: str = Field(default="", alias="documententitybyid_DocumentNumber")
    issue_group_id: str = Field(default="", alias="documententitybyid_IssueGroupID")
    issue_date: str = Field(default="", alias="documententitybyid_IssueDate")
    publication_date: str = Field(default="", alias="documententitybyid_PublicationDate")
    pages: str = Field(default="", alias="documententitybyid_Pages")
    primary_label: str = Field(default="", alias="documententitybyid_PrimaryLabel")
    rerelease_date: str = Field(default="", alias="documententitybyid_ReReleaseDate")
    topic_id: str = Field(default="", alias="documententitybyid_topics_ID")
    topic_name: str = Field(default="", alias="documententitybyid_topics_Name")
    subject_id: str = Field(default="", alias="documententitybyid_subjects_ID")
    subject_value: str = Field(default="", alias="documententitybyid_subjects_Value")

    @field_validator("*", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Any:
        return _as_text(v)


class ActTarget(BaseModel):
    """A curated act to resolve against the registry."""

    model_config = ConfigDict(frozen=True)

    id: str
    law_number: str
    year: int
    catalogue: Catalogue = Catalogue.LAW
    status: ActStatus = ActStatus.IN_FORCE
    short_name: Optional[str] = None
    title_en: Optional[str] = None
    notes: Optional[str] = None
