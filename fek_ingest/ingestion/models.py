"""Pydantic models produced by the extraction and parsing stages."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ExtractionMethod(str, Enum):
    """Strategy that produced an extraction result."""

    NATIVE_TEXT = "native_text"
    NATIVE_TEXT_WINDOWS1253 = "native_text_windows1253"
    OCR_TESSERACT = "ocr_tesseract"


class QualityMetrics(BaseModel):
    """Deterministic quality signals computed over extracted text."""

    model_config = ConfigDict(frozen=True)

    char_count: int = 0
    greek_ratio: float = 0.0
    article_heading_count: int = 0
    mojibake_ratio: float = 0.0


class ExtractionOptions(BaseModel):
    """Per-call knobs for the extraction strategy selector."""

    ocr_enabled: bool = False
    max_ocr_pages: int = Field(default=35, ge=1)
    allow_low_quality_fallback: bool = False


class ExtractionResult(BaseModel):
    """Text extracted from one PDF together with how it was obtained."""

    text: str
    method: ExtractionMethod
    page_count: int = 0
    metrics: QualityMetrics
    warnings: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_char_count(self) -> "ExtractionResult":
        if self.metrics.char_count != len(self.text):
            raise ValueError(
                f"metrics.char_count ({self.metrics.char_count}) != len(text) ({len(self.text)})"
            )
        return self


class ExtractionOutcome(BaseModel):
    """Tagged extraction outcome: either ``result`` or ``reason`` is set."""

    result: Optional[ExtractionResult] = None
    reason: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
    attempted: List[ExtractionMethod] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.result is not None


class Provision(BaseModel):
    """One citable article of an act."""

    model_config = ConfigDict(extra="allow")

    reference: str
    chapter: Optional[str] = None
    section: str
    title: str = ""
    content: str


class Definition(BaseModel):
    """A defined term taken from a definitions article."""

    term: str
    definition: str
    source_provision: Optional[str] = None


class ParsedAct(BaseModel):
    """Complete per-act record written to the seed directory."""

    model_config = ConfigDict(extra="allow")

    id: str
    type: str = "statute"
    title: str = ""
    title_en: str = ""
    short_name: str = ""
    status: str = "in_force"
    issued_date: Optional[str] = None
    in_force_date: Optional[str] = None
    url: str = ""
    description: Optional[str] = None
    law_number: Optional[str] = None
    year: Optional[int] = None
    catalogue: Optional[str] = None
    official_search_id: Optional[str] = None
    official_label: Optional[str] = None
    extraction_method: Optional[str] = None
    extraction_warnings: List[str] = Field(default_factory=list)
    provisions: List[Provision] = Field(default_factory=list)
    definitions: List[Definition] = Field(default_factory=list)
