"""Shared fixtures: synthetic gazette text and stub extraction backends."""

from __future__ import annotations

from typing import List, Sequence, Tuple

import pytest

GREEK_FILLER = (
    "Οι διατάξεις του παρόντος εφαρμόζονται στην επεξεργασία δεδομένων "
    "προσωπικού χαρακτήρα από δημόσιες αρχές και ιδιωτικούς φορείς."
)


def build_act_text(
    articles: Sequence[Tuple[str, str, str]],
    *,
    law_number: str = "4624",
    header: bool = True,
) -> str:
    """Render a gazette-like act: masthead, opening line, then ``Άρθρο`` blocks."""
    lines: List[str] = []
    if header:
        lines += [
            "ΕΦΗΜΕΡΙΣ ΤΗΣ ΚΥΒΕΡΝΗΣΕΩΣ",
            "ΤΗΣ ΕΛΛΗΝΙΚΗΣ ΔΗΜΟΚΡΑΤΙΑΣ",
            "Αρ. Φύλλου 137",
            "",
            f"ΝΟΜΟΣ ΥΠ’ ΑΡΙΘΜ. {law_number}",
            "Αρχή Προστασίας Δεδομένων Προσωπικού Χαρακτήρα.",
            "",
        ]
    for section, title, body in articles:
        lines.append(f"Άρθρο {section}")
        if title:
            lines.append(title)
        lines.append(body)
        lines.append("")
    return "\n".join(lines)


def greek_body(sentences: int = 6) -> str:
    return "\n".join(f"{i}. {GREEK_FILLER}" for i in range(1, sentences + 1))


class StubToolkit:
    """PdfToolkit stand-in returning canned text and counting renders."""

    def __init__(self, text: str = "", pages: int = 3, images: int | None = None) -> None:
        self.text = text
        self.pages = pages
        self.images = pages if images is None else images
        self.render_calls = 0
        self.text_calls = 0

    def page_count(self, pdf_bytes: bytes) -> int:
        return self.pages

    def extract_text(self, pdf_bytes: bytes) -> str:
        self.text_calls += 1
        return self.text

    def render_pages(self, pdf_bytes: bytes, dpi: int) -> list:
        self.render_calls += 1
        return [f"page-{i}" for i in range(self.images)]


class StubOcr:
    def __init__(self, page_text: str = "") -> None:
        self.page_text = page_text
        self.calls = 0

    def recognize(self, image: object) -> str:
        self.calls += 1
        return self.page_text


@pytest.fixture
def usable_act_text() -> str:
    return build_act_text(
        [
            ("1", "Σκοπός", greek_body(6)),
            ("2", "Ορισμοί", "Για τους σκοπούς του παρόντος νοούνται ως:\n"
             "α) «δεδομένα προσωπικού χαρακτήρα»: κάθε πληροφορία που αφορά ταυτοποιημένο φυσικό πρόσωπο,\n"
             "β) «υπεύθυνος επεξεργασίας»: το φυσικό ή νομικό πρόσωπο που καθορίζει τους σκοπούς."),
            ("3", "Πεδίο εφαρμογής", greek_body(6)),
        ]
    )
