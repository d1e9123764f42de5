"""Extraction backends: native PDF text, page rendering and OCR.

The strategy selector only depends on the small ``PdfToolkit``/``OcrEngine``
contracts, so tests can substitute stubs. pypdf, PyMuPDF and pytesseract are
imported lazily so the package imports without them being usable.
"""

from __future__ import annotations

import io
from typing import TYPE_CHECKING, List, Protocol

from loguru import logger

if TYPE_CHECKING:
    from PIL import Image


class PdfToolkit(Protocol):
    def page_count(self, pdf_bytes: bytes) -> int: ...

    def extract_text(self, pdf_bytes: bytes) -> str: ...

    def render_pages(self, pdf_bytes: bytes, dpi: int) -> List["Image.Image"]: ...


class OcrEngine(Protocol):
    def recognize(self, image: "Image.Image") -> str: ...


class DefaultPdfToolkit:
    """pypdf for the text layer and page count, PyMuPDF for rasterization."""

    def page_count(self, pdf_bytes: bytes) -> int:
        """Return the number of pages, or 0 if the PDF cannot be read."""
        from pypdf import PdfReader
        from pypdf.errors import PyPdfError

        try:
            return len(PdfReader(io.BytesIO(pdf_bytes)).pages)
        except (PyPdfError, ValueError, OSError) as exc:
            logger.warning(f"Could not read PDF page count: {exc}")
            return 0

    def extract_text(self, pdf_bytes: bytes) -> str:
        """Extract the embedded text layer, pages separated by form feeds."""
        from pypdf import PdfReader

        reader = PdfReader(io.BytesIO(pdf_bytes))
        return "\f".join((page.extract_text() or "") for page in reader.pages)

    def render_pages(self, pdf_bytes: bytes, dpi: int) -> List["Image.Image"]:
        """Render every page to a grayscale image."""
        import fitz
        from PIL import Image

        images: List[Image.Image] = []
        with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
            for page in doc:
                pix = page.get_pixmap(dpi=dpi, colorspace=fitz.csGRAY)
                images.append(Image.frombytes("L", (pix.width, pix.height), pix.samples))
        logger.debug(f"Rendered {len(images)} pages at {dpi} dpi")
        return images


class TesseractOcrEngine:
    """Tesseract OCR through pytesseract (requires the ``ell`` language data)."""

    def __init__(self, language: str = "ell", psm: int = 6) -> None:
        self.language = language
        self.psm = psm

    def recognize(self, image: "Image.Image") -> str:
        import pytesseract

        return pytesseract.image_to_string(
            image,
            lang=self.language,
            config=f"--psm {self.psm} -c preserve_interword_spaces=1",
        )
