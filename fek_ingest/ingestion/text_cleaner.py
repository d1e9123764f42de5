"""Text normalization for gazette PDFs.

Removes page furniture that every ΦΕΚ page carries (page numbers, the
"ΕΦΗΜΕΡΙΣ ΤΗΣ ΚΥΒΕΡΝΗΣΕΩΣ" masthead, issue/sheet lines, separator rules) and
normalizes control characters and blank runs. Patterns are matched against an
accent-folded, upper-cased copy of each line so one pattern covers the
spelling and OCR variants found across decades of issues.
"""

from __future__ import annotations

import re
import unicodedata
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from loguru import logger

from fek_ingest.utils.config import TextCleaningConfig

# Latin capitals that are visually identical to Greek ones and show up in OCR output
# and in badly embedded fonts.
_HOMOGLYPHS = str.maketrans(
    {
        "A": "Α",
        "B": "Β",
        "E": "Ε",
        "Z": "Ζ",
        "H": "Η",
        "I": "Ι",
        "K": "Κ",
        "M": "Μ",
        "N": "Ν",
        "O": "Ο",
        "P": "Ρ",
        "T": "Τ",
        "X": "Χ",
        "Y": "Υ",
    }
)

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")
_BLANK_RUN_RE = re.compile(r"\n{3,}")

DEFAULT_PATTERNS: Dict[str, Any] = {
    "page_numbers": {
        "enabled": True,
        "patterns": [r"^\d{1,4}$"],
    },
    "separators": {
        "enabled": True,
        "patterns": [r"^[/*\-_=]{3,}$"],
    },
    "headers": {
        "enabled": True,
        "patterns": [
            r"^ΑΡ\.?\s*ΦΥΛΛΟΥ\s+\d+",
            r"ΕΦΗΜΕΡΙΣ\s+ΤΗΣ\s+ΚΥΒΕΡΝΗΣΕΩΣ",
            r"^(?=.*ΤΕΥΧΟΣ\s+[Α-Ω])(?=.*(?:ΙΑΝ|ΦΕΒ|ΜΑΡ|ΑΠΡ|ΜΑΙ|ΙΟΥΝ|ΙΟΥΛ|ΑΥΓ|ΣΕΠ|ΟΚΤ|ΝΟΕ|ΔΕΚ))",
        ],
    },
}


def _fold_char(ch: str) -> str:
    # Only letters are folded; a bare tonos decomposes to a space otherwise.
    if not ch.isalpha():
        return ch
    base = unicodedata.normalize("NFD", ch)[0]
    upper = base.upper()
    return upper[0] if upper else ch


def fold_greek(text: str) -> str:
    """Accent-strip and upper-case ``text`` without changing its length.

    Latin homoglyphs of Greek capitals are mapped to Greek, so offsets in the
    folded string index the original string.

    Example:
        >>> fold_greek("Άρθρο 1")
        'ΑΡΘΡΟ 1'
    """
    return "".join(_fold_char(ch) for ch in text).translate(_HOMOGLYPHS)


class GazetteTextCleaner:
    """Normalize raw extracted gazette text.

    Example:
        >>> cleaner = GazetteTextCleaner()
        >>> text = cleaner.normalize(raw_text)
    """

    CATEGORIES = ("page_numbers", "separators", "headers")

    def __init__(
        self,
        config: Optional[TextCleaningConfig] = None,
        patterns_file: Optional[str | Path] = None,
    ) -> None:
        """Initialize the cleaner.

        Args:
            config: Text cleaning configuration. If None, uses default settings.
            patterns_file: Path to patterns YAML file. Overrides config setting.
        """
        self.config = config or TextCleaningConfig()

        source = patterns_file or self.config.patterns_file
        if source:
            self.patterns = self._load_patterns(Path(source))
        else:
            self.patterns = DEFAULT_PATTERNS

        self._compile_patterns()
        logger.debug(
            f"Initialized GazetteTextCleaner with {len(self.compiled_patterns)} noise patterns "
            f"from {source or 'built-in defaults'}"
        )

    def _load_patterns(self, patterns_file: Path) -> Dict[str, Any]:
        """Load cleaning patterns from YAML file.

        Raises:
            FileNotFoundError: If patterns file doesn't exist
            ValueError: If the file root is not a mapping
        """
        if not patterns_file.exists():
            raise FileNotFoundError(f"Patterns file not found: {patterns_file}")

        with open(patterns_file, encoding="utf-8") as f:
            patterns = yaml.safe_load(f) or {}
        if not isinstance(patterns, dict):
            raise ValueError(f"Patterns file root must be a mapping/dict: {patterns_file}")
        return patterns

    def _compile_patterns(self) -> None:
        self.compiled_patterns: List[re.Pattern] = []
        for category in self.CATEGORIES:
            section = self.patterns.get(category) or {}
            if not section.get("enabled", False):
                continue
            self.compiled_patterns.extend(re.compile(p) for p in section.get("patterns", []))

    def is_noise_line(self, line: str) -> bool:
        """Return True if ``line`` is page furniture rather than act text."""
        folded = fold_greek(line.strip())
        if not folded:
            return False
        return any(pattern.search(folded) for pattern in self.compiled_patterns)

    def strip_noise_lines(self, text: str) -> str:
        return "\n".join(line for line in text.split("\n") if not self.is_noise_line(line))

    def normalize(self, raw: str) -> str:
        """Normalize raw extracted text.

        Args:
            raw: Text as produced by an extraction backend

        Returns:
            Text without carriage returns, control characters, noise lines or
            runs of more than one blank line
        """
        if not raw:
            return ""

        text = raw.replace("\r", "").replace("\f", "\n")
        text = _CONTROL_CHARS_RE.sub("", text)
        lines = [line.rstrip() for line in text.split("\n")]
        text = "\n".join(line for line in lines if not self.is_noise_line(line))
        text = _BLANK_RUN_RE.sub("\n\n", text)
        return text.strip()
