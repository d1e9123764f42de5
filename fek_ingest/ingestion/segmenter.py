"""Split normalized gazette text into article-level provisions.

Headings are matched on the accent-folded copy of the text (see
:func:`fold_greek`), which has the same length as the original, so every match
offset slices the original text directly.
"""

from __future__ import annotations

import bisect
import re
from typing import Dict, List, Optional, Tuple

from loguru import logger

from fek_ingest.ingestion.models import Provision
from fek_ingest.ingestion.text_cleaner import GazetteTextCleaner, fold_greek
from fek_ingest.sources.models import Catalogue
from fek_ingest.utils.config import SegmentationConfig

_APOSTROPHES = "'`" + "".join(chr(c) for c in (0x2019, 0x2018, 0x0384, 0x02B9, 0x0374, 0x2032, 0x00B4))
_SEPARATORS = "-:." + "".join(chr(c) for c in (0x2013, 0x2014, 0x00B7, 0x0387))
_APOS = f"[{re.escape(_APOSTROPHES)}]"
_SEP = f"[{re.escape(_SEPARATORS)}]"

# Ordinal stems, in order, as used by "Άρθρο πρώτο", "ΚΕΦΑΛΑΙΟ ΔΕΥΤΕΡΟ", "Άρθρο μόνο".
ORDINAL_STEMS = (
    "ΜΟΝ",
    "ΠΡΩΤ",
    "ΔΕΥΤΕΡ",
    "ΤΡΙΤ",
    "ΤΕΤΑΡΤ",
    "ΠΕΜΠΤ",
    "ΕΚΤ",
    "ΕΒΔΟΜ",
    "ΟΓΔΟ",
    "ΕΝΑΤ",
    "ΔΕΚΑΤ",
    "ΕΝΔΕΚΑΤ",
    "ΔΩΔΕΚΑΤ",
)
_ORDINAL = "(?:" + "|".join(sorted(ORDINAL_STEMS, key=len, reverse=True)) + ")[ΟΗ]"

HEADING_RE = re.compile(
    r"^[ \t]*(?P<word>ΑΡΘΡΟ|ΑΡΔΡΟ)[ \t]*"
    r"(?P<section>\d{1,4}[Α-Ω]{0,2}(?![Α-Ω0-9])"
    rf"|[Α-Ω]{{1,2}}[ \t]?{_APOS}"
    rf"|{_ORDINAL}(?![Α-Ω]))"
    rf"[ \t]*{_APOS}?"
    rf"(?P<rest>[ \t]*{_SEP}.*|[ \t]{{2,}}\S.*|[ \t]*)$",
    re.MULTILINE,
)

CHAPTER_RE = re.compile(
    r"^[ \t]*(?P<kind>ΚΕΦΑΛΑΙΟ|ΜΕΡΟΣ|ΤΜΗΜΑ|ΤΙΤΛΟΣ|ΕΝΟΤΗΤΑ)[ \t]+"
    rf"(?P<token>\d{{1,3}}|[Α-Ω]{{1,2}}[ \t]?{_APOS}|{_ORDINAL})(?![Α-Ω0-9]).*$",
    re.MULTILINE,
)

OPENING_RE = re.compile(
    r"^[ \t]*(?:"
    r"(?P<kind>ΝΟΜΟΣ|ΠΡΟΕΔΡΙΚΟ[ \t]+ΔΙΑΤΑΓΜΑ)[ \t]+ΥΠ[ \t]*"
    rf"{_APOS}?[ \t]*ΑΡΙΘΜ?[ \t]*\.?[ \t]*(?P<number>\d+)"
    r"|(?P<pnp>ΠΡΑΞΗ[ \t]+ΝΟΜΟΘΕΤΙΚΟΥ[ \t]+ΠΕΡΙΕΧΟΜΕΝΟΥ)(?![Α-Ω]))",
    re.MULTILINE,
)

_ITEM_RE = re.compile(r"^\(?(?:\d{1,3}|[α-ωa-z]{1,3}|[ivx]{1,5})\s?[.)΄']\s*\S", re.IGNORECASE)
_LIST_MARKER_RE = re.compile(r"^[-–—•*●]")
_HYPHEN_BREAK_RE = re.compile(r"(\w)-\n(?=[a-zα-ωάέήίόύώϊϋΐΰ])")
_INLINE_WS_RE = re.compile(r"[ \t\xa0]+")

_KIND_BY_OPENING = {
    "ΝΟΜΟΣ": Catalogue.LAW,
    "ΠΡΟΕΔΡΙΚΟ": Catalogue.PRESIDENTIAL_DECREE,
}


def section_sort_key(section: str) -> Tuple:
    """Numeric sections first (by value, then suffix); others after."""
    match = re.match(r"^(\d+)(.*)$", section)
    if match:
        return (0, int(match.group(1)), match.group(2))
    folded = fold_greek(section)
    for index, stem in enumerate(ORDINAL_STEMS):
        if folded.startswith(stem) and len(folded) == len(stem) + 1:
            return (1, index, folded)
    return (1, len(ORDINAL_STEMS), folded)


class ProvisionSegmenter:
    """Segment an act's text into provisions.

    Example:
        >>> segmenter = ProvisionSegmenter()
        >>> provisions = segmenter.segment(text, law_number="4624", catalogue="1")
        >>> print(provisions[0].reference, provisions[0].title)
    """

    def __init__(
        self,
        config: Optional[SegmentationConfig] = None,
        cleaner: Optional[GazetteTextCleaner] = None,
    ) -> None:
        self.config = config or SegmentationConfig()
        self.cleaner = cleaner or GazetteTextCleaner()

    def segment(
        self,
        text: str,
        law_number: Optional[str] = None,
        catalogue: Optional[Catalogue | str] = None,
    ) -> List[Provision]:
        """Split ``text`` into provisions.

        Args:
            text: Normalized full text of a gazette issue
            law_number: Number of the act to isolate when the issue holds several
            catalogue: Catalogue of that act

        Returns:
            Provisions ordered by section; empty if no article headings exist
        """
        if not text or not text.strip():
            return []

        segment = self.isolate_act(text, law_number, catalogue)
        folded = fold_greek(segment)

        headings = [
            m for m in HEADING_RE.finditer(folded) if segment[m.start("word")].isupper()
        ]
        if not headings:
            logger.debug("No article headings found")
            return []

        chapters = [
            m for m in CHAPTER_RE.finditer(folded) if segment[m.start("kind")].isupper()
        ]

        # Bodies run heading to heading; only a chapter block closing a body is structural.
        spans: List[Tuple[re.Match, int]] = []
        structural = [m for m in chapters if m.start() < headings[0].start()]
        for i, match in enumerate(headings):
            body_end = headings[i + 1].start() if i + 1 < len(headings) else len(segment)
            trailing = self._trailing_chapters(segment, match.end(), body_end, chapters)
            if trailing:
                body_end = trailing[0].start()
                structural.extend(trailing)
            spans.append((match, body_end))
        structural_starts = [m.start() for m in structural]

        by_section: Dict[str, Provision] = {}
        order: List[str] = []
        discarded = 0

        for match, body_end in spans:
            provision = self._build_provision(
                segment, match, segment[match.end() : body_end], structural, structural_starts
            )
            if provision is None:
                discarded += 1
                continue

            existing = by_section.get(provision.section)
            if existing is None:
                by_section[provision.section] = provision
                order.append(provision.section)
            elif len(provision.content) > len(existing.content):
                by_section[provision.section] = provision

        provisions = sorted(
            (by_section[s] for s in order), key=lambda p: section_sort_key(p.section)
        )
        logger.debug(
            f"Segmented {len(provisions)} provisions from {len(headings)} headings "
            f"({discarded} short bodies discarded)"
        )
        return provisions

    # ------------------------------------------------------------------
    # Document isolation
    # ------------------------------------------------------------------

    def isolate_act(
        self,
        text: str,
        law_number: Optional[str] = None,
        catalogue: Optional[Catalogue | str] = None,
    ) -> str:
        """Cut the target act out of a gazette issue that may contain several.

        The act starts at its formal opening line and ends at the next opening
        line of a different act. When the opening line repeats (contents page
        and body), the span with the most article headings wins. Without a law
        number, or without a matching opening line, the whole text is returned.
        """
        if not law_number:
            return text

        wanted_kind: Optional[Catalogue] = None
        if catalogue:
            try:
                wanted_kind = Catalogue(catalogue)
            except ValueError:
                logger.debug(f"Unknown catalogue {catalogue!r}; matching any opening line")
        folded = fold_greek(text)
        openings = [(m, self._opening_identity(m)) for m in OPENING_RE.finditer(folded)]

        best: Optional[Tuple[int, int]] = None
        best_headings = -1
        for index, (match, (kind, number)) in enumerate(openings):
            if kind is None or (wanted_kind is not None and kind != wanted_kind):
                continue
            if kind != Catalogue.LEGISLATIVE_ACT and number != str(law_number).strip():
                continue

            end = len(text)
            for later, identity in openings[index + 1 :]:
                if identity != (kind, number):
                    end = later.start()
                    break

            headings = sum(1 for _ in HEADING_RE.finditer(folded, match.start(), end))
            if headings > best_headings:
                best, best_headings = (match.start(), end), headings

        if best is None:
            return text
        return text[best[0] : best[1]]

    @staticmethod
    def _opening_identity(match: re.Match) -> Tuple[Optional[Catalogue], Optional[str]]:
        if match.group("pnp"):
            return Catalogue.LEGISLATIVE_ACT, None
        kind = match.group("kind").split()[0]
        return _KIND_BY_OPENING.get(kind), match.group("number")

    # ------------------------------------------------------------------
    # Provision assembly
    # ------------------------------------------------------------------

    def _build_provision(
        self,
        segment: str,
        match: re.Match,
        body: str,
        chapters: List[re.Match],
        chapter_starts: List[int],
    ) -> Optional[Provision]:
        section = self._canonical_section(match.group("section"))

        rest = segment[match.start("rest") : match.end("rest")]
        inline_title = rest.strip().lstrip(_SEPARATORS).strip()
        if len(inline_title) > self.config.max_inline_title_chars:
            body = inline_title + "\n" + body
            inline_title = ""

        lines = self._clean_body_lines(body)
        title = _INLINE_WS_RE.sub(" ", inline_title)
        if not title and lines and self._looks_like_title(lines[0]):
            title = lines.pop(0)

        content = "\n".join(lines)
        if len(content) < self.config.min_body_chars:
            return None

        return Provision(
            reference=f"Art. {section}",
            chapter=self._chapter_for(segment, match.start(), chapters, chapter_starts),
            section=section,
            title=title,
            content=content,
        )

    @staticmethod
    def _canonical_section(token: str) -> str:
        compact = re.sub(r"\s+", "", token)
        stripped = compact.rstrip(_APOSTROPHES)
        if stripped and stripped[0].isdigit():
            return stripped
        if any(stripped.startswith(stem) for stem in ORDINAL_STEMS):
            return stripped
        return stripped + chr(0x0384)

    def _clean_body_lines(self, body: str) -> List[str]:
        body = self.cleaner.strip_noise_lines(body)
        body = _HYPHEN_BREAK_RE.sub(r"\1", body)
        lines: List[str] = []
        for raw_line in body.split("\n"):
            line = _INLINE_WS_RE.sub(" ", raw_line).strip()
            if line:
                lines.append(line)
        return lines

    def _trailing_chapters(
        self, segment: str, start: int, end: int, chapters: List[re.Match]
    ) -> List[re.Match]:
        """Return the chapter markers that close the body ``segment[start:end]``.

        A marker closes a body when at most one all-caps title line follows it
        before ``end``. Markers followed by running text (for example a chapter
        quoted inside an amendment) stay part of the body.
        """
        inside = [m for m in chapters if start < m.start() < end]
        trailing: List[re.Match] = []
        while inside:
            marker = inside.pop()
            after = [line.strip() for line in segment[marker.end() : end].split("\n")]
            after = [line for line in after if line]
            if after and not (len(after) == 1 and self._is_caps_title(after[0])):
                break
            trailing.insert(0, marker)
            end = marker.start()
        return trailing

    def _is_caps_title(self, line: str) -> bool:
        return (
            line == line.upper()
            and len(line) <= self.config.max_body_title_chars
            and any(ch.isalpha() for ch in line)
        )

    def _looks_like_title(self, line: str) -> bool:
        if len(line) > self.config.max_body_title_chars:
            return False
        if _ITEM_RE.match(line) or _LIST_MARKER_RE.match(line):
            return False
        if line[-1] in ":;,.":
            return False
        return any(ch.isalpha() for ch in line)

    def _chapter_for(
        self,
        segment: str,
        position: int,
        chapters: List[re.Match],
        chapter_starts: List[int],
    ) -> Optional[str]:
        index = bisect.bisect_left(chapter_starts, position) - 1
        if index < 0:
            return None
        match = chapters[index]
        if position - match.start() > self.config.chapter_lookback_chars:
            return None

        label = _INLINE_WS_RE.sub(" ", segment[match.start() : match.end()]).strip()
        # "ΚΕΦΑΛΑΙΟ Α΄" alone on a line is followed by its all-caps title.
        tail = segment[match.end("token") : match.end()].strip(" \t" + _APOSTROPHES)
        if not tail:
            following = segment[match.end() : position].lstrip("\n").split("\n", 1)[0].strip()
            if (
                following
                and self._is_caps_title(following)
                and not HEADING_RE.match(fold_greek(following))
            ):
                label = f"{label} {_INLINE_WS_RE.sub(' ', following)}"
        return label
