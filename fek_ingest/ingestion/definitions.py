"""Definition extraction from "Ορισμοί" articles.

Greek acts list their defined terms as quoted items, e.g.::

    α) «υπεύθυνος επεξεργασίας»: το φυσικό ή νομικό πρόσωπο ...
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional

from loguru import logger

from fek_ingest.ingestion.models import Definition, Provision
from fek_ingest.ingestion.text_cleaner import fold_greek
from fek_ingest.utils.config import DefinitionConfig

DEFINITIONS_MARKER = "ΟΡΙΣΜ"

_QUOTE_PAIRS = (("«", "»"), ("“", "”"), ('"', '"'))


def _term_pattern(open_q: str, close_q: str, max_len: int) -> str:
    return (
        f"{re.escape(open_q)}(?P<term>[^{re.escape(close_q)}\\n]{{1,{max_len}}}){re.escape(close_q)}"
    )


class DefinitionExtractor:
    """Extract quoted-term definitions from provisions.

    Example:
        >>> extractor = DefinitionExtractor()
        >>> for d in extractor.extract(provisions):
        ...     print(d.term, "->", d.definition[:40])
    """

    def __init__(self, config: Optional[DefinitionConfig] = None) -> None:
        self.config = config or DefinitionConfig()
        terms = "|".join(
            f"(?:{_term_pattern(o, c, self.config.max_term_chars)})".replace(
                "?P<term>", f"?P<term{i}>"
            )
            for i, (o, c) in enumerate(_QUOTE_PAIRS)
        )
        self._line_re = re.compile(
            r"^\s*(?:\(?(?:\d{1,3}|[α-ωa-z]{1,3})\s?[.)΄']\s*|[-–—•*]\s*)?"
            rf"(?:{terms})"
            r"\s*(?:[:,\-–—])\s*(?P<definition>\S.*)$"
        )

    def is_candidate(self, provision: Provision) -> bool:
        """Return True if the provision looks like a definitions article."""
        window = provision.content[: self.config.candidate_window_chars]
        return DEFINITIONS_MARKER in fold_greek(provision.title) or DEFINITIONS_MARKER in fold_greek(window)

    def extract(self, provisions: Iterable[Provision]) -> List[Definition]:
        """Extract definitions from candidate provisions.

        Args:
            provisions: Provisions of one act, in order

        Returns:
            Definitions deduplicated by case-folded term (first wins), capped
            at ``max_definitions``
        """
        definitions: List[Definition] = []
        seen: set[str] = set()

        for provision in provisions:
            if not self.is_candidate(provision):
                continue
            for line in provision.content.split("\n"):
                match = self._line_re.match(line)
                if not match:
                    continue
                term = self._term(match)
                definition = re.sub(r"\s+", " ", match.group("definition")).strip()
                if not term or len(definition) <= self.config.min_definition_chars:
                    continue
                key = term.casefold()
                if key in seen:
                    continue
                seen.add(key)
                definitions.append(
                    Definition(term=term, definition=definition, source_provision=provision.reference)
                )
                if len(definitions) >= self.config.max_definitions:
                    logger.debug(f"Definition cap of {self.config.max_definitions} reached")
                    return definitions

        return definitions

    @staticmethod
    def _term(match: re.Match) -> str:
        for i in range(len(_QUOTE_PAIRS)):
            value = match.group(f"term{i}")
            if value is not None:
                return re.sub(r"\s+", " ", value).strip()
        return ""
