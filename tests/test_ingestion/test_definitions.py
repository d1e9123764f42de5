from __future__ import annotations

from fek_ingest.ingestion.definitions import DefinitionExtractor
from fek_ingest.ingestion.models import Provision
from fek_ingest.ingestion.segmenter import ProvisionSegmenter
from fek_ingest.utils.config import DefinitionConfig


def _provision(content: str, title: str = "Ορισμοί", section: str = "2") -> Provision:
    return Provision(reference=f"Art. {section}", section=section, title=title, content=content)


def test_extracts_definitions_from_segmented_act(usable_act_text: str) -> None:
    provisions = ProvisionSegmenter().segment(usable_act_text)

    definitions = DefinitionExtractor().extract(provisions)

    assert [d.term for d in definitions] == ["δεδομένα προσωπικού χαρακτήρα", "υπεύθυνος επεξεργασίας"]
    assert definitions[0].definition.startswith("κάθε πληροφορία")
    assert all(d.source_provision == "Art. 2" for d in definitions)


def test_only_definition_articles_are_scanned() -> None:
    provision = _provision(
        "α) «αρχή»: η Αρχή Προστασίας Δεδομένων Προσωπικού Χαρακτήρα.", title="Αρμοδιότητες"
    )
    assert DefinitionExtractor().extract([provision]) == []


def test_marker_in_opening_text_is_enough() -> None:
    provision = _provision(
        "Για την εφαρμογή του παρόντος ισχύουν οι ακόλουθοι ορισμοί:\n"
        "1. “ψευδωνυμοποίηση”: η επεξεργασία δεδομένων κατά τρόπο ώστε να μην αποδίδονται.",
        title="",
    )

    definitions = DefinitionExtractor().extract([provision])

    assert [d.term for d in definitions] == ["ψευδωνυμοποίηση"]


def test_quote_styles_and_separators() -> None:
    provision = _provision(
        "- \"κρυπτογράφηση\" - η μετατροπή δεδομένων σε μη αναγνώσιμη μορφή,\n"
        "«δίκτυο», κάθε σύστημα μετάδοσης σημάτων μέσω καλωδίου,\n"
        "«σύντομο»: λίγα.\n"
        "κείμενο χωρίς όρο που δεν πρέπει να ληφθεί υπόψη"
    )

    definitions = DefinitionExtractor().extract([provision])

    assert [d.term for d in definitions] == ["κρυπτογράφηση", "δίκτυο"]


def test_duplicate_terms_first_wins() -> None:
    first = _provision("α) «Χρήστης»: το φυσικό πρόσωπο που χρησιμοποιεί την υπηρεσία.", section="2")
    second = _provision("α) «χρήστης»: κάθε πρόσωπο με πρόσβαση σε υπηρεσία δικτύου.", section="3")

    definitions = DefinitionExtractor().extract([first, second])

    assert len(definitions) == 1
    assert definitions[0].source_provision == "Art. 2"


def test_definitions_are_capped() -> None:
    lines = [f"{i}. «όρος {i}»: ορισμός του όρου με αριθμό {i}." for i in range(1, 151)]
    provision = _provision("\n".join(lines))

    definitions = DefinitionExtractor().extract([provision])

    assert len(definitions) == 100
    assert definitions[-1].term == "όρος 100"


def test_cap_is_configurable() -> None:
    lines = [f"{i}. «όρος {i}»: ορισμός του όρου με αριθμό {i}." for i in range(1, 20)]
    extractor = DefinitionExtractor(DefinitionConfig(max_definitions=5))

    assert len(extractor.extract([_provision("\n".join(lines))])) == 5
