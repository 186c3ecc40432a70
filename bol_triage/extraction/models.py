from dataclasses import dataclass, field

from bol_triage.documents.models import BOLRecord, ProcessingError

BOL_CATEGORY = "bill_of_lading"
CATEGORIES = ("bill_of_lading", "invoice", "contract", "receipt", "other")


@dataclass(frozen=True)
class Classification:
    category: str
    confidence: float


@dataclass(frozen=True)
class FieldScore:
    """Confidence reported for one extracted sub-field.

    ``note`` replaces the generic low-confidence message when present.
    """

    field: str
    confidence: float
    note: str | None = None


@dataclass(frozen=True)
class ExtractionOutcome:
    """What an extractor hands to the triage engine.

    Exactly one of ``record`` and ``error`` is set. For a record,
    ``confidence`` is the overall score when the backend reports one and
    ``classification_confidence`` is the fallback.
    """

    record: BOLRecord | None = None
    error: ProcessingError | None = None
    confidence: float | None = None
    classification_confidence: float | None = None
    field_scores: list[FieldScore] = field(default_factory=list)
    source: str = "live"

    @classmethod
    def failed(cls, error: ProcessingError, source: str = "live") -> "ExtractionOutcome":
        return cls(error=error, source=source)
