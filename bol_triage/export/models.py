from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from bol_triage.documents.models import ShipmentRecord


class ValidationStatus(StrEnum):
    VALIDATED = "validated"
    REQUIRES_REVIEW = "requires_review"


class ExportFormat(StrEnum):
    JSON = "json"
    CSV = "csv"
    XML = "xml"
    EXCEL = "excel"


@dataclass(frozen=True)
class ExportableRecord:
    """One independently exportable shipment derived from a document."""

    internal_id: str
    document_id: int
    source_filename: str
    processed_date: datetime | None
    confidence: float | None
    validation_status: ValidationStatus
    sequence: int
    total_in_document: int
    record: ShipmentRecord
    source_page: int | None = None
