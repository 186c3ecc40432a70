from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class DocumentStatus(StrEnum):
    PROCESSING = "processing"
    PROCESSED = "processed"
    NEEDS_VALIDATION = "needs_validation"
    UNPROCESSED = "unprocessed"


class ProcessingStage(StrEnum):
    UPLOAD_COMPLETE = "upload_complete"
    TYPE_DETECTION = "type_detection"
    FIELD_EXTRACTION = "field_extraction"
    DATA_VALIDATION = "data_validation"
    COMPLETE = "complete"


class Severity(StrEnum):
    WARNING = "warning"
    ERROR = "error"


class DocumentType(StrEnum):
    SINGLE = "single"
    MULTI = "multi"


class ErrorCode(StrEnum):
    DOCUMENT_TYPE_MISMATCH = "DOCUMENT_TYPE_MISMATCH"
    IMAGE_QUALITY_LOW = "IMAGE_QUALITY_LOW"
    PROCESSING_FAILED = "PROCESSING_FAILED"
    RETRY_FAILED = "RETRY_FAILED"
    LOW_CONFIDENCE = "LOW_CONFIDENCE"


@dataclass(frozen=True)
class Carrier:
    name: str | None = None
    scac: str | None = None


@dataclass(frozen=True)
class Party:
    """Shipper or consignee."""

    name: str | None = None
    address: str | None = None


@dataclass(frozen=True)
class BOLItem:
    """One commodity line. Quantity may be a count or free text such as '48 boxes'."""

    description: str | None = None
    quantity: str | float | None = None
    weight: float | None = None
    freight_class: str | None = None


@dataclass(frozen=True)
class ShipmentRecord:
    """Fields shared by a primary bill of lading and its bundled siblings."""

    bol_number: str | None = None
    bol_issuer: str | None = None
    carrier: Carrier = field(default_factory=Carrier)
    shipper: Party = field(default_factory=Party)
    consignee: Party = field(default_factory=Party)
    ship_date: str | None = None
    total_weight: float | None = None
    items: list[BOLItem] = field(default_factory=list)
    confidence: float | None = None


@dataclass(frozen=True)
class AdditionalBOLRecord(ShipmentRecord):
    """A sibling shipment found on a later page of a multi-BOL file."""

    page_number: int | None = None


@dataclass(frozen=True)
class BOLRecord(ShipmentRecord):
    """Structured extraction payload attached to a document.

    ``total_bol_count`` always equals ``1 + len(additional_records)``.
    """

    processing_timestamp: str | None = None
    document_type: DocumentType = DocumentType.SINGLE
    total_bol_count: int = 1
    additional_records: list[AdditionalBOLRecord] = field(default_factory=list)

    def __post_init__(self) -> None:
        expected = 1 + len(self.additional_records)
        if self.total_bol_count != expected:
            raise ValueError(
                f"total_bol_count must be {expected} for "
                f"{len(self.additional_records)} additional records, "
                f"got {self.total_bol_count}"
            )


@dataclass(frozen=True)
class ValidationIssue:
    field: str
    message: str
    severity: Severity


@dataclass(frozen=True)
class ProcessingError:
    code: str
    message: str
    details: str | None = None


@dataclass(frozen=True)
class DocumentDraft:
    """Upload metadata needed to create a document."""

    filename: str
    file_size: int
    mime_type: str


@dataclass(frozen=True)
class Document:
    """The unit of work tracked from upload to export.

    ``generation`` counts processing attempts; it is bumped on every retry so
    that completions from a superseded attempt can be recognized and dropped.
    """

    id: int
    filename: str
    file_size: int
    mime_type: str
    uploaded_at: datetime
    status: DocumentStatus = DocumentStatus.PROCESSING
    processed_at: datetime | None = None
    confidence: float | None = None
    extracted_data: BOLRecord | None = None
    validation_issues: list[ValidationIssue] | None = None
    processing_errors: list[ProcessingError] | None = None
    processing_progress: int = 10
    processing_stage: ProcessingStage = ProcessingStage.UPLOAD_COMPLETE
    generation: int = 1
    rejected: bool = False

    def invariant_violations(self) -> list[str]:
        """Return a description of every status invariant this document breaks."""
        violations: list[str] = []
        if self.status == DocumentStatus.PROCESSING:
            if self.extracted_data is not None:
                violations.append("processing document carries extracted data")
            if self.processed_at is not None:
                violations.append("processing document carries processed_at")
        if self.status in (DocumentStatus.PROCESSED, DocumentStatus.NEEDS_VALIDATION):
            if self.extracted_data is None:
                violations.append(f"{self.status} document has no extracted data")
        if self.status == DocumentStatus.UNPROCESSED:
            if self.extracted_data is not None:
                violations.append("unprocessed document carries extracted data")
            if not self.rejected and not self.processing_errors:
                violations.append("unprocessed document has no processing errors")
        if self.confidence is not None and not 0.0 <= self.confidence <= 1.0:
            violations.append(f"confidence {self.confidence} outside [0, 1]")
        if not 0 <= self.processing_progress <= 100:
            violations.append(f"progress {self.processing_progress} outside [0, 100]")
        return violations


IMMUTABLE_FIELDS = frozenset({"id", "filename", "file_size", "mime_type", "uploaded_at"})
