from datetime import UTC, datetime

import pytest

from bol_triage.documents.models import (
    AdditionalBOLRecord,
    BOLRecord,
    Document,
    DocumentStatus,
    DocumentType,
    ErrorCode,
    ProcessingError,
)


def _make_document(**changes: object) -> Document:
    fields: dict[str, object] = {
        "id": 1,
        "filename": "sample.pdf",
        "file_size": 1024,
        "mime_type": "application/pdf",
        "uploaded_at": datetime(2024, 12, 1, tzinfo=UTC),
    }
    fields.update(changes)
    return Document(**fields)  # type: ignore[arg-type]


class TestBOLRecord:
    def test_single_record_defaults(self) -> None:
        record = BOLRecord(bol_number="ABC1")
        assert record.document_type == DocumentType.SINGLE
        assert record.total_bol_count == 1
        assert record.additional_records == []

    def test_multi_record_count_matches(self) -> None:
        siblings = [AdditionalBOLRecord(bol_number="B2", page_number=2)]
        record = BOLRecord(
            bol_number="B1",
            document_type=DocumentType.MULTI,
            total_bol_count=2,
            additional_records=siblings,
        )
        assert record.total_bol_count == 1 + len(record.additional_records)

    def test_count_mismatch_raises(self) -> None:
        with pytest.raises(ValueError, match="total_bol_count must be 2"):
            BOLRecord(
                total_bol_count=3,
                additional_records=[AdditionalBOLRecord(page_number=2)],
            )


class TestDocumentDefaults:
    def test_new_document_is_processing_at_ten_percent(self) -> None:
        document = _make_document()
        assert document.status == DocumentStatus.PROCESSING
        assert document.processing_progress == 10
        assert document.generation == 1
        assert document.invariant_violations() == []


class TestInvariantViolations:
    def test_processing_with_data_is_flagged(self) -> None:
        document = _make_document(extracted_data=BOLRecord())
        assert "processing document carries extracted data" in document.invariant_violations()

    def test_processing_with_processed_at_is_flagged(self) -> None:
        document = _make_document(processed_at=datetime.now(UTC))
        assert "processing document carries processed_at" in document.invariant_violations()

    @pytest.mark.parametrize(
        "status", [DocumentStatus.PROCESSED, DocumentStatus.NEEDS_VALIDATION]
    )
    def test_accepted_status_requires_data(self, status: DocumentStatus) -> None:
        document = _make_document(status=status)
        assert f"{status} document has no extracted data" in document.invariant_violations()

    def test_unprocessed_requires_errors(self) -> None:
        document = _make_document(status=DocumentStatus.UNPROCESSED)
        assert "unprocessed document has no processing errors" in document.invariant_violations()

    def test_rejected_unprocessed_may_have_no_errors(self) -> None:
        document = _make_document(status=DocumentStatus.UNPROCESSED, rejected=True)
        assert document.invariant_violations() == []

    def test_unprocessed_with_error_is_valid(self) -> None:
        document = _make_document(
            status=DocumentStatus.UNPROCESSED,
            processing_errors=[ProcessingError(code=ErrorCode.IMAGE_QUALITY_LOW, message="blur")],
        )
        assert document.invariant_violations() == []

    def test_confidence_out_of_range_is_flagged(self) -> None:
        document = _make_document(
            status=DocumentStatus.PROCESSED,
            extracted_data=BOLRecord(),
            confidence=1.2,
        )
        assert document.invariant_violations() == ["confidence 1.2 outside [0, 1]"]
