import io
import json

import pytest
from openpyxl import load_workbook

from bol_triage.documents.exceptions import DocumentNotFoundError, InvalidTransitionError
from bol_triage.documents.models import DocumentStatus, ErrorCode, ProcessingStage, Severity
from bol_triage.triage.service import DocumentService

PDF = "application/pdf"


async def _processed(service: DocumentService, filename: str) -> int:
    document = await service.upload(b"%PDF-1.4 fake", filename, PDF)
    await service.drain()
    return document.id


class TestUpload:
    async def test_upload_returns_processing_document(self, service: DocumentService) -> None:
        document = await service.upload(b"%PDF-1.4 fake", "sample.pdf", PDF)
        assert document.status == DocumentStatus.PROCESSING
        assert document.processing_progress == 10
        assert document.processing_stage == ProcessingStage.UPLOAD_COMPLETE
        assert document.file_size == len(b"%PDF-1.4 fake")
        await service.drain()

    async def test_clean_sample_is_processed(self, service: DocumentService) -> None:
        document = await service.get(await _processed(service, "sample.pdf"))
        assert document.status == DocumentStatus.PROCESSED
        assert document.confidence is not None and document.confidence >= 0.90
        assert not any(i.severity == Severity.ERROR for i in document.validation_issues or [])
        assert document.extracted_data is not None
        assert [item.weight for item in document.extracted_data.items] == [1200, 850, 400]
        assert document.processing_progress == 100
        assert document.processing_stage == ProcessingStage.COMPLETE
        assert document.processed_at is not None

    async def test_scan_needs_validation(self, service: DocumentService) -> None:
        document = await service.get(await _processed(service, "scan_01.pdf"))
        assert document.status == DocumentStatus.NEEDS_VALIDATION
        assert document.confidence == 0.67
        severities = [issue.severity for issue in document.validation_issues or []]
        assert severities.count(Severity.ERROR) == 1
        assert severities.count(Severity.WARNING) == 2
        error = next(i for i in document.validation_issues or [] if i.severity == Severity.ERROR)
        assert error.field == "totalWeight"
        assert "weight" in error.message.lower()

    async def test_invoice_is_type_mismatch(self, service: DocumentService) -> None:
        document = await service.get(await _processed(service, "invoice_x.pdf"))
        assert document.status == DocumentStatus.UNPROCESSED
        assert document.extracted_data is None
        assert [e.code for e in document.processing_errors or []] == [
            ErrorCode.DOCUMENT_TYPE_MISMATCH
        ]

    async def test_blurry_is_image_quality(self, service: DocumentService) -> None:
        document = await service.get(await _processed(service, "blurry_photo.jpg"))
        assert [e.code for e in document.processing_errors or []] == [ErrorCode.IMAGE_QUALITY_LOW]

    async def test_listing(self, service: DocumentService) -> None:
        await _processed(service, "sample.pdf")
        await _processed(service, "invoice_x.pdf")
        assert [d.filename for d in await service.list_all()] == ["invoice_x.pdf", "sample.pdf"]
        unprocessed = await service.list_by_status("unprocessed")
        assert [d.filename for d in unprocessed] == ["invoice_x.pdf"]


class TestHumanActions:
    async def test_reject_leaves_no_processing_errors(self, service: DocumentService) -> None:
        document_id = await _processed(service, "scan_01.pdf")
        document = await service.reject(document_id)
        assert document.status == DocumentStatus.UNPROCESSED
        assert document.processing_errors is None
        assert document.extracted_data is None

    async def test_patch_status_processed_approves_with_edits(
        self, service: DocumentService
    ) -> None:
        document_id = await _processed(service, "scan_01.pdf")
        current = await service.get(document_id)
        assert current.extracted_data is not None
        edited = {
            "bol_number": "XYZ-FIXED",
            "carrier": {"name": "XYZ Freight Services", "scac": "XYZF"},
            "total_weight": 2350,
            "items": [{"description": "Industrial Equipment", "quantity": "15 pcs", "weight": 2350}],
        }
        document = await service.patch(
            document_id, {"status": "processed", "extracted_data": edited}
        )
        assert document.status == DocumentStatus.PROCESSED
        assert document.validation_issues is None
        assert document.extracted_data is not None
        assert document.extracted_data.bol_number == "XYZ-FIXED"
        assert document.extracted_data.total_weight == 2350

    async def test_patch_status_unprocessed_rejects(self, service: DocumentService) -> None:
        document_id = await _processed(service, "scan_01.pdf")
        document = await service.patch(document_id, {"status": "unprocessed"})
        assert document.rejected is True

    async def test_patch_without_status_keeps_review(self, service: DocumentService) -> None:
        document_id = await _processed(service, "scan_01.pdf")
        document = await service.patch(document_id, {"validation_issues": []})
        assert document.status == DocumentStatus.NEEDS_VALIDATION
        assert document.validation_issues is None

    async def test_patch_immutable_field_raises(self, service: DocumentService) -> None:
        document_id = await _processed(service, "scan_01.pdf")
        with pytest.raises(ValueError, match="cannot be modified"):
            await service.patch(document_id, {"filename": "renamed.pdf"})

    async def test_patch_to_processing_raises(self, service: DocumentService) -> None:
        document_id = await _processed(service, "scan_01.pdf")
        with pytest.raises(InvalidTransitionError):
            await service.patch(document_id, {"status": "processing"})

    async def test_approve_outside_review_raises(self, service: DocumentService) -> None:
        document_id = await _processed(service, "sample.pdf")
        with pytest.raises(InvalidTransitionError):
            await service.approve(document_id)

    async def test_delete(self, service: DocumentService) -> None:
        document_id = await _processed(service, "sample.pdf")
        assert await service.delete(document_id) is True
        assert await service.delete(document_id) is False
        with pytest.raises(DocumentNotFoundError):
            await service.get(document_id)

    async def test_delete_while_processing(self, service: DocumentService) -> None:
        document = await service.upload(b"%PDF", "sample.pdf", PDF)
        assert await service.delete(document.id) is True
        await service.drain()
        assert await service.list_all() == []


class TestRetry:
    async def test_retry_clears_then_resolves(self, service: DocumentService) -> None:
        document_id = await _processed(service, "invoice_x.pdf")
        document = await service.retry(document_id)
        assert document.status == DocumentStatus.PROCESSING
        assert document.processing_errors is None
        assert document.extracted_data is None
        assert document.confidence is None
        assert document.processing_progress == 10
        assert document.generation == 2
        await service.drain()
        resolved = await service.get(document_id)
        assert resolved.status == DocumentStatus.UNPROCESSED
        assert resolved.processing_errors is not None
        assert resolved.processing_errors[0].code == ErrorCode.DOCUMENT_TYPE_MISMATCH

    async def test_retry_after_reject_processes_again(self, service: DocumentService) -> None:
        document_id = await _processed(service, "scan_01.pdf")
        await service.reject(document_id)
        await service.retry(document_id)
        await service.drain()
        document = await service.get(document_id)
        assert document.status == DocumentStatus.NEEDS_VALIDATION
        assert document.rejected is False

    async def test_retry_unknown_document_raises(self, service: DocumentService) -> None:
        with pytest.raises(DocumentNotFoundError):
            await service.retry(404)


class TestExport:
    async def test_bulk_export_only_processed(self, service: DocumentService) -> None:
        await _processed(service, "sample.pdf")
        await _processed(service, "scan_01.pdf")
        await _processed(service, "invoice_x.pdf")
        exported = json.loads(await service.bulk_export("json"))
        assert exported["total_records"] == 1
        info = exported["bills_of_lading"][0]["document_info"]
        assert info["source_filename"] == "sample.pdf"
        assert info["validation_status"] == "validated"
        assert info["confidence_score"] == 0.96

    async def test_multi_bol_expands(self, service: DocumentService) -> None:
        document_id = await _processed(service, "multi_batch.pdf")
        document = await service.get(document_id)
        assert document.status == DocumentStatus.PROCESSED
        exported = json.loads(await service.bulk_export("json"))
        ids = [entry["document_info"]["internal_id"] for entry in exported["bills_of_lading"]]
        assert ids == [str(document_id), f"{document_id}-2", f"{document_id}-3"]
        pages = [entry["document_info"]["source_page"] for entry in exported["bills_of_lading"]]
        assert pages == ["N/A", 2, 3]

    async def test_approved_document_exports_validated(self, service: DocumentService) -> None:
        document_id = await _processed(service, "scan_01.pdf")
        await service.approve(document_id)
        exported = json.loads(await service.bulk_export())
        assert exported["bills_of_lading"][0]["document_info"]["validation_status"] == "validated"

    async def test_single_export_of_document_in_review(self, service: DocumentService) -> None:
        document_id = await _processed(service, "scan_01.pdf")
        exported = json.loads(await service.single_export(document_id))
        info = exported["bills_of_lading"][0]["document_info"]
        assert info["validation_status"] == "requires_review"
        assert info["confidence_score"] == 0.67

    async def test_single_export_without_data_raises(self, service: DocumentService) -> None:
        document_id = await _processed(service, "invoice_x.pdf")
        with pytest.raises(InvalidTransitionError):
            await service.single_export(document_id)

    async def test_csv_bulk_export(self, service: DocumentService) -> None:
        await _processed(service, "sample.pdf")
        lines = (await service.bulk_export("csv")).decode("utf-8").splitlines()
        assert lines[0].startswith("internal_id,source_filename")
        assert len(lines) == 2

    async def test_excel_bulk_export(self, service: DocumentService) -> None:
        await _processed(service, "multi_batch.pdf")
        workbook = load_workbook(io.BytesIO(await service.bulk_export("excel")))
        rows = list(workbook.active.iter_rows(values_only=True))
        assert rows[0][:2] == ("internal_id", "source_filename")
        assert len(rows) == 4

    async def test_unknown_format_raises(self, service: DocumentService) -> None:
        with pytest.raises(ValueError, match="Unknown export format"):
            await service.bulk_export("yaml")


class TestBackendStatus:
    async def test_mock_mode_status(self, service: DocumentService) -> None:
        assert service.status()["mode"] == "mock"
        result = await service.test_connection()
        assert result["success"] is False
