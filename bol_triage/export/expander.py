from bol_triage.documents.models import AdditionalBOLRecord, Document, DocumentType
from bol_triage.export.models import ExportableRecord, ValidationStatus


class MultiRecordExpander:
    """Flattens a document into its primary record plus any bundled siblings.

    Siblings inherit the parent's acceptance: they export as validated unless
    they carry their own confidence, which is then held to ``review_below``.
    """

    def __init__(self, review_below: float = 0.90) -> None:
        self._review_below = review_below

    def expand(self, document: Document) -> list[ExportableRecord]:
        data = document.extracted_data
        if data is None:
            raise ValueError(f"Document {document.id} has no extracted data to export")

        siblings = data.additional_records if data.document_type == DocumentType.MULTI else []
        total = 1 + len(siblings)
        primary = ExportableRecord(
            internal_id=str(document.id),
            document_id=document.id,
            source_filename=document.filename,
            processed_date=document.processed_at,
            confidence=document.confidence if document.confidence is not None else data.confidence,
            validation_status=(
                ValidationStatus.REQUIRES_REVIEW
                if document.validation_issues
                else ValidationStatus.VALIDATED
            ),
            sequence=1,
            total_in_document=total,
            record=data,
        )
        return [primary] + [
            self._sibling(document, sibling, sequence, total, primary.confidence)
            for sequence, sibling in enumerate(siblings, start=2)
        ]

    def expand_all(self, documents: list[Document]) -> list[ExportableRecord]:
        return [record for document in documents for record in self.expand(document)]

    def _sibling(
        self,
        document: Document,
        sibling: AdditionalBOLRecord,
        sequence: int,
        total: int,
        parent_confidence: float | None,
    ) -> ExportableRecord:
        status = ValidationStatus.VALIDATED
        if sibling.confidence is not None and sibling.confidence < self._review_below:
            status = ValidationStatus.REQUIRES_REVIEW
        return ExportableRecord(
            internal_id=f"{document.id}-{sequence}",
            document_id=document.id,
            source_filename=document.filename,
            processed_date=document.processed_at,
            confidence=sibling.confidence if sibling.confidence is not None else parent_confidence,
            validation_status=status,
            sequence=sequence,
            total_in_document=total,
            record=sibling,
            source_page=sibling.page_number,
        )
