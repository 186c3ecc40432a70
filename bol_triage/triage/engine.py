"""Document status state machine.

``decide`` is a pure function of an extraction outcome; every write goes
through a single conditional store update so a transition either fully
applies or leaves the document as it was.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from bol_triage.documents.exceptions import (
    InvalidTransitionError,
    MalformedOutcomeError,
    StaleGenerationError,
)
from bol_triage.documents.models import (
    BOLRecord,
    Document,
    DocumentStatus,
    ErrorCode,
    ProcessingError,
    ProcessingStage,
    Severity,
    ValidationIssue,
)
from bol_triage.extraction.models import ExtractionOutcome
from bol_triage.logging.logger import Log
from bol_triage.store.base import BaseDocumentStore
from bol_triage.triage.stages import STAGE_PROGRESS, stage_changes
from bol_triage.triage.thresholds import TriageThresholds


@dataclass(frozen=True)
class TriageDecision:
    status: DocumentStatus
    confidence: float | None = None
    extracted_data: BOLRecord | None = None
    validation_issues: list[ValidationIssue] | None = None
    processing_errors: list[ProcessingError] | None = None

    def as_changes(self, processed_at: datetime) -> dict[str, Any]:
        return {
            "status": self.status,
            "processed_at": processed_at,
            "confidence": self.confidence,
            "extracted_data": self.extracted_data,
            "validation_issues": self.validation_issues,
            "processing_errors": self.processing_errors,
            **stage_changes(ProcessingStage.COMPLETE),
        }


class TriageEngine:
    """Applies confidence routing, staged progress and human review actions."""

    def __init__(
        self,
        store: BaseDocumentStore,
        thresholds: TriageThresholds | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._thresholds = thresholds or TriageThresholds()
        self._clock = clock or (lambda: datetime.now(UTC))

    @property
    def thresholds(self) -> TriageThresholds:
        return self._thresholds

    def decide(self, outcome: ExtractionOutcome) -> TriageDecision:
        """Route an extraction outcome to a status bucket.

        Raises:
            MalformedOutcomeError: if the outcome lacks the required shape.
        """
        if (outcome.record is None) == (outcome.error is None):
            raise MalformedOutcomeError("Outcome must carry exactly one of record and error")
        if outcome.error is not None:
            return TriageDecision(
                status=DocumentStatus.UNPROCESSED,
                processing_errors=[outcome.error],
            )

        confidence = self.overall_confidence(outcome)
        issues = self.build_issues(outcome)
        status = self.classify(confidence, issues)
        if status == DocumentStatus.UNPROCESSED:
            return TriageDecision(
                status=status,
                confidence=confidence,
                validation_issues=issues or None,
                processing_errors=[self._low_confidence_error(confidence, issues)],
            )
        return TriageDecision(
            status=status,
            confidence=confidence,
            extracted_data=outcome.record,
            validation_issues=issues or None,
        )

    def overall_confidence(self, outcome: ExtractionOutcome) -> float:
        confidence = outcome.confidence
        if confidence is None:
            confidence = outcome.classification_confidence
        if confidence is None:
            raise MalformedOutcomeError("Outcome carries no confidence score")
        if not 0.0 <= confidence <= 1.0:
            raise MalformedOutcomeError(f"Confidence {confidence} outside [0, 1]")
        return confidence

    def build_issues(self, outcome: ExtractionOutcome) -> list[ValidationIssue]:
        record = outcome.record
        if record is None:
            raise MalformedOutcomeError("Cannot validate an outcome without a record")
        t = self._thresholds
        issues: list[ValidationIssue] = []
        for score in outcome.field_scores:
            if score.confidence >= t.field_warning_confidence:
                continue
            issues.append(
                ValidationIssue(
                    field=score.field,
                    message=score.note
                    or f"Low confidence extraction for {score.field} ({round(score.confidence * 100)}%)",
                    severity=(
                        Severity.ERROR
                        if score.confidence < t.field_error_confidence
                        else Severity.WARNING
                    ),
                )
            )
        if not record.bol_number:
            issues.append(
                ValidationIssue(
                    field="bolNumber",
                    message="BOL number could not be extracted",
                    severity=Severity.ERROR,
                )
            )
        if not record.carrier.name:
            issues.append(
                ValidationIssue(
                    field="carrier.name",
                    message="Carrier information missing or unclear",
                    severity=Severity.WARNING,
                )
            )
        return issues

    def classify(self, confidence: float, issues: list[ValidationIssue]) -> DocumentStatus:
        t = self._thresholds
        errors = sum(1 for issue in issues if issue.severity == Severity.ERROR)
        if confidence >= t.processed_min_confidence and errors == 0:
            return DocumentStatus.PROCESSED
        if confidence >= t.review_min_confidence and errors <= t.max_review_errors:
            return DocumentStatus.NEEDS_VALIDATION
        return DocumentStatus.UNPROCESSED

    async def apply(
        self,
        document_id: int,
        generation: int,
        outcome: ExtractionOutcome,
    ) -> Document:
        """Decide and persist the terminal state of one processing attempt."""
        decision = self.decide(outcome)
        document = await self._store.update(
            document_id,
            decision.as_changes(self._clock()),
            expected_generation=generation,
        )
        Log.info(
            "Document triaged",
            document_id=document_id,
            generation=generation,
            status=document.status,
            confidence=document.confidence,
            source=outcome.source,
        )
        return document

    async def fail(
        self,
        document_id: int,
        generation: int,
        error: ProcessingError,
    ) -> Document:
        decision = TriageDecision(status=DocumentStatus.UNPROCESSED, processing_errors=[error])
        document = await self._store.update(
            document_id,
            decision.as_changes(self._clock()),
            expected_generation=generation,
        )
        Log.error(
            "Document processing failed",
            document_id=document_id,
            generation=generation,
            code=error.code,
            details=error.details,
        )
        return document

    async def advance(
        self,
        document_id: int,
        generation: int,
        stage: ProcessingStage,
    ) -> Document:
        """Record progress for the attempt identified by ``generation``.

        Raises:
            StaleGenerationError: if a retry superseded this attempt.
            InvalidTransitionError: if the document already left ``processing``
                or the stage would move progress backward.
        """
        current = await self._store.get(document_id)
        if current.generation != generation:
            raise StaleGenerationError(
                f"Document {document_id} is on generation {current.generation}, not {generation}"
            )
        if current.status != DocumentStatus.PROCESSING:
            raise InvalidTransitionError(
                f"Document {document_id} is {current.status}, not processing"
            )
        if current.processing_progress > STAGE_PROGRESS[stage]:
            raise InvalidTransitionError(
                f"Document {document_id} is past {stage} ({current.processing_progress}%)"
            )
        document = await self._store.update(
            document_id,
            stage_changes(stage),
            expected_generation=generation,
        )
        Log.debug("Stage reached", document_id=document_id, generation=generation, stage=stage)
        return document

    async def reset_for_retry(self, document_id: int) -> Document:
        """Start a new processing attempt from any status."""
        current = await self._store.get(document_id)
        document = await self._store.update(
            document_id,
            {
                "status": DocumentStatus.PROCESSING,
                "processed_at": None,
                "confidence": None,
                "extracted_data": None,
                "validation_issues": None,
                "processing_errors": None,
                "rejected": False,
                "generation": current.generation + 1,
                **stage_changes(ProcessingStage.UPLOAD_COMPLETE),
            },
            expected_generation=current.generation,
        )
        Log.info(
            "Document reset for retry",
            document_id=document_id,
            previous_status=current.status,
            generation=document.generation,
        )
        return document

    async def approve(self, document_id: int, edited: BOLRecord | None = None) -> Document:
        """Accept a reviewed document, replacing its data with the human-edited record."""
        current = await self._require_review(document_id, "approve")
        document = await self._store.update(
            document_id,
            {
                "status": DocumentStatus.PROCESSED,
                "extracted_data": edited if edited is not None else current.extracted_data,
                "validation_issues": None,
            },
            expected_generation=current.generation,
        )
        Log.info("Document approved", document_id=document_id)
        return document

    async def revise(
        self,
        document_id: int,
        *,
        edited: BOLRecord | None = None,
        issues: list[ValidationIssue] | None = None,
    ) -> Document:
        """Save reviewer edits without leaving ``needs_validation``."""
        current = await self._require_review(document_id, "edit")
        changes: dict[str, Any] = {}
        if edited is not None:
            changes["extracted_data"] = edited
        if issues is not None:
            changes["validation_issues"] = issues or None
        if not changes:
            return current
        document = await self._store.update(
            document_id, changes, expected_generation=current.generation
        )
        Log.info("Document revised", document_id=document_id, fields=sorted(changes))
        return document

    async def reject(self, document_id: int) -> Document:
        """Move a reviewed document to unprocessed without a processing error."""
        current = await self._require_review(document_id, "reject")
        document = await self._store.update(
            document_id,
            {
                "status": DocumentStatus.UNPROCESSED,
                "extracted_data": None,
                "processing_errors": None,
                "rejected": True,
            },
            expected_generation=current.generation,
        )
        Log.info("Document rejected", document_id=document_id)
        return document

    async def _require_review(self, document_id: int, action: str) -> Document:
        current = await self._store.get(document_id)
        if current.status != DocumentStatus.NEEDS_VALIDATION:
            raise InvalidTransitionError(
                f"Cannot {action} document {document_id} in status {current.status}"
            )
        return current

    def _low_confidence_error(
        self,
        confidence: float,
        issues: list[ValidationIssue],
    ) -> ProcessingError:
        errors = sum(1 for issue in issues if issue.severity == Severity.ERROR)
        return ProcessingError(
            code=ErrorCode.LOW_CONFIDENCE,
            message=f"Extraction confidence too low for review ({round(confidence * 100)}%)",
            details=f"{errors} blocking validation issue(s) found",
        )
