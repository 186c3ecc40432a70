"""Filename-driven stand-in for the live extraction backend.

Filename tokens select canned outcomes so that intent can be encoded in test
file names. Only the token-free case is randomized, through an injectable
``random.Random``.
"""

import dataclasses
import random
from datetime import UTC, datetime

from bol_triage.documents.models import (
    AdditionalBOLRecord,
    BOLItem,
    BOLRecord,
    Carrier,
    DocumentType,
    ErrorCode,
    Party,
    ProcessingError,
)
from bol_triage.extraction.base import BaseExtractor
from bol_triage.extraction.models import ExtractionOutcome, FieldScore

TYPE_MISMATCH_TOKENS = ("invoice", "not_bol")
IMAGE_QUALITY_TOKENS = ("blurry", "damaged")
FLAWED_TOKENS = ("scan",)
MULTI_TOKENS = ("multi", "batch")


class MockExtractor(BaseExtractor):
    """Deterministic-by-filename simulation of classification and extraction."""

    name = "mock"

    def __init__(self, flawed_ratio: float = 0.3, rng: random.Random | None = None) -> None:
        self._flawed_ratio = flawed_ratio
        self._rng = rng or random.Random()

    async def extract(self, content: bytes, filename: str, mime_type: str) -> ExtractionOutcome:
        lowered = filename.lower()
        if _contains_any(lowered, TYPE_MISMATCH_TOKENS):
            return ExtractionOutcome.failed(
                ProcessingError(
                    code=ErrorCode.DOCUMENT_TYPE_MISMATCH,
                    message="Document type classification failed: Detected as Invoice, not BOL",
                    details="No BOL-specific fields found in document structure",
                ),
                source=self.name,
            )
        if _contains_any(lowered, IMAGE_QUALITY_TOKENS):
            return ExtractionOutcome.failed(
                ProcessingError(
                    code=ErrorCode.IMAGE_QUALITY_LOW,
                    message="Image quality too low for OCR processing",
                    details="Excessive blur and poor lighting conditions detected",
                ),
                source=self.name,
            )
        if _contains_any(lowered, FLAWED_TOKENS):
            return self._flawed()
        if _contains_any(lowered, MULTI_TOKENS):
            return self._multi()
        if self._rng.random() < self._flawed_ratio:
            return self._flawed()
        return self._clean()

    def _clean(self) -> ExtractionOutcome:
        return ExtractionOutcome(record=self._clean_record(), confidence=0.96, source=self.name)

    def _clean_record(self) -> BOLRecord:
        return BOLRecord(
            bol_number=f"ABC{self._rng.randrange(1_000_000_000)}",
            carrier=Carrier(name="ABC Logistics Inc.", scac="ABCL"),
            shipper=Party(name="Acme Manufacturing", address="123 Industrial Blvd, Chicago, IL 60601"),
            consignee=Party(
                name="Global Distribution Center",
                address="456 Warehouse Dr, Dallas, TX 75201",
            ),
            ship_date="2024-12-01",
            total_weight=2450,
            items=[
                BOLItem(description="Industrial Pumps", quantity=12, weight=1200, freight_class="Class 85"),
                BOLItem(description="Pipe Fittings", quantity="48 boxes", weight=850, freight_class="Class 55"),
                BOLItem(description="Gaskets & Seals", quantity="6 pallets", weight=400, freight_class="Class 60"),
            ],
            confidence=0.96,
            processing_timestamp=_now(),
        )

    def _flawed(self) -> ExtractionOutcome:
        record = BOLRecord(
            bol_number=f"XYZ{self._rng.randrange(100_000_000)}",
            carrier=Carrier(name="XYZ Freight Services", scac="XYZF"),
            shipper=Party(name="Manufacturing Corp", address="123 Industrial Blvd, Chicago, IL 60601"),
            consignee=Party(name="Regional Distrib. Warehouse", address="789 Commerce St\nMiami FL 33101-"),
            ship_date="2024-12-01",
            total_weight=2105,
            items=[
                BOLItem(
                    description="Industrial Equipment",
                    quantity="15 pcs",
                    weight=1200,
                    freight_class="Class 85",
                ),
            ],
            confidence=0.67,
            processing_timestamp=_now(),
        )
        scores = [
            FieldScore(
                field="bolNumber",
                confidence=0.72,
                note="BOL number field partially obscured - manual verification required",
            ),
            FieldScore(
                field="consignee.address",
                confidence=0.68,
                note="Consignee address format doesn't match standard patterns",
            ),
            FieldScore(
                field="totalWeight",
                confidence=0.41,
                note="Total weight calculation mismatch (2,105 lbs vs 2,350 lbs)",
            ),
        ]
        return ExtractionOutcome(record=record, confidence=0.67, field_scores=scores, source=self.name)

    def _multi(self) -> ExtractionOutcome:
        additional = [
            AdditionalBOLRecord(
                bol_number=f"ABC{self._rng.randrange(1_000_000_000)}",
                carrier=Carrier(name="ABC Logistics Inc.", scac="ABCL"),
                shipper=Party(name="Acme Manufacturing", address="123 Industrial Blvd, Chicago, IL 60601"),
                consignee=Party(name="Lakeside Retail", address="12 Harbor Rd, Cleveland, OH 44114"),
                ship_date="2024-12-02",
                total_weight=640,
                items=[
                    BOLItem(description="Valve Assemblies", quantity=20, weight=640, freight_class="Class 70"),
                ],
                page_number=2,
            ),
            AdditionalBOLRecord(
                bol_number=f"ABC{self._rng.randrange(1_000_000_000)}",
                carrier=Carrier(name="ABC Logistics Inc.", scac="ABCL"),
                shipper=Party(name="Acme Manufacturing", address="123 Industrial Blvd, Chicago, IL 60601"),
                consignee=Party(name="Summit Supply Co.", address="90 Ridge Ave, Denver, CO 80202"),
                ship_date="2024-12-03",
                total_weight=1100,
                items=[
                    BOLItem(description="Steel Brackets", quantity="10 crates", weight=700, freight_class="Class 50"),
                    BOLItem(description="Mounting Hardware", quantity="4 boxes", weight=400, freight_class="Class 55"),
                ],
                confidence=0.91,
                page_number=3,
            ),
        ]
        record = dataclasses.replace(
            self._clean_record(),
            confidence=0.94,
            document_type=DocumentType.MULTI,
            total_bol_count=1 + len(additional),
            additional_records=additional,
        )
        return ExtractionOutcome(record=record, confidence=0.94, source=self.name)


def _contains_any(text: str, tokens: tuple[str, ...]) -> bool:
    return any(token in text for token in tokens)


def _now() -> str:
    return datetime.now(UTC).isoformat()
