"""Conversion between document dataclasses and JSON-ready dicts.

Used by the Postgres store (JSONB columns) and by callers that hand in
edited records as plain dicts. Input is trusted to be in our own shape;
payloads from extraction backends go through ``extraction.payload`` instead.
"""

from dataclasses import asdict
from typing import Any

from bol_triage.documents.models import (
    AdditionalBOLRecord,
    BOLItem,
    BOLRecord,
    Carrier,
    DocumentType,
    Party,
    ProcessingError,
    Severity,
    ValidationIssue,
)


def record_to_dict(record: BOLRecord) -> dict[str, Any]:
    return asdict(record)


def record_from_dict(data: dict[str, Any]) -> BOLRecord:
    """Rebuild a BOLRecord from the dict produced by ``record_to_dict``.

    ``total_bol_count`` is derived from ``additional_records`` when absent.

    Raises:
        ValueError: if the dict is not a record or its counts disagree.
    """
    if not isinstance(data, dict):
        raise ValueError("record must be an object")
    additional = [_additional_from_dict(item) for item in data.get("additional_records") or []]
    return BOLRecord(
        **_shipment_kwargs(data),
        processing_timestamp=data.get("processing_timestamp"),
        document_type=DocumentType(data.get("document_type") or DocumentType.SINGLE),
        total_bol_count=data.get("total_bol_count", 1 + len(additional)),
        additional_records=additional,
    )


def issues_to_list(issues: list[ValidationIssue] | None) -> list[dict[str, str]] | None:
    if issues is None:
        return None
    return [asdict(issue) for issue in issues]


def issues_from_list(raw: list[dict[str, Any]] | None) -> list[ValidationIssue] | None:
    if raw is None:
        return None
    return [
        ValidationIssue(
            field=item["field"],
            message=item["message"],
            severity=Severity(item["severity"]),
        )
        for item in raw
    ]


def errors_to_list(errors: list[ProcessingError] | None) -> list[dict[str, Any]] | None:
    if errors is None:
        return None
    return [asdict(error) for error in errors]


def errors_from_list(raw: list[dict[str, Any]] | None) -> list[ProcessingError] | None:
    if raw is None:
        return None
    return [
        ProcessingError(code=item["code"], message=item["message"], details=item.get("details"))
        for item in raw
    ]


def _additional_from_dict(data: dict[str, Any]) -> AdditionalBOLRecord:
    return AdditionalBOLRecord(**_shipment_kwargs(data), page_number=data.get("page_number"))


def _shipment_kwargs(data: dict[str, Any]) -> dict[str, Any]:
    carrier = data.get("carrier") or {}
    shipper = data.get("shipper") or {}
    consignee = data.get("consignee") or {}
    return {
        "bol_number": data.get("bol_number"),
        "bol_issuer": data.get("bol_issuer"),
        "carrier": Carrier(name=carrier.get("name"), scac=carrier.get("scac")),
        "shipper": Party(name=shipper.get("name"), address=shipper.get("address")),
        "consignee": Party(name=consignee.get("name"), address=consignee.get("address")),
        "ship_date": data.get("ship_date"),
        "total_weight": data.get("total_weight"),
        "items": [
            BOLItem(
                description=item.get("description"),
                quantity=item.get("quantity"),
                weight=item.get("weight"),
                freight_class=item.get("freight_class"),
            )
            for item in data.get("items") or []
        ],
        "confidence": data.get("confidence"),
    }
