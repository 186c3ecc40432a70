"""Coerces loosely-typed backend payloads into the strict BOLRecord shape.

Everything past this module sees well-typed data only. Missing or
unparseable optional values default to None; structurally wrong payloads
raise ExtractionValidationError.
"""

import re
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from bol_triage.documents.models import (
    AdditionalBOLRecord,
    BOLItem,
    BOLRecord,
    Carrier,
    DocumentType,
    Party,
)
from bol_triage.extraction.exceptions import ExtractionValidationError
from bol_triage.extraction.models import Classification, FieldScore

_NUMBER_RE = re.compile(r"-?\d[\d,]*(?:\.\d+)?|-?\.\d+")

# record path -> accepted payload keys, first match wins
_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "bolNumber": ("bol_number", "reference_number"),
    "bolIssuer": ("bol_issuer",),
    "carrier.name": ("carrier_name",),
    "carrier.scac": ("carrier_scac", "scac_code"),
    "shipper.name": ("shipper_name",),
    "shipper.address": ("shipper_address",),
    "consignee.name": ("consignee_name",),
    "consignee.address": ("consignee_address",),
    "shipDate": ("ship_date", "pickup_date"),
    "totalWeight": ("total_weight",),
    "items": ("items", "commodities"),
}


@dataclass(frozen=True)
class ExtractedFields:
    record: BOLRecord
    confidence: float | None
    field_scores: list[FieldScore]


def build_classification(data: Any) -> Classification:
    """Validate a classification response.

    Raises:
        ExtractionValidationError: if category or confidence is missing or invalid.
    """
    if not isinstance(data, dict):
        raise ExtractionValidationError("Classification response must be an object")
    category = data.get("category")
    if not category or not isinstance(category, str):
        raise ExtractionValidationError("'category' must be a non-empty string")
    confidence = _confidence(data.get("confidence"), "confidence")
    if confidence is None:
        raise ExtractionValidationError("'confidence' is required")
    return Classification(category=category, confidence=confidence)


def build_extracted_fields(data: Any) -> ExtractedFields:
    """Validate an extraction response and build the primary record.

    Raises:
        ExtractionValidationError: on any structural failure.
    """
    if not isinstance(data, dict):
        raise ExtractionValidationError("Extraction response must be an object")
    raw_fields = data.get("fields")
    if raw_fields is None:
        raw_fields = {}
    if not isinstance(raw_fields, dict):
        raise ExtractionValidationError("'fields' must be an object")

    values, scores = _unwrap_fields(raw_fields)
    overall = _confidence(data.get("confidence"), "confidence")
    raw_additional = data.get("additional_bols")
    if raw_additional is None:
        raw_additional = raw_fields.get("additional_bols")
    additional = _build_additional(raw_additional)

    record = BOLRecord(
        **_shipment_kwargs(values),
        confidence=overall,
        processing_timestamp=datetime.now(UTC).isoformat(),
        document_type=DocumentType.MULTI if additional else DocumentType.SINGLE,
        total_bol_count=1 + len(additional),
        additional_records=additional,
    )
    return ExtractedFields(record=record, confidence=overall, field_scores=scores)


def _unwrap_fields(raw: dict[str, Any]) -> tuple[dict[str, Any], list[FieldScore]]:
    values: dict[str, Any] = {}
    scores: list[FieldScore] = []
    for path, aliases in _FIELD_ALIASES.items():
        for key in aliases:
            if key not in raw or raw[key] in (None, ""):
                continue
            value, score = _unwrap(raw[key], path)
            values[path] = value
            if score is not None:
                scores.append(FieldScore(field=path, confidence=score))
            break
    return values, scores


def _unwrap(raw: Any, path: str) -> tuple[Any, float | None]:
    if isinstance(raw, dict) and ("value" in raw or "confidence" in raw):
        return raw.get("value"), _confidence(raw.get("confidence"), f"{path}.confidence")
    return raw, None


def _build_additional(raw: Any) -> list[AdditionalBOLRecord]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ExtractionValidationError("'additional_bols' must be a list")
    records: list[AdditionalBOLRecord] = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ExtractionValidationError(f"Additional BOL at index {index} must be an object")
        fields = item.get("fields") if isinstance(item.get("fields"), dict) else item
        values, _scores = _unwrap_fields(fields)
        records.append(
            AdditionalBOLRecord(
                **_shipment_kwargs(values),
                confidence=_confidence(item.get("confidence"), f"additional_bols[{index}].confidence"),
                page_number=_int_or_none(item.get("page_number")),
            )
        )
    return records


def _shipment_kwargs(values: dict[str, Any]) -> dict[str, Any]:
    return {
        "bol_number": _text(values.get("bolNumber")),
        "bol_issuer": _text(values.get("bolIssuer")),
        "carrier": Carrier(
            name=_text(values.get("carrier.name")),
            scac=_text(values.get("carrier.scac")),
        ),
        "shipper": Party(
            name=_text(values.get("shipper.name")),
            address=_text(values.get("shipper.address")),
        ),
        "consignee": Party(
            name=_text(values.get("consignee.name")),
            address=_text(values.get("consignee.address")),
        ),
        "ship_date": _text(values.get("shipDate")),
        "total_weight": _number(values.get("totalWeight")),
        "items": _build_items(values.get("items")),
    }


def _build_items(raw: Any) -> list[BOLItem]:
    if not isinstance(raw, list):
        return []
    items: list[BOLItem] = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ExtractionValidationError(f"Item at index {index} must be an object")
        items.append(
            BOLItem(
                description=_text(_first(item, "description", "commodity")),
                quantity=_quantity(_first(item, "quantity", "pieces")),
                weight=_number(item.get("weight")),
                freight_class=_text(_first(item, "class", "freight_class")),
            )
        )
    return items


def _first(raw: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def _confidence(raw: Any, name: str) -> float | None:
    if raw is None:
        return None
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ExtractionValidationError(f"'{name}' must be a number")
    if not 0.0 <= raw <= 1.0:
        raise ExtractionValidationError(f"'{name}' must be within [0, 1], got {raw}")
    return float(raw)


def _text(raw: Any) -> str | None:
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


def _number(raw: Any) -> float | None:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    match = _NUMBER_RE.search(str(raw))
    if match is None:
        return None
    return float(match.group().replace(",", ""))


def _quantity(raw: Any) -> str | float | None:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return raw
    return _text(raw)


def _int_or_none(raw: Any) -> int | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    number = _number(raw)
    return int(number) if number is not None else None
