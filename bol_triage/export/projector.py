"""Maps exportable records onto the normalized external schema.

Both projections are pure. Missing values render as ``PLACEHOLDER``; the
flat projection joins item fields with ``ITEM_DELIMITER`` in item order, so
only positional indices line up across the joined columns.

A record without items keeps a typed empty ``items`` list next to
``item_count = 0`` in the nested projection; only the joined flat columns,
which would otherwise be empty strings, fall back to ``PLACEHOLDER``.
"""

from datetime import datetime
from typing import Any

from bol_triage.documents.models import BOLItem
from bol_triage.export.models import ExportableRecord

PLACEHOLDER = "N/A"
ITEM_DELIMITER = "; "

FLAT_COLUMNS: tuple[str, ...] = (
    "internal_id",
    "source_filename",
    "processed_date",
    "confidence_score",
    "validation_status",
    "bol_sequence",
    "total_bols_in_document",
    "source_page",
    "bol_number",
    "bol_issuer",
    "ship_date",
    "carrier_name",
    "carrier_scac_code",
    "shipper_company_name",
    "shipper_address",
    "consignee_company_name",
    "consignee_address",
    "total_weight_lbs",
    "item_count",
    "item_descriptions",
    "item_quantities",
    "item_weights_lbs",
    "item_freight_classes",
)


class ExportProjector:
    """Projects ExportableRecords into nested documents or flat rows."""

    def project_nested(self, records: list[ExportableRecord]) -> dict[str, Any]:
        return {
            "total_records": len(records),
            "bills_of_lading": [self._nested(record) for record in records],
        }

    def project_flat(self, records: list[ExportableRecord]) -> list[dict[str, Any]]:
        return [self._flat(record) for record in records]

    def _nested(self, exportable: ExportableRecord) -> dict[str, Any]:
        record = exportable.record
        return {
            "document_info": self._document_info(exportable),
            "bill_of_lading": {
                "bol_number": _value(record.bol_number),
                "bol_issuer": _value(record.bol_issuer),
                "ship_date": _value(record.ship_date),
                "carrier_info": {
                    "name": _value(record.carrier.name),
                    "scac_code": _value(record.carrier.scac),
                },
                "shipper": {
                    "company_name": _value(record.shipper.name),
                    "address": _value(record.shipper.address),
                },
                "consignee": {
                    "company_name": _value(record.consignee.name),
                    "address": _value(record.consignee.address),
                },
                "shipment_details": {
                    "total_weight_lbs": _value(record.total_weight),
                    "item_count": len(record.items),
                    "items": [
                        _nested_item(line_number, item)
                        for line_number, item in enumerate(record.items, start=1)
                    ],
                },
            },
        }

    def _flat(self, exportable: ExportableRecord) -> dict[str, Any]:
        record = exportable.record
        info = self._document_info(exportable)
        row: dict[str, Any] = {
            **info,
            "bol_number": _value(record.bol_number),
            "bol_issuer": _value(record.bol_issuer),
            "ship_date": _value(record.ship_date),
            "carrier_name": _value(record.carrier.name),
            "carrier_scac_code": _value(record.carrier.scac),
            "shipper_company_name": _value(record.shipper.name),
            "shipper_address": _value(record.shipper.address),
            "consignee_company_name": _value(record.consignee.name),
            "consignee_address": _value(record.consignee.address),
            "total_weight_lbs": _value(record.total_weight),
            "item_count": len(record.items),
            "item_descriptions": _joined(record.items, "description"),
            "item_quantities": _joined(record.items, "quantity"),
            "item_weights_lbs": _joined(record.items, "weight"),
            "item_freight_classes": _joined(record.items, "freight_class"),
        }
        return {column: row[column] for column in FLAT_COLUMNS}

    @staticmethod
    def _document_info(exportable: ExportableRecord) -> dict[str, Any]:
        return {
            "internal_id": exportable.internal_id,
            "source_filename": _value(exportable.source_filename),
            "processed_date": _value(exportable.processed_date),
            "confidence_score": (
                round(exportable.confidence, 2)
                if exportable.confidence is not None
                else PLACEHOLDER
            ),
            "validation_status": str(exportable.validation_status),
            "bol_sequence": exportable.sequence,
            "total_bols_in_document": exportable.total_in_document,
            "source_page": _value(exportable.source_page),
        }


def _nested_item(line_number: int, item: BOLItem) -> dict[str, Any]:
    return {
        "line_number": line_number,
        "description": _value(item.description),
        "quantity": _value(item.quantity),
        "weight_lbs": _value(item.weight),
        "freight_class": _value(item.freight_class),
    }


def _joined(items: list[BOLItem], attribute: str) -> str:
    if not items:
        return PLACEHOLDER
    return ITEM_DELIMITER.join(str(_value(getattr(item, attribute))) for item in items)


def _value(raw: Any) -> Any:
    if raw is None:
        return PLACEHOLDER
    if isinstance(raw, datetime):
        return raw.isoformat()
    if isinstance(raw, str):
        return raw.strip() or PLACEHOLDER
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    return raw
