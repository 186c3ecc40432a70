import csv
import io
import json
import xml.etree.ElementTree as ET
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from bol_triage.export.models import ExportableRecord, ExportFormat
from bol_triage.export.projector import FLAT_COLUMNS, ExportProjector

EXCEL_SHEET_TITLE = "Bills of Lading"


def to_json(records: list[ExportableRecord], projector: ExportProjector) -> bytes:
    nested = projector.project_nested(records)
    return json.dumps(nested, indent=2, ensure_ascii=False).encode("utf-8")


def to_csv(records: list[ExportableRecord], projector: ExportProjector) -> bytes:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(FLAT_COLUMNS))
    writer.writeheader()
    writer.writerows(projector.project_flat(records))
    return buffer.getvalue().encode("utf-8")


def to_xml(records: list[ExportableRecord], projector: ExportProjector) -> bytes:
    nested = projector.project_nested(records)
    root = ET.Element("bol_export", total_records=str(nested["total_records"]))
    for entry in nested["bills_of_lading"]:
        _append(root, "bill_of_lading_record", entry)
    ET.indent(root)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def to_excel(records: list[ExportableRecord], projector: ExportProjector) -> bytes:
    """Write the flat projection to a single-sheet xlsx workbook."""
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = EXCEL_SHEET_TITLE
    sheet.append(list(FLAT_COLUMNS))
    for cell in sheet[1]:
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = PatternFill(start_color="285390", end_color="285390", fill_type="solid")
        cell.alignment = Alignment(horizontal="center")
    for row in projector.project_flat(records):
        sheet.append([row[column] for column in FLAT_COLUMNS])
    sheet.freeze_panes = "A2"

    for index, column in enumerate(FLAT_COLUMNS, start=1):
        widest = max((len(str(cell.value)) for cell in sheet[get_column_letter(index)]), default=0)
        sheet.column_dimensions[get_column_letter(index)].width = min(max(widest, len(column)) + 2, 50)

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _append(parent: ET.Element, tag: str, value: Any) -> None:
    element = ET.SubElement(parent, tag)
    if isinstance(value, dict):
        for key, child in value.items():
            _append(element, key, child)
    elif isinstance(value, list):
        for child in value:
            _append(element, "item", child)
    else:
        element.text = str(value)


_SERIALIZERS = {
    ExportFormat.JSON: to_json,
    ExportFormat.CSV: to_csv,
    ExportFormat.XML: to_xml,
    ExportFormat.EXCEL: to_excel,
}


def serialize(
    records: list[ExportableRecord],
    fmt: ExportFormat | str,
    projector: ExportProjector | None = None,
) -> bytes:
    """Serialize exportable records in the requested format.

    Raises:
        ValueError: if ``fmt`` is not a supported export format.
    """
    try:
        export_format = ExportFormat(str(fmt).lower())
    except ValueError:
        raise ValueError(
            f"Unknown export format '{fmt}'. Choose from: {[f.value for f in ExportFormat]}"
        ) from None
    return _SERIALIZERS[export_format](records, projector or ExportProjector())
