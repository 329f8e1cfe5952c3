"""
Excel (.xlsx) export and import with openpyxl.
"""

import io
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from zzpboek.domain.exceptions import BookkeepingError

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@dataclass
class Column:
    key: str
    header: str
    width: int = 15
    numeric: bool = False


@dataclass
class Sheet:
    name: str
    title: str
    columns: list[Column]
    rows: list[dict] = field(default_factory=list)


def format_value(value: Any) -> Any:
    """Excel-friendly cell value; numbers stay numbers."""
    if value is None:
        return ""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool):
        return "Ja" if value else "Nee"
    if isinstance(value, (int, float)):
        return value
    return str(value)


def _write_sheet(ws, sheet: Sheet) -> None:
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    header_alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
    thin_border = Border(
        left=Side(style="thin"),
        right=Side(style="thin"),
        top=Side(style="thin"),
        bottom=Side(style="thin"),
    )

    ws.title = sheet.name[:31]
    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=max(1, len(sheet.columns)))
    title_cell = ws.cell(row=1, column=1, value=sheet.title)
    title_cell.font = Font(bold=True, size=14)

    exported = ws.cell(row=2, column=1, value=f"Geëxporteerd: {datetime.now().strftime('%Y-%m-%d %H:%M')}")
    exported.font = Font(italic=True, size=10, color="666666")

    header_row = 4
    for col_idx, col in enumerate(sheet.columns, 1):
        cell = ws.cell(row=header_row, column=col_idx, value=col.header)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = header_alignment
        cell.border = thin_border
        ws.column_dimensions[get_column_letter(col_idx)].width = col.width

    for row_idx, row in enumerate(sheet.rows, header_row + 1):
        for col_idx, col in enumerate(sheet.columns, 1):
            cell = ws.cell(row=row_idx, column=col_idx, value=format_value(row.get(col.key)))
            cell.border = thin_border
            if col.numeric:
                cell.number_format = "#,##0.00"
                cell.alignment = Alignment(horizontal="right")

    ws.freeze_panes = ws.cell(row=header_row + 1, column=1)


def export_workbook(sheets: list[Sheet]) -> bytes:
    """One worksheet per `Sheet`, returned as .xlsx bytes."""
    wb = Workbook()
    for index, sheet in enumerate(sheets):
        ws = wb.active if index == 0 else wb.create_sheet()
        _write_sheet(ws, sheet)

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def read_rows(content: bytes) -> list[dict[str, Any]]:
    """First sheet as dicts keyed by the lowercased header row. Empty rows are skipped.

    The header row is the first row with at least two filled cells, so a
    workbook from `export_workbook` (title rows above the headers) reads back.
    """
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        raise BookkeepingError(f"Geen geldig Excel-bestand: {e}") from e

    sheet = workbook.worksheets[0]
    rows = list(sheet.iter_rows(values_only=True))
    workbook.close()
    if not rows:
        return []

    def filled(row) -> int:
        return sum(1 for cell in row if cell is not None and str(cell).strip() != "")

    header_index = next((i for i, row in enumerate(rows) if filled(row) >= 2), 0)
    headers = [
        str(h).strip().lower() if h is not None else f"column_{i}" for i, h in enumerate(rows[header_index])
    ]
    records = []
    for row in rows[header_index + 1:]:
        if all(cell is None or str(cell).strip() == "" for cell in row):
            continue
        record = {}
        for i, value in enumerate(row):
            if i >= len(headers):
                break
            if isinstance(value, float) and value.is_integer():
                value = int(value)
            record[headers[i]] = "" if value is None else str(value).strip()
        records.append(record)
    return records
