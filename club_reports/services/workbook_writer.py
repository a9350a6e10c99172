"""Serialization of a :class:`WorkbookDocument` to ``.xlsx`` bytes."""

import io
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import pandas as pd
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

logger = logging.getLogger(__name__)

BORDER_COLOR = "FFCCCCCC"
SECTION_FILL = "FFF1F5F9"
HEADER_FILL = "FFE8F4F8"


@dataclass(frozen=True)
class CellStyle:
    bold: bool = False
    size: int = 11
    fill: Optional[str] = None
    horizontal: str = "left"
    wrap: bool = False
    border: bool = True


@dataclass
class Row:
    values: list[Any]
    style: Optional[CellStyle] = None
    height: Optional[float] = None
    # Last column (1-based) of a merge starting at column A
    merge_to: Optional[int] = None
    # Per-column overrides, keyed by 1-based column number
    cell_styles: dict[int, CellStyle] = field(default_factory=dict)


@dataclass
class Sheet:
    name: str
    rows: list[Row] = field(default_factory=list)
    column_widths: list[float] = field(default_factory=list)
    # First row is the header of a plain table
    tabular: bool = False

    def add(self, values: list[Any], **kwargs) -> Row:
        row = Row(list(values), **kwargs)
        self.rows.append(row)
        return row

    def blank(self, height: Optional[float] = None) -> Row:
        return self.add([], height=height)


@dataclass
class WorkbookDocument:
    sheets: list[Sheet] = field(default_factory=list)

    @property
    def sheet_names(self) -> list[str]:
        return [sheet.name for sheet in self.sheets]

    def sheet(self, name: str) -> Sheet:
        for sheet in self.sheets:
            if sheet.name == name:
                return sheet
        raise KeyError(name)


def _thin_border() -> Border:
    side = Side(style="thin", color=BORDER_COLOR)
    return Border(top=side, bottom=side, left=side, right=side)


def _apply_style(cell, style: CellStyle) -> None:
    cell.font = Font(bold=style.bold, size=style.size)
    cell.alignment = Alignment(horizontal=style.horizontal, vertical="center", wrap_text=style.wrap)
    if style.fill:
        cell.fill = PatternFill(fill_type="solid", start_color=style.fill, end_color=style.fill)
    if style.border:
        cell.border = _thin_border()


def _write_row(worksheet, row_number: int, row: Row) -> None:
    width = max(len(row.values), row.merge_to or 0)
    for column in range(1, width + 1):
        value = row.values[column - 1] if column <= len(row.values) else None
        cell = worksheet.cell(row=row_number, column=column)
        if value is not None:
            cell.value = value
        style = row.cell_styles.get(column, row.style)
        if style is not None:
            _apply_style(cell, style)

    if row.merge_to and row.merge_to > 1:
        worksheet.merge_cells(
            start_row=row_number, start_column=1, end_row=row_number, end_column=row.merge_to
        )
    if row.height:
        worksheet.row_dimensions[row_number].height = row.height


def _set_widths(worksheet, widths: list[float]) -> None:
    for index, width in enumerate(widths, start=1):
        worksheet.column_dimensions[get_column_letter(index)].width = width


def _write_table(writer: pd.ExcelWriter, sheet: Sheet) -> None:
    header, *body = sheet.rows
    df = pd.DataFrame([row.values for row in body], columns=header.values)
    df.to_excel(writer, sheet_name=sheet.name, index=False)

    worksheet = writer.sheets[sheet.name]
    for row_number, row in enumerate(sheet.rows, start=1):
        if row.style is None and not row.cell_styles and not row.height:
            continue
        for column in range(1, len(header.values) + 1):
            style = row.cell_styles.get(column, row.style)
            if style is not None:
                _apply_style(worksheet.cell(row=row_number, column=column), style)
        if row.height:
            worksheet.row_dimensions[row_number].height = row.height
    _set_widths(worksheet, sheet.column_widths)


def _write_sheet(writer: pd.ExcelWriter, sheet: Sheet) -> None:
    worksheet = writer.book.create_sheet(sheet.name)
    for row_number, row in enumerate(sheet.rows, start=1):
        _write_row(worksheet, row_number, row)
    _set_widths(worksheet, sheet.column_widths)


def write_workbook(document: WorkbookDocument) -> bytes:
    """Render every sheet in order and return the finished file."""
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        for sheet in document.sheets:
            if sheet.tabular and sheet.rows:
                _write_table(writer, sheet)
            else:
                _write_sheet(writer, sheet)
    output.seek(0)
    data = output.read()
    logger.debug(f"Serialized workbook with {len(document.sheets)} sheets ({len(data)} bytes)")
    return data
