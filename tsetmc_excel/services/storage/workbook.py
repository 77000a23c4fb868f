"""
Workbook storage.

One .xlsx workbook holds one sheet per data category. Row 1 of a sheet is
the header row; data rows are only ever appended below the last used row
and columns are only ever added after the last header.
"""

import logging
import math
import re
from pathlib import Path
from typing import Mapping, Optional, Union

from atomicwrites import atomic_write
from openpyxl import Workbook, load_workbook
from openpyxl.worksheet.worksheet import Worksheet

from tsetmc_excel.services.base import StoreError
from tsetmc_excel.services.data_ingestion.validation import parse_int

logger = logging.getLogger(__name__)

HEADER_ROW = 1
FIRST_DATA_ROW = 2

_DECIMAL_PATTERN = re.compile(r"^[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?$")
_GROUPED_PATTERN = re.compile(r"^[+-]?[0-9]{1,3}(,[0-9]{3})+(\.[0-9]+)?$")

CellValue = Union[int, float, str]


class WorkbookStore:
    """Opens and saves the workbook file. Sheets are edited in memory between the two."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def open(self) -> Workbook:
        """
        Load the workbook, or start an empty one if the file does not exist.

        Raises:
            StoreError: If the file exists but cannot be read as a workbook.
        """
        if not self.path.exists():
            workbook = Workbook()
            workbook.remove(workbook.active)
            return workbook

        try:
            return load_workbook(self.path)
        except Exception as e:
            raise StoreError("WorkbookStore", f"Cannot open {self.path}") from e

    def save(self, workbook: Workbook) -> None:
        """
        Write the workbook through a temporary file.

        Raises:
            StoreError: If the file cannot be written.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with atomic_write(str(self.path), mode="wb", overwrite=True) as f:
                workbook.save(f)
        except OSError as e:
            raise StoreError("WorkbookStore", f"Cannot save {self.path}") from e
        logger.debug(f"Saved workbook {self.path}")


# =============================================================================
# SHEET ACCESS
# =============================================================================


def get_table(workbook: Workbook, name: str) -> Optional[Worksheet]:
    if name in workbook.sheetnames:
        return workbook[name]
    return None


def get_or_create_table(workbook: Workbook, name: str) -> Worksheet:
    sheet = get_table(workbook, name)
    if sheet is None:
        sheet = workbook.create_sheet(title=name)
    return sheet


def _is_empty(sheet: Worksheet) -> bool:
    return (
        sheet.max_row == 1
        and sheet.max_column == 1
        and sheet.cell(row=1, column=1).value is None
    )


def _last_used_row(sheet: Worksheet) -> int:
    return 0 if _is_empty(sheet) else sheet.max_row


def read_headers(sheet: Worksheet) -> list[str]:
    """Header texts of row 1, blanks included so positions match columns."""
    if _is_empty(sheet):
        return []
    headers = []
    for column in range(1, sheet.max_column + 1):
        value = sheet.cell(row=HEADER_ROW, column=column).value
        headers.append("" if value is None else str(value))
    return headers


def find_column(sheet: Worksheet, header: str) -> Optional[int]:
    """1-based column whose header equals `header`, or None."""
    for index, name in enumerate(read_headers(sheet), start=1):
        if name == header:
            return index
    return None


# =============================================================================
# WRITE
# =============================================================================


def coerce_cell_value(value: str) -> CellValue:
    """
    Store numeric-looking text as a number.

    Integer text becomes int, decimal or exponent text becomes float
    ("." decimal point, optional "," thousands groups). Anything else,
    including nan and inf, stays text.
    """
    text = value.strip()

    as_int = parse_int(text)
    if as_int is not None:
        return as_int

    if _GROUPED_PATTERN.match(text):
        text = text.replace(",", "")
        as_int = parse_int(text)
        if as_int is not None:
            return as_int

    if _DECIMAL_PATTERN.match(text):
        number = float(text)
        if math.isfinite(number):
            return number

    return value


def append_record(sheet: Worksheet, record: Mapping[str, str]) -> int:
    """
    Append one record as a new row, adding any missing header first.

    Returns the row number written.
    """
    headers = read_headers(sheet)

    for key in record:
        if key not in headers:
            headers.append(key)
            sheet.cell(row=HEADER_ROW, column=len(headers), value=key)

    new_row = max(_last_used_row(sheet) + 1, FIRST_DATA_ROW)

    for column, header in enumerate(headers, start=1):
        if header in record:
            sheet.cell(row=new_row, column=column, value=coerce_cell_value(record[header]))

    return new_row


# =============================================================================
# READ
# =============================================================================


def _cell_to_int(value) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    return parse_int(str(value))


def last_assigned_id(sheet: Optional[Worksheet], id_column: int = 1) -> int:
    """Highest integer found in `id_column` below the header, 0 if none."""
    if sheet is None or _is_empty(sheet):
        return 0

    latest = 0
    for row in range(FIRST_DATA_ROW, sheet.max_row + 1):
        parsed = _cell_to_int(sheet.cell(row=row, column=id_column).value)
        if parsed is not None:
            latest = max(latest, parsed)
    return latest


def row_count(sheet: Optional[Worksheet]) -> int:
    """Data rows below the header; 0 for an empty sheet, -1 for a missing one."""
    if sheet is None:
        return -1
    return max(_last_used_row(sheet) - HEADER_ROW, 0)
