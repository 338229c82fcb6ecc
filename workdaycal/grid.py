"""
Spreadsheet bytes -> dense grid of cell text.

Only the first worksheet is read. Workday exports often carry a broken
<dimension> element (just "A1") because of merged cells, so the bounding box
is recomputed from the populated cells whenever the declared one is useless.
"""

from __future__ import annotations

import logging
import zipfile
from datetime import date, datetime, time
from io import BytesIO
from xml.etree.ElementTree import ParseError as XMLParseError
from typing import Any, Dict, Iterable, List, Optional, Tuple

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from workdaycal.errors import FormatError

logger = logging.getLogger(__name__)

Grid = List[List[Optional[str]]]

_UNREADABLE = (InvalidFileException, zipfile.BadZipFile, XMLParseError, KeyError, ValueError, OSError)


def _display_text(value: Any) -> str:
    """
    Render a cell value the way the spreadsheet would show it.
    """
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.strftime("%Y-%m-%d")
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _range_is_degenerate(ws: Any) -> bool:
    max_row = ws.max_row
    max_col = ws.max_column
    if not max_row or not max_col:
        return True
    return max_row == 1 and max_col == 1


def bounding_box(addresses: Iterable[Tuple[int, int]]) -> Tuple[int, int]:
    """
    Return (max_row, max_col) over one-indexed (row, col) cell addresses.
    (0, 0) for no cells.
    """
    max_row = 0
    max_col = 0
    for r, c in addresses:
        max_row = max(max_row, r)
        max_col = max(max_col, c)
    return max_row, max_col


def _scan_sheet(ws: Any) -> Tuple[Dict[Tuple[int, int], str], int, int]:
    degenerate = _range_is_degenerate(ws)
    if degenerate:
        logger.debug("Worksheet %r has no usable dimension, scanning cells", ws.title)
        ws.reset_dimensions()

    cells: Dict[Tuple[int, int], str] = {}
    for row in ws.iter_rows():
        for cell in row:
            if cell.value is None:
                continue
            cells[(cell.row, cell.column)] = _display_text(cell.value)

    if degenerate:
        n_rows, n_cols = bounding_box(cells)
    else:
        n_rows, n_cols = ws.max_row, ws.max_column
    return cells, n_rows, n_cols


def read_grid(data: bytes) -> Grid:
    """
    Decode workbook bytes into a rectangular grid anchored at A1.

    Missing cells are None. The grid is structural only: no header or row
    semantics are checked here.
    """
    try:
        wb = load_workbook(BytesIO(data), read_only=True, data_only=True)
    except _UNREADABLE as exc:
        raise FormatError(f"Invalid file format: could not read workbook ({exc})") from exc

    try:
        if not wb.worksheets:
            return []
        # read-only sheets are parsed lazily, so a corrupt sheet part only fails here
        try:
            cells, n_rows, n_cols = _scan_sheet(wb.worksheets[0])
        except _UNREADABLE as exc:
            raise FormatError(f"Invalid file format: could not read worksheet ({exc})") from exc
    finally:
        wb.close()

    grid: Grid = []
    for r in range(1, n_rows + 1):
        grid.append([cells.get((r, c)) for c in range(1, n_cols + 1)])
    return grid
