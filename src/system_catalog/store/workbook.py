"""Spreadsheet-backed row store.

Each table is a worksheet of an ``openpyxl`` workbook. Row 1 holds the
headers; data rows follow. Callers address data rows by their logical,
0-based index and never see sheet coordinates.
"""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from openpyxl import Workbook, load_workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font, PatternFill
from openpyxl.worksheet.worksheet import Worksheet

logger = logging.getLogger(__name__)

_HEADER_ROW = 1
_FIRST_DATA_ROW = _HEADER_ROW + 1
_HEADER_FONT = Font(bold=True)
_HEADER_FILL = PatternFill(start_color="E0E0E0", end_color="E0E0E0", fill_type="solid")


def _cell_text(value: Any) -> str:
    return "" if value is None else str(value)


class CellValueError(ValueError):
    """A value the workbook format cannot store."""


def _check_writable(values: Mapping[str, Any]) -> None:
    for header, value in values.items():
        if isinstance(value, str) and ILLEGAL_CHARACTERS_RE.search(value):
            raise CellValueError(f"Field '{header}' contains characters that cannot be stored")


def _record_value(value: Any) -> Any:
    if value is None:
        return ""
    # Date cells typed in by hand come back from openpyxl as datetime objects.
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return value


class WorksheetTable:
    """Logical row operations over one worksheet."""

    def __init__(self, store: "WorkbookStore", worksheet: Worksheet) -> None:
        self._store = store
        self._sheet = worksheet

    @property
    def name(self) -> str:
        return self._sheet.title

    @property
    def headers(self) -> list[str]:
        values = [
            _cell_text(value)
            for value in next(
                self._sheet.iter_rows(
                    min_row=_HEADER_ROW, max_row=_HEADER_ROW, values_only=True
                )
            )
        ]
        while values and not values[-1].strip():
            values.pop()
        return values

    def has_headers(self) -> bool:
        return self._sheet.cell(row=_HEADER_ROW, column=1).value not in (None, "")

    def write_headers(self, headers: Sequence[str]) -> None:
        """Write ``headers`` into row 1 and style them."""
        with self._store.lock:
            for column, header in enumerate(headers, start=1):
                cell = self._sheet.cell(row=_HEADER_ROW, column=column, value=header)
                cell.font = _HEADER_FONT
                cell.fill = _HEADER_FILL
            self._store.save()

    def ensure_headers(self, headers: Sequence[str]) -> None:
        """Rewrite the header row when its first cell is empty."""
        if not self.has_headers():
            self.write_headers(headers)

    def row_count(self) -> int:
        with self._store.lock:
            return max(self._sheet.max_row - _HEADER_ROW, 0)

    def rows(self) -> list[list[Any]]:
        """All data rows, padded or truncated to the header width."""
        with self._store.lock:
            width = len(self.headers)
            if self._sheet.max_row < _FIRST_DATA_ROW or width == 0:
                return []
            result: list[list[Any]] = []
            for values in self._sheet.iter_rows(
                min_row=_FIRST_DATA_ROW,
                max_row=self._sheet.max_row,
                max_col=width,
                values_only=True,
            ):
                row = list(values)
                row.extend([None] * (width - len(row)))
                result.append(row)
            return result

    def records(self) -> list[dict[str, Any]]:
        """Data rows projected onto the headers; empty cells become ``""``."""
        headers = self.headers
        return [
            {header: _record_value(value) for header, value in zip(headers, row)}
            for row in self.rows()
        ]

    def column_values(self, header: str) -> list[Any]:
        headers = self.headers
        if header not in headers:
            return []
        index = headers.index(header)
        return [row[index] for row in self.rows()]

    def index_of(self, header: str, value: object) -> int | None:
        """Logical index of the first row whose ``header`` cell equals ``value``.

        Both sides are compared as strings so a numeric cell matches its
        textual form.
        """
        target = _cell_text(value)
        for index, cell in enumerate(self.column_values(header)):
            if _cell_text(cell) == target:
                return index
        return None

    def append_row(self, values: Iterable[Any]) -> int:
        """Append a row after the last data row and return its logical index.

        Every value is checked before the sheet is touched, so a rejected
        row leaves no partial cells behind.
        """
        row = list(values)
        headers = self.headers
        _check_writable(
            {headers[i] if i < len(headers) else f"column {i + 1}": v for i, v in enumerate(row)}
        )
        with self._store.lock:
            sheet_row = max(self._sheet.max_row, _HEADER_ROW) + 1
            for column, value in enumerate(row, start=1):
                self._sheet.cell(row=sheet_row, column=column, value=value)
            self._store.save()
            return sheet_row - _FIRST_DATA_ROW

    def update_cells(self, index: int, values: Mapping[str, Any]) -> None:
        """Overwrite the named cells of one row; other cells are untouched."""
        headers = self.headers
        unknown = [header for header in values if header not in headers]
        if unknown:
            raise KeyError(f"Unknown columns {unknown} in table '{self.name}'")
        _check_writable(values)
        with self._store.lock:
            self._check_index(index)
            for header, value in values.items():
                self._sheet.cell(
                    row=index + _FIRST_DATA_ROW,
                    column=headers.index(header) + 1,
                    value=value,
                )
            self._store.save()

    def delete_row(self, index: int) -> None:
        with self._store.lock:
            self._check_index(index)
            self._sheet.delete_rows(index + _FIRST_DATA_ROW)
            self._store.save()

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= self.row_count():
            raise IndexError(f"Row {index} out of range for table '{self.name}'")


class WorkbookStore:
    """Row-oriented datastore over a single workbook file.

    With no ``path`` the workbook lives in memory only.
    """

    def __init__(self, path: str | None = None) -> None:
        self._path = Path(path) if path else None
        self.lock = threading.RLock()
        if self._path is not None and self._path.exists():
            self._workbook = load_workbook(self._path)
            logger.info(
                "Loaded workbook %s (%d sheets)", self._path, len(self._workbook.sheetnames)
            )
        else:
            self._workbook = Workbook()
            self._workbook.remove(self._workbook.active)

    @property
    def path(self) -> Path | None:
        return self._path

    def list_tables(self) -> list[str]:
        with self.lock:
            return list(self._workbook.sheetnames)

    def get_table(self, name: str) -> WorksheetTable | None:
        with self.lock:
            if name not in self._workbook.sheetnames:
                return None
            return WorksheetTable(self, self._workbook[name])

    def get_or_create_table(self, name: str, default_headers: Sequence[str]) -> WorksheetTable:
        """Return the named table, creating it with ``default_headers`` on first use."""
        with self.lock:
            table = self.get_table(name)
            if table is not None:
                return table
            table = WorksheetTable(self, self._workbook.create_sheet(title=name))
            table.write_headers(default_headers)
            logger.info("Created table %s with %d columns", name, len(default_headers))
            return table

    def save(self) -> None:
        if self._path is None:
            return
        with self.lock:
            # openpyxl refuses to write a workbook without worksheets.
            if not self._workbook.worksheets:
                return
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._workbook.save(self._path)
