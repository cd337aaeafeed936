"""Spreadsheet-backed table store."""

from .schemas import TableSchema, schema_for
from .workbook import CellValueError, WorkbookStore, WorksheetTable

__all__ = ["CellValueError", "TableSchema", "WorkbookStore", "WorksheetTable", "schema_for"]
