"""GET/POST/PUT/DELETE semantics over a single table."""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping

from ..audit.log import AuditLog, best_effort
from ..auth.identity import Identity
from ..errors import RecordNotFoundError, RecordValidationError, StoreWriteError
from ..store.ids import generate_generic_id, next_sequential_id
from ..store.schemas import (
    CREATED_BY,
    CREATED_DATE,
    ID_COLUMN,
    IMMUTABLE_COLUMNS,
    LAST_UPDATED,
    LAST_UPDATED_BY,
    REQUIREMENTS,
    SYSTEM_ID_COLUMN,
    SYSTEMS,
    schema_for,
)
from ..store.workbook import CellValueError, WorkbookStore, WorksheetTable
from ..utils.time import utc_now_iso

logger = logging.getLogger(__name__)

SUPPORTED_METHODS = ("GET", "POST", "PUT", "DELETE")

_STORE_FAILURES = (OSError, ValueError, TypeError)


def _text(value: Any) -> str:
    if value is None or value == "":
        return ""
    return str(value)


def _filter_text(value: Any) -> str:
    return str(value).lower() if value else ""


def _cell_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return value


def _is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


class CatalogOperations:
    """Record-level operations; the caller has already authenticated and sanitized."""

    def __init__(self, store: WorkbookStore, audit_log: AuditLog | None = None) -> None:
        self._store = store
        self._audit_log = audit_log

    def open_table(self, name: str) -> WorksheetTable:
        """Return the table, creating the worksheet with its schema's headers on first use."""
        table = self._store.get_or_create_table(name, schema_for(name).headers)
        if not table.headers:
            raise RecordValidationError(f"Sheet {name} has no headers")
        return table

    def execute(self, method: str, table_name: str, data: Any, user: Identity) -> dict[str, Any]:
        verb = method.upper() if isinstance(method, str) else ""
        if verb not in SUPPORTED_METHODS:
            raise RecordValidationError(f"Unsupported HTTP method: {method}")

        table = self.open_table(table_name)
        if verb == "GET":
            return self.query(table, data)
        if verb == "POST":
            return self.create(table, data, user)
        if verb == "PUT":
            return self.update(table, data, user)
        return self.delete(table, data, user)

    def query(self, table: WorksheetTable, filters: Any = None) -> dict[str, Any]:
        """Rows whose filtered columns contain the filter text, case-insensitively.

        Filter keys that are not columns are ignored, and a falsy filter
        value such as ``0`` or ``False`` matches every row.
        """
        results = table.records()
        if isinstance(filters, Mapping) and filters:
            active = {
                key: _filter_text(value)
                for key, value in filters.items()
                if key in table.headers
            }
            results = [
                row
                for row in results
                if all(needle in _filter_text(row[key]) for key, needle in active.items())
            ]
        return {"data": results, "total": len(results), "timestamp": utc_now_iso()}

    def create(self, table: WorksheetTable, data: Any, user: Identity) -> dict[str, Any]:
        if not isinstance(data, dict):
            raise RecordValidationError("Invalid data object for POST request")

        record = dict(data)
        if _is_blank(record.get(ID_COLUMN)):
            record[ID_COLUMN] = self._new_id(table, record)

        now = utc_now_iso()
        record[CREATED_BY] = user.email
        record[CREATED_DATE] = now
        record[LAST_UPDATED] = now
        record[LAST_UPDATED_BY] = user.email

        headers = table.headers
        for column in schema_for(table.name).required_fields(headers):
            if _is_blank(record.get(column)):
                raise RecordValidationError(f"Required field '{column}' is missing or empty")

        try:
            table.append_row([_cell_value(record.get(header)) for header in headers])
        except CellValueError as exc:
            raise RecordValidationError(str(exc)) from exc
        except _STORE_FAILURES as exc:
            raise StoreWriteError(f"Failed to create record: {exc}") from exc

        logger.info("Created %s record %s", table.name, record[ID_COLUMN])
        return {
            "success": True,
            "action": "created",
            "id": record[ID_COLUMN],
            "timestamp": utc_now_iso(),
        }

    def update(self, table: WorksheetTable, data: Any, user: Identity) -> dict[str, Any]:
        record_id = self._require_id(data, "PUT")
        index = self._locate(table, record_id)

        changes = dict(data)
        changes[LAST_UPDATED] = utc_now_iso()
        changes[LAST_UPDATED_BY] = user.email
        writable = {
            header: _cell_value(changes[header])
            for header in table.headers
            if header in changes and header not in IMMUTABLE_COLUMNS
        }

        try:
            table.update_cells(index, writable)
        except CellValueError as exc:
            raise RecordValidationError(str(exc)) from exc
        except _STORE_FAILURES as exc:
            raise StoreWriteError(f"Failed to update record: {exc}") from exc

        logger.info("Updated %s record %s (%d columns)", table.name, record_id, len(writable))
        return {"success": True, "action": "updated", "id": record_id, "timestamp": utc_now_iso()}

    def delete(self, table: WorksheetTable, data: Any, user: Identity) -> dict[str, Any]:
        record_id = self._require_id(data, "DELETE")
        index = self._locate(table, record_id)

        try:
            table.delete_row(index)
        except _STORE_FAILURES as exc:
            raise StoreWriteError(f"Failed to delete record: {exc}") from exc
        self._log_deletion(user, table.name, record_id)
        logger.info("Deleted %s record %s", table.name, record_id)

        if table.name.lower() == SYSTEMS:
            removed = self.delete_requirements_for_system(record_id, user)
            if removed:
                logger.info("Cascade removed %d requirements of %s", removed, record_id)

        return {"success": True, "action": "deleted", "id": record_id, "timestamp": utc_now_iso()}

    def delete_requirements_for_system(self, system_id: object, user: Identity) -> int:
        """Remove every requirement pointing at ``system_id``; returns the count."""
        requirements = self._store.get_table(REQUIREMENTS)
        if requirements is None:
            return 0
        headers = requirements.headers
        if SYSTEM_ID_COLUMN not in headers:
            return 0

        system_col = headers.index(SYSTEM_ID_COLUMN)
        id_col = headers.index(ID_COLUMN) if ID_COLUMN in headers else None
        target = _text(system_id)
        removed = 0
        # Reverse order keeps the remaining indexes valid while deleting.
        for index, row in reversed(list(enumerate(requirements.rows()))):
            if _text(row[system_col]) != target:
                continue
            try:
                requirements.delete_row(index)
            except _STORE_FAILURES as exc:
                raise StoreWriteError(f"Failed to delete record: {exc}") from exc
            requirement_id = row[id_col] if id_col is not None else ""
            self._log_deletion(user, REQUIREMENTS, requirement_id)
            removed += 1
        return removed

    def _new_id(self, table: WorksheetTable, record: Mapping[str, Any]) -> str:
        rule = schema_for(table.name).id_rule
        prefix = rule.prefix_for(record) if rule is not None else None
        if prefix is None:
            return generate_generic_id()
        return next_sequential_id(table.column_values(ID_COLUMN), prefix)

    def _require_id(self, data: Any, verb: str) -> str:
        if not isinstance(data, dict) or _is_blank(data.get(ID_COLUMN)):
            raise RecordValidationError(f"Missing ID field for {verb} request")
        return _text(data[ID_COLUMN])

    def _locate(self, table: WorksheetTable, record_id: str) -> int:
        if ID_COLUMN not in table.headers:
            raise RecordValidationError("Sheet does not have an ID column")
        index = table.index_of(ID_COLUMN, record_id)
        if index is None:
            raise RecordNotFoundError(f"Record with ID '{record_id}' not found")
        return index

    def _log_deletion(self, user: Identity, table_name: str, record_id: object) -> None:
        if self._audit_log is not None:
            best_effort(self._audit_log.deletion, user.email, table_name, record_id)
