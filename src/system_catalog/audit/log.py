"""Append-only audit trail kept in the workbook's log tables."""

from __future__ import annotations

import logging
from typing import Any, Callable, Sequence

from ..store.workbook import WorkbookStore
from ..utils.time import utc_now_iso
from .models import (
    ACCESS_LOG_HEADERS,
    ACCESS_LOG_TABLE,
    AUTH_LOG_HEADERS,
    AUTH_LOG_TABLE,
    DELETION_LOG_HEADERS,
    DELETION_LOG_TABLE,
    AccessLogEntry,
    AuthLogEntry,
    DeletionLogEntry,
)

logger = logging.getLogger(__name__)


def best_effort(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
    """Call ``fn`` and discard its result; failures are logged, never raised."""
    try:
        fn(*args, **kwargs)
    except Exception as exc:
        logger.warning("Audit write failed in %s: %s", getattr(fn, "__name__", fn), exc)


class AuditLog:
    """Writes access, deletion and auth events as rows of dedicated tables.

    Methods raise on store failures; callers that must not be disturbed by
    logging wrap them with :func:`best_effort`.
    """

    def __init__(self, store: WorkbookStore) -> None:
        self._store = store

    def access(
        self,
        email: str | None,
        action: str,
        status: str,
        processing_time_ms: int,
    ) -> AccessLogEntry:
        entry = AccessLogEntry(
            timestamp=utc_now_iso(),
            email=email or "unknown",
            action=action,
            status=status,
            processing_time_ms=processing_time_ms,
        )
        self._append(ACCESS_LOG_TABLE, ACCESS_LOG_HEADERS, entry.as_row())
        return entry

    def deletion(self, email: str, sheet_name: str, record_id: object) -> DeletionLogEntry:
        entry = DeletionLogEntry(
            timestamp=utc_now_iso(),
            user_email=email,
            sheet_name=sheet_name,
            record_id=str(record_id),
        )
        self._append(DELETION_LOG_TABLE, DELETION_LOG_HEADERS, entry.as_row())
        return entry

    def auth_event(
        self,
        email: str | None,
        action: str,
        status: str,
        details: str = "",
    ) -> AuthLogEntry:
        entry = AuthLogEntry(
            timestamp=utc_now_iso(),
            user_email=email or "unknown",
            action=action,
            status=status,
            details=details,
        )
        logger.info(
            "Auth event user=%s action=%s status=%s", entry.user_email, action, status
        )
        self._append(AUTH_LOG_TABLE, AUTH_LOG_HEADERS, entry.as_row())
        return entry

    def _append(self, table_name: str, headers: Sequence[str], row: Sequence[object]) -> None:
        table = self._store.get_or_create_table(table_name, headers)
        # A log sheet whose header row was cleared gets it back before the append.
        table.ensure_headers(headers)
        table.append_row(row)
