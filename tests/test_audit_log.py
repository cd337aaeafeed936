from __future__ import annotations

from unittest.mock import MagicMock, patch

from system_catalog.audit.log import AuditLog, best_effort
from system_catalog.audit.models import ACCESS_LOG_HEADERS, AUTH_LOG_HEADERS, DELETION_LOG_HEADERS
from system_catalog.store.workbook import WorkbookStore


def test_access_entries_append_rows(store: WorkbookStore, audit_log: AuditLog) -> None:
    audit_log.access("alice@example.com", "GET_systems", "success", 12)
    audit_log.access(None, "error", "Invalid JSON in request body", 3)

    table = store.get_table("access_log")
    assert table.headers == list(ACCESS_LOG_HEADERS)
    rows = table.records()
    assert [row["Email"] for row in rows] == ["alice@example.com", "unknown"]
    assert rows[0]["Action"] == "GET_systems"
    assert rows[0]["Processing Time (ms)"] == 12
    assert rows[1]["Status"] == "Invalid JSON in request body"


def test_deletion_and_auth_tables_have_their_own_headers(
    store: WorkbookStore, audit_log: AuditLog
) -> None:
    audit_log.deletion("alice@example.com", "systems", "INT-0001")
    audit_log.auth_event("alice@example.com", "login", "failed", "Token expired")

    assert store.get_table("deletion_log").headers == list(DELETION_LOG_HEADERS)
    assert store.get_table("auth_log").headers == list(AUTH_LOG_HEADERS)
    assert store.get_table("auth_log").records()[0]["Details"] == "Token expired"


def test_cleared_header_row_is_restored_before_append(
    store: WorkbookStore, audit_log: AuditLog
) -> None:
    table = store.get_or_create_table("deletion_log", DELETION_LOG_HEADERS)
    for column in range(1, len(DELETION_LOG_HEADERS) + 1):
        table._sheet.cell(row=1, column=column, value=None)

    audit_log.deletion("alice@example.com", "systems", "INT-0001")

    assert table.headers == list(DELETION_LOG_HEADERS)
    assert table.records()[-1]["Record ID"] == "INT-0001"


def test_best_effort_swallows_and_logs_failures() -> None:
    failing = MagicMock(side_effect=OSError("disk full"))
    with patch("system_catalog.audit.log.logger") as mock_logger:
        assert best_effort(failing, "a", key="b") is None

    failing.assert_called_once_with("a", key="b")
    mock_logger.warning.assert_called_once()


def test_best_effort_discards_result() -> None:
    assert best_effort(lambda: "value") is None
