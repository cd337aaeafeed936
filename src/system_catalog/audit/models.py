"""Rows written to the append-only log tables."""

from __future__ import annotations

from dataclasses import astuple, dataclass

ACCESS_LOG_TABLE = "access_log"
DELETION_LOG_TABLE = "deletion_log"
AUTH_LOG_TABLE = "auth_log"

ACCESS_LOG_HEADERS = ("Timestamp", "Email", "Action", "Status", "Processing Time (ms)")
DELETION_LOG_HEADERS = ("Timestamp", "User Email", "Sheet Name", "Record ID")
AUTH_LOG_HEADERS = ("Timestamp", "User Email", "Action", "Status", "Details")


@dataclass
class AccessLogEntry:
    timestamp: str
    email: str
    action: str
    status: str
    processing_time_ms: int

    def as_row(self) -> tuple[object, ...]:
        return astuple(self)


@dataclass
class DeletionLogEntry:
    timestamp: str
    user_email: str
    sheet_name: str
    record_id: str

    def as_row(self) -> tuple[object, ...]:
        return astuple(self)


@dataclass
class AuthLogEntry:
    timestamp: str
    user_email: str
    action: str
    status: str
    details: str = ""

    def as_row(self) -> tuple[object, ...]:
        return astuple(self)
