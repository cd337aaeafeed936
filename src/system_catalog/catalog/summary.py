"""Dashboard counts over the systems and requirements tables."""

from __future__ import annotations

from collections import Counter, defaultdict
from typing import Any, Iterable, Mapping

from ..store.schemas import REQUIREMENTS, SYSTEM_ID_COLUMN, SYSTEMS
from ..store.workbook import WorkbookStore
from ..utils.time import utc_now_iso

UNSPECIFIED = "unspecified"


def _key(record: Mapping[str, Any], column: str) -> str:
    value = record.get(column)
    text = "" if value is None else str(value).strip()
    return text or UNSPECIFIED


def _count(records: Iterable[Mapping[str, Any]], column: str) -> dict[str, int]:
    return dict(Counter(_key(record, column) for record in records))


def summarize_systems(records: list[dict[str, Any]]) -> dict[str, Any]:
    by_type_and_status: dict[str, Counter[str]] = defaultdict(Counter)
    for record in records:
        by_type_and_status[_key(record, "System Type")][_key(record, "Overall Status")] += 1
    return {
        "total": len(records),
        "byStatus": _count(records, "Overall Status"),
        "byType": _count(records, "System Type"),
        "byTypeAndStatus": {
            system_type: dict(counts) for system_type, counts in by_type_and_status.items()
        },
    }


def summarize_requirements(records: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "total": len(records),
        "byStatus": _count(records, "Status"),
        "byPriority": _count(records, "Priority"),
        "byType": _count(records, "Type"),
        "bySystem": _count(records, SYSTEM_ID_COLUMN),
    }


def build_summary(store: WorkbookStore) -> dict[str, Any]:
    """Read-only snapshot; missing tables count as empty."""
    systems = store.get_table(SYSTEMS)
    requirements = store.get_table(REQUIREMENTS)
    return {
        "systems": summarize_systems(systems.records() if systems else []),
        "requirements": summarize_requirements(requirements.records() if requirements else []),
        "timestamp": utc_now_iso(),
    }
