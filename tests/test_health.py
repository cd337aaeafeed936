from __future__ import annotations

from unittest.mock import MagicMock

from system_catalog.config import ApiSettings, Settings
from system_catalog.store.workbook import WorkbookStore
from system_catalog.transport.health import HealthReporter


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def test_degraded_until_required_tables_exist(settings: Settings, store: WorkbookStore) -> None:
    reporter = HealthReporter(store, settings)
    store.get_or_create_table("systems", ["ID", "Name"])

    snapshot = reporter.snapshot()

    assert snapshot["status"] == "degraded"
    assert snapshot["database"] == {
        "connected": True,
        "sheets": ["systems"],
        "missingSheets": ["documents", "requirements"],
    }


def test_healthy_when_all_required_tables_exist(
    settings: Settings, store: WorkbookStore
) -> None:
    for name in ("systems", "documents", "requirements"):
        store.get_or_create_table(name, ["ID"])

    snapshot = HealthReporter(store, settings).snapshot()

    assert snapshot["status"] == "healthy"
    assert snapshot["database"]["missingSheets"] == []
    assert snapshot["security"] == {
        "authRequired": True,
        "rateLimiting": True,
        "allowedOrigins": 0,
    }
    assert snapshot["performance"]["maxPayloadSize"] == settings.api.max_payload_bytes


def test_unhealthy_when_store_cannot_be_read(settings: Settings) -> None:
    broken = MagicMock(spec=WorkbookStore)
    broken.list_tables.side_effect = OSError("workbook unreadable")

    snapshot = HealthReporter(broken, settings).snapshot()

    assert snapshot["status"] == "unhealthy"
    assert snapshot["error"] == "workbook unreadable"
    assert "database" not in snapshot


def test_uptime_counts_from_reporter_start(settings: Settings, store: WorkbookStore) -> None:
    clock = FakeClock()
    reporter = HealthReporter(store, settings, clock=clock)
    clock.now += 42.7

    assert reporter.snapshot()["uptime"] == 42


def test_info_document() -> None:
    settings = Settings(api=ApiSettings(version="2.1", documentation_url="https://docs.example"))
    info = HealthReporter(WorkbookStore(), settings).info()

    assert info["status"] == "ready"
    assert info["message"] == "System Catalog API is running"
    assert info["version"] == "2.1"
    assert info["documentation"] == "https://docs.example"
    assert info["endpoints"]["health"] == "GET /?action=health"


def test_info_omits_documentation_when_unset(settings: Settings, store: WorkbookStore) -> None:
    assert "documentation" not in HealthReporter(store, settings).info()
