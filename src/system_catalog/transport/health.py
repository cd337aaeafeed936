"""Liveness and readiness snapshots."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from ..config import Settings
from ..store.workbook import WorkbookStore
from ..utils.time import utc_now_iso

logger = logging.getLogger(__name__)


class HealthReporter:
    """Builds the health document without touching authentication or table data."""

    def __init__(
        self,
        store: WorkbookStore,
        settings: Settings,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._settings = settings
        self._clock = clock
        self._started = clock()

    @property
    def uptime_seconds(self) -> int:
        return int(self._clock() - self._started)

    def snapshot(self) -> dict[str, Any]:
        try:
            sheets = self._store.list_tables()
        except Exception as exc:
            logger.error("Health check failed: %s", exc)
            return {"status": "unhealthy", "timestamp": utc_now_iso(), "error": str(exc)}

        missing = [name for name in self._settings.store.required_tables if name not in sheets]
        return {
            "status": "healthy" if not missing else "degraded",
            "timestamp": utc_now_iso(),
            "version": self._settings.api.version,
            "uptime": self.uptime_seconds,
            "database": {
                "connected": True,
                "sheets": sheets,
                "missingSheets": missing,
            },
            "security": {
                "authRequired": True,
                "rateLimiting": self._settings.rate_limit.enabled,
                "allowedOrigins": len(self._settings.server.http_allowed_origins),
            },
            "performance": {
                "cacheEnabled": True,
                "maxPayloadSize": self._settings.api.max_payload_bytes,
            },
        }

    def info(self) -> dict[str, Any]:
        """Static readiness document served for plain GET requests."""
        document: dict[str, Any] = {
            "status": "ready",
            "message": "System Catalog API is running",
            "version": self._settings.api.version,
            "timestamp": utc_now_iso(),
            "endpoints": {
                "health": "GET /?action=health",
                "api": "POST / with JSON body",
            },
        }
        if self._settings.api.documentation_url:
            document["documentation"] = self._settings.api.documentation_url
        return document
