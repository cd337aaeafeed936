"""The JSON request pipeline behind ``POST /``."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any

from ..audit.log import AuditLog, best_effort
from ..auth.identity import Identity
from ..auth.tokeninfo import TokenInfoAuthenticator
from ..catalog.operations import CatalogOperations
from ..catalog.summary import build_summary
from ..config import Settings
from ..errors import (
    CatalogError,
    InvalidJSONError,
    MissingFieldError,
    PayloadTooLargeError,
    RateLimitError,
    UnknownTableError,
)
from ..middleware.security import FixedWindowRateLimiter
from ..store.workbook import WorkbookStore
from ..utils.sanitize import sanitize_input
from ..utils.time import now_ms, utc_now_iso
from .health import HealthReporter

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "InternalError"


@dataclass
class HandlerOutcome:
    envelope: dict[str, Any]
    identity: Identity | None = None


def _is_health_request(payload: dict[str, Any]) -> bool:
    return payload.get("action") == "health" or payload.get("method") == "HEALTH"


class RequestHandler:
    """Parses, authenticates, rate-limits, sanitizes and dispatches one request.

    Every failure is turned into an error envelope; nothing propagates to
    the transport.
    """

    def __init__(
        self,
        settings: Settings,
        store: WorkbookStore,
        authenticator: TokenInfoAuthenticator,
        rate_limiter: FixedWindowRateLimiter,
        audit_log: AuditLog,
        health: HealthReporter,
        operations: CatalogOperations | None = None,
    ) -> None:
        self._settings = settings
        self._store = store
        self._authenticator = authenticator
        self._rate_limiter = rate_limiter
        self._audit_log = audit_log
        self._health = health
        self._operations = operations or CatalogOperations(store, audit_log)
        self._allowed_tables = frozenset(settings.store.resolved_allowed_tables())

    async def handle(self, body: bytes) -> dict[str, Any]:
        return (await self.process(body)).envelope

    async def process(self, body: bytes) -> HandlerOutcome:
        started = now_ms()
        identity: Identity | None = None
        action = "error"

        try:
            payload = self._parse(body)
            if _is_health_request(payload):
                return HandlerOutcome(self._health.snapshot())

            identity = await self._authenticator.authenticate(payload.get("idToken"))
            await asyncio.to_thread(self._rate_limiter.check, identity.email)

            if payload.get("action") == "summary":
                action = "SUMMARY"
                result = await asyncio.to_thread(build_summary, self._store)
            else:
                method, sheet = self._require_target(payload)
                action = f"{method}_{sheet}"
                data = sanitize_input(payload.get("data"))
                if sheet not in self._allowed_tables:
                    raise UnknownTableError(f"Invalid sheet name: {sheet}")
                result = await asyncio.to_thread(
                    self._operations.execute, method, sheet, data, identity
                )
        except CatalogError as exc:
            return await self._failure(exc, exc.error_type, exc.message, identity, action, started)
        except Exception as exc:
            logger.exception("Unexpected error handling %s", action)
            return await self._failure(
                exc, INTERNAL_ERROR, "Internal server error", identity, action, started
            )

        elapsed = now_ms() - started
        if self._settings.api.log_requests:
            await asyncio.to_thread(
                best_effort, self._audit_log.access, identity.email, action, "success", elapsed
            )
        return HandlerOutcome(
            {
                "status": "success",
                "data": result,
                "timestamp": utc_now_iso(),
                "processingTime": elapsed,
            },
            identity,
        )

    def _parse(self, body: bytes) -> dict[str, Any]:
        if len(body) > self._settings.api.max_payload_bytes:
            raise PayloadTooLargeError("Request payload too large")
        if not body or not body.strip():
            raise MissingFieldError("No request body provided")
        try:
            payload = json.loads(body)
        except (ValueError, UnicodeDecodeError) as exc:
            raise InvalidJSONError("Invalid JSON in request body") from exc
        if not isinstance(payload, dict):
            raise InvalidJSONError("Request body must be a JSON object")
        return payload

    def _require_target(self, payload: dict[str, Any]) -> tuple[str, str]:
        method = payload.get("method")
        sheet = payload.get("sheet")
        if not method:
            raise MissingFieldError("Missing 'method' field")
        if not sheet:
            raise MissingFieldError("Missing 'sheet' field")
        if not isinstance(sheet, str):
            raise UnknownTableError(f"Invalid sheet name: {sheet}")
        return str(method), sheet

    async def _failure(
        self,
        exc: Exception,
        error_type: str,
        message: str,
        identity: Identity | None,
        action: str,
        started: int,
    ) -> HandlerOutcome:
        elapsed = now_ms() - started
        email = identity.email if identity else "unknown"
        if self._settings.api.log_errors:
            logger.warning("API error [%s] %s: %s", email, error_type, message)
            await asyncio.to_thread(
                best_effort, self._audit_log.access, email, action, message, elapsed
            )

        envelope: dict[str, Any] = {
            "status": "error",
            "message": message,
            "timestamp": utc_now_iso(),
            "errorType": error_type,
        }
        if isinstance(exc, RateLimitError):
            envelope["retryAfter"] = exc.retry_after
        return HandlerOutcome(envelope, identity)
