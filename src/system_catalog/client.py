"""Async Python client for the System Catalog API."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)

WRITE_METHODS = frozenset({"POST", "PUT", "DELETE"})


class CatalogClientError(Exception):
    """The API answered with an error envelope or could not be reached."""

    def __init__(self, message: str, error_type: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.error_type = error_type


@dataclass
class _CachedResult:
    records: list[dict[str, Any]]
    stored_at: float


class CatalogClient:
    """Client mirroring the browser dashboard's API service.

    ``token_provider`` returns the caller's current ID token. GET results are
    cached per table and filter set for ``cache_ttl`` seconds; any write to a
    table drops that table's cached results. Transport failures are retried
    with a linearly growing delay.
    """

    def __init__(
        self,
        base_url: str,
        token_provider: Callable[[], str | None],
        *,
        retry_attempts: int = 3,
        retry_delay: float = 1.0,
        cache_enabled: bool = True,
        cache_ttl: float = 300.0,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._base_url = base_url
        self._token_provider = token_provider
        self._retry_attempts = retry_attempts
        self._retry_delay = retry_delay
        self._cache_enabled = cache_enabled
        self._cache_ttl = cache_ttl
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._sleep = sleep
        self._clock = clock
        self._cache: dict[str, _CachedResult] = {}

    async def __aenter__(self) -> "CatalogClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def request(self, method: str, sheet: str, data: Any = None) -> dict[str, Any]:
        """Send one envelope and return the success envelope."""
        token = self._token_provider()
        if not token:
            raise CatalogClientError("Not authenticated")

        verb = method.upper()
        body: dict[str, Any] = {"method": verb, "sheet": sheet, "idToken": token}
        if data:
            body["data"] = data

        envelope = await self._post(body)
        if verb in WRITE_METHODS:
            self.clear_cache(sheet)
        return envelope

    async def health_check(self) -> dict[str, Any]:
        response = await self._http.get(self._base_url, params={"action": "health"})
        response.raise_for_status()
        return response.json()

    async def get_records(
        self, sheet: str, filters: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        key = f"{sheet}_{json.dumps(filters or {}, sort_keys=True)}"
        if self._cache_enabled:
            cached = self._cache.get(key)
            if cached is not None and self._clock() - cached.stored_at < self._cache_ttl:
                logger.debug("Returning cached %s", sheet)
                return cached.records

        envelope = await self.request("GET", sheet, filters)
        payload = envelope.get("data")
        records = payload.get("data", []) if isinstance(payload, dict) else []

        if self._cache_enabled:
            self._cache[key] = _CachedResult(records=records, stored_at=self._clock())
        return records

    def clear_cache(self, sheet: str | None = None) -> None:
        if sheet is None:
            self._cache.clear()
            return
        for key in [key for key in self._cache if key.startswith(f"{sheet}_")]:
            del self._cache[key]

    def cache_stats(self) -> dict[str, Any]:
        return {"size": len(self._cache), "keys": list(self._cache)}

    # Systems

    async def get_systems(self, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        return await self.get_records("systems", filters)

    async def get_system(self, system_id: str) -> dict[str, Any] | None:
        return await self._get_one("systems", system_id)

    async def create_system(self, system: dict[str, Any]) -> dict[str, Any]:
        if not system.get("Name"):
            raise CatalogClientError("System name is required")
        return await self._write("POST", "systems", system)

    async def update_system(self, system_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        if not system_id:
            raise CatalogClientError("System ID is required")
        return await self._write("PUT", "systems", {"ID": system_id, **changes})

    async def delete_system(self, system_id: str) -> dict[str, Any]:
        if not system_id:
            raise CatalogClientError("System ID is required")
        # Requirements of the system are removed server-side as well.
        result = await self._write("DELETE", "systems", {"ID": system_id})
        self.clear_cache("requirements")
        return result

    # Requirements

    async def get_requirements(
        self, filters: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        return await self.get_records("requirements", filters)

    async def get_requirement(self, requirement_id: str) -> dict[str, Any] | None:
        return await self._get_one("requirements", requirement_id)

    async def get_requirements_for_system(self, system_id: str) -> list[dict[str, Any]]:
        return await self.get_requirements({"System ID": system_id})

    async def create_requirement(self, requirement: dict[str, Any]) -> dict[str, Any]:
        if not requirement.get("Title"):
            raise CatalogClientError("Requirement title is required")
        return await self._write("POST", "requirements", requirement)

    async def update_requirement(
        self, requirement_id: str, changes: dict[str, Any]
    ) -> dict[str, Any]:
        if not requirement_id:
            raise CatalogClientError("Requirement ID is required")
        return await self._write("PUT", "requirements", {"ID": requirement_id, **changes})

    async def delete_requirement(self, requirement_id: str) -> dict[str, Any]:
        if not requirement_id:
            raise CatalogClientError("Requirement ID is required")
        return await self._write("DELETE", "requirements", {"ID": requirement_id})

    async def summary(self) -> dict[str, Any]:
        token = self._token_provider()
        if not token:
            raise CatalogClientError("Not authenticated")
        envelope = await self._post({"action": "summary", "idToken": token})
        return envelope.get("data", {})

    async def _get_one(self, sheet: str, record_id: str) -> dict[str, Any] | None:
        # The server filters by substring, so confirm the exact ID.
        for record in await self.get_records(sheet, {"ID": record_id}):
            if str(record.get("ID")) == str(record_id):
                return record
        return None

    async def _write(self, method: str, sheet: str, data: dict[str, Any]) -> dict[str, Any]:
        envelope = await self.request(method, sheet, data)
        return envelope.get("data", {})

    async def _post(self, body: dict[str, Any]) -> dict[str, Any]:
        attempt = 0
        while True:
            try:
                response = await self._http.post(self._base_url, content=json.dumps(body))
                response.raise_for_status()
                envelope = response.json()
                break
            except (httpx.HTTPError, ValueError) as exc:
                if attempt >= self._retry_attempts:
                    raise CatalogClientError(f"Request failed: {exc}") from exc
                attempt += 1
                logger.warning(
                    "Request failed, retrying... (%d/%d): %s",
                    attempt,
                    self._retry_attempts,
                    exc,
                )
                await self._sleep(self._retry_delay * attempt)

        if not isinstance(envelope, dict):
            raise CatalogClientError("Unexpected response from API")
        if envelope.get("status") == "error":
            raise CatalogClientError(
                envelope.get("message") or "Unknown API error",
                envelope.get("errorType"),
            )
        return envelope
