"""Application context assembly."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache

import httpx

from system_catalog.audit.log import AuditLog
from system_catalog.auth.tokeninfo import TokenInfoAuthenticator
from system_catalog.cache import MemoryTTLCache, RedisTTLCache, TTLCache
from system_catalog.catalog.operations import CatalogOperations
from system_catalog.config import Settings, load_settings
from system_catalog.middleware.security import FixedWindowRateLimiter
from system_catalog.store.workbook import WorkbookStore
from system_catalog.transport.handler import RequestHandler
from system_catalog.transport.health import HealthReporter

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Application-wide dependency container.

    Built once at startup; every component receives its collaborators and
    settings from here rather than reading global configuration.
    """

    settings: Settings
    store: WorkbookStore
    cache: TTLCache
    audit_log: AuditLog
    authenticator: TokenInfoAuthenticator
    rate_limiter: FixedWindowRateLimiter
    operations: CatalogOperations
    health: HealthReporter
    handler: RequestHandler


def build_cache(settings: Settings) -> TTLCache:
    if settings.rate_limit.backend == "redis":
        logger.info("Using Redis rate-limit cache")
        return RedisTTLCache(url=settings.rate_limit.redis_url)
    return MemoryTTLCache()


def build_app_context(
    settings: Settings,
    store: WorkbookStore | None = None,
    cache: TTLCache | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> AppContext:
    """Wire every component from ``settings``.

    ``store``, ``cache`` and the token verifier's ``http_client`` may be
    supplied directly, otherwise they are built from configuration.
    """
    store = store or WorkbookStore(settings.store.workbook_path)
    cache = cache or build_cache(settings)
    audit_log = AuditLog(store)
    authenticator = TokenInfoAuthenticator(settings.auth, audit_log, http_client=http_client)
    rate_limiter = FixedWindowRateLimiter(settings.rate_limit, cache)
    operations = CatalogOperations(store, audit_log)
    health = HealthReporter(store, settings)
    handler = RequestHandler(
        settings=settings,
        store=store,
        authenticator=authenticator,
        rate_limiter=rate_limiter,
        audit_log=audit_log,
        health=health,
        operations=operations,
    )
    return AppContext(
        settings=settings,
        store=store,
        cache=cache,
        audit_log=audit_log,
        authenticator=authenticator,
        rate_limiter=rate_limiter,
        operations=operations,
        health=health,
        handler=handler,
    )


@lru_cache(maxsize=1)
def get_app_context() -> AppContext:
    """Get or create the process-wide application context."""
    return build_app_context(load_settings())
