from __future__ import annotations

from typing import Any, Callable

import pytest
from helpers import ALICE, CLIENT_ID, VALID_TOKEN, token_claims, tokeninfo_client

from system_catalog.app import AppContext, build_app_context
from system_catalog.audit.log import AuditLog
from system_catalog.auth.identity import Identity
from system_catalog.cache import MemoryTTLCache
from system_catalog.config import AuthSettings, RateLimitSettings, Settings
from system_catalog.store.workbook import WorkbookStore


@pytest.fixture
def settings() -> Settings:
    return Settings(
        auth=AuthSettings(client_id=CLIENT_ID, allowed_users=(ALICE,)),
        rate_limit=RateLimitSettings(max_requests=30, window_ms=60_000),
    )


@pytest.fixture
def store() -> WorkbookStore:
    return WorkbookStore()


@pytest.fixture
def audit_log(store: WorkbookStore) -> AuditLog:
    return AuditLog(store)


@pytest.fixture
def alice() -> Identity:
    return Identity(email=ALICE, name="Alice Example")


@pytest.fixture
def make_context(settings: Settings, store: WorkbookStore) -> Callable[..., AppContext]:
    def factory(
        claims_by_token: dict[str, dict[str, Any]] | None = None,
        app_settings: Settings | None = None,
    ) -> AppContext:
        claims = {VALID_TOKEN: token_claims()} if claims_by_token is None else claims_by_token
        return build_app_context(
            app_settings or settings,
            store=store,
            cache=MemoryTTLCache(),
            http_client=tokeninfo_client(claims),
        )

    return factory


@pytest.fixture
def context(make_context: Callable[..., AppContext]) -> AppContext:
    return make_context()
