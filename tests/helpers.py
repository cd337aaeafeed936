"""Shared builders for tokeninfo responses and request envelopes."""

from __future__ import annotations

import json
import time
from typing import Any

import httpx

CLIENT_ID = "client-123.apps.googleusercontent.com"
ALICE = "alice@example.com"
VALID_TOKEN = "valid-token"


def token_claims(**overrides: Any) -> dict[str, Any]:
    claims: dict[str, Any] = {
        "aud": CLIENT_ID,
        "exp": str(int(time.time()) + 3600),
        "email": ALICE,
        "email_verified": "true",
        "name": "Alice Example",
        "picture": "https://example.com/alice.png",
        "sub": "1234567890",
    }
    claims.update(overrides)
    return claims


def tokeninfo_client(
    claims_by_token: dict[str, dict[str, Any]],
    status_code: int = 200,
) -> httpx.AsyncClient:
    """AsyncClient whose transport answers like the tokeninfo endpoint."""

    def handler(request: httpx.Request) -> httpx.Response:
        token = request.url.params.get("id_token")
        claims = claims_by_token.get(token)
        if claims is None:
            return httpx.Response(400, json={"error_description": "Invalid Value"})
        return httpx.Response(status_code, json=claims)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def envelope(method: str | None = None, sheet: str | None = None, **extra: Any) -> bytes:
    body: dict[str, Any] = {"idToken": VALID_TOKEN}
    if method is not None:
        body["method"] = method
    if sheet is not None:
        body["sheet"] = sheet
    body.update(extra)
    return json.dumps(body).encode("utf-8")
