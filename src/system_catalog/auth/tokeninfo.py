"""ID-token verification against a remote ``tokeninfo`` endpoint."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

import httpx

from ..audit.log import AuditLog, best_effort
from ..config import AuthSettings
from ..errors import AuthenticationError
from .identity import Identity

logger = logging.getLogger(__name__)

_LOGIN_ACTION = "login"


def _is_verified(value: Any) -> bool:
    return value is True or (isinstance(value, str) and value.lower() == "true")


class TokenInfoAuthenticator:
    """Verifies Google ID tokens by asking the ``tokeninfo`` endpoint.

    The endpoint performs signature checks; this class enforces audience,
    expiry, email verification and the optional allow-list on the returned
    claims. Every outcome is written to the auth log when enabled.
    """

    def __init__(
        self,
        settings: AuthSettings,
        audit_log: AuditLog | None = None,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings
        self._audit_log = audit_log
        self._http_client = http_client
        self._clock = clock

    async def authenticate(self, token: object) -> Identity:
        claims: dict[str, Any] = {}
        try:
            if not token or not isinstance(token, str):
                raise AuthenticationError("Missing or invalid ID token", "missing_token")
            claims = await self._fetch_claims(token)
            identity = self._validate_claims(claims)
        except AuthenticationError as exc:
            logger.warning("Authentication failed (%s): %s", exc.code, exc.message)
            email = claims.get("email") if isinstance(claims.get("email"), str) else None
            self._record(email, "failed", exc.message)
            raise

        self._record(identity.email, "success")
        return identity

    async def _fetch_claims(self, token: str) -> dict[str, Any]:
        try:
            if self._http_client is not None:
                response = await self._request(self._http_client, token)
            else:
                async with httpx.AsyncClient() as client:
                    response = await self._request(client, token)
        except httpx.HTTPError as exc:
            raise AuthenticationError(
                f"Token validation request failed: {exc}", "verifier_unavailable"
            ) from exc

        if response.status_code != 200:
            raise AuthenticationError(
                f"Token validation failed with status: {response.status_code}",
                "verifier_rejected",
            )
        try:
            claims = response.json()
        except ValueError as exc:
            raise AuthenticationError(
                "Token validation returned an unreadable response", "invalid_response"
            ) from exc
        if not isinstance(claims, dict):
            raise AuthenticationError(
                "Token validation returned an unreadable response", "invalid_response"
            )
        return claims

    async def _request(self, client: httpx.AsyncClient, token: str) -> httpx.Response:
        return await client.get(
            self._settings.tokeninfo_url,
            params={"id_token": token},
            headers={"Accept": "application/json"},
            timeout=self._settings.request_timeout_seconds,
        )

    def _validate_claims(self, claims: dict[str, Any]) -> Identity:
        if claims.get("error_description"):
            raise AuthenticationError(
                f"Invalid ID token: {claims['error_description']}", "invalid_token"
            )

        if claims.get("aud") != self._settings.client_id:
            raise AuthenticationError("Invalid token audience", "invalid_audience")

        try:
            expiry = int(claims["exp"])
        except (KeyError, TypeError, ValueError) as exc:
            raise AuthenticationError("Invalid exp claim format", "invalid_token") from exc
        if expiry < int(self._clock()):
            raise AuthenticationError("Token expired", "token_expired")

        if not _is_verified(claims.get("email_verified")):
            raise AuthenticationError("Email not verified", "email_unverified")

        email = claims.get("email")
        if not isinstance(email, str) or not email:
            raise AuthenticationError("Token carries no email", "missing_claim")

        allowed = self._settings.allowed_users
        if allowed and email.lower() not in allowed:
            raise AuthenticationError("Unauthorized user", "user_not_allowed")

        return Identity(
            email=email,
            name=claims.get("name"),
            picture=claims.get("picture"),
            subject=claims.get("sub"),
            audience=claims.get("aud"),
            expiry=expiry,
        )

    def _record(self, email: str | None, status: str, details: str = "") -> None:
        if self._audit_log is None or not self._settings.log_auth_events:
            return
        best_effort(self._audit_log.auth_event, email, _LOGIN_ACTION, status, details)
