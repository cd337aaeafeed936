"""Per-identity rate limiting and response security headers."""

from __future__ import annotations

import logging
import math
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..cache import TTLCache
from ..config import RateLimitSettings
from ..errors import RateLimitError
from ..utils.time import now_ms

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


class FixedWindowRateLimiter:
    """Fixed window request counter keyed by caller email.

    Each identity owns two cache entries: ``rl_{email}`` (requests seen in
    the current window) and ``rl_window_{email}`` (window start, epoch ms).
    The read-then-write sequence is not atomic.
    """

    def __init__(
        self,
        settings: RateLimitSettings,
        cache: TTLCache,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._settings = settings
        self._cache = cache
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return math.ceil(self._settings.window_ms / 1000)

    def check(self, email: str) -> None:
        """Count one request for ``email`` or raise ``RateLimitError``."""
        if not self._settings.enabled:
            return

        count_key = f"rl_{email}"
        window_key = f"rl_window_{email}"
        window_ms = self._settings.window_ms
        now = self._clock()

        try:
            count = int(self._cache.get(count_key) or "0")
            window_start = int(self._cache.get(window_key) or "0")

            if now - window_start > window_ms:
                self._cache.put(count_key, "1", self.ttl_seconds)
                self._cache.put(window_key, str(now), self.ttl_seconds)
                return

            if count >= self._settings.max_requests:
                retry_after = math.ceil((window_ms - (now - window_start)) / 1000)
                raise RateLimitError(
                    f"Rate limit exceeded. Try again in {retry_after} seconds.",
                    retry_after=retry_after,
                )

            self._cache.put(count_key, str(count + 1), self.ttl_seconds)
        except RateLimitError:
            raise
        except Exception as exc:
            if self._settings.fail_open:
                logger.warning("Rate limit cache unavailable, allowing request: %s", exc)
                return
            logger.error("Rate limit cache unavailable, rejecting request: %s", exc)
            raise RateLimitError(
                "Rate limiting is temporarily unavailable",
                retry_after=self.ttl_seconds,
            ) from exc


def _sanitize_ip(value: str) -> str:
    """Strip control characters from an IP string to prevent log injection."""
    return "".join(c for c in value if 0x20 <= ord(c) < 0x7F)


def get_client_ip(request: Request, trust_forwarded_headers: bool = False) -> str:
    """Get client IP with optional trusted proxy header support."""
    if trust_forwarded_headers:
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return _sanitize_ip(forwarded_for.split(",")[0].strip())

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return _sanitize_ip(real_ip.strip())

    if request.client:
        return request.client.host

    return "unknown"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds the fixed browser hardening headers to every response."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers[name] = value
        return response
