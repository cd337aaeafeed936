"""Request/response logging middleware."""

from __future__ import annotations

import logging
import re
import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from .security import get_client_ip

logger = logging.getLogger(__name__)

# Control character pattern for log injection prevention.
_CONTROL_CHAR_RE = re.compile(r"[\x00-\x08\x0a-\x1f\x7f]")


def _sanitize_log_value(value: str) -> str:
    """Replace control characters (newlines, tabs, etc.) to prevent log injection."""
    return _CONTROL_CHAR_RE.sub("_", value)


class AuditMiddleware(BaseHTTPMiddleware):
    """Logs one ``REQUEST_START`` and one ``REQUEST_END`` line per request.

    The caller's email is read from ``request.state.user_email``, which the
    API route sets once the token has been verified.
    """

    EXEMPT_PATHS = frozenset({"/health", "/ready"})

    def __init__(
        self,
        app: Callable,
        enabled: bool = True,
        trust_forwarded_headers: bool = False,
    ) -> None:
        super().__init__(app)
        self.enabled = enabled
        self._trust_forwarded_headers = trust_forwarded_headers

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self.enabled or request.url.path in self.EXEMPT_PATHS:
            return await call_next(request)

        request_id = _sanitize_log_value(request.headers.get("x-request-id", str(uuid.uuid4())))
        start_time = time.time()
        client_ip = get_client_ip(
            request,
            trust_forwarded_headers=self._trust_forwarded_headers,
        )
        safe_path = _sanitize_log_value(request.url.path)

        logger.info(
            "REQUEST_START request_id=%s method=%s path=%s client_ip=%s",
            request_id,
            request.method,
            safe_path,
            _sanitize_log_value(client_ip),
        )

        error_message: str | None = None
        status_code: int = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response

        except Exception as e:
            error_message = _sanitize_log_value(str(e))
            raise

        finally:
            duration_ms = int((time.time() - start_time) * 1000)
            user = _sanitize_log_value(getattr(request.state, "user_email", None) or "anonymous")

            if error_message:
                logger.error(
                    "REQUEST_END request_id=%s user=%s method=%s path=%s "
                    "status=%s duration_ms=%d error=%s",
                    request_id,
                    user,
                    request.method,
                    safe_path,
                    status_code,
                    duration_ms,
                    error_message,
                )
            else:
                logger.info(
                    "REQUEST_END request_id=%s user=%s method=%s path=%s "
                    "status=%s duration_ms=%d",
                    request_id,
                    user,
                    request.method,
                    safe_path,
                    status_code,
                    duration_ms,
                )
