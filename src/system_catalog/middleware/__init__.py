"""Rate limiting, security header and audit middleware."""

from .audit import AuditMiddleware
from .security import FixedWindowRateLimiter, SecurityHeadersMiddleware

__all__ = ["AuditMiddleware", "FixedWindowRateLimiter", "SecurityHeadersMiddleware"]
