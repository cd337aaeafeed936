"""Error kinds surfaced through the response envelope's ``errorType``."""

from __future__ import annotations


class CatalogError(Exception):
    """Base class for every error the request pipeline converts into an envelope."""

    error_type = "CatalogError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class PayloadTooLargeError(CatalogError):
    error_type = "PayloadTooLargeError"


class InvalidJSONError(CatalogError):
    error_type = "InvalidJSONError"


class MissingFieldError(CatalogError):
    error_type = "MissingFieldError"


class AuthenticationError(CatalogError):
    """The ID token was missing or rejected.

    ``code`` is a short machine-readable reason such as ``token_expired``.
    """

    error_type = "AuthenticationError"

    def __init__(self, message: str, code: str = "invalid_token") -> None:
        super().__init__(message)
        self.code = code


class RateLimitError(CatalogError):
    """Raised when an identity exhausts its request window."""

    error_type = "RateLimitError"

    def __init__(self, message: str, retry_after: int) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class UnknownTableError(CatalogError):
    error_type = "UnknownTableError"


class RecordNotFoundError(CatalogError):
    error_type = "RecordNotFoundError"


class RecordValidationError(CatalogError):
    error_type = "ValidationError"


class StoreWriteError(CatalogError):
    error_type = "StoreWriteError"
