"""Input sanitization applied to every request payload."""

from __future__ import annotations

import re

from ..errors import RecordValidationError

_MAX_SANITIZE_DEPTH = 32

_HTML_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#x27;"),
    ("/", "&#x2F;"),
)

_DANGEROUS_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"on\w+\s*=",
        r"javascript:",
        r"vbscript:",
        r"expression\(",
        r"<script.*?>.*?</script>",
        r"<style.*?>.*?</style>",
        r"<iframe.*?>.*?</iframe>",
    )
)


def sanitize_string(value: str) -> str:
    """Trim, HTML-escape, then strip script-like fragments."""
    if not value:
        return ""
    cleaned = value.strip()
    for raw, escaped in _HTML_ESCAPES:
        cleaned = cleaned.replace(raw, escaped)
    for pattern in _DANGEROUS_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    return cleaned


def sanitize_input(value: object, *, depth: int = 0) -> object:
    """Recursively sanitize string leaves of dicts and lists.

    Keys are kept as-is; numbers, booleans and ``None`` pass through.
    """
    if depth >= _MAX_SANITIZE_DEPTH:
        raise RecordValidationError("Request data is nested too deeply")
    if isinstance(value, dict):
        return {key: sanitize_input(item, depth=depth + 1) for key, item in value.items()}
    if isinstance(value, list):
        return [sanitize_input(item, depth=depth + 1) for item in value]
    if isinstance(value, str):
        return sanitize_string(value)
    return value
