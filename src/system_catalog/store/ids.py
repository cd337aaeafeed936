"""Record identifier generation."""

from __future__ import annotations

import logging
import re
import secrets
from typing import Iterable

from system_catalog.utils.time import now_ms

logger = logging.getLogger(__name__)

_BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
_RANDOM_SUFFIX_LENGTH = 5
SEQUENCE_WIDTH = 4


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("base36 conversion requires a non-negative integer")
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_generic_id(timestamp_ms: int | None = None) -> str:
    """Base-36 millisecond timestamp plus five random base-36 characters, upper-cased."""
    stamp = to_base36(now_ms() if timestamp_ms is None else timestamp_ms)
    suffix = "".join(secrets.choice(_BASE36_ALPHABET) for _ in range(_RANDOM_SUFFIX_LENGTH))
    return f"{stamp}_{suffix}".upper()


def next_sequential_id(existing_ids: Iterable[object], prefix: str) -> str:
    """Return ``{prefix}-NNNN`` one past the highest matching ID.

    Only IDs of exactly ``{prefix}-`` followed by four digits take part, so
    ``REQ-0007`` never counts towards ``NREQ``. Falls back to a generic ID
    if the existing IDs cannot be read.
    """
    try:
        pattern = re.compile(rf"{re.escape(prefix)}-([0-9]{{{SEQUENCE_WIDTH}}})")
        highest = 0
        for value in existing_ids:
            if not isinstance(value, str):
                continue
            match = pattern.fullmatch(value)
            if match:
                highest = max(highest, int(match.group(1)))
        return f"{prefix}-{highest + 1:0{SEQUENCE_WIDTH}d}"
    except Exception:
        logger.exception("Error generating sequential ID for prefix %s", prefix)
        return generate_generic_id()
