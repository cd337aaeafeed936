"""Authenticated caller identity."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Identity:
    """Claims of a verified ID token.

    ``expiry`` is the token's ``exp`` claim in epoch seconds.
    """

    email: str
    name: str | None = None
    picture: str | None = None
    subject: str | None = None
    audience: str | None = None
    expiry: int | None = None
