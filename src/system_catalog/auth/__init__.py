"""Caller authentication."""

from system_catalog.auth.identity import Identity
from system_catalog.auth.tokeninfo import TokenInfoAuthenticator

__all__ = ["Identity", "TokenInfoAuthenticator"]
