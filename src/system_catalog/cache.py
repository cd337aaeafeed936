"""TTL caches holding the rate-limit counters."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Protocol

import redis


class TTLCache(Protocol):
    def get(self, key: str) -> str | None: ...

    def put(self, key: str, value: str, ttl_seconds: int) -> None: ...


@dataclass
class _CacheEntry:
    value: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class MemoryTTLCache:
    """Process-local cache; entries vanish once their TTL elapses."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, _CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return None
            return entry.value

    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._lock:
            self._entries[key] = _CacheEntry(value=value, expires_at=self._clock() + ttl_seconds)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class RedisTTLCache:
    """Cache shared between workers through Redis ``SET ... EX``."""

    def __init__(self, url: str | None = None, client: redis.Redis | None = None) -> None:
        if client is None:
            if not url:
                raise ValueError("RedisTTLCache requires a url or a client")
            client = redis.from_url(url, decode_responses=True)
        self._client = client

    def get(self, key: str) -> str | None:
        value = self._client.get(key)
        if value is None:
            return None
        return value if isinstance(value, str) else value.decode("utf-8")

    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        self._client.set(key, value, ex=ttl_seconds)
