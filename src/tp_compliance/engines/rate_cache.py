"""Per-engine TTL cache for exchange rates."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

V = TypeVar("V")


@dataclass
class _Entry(Generic[V]):
    value: V
    expires_at: float


class RateCache(Generic[V]):
    """Map with an expiry timestamp per key.

    One instance belongs to one engine. Writes for the same key are
    last-write-wins.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, _Entry[V]] = {}

    @staticmethod
    def key(base: str, quote: str) -> str:
        return f"{base.upper()}_{quote.upper()}"

    def get(self, key: str) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: V) -> None:
        self._entries[key] = _Entry(value=value, expires_at=self._clock() + self.ttl_seconds)

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> dict[str, object]:
        return {"size": len(self._entries), "keys": list(self._entries.keys()), "ttlSeconds": self.ttl_seconds}

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["RateCache"]
