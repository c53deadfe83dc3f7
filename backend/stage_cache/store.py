from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Hashable, Protocol

from .time_utils import Clock, utc_now

DEFAULT_SWEEP_INTERVAL_SECONDS = 60.0


class CacheStore(Protocol):
    def get(self, key: Hashable) -> Any | None: ...

    def set(self, key: Hashable, value: Any, ttl_seconds: float) -> None: ...


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    expires_at: datetime


class InMemoryCacheStore:
    """Process-local key/value store with write-time expiry.

    Expiry is checked lazily on read. A write arriving at least
    ``sweep_interval_seconds`` after the last sweep first drops every expired
    entry, so keys that are never read again do not pile up. An entry whose
    ``expires_at`` equals the current time is expired.
    """

    def __init__(
        self,
        clock: Clock = utc_now,
        *,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
    ) -> None:
        self._clock = clock
        self._sweep_interval = timedelta(seconds=max(0.0, float(sweep_interval_seconds)))
        self._last_sweep = clock()
        # Values for a key are deterministic, so racing writers need no lock.
        self._entries: dict[Hashable, CacheEntry] = {}

    def get(self, key: Hashable) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            self._entries.pop(key, None)
            return None
        return entry.value

    def set(self, key: Hashable, value: Any, ttl_seconds: float) -> None:
        now = self._clock()
        if now - self._last_sweep >= self._sweep_interval:
            self.sweep()
        expires_at = now + timedelta(seconds=max(0.0, float(ttl_seconds)))
        self._entries[key] = CacheEntry(value=value, expires_at=expires_at)

    def entry(self, key: Hashable) -> CacheEntry | None:
        return self._entries.get(key)

    def sweep(self) -> int:
        now = self._clock()
        self._last_sweep = now
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            self._entries.pop(key, None)
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
