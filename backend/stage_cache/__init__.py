from .service import DEFAULT_TTL_SECONDS, StageCache, fingerprint_payload
from .store import DEFAULT_SWEEP_INTERVAL_SECONDS, CacheEntry, CacheStore, InMemoryCacheStore
from .time_utils import Clock, utc_now

__all__ = [
    "DEFAULT_SWEEP_INTERVAL_SECONDS",
    "DEFAULT_TTL_SECONDS",
    "CacheEntry",
    "CacheStore",
    "Clock",
    "InMemoryCacheStore",
    "StageCache",
    "fingerprint_payload",
    "utc_now",
]
