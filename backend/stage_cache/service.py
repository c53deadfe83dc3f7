from __future__ import annotations

import hashlib
import logging
from typing import Any

from .store import CacheStore

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 600


def fingerprint_payload(payload: str | bytes) -> str:
    encoded = payload.encode("utf-8") if isinstance(payload, str) else bytes(payload)
    return hashlib.sha256(encoded).hexdigest()


class StageCache:
    """Cross-request cache of stage results keyed by ``(fingerprint, stage)``.

    Entries are written once and read until they expire; there is no update or
    invalidation path. Any failure of the backing store reads as a miss and
    writes become no-ops, so an unavailable store never breaks a request.
    """

    def __init__(self, store: CacheStore, *, default_ttl_seconds: float = DEFAULT_TTL_SECONDS) -> None:
        self.store = store
        self.default_ttl_seconds = default_ttl_seconds

    def get(self, fingerprint: str, stage: str) -> Any | None:
        try:
            value = self.store.get((fingerprint, stage))
        except Exception as exc:
            logger.warning("stage cache read failed (%s); treating as miss: %s", stage, exc)
            return None
        logger.debug("stage cache %s for %s:%s", "hit" if value is not None else "miss", fingerprint[:12], stage)
        return value

    def set(self, fingerprint: str, stage: str, value: Any, ttl_seconds: float | None = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        try:
            self.store.set((fingerprint, stage), value, ttl)
        except Exception as exc:
            logger.warning("stage cache write failed (%s); continuing uncached: %s", stage, exc)
