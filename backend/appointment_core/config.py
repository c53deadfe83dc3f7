from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from stage_cache import DEFAULT_SWEEP_INTERVAL_SECONDS, DEFAULT_TTL_SECONDS

DEFAULT_TIMEZONE = "Asia/Kolkata"
DEFAULT_MAX_IMAGE_BYTES = 10 * 1024 * 1024


def _float_env(env: Mapping[str, str], key: str, default: float) -> float:
    raw = (env.get(key) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _int_env(env: Mapping[str, str], key: str, default: int) -> int:
    raw = (env.get(key) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class PipelineSettings:
    timezone: str = DEFAULT_TIMEZONE
    cache_ttl_seconds: float = DEFAULT_TTL_SECONDS
    cache_sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS
    extractor_timeout_seconds: float = 30.0
    temperature: float = 0.1
    max_output_tokens: int = 500
    max_image_bytes: int = DEFAULT_MAX_IMAGE_BYTES

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> PipelineSettings:
        env = os.environ if environ is None else environ
        return cls(
            timezone=(env.get("APPOINTMENT_TIMEZONE") or DEFAULT_TIMEZONE).strip() or DEFAULT_TIMEZONE,
            cache_ttl_seconds=max(0.0, _float_env(env, "APPOINTMENT_CACHE_TTL_SECONDS", DEFAULT_TTL_SECONDS)),
            cache_sweep_interval_seconds=max(
                0.0, _float_env(env, "APPOINTMENT_CACHE_SWEEP_SECONDS", DEFAULT_SWEEP_INTERVAL_SECONDS)
            ),
            extractor_timeout_seconds=max(1.0, _float_env(env, "APPOINTMENT_EXTRACTOR_TIMEOUT_SECONDS", 30.0)),
            temperature=_float_env(env, "APPOINTMENT_EXTRACTOR_TEMPERATURE", 0.1),
            max_output_tokens=max(1, _int_env(env, "APPOINTMENT_EXTRACTOR_MAX_TOKENS", 500)),
            max_image_bytes=max(1, _int_env(env, "APPOINTMENT_MAX_IMAGE_BYTES", DEFAULT_MAX_IMAGE_BYTES)),
        )
