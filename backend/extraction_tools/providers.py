from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping

import httpx

_PROVIDER_ALIASES = {
    "gemini": "gemini",
    "google": "gemini",
    "openai": "openai",
    "anthropic": "anthropic",
    "claude": "anthropic",
    "openrouter": "openrouter",
}


@dataclass(frozen=True)
class ProviderConfig:
    provider: str
    base_url: str
    api_key: str
    model: str


def _env(environ: Mapping[str, str], key: str, default: str = "") -> str:
    return (environ.get(key) or default).strip()


def _anthropic_model_name(model: str) -> str:
    # OpenRouter-style names ("anthropic/claude-...") are not valid on the native API.
    if model.startswith("anthropic/"):
        return model.split("/", 1)[1]
    return model


def provider_candidates(
    environ: Mapping[str, str] | None = None,
    *,
    preference: str | None = None,
) -> list[ProviderConfig]:
    env = os.environ if environ is None else environ
    candidates: list[ProviderConfig] = []

    gemini_api_key = _env(env, "GEMINI_API_KEY") or _env(env, "GOOGLE_API_KEY")
    if gemini_api_key:
        candidates.append(
            ProviderConfig(
                provider="gemini",
                base_url=_env(env, "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta").rstrip("/"),
                api_key=gemini_api_key,
                model=_env(env, "GEMINI_MODEL", "gemini-2.5-flash"),
            )
        )

    openai_api_key = _env(env, "OPENAI_API_KEY")
    if openai_api_key:
        candidates.append(
            ProviderConfig(
                provider="openai",
                base_url=_env(env, "OPENAI_BASE_URL", "https://api.openai.com/v1").rstrip("/"),
                api_key=openai_api_key,
                model=_env(env, "OPENAI_MODEL", "gpt-4o-mini"),
            )
        )

    anthropic_api_key = _env(env, "ANTHROPIC_API_KEY")
    if anthropic_api_key:
        candidates.append(
            ProviderConfig(
                provider="anthropic",
                base_url=_env(env, "ANTHROPIC_BASE_URL", "https://api.anthropic.com/v1").rstrip("/"),
                api_key=anthropic_api_key,
                model=_anthropic_model_name(_env(env, "ANTHROPIC_MODEL", "claude-3-5-sonnet-latest")),
            )
        )

    openrouter_api_key = _env(env, "OPENROUTER_API_KEY")
    if openrouter_api_key:
        candidates.append(
            ProviderConfig(
                provider="openrouter",
                base_url=_env(env, "OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1").rstrip("/"),
                api_key=openrouter_api_key,
                model=_env(env, "OPENROUTER_MODEL", "openai/gpt-4o-mini"),
            )
        )

    wanted = (preference if preference is not None else _env(env, "APPOINTMENT_EXTRACTOR_PROVIDER", "auto")).lower()
    if wanted in {"", "auto"}:
        return candidates
    canonical = _PROVIDER_ALIASES.get(wanted)
    if not canonical:
        return candidates
    preferred = [candidate for candidate in candidates if candidate.provider == canonical]
    others = [candidate for candidate in candidates if candidate.provider != canonical]
    return preferred + others


def provider_error_message(response: httpx.Response) -> str:
    message = response.text.strip()
    try:
        payload: Any = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, list) and payload and isinstance(payload[0], dict):
        payload = payload[0]
    if isinstance(payload, dict):
        err = payload.get("error")
        if isinstance(err, dict):
            msg = err.get("message")
            if isinstance(msg, str) and msg.strip():
                return msg.strip()
        msg = payload.get("message")
        if isinstance(msg, str) and msg.strip():
            return msg.strip()
    return message or f"HTTP {response.status_code}"
