from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from .providers import ProviderConfig, provider_error_message

logger = logging.getLogger(__name__)


class ExtractionServiceError(Exception):
    pass


@dataclass(frozen=True)
class MediaPart:
    data: bytes
    mime_type: str


@dataclass(frozen=True)
class ExtractionOptions:
    temperature: float = 0.1
    max_output_tokens: int = 500


@dataclass(frozen=True)
class ExtractionResponse:
    text: str
    provider: str = ""


class Extractor(Protocol):
    async def call(
        self,
        prompt: str,
        media: MediaPart | None = None,
        options: ExtractionOptions | None = None,
    ) -> ExtractionResponse: ...


def _coerce_gemini_text(response_json: dict[str, Any]) -> str:
    candidates = response_json.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return ""
    content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return ""
    texts = [item["text"] for item in parts if isinstance(item, dict) and isinstance(item.get("text"), str)]
    return "".join(texts).strip()


def _coerce_completion_text(response_json: dict[str, Any]) -> str:
    choices = response_json.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    message = choices[0].get("message", {})
    content = message.get("content")
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict):
                text_value = item.get("text")
                if isinstance(text_value, str):
                    parts.append(text_value)
        return "\n".join(parts).strip()
    return ""


def _coerce_anthropic_text(response_json: dict[str, Any]) -> str:
    content = response_json.get("content")
    if not isinstance(content, list):
        return ""
    parts: list[str] = []
    for item in content:
        if not isinstance(item, dict) or item.get("type") != "text":
            continue
        text_value = item.get("text")
        if isinstance(text_value, str) and text_value.strip():
            parts.append(text_value.strip())
    return "\n".join(parts).strip()


class ExtractionClient:
    """Sends one prompt (plus an optional image) to the first provider that answers.

    Providers are tried in order; a provider that errors or returns no text is
    skipped. When none produce text the call raises ``ExtractionServiceError``.
    """

    def __init__(
        self,
        providers: list[ProviderConfig],
        *,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.providers = providers
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def call(
        self,
        prompt: str,
        media: MediaPart | None = None,
        options: ExtractionOptions | None = None,
    ) -> ExtractionResponse:
        if not self.providers:
            raise ExtractionServiceError("No extraction provider is configured.")
        opts = options or ExtractionOptions()
        last_error = "no provider returned text"
        timeout = httpx.Timeout(self.timeout_seconds, connect=8.0)
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            for provider in self.providers:
                try:
                    if provider.provider == "gemini":
                        text = await self._gemini(client, provider, prompt, media, opts)
                    elif provider.provider == "anthropic":
                        text = await self._anthropic(client, provider, prompt, media, opts)
                    else:
                        text = await self._openai_compatible(client, provider, prompt, media, opts)
                except Exception as exc:
                    last_error = f"{provider.provider}: {exc}"
                    logger.warning("extraction provider call failed (%s): %s", provider.provider, exc)
                    continue
                if text:
                    logger.debug("extraction provider used (%s)", provider.provider)
                    return ExtractionResponse(text=text, provider=provider.provider)
                last_error = f"{provider.provider}: empty response"
                logger.warning("extraction provider empty response (%s)", provider.provider)
        raise ExtractionServiceError(f"AI processing failed: {last_error}")

    async def _post(
        self,
        client: httpx.AsyncClient,
        url: str,
        *,
        headers: dict[str, str],
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        response = await client.post(url, headers=headers, json=payload)
        if response.status_code >= 400:
            raise ExtractionServiceError(provider_error_message(response))
        try:
            body = response.json()
        except ValueError as exc:
            raise ExtractionServiceError("Provider returned invalid JSON.") from exc
        if not isinstance(body, dict):
            raise ExtractionServiceError("Provider returned an unexpected payload.")
        return body

    async def _gemini(
        self,
        client: httpx.AsyncClient,
        provider: ProviderConfig,
        prompt: str,
        media: MediaPart | None,
        options: ExtractionOptions,
    ) -> str:
        parts: list[dict[str, Any]] = [{"text": prompt}]
        if media is not None:
            parts.append(
                {
                    "inlineData": {
                        "mimeType": media.mime_type,
                        "data": base64.b64encode(media.data).decode("ascii"),
                    }
                }
            )
        payload = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {
                "temperature": options.temperature,
                "maxOutputTokens": options.max_output_tokens,
            },
        }
        headers = {"x-goog-api-key": provider.api_key, "Content-Type": "application/json"}
        body = await self._post(
            client,
            f"{provider.base_url}/models/{provider.model}:generateContent",
            headers=headers,
            payload=payload,
        )
        return _coerce_gemini_text(body)

    async def _openai_compatible(
        self,
        client: httpx.AsyncClient,
        provider: ProviderConfig,
        prompt: str,
        media: MediaPart | None,
        options: ExtractionOptions,
    ) -> str:
        content: str | list[dict[str, Any]] = prompt
        if media is not None:
            image_data_url = f"data:{media.mime_type};base64,{base64.b64encode(media.data).decode('ascii')}"
            content = [
                {"type": "text", "text": prompt},
                {"type": "image_url", "image_url": {"url": image_data_url}},
            ]
        payload = {
            "model": provider.model,
            "temperature": options.temperature,
            "max_tokens": options.max_output_tokens,
            "messages": [{"role": "user", "content": content}],
        }
        headers = {"Authorization": f"Bearer {provider.api_key}", "Content-Type": "application/json"}
        body = await self._post(client, f"{provider.base_url}/chat/completions", headers=headers, payload=payload)
        return _coerce_completion_text(body)

    async def _anthropic(
        self,
        client: httpx.AsyncClient,
        provider: ProviderConfig,
        prompt: str,
        media: MediaPart | None,
        options: ExtractionOptions,
    ) -> str:
        content: list[dict[str, Any]] = []
        if media is not None:
            content.append(
                {
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": media.mime_type,
                        "data": base64.b64encode(media.data).decode("ascii"),
                    },
                }
            )
        content.append({"type": "text", "text": prompt})
        payload = {
            "model": provider.model,
            "max_tokens": options.max_output_tokens,
            "temperature": options.temperature,
            "messages": [{"role": "user", "content": content}],
        }
        headers = {
            "x-api-key": provider.api_key,
            "anthropic-version": "2023-06-01",
            "Content-Type": "application/json",
        }
        body = await self._post(client, f"{provider.base_url}/messages", headers=headers, payload=payload)
        return _coerce_anthropic_text(body)
