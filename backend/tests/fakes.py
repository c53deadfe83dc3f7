from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Union

from extraction_tools import ExtractionOptions, ExtractionResponse, MediaPart
from extraction_tools.prompts import IMAGE_OCR_PROMPT, TEXT_CLEANUP_PROMPT

Scripted = Union[str, BaseException, Callable[[str], str]]

ENTITY_JSON = (
    '{"department": "dentist", "date_phrase": "next Friday", "time_phrase": "3pm", '
    '"notes": "", "confidence": 0.9}'
)
NORMALIZED_JSON = '{"date": "2026-10-23", "time": "15:00", "timezone": "Asia/Kolkata", "confidence": 0.9}'
EMPTY_ENTITY_JSON = '{"department": "", "date_phrase": "", "time_phrase": "", "notes": "", "confidence": 0.2}'


def _echo_text(prompt: str) -> str:
    return prompt[len(TEXT_CLEANUP_PROMPT) :] + '\n{"confidence": 0.95}'


def prompt_kind(prompt: str) -> str:
    if prompt.startswith(TEXT_CLEANUP_PROMPT):
        return "text"
    if prompt.startswith(IMAGE_OCR_PROMPT):
        return "image"
    if prompt.startswith("You extract appointment details"):
        return "entities"
    if prompt.startswith("You resolve appointment date"):
        return "normalize"
    return "unknown"


class FakeExtractor:
    """Scripted stand-in for the extraction service that records every call."""

    def __init__(self, **responses: Scripted) -> None:
        self.responses: dict[str, Scripted] = {
            "text": _echo_text,
            "image": 'Book dentist next Friday at 3pm\n{"confidence": 0.8}',
            "entities": ENTITY_JSON,
            "normalize": NORMALIZED_JSON,
        }
        self.responses.update(responses)
        self.calls: list[dict[str, Any]] = []

    async def call(
        self,
        prompt: str,
        media: MediaPart | None = None,
        options: ExtractionOptions | None = None,
    ) -> ExtractionResponse:
        kind = prompt_kind(prompt)
        self.calls.append({"kind": kind, "prompt": prompt, "media": media, "options": options})
        scripted = self.responses[kind]
        if isinstance(scripted, BaseException):
            raise scripted
        text = scripted(prompt) if callable(scripted) else scripted
        return ExtractionResponse(text=text, provider="fake")

    def count(self, kind: str | None = None) -> int:
        if kind is None:
            return len(self.calls)
        return sum(1 for call in self.calls if call["kind"] == kind)


class ManualClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)
