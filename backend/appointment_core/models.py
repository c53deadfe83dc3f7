from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from stage_cache import fingerprint_payload

logger = logging.getLogger(__name__)

TEXT_EXTRACTION = "text_extraction"
ENTITY_EXTRACTION = "entity_extraction"
NORMALIZATION = "normalization"

AMBIGUOUS_REASON = "ambiguous date/time or department"
DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"


class Modality(str, Enum):
    TEXT = "text"
    IMAGE = "image"


@dataclass(frozen=True)
class InputDescriptor:
    payload: str | bytes | None
    modality: Modality = Modality.TEXT
    mime_type: str | None = None
    fingerprint: str = field(init=False)

    def __post_init__(self) -> None:
        payload = self.payload if self.payload is not None else b""
        object.__setattr__(self, "fingerprint", fingerprint_payload(payload))

    @classmethod
    def from_text(cls, text: str | None) -> InputDescriptor:
        return cls(payload=text, modality=Modality.TEXT)

    @classmethod
    def from_image(cls, data: bytes | None, mime_type: str | None = None) -> InputDescriptor:
        return cls(payload=data, modality=Modality.IMAGE, mime_type=mime_type or DEFAULT_IMAGE_MIME_TYPE)

    @property
    def is_image(self) -> bool:
        return self.modality == Modality.IMAGE

    @property
    def text(self) -> str:
        """The payload as text; image payloads have no textual form."""
        if self.is_image or self.payload is None:
            return ""
        if isinstance(self.payload, bytes):
            try:
                return self.payload.decode("utf-8")
            except UnicodeDecodeError:
                logger.warning("text payload %s is not valid UTF-8; replacing undecodable bytes", self.fingerprint[:12])
                return self.payload.decode("utf-8", errors="replace")
        return self.payload


@dataclass(frozen=True)
class TextExtraction:
    raw_text: str
    confidence: float

    def as_payload(self) -> dict[str, Any]:
        return {"raw_text": self.raw_text, "confidence": round(self.confidence, 2)}


@dataclass(frozen=True)
class EntityExtraction:
    department: str = ""
    date_phrase: str = ""
    time_phrase: str = ""
    notes: str = ""
    confidence: float = 0.0

    def is_empty(self) -> bool:
        return not any(value.strip() for value in (self.department, self.date_phrase, self.time_phrase, self.notes))

    def fields(self) -> dict[str, str]:
        return {
            "department": self.department,
            "date_phrase": self.date_phrase,
            "time_phrase": self.time_phrase,
            "notes": self.notes,
        }

    def as_payload(self) -> dict[str, Any]:
        return {"entities": self.fields(), "confidence": round(self.confidence, 2)}


@dataclass(frozen=True)
class Resolved:
    date: str
    time: str
    timezone: str
    confidence: float

    def as_payload(self) -> dict[str, Any]:
        return {
            "normalized": {"date": self.date, "time": self.time, "timezone": self.timezone},
            "confidence": round(self.confidence, 2),
        }


@dataclass(frozen=True)
class NeedsClarification:
    reason: str = AMBIGUOUS_REASON
    status: str = field(default="needs_clarification", init=False)

    def as_payload(self) -> dict[str, Any]:
        return {"status": self.status, "reason": self.reason}


@dataclass(frozen=True)
class AppointmentRecord:
    department: str
    date: str
    time: str
    timezone: str
    status: str = field(default="ok", init=False)

    def as_payload(self) -> dict[str, Any]:
        return {
            "appointment": {
                "department": self.department,
                "date": self.date,
                "time": self.time,
                "timezone": self.timezone,
            },
            "status": self.status,
        }


Normalization = Union[Resolved, NeedsClarification]
StageResult = Union[TextExtraction, EntityExtraction, Resolved, NeedsClarification]
FinalOutcome = Union[AppointmentRecord, NeedsClarification]
