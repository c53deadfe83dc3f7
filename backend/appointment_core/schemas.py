from __future__ import annotations

import re
from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

_TIME_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


def _as_text(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str):
        return value.strip()
    return value


class EntityFields(BaseModel):
    """Entity object as returned by the extractor; absent or null fields are empty."""

    model_config = ConfigDict(extra="ignore")

    department: str = ""
    date_phrase: str = ""
    time_phrase: str = ""
    notes: str = ""

    @field_validator("department", "date_phrase", "time_phrase", "notes", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> Any:
        return _as_text(value)


class NormalizedFields(BaseModel):
    model_config = ConfigDict(extra="ignore")

    date: str = ""
    time: str = ""

    @field_validator("date", "time", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> Any:
        return _as_text(value)

    def checked_date(self) -> str:
        if not self.date:
            return ""
        try:
            return date.fromisoformat(self.date).isoformat() if len(self.date) == 10 else ""
        except ValueError:
            return ""

    def checked_time(self) -> str:
        match = _TIME_RE.match(self.time)
        if not match:
            return ""
        return f"{int(match.group(1)):02d}:{match.group(2)}"

    def is_malformed(self) -> bool:
        return bool(self.date and not self.checked_date()) or bool(self.time and not self.checked_time())
