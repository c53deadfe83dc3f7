from __future__ import annotations

import json
import logging
import math
import re
from typing import Any

logger = logging.getLogger(__name__)

_CONFIDENCE_KEY_RE = re.compile(r'"confidence"\s*:\s*', re.IGNORECASE)
_NUMBER_RE = re.compile(r"-?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
_CODE_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*$", re.MULTILINE)


class ResponseParseError(Exception):
    pass


def clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, value))


def parse_confidence_marker(text: str) -> float | None:
    """Return the first ``"confidence": <number>`` value in ``text``, clamped to [0, 1].

    A marker whose value is not a finite number is reported and ignored so a
    malformed marker never stands in for a real score.
    """
    for match in _CONFIDENCE_KEY_RE.finditer(text or ""):
        number = _NUMBER_RE.match(text, match.end())
        if number is None:
            logger.warning("ignoring non-numeric confidence marker: %r", text[match.start() : match.end() + 20])
            continue
        try:
            value = float(number.group(0))
        except ValueError:
            continue
        if not math.isfinite(value):
            logger.warning("ignoring non-finite confidence marker: %r", number.group(0))
            continue
        return clamp_unit(value)
    return None


def leading_text(text: str) -> str:
    """Everything before the first ``{``, without markdown fences."""
    raw = text or ""
    brace = raw.find("{")
    candidate = raw if brace < 0 else raw[:brace]
    return _CODE_FENCE_RE.sub("", candidate).strip()


def find_balanced_object(text: str) -> str | None:
    raw = text or ""
    for start_idx in [idx for idx, char in enumerate(raw) if char == "{"]:
        depth = 0
        in_string = False
        escaped = False
        for end_idx in range(start_idx, len(raw)):
            char = raw[end_idx]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return raw[start_idx : end_idx + 1]
    return None


def parse_json_object(text: str) -> dict[str, Any] | None:
    """Decode the first balanced ``{...}`` span.

    Returns ``None`` when the response holds no balanced object and raises
    ``ResponseParseError`` when the span is not valid JSON.
    """
    candidate = find_balanced_object(text)
    if candidate is None:
        return None
    try:
        payload = json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise ResponseParseError(f"Invalid JSON object in extractor output: {exc.msg}") from exc
    return payload
