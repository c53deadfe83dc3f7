from __future__ import annotations

import json

TEXT_CLEANUP_PROMPT = (
    "You clean up typed appointment requests. Return the input text unchanged apart from "
    "trimming stray whitespace, then on a new line a JSON object like {\"confidence\": 0.95} "
    "giving your certainty (0-1) that the text is reproduced faithfully.\n"
    "Input: "
)

IMAGE_OCR_PROMPT = (
    "Read all visible text in this photographed note, email or appointment request. "
    "Pay particular attention to dates, times and medical departments. Return only the text "
    "you read, then on a new line a JSON object like {\"confidence\": 0.85} giving your certainty "
    "(0-1) about the transcription."
)


def entity_prompt(raw_text: str) -> str:
    examples = [
        (
            "Book dentist next Friday at 3pm",
            {"department": "dentist", "date_phrase": "next Friday", "time_phrase": "3pm", "notes": ""},
        ),
        (
            "Cardio checkup tomorrow 10am, bring reports",
            {
                "department": "cardiologist",
                "date_phrase": "tomorrow",
                "time_phrase": "10am",
                "notes": "bring reports",
            },
        ),
    ]
    lines = [
        "You extract appointment details from a request.",
        "Fields:",
        '- department: the medical department or specialist (e.g. "dentist", "cardiologist", "general"); "" if unclear.',
        '- date_phrase: the words that name the day (e.g. "next Friday", "tomorrow"); "" if none.',
        '- time_phrase: the words that name the time (e.g. "3pm", "10am"); "" if none.',
        '- notes: any other instructions (e.g. "urgent", "bring reports"); "" if none.',
        "- confidence: your certainty (0-1) in the extraction.",
        "Examples:",
    ]
    for text, entities in examples:
        lines.append(f"- {json.dumps(text)} -> {json.dumps(entities | {'confidence': 0.95})}")
    lines.append(
        'Return ONLY one JSON object: {"department": "...", "date_phrase": "...", '
        '"time_phrase": "...", "notes": "...", "confidence": 0.0}.'
    )
    lines.append(f"Request: {raw_text}")
    return "\n".join(lines)


def normalization_prompt(
    *,
    department: str,
    date_phrase: str,
    time_phrase: str,
    notes: str,
    reference_date: str,
    timezone: str,
) -> str:
    entities = {
        "department": department,
        "date_phrase": date_phrase,
        "time_phrase": time_phrase,
        "notes": notes,
    }
    lines = [
        "You resolve appointment date and time phrases into absolute values.",
        f"Today is {reference_date} in the {timezone} timezone; resolve relative phrases against it.",
        '- date: ISO format YYYY-MM-DD, or "" when the date phrase is empty or unclear.',
        '- time: 24-hour HH:MM, or "" when the time phrase is empty or unclear.',
        f'- timezone: always "{timezone}".',
        "- confidence: your certainty (0-1) in the resolution.",
        "Examples (assuming today is 2023-10-06):",
        '- {"date_phrase": "next Friday", "time_phrase": "3pm"} -> '
        f'{{"date": "2023-10-13", "time": "15:00", "timezone": "{timezone}", "confidence": 0.9}}',
        '- {"date_phrase": "tomorrow", "time_phrase": "10am"} -> '
        f'{{"date": "2023-10-07", "time": "10:00", "timezone": "{timezone}", "confidence": 0.9}}',
        '- {"date_phrase": "", "time_phrase": "evening"} -> '
        f'{{"date": "", "time": "", "timezone": "{timezone}", "confidence": 0.3}}',
        'Return ONLY one JSON object: {"date": "...", "time": "...", "timezone": "...", "confidence": 0.0}.',
        f"Entities: {json.dumps(entities)}",
    ]
    return "\n".join(lines)
