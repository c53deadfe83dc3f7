from __future__ import annotations

import pytest

from extraction_tools import ResponseParseError, leading_text, parse_confidence_marker, parse_json_object


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ('Book dentist\n{"confidence": 0.82}', 0.82),
        ('{"confidence":1.7}', 1.0),
        ('{"confidence": -0.3}', 0.0),
        ('{"CONFIDENCE": .5}', 0.5),
        ("no marker here", None),
        ('{"confidence": "high"}', None),
    ],
)
def test_parse_confidence_marker(text, expected):
    assert parse_confidence_marker(text) == expected


def test_confidence_marker_skips_malformed_value_and_uses_next():
    text = '{"confidence": "n/a"} then {"confidence": 0.4}'
    assert parse_confidence_marker(text) == 0.4


def test_leading_text_strips_json_tail_and_fences():
    response = '```\nBook dentist next Friday at 3pm\n```\n{"confidence": 0.9}'
    assert leading_text(response) == "Book dentist next Friday at 3pm"
    assert leading_text('{"confidence": 0.9}') == ""


def test_parse_json_object_finds_first_balanced_span():
    response = 'Sure! Here you go:\n{"department": "dentist", "notes": "use {side} door"}\nThanks'
    assert parse_json_object(response) == {"department": "dentist", "notes": "use {side} door"}


def test_parse_json_object_returns_none_without_object():
    assert parse_json_object("I could not find anything") is None
    assert parse_json_object('{"unterminated": "value"') is None


def test_parse_json_object_raises_on_invalid_json():
    with pytest.raises(ResponseParseError):
        parse_json_object("{department: dentist}")
