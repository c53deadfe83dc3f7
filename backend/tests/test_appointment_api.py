from __future__ import annotations

import base64
import importlib

from fastapi.testclient import TestClient
from fakes import EMPTY_ENTITY_JSON

REQUEST = "Book dentist next Friday at 3pm"
PNG_BYTES = b"\x89PNG\r\n\x1a\n fake image"


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "message": "Service is healthy"}


def test_final_json_for_typed_request(client, fake_extractor):
    response = client.post("/api/appointments/final-json", json={"input": REQUEST})

    assert response.status_code == 200
    assert response.json() == {
        "appointment": {
            "department": "Dentistry",
            "date": "2026-10-23",
            "time": "15:00",
            "timezone": "Asia/Kolkata",
        },
        "status": "ok",
    }
    assert fake_extractor.count() == 3


def test_intermediate_endpoints(client):
    text = client.post("/api/appointments/extract-text", json={"input": REQUEST})
    entities = client.post("/api/appointments/extract-entities", json={"input": REQUEST})
    normalized = client.post("/api/appointments/normalize", json={"input": REQUEST})

    assert text.json() == {"raw_text": REQUEST, "confidence": 0.95}
    assert entities.json() == {
        "entities": {"department": "dentist", "date_phrase": "next Friday", "time_phrase": "3pm", "notes": ""},
        "confidence": 0.9,
    }
    assert normalized.json() == {
        "normalized": {"date": "2026-10-23", "time": "15:00", "timezone": "Asia/Kolkata"},
        "confidence": 0.9,
    }


def test_endpoints_share_the_stage_cache(client, fake_extractor):
    client.post("/api/appointments/extract-text", json={"input": REQUEST})
    client.post("/api/appointments/final-json", json={"input": REQUEST})
    client.post("/api/appointments/final-json", json={"input": REQUEST})

    assert fake_extractor.count("text") == 1
    assert fake_extractor.count() == 3


def test_gibberish_returns_needs_clarification(client, fake_extractor):
    fake_extractor.responses["entities"] = EMPTY_ENTITY_JSON

    response = client.post("/api/appointments/final-json", json={"input": "asdf qwerty"})

    assert response.status_code == 200
    assert response.json() == {"status": "needs_clarification", "reason": "ambiguous date/time or department"}
    assert fake_extractor.count("normalize") == 0


def test_empty_input_is_rejected_without_calls(client, fake_extractor):
    for body in ({"input": ""}, {"input": "   "}, {}):
        response = client.post("/api/appointments/final-json", json=body)
        assert response.status_code == 400
        assert response.json()["detail"] == "Input (text or image) is required."
    assert fake_extractor.count() == 0


def test_malformed_bodies_are_rejected(client):
    not_json = client.post(
        "/api/appointments/extract-text",
        content=b"not json",
        headers={"content-type": "application/json"},
    )
    array_body = client.post("/api/appointments/extract-text", json=[REQUEST])
    wrong_type = client.post("/api/appointments/extract-text", json={"input": 42})

    assert not_json.status_code == 400
    assert array_body.status_code == 400
    assert wrong_type.status_code == 400
    assert wrong_type.json()["detail"] == "Valid input string required (text or base64)."


def test_base64_image_in_json_body(client, fake_extractor):
    encoded = base64.b64encode(PNG_BYTES).decode("ascii")

    response = client.post(
        "/api/appointments/extract-text",
        json={"input": encoded, "is_image": True, "mime_type": "image/png"},
    )

    assert response.status_code == 200
    assert response.json() == {"raw_text": REQUEST, "confidence": 0.8}
    media = fake_extractor.calls[0]["media"]
    assert media.data == PNG_BYTES
    assert media.mime_type == "image/png"


def test_data_uri_sets_mime_type(client, fake_extractor):
    encoded = "data:image/webp;base64," + base64.b64encode(PNG_BYTES).decode("ascii")

    response = client.post("/api/appointments/extract-text", json={"input": encoded, "is_image": True})

    assert response.status_code == 200
    assert fake_extractor.calls[0]["media"].mime_type == "image/webp"


def test_invalid_base64_image_is_rejected(client, fake_extractor):
    response = client.post("/api/appointments/extract-text", json={"input": "not*base64!", "is_image": True})

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid base64 format for image input."
    assert fake_extractor.count() == 0


def test_multipart_image_upload(client, fake_extractor):
    response = client.post(
        "/api/appointments/final-json",
        files={"image": ("note.png", PNG_BYTES, "image/png")},
    )

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert fake_extractor.calls[0]["kind"] == "image"
    assert fake_extractor.calls[0]["media"].data == PNG_BYTES


def test_multipart_rejects_non_image(client, fake_extractor):
    response = client.post(
        "/api/appointments/extract-text",
        files={"image": ("notes.txt", b"Book dentist", "text/plain")},
    )

    assert response.status_code == 415
    assert fake_extractor.count() == 0


def test_multipart_rejects_empty_and_oversized_images(client):
    empty = client.post("/api/appointments/extract-text", files={"image": ("empty.png", b"", "image/png")})
    oversized = client.post(
        "/api/appointments/extract-text",
        files={"image": ("big.png", b"\x89PNG" + b"0" * 2048, "image/png")},
    )

    assert empty.status_code == 400
    assert empty.json()["detail"] == "Uploaded file is empty."
    assert oversized.status_code == 413


def test_form_encoded_text_input(client):
    response = client.post("/api/appointments/extract-text", data={"input": REQUEST})

    assert response.status_code == 200
    assert response.json()["raw_text"] == REQUEST


def test_non_numeric_image_cap_does_not_break_startup(backend_module, monkeypatch):
    monkeypatch.setenv("APPOINTMENT_MAX_IMAGE_BYTES", "ten megabytes")

    module = importlib.reload(backend_module)

    assert module.container.settings.max_image_bytes == 10 * 1024 * 1024
    with TestClient(module.app) as test_client:
        assert test_client.get("/health").status_code == 200
