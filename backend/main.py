from __future__ import annotations

import base64
import binascii
import logging
import os
import re
from pathlib import Path
from typing import Any, Awaitable, Callable

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ValidationError
from starlette.datastructures import UploadFile

from appointment_core import (
    AppointmentPipeline,
    InputDescriptor,
    InvalidInput,
    PipelineSettings,
    StageEvent,
    StageHookRunner,
)
from appointment_core.models import DEFAULT_IMAGE_MIME_TYPE
from extraction_tools import ExtractionClient, provider_candidates
from stage_cache import InMemoryCacheStore, StageCache

_ENV_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_DATA_URI_RE = re.compile(r"^data:(image/[A-Za-z0-9.+-]+);base64,")

OutputHandler = Callable[[InputDescriptor], Awaitable[Any]]


def _load_local_env_file(path: Path) -> None:
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError:
        return
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if not _ENV_KEY_RE.fullmatch(key):
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        os.environ.setdefault(key, value)


def _bootstrap_local_env() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    for candidate in (repo_root / ".env", repo_root / "backend/.env"):
        if candidate.exists():
            _load_local_env_file(candidate)


_bootstrap_local_env()

logging.basicConfig(
    level=os.getenv("APPOINTMENT_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


class AppointmentInput(BaseModel):
    input: str | None = None
    is_image: bool = False
    mime_type: str | None = None


class AppointmentApp:
    def __init__(self) -> None:
        self.settings = PipelineSettings.from_env()
        self.cache = StageCache(
            InMemoryCacheStore(sweep_interval_seconds=self.settings.cache_sweep_interval_seconds),
            default_ttl_seconds=self.settings.cache_ttl_seconds,
        )
        self.hooks = StageHookRunner()
        self.hooks.add_after(self._log_stage)
        self.pipeline = AppointmentPipeline(
            extractor=ExtractionClient(
                provider_candidates(),
                timeout_seconds=self.settings.extractor_timeout_seconds,
            ),
            cache=self.cache,
            hooks=self.hooks,
            settings=self.settings,
        )

    @staticmethod
    def _log_stage(event: StageEvent) -> None:
        logger.info(
            "request %s stage %s served from %s (%s)",
            event.request_id[:8],
            event.stage,
            event.source,
            type(event.result).__name__,
        )


container = AppointmentApp()
app = FastAPI(title="Appointment Parser Backend")

allowed_origins = os.getenv("ALLOWED_ORIGINS", "*").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in allowed_origins],
    allow_methods=["*"],
    allow_headers=["*"],
)


def _is_truthy(value: Any) -> bool:
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


async def _read_upload_bytes(upload: UploadFile, *, max_bytes: int, too_large_detail: str) -> bytes:
    raw = await upload.read(max_bytes + 1)
    if len(raw) > max_bytes:
        raise HTTPException(status_code=413, detail=too_large_detail)
    if not raw:
        raise HTTPException(status_code=400, detail="Uploaded file is empty.")
    return raw


def _decode_base64_image(encoded: str, mime_type: str | None) -> InputDescriptor:
    value = encoded.strip()
    match = _DATA_URI_RE.match(value)
    if match:
        mime_type = match.group(1)
        value = value[match.end() :]
    try:
        data = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(status_code=400, detail="Invalid base64 format for image input.") from exc
    return InputDescriptor.from_image(data, mime_type or DEFAULT_IMAGE_MIME_TYPE)


def _descriptor_from_fields(text: Any, is_image: bool, mime_type: str | None) -> InputDescriptor:
    if text is not None and not isinstance(text, str):
        raise HTTPException(status_code=400, detail="Valid input string required (text or base64).")
    if is_image and text and text.strip():
        return _decode_base64_image(text, mime_type)
    return InputDescriptor.from_text(text)


async def _descriptor_from_request(request: Request) -> InputDescriptor:
    content_type = request.headers.get("content-type", "").lower()
    if content_type.startswith("multipart/form-data") or content_type.startswith(
        "application/x-www-form-urlencoded"
    ):
        form = await request.form()
        upload = form.get("image")
        if isinstance(upload, UploadFile):
            mime_type = (upload.content_type or "").lower().strip()
            if not mime_type.startswith("image/"):
                raise HTTPException(status_code=415, detail="Only image files are allowed (e.g., JPEG, PNG).")
            max_bytes = container.settings.max_image_bytes
            data = await _read_upload_bytes(
                upload,
                max_bytes=max_bytes,
                too_large_detail=f"Image exceeds the {max_bytes // 1024} KB upload limit.",
            )
            return InputDescriptor.from_image(data, mime_type)
        return _descriptor_from_fields(form.get("input"), _is_truthy(form.get("is_image")), form.get("mime_type"))

    try:
        body = await request.json()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Request body must be JSON or multipart form data.") from exc
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object.")
    try:
        parsed = AppointmentInput.model_validate(body)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail="Valid input string required (text or base64).") from exc
    return _descriptor_from_fields(parsed.input, parsed.is_image, parsed.mime_type)


async def _run_output(handler: OutputHandler, request: Request) -> dict[str, Any]:
    descriptor = await _descriptor_from_request(request)
    try:
        result = await handler(descriptor)
    except InvalidInput as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return result.as_payload()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "message": "Service is healthy"}


@app.post("/api/appointments/extract-text")
async def extract_text(request: Request):
    return await _run_output(container.pipeline.raw_text, request)


@app.post("/api/appointments/extract-entities")
async def extract_entities(request: Request):
    return await _run_output(container.pipeline.entities, request)


@app.post("/api/appointments/normalize")
async def normalize_appointment(request: Request):
    return await _run_output(container.pipeline.normalized, request)


@app.post("/api/appointments/final-json")
async def final_appointment_json(request: Request):
    return await _run_output(container.pipeline.appointment, request)
