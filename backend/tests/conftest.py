from __future__ import annotations

import importlib
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from appointment_core import AppointmentPipeline, StageHookRunner  # noqa: E402
from fakes import FakeExtractor, ManualClock  # noqa: E402
from stage_cache import InMemoryCacheStore, StageCache  # noqa: E402

_PROVIDER_ENV_KEYS = (
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "OPENROUTER_API_KEY",
    "APPOINTMENT_EXTRACTOR_PROVIDER",
)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def fake_extractor() -> FakeExtractor:
    return FakeExtractor()


@pytest.fixture
def cache_store(clock) -> InMemoryCacheStore:
    return InMemoryCacheStore(clock=clock)


@pytest.fixture
def stage_cache(cache_store) -> StageCache:
    return StageCache(cache_store)


@pytest.fixture
def stage_events():
    return []


@pytest.fixture
def pipeline(fake_extractor, stage_cache, clock, stage_events) -> AppointmentPipeline:
    hooks = StageHookRunner()
    hooks.add_after(stage_events.append)
    return AppointmentPipeline(extractor=fake_extractor, cache=stage_cache, hooks=hooks, clock=clock)


@pytest.fixture
def backend_module(monkeypatch):
    for key in _PROVIDER_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("APPOINTMENT_TIMEZONE", "Asia/Kolkata")
    monkeypatch.setenv("APPOINTMENT_MAX_IMAGE_BYTES", "1024")

    if "main" in sys.modules:
        module = importlib.reload(sys.modules["main"])
    else:
        module = importlib.import_module("main")
    return module


@pytest.fixture
def client(backend_module, fake_extractor):
    backend_module.container.pipeline.extractor = fake_extractor
    with TestClient(backend_module.app) as test_client:
        yield test_client
