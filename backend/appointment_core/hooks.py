from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from .models import StageResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageEvent:
    request_id: str
    fingerprint: str
    stage: str
    source: str
    result: StageResult


AfterStageHook = Callable[[StageEvent], None]


class StageHookRunner:
    def __init__(self) -> None:
        self._after_hooks: list[AfterStageHook] = []

    def add_after(self, hook: AfterStageHook) -> None:
        self._after_hooks.append(hook)

    def run_after(self, event: StageEvent) -> None:
        for hook in self._after_hooks:
            try:
                hook(event)
            except Exception:
                logger.exception("after-stage hook failed for %s", event.stage)
