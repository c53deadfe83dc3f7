from __future__ import annotations

import uuid

from .models import InputDescriptor, StageResult


class InvalidInput(Exception):
    pass


def _is_blank(payload: str | bytes | None) -> bool:
    if payload is None:
        return True
    return not payload.strip()


class RequestScopedMemo:
    """Stage results computed during one inbound call.

    Created at pipeline entry and dropped when the call returns, so a stage
    pulled by several downstream handlers within the same call runs once.
    """

    def __init__(self, descriptor: InputDescriptor, request_id: str | None = None) -> None:
        if _is_blank(descriptor.payload):
            raise InvalidInput("Input (text or image) is required.")
        self.descriptor = descriptor
        self.request_id = request_id or uuid.uuid4().hex
        self._results: dict[str, StageResult] = {}

    def get(self, stage: str) -> StageResult | None:
        return self._results.get(stage)

    def set(self, stage: str, result: StageResult) -> None:
        self._results[stage] = result
