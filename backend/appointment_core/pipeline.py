from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import ValidationError

from extraction_tools import (
    ExtractionOptions,
    ExtractionResponse,
    Extractor,
    MediaPart,
    ResponseParseError,
    leading_text,
    parse_confidence_marker,
    parse_json_object,
)
from extraction_tools.prompts import IMAGE_OCR_PROMPT, TEXT_CLEANUP_PROMPT, entity_prompt, normalization_prompt
from stage_cache import Clock, StageCache, utc_now

from .config import PipelineSettings
from .context import RequestScopedMemo
from .departments import canonical_department
from .hooks import StageEvent, StageHookRunner
from .models import (
    DEFAULT_IMAGE_MIME_TYPE,
    ENTITY_EXTRACTION,
    NORMALIZATION,
    TEXT_EXTRACTION,
    AppointmentRecord,
    EntityExtraction,
    FinalOutcome,
    InputDescriptor,
    NeedsClarification,
    Normalization,
    Resolved,
    StageResult,
    TextExtraction,
)
from .policy import GuardrailPolicy
from .schemas import EntityFields, NormalizedFields

logger = logging.getLogger(__name__)

TEXT_DEFAULT_CONFIDENCE = 0.95
IMAGE_DEFAULT_CONFIDENCE = 0.85
EXTRACTOR_DEFAULT_CONFIDENCE = 0.9
MALFORMED_OUTPUT_PENALTY = 0.5

StageCompute = Callable[[RequestScopedMemo], Awaitable[StageResult]]


def _describe(exc: Exception) -> str:
    return str(exc) or type(exc).__name__


class AppointmentPipeline:
    """Text extraction -> entity extraction -> normalization, with two-tier reuse.

    Every stage looks in the cross-request cache, then in the request memo,
    and only then calls the extractor. Computed results, degraded ones
    included, are written to both. A stage cancelled mid-call writes nothing.
    """

    def __init__(
        self,
        *,
        extractor: Extractor,
        cache: StageCache,
        policy: GuardrailPolicy | None = None,
        hooks: StageHookRunner | None = None,
        settings: PipelineSettings | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.extractor = extractor
        self.cache = cache
        self.policy = policy or GuardrailPolicy()
        self.hooks = hooks or StageHookRunner()
        self.settings = settings or PipelineSettings()
        self._clock = clock
        self._options = ExtractionOptions(
            temperature=self.settings.temperature,
            max_output_tokens=self.settings.max_output_tokens,
        )

    async def raw_text(self, descriptor: InputDescriptor) -> TextExtraction:
        return await self._text_stage(RequestScopedMemo(descriptor))

    async def entities(self, descriptor: InputDescriptor) -> EntityExtraction:
        return await self._entity_stage(RequestScopedMemo(descriptor))

    async def normalized(self, descriptor: InputDescriptor) -> Normalization:
        return await self._normalization_stage(RequestScopedMemo(descriptor))

    async def appointment(self, descriptor: InputDescriptor) -> FinalOutcome:
        memo = RequestScopedMemo(descriptor)
        normalized = await self._normalization_stage(memo)
        if isinstance(normalized, NeedsClarification):
            return normalized
        entities = await self._entity_stage(memo)
        return AppointmentRecord(
            department=canonical_department(entities.department),
            date=normalized.date,
            time=normalized.time,
            timezone=normalized.timezone,
        )

    async def _resolve(self, memo: RequestScopedMemo, stage: str, compute: StageCompute) -> StageResult:
        fingerprint = memo.descriptor.fingerprint
        cached = self.cache.get(fingerprint, stage)
        if cached is not None:
            memo.set(stage, cached)
            self._emit(memo, stage, "cache", cached)
            return cached
        memoized = memo.get(stage)
        if memoized is not None:
            self._emit(memo, stage, "memo", memoized)
            return memoized
        result = await compute(memo)
        self.cache.set(fingerprint, stage, result, self.settings.cache_ttl_seconds)
        memo.set(stage, result)
        self._emit(memo, stage, "computed", result)
        return result

    def _emit(self, memo: RequestScopedMemo, stage: str, source: str, result: StageResult) -> None:
        self.hooks.run_after(
            StageEvent(
                request_id=memo.request_id,
                fingerprint=memo.descriptor.fingerprint,
                stage=stage,
                source=source,
                result=result,
            )
        )

    async def _call_extractor(self, prompt: str, media: MediaPart | None = None) -> ExtractionResponse:
        return await asyncio.wait_for(
            self.extractor.call(prompt, media, self._options),
            timeout=self.settings.extractor_timeout_seconds,
        )

    async def _text_stage(self, memo: RequestScopedMemo) -> TextExtraction:
        return await self._resolve(memo, TEXT_EXTRACTION, self._extract_text)

    async def _entity_stage(self, memo: RequestScopedMemo) -> EntityExtraction:
        return await self._resolve(memo, ENTITY_EXTRACTION, self._extract_entities)

    async def _normalization_stage(self, memo: RequestScopedMemo) -> Normalization:
        return await self._resolve(memo, NORMALIZATION, self._normalize)

    async def _extract_text(self, memo: RequestScopedMemo) -> TextExtraction:
        descriptor = memo.descriptor
        if descriptor.is_image:
            payload = descriptor.payload
            data = payload if isinstance(payload, bytes) else str(payload).encode("utf-8")
            prompt = IMAGE_OCR_PROMPT
            media: MediaPart | None = MediaPart(data=data, mime_type=descriptor.mime_type or DEFAULT_IMAGE_MIME_TYPE)
            fallback = ""
            default_confidence = IMAGE_DEFAULT_CONFIDENCE
        else:
            prompt = TEXT_CLEANUP_PROMPT + descriptor.text
            media = None
            fallback = descriptor.text
            default_confidence = TEXT_DEFAULT_CONFIDENCE

        try:
            response = await self._call_extractor(prompt, media)
        except Exception as exc:
            logger.warning("text extraction degraded (%s): %s", descriptor.modality.value, _describe(exc))
            return TextExtraction(raw_text=fallback, confidence=0.0)

        marker = parse_confidence_marker(response.text)
        confidence = default_confidence if marker is None else marker
        return TextExtraction(raw_text=leading_text(response.text) or fallback, confidence=confidence)

    async def _extract_entities(self, memo: RequestScopedMemo) -> EntityExtraction:
        text = await self._text_stage(memo)
        decision = self.policy.check_entity_input(text)
        if not decision.allowed:
            logger.info("skipping entity extraction: %s", decision.code)
            return EntityExtraction()

        try:
            response = await self._call_extractor(entity_prompt(text.raw_text))
        except Exception as exc:
            logger.warning("entity extraction degraded: %s", _describe(exc))
            return EntityExtraction()

        extractor_confidence = self._extractor_confidence(response.text)
        try:
            payload = parse_json_object(response.text)
            fields = EntityFields.model_validate(payload) if payload is not None else EntityFields()
        except (ResponseParseError, ValidationError) as exc:
            logger.warning("entity extraction output rejected: %s", exc)
            return EntityExtraction()
        if payload is None:
            logger.warning("no JSON object in entity extraction output: %r", response.text[:100])
            extractor_confidence *= MALFORMED_OUTPUT_PENALTY

        return EntityExtraction(
            department=fields.department,
            date_phrase=fields.date_phrase,
            time_phrase=fields.time_phrase,
            notes=fields.notes,
            confidence=min(extractor_confidence, text.confidence),
        )

    async def _normalize(self, memo: RequestScopedMemo) -> Normalization:
        entities = await self._entity_stage(memo)
        decision = self.policy.check_normalization_input(entities)
        if not decision.allowed:
            logger.info("normalization needs clarification before call: %s", decision.code)
            return NeedsClarification(decision.reason)

        prompt = normalization_prompt(
            department=entities.department,
            date_phrase=entities.date_phrase,
            time_phrase=entities.time_phrase,
            notes=entities.notes,
            reference_date=self._reference_date(),
            timezone=self.settings.timezone,
        )
        date_value = time_value = ""
        try:
            response = await self._call_extractor(prompt)
        except Exception as exc:
            logger.warning("normalization degraded: %s", _describe(exc))
            extractor_confidence = 0.0
        else:
            extractor_confidence = self._extractor_confidence(response.text)
            try:
                payload = parse_json_object(response.text)
                fields = NormalizedFields.model_validate(payload) if payload is not None else NormalizedFields()
            except (ResponseParseError, ValidationError) as exc:
                logger.warning("normalization output rejected: %s", exc)
                extractor_confidence = 0.0
            else:
                if payload is None or fields.is_malformed():
                    logger.warning("malformed normalization output: %r", response.text[:100])
                    extractor_confidence *= MALFORMED_OUTPUT_PENALTY
                date_value = fields.checked_date()
                time_value = fields.checked_time()

        confidence = min(extractor_confidence, entities.confidence)
        decision = self.policy.check_normalized(confidence)
        if not decision.allowed:
            logger.info("normalization needs clarification: %s (confidence %.2f)", decision.code, confidence)
            return NeedsClarification(decision.reason)
        return Resolved(date=date_value, time=time_value, timezone=self.settings.timezone, confidence=confidence)

    @staticmethod
    def _extractor_confidence(text: str) -> float:
        marker = parse_confidence_marker(text)
        return EXTRACTOR_DEFAULT_CONFIDENCE if marker is None else marker

    def _reference_date(self) -> str:
        try:
            zone = ZoneInfo(self.settings.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("unknown timezone %r; using UTC reference date", self.settings.timezone)
            return self._clock().date().isoformat()
        return self._clock().astimezone(zone).date().isoformat()
