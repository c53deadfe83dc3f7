from .config import PipelineSettings
from .context import InvalidInput, RequestScopedMemo
from .departments import canonical_department
from .hooks import StageEvent, StageHookRunner
from .models import (
    ENTITY_EXTRACTION,
    NORMALIZATION,
    TEXT_EXTRACTION,
    AppointmentRecord,
    EntityExtraction,
    InputDescriptor,
    Modality,
    NeedsClarification,
    Resolved,
    TextExtraction,
)
from .pipeline import AppointmentPipeline
from .policy import GuardrailDecision, GuardrailPolicy

__all__ = [
    "ENTITY_EXTRACTION",
    "NORMALIZATION",
    "TEXT_EXTRACTION",
    "AppointmentPipeline",
    "AppointmentRecord",
    "EntityExtraction",
    "GuardrailDecision",
    "GuardrailPolicy",
    "InputDescriptor",
    "InvalidInput",
    "Modality",
    "NeedsClarification",
    "PipelineSettings",
    "RequestScopedMemo",
    "Resolved",
    "StageEvent",
    "StageHookRunner",
    "TextExtraction",
    "canonical_department",
]
