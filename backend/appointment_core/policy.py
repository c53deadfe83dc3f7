from __future__ import annotations

from dataclasses import dataclass

from .models import AMBIGUOUS_REASON, EntityExtraction, TextExtraction


@dataclass(frozen=True)
class GuardrailDecision:
    allowed: bool
    code: str
    reason: str


class GuardrailPolicy:
    """The one set of confidence floors every ambiguity decision uses.

    A value passes when it is greater than or equal to its floor, compared
    as given (no rounding), so ``0.6`` passes a 0.6 floor and ``0.5999`` does
    not, whichever stage asks.
    """

    ENTITY_FLOOR = 0.5
    NORMALIZATION_PRECHECK_FLOOR = 0.5
    NORMALIZATION_POSTCHECK_FLOOR = 0.6

    def __init__(
        self,
        *,
        entity_floor: float = ENTITY_FLOOR,
        normalization_precheck_floor: float = NORMALIZATION_PRECHECK_FLOOR,
        normalization_postcheck_floor: float = NORMALIZATION_POSTCHECK_FLOOR,
    ) -> None:
        for name, value in (
            ("entity_floor", entity_floor),
            ("normalization_precheck_floor", normalization_precheck_floor),
            ("normalization_postcheck_floor", normalization_postcheck_floor),
        ):
            if not (0.0 <= value <= 1.0):
                raise ValueError(f"{name} must be between 0 and 1.")
        self.entity_floor = entity_floor
        self.normalization_precheck_floor = normalization_precheck_floor
        self.normalization_postcheck_floor = normalization_postcheck_floor

    @staticmethod
    def passes(confidence: float, floor: float) -> bool:
        return confidence >= floor

    def check_entity_input(self, text: TextExtraction) -> GuardrailDecision:
        if not text.raw_text.strip():
            return GuardrailDecision(False, "empty_text", "No text was extracted from the input.")
        if not self.passes(text.confidence, self.entity_floor):
            return GuardrailDecision(False, "low_text_confidence", "Text extraction confidence is below the floor.")
        return GuardrailDecision(True, "ok", "allowed")

    def check_normalization_input(self, entities: EntityExtraction) -> GuardrailDecision:
        if entities.is_empty():
            return GuardrailDecision(False, "no_entities", AMBIGUOUS_REASON)
        if not self.passes(entities.confidence, self.normalization_precheck_floor):
            return GuardrailDecision(False, "low_entity_confidence", AMBIGUOUS_REASON)
        return GuardrailDecision(True, "ok", "allowed")

    def check_normalized(self, confidence: float) -> GuardrailDecision:
        if not self.passes(confidence, self.normalization_postcheck_floor):
            return GuardrailDecision(False, "low_normalization_confidence", AMBIGUOUS_REASON)
        return GuardrailDecision(True, "ok", "allowed")
