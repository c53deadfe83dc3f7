from .client import (
    ExtractionClient,
    ExtractionOptions,
    ExtractionResponse,
    ExtractionServiceError,
    Extractor,
    MediaPart,
)
from .parsing import ResponseParseError, leading_text, parse_confidence_marker, parse_json_object
from .providers import ProviderConfig, provider_candidates

__all__ = [
    "ExtractionClient",
    "ExtractionOptions",
    "ExtractionResponse",
    "ExtractionServiceError",
    "Extractor",
    "MediaPart",
    "ProviderConfig",
    "ResponseParseError",
    "leading_text",
    "parse_confidence_marker",
    "parse_json_object",
    "provider_candidates",
]
