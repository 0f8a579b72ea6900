"""
Data types shared by the OCR engines, the extractor and the HTTP layer.

Field names are snake_case in Python; `to_dict()` renders the camelCase
shape the meal-entry form expects.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional


class OCRModelTier(str, Enum):
    """Caller-selected quality / cost preference."""
    FAST = "fast"
    BALANCED = "balanced"
    ADVANCED = "advanced"


class ProviderId(str, Enum):
    """Concrete engine that produced a transcription."""
    TESSERACT = "tesseract"
    OPENROUTER_FAST = "openrouter_fast"
    OPENROUTER_STRUCTURED = "openrouter_structured"
    OPENROUTER_ADVANCED = "openrouter_advanced"


_WIRE_NAMES = {
    "product_name": "productName",
}


@dataclass
class ExtractedNutritionData:
    """
    Nutrition values parsed from label text.

    Every field is optional and independent of the others: a label that only
    shows calories yields a record with only `calories` set.
    """
    product_name: Optional[str] = None
    brand: Optional[str] = None
    calories: Optional[float] = None
    protein: Optional[float] = None
    fats: Optional[float] = None
    carbs: Optional[float] = None
    weight: Optional[float] = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        return {
            _WIRE_NAMES.get(f.name, f.name): getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


@dataclass
class ValidationReport:
    valid: bool
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "errors": list(self.errors)}


def confidence_band(confidence: int) -> str:
    """Colour band used by the result card: high / medium / low."""
    if confidence >= 80:
        return "high"
    if confidence >= 60:
        return "medium"
    return "low"


@dataclass
class RecognitionResult:
    """
    One transcription plus what was parsed out of it.

    `confidence` and `provider` always describe the engine that produced
    `text`, also after escalation.
    """
    text: str
    confidence: int
    extracted_data: ExtractedNutritionData
    raw_text: str
    provider: ProviderId
    model_name: Optional[str] = None
    processing_time_ms: int = 0

    def __post_init__(self):
        self.confidence = max(0, min(100, int(round(self.confidence))))
        self.processing_time_ms = max(0, int(self.processing_time_ms))

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "text": self.text,
            "confidence": self.confidence,
            "confidenceBand": confidence_band(self.confidence),
            "extractedData": self.extracted_data.to_dict(),
            "rawText": self.raw_text,
            "provider": self.provider.value,
            "processingTimeMs": self.processing_time_ms,
        }
        if self.model_name:
            data["modelName"] = self.model_name
        return data
