"""Typed health log schema shared by every stage of the pipeline.

Raw model output is untrusted: it goes through ``ExtractedItem`` /
``ExtractionResult`` validation, which binds each ``content`` mapping to the
payload model of its declared category.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

CONFIDENCE_THRESHOLD = 0.7
FALLBACK_CONFIDENCE = 0.3


class Category(str, Enum):
    NUTRITION = "voeding"
    SUPPLEMENT = "supplement"
    MOVEMENT = "beweging"
    SLEEP = "slaap"
    WELLBEING = "welzijn"
    OTHER = "overig"


class MealType(str, Enum):
    BREAKFAST = "ontbijt"
    LUNCH = "lunch"
    DINNER = "diner"
    SNACK = "snack"
    DRINK = "drank"


class Intensity(str, Enum):
    LIGHT = "licht"
    MODERATE = "matig"
    INTENSE = "intens"


class SleepQuality(str, Enum):
    POOR = "slecht"
    FAIR = "matig"
    GOOD = "goed"
    EXCELLENT = "uitstekend"


class WellbeingType(str, Enum):
    ENERGY = "energie"
    MOOD = "mood"
    STRESS = "stress"
    SYMPTOM = "symptoom"
    GENERAL = "algemeen"


class _Payload(BaseModel):
    model_config = ConfigDict(extra="forbid", coerce_numbers_to_str=True)


class NutritionContent(_Payload):
    items: List[str]
    meal_type: Optional[MealType] = None
    quantity: Optional[str] = None
    calories: Optional[float] = Field(default=None, ge=0)


class SupplementContent(_Payload):
    name: str = Field(..., min_length=1)
    dosage: Optional[str] = None
    unit: Optional[str] = None
    quantity: Optional[int] = None


class MovementContent(_Payload):
    activity: str = Field(..., min_length=1)
    duration_minutes: Optional[float] = Field(default=None, ge=0)
    intensity: Optional[Intensity] = None
    distance_km: Optional[float] = Field(default=None, ge=0)


class SleepContent(_Payload):
    duration_hours: Optional[float] = Field(default=None, ge=0)
    quality: Optional[SleepQuality] = None
    notes: Optional[str] = None


class WellbeingContent(_Payload):
    type: WellbeingType
    level: Optional[int] = Field(default=None, ge=1, le=10)
    description: Optional[str] = None


class OtherContent(_Payload):
    description: str


CategoryPayload = Union[
    NutritionContent,
    SupplementContent,
    MovementContent,
    SleepContent,
    WellbeingContent,
    OtherContent,
]

PAYLOAD_MODELS: Dict[Category, Type[_Payload]] = {
    Category.NUTRITION: NutritionContent,
    Category.SUPPLEMENT: SupplementContent,
    Category.MOVEMENT: MovementContent,
    Category.SLEEP: SleepContent,
    Category.WELLBEING: WellbeingContent,
    Category.OTHER: OtherContent,
}

_missing = set(Category) - set(PAYLOAD_MODELS)
if _missing:  # pragma: no cover - guards new categories
    raise RuntimeError(f"No payload model for categories: {sorted(c.value for c in _missing)}")


def payload_model_for(category: Category | str) -> Type[_Payload]:
    return PAYLOAD_MODELS[Category(category)]


class _CategorizedRecord(BaseModel):
    category: Category
    subcategory: Optional[str] = None
    content: CategoryPayload

    @model_validator(mode="before")
    @classmethod
    def _bind_content(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        try:
            category = Category(data.get("category"))
        except ValueError:
            # the category field reports the unknown tag itself
            return data
        model = payload_model_for(category)
        content = data.get("content")
        if isinstance(content, model):
            return data
        if isinstance(content, BaseModel):
            raise ValueError(
                f"content {type(content).__name__} does not match category '{category.value}'"
            )
        return {**data, "content": model.model_validate(content)}

    @model_validator(mode="after")
    def _check_content(self) -> "_CategorizedRecord":
        expected = payload_model_for(self.category)
        if not isinstance(self.content, expected):
            raise ValueError(
                f"content {type(self.content).__name__} does not match category '{self.category.value}'"
            )
        return self


class ExtractedItem(_CategorizedRecord):
    confidence: float = Field(..., ge=0.0, le=1.0)
    original_text: str = ""


class ClarificationRequest(BaseModel):
    field: str = Field(..., min_length=1)
    question: str = Field(..., min_length=1)


class ClarificationAnswer(BaseModel):
    field: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)


class ExtractionResult(BaseModel):
    items: List[ExtractedItem] = Field(default_factory=list)
    needs_clarification: Optional[ClarificationRequest] = None
    processing_time_ms: Optional[int] = None

    @field_validator("items", mode="before")
    @classmethod
    def _coerce_items(cls, value: Any) -> Any:
        return value if isinstance(value, list) else []


class LogBatchMeta(BaseModel):
    """Values shared by every log persisted for one utterance."""

    user_id: Optional[str] = None
    raw_transcript: str
    audio_duration_ms: Optional[int] = None
    logged_at: datetime


class HealthLog(_CategorizedRecord):
    id: str
    user_id: Optional[str] = None
    created_at: datetime
    logged_at: datetime
    raw_transcript: str
    audio_duration_ms: Optional[int] = None
    confidence_score: float = Field(..., ge=0.0, le=1.0)
    original_text: str = ""
    was_edited: bool = False
    apple_health_synced: bool = False


def fallback_result(transcript: str) -> ExtractionResult:
    """Safe result used when a model response cannot be interpreted."""
    return ExtractionResult(
        items=[
            ExtractedItem(
                category=Category.OTHER,
                subcategory=None,
                content=OtherContent(description=transcript),
                confidence=FALLBACK_CONFIDENCE,
                original_text=transcript,
            )
        ],
        needs_clarification=None,
    )


__all__ = [
    "CONFIDENCE_THRESHOLD",
    "FALLBACK_CONFIDENCE",
    "Category",
    "MealType",
    "Intensity",
    "SleepQuality",
    "WellbeingType",
    "NutritionContent",
    "SupplementContent",
    "MovementContent",
    "SleepContent",
    "WellbeingContent",
    "OtherContent",
    "CategoryPayload",
    "PAYLOAD_MODELS",
    "payload_model_for",
    "ExtractedItem",
    "ClarificationRequest",
    "ClarificationAnswer",
    "ExtractionResult",
    "LogBatchMeta",
    "HealthLog",
    "fallback_result",
]
