from __future__ import annotations

import pytest
from pydantic import ValidationError

from healthvoice.models.domain import (
    Category,
    ExtractedItem,
    ExtractionResult,
    MealType,
    NutritionContent,
    OtherContent,
    PAYLOAD_MODELS,
    SupplementContent,
    WellbeingContent,
    fallback_result,
)


def _supplement_item(**content):
    return {
        "category": "supplement",
        "subcategory": None,
        "content": {"name": "vitamine D", **content},
        "confidence": 0.92,
        "original_text": "nam mijn vitamine D",
    }


def test_every_category_has_a_payload_model():
    assert set(PAYLOAD_MODELS) == set(Category)


def test_content_is_bound_to_category_model():
    item = ExtractedItem.model_validate(_supplement_item(dosage="1000", unit="IU"))
    assert item.category is Category.SUPPLEMENT
    assert isinstance(item.content, SupplementContent)
    assert item.content.dosage == "1000"


def test_numeric_dosage_is_coerced_to_text():
    item = ExtractedItem.model_validate(_supplement_item(dosage=1000))
    assert item.content.dosage == "1000"


def test_fields_from_another_category_are_rejected():
    data = _supplement_item(meal_type="drank")
    with pytest.raises(ValidationError):
        ExtractedItem.model_validate(data)


def test_payload_model_of_wrong_variant_is_rejected():
    with pytest.raises(ValidationError):
        ExtractedItem(
            category=Category.NUTRITION,
            content=OtherContent(description="iets"),
            confidence=0.8,
        )


def test_unknown_category_is_rejected():
    data = _supplement_item()
    data["category"] = "medicatie"
    with pytest.raises(ValidationError):
        ExtractedItem.model_validate(data)


@pytest.mark.parametrize("confidence", [-0.1, 1.2])
def test_confidence_must_be_within_unit_interval(confidence):
    data = _supplement_item()
    data["confidence"] = confidence
    with pytest.raises(ValidationError):
        ExtractedItem.model_validate(data)


def test_wellbeing_level_range():
    with pytest.raises(ValidationError):
        WellbeingContent(type="energie", level=11)
    assert WellbeingContent(type="energie", level=7).level == 7


def test_validating_a_valid_item_twice_is_stable():
    item = ExtractedItem(
        category=Category.NUTRITION,
        content=NutritionContent(items=["water"], meal_type=MealType.DRINK),
        confidence=0.95,
        original_text="dronk net een glas water",
    )
    once = ExtractedItem.model_validate(item.model_dump())
    twice = ExtractedItem.model_validate(once.model_dump())
    assert once == item
    assert twice == item
    assert ExtractedItem.model_validate(item) == item


def test_items_that_are_not_a_list_become_empty():
    result = ExtractionResult.model_validate({"items": None, "needs_clarification": None})
    assert result.items == []


def test_fallback_result_keeps_the_transcript():
    result = fallback_result("iets onduidelijks")
    assert len(result.items) == 1
    item = result.items[0]
    assert item.category is Category.OTHER
    assert item.content == OtherContent(description="iets onduidelijks")
    assert item.confidence == 0.3
    assert item.original_text == "iets onduidelijks"
    assert result.needs_clarification is None

