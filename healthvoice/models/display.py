from __future__ import annotations

from typing import Callable, Dict, NamedTuple

from .domain import (
    CONFIDENCE_THRESHOLD,
    Category,
    CategoryPayload,
    MovementContent,
    NutritionContent,
    OtherContent,
    SleepContent,
    SupplementContent,
    WellbeingContent,
)


class CategoryLabel(NamedTuple):
    dutch: str
    english: str
    emoji: str


CATEGORY_LABELS: Dict[Category, CategoryLabel] = {
    Category.NUTRITION: CategoryLabel("Voeding", "Nutrition", "🍎"),
    Category.SUPPLEMENT: CategoryLabel("Supplement", "Supplement", "💊"),
    Category.MOVEMENT: CategoryLabel("Beweging", "Movement", "🏃"),
    Category.SLEEP: CategoryLabel("Slaap", "Sleep", "😴"),
    Category.WELLBEING: CategoryLabel("Welzijn", "Wellbeing", "💚"),
    Category.OTHER: CategoryLabel("Overig", "Other", "📝"),
}

CATEGORY_COLORS: Dict[Category, str] = {
    Category.NUTRITION: "#4D7C0F",
    Category.SUPPLEMENT: "#7E22CE",
    Category.MOVEMENT: "#B45309",
    Category.SLEEP: "#1E40AF",
    Category.WELLBEING: "#BE185D",
    Category.OTHER: "#57534E",
}

CATEGORY_BG_COLORS: Dict[Category, str] = {
    Category.NUTRITION: "rgba(77, 124, 15, 0.06)",
    Category.SUPPLEMENT: "rgba(126, 34, 206, 0.06)",
    Category.MOVEMENT: "rgba(180, 83, 9, 0.06)",
    Category.SLEEP: "rgba(30, 64, 175, 0.06)",
    Category.WELLBEING: "rgba(190, 24, 93, 0.06)",
    Category.OTHER: "rgba(87, 83, 78, 0.06)",
}


def _number(value: float) -> str:
    return f"{value:g}"


def _format_nutrition(c: NutritionContent) -> str:
    items = ", ".join(c.items)
    meal_type = f" ({c.meal_type.value})" if c.meal_type else ""
    return f"{items}{meal_type}"


def _format_supplement(c: SupplementContent) -> str:
    dosage = f" - {c.dosage}{c.unit or ''}" if c.dosage else ""
    qty = f" x{c.quantity}" if c.quantity else ""
    return f"{c.name}{dosage}{qty}"


def _format_movement(c: MovementContent) -> str:
    duration = f" - {_number(c.duration_minutes)} min" if c.duration_minutes else ""
    intensity = f" ({c.intensity.value})" if c.intensity else ""
    distance = f", {_number(c.distance_km)} km" if c.distance_km else ""
    return f"{c.activity}{duration}{intensity}{distance}"


def _format_sleep(c: SleepContent) -> str:
    duration = f"{_number(c.duration_hours)} uur" if c.duration_hours else ""
    quality = f" - {c.quality.value}" if c.quality else ""
    notes = f" ({c.notes})" if c.notes else ""
    return f"{duration}{quality}{notes}".strip(" -") or "Slaap gelogd"


def _format_wellbeing(c: WellbeingContent) -> str:
    level = f" ({c.level}/10)" if c.level else ""
    return f"{c.description or c.type.value}{level}"


def _format_other(c: OtherContent) -> str:
    return c.description or "Overige log"


_FORMATTERS: Dict[Category, Callable[..., str]] = {
    Category.NUTRITION: _format_nutrition,
    Category.SUPPLEMENT: _format_supplement,
    Category.MOVEMENT: _format_movement,
    Category.SLEEP: _format_sleep,
    Category.WELLBEING: _format_wellbeing,
    Category.OTHER: _format_other,
}

for _table in (CATEGORY_LABELS, CATEGORY_COLORS, CATEGORY_BG_COLORS, _FORMATTERS):
    if set(_table) != set(Category):  # pragma: no cover - guards new categories
        raise RuntimeError("display tables must cover every category")


def format_content(category: Category, content: CategoryPayload) -> str:
    """One-line summary of a log payload, as shown in the log list."""
    return _FORMATTERS[Category(category)](content)


def is_low_confidence(score: float) -> bool:
    return score < CONFIDENCE_THRESHOLD


__all__ = [
    "CategoryLabel",
    "CATEGORY_LABELS",
    "CATEGORY_COLORS",
    "CATEGORY_BG_COLORS",
    "format_content",
    "is_low_confidence",
]
