"""
Local food reference table.

Static per-serving nutrition for labels produced by the object
detection model. Consulted synchronously, no network.
"""

from __future__ import annotations

from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from mealcapture.domain.recognition.models import MacroValues


class FoodReference(BaseModel):
    """Nutrition for one reference serving of a food."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Canonical food name")
    calories: float = Field(..., ge=0)
    protein: float = Field(..., ge=0)
    carbohydrates: float = Field(..., ge=0)
    fats: float = Field(..., ge=0)
    reference_weight_g: float = Field(..., gt=0, description="Serving weight in grams")

    def macros(self) -> MacroValues:
        return MacroValues(
            calories=self.calories,
            protein=self.protein,
            carbs=self.carbohydrates,
            fats=self.fats,
        )


def _ref(
    name: str, calories: float, protein: float, carbs: float, fats: float, weight: float
) -> FoodReference:
    return FoodReference(
        name=name,
        calories=calories,
        protein=protein,
        carbohydrates=carbs,
        fats=fats,
        reference_weight_g=weight,
    )


# Per reference serving (weight in grams)
_FOODS = [
    _ref("Samosa", 262, 4, 30, 13, 100),
    _ref("Dal", 116, 9, 20, 0.4, 100),
    _ref("Rice", 130, 2.7, 28, 0.3, 100),
    _ref("Chapati", 120, 3.1, 18, 3.7, 40),
    _ref("Naan", 262, 8.7, 45, 5.1, 90),
    _ref("Idli", 58, 2, 12, 0.4, 40),
    _ref("Dosa", 168, 3.9, 29, 3.7, 80),
    _ref("Paneer", 265, 18, 1.2, 21, 100),
    _ref("Biryani", 290, 12, 38, 10, 200),
    _ref("Chole", 180, 9, 27, 5, 150),
    _ref("Rajma", 140, 8.7, 22, 0.5, 150),
    _ref("Poha", 180, 3.5, 33, 4, 150),
    _ref("Upma", 190, 4.5, 30, 6, 150),
    _ref("Pakora", 315, 7, 32, 18, 100),
    _ref("Gulab Jamun", 150, 2, 20, 7, 40),
    _ref("Jalebi", 150, 1, 27, 4.5, 40),
    _ref("Egg", 78, 6.3, 0.6, 5.3, 50),
    _ref("Banana", 105, 1.3, 27, 0.4, 118),
    _ref("Apple", 95, 0.5, 25, 0.3, 182),
    _ref("Pizza", 285, 12, 36, 10, 107),
    _ref("Burger", 295, 17, 30, 12, 150),
    _ref("Salad", 33, 2, 6, 0.3, 150),
]


def build_reference_table(foods: list[FoodReference]) -> dict[str, FoodReference]:
    """Index foods by lowercased canonical name."""
    return {food.name.strip().lower(): food for food in foods}


FOOD_REFERENCE: Mapping[str, FoodReference] = build_reference_table(_FOODS)


def lookup_food(label: str, table: Optional[Mapping[str, FoodReference]] = None) -> Optional[FoodReference]:
    """
    Resolve a detector label, case-insensitive exact match.

    Example:
        >>> assert lookup_food("SAMOSA").calories == 262
        >>> assert lookup_food("samosas") is None
    """
    reference = FOOD_REFERENCE if table is None else table
    return reference.get(label.strip().lower())
