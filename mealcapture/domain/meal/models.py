"""
Meal domain models.

The editable draft a user builds before submission, and the
row handed to persistence.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from mealcapture.domain.capture.models import CaptureImage

MACRO_FIELDS = ("calories", "protein", "carbs", "fats")


class MealType(str, Enum):
    """Meal slot in the day."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"


class MealDraft(BaseModel):
    """
    In-progress meal entry.

    Macro fields stay None until typed or filled by recognition.

    Example:
        >>> draft = MealDraft()
        >>> assert draft.meal_type == MealType.BREAKFAST
        >>> assert draft.missing_fields() == ["calories", "protein", "carbs", "fats"]
    """

    model_config = ConfigDict(validate_assignment=True)

    meal_type: MealType = Field(MealType.BREAKFAST, description="Meal slot")
    calories: Optional[int] = Field(None, description="Energy in kcal")
    protein: Optional[int] = Field(None, description="Protein in g")
    carbs: Optional[int] = Field(None, description="Carbohydrates in g")
    fats: Optional[int] = Field(None, description="Total fat in g")
    notes: str = Field("", description="Free text, holds provenance notes")
    image: Optional[CaptureImage] = Field(None, description="Attached photo")

    def missing_fields(self) -> List[str]:
        """Macro fields that are absent or negative."""
        missing = []
        for name in MACRO_FIELDS:
            value = getattr(self, name)
            if value is None or value < 0:
                missing.append(name)
        return missing


class MealEntry(BaseModel):
    """
    Meal row as written by the persistence collaborator.

    Example:
        >>> entry = MealEntry(
        ...     user_id="user_123", meal_type=MealType.LUNCH,
        ...     calories=500, protein=30, carbs=50, fats=20,
        ... )
        >>> assert entry.to_row()["meal_type"] == "lunch"
    """

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    meal_type: MealType
    calories: int = Field(..., ge=0)
    protein: int = Field(..., ge=0)
    carbs: int = Field(..., ge=0)
    fats: int = Field(..., ge=0)
    notes: str = ""
    image_url: Optional[str] = None

    def to_row(self) -> dict[str, Any]:
        """Column mapping for the meals table."""
        return self.model_dump(mode="json")
