"""
Nutrition domain models.

The canonical, strategy-independent record every capture mode
is reconciled into.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from mealcapture.domain.recognition.models import MacroValues, RecognitionStrategy


class NutritionRecord(BaseModel):
    """
    Normalized macro totals plus provenance.

    All macro fields are whole, non-negative numbers. Rounding has
    already happened by the time a record exists.

    Example:
        >>> record = NutritionRecord(
        ...     calories=250, protein=10, carbs=40, fats=8,
        ...     provenance_note="Product: Test Bar",
        ...     source=RecognitionStrategy.BARCODE,
        ... )
        >>> assert record.as_macros().calories == 250
    """

    model_config = ConfigDict(frozen=True)

    calories: int = Field(..., ge=0, description="Energy in kcal")
    protein: int = Field(..., ge=0, description="Protein in g")
    carbs: int = Field(..., ge=0, description="Carbohydrates in g")
    fats: int = Field(..., ge=0, description="Total fat in g")
    provenance_note: str = Field("", description="How the values were derived")
    source: RecognitionStrategy = Field(RecognitionStrategy.MANUAL, description="Origin")

    @classmethod
    def from_macros(
        cls, macros: MacroValues, provenance_note: str, source: RecognitionStrategy
    ) -> NutritionRecord:
        """Build a record, rounding each macro half away from zero."""
        whole = macros.rounded()
        return cls(
            calories=int(whole.calories),
            protein=int(whole.protein),
            carbs=int(whole.carbs),
            fats=int(whole.fats),
            provenance_note=provenance_note,
            source=source,
        )

    def as_macros(self) -> MacroValues:
        return MacroValues(
            calories=self.calories, protein=self.protein, carbs=self.carbs, fats=self.fats
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage/serialization."""
        return self.model_dump(mode="json")
