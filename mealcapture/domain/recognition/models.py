"""
Domain models for food recognition.

One outcome type per recognition strategy, tagged by `strategy`
so a single `RecognitionOutcome` union can be dispatched on.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RecognitionStrategy(str, Enum):
    """Mutually exclusive ways of deriving nutrition data."""

    MANUAL = "manual"
    BARCODE = "barcode"
    OBJECT_DETECTION = "object_detection"
    GENERATIVE_ANALYSIS = "generative_analysis"

    @property
    def needs_image(self) -> bool:
        return self is not RecognitionStrategy.MANUAL


def round_half_away(value: float) -> int:
    """
    Round to the nearest whole number, halves away from zero.

    Python's round() uses banker's rounding, which would map
    2.5 to 2. Nutrition labels expect 3.

    Example:
        >>> assert round_half_away(2.5) == 3
        >>> assert round_half_away(0.4) == 0
    """
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


class MacroValues(BaseModel):
    """
    Calories and macronutrients for one item or aggregate.

    Values are kept as reported until they enter a NutritionRecord.

    Example:
        >>> macros = MacroValues(calories=262, protein=4, carbs=30, fats=13.5)
        >>> assert macros.rounded().fats == 14
    """

    model_config = ConfigDict(frozen=True)

    calories: float = Field(0.0, ge=0, description="Energy in kcal")
    protein: float = Field(0.0, ge=0, description="Protein in g")
    carbs: float = Field(0.0, ge=0, description="Carbohydrates in g")
    fats: float = Field(0.0, ge=0, description="Total fat in g")

    def rounded(self) -> MacroValues:
        """Whole-number copy, half away from zero."""
        return MacroValues(
            calories=round_half_away(self.calories),
            protein=round_half_away(self.protein),
            carbs=round_half_away(self.carbs),
            fats=round_half_away(self.fats),
        )

    def __add__(self, other: MacroValues) -> MacroValues:
        return MacroValues(
            calories=self.calories + other.calories,
            protein=self.protein + other.protein,
            carbs=self.carbs + other.carbs,
            fats=self.fats + other.fats,
        )


# ═══════════════════════════════════════════════════════════
# STRATEGY OUTCOMES
# ═══════════════════════════════════════════════════════════


class BarcodeOutcome(BaseModel):
    """Exact product match for a decoded barcode."""

    model_config = ConfigDict(frozen=True)

    strategy: Literal[RecognitionStrategy.BARCODE] = RecognitionStrategy.BARCODE
    symbol: str = Field(..., min_length=1, description="Decoded barcode text")
    product_name: str = Field(..., min_length=1, description="Product name")
    macros: MacroValues = Field(..., description="Whole-number per-unit macros")


class DetectedItem(BaseModel):
    """
    One detection above the confidence threshold.

    Unresolved items (no reference table entry) carry no macros
    and never contribute to totals.
    """

    model_config = ConfigDict(frozen=True)

    label: str = Field(..., min_length=1, description="Detector class label")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Detector confidence")
    macros: Optional[MacroValues] = Field(None, description="Reference macros if resolved")
    reference_weight_g: Optional[float] = Field(None, gt=0, description="Reference serving weight")

    @property
    def resolved(self) -> bool:
        return self.macros is not None


class DetectionOutcome(BaseModel):
    """Detections in descending confidence order."""

    model_config = ConfigDict(frozen=True)

    strategy: Literal[RecognitionStrategy.OBJECT_DETECTION] = RecognitionStrategy.OBJECT_DETECTION
    items: List[DetectedItem] = Field(default_factory=list)

    @property
    def resolved_items(self) -> List[DetectedItem]:
        return [item for item in self.items if item.resolved]

    @property
    def unresolved_items(self) -> List[DetectedItem]:
        return [item for item in self.items if not item.resolved]


class AnalyzedItem(BaseModel):
    """Food item reported by the generative vision service."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Food name")
    quantity: str = Field("", description="Estimated quantity, free text")
    macros: MacroValues = Field(default_factory=MacroValues)

    @field_validator("name")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Item name cannot be blank")
        return v.strip()


class GenerativeOutcome(BaseModel):
    """Items, service-reported total and narrative summary."""

    model_config = ConfigDict(frozen=True)

    strategy: Literal[RecognitionStrategy.GENERATIVE_ANALYSIS] = (
        RecognitionStrategy.GENERATIVE_ANALYSIS
    )
    items: List[AnalyzedItem] = Field(..., min_length=1)
    total: MacroValues
    summary: str = ""


class ManualOutcome(BaseModel):
    """No automated result; the user types values directly."""

    model_config = ConfigDict(frozen=True)

    strategy: Literal[RecognitionStrategy.MANUAL] = RecognitionStrategy.MANUAL


RecognitionOutcome = Annotated[
    Union[BarcodeOutcome, DetectionOutcome, GenerativeOutcome, ManualOutcome],
    Field(discriminator="strategy"),
]


class Prediction(BaseModel):
    """Raw class/confidence pair from the detection service."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    class_name: str = Field(..., alias="class", min_length=1)
    confidence: float = Field(..., ge=0.0, le=1.0)
