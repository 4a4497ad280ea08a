"""
Nutrition normalizer.

Converts each strategy's outcome into one NutritionRecord with
aggregate totals and a human-readable provenance note.
"""

from __future__ import annotations

from typing import Optional

from mealcapture.domain.nutrition.models import NutritionRecord
from mealcapture.domain.recognition.models import (
    BarcodeOutcome,
    DetectedItem,
    DetectionOutcome,
    GenerativeOutcome,
    MacroValues,
    ManualOutcome,
    RecognitionStrategy,
)

UNRESOLVED_HEADER = "Not in food reference (excluded from totals):"


class NutritionNormalizer:
    """
    Normalizes recognition outcomes.

    Stateless; one instance can serve every capture attempt.

    Example:
        >>> normalizer = NutritionNormalizer()
        >>> record = normalizer.normalize(barcode_outcome)
        >>> print(record.provenance_note)
        Product: Test Bar
    """

    def normalize(
        self,
        outcome: BarcodeOutcome | DetectionOutcome | GenerativeOutcome | ManualOutcome,
        current: Optional[NutritionRecord] = None,
    ) -> Optional[NutritionRecord]:
        """
        Normalize an outcome into a record.

        Args:
            outcome: Strategy-specific recognition outcome
            current: Values the user has already typed (manual only)

        Returns:
            New record, or `current` untouched for manual outcomes

        Raises:
            TypeError: If the outcome type is unknown
        """
        if isinstance(outcome, BarcodeOutcome):
            return self._from_barcode(outcome)
        if isinstance(outcome, DetectionOutcome):
            return self._from_detection(outcome)
        if isinstance(outcome, GenerativeOutcome):
            return self._from_generative(outcome)
        if isinstance(outcome, ManualOutcome):
            return current
        raise TypeError(f"Unsupported outcome type: {type(outcome).__name__}")

    def _from_barcode(self, outcome: BarcodeOutcome) -> NutritionRecord:
        return NutritionRecord.from_macros(
            outcome.macros,
            provenance_note=f"Product: {outcome.product_name}",
            source=RecognitionStrategy.BARCODE,
        )

    def _from_detection(self, outcome: DetectionOutcome) -> NutritionRecord:
        total = MacroValues()
        lines = []
        for item in outcome.resolved_items:
            if item.macros is None:
                continue
            total = total + item.macros.rounded()
            lines.append(_describe_detection(item))

        unresolved = outcome.unresolved_items
        if unresolved:
            lines.append(UNRESOLVED_HEADER)
            lines.extend(
                f"- {item.label} ({_percent(item.confidence)}% confidence)" for item in unresolved
            )

        return NutritionRecord.from_macros(
            total,
            provenance_note="\n".join(lines),
            source=RecognitionStrategy.OBJECT_DETECTION,
        )

    def _from_generative(self, outcome: GenerativeOutcome) -> NutritionRecord:
        # Service total may cover items we could not itemize, so no re-sum.
        bullets = [
            f"- {item.name}: {item.quantity}" if item.quantity else f"- {item.name}"
            for item in outcome.items
        ]
        summary = outcome.summary.strip()
        parts = [summary] if summary else []
        parts.append("\n".join(bullets))
        return NutritionRecord.from_macros(
            outcome.total,
            provenance_note="\n\n".join(parts),
            source=RecognitionStrategy.GENERATIVE_ANALYSIS,
        )


def _percent(confidence: float) -> int:
    return int(confidence * 100 + 0.5)


def _describe_detection(item: DetectedItem) -> str:
    weight = item.reference_weight_g
    weight_text = f"{weight:g}g serving" if weight else "serving weight unknown"
    return f"{item.label} ({_percent(item.confidence)}% confidence, {weight_text})"
