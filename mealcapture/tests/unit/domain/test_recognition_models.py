"""Unit tests for recognition and capture domain models."""

import pytest
from pydantic import ValidationError

from mealcapture.domain.capture.models import CaptureImage, FacingMode
from mealcapture.domain.recognition.models import (
    DetectedItem,
    DetectionOutcome,
    MacroValues,
    Prediction,
    RecognitionStrategy,
    round_half_away,
)


class TestRoundHalfAway:
    @pytest.mark.parametrize(
        "value,expected",
        [(2.5, 3), (3.5, 4), (0.4, 0), (0.5, 1), (7.49, 7), (-2.5, -3), (0.0, 0)],
    )
    def test_rounding(self, value: float, expected: int) -> None:
        assert round_half_away(value) == expected


class TestMacroValues:
    def test_rounded_uses_half_away(self) -> None:
        macros = MacroValues(calories=249.5, protein=10.5, carbs=40.4, fats=7.5)
        rounded = macros.rounded()
        assert (rounded.calories, rounded.protein, rounded.carbs, rounded.fats) == (250, 11, 40, 8)

    def test_add(self) -> None:
        total = MacroValues(calories=100, protein=1) + MacroValues(calories=50, fats=2)
        assert total == MacroValues(calories=150, protein=1, carbs=0, fats=2)

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValidationError):
            MacroValues(calories=-1)


class TestRecognitionStrategy:
    def test_manual_needs_no_image(self) -> None:
        assert not RecognitionStrategy.MANUAL.needs_image
        assert RecognitionStrategy.BARCODE.needs_image
        assert RecognitionStrategy.OBJECT_DETECTION.needs_image
        assert RecognitionStrategy.GENERATIVE_ANALYSIS.needs_image


class TestDetectionOutcome:
    def test_resolved_split(self) -> None:
        outcome = DetectionOutcome(
            items=[
                DetectedItem(label="Samosa", confidence=0.9, macros=MacroValues(calories=262)),
                DetectedItem(label="Unknown123", confidence=0.8),
            ]
        )
        assert [i.label for i in outcome.resolved_items] == ["Samosa"]
        assert [i.label for i in outcome.unresolved_items] == ["Unknown123"]

    def test_confidence_bounds(self) -> None:
        with pytest.raises(ValidationError):
            DetectedItem(label="Samosa", confidence=1.5)


class TestPrediction:
    def test_parses_wire_alias(self) -> None:
        prediction = Prediction.model_validate({"class": "Samosa", "confidence": 0.9})
        assert prediction.class_name == "Samosa"

    def test_populate_by_name(self) -> None:
        assert Prediction(class_name="Dal", confidence=0.4).confidence == 0.4


class TestCaptureModels:
    def test_facing_toggle(self) -> None:
        assert FacingMode.ENVIRONMENT.toggled() is FacingMode.USER
        assert FacingMode.USER.toggled() is FacingMode.ENVIRONMENT

    def test_capture_image_properties(self) -> None:
        image = CaptureImage(data=b"\xff\xd8", mime_type="image/jpeg", width=800, height=400)
        assert image.longest_side == 800
        assert image.aspect_ratio == 2.0
        assert image.size_bytes == 2

    def test_capture_image_rejects_non_image_mime(self) -> None:
        with pytest.raises(ValidationError):
            CaptureImage(data=b"%PDF", mime_type="application/pdf", width=1, height=1)

    def test_capture_image_rejects_empty_buffer(self) -> None:
        with pytest.raises(ValidationError):
            CaptureImage(data=b"", mime_type="image/jpeg", width=1, height=1)
