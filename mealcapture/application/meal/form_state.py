"""
Meal form reconciliation state.

Single owner of the meal draft. Manual edits and normalized
recognition records both land here; last write wins.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog

from mealcapture.domain.capture.models import CaptureImage
from mealcapture.domain.meal.models import MACRO_FIELDS, MealDraft, MealEntry, MealType
from mealcapture.domain.meal.ports import IImageStorage, IMealRepository
from mealcapture.domain.nutrition.models import NutritionRecord
from mealcapture.domain.recognition.models import RecognitionStrategy
from mealcapture.domain.shared.errors import (
    IncompleteDraftError,
    PersistError,
    UploadError,
    ValidationError,
)
from mealcapture.domain.shared.value_objects import UserId

logger = structlog.get_logger(__name__)

EDITABLE_FIELDS = frozenset(MACRO_FIELDS) | {"meal_type", "notes"}


class MealFormState:
    """
    Draft editing and atomic submission.

    Example:
        >>> form = MealFormState(UserId(value="user_123"), storage, repository)
        >>> form.update_fields(calories=500, protein=30, carbs=50, fats=20)
        >>> meal_id = await form.submit()
    """

    def __init__(
        self,
        user_id: UserId,
        image_storage: IImageStorage,
        meal_repository: IMealRepository,
    ) -> None:
        self._user_id = user_id
        self._image_storage = image_storage
        self._meal_repository = meal_repository
        self._draft = MealDraft()
        self._in_flight = False
        self._submitted = False

    @property
    def draft(self) -> MealDraft:
        """Snapshot of the draft; mutate through the methods below."""
        return self._draft.model_copy()

    @property
    def submitting(self) -> bool:
        return self._in_flight

    @property
    def submitted(self) -> bool:
        return self._submitted

    def update_fields(self, **changes: Any) -> None:
        """
        Apply manual edits.

        Raises:
            ValidationError: Unknown field, negative or non-numeric macro
        """
        unknown = sorted(set(changes) - EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown draft field(s): {', '.join(unknown)}")

        updated = self._draft.model_copy()
        for name, value in changes.items():
            if name in MACRO_FIELDS and value is not None:
                value = _whole_non_negative(name, value)
            elif name == "meal_type":
                value = _meal_type(value)
            elif name == "notes":
                value = "" if value is None else str(value)
            setattr(updated, name, value)
        self._draft = updated

    def set_meal_type(self, meal_type: MealType | str) -> None:
        self.update_fields(meal_type=meal_type)

    def attach_image(self, image: Optional[CaptureImage]) -> None:
        self._draft = self._draft.model_copy(update={"image": image})

    def current_record(self) -> Optional[NutritionRecord]:
        """The typed values as a manual record, or None while incomplete."""
        if self._draft.missing_fields():
            return None
        return NutritionRecord(
            calories=self._draft.calories,
            protein=self._draft.protein,
            carbs=self._draft.carbs,
            fats=self._draft.fats,
            provenance_note=self._draft.notes,
            source=RecognitionStrategy.MANUAL,
        )

    def apply_normalized_record(self, record: Optional[NutritionRecord]) -> None:
        """Overwrite macros and notes with a normalized record. None is a no-op."""
        if record is None:
            return
        self._draft = self._draft.model_copy(
            update={
                "calories": record.calories,
                "protein": record.protein,
                "carbs": record.carbs,
                "fats": record.fats,
                "notes": record.provenance_note,
            }
        )
        logger.info(
            "Draft updated from recognition",
            source=record.source.value,
            calories=record.calories,
        )

    def validate(self) -> NutritionRecord:
        """
        Check the draft is submittable.

        Raises:
            IncompleteDraftError: Any macro missing or negative
        """
        record = self.current_record()
        if record is None:
            raise IncompleteDraftError(self._draft.missing_fields())
        return record

    async def submit(self) -> Optional[str]:
        """
        Upload the attached image, then persist the meal.

        Returns:
            Stored meal id, or None if a submit is in flight or done

        Raises:
            IncompleteDraftError: Draft not submittable
            UploadError: Image upload failed, nothing persisted
            PersistError: Meal row could not be written
        """
        if self._in_flight or self._submitted:
            logger.info("Submit ignored", in_flight=self._in_flight, submitted=self._submitted)
            return None

        record = self.validate()
        draft = self._draft
        self._in_flight = True
        try:
            image_url = None
            if draft.image is not None:
                image_url = await self._upload(draft.image)

            entry = MealEntry(
                user_id=str(self._user_id),
                meal_type=draft.meal_type,
                calories=record.calories,
                protein=record.protein,
                carbs=record.carbs,
                fats=record.fats,
                notes=draft.notes,
                image_url=image_url,
            )
            meal_id = await self._persist(entry)
        finally:
            self._in_flight = False

        self._submitted = True
        logger.info(
            "Meal submitted",
            meal_id=meal_id,
            user_id=str(self._user_id),
            meal_type=draft.meal_type.value,
            has_image=image_url is not None,
        )
        return meal_id

    def reset(self) -> None:
        """Discard the draft and start over."""
        self._draft = MealDraft()
        self._submitted = False
        logger.debug("Draft reset")

    async def _upload(self, image: CaptureImage) -> str:
        try:
            return await self._image_storage.upload(str(self._user_id), image.data, image.mime_type)
        except UploadError:
            logger.warning("Image upload failed", user_id=str(self._user_id))
            raise
        except Exception as e:
            logger.warning("Image upload failed", user_id=str(self._user_id), error=str(e))
            raise UploadError(f"Image upload failed: {e}") from e

    async def _persist(self, entry: MealEntry) -> str:
        try:
            return await self._meal_repository.insert(entry)
        except PersistError:
            logger.warning("Meal insert failed", user_id=entry.user_id)
            raise
        except Exception as e:
            logger.warning("Meal insert failed", user_id=entry.user_id, error=str(e))
            raise PersistError(f"Meal insert failed: {e}") from e


def _whole_non_negative(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{name} must be a number") from e
    if number < 0:
        raise ValidationError(f"{name} cannot be negative")
    if not number.is_integer():
        raise ValidationError(f"{name} must be a whole number")
    return int(number)


def _meal_type(value: Any) -> MealType:
    try:
        return MealType(value)
    except ValueError as e:
        raise ValidationError(f"Unknown meal type: {value}") from e
