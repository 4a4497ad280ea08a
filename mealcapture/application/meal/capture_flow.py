"""
Meal capture flow.

Wires the camera session, capture adapter, recognition dispatcher,
normalizer and form state into the add-meal screen's behaviour.
Every capture is one attempt; late results of superseded attempts
are dropped instead of being written into the draft.
"""

from __future__ import annotations

from typing import Optional

import structlog

from mealcapture.application.camera.session_manager import CameraSessionManager
from mealcapture.application.capture.source_adapter import CaptureSourceAdapter
from mealcapture.application.meal.form_state import MealFormState
from mealcapture.application.recognition.dispatcher import RecognitionDispatcher
from mealcapture.domain.capture.models import (
    CameraState,
    CaptureImage,
    FacingMode,
    UploadedFile,
)
from mealcapture.domain.nutrition.models import NutritionRecord
from mealcapture.domain.nutrition.normalizer import NutritionNormalizer
from mealcapture.domain.recognition.models import RecognitionOutcome, RecognitionStrategy
from mealcapture.domain.shared.errors import (
    CameraUnavailableError,
    CaptureDomainError,
    RecognitionError,
)

logger = structlog.get_logger(__name__)


class MealCaptureFlow:
    """
    Coordinator for one add-meal session.

    Errors from the camera and from recognition are caught and kept
    as a dismissible message; the draft is never touched by a failed
    attempt.

    Example:
        >>> flow = MealCaptureFlow(camera, adapter, dispatcher, NutritionNormalizer(), form)
        >>> flow.select_strategy(RecognitionStrategy.BARCODE)
        >>> await flow.start_camera()
        >>> record = await flow.capture_from_camera()
        >>> meal_id = await flow.form.submit()
        >>> await flow.aclose()
    """

    def __init__(
        self,
        camera: CameraSessionManager,
        adapter: CaptureSourceAdapter,
        dispatcher: RecognitionDispatcher,
        normalizer: NutritionNormalizer,
        form: MealFormState,
    ) -> None:
        self.camera = camera
        self.adapter = adapter
        self.dispatcher = dispatcher
        self.normalizer = normalizer
        self.form = form
        self._strategy = RecognitionStrategy.MANUAL
        self._attempt = 0
        self._outcome: Optional[RecognitionOutcome] = None
        self._error_message: Optional[str] = None

    @property
    def strategy(self) -> RecognitionStrategy:
        return self._strategy

    @property
    def attempt(self) -> int:
        return self._attempt

    @property
    def outcome(self) -> Optional[RecognitionOutcome]:
        """Outcome of the latest completed attempt."""
        return self._outcome

    @property
    def error_message(self) -> Optional[str]:
        return self._error_message

    def dismiss_error(self) -> None:
        self._error_message = None

    def select_strategy(self, strategy: RecognitionStrategy) -> None:
        """Idempotent; an open camera session stays open."""
        if strategy is self._strategy:
            return
        logger.info("Strategy selected", previous=self._strategy.value, strategy=strategy.value)
        self._strategy = strategy

    async def start_camera(self, facing: Optional[FacingMode] = None) -> bool:
        """Open the camera; False when the device could not be acquired."""
        try:
            stream = await self.camera.open(facing)
        except CameraUnavailableError as e:
            self._error_message = f"Camera unavailable: {e}"
            return False
        return stream is not None

    async def switch_camera(self) -> bool:
        try:
            stream = await self.camera.switch_facing()
        except CameraUnavailableError as e:
            self._error_message = f"Camera unavailable: {e}"
            return False
        return stream is not None

    def stop_camera(self) -> None:
        self.camera.close()

    async def capture_from_camera(self) -> Optional[NutritionRecord]:
        """
        Snapshot the live stream, release the camera and recognize the photo.

        A stream that fails to deliver a frame puts the session in
        ERRORED until the camera is started again.

        Returns:
            Record applied to the draft, or None if the attempt failed,
            was superseded, or the strategy is manual
        """
        attempt = self._begin_attempt()
        try:
            image = self.adapter.from_stream(self.camera.require_stream())
        except CameraUnavailableError as e:
            self.camera.mark_unavailable(str(e) or e.__class__.__name__)
            return self._fail(attempt, e)
        except CaptureDomainError as e:
            # ERRORED stays ERRORED; only a held stream is released
            if self.camera.state is CameraState.STREAMING:
                self.camera.close()
            return self._fail(attempt, e)

        self.camera.close()
        return await self._recognize(attempt, image, self.camera.epoch)

    async def capture_from_file(self, upload: UploadedFile) -> Optional[NutritionRecord]:
        """Recognize an uploaded photo; same contract as capture_from_camera()."""
        attempt = self._begin_attempt()
        try:
            image = self.adapter.from_file(upload)
        except CaptureDomainError as e:
            return self._fail(attempt, e)
        return await self._recognize(attempt, image, None)

    async def aclose(self) -> None:
        """Leave the flow: release the camera and discard the draft."""
        self._attempt += 1
        self.camera.close()
        self.form.reset()
        self._outcome = None
        self._error_message = None
        logger.info("Capture flow closed")

    def _begin_attempt(self) -> int:
        self._attempt += 1
        self._error_message = None
        return self._attempt

    def _is_stale(self, attempt: int, epoch: Optional[int]) -> bool:
        if attempt != self._attempt:
            return True
        return epoch is not None and epoch != self.camera.epoch

    async def _recognize(
        self, attempt: int, image: CaptureImage, epoch: Optional[int]
    ) -> Optional[NutritionRecord]:
        strategy = self._strategy
        original = image

        try:
            if strategy.needs_image:
                image = self.adapter.normalize(image)
            outcome = await self.dispatcher.dispatch(image, strategy)
        except (RecognitionError, CaptureDomainError) as e:
            if self._is_stale(attempt, epoch):
                logger.info("Discarded failure of superseded attempt", attempt=attempt)
                return None
            return self._fail(attempt, e)

        if self._is_stale(attempt, epoch):
            logger.info(
                "Discarded result of superseded attempt",
                attempt=attempt,
                current_attempt=self._attempt,
                strategy=strategy.value,
            )
            return None

        self._outcome = outcome
        record = self.normalizer.normalize(outcome, current=self.form.current_record())
        self.form.attach_image(original)
        self.form.apply_normalized_record(record)
        logger.info(
            "Capture attempt applied",
            attempt=attempt,
            strategy=strategy.value,
            calories=record.calories if record else None,
        )
        return record

    def _fail(self, attempt: int, error: Exception) -> None:
        self._outcome = None
        self._error_message = str(error) or error.__class__.__name__
        logger.warning(
            "Capture attempt failed",
            attempt=attempt,
            strategy=self._strategy.value,
            error_type=error.__class__.__name__,
            error=self._error_message,
        )
        return None
