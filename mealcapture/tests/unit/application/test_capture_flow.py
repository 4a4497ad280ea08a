"""Unit tests for MealCaptureFlow."""

import asyncio
import io

from PIL import Image

from mealcapture.application.meal.capture_flow import MealCaptureFlow
from mealcapture.domain.capture.models import CameraState, UploadedFile
from mealcapture.domain.nutrition.normalizer import UNRESOLVED_HEADER
from mealcapture.domain.recognition.models import Prediction, RecognitionStrategy
from mealcapture.domain.shared.errors import CameraUnavailableError


def _upload(width: int = 1600, height: int = 1200) -> UploadedFile:
    output = io.BytesIO()
    Image.new("RGB", (width, height), (10, 200, 30)).save(output, format="JPEG")
    return UploadedFile(filename="meal.jpg", content_type="image/jpeg", data=output.getvalue())


def _macros(flow: MealCaptureFlow) -> tuple:
    draft = flow.form.draft
    return (draft.calories, draft.protein, draft.carbs, draft.fats)


class TestBarcodeFromCamera:
    async def test_scan_fills_draft(self, flow: MealCaptureFlow) -> None:
        flow.select_strategy(RecognitionStrategy.BARCODE)
        assert await flow.start_camera()

        record = await flow.capture_from_camera()

        assert record is not None
        assert (record.calories, record.protein, record.carbs, record.fats) == (250, 10, 40, 8)
        assert _macros(flow) == (250, 10, 40, 8)
        assert flow.form.draft.notes == "Product: Test Bar"
        assert flow.form.draft.image is not None
        assert flow.error_message is None

    async def test_camera_released_after_capture(self, flow, camera_backend) -> None:
        flow.select_strategy(RecognitionStrategy.BARCODE)
        await flow.start_camera()

        await flow.capture_from_camera()

        assert flow.camera.state is CameraState.CLOSED
        assert camera_backend.live_streams == []

    async def test_camera_released_when_recognition_fails(
        self, flow, camera_backend, vision_client
    ) -> None:
        vision_client.reply = "no json here"
        flow.select_strategy(RecognitionStrategy.GENERATIVE_ANALYSIS)
        await flow.start_camera()

        assert await flow.capture_from_camera() is None

        assert flow.error_message is not None
        assert flow.camera.state is CameraState.CLOSED
        assert camera_backend.live_streams == []
        assert flow.form.draft.image is None

    async def test_retake_after_capture(self, flow, camera_backend) -> None:
        flow.select_strategy(RecognitionStrategy.BARCODE)
        await flow.start_camera()
        await flow.capture_from_camera()

        assert await flow.start_camera()
        assert await flow.capture_from_camera() is not None

        assert len(camera_backend.opened) == 2
        assert camera_backend.live_streams == []

    async def test_recognition_uses_normalized_image(self, flow, detection_client) -> None:
        flow.select_strategy(RecognitionStrategy.OBJECT_DETECTION)
        await flow.start_camera()

        await flow.capture_from_camera()

        sent = detection_client.images[-1]
        assert sent.longest_side <= 800
        assert flow.form.draft.image is not None
        assert flow.form.draft.image.width == 1280


class TestDetectionFromFile:
    async def test_samosa_unknown_dal(self, flow: MealCaptureFlow) -> None:
        flow.select_strategy(RecognitionStrategy.OBJECT_DETECTION)

        record = await flow.capture_from_file(_upload())

        assert record is not None
        assert _macros(flow) == (262, 4, 30, 13)
        notes = flow.form.draft.notes
        assert "Samosa (90% confidence, 100g serving)" in notes
        assert UNRESOLVED_HEADER in notes
        assert "Unknown123" in notes
        assert "Dal" not in notes

    async def test_nothing_confident_sets_error(self, flow, detection_client) -> None:
        detection_client.predictions = [Prediction(class_name="Dal", confidence=0.2)]
        flow.select_strategy(RecognitionStrategy.OBJECT_DETECTION)

        assert await flow.capture_from_file(_upload()) is None
        assert flow.error_message is not None
        assert flow.outcome is None


class TestGenerative:
    async def test_malformed_reply_leaves_draft(self, flow, vision_client) -> None:
        flow.form.update_fields(calories=100, protein=5, carbs=10, fats=2, notes="typed")
        vision_client.reply = "I think this is a salad, roughly 300 kcal."
        flow.select_strategy(RecognitionStrategy.GENERATIVE_ANALYSIS)

        record = await flow.capture_from_file(_upload())

        assert record is None
        assert flow.error_message is not None
        assert _macros(flow) == (100, 5, 10, 2)
        assert flow.form.draft.notes == "typed"

    async def test_failed_attempt_leaves_whole_draft(self, flow, vision_client) -> None:
        flow.form.update_fields(calories=100, protein=5, carbs=10, fats=2, notes="typed")
        before = flow.form.draft
        vision_client.reply = "no json here"
        flow.select_strategy(RecognitionStrategy.GENERATIVE_ANALYSIS)

        assert await flow.capture_from_file(_upload()) is None

        assert flow.form.draft == before
        assert flow.form.draft.image is None

    async def test_error_dismissed(self, flow, vision_client) -> None:
        vision_client.reply = "no json here"
        flow.select_strategy(RecognitionStrategy.GENERATIVE_ANALYSIS)
        await flow.capture_from_file(_upload())

        flow.dismiss_error()

        assert flow.error_message is None

    async def test_summary_and_items_in_notes(self, flow: MealCaptureFlow) -> None:
        flow.select_strategy(RecognitionStrategy.GENERATIVE_ANALYSIS)

        await flow.capture_from_file(_upload())

        assert flow.form.draft.notes == "A plate of pasta.\n\n- Pasta: 1 plate"
        assert _macros(flow) == (450, 15, 70, 12)


class TestManual:
    async def test_manual_is_identity(self, flow: MealCaptureFlow) -> None:
        flow.form.update_fields(calories=500, protein=30, carbs=50, fats=20)

        record = await flow.capture_from_file(_upload())

        assert record is not None
        assert (record.calories, record.protein, record.carbs, record.fats) == (500, 30, 50, 20)
        assert _macros(flow) == (500, 30, 50, 20)

    async def test_manual_with_empty_draft(self, flow: MealCaptureFlow) -> None:
        assert await flow.capture_from_file(_upload()) is None
        assert _macros(flow) == (None, None, None, None)


class TestAttempts:
    async def test_new_attempt_replaces_outcome(self, flow: MealCaptureFlow) -> None:
        flow.select_strategy(RecognitionStrategy.BARCODE)
        await flow.capture_from_file(_upload())
        flow.select_strategy(RecognitionStrategy.OBJECT_DETECTION)
        await flow.capture_from_file(_upload())

        assert flow.outcome is not None
        assert flow.outcome.strategy is RecognitionStrategy.OBJECT_DETECTION
        assert _macros(flow) == (262, 4, 30, 13)
        assert "Product:" not in flow.form.draft.notes

    async def test_superseded_attempt_discarded(self, flow, vision_client) -> None:
        vision_client.gate = asyncio.Event()
        flow.select_strategy(RecognitionStrategy.GENERATIVE_ANALYSIS)
        slow = asyncio.create_task(flow.capture_from_file(_upload()))
        await asyncio.sleep(0)

        flow.select_strategy(RecognitionStrategy.BARCODE)
        assert await flow.capture_from_file(_upload()) is not None

        vision_client.gate.set()
        assert await slow is None
        assert _macros(flow) == (250, 10, 40, 8)
        assert flow.outcome.strategy is RecognitionStrategy.BARCODE

    async def test_superseded_attempt_keeps_its_image_out(self, flow, vision_client) -> None:
        vision_client.gate = asyncio.Event()
        flow.select_strategy(RecognitionStrategy.GENERATIVE_ANALYSIS)
        slow = asyncio.create_task(flow.capture_from_file(_upload(1600, 1200)))
        await asyncio.sleep(0)

        flow.select_strategy(RecognitionStrategy.BARCODE)
        await flow.capture_from_file(_upload(900, 600))
        vision_client.gate.set()
        await slow

        assert flow.form.draft.image.width == 900

    async def test_camera_reopened_during_recognition(self, flow, vision_client) -> None:
        vision_client.gate = asyncio.Event()
        flow.select_strategy(RecognitionStrategy.GENERATIVE_ANALYSIS)
        await flow.start_camera()
        pending = asyncio.create_task(flow.capture_from_camera())
        await asyncio.sleep(0)

        assert await flow.start_camera()
        vision_client.gate.set()

        assert await pending is None
        assert _macros(flow) == (None, None, None, None)
        assert flow.form.draft.image is None
        assert flow.camera.state is CameraState.STREAMING


class TestCamera:
    async def test_unavailable_camera(self, flow, camera_backend) -> None:
        camera_backend.fail_with = CameraUnavailableError("Permission denied")

        assert not await flow.start_camera()

        assert "Permission denied" in flow.error_message
        assert not flow.camera.camera_available
        assert camera_backend.live_streams == []

    async def test_capture_without_stream(self, flow: MealCaptureFlow) -> None:
        flow.select_strategy(RecognitionStrategy.BARCODE)

        assert await flow.capture_from_camera() is None
        assert flow.error_message is not None

    async def test_frame_read_failure_errors_session(self, flow, camera_backend) -> None:
        flow.select_strategy(RecognitionStrategy.BARCODE)
        await flow.start_camera()
        stream = camera_backend.opened[-1]

        def dead_frame():
            raise CameraUnavailableError("frame grab failed")

        stream.read_frame = dead_frame

        assert await flow.capture_from_camera() is None

        assert "frame grab failed" in flow.error_message
        assert flow.camera.state is CameraState.ERRORED
        assert not flow.camera.camera_available
        assert flow.camera.error == "frame grab failed"
        assert camera_backend.live_streams == []
        assert flow.form.draft.image is None

    async def test_capture_while_errored_keeps_errored(self, flow, camera_backend) -> None:
        camera_backend.fail_with = CameraUnavailableError("Permission denied")
        await flow.start_camera()
        flow.select_strategy(RecognitionStrategy.BARCODE)

        assert await flow.capture_from_camera() is None

        assert flow.camera.state is CameraState.ERRORED

    async def test_restart_after_frame_failure(self, flow, camera_backend) -> None:
        flow.select_strategy(RecognitionStrategy.BARCODE)
        await flow.start_camera()
        flow.camera.mark_unavailable("frame grab failed")

        assert await flow.start_camera()
        assert await flow.capture_from_camera() is not None
        assert flow.camera.camera_available

    async def test_strategy_change_keeps_session(self, flow: MealCaptureFlow) -> None:
        await flow.start_camera()
        flow.select_strategy(RecognitionStrategy.BARCODE)
        flow.select_strategy(RecognitionStrategy.BARCODE)

        assert flow.camera.state is CameraState.STREAMING

    async def test_switch_camera(self, flow, camera_backend) -> None:
        await flow.start_camera()

        assert await flow.switch_camera()

        assert len(camera_backend.live_streams) == 1

    async def test_aclose_releases_everything(self, flow, camera_backend) -> None:
        await flow.start_camera()
        flow.form.update_fields(calories=10)

        await flow.aclose()
        await flow.aclose()

        assert flow.camera.state is CameraState.CLOSED
        assert camera_backend.live_streams == []
        assert flow.form.draft.calories is None


async def test_end_to_end_submit(flow, meal_repository) -> None:
    flow.select_strategy(RecognitionStrategy.BARCODE)
    await flow.start_camera()
    await flow.capture_from_camera()
    flow.form.set_meal_type("snack")

    meal_id = await flow.form.submit()
    await flow.aclose()

    entry = meal_repository.get(meal_id)
    assert entry is not None
    assert entry.notes == "Product: Test Bar"
    assert entry.meal_type.value == "snack"
    assert entry.image_url is not None
