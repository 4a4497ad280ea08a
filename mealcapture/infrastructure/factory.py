"""Pipeline factory.

Environment-based wiring of the capture pipeline.
Strategy:
- Supabase storage and meals table when SUPABASE_URL/SUPABASE_KEY are set
- In-memory storage and repository otherwise (local runs)
- OpenAI vision and the detection endpoint need their keys/URL

Usage:
    from mealcapture.infrastructure.factory import open_capture_flow

    async with open_capture_flow("user_123") as flow:
        await flow.start_camera()
        ...
"""

from contextlib import AsyncExitStack, asynccontextmanager
from functools import partial
from typing import AsyncIterator, Optional

from mealcapture.application.camera.session_manager import CameraSessionManager
from mealcapture.application.capture.source_adapter import CaptureSourceAdapter
from mealcapture.application.meal.capture_flow import MealCaptureFlow
from mealcapture.application.meal.form_state import MealFormState
from mealcapture.application.recognition.dispatcher import RecognitionDispatcher
from mealcapture.domain.capture.models import FacingMode
from mealcapture.domain.meal.ports import IImageStorage, IMealRepository
from mealcapture.domain.nutrition.normalizer import NutritionNormalizer
from mealcapture.domain.shared.value_objects import UserId
from mealcapture.infrastructure.ai.openai_client import OpenAIVisionClient
from mealcapture.infrastructure.barcode.zxing_decoder import ZXingBarcodeDecoder
from mealcapture.infrastructure.camera.cv2_camera import CV2CameraBackend
from mealcapture.infrastructure.config import CaptureSettings
from mealcapture.infrastructure.detection.api_client import DetectionApiClient
from mealcapture.infrastructure.openfoodfacts.api_client import OpenFoodFactsClient
from mealcapture.infrastructure.persistence.in_memory_image_storage import InMemoryImageStorage
from mealcapture.infrastructure.persistence.in_memory_meal_repository import (
    InMemoryMealRepository,
)
from mealcapture.infrastructure.persistence.supabase_meal_repository import (
    SupabaseMealRepository,
)
from mealcapture.infrastructure.supabase.client import get_supabase_client
from mealcapture.infrastructure.supabase.storage import SupabaseImageStorage


def create_camera_manager(settings: CaptureSettings) -> CameraSessionManager:
    backend = CV2CameraBackend(
        {
            FacingMode.ENVIRONMENT: settings.camera_index_environment,
            FacingMode.USER: settings.camera_index_user,
        }
    )
    return CameraSessionManager(backend)


def create_vision_client(settings: CaptureSettings) -> OpenAIVisionClient:
    """Create the generative vision client.

    Raises:
        ValueError: If OPENAI_API_KEY is not set
    """
    if not settings.openai_api_key:
        raise ValueError("OPENAI_API_KEY not set. Set it in .env to enable generative analysis")
    return OpenAIVisionClient(
        api_key=settings.openai_api_key,
        model=settings.openai_vision_model,
    )


def create_detection_client(settings: CaptureSettings) -> DetectionApiClient:
    """Create the object detection client.

    Raises:
        ValueError: If DETECTION_API_URL is not set
    """
    if not settings.detection_api_url:
        raise ValueError("DETECTION_API_URL not set. Set it in .env to enable object detection")
    return DetectionApiClient(
        url=settings.detection_api_url,
        api_key=settings.detection_api_key,
        timeout_seconds=settings.http_timeout_seconds,
        max_retries=settings.http_max_retries,
    )


def create_meal_collaborators(
    settings: CaptureSettings,
) -> tuple[IImageStorage, IMealRepository]:
    """Storage and repository; in-memory adapters when Supabase is not configured."""
    if not settings.supabase_configured:
        return InMemoryImageStorage(bucket=settings.supabase_bucket), InMemoryMealRepository()
    client_factory = partial(get_supabase_client, settings.supabase_url, settings.supabase_key)
    return (
        SupabaseImageStorage(client_factory, bucket=settings.supabase_bucket),
        SupabaseMealRepository(client_factory, table=settings.supabase_meals_table),
    )


@asynccontextmanager
async def open_capture_flow(
    user_id: str, settings: Optional[CaptureSettings] = None
) -> AsyncIterator[MealCaptureFlow]:
    """
    Build a fully wired MealCaptureFlow.

    HTTP sessions are opened for the lifetime of the context and the
    camera is released on exit.

    Raises:
        ValueError: If a required service is not configured
    """
    settings = settings or CaptureSettings.from_env()
    vision_client = create_vision_client(settings)
    detection_client = create_detection_client(settings)
    storage, repository = create_meal_collaborators(settings)

    async with AsyncExitStack() as stack:
        off_client = await stack.enter_async_context(
            OpenFoodFactsClient(
                base_url=settings.off_base_url,
                timeout_seconds=settings.http_timeout_seconds,
                max_retries=settings.http_max_retries,
            )
        )
        detection = await stack.enter_async_context(detection_client)

        dispatcher = RecognitionDispatcher(
            barcode_decoder=ZXingBarcodeDecoder(),
            product_lookup=off_client,
            detection_client=detection,
            vision_client=vision_client,
            confidence_threshold=settings.detection_confidence_threshold,
        )
        form = MealFormState(
            UserId.from_string(user_id),
            storage,
            repository,
        )
        flow = MealCaptureFlow(
            camera=create_camera_manager(settings),
            adapter=CaptureSourceAdapter(),
            dispatcher=dispatcher,
            normalizer=NutritionNormalizer(),
            form=form,
        )
        try:
            yield flow
        finally:
            await flow.aclose()
