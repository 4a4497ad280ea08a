"""
Shared fixtures for the capture pipeline tests.

Fakes stand in for the device, the recognition services and the
Supabase collaborators so every test runs offline.
"""

import asyncio
import io
from typing import Callable, List, Optional

import numpy as np
import pytest
from PIL import Image

from mealcapture.application.camera.session_manager import CameraSessionManager
from mealcapture.application.capture.source_adapter import CaptureSourceAdapter
from mealcapture.application.meal.capture_flow import MealCaptureFlow
from mealcapture.application.meal.form_state import MealFormState
from mealcapture.application.recognition.dispatcher import RecognitionDispatcher
from mealcapture.domain.barcode.openfoodfacts_models import OFFNutriments, OFFProduct
from mealcapture.domain.capture.models import CaptureImage, FacingMode
from mealcapture.domain.nutrition.normalizer import NutritionNormalizer
from mealcapture.domain.recognition.models import Prediction
from mealcapture.domain.shared.errors import CameraUnavailableError, LookupNotFoundError
from mealcapture.domain.shared.value_objects import BarcodeSymbol, UserId
from mealcapture.infrastructure.persistence.in_memory_image_storage import InMemoryImageStorage
from mealcapture.infrastructure.persistence.in_memory_meal_repository import (
    InMemoryMealRepository,
)


# ═══════════════════════════════════════════════════════════
# IMAGE HELPERS
# ═══════════════════════════════════════════════════════════


def encode_image(
    width: int,
    height: int,
    fmt: str = "JPEG",
    mode: str = "RGB",
    color: tuple = (200, 120, 40),
) -> bytes:
    """Encode a solid-color image."""
    if mode == "RGBA":
        color = tuple(color[:3]) + (128,)
    img = Image.new(mode, (width, height), color)
    output = io.BytesIO()
    img.save(output, format=fmt)
    return output.getvalue()


@pytest.fixture
def make_image() -> Callable[..., CaptureImage]:
    """Factory for JPEG CaptureImage instances."""

    def _make(width: int = 640, height: int = 480) -> CaptureImage:
        return CaptureImage(
            data=encode_image(width, height),
            mime_type="image/jpeg",
            width=width,
            height=height,
        )

    return _make


@pytest.fixture
def sample_image(make_image: Callable[..., CaptureImage]) -> CaptureImage:
    return make_image(640, 480)


# ═══════════════════════════════════════════════════════════
# CAMERA FAKES
# ═══════════════════════════════════════════════════════════


class FakeVideoStream:
    """In-memory stream producing solid RGB frames."""

    def __init__(self, facing: FacingMode, width: int = 1280, height: int = 720) -> None:
        self._facing = facing
        self.width = width
        self.height = height
        self.stopped = False
        self.stop_calls = 0

    @property
    def facing(self) -> FacingMode:
        return self._facing

    @property
    def active(self) -> bool:
        return not self.stopped

    def read_frame(self) -> np.ndarray:
        if self.stopped:
            raise CameraUnavailableError("stream stopped")
        return np.full((self.height, self.width, 3), 128, dtype=np.uint8)

    def stop(self) -> None:
        self.stop_calls += 1
        self.stopped = True


class FakeCameraBackend:
    """
    Scriptable ICameraBackend.

    `fail_with` makes the next opens raise; `gate` holds opens until set.
    """

    def __init__(self) -> None:
        self.opened: List[FakeVideoStream] = []
        self.requests: List[tuple] = []
        self.fail_with: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.frame_size = (1280, 720)

    async def open_stream(self, facing: FacingMode, width: int, height: int) -> FakeVideoStream:
        self.requests.append((facing, width, height))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        stream = FakeVideoStream(facing, *self.frame_size)
        self.opened.append(stream)
        return stream

    @property
    def live_streams(self) -> List[FakeVideoStream]:
        return [s for s in self.opened if not s.stopped]


@pytest.fixture
def camera_backend() -> FakeCameraBackend:
    return FakeCameraBackend()


@pytest.fixture
def camera(camera_backend: FakeCameraBackend) -> CameraSessionManager:
    return CameraSessionManager(camera_backend)


# ═══════════════════════════════════════════════════════════
# RECOGNITION FAKES
# ═══════════════════════════════════════════════════════════


class FakeBarcodeDecoder:
    def __init__(self, symbol: Optional[str] = "0001") -> None:
        self.symbol = symbol
        self.calls = 0

    def decode(self, image: CaptureImage) -> Optional[str]:
        self.calls += 1
        return self.symbol


class FakeProductLookup:
    def __init__(self, products: Optional[dict] = None) -> None:
        self.products = products or {}
        self.requested: List[str] = []

    async def get_product(self, symbol: BarcodeSymbol) -> OFFProduct:
        self.requested.append(symbol.value)
        product = self.products.get(symbol.value)
        if product is None:
            raise LookupNotFoundError(f"Barcode {symbol.value} not found")
        return product


class FakeDetectionClient:
    def __init__(self, predictions: Optional[List[Prediction]] = None) -> None:
        self.predictions = predictions or []
        self.images: List[CaptureImage] = []

    async def predict(self, image: CaptureImage) -> List[Prediction]:
        self.images.append(image)
        return list(self.predictions)


class FakeVisionClient:
    def __init__(self, reply: str = "") -> None:
        self.reply = reply
        self.prompts: List[str] = []
        self.gate: Optional[asyncio.Event] = None

    async def analyze_image(self, image: CaptureImage, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.gate is not None:
            await self.gate.wait()
        return self.reply


@pytest.fixture
def test_bar_product() -> OFFProduct:
    """Product behind barcode 0001."""
    return OFFProduct(
        code="0001",
        product_name="Test Bar",
        nutriments=OFFNutriments(energy_kcal=250, proteins=10, carbohydrates=40, fat=8),
    )


@pytest.fixture
def barcode_decoder() -> FakeBarcodeDecoder:
    return FakeBarcodeDecoder("0001")


@pytest.fixture
def product_lookup(test_bar_product: OFFProduct) -> FakeProductLookup:
    return FakeProductLookup({"0001": test_bar_product})


@pytest.fixture
def detection_client() -> FakeDetectionClient:
    return FakeDetectionClient(
        [
            Prediction(class_name="Samosa", confidence=0.9),
            Prediction(class_name="Unknown123", confidence=0.8),
            Prediction(class_name="Dal", confidence=0.4),
        ]
    )


@pytest.fixture
def vision_client() -> FakeVisionClient:
    return FakeVisionClient(
        '{"items":[{"name":"Pasta","quantity":"1 plate","calories":450,"protein":15,'
        '"carbs":70,"fats":12}],"total":{"calories":450,"protein":15,"carbs":70,"fats":12},'
        '"summary":"A plate of pasta."}'
    )


@pytest.fixture
def dispatcher(
    barcode_decoder: FakeBarcodeDecoder,
    product_lookup: FakeProductLookup,
    detection_client: FakeDetectionClient,
    vision_client: FakeVisionClient,
) -> RecognitionDispatcher:
    return RecognitionDispatcher(
        barcode_decoder=barcode_decoder,
        product_lookup=product_lookup,
        detection_client=detection_client,
        vision_client=vision_client,
    )


# ═══════════════════════════════════════════════════════════
# MEAL FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def user_id() -> UserId:
    return UserId(value="user_123")


@pytest.fixture
def image_storage() -> InMemoryImageStorage:
    return InMemoryImageStorage()


@pytest.fixture
def meal_repository() -> InMemoryMealRepository:
    return InMemoryMealRepository()


@pytest.fixture
def form(
    user_id: UserId,
    image_storage: InMemoryImageStorage,
    meal_repository: InMemoryMealRepository,
) -> MealFormState:
    return MealFormState(user_id, image_storage, meal_repository)


@pytest.fixture
def flow(
    camera: CameraSessionManager,
    dispatcher: RecognitionDispatcher,
    form: MealFormState,
) -> MealCaptureFlow:
    return MealCaptureFlow(
        camera=camera,
        adapter=CaptureSourceAdapter(),
        dispatcher=dispatcher,
        normalizer=NutritionNormalizer(),
        form=form,
    )
