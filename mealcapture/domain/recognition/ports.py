"""
Ports (Interfaces) for recognition dependencies.

The dispatcher talks to barcode decoding, product lookup,
object detection and generative vision only through these.
"""

from typing import List, Optional, Protocol, runtime_checkable

from mealcapture.domain.barcode.openfoodfacts_models import OFFProduct
from mealcapture.domain.capture.models import CaptureImage
from mealcapture.domain.recognition.models import Prediction
from mealcapture.domain.shared.value_objects import BarcodeSymbol


@runtime_checkable
class IBarcodeDecoder(Protocol):
    """Port for local barcode symbol decoding."""

    def decode(self, image: CaptureImage) -> Optional[str]:
        """
        Decode the first barcode symbol in the image.

        Returns:
            Symbol text, or None if no barcode pattern is found
        """
        ...


@runtime_checkable
class IProductLookup(Protocol):
    """Port for barcode-to-product lookup."""

    async def get_product(self, symbol: BarcodeSymbol) -> OFFProduct:
        """
        Look up a product by barcode.

        Raises:
            LookupNotFoundError: If no product matches
            UpstreamError: On service failure
        """
        ...


@runtime_checkable
class IDetectionClient(Protocol):
    """Port for the object detection inference service."""

    async def predict(self, image: CaptureImage) -> List[Prediction]:
        """
        Run detection on an image.

        Returns:
            Predictions in service order

        Raises:
            UpstreamError: On service failure or malformed payload
        """
        ...


@runtime_checkable
class IVisionClient(Protocol):
    """Port for the generative vision-language service."""

    async def analyze_image(self, image: CaptureImage, prompt: str) -> str:
        """
        Ask the model about an image.

        Returns:
            Raw reply text

        Raises:
            UpstreamError: On service failure or empty reply
        """
        ...
