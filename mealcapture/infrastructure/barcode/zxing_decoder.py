"""Barcode decoding with zxing-cpp."""

import io
from typing import Optional

import numpy as np
import structlog
import zxingcpp
from PIL import Image, UnidentifiedImageError

from mealcapture.domain.capture.models import CaptureImage
from mealcapture.domain.shared.errors import InvalidImageError

logger = structlog.get_logger(__name__)


class ZXingBarcodeDecoder:
    """
    IBarcodeDecoder over zxingcpp.read_barcodes.

    Returns the first non-empty symbol; EAN, UPC, QR and the other
    formats zxing-cpp supports are all accepted.
    """

    def decode(self, image: CaptureImage) -> Optional[str]:
        try:
            with Image.open(io.BytesIO(image.data)) as img:
                pixels = np.array(img.convert("RGB"))
        except (UnidentifiedImageError, OSError) as e:
            raise InvalidImageError("Image could not be decoded for barcode scanning") from e

        results = zxingcpp.read_barcodes(pixels)
        texts = [r.text for r in results if r and r.text]
        logger.debug("zxing scan", found=len(texts))
        return texts[0] if texts else None
