"""
OpenCV webcam backend.

Each facing direction maps to a device index
(CAMERA_INDEX_ENVIRONMENT / CAMERA_INDEX_USER, defaults 0 and 1).
Device open is blocking, so it runs in the default executor.
"""

from __future__ import annotations

import asyncio
from typing import Mapping, Optional

import cv2
import numpy as np
import structlog

from mealcapture.domain.capture.models import FacingMode
from mealcapture.domain.shared.errors import CameraUnavailableError

logger = structlog.get_logger(__name__)

DEFAULT_DEVICE_INDICES: Mapping[FacingMode, int] = {
    FacingMode.ENVIRONMENT: 0,
    FacingMode.USER: 1,
}


class CV2VideoStream:
    """Live stream backed by one cv2.VideoCapture."""

    def __init__(self, capture: cv2.VideoCapture, facing: FacingMode, device_index: int) -> None:
        self._capture: Optional[cv2.VideoCapture] = capture
        self._facing = facing
        self.device_index = device_index

    @property
    def facing(self) -> FacingMode:
        return self._facing

    @property
    def active(self) -> bool:
        return self._capture is not None and self._capture.isOpened()

    def read_frame(self) -> np.ndarray:
        if self._capture is None or not self._capture.isOpened():
            raise CameraUnavailableError(f"Camera device {self.device_index} is not open")
        ok, frame = self._capture.read()
        if not ok or frame is None:
            raise CameraUnavailableError(f"Frame capture failed on device {self.device_index}")
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

    def stop(self) -> None:
        capture, self._capture = self._capture, None
        if capture is not None:
            capture.release()
            logger.debug("cv2 device released", device=self.device_index)


class CV2CameraBackend:
    """Acquires streams from local video devices."""

    def __init__(self, device_indices: Optional[Mapping[FacingMode, int]] = None) -> None:
        self._device_indices = dict(device_indices or DEFAULT_DEVICE_INDICES)

    async def open_stream(self, facing: FacingMode, width: int, height: int) -> CV2VideoStream:
        index = self._device_indices.get(facing)
        if index is None:
            raise CameraUnavailableError(f"No camera configured for facing '{facing.value}'")
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._open_sync, facing, index, width, height)

    def _open_sync(self, facing: FacingMode, index: int, width: int, height: int) -> CV2VideoStream:
        capture = cv2.VideoCapture(index)
        if not capture.isOpened():
            capture.release()
            raise CameraUnavailableError(f"Camera device {index} could not be opened")

        # Ideal resolution only; the driver picks its nearest supported mode.
        capture.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        logger.info(
            "cv2 device opened",
            device=index,
            facing=facing.value,
            width=int(capture.get(cv2.CAP_PROP_FRAME_WIDTH)),
            height=int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )
        return CV2VideoStream(capture, facing, index)
