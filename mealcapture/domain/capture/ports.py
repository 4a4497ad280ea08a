"""
Ports (Interfaces) for camera hardware.

The session manager depends only on these protocols so that
the OpenCV backend can be swapped for fakes in tests.
"""

from typing import Protocol, runtime_checkable

import numpy as np

from mealcapture.domain.capture.models import FacingMode


@runtime_checkable
class IVideoStream(Protocol):
    """
    Port for a live video stream.

    A stream holds one or more device tracks until stop() is called.
    """

    @property
    def facing(self) -> FacingMode:
        """Direction this stream was opened with."""
        ...

    @property
    def active(self) -> bool:
        """True until stop() has released every track."""
        ...

    def read_frame(self) -> np.ndarray:
        """
        Read the current frame.

        Returns:
            RGB array of shape (height, width, 3), dtype uint8

        Raises:
            CameraUnavailableError: If no frame can be read
        """
        ...

    def stop(self) -> None:
        """Release every device track. Safe to call more than once."""
        ...


@runtime_checkable
class ICameraBackend(Protocol):
    """
    Port for acquiring device video streams.

    Implementations may block internally but must expose an
    awaitable open so the event loop is never stalled.
    """

    async def open_stream(self, facing: FacingMode, width: int, height: int) -> IVideoStream:
        """
        Acquire a stream for the given facing direction.

        Args:
            facing: Requested camera direction
            width: Preferred frame width
            height: Preferred frame height

        Returns:
            Live stream handle

        Raises:
            CameraUnavailableError: If the device cannot be acquired
        """
        ...
