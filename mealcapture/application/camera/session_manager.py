"""
Camera session manager.

Owns the device video stream across mode switches and error states.
The stream is acquired and released only here; every exit path ends
in close(), which is idempotent.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import structlog

from mealcapture.domain.capture.models import (
    PREFERRED_HEIGHT,
    PREFERRED_WIDTH,
    CameraState,
    FacingMode,
)
from mealcapture.domain.capture.ports import ICameraBackend, IVideoStream
from mealcapture.domain.shared.errors import (
    CameraTransitionError,
    CameraUnavailableError,
)

logger = structlog.get_logger(__name__)


class CameraSessionManager:
    """
    Camera lifecycle state machine.

    States: CLOSED → INITIALIZING → STREAMING → (CLOSED | ERRORED)

    Only one open/switch may be in flight. A close() issued while an
    open is in flight wins: the late stream is stopped on arrival.

    Example:
        >>> manager = CameraSessionManager(CV2CameraBackend())
        >>> async with manager.streaming(FacingMode.ENVIRONMENT) as stream:
        ...     frame = stream.read_frame()
        >>> assert manager.state == CameraState.CLOSED
    """

    def __init__(
        self,
        backend: ICameraBackend,
        width: int = PREFERRED_WIDTH,
        height: int = PREFERRED_HEIGHT,
    ) -> None:
        self._backend = backend
        self._width = width
        self._height = height
        self._state = CameraState.CLOSED
        self._facing = FacingMode.ENVIRONMENT
        self._stream: Optional[IVideoStream] = None
        self._error: Optional[str] = None
        self._epoch = 0
        self._pending = False

    @property
    def state(self) -> CameraState:
        return self._state

    @property
    def facing(self) -> FacingMode:
        return self._facing

    @property
    def error(self) -> Optional[str]:
        """Human-readable cause of the last acquisition failure."""
        return self._error

    @property
    def epoch(self) -> int:
        """Session generation; changes on every close and successful open."""
        return self._epoch

    @property
    def busy(self) -> bool:
        return self._pending

    @property
    def camera_available(self) -> bool:
        """False after a failed acquisition until the user retries."""
        return self._state is not CameraState.ERRORED

    @property
    def stream(self) -> Optional[IVideoStream]:
        if self._state is CameraState.STREAMING:
            return self._stream
        return None

    def require_stream(self) -> IVideoStream:
        """
        Live stream handle.

        Raises:
            CameraTransitionError: If the session is not streaming
        """
        stream = self.stream
        if stream is None:
            raise CameraTransitionError(f"No live stream (state={self._state.value})")
        return stream

    async def open(self, facing: Optional[FacingMode] = None) -> Optional[IVideoStream]:
        """
        Acquire a stream.

        Args:
            facing: Direction to open; defaults to the last used one

        Returns:
            Live stream, or None if close() was called while opening

        Raises:
            CameraTransitionError: If streaming or another transition is in flight
            CameraUnavailableError: If the device cannot be acquired
        """
        if self._pending:
            raise CameraTransitionError("Another camera transition is in flight")
        if self._state is CameraState.STREAMING:
            raise CameraTransitionError("Camera already streaming; switch or close first")
        return await self._acquire(facing or self._facing)

    async def switch_facing(self) -> Optional[IVideoStream]:
        """
        Reopen with the opposite facing direction.

        The current stream is stopped before the new one is requested,
        so two device streams are never held at once.

        Raises:
            CameraTransitionError: If not streaming or a transition is in flight
            CameraUnavailableError: If the new device cannot be acquired
        """
        if self._pending:
            raise CameraTransitionError("Another camera transition is in flight")
        if self._state is not CameraState.STREAMING:
            raise CameraTransitionError(
                f"switch_facing requires a streaming session (state={self._state.value})"
            )

        target = self._facing.toggled()
        logger.info("Switching camera", current=self._facing.value, target=target.value)
        self._release()
        return await self._acquire(target)

    def close(self) -> None:
        """Stop every held track and return to CLOSED. Idempotent."""
        if self._state is CameraState.CLOSED and not self._pending and self._stream is None:
            return

        previous = self._state
        self._release()
        self._epoch += 1
        self._state = CameraState.CLOSED
        self._error = None
        logger.info("Camera session closed", previous_state=previous.value, epoch=self._epoch)

    def mark_unavailable(self, cause: str) -> None:
        """Release a stream that stopped delivering frames and enter ERRORED."""
        previous = self._state
        self._release()
        self._epoch += 1
        self._state = CameraState.ERRORED
        self._error = cause
        logger.warning(
            "Camera stream lost",
            previous_state=previous.value,
            error=cause,
            epoch=self._epoch,
        )

    @asynccontextmanager
    async def streaming(self, facing: Optional[FacingMode] = None) -> AsyncIterator[IVideoStream]:
        """Scoped acquisition; the session is closed on every exit path."""
        try:
            stream = await self.open(facing)
            if stream is None:
                raise CameraTransitionError("Camera session closed while opening")
            yield stream
        finally:
            self.close()

    async def _acquire(self, facing: FacingMode) -> Optional[IVideoStream]:
        self._pending = True
        self._facing = facing
        self._error = None
        self._state = CameraState.INITIALIZING
        epoch = self._epoch

        logger.info(
            "Requesting camera stream",
            facing=facing.value,
            width=self._width,
            height=self._height,
        )

        try:
            stream = await self._backend.open_stream(facing, self._width, self._height)
        except Exception as e:
            cause = str(e) or e.__class__.__name__
            if epoch == self._epoch:
                self._state = CameraState.ERRORED
                self._error = cause
            logger.warning("Camera acquisition failed", facing=facing.value, error=cause)
            if isinstance(e, CameraUnavailableError):
                raise
            raise CameraUnavailableError(cause) from e
        finally:
            self._pending = False

        if epoch != self._epoch:
            stream.stop()
            logger.info("Discarded stream opened after close", facing=facing.value)
            return None

        self._stream = stream
        self._state = CameraState.STREAMING
        self._epoch += 1
        logger.info("Camera streaming", facing=facing.value, epoch=self._epoch)
        return stream

    def _release(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None:
            stream.stop()
