"""
Capture domain models.

Camera session states, facing directions and the still image
handed from capture to recognition.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# Preferred stream resolution. Backends may substitute their nearest mode.
PREFERRED_WIDTH = 1280
PREFERRED_HEIGHT = 720


class FacingMode(str, Enum):
    """Camera facing direction."""

    ENVIRONMENT = "environment"  # Rear camera
    USER = "user"  # Front camera

    def toggled(self) -> FacingMode:
        """Return the opposite direction."""
        if self is FacingMode.ENVIRONMENT:
            return FacingMode.USER
        return FacingMode.ENVIRONMENT


class CameraState(str, Enum):
    """Camera session lifecycle state."""

    CLOSED = "closed"
    INITIALIZING = "initializing"
    STREAMING = "streaming"
    ERRORED = "errored"


class CaptureImage(BaseModel):
    """
    Still image ready for recognition.

    Immutable buffer plus declared MIME type and pixel dimensions.
    Lives for one capture attempt only.

    Example:
        >>> image = CaptureImage(
        ...     data=b"...", mime_type="image/jpeg", width=800, height=450
        ... )
        >>> assert image.longest_side == 800
    """

    model_config = ConfigDict(frozen=True)

    data: bytes = Field(..., min_length=1, repr=False, description="Encoded image bytes")
    mime_type: str = Field(..., pattern=r"^image/[a-z0-9.+-]+$", description="MIME type")
    width: int = Field(..., gt=0, description="Width in pixels")
    height: int = Field(..., gt=0, description="Height in pixels")

    @property
    def longest_side(self) -> int:
        return max(self.width, self.height)

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    @property
    def size_bytes(self) -> int:
        return len(self.data)


class UploadedFile(BaseModel):
    """File as received from a file picker or drop zone."""

    model_config = ConfigDict(frozen=True)

    filename: Optional[str] = Field(None, description="Original file name")
    content_type: str = Field(..., description="Declared MIME type")
    data: bytes = Field(..., repr=False, description="Raw file bytes")
