"""
Capture source adapter.

Produces a CaptureImage from a live stream or an uploaded file and
bounds its size before it is sent to any recognition service.
"""

from __future__ import annotations

import io
from typing import Sequence

import structlog
from PIL import Image, UnidentifiedImageError

from mealcapture.domain.capture.models import CaptureImage, UploadedFile
from mealcapture.domain.capture.ports import IVideoStream
from mealcapture.domain.shared.errors import CameraTransitionError, InvalidImageError

logger = structlog.get_logger(__name__)

# Longest side sent to recognition services, in pixels
MAX_DIMENSION = 800

# Fixed JPEG quality for normalized images
NORMALIZED_QUALITY = 80

# Quality for full-resolution camera snapshots
SNAPSHOT_QUALITY = 92

ALLOWED_MIME_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
    "image/gif",
}


class CaptureSourceAdapter:
    """
    Turns frames and uploads into CaptureImage instances.

    Example:
        >>> adapter = CaptureSourceAdapter()
        >>> image = adapter.from_stream(session.require_stream())
        >>> small = adapter.normalize(image)
        >>> assert small.longest_side <= 800
    """

    def __init__(self, max_dimension: int = MAX_DIMENSION, quality: int = NORMALIZED_QUALITY) -> None:
        self.max_dimension = max_dimension
        self.quality = quality

    def from_stream(self, stream: IVideoStream) -> CaptureImage:
        """
        Snapshot the current frame at the stream's native resolution.

        Raises:
            CameraTransitionError: If the stream is no longer active
            CameraUnavailableError: If the frame cannot be read
        """
        if not stream.active:
            raise CameraTransitionError("Cannot capture from a stopped stream")
        frame = stream.read_frame()
        image = Image.fromarray(frame)
        captured = _encode_jpeg(image, SNAPSHOT_QUALITY)
        logger.info(
            "Captured camera frame",
            width=captured.width,
            height=captured.height,
            size_bytes=captured.size_bytes,
        )
        return captured

    def from_file(self, upload: UploadedFile) -> CaptureImage:
        """
        Decode an uploaded image.

        Raises:
            InvalidImageError: If the type is not an image or decoding fails
        """
        content_type = (upload.content_type or "").lower()
        if content_type not in ALLOWED_MIME_TYPES:
            allowed = ", ".join(sorted(ALLOWED_MIME_TYPES))
            raise InvalidImageError(f"Invalid file type '{upload.content_type}'. Allowed: {allowed}")
        if not upload.data:
            raise InvalidImageError("Uploaded file is empty")

        try:
            with Image.open(io.BytesIO(upload.data)) as img:
                img.load()
                width, height = img.size
                detected = Image.MIME.get(img.format or "", content_type)
        except (UnidentifiedImageError, OSError) as e:
            raise InvalidImageError("Invalid image format or corrupted file") from e

        logger.info(
            "Loaded uploaded image",
            file_name=upload.filename,
            content_type=detected,
            width=width,
            height=height,
        )
        return CaptureImage(data=upload.data, mime_type=detected, width=width, height=height)

    def from_files(self, uploads: Sequence[UploadedFile]) -> CaptureImage:
        """
        Accept exactly one uploaded file.

        Raises:
            InvalidImageError: If zero or several files are supplied
        """
        if len(uploads) != 1:
            raise InvalidImageError(f"Exactly one image file is accepted per capture (got {len(uploads)})")
        return self.from_file(uploads[0])

    def normalize(self, image: CaptureImage) -> CaptureImage:
        """
        Bound the longest side and re-encode at fixed quality.

        Aspect ratio is preserved and images are never upscaled.

        Raises:
            InvalidImageError: If the buffer cannot be decoded
        """
        try:
            with Image.open(io.BytesIO(image.data)) as img:
                img.load()
                rgb = _to_rgb(img)
        except (UnidentifiedImageError, OSError) as e:
            raise InvalidImageError("Captured image could not be decoded") from e

        width, height = rgb.size
        longest = max(width, height)
        if longest > self.max_dimension:
            scale = self.max_dimension / longest
            target = (
                min(self.max_dimension, max(1, round(width * scale))),
                min(self.max_dimension, max(1, round(height * scale))),
            )
            rgb = rgb.resize(target, Image.Resampling.LANCZOS)

        normalized = _encode_jpeg(rgb, self.quality)
        logger.debug(
            "Normalized image",
            original=f"{width}x{height}",
            normalized=f"{normalized.width}x{normalized.height}",
            size_bytes=normalized.size_bytes,
        )
        return normalized


def _to_rgb(img: Image.Image) -> Image.Image:
    """Flatten transparency onto white and drop other modes to RGB."""
    if img.mode in ("RGBA", "LA", "P"):
        if img.mode == "P":
            img = img.convert("RGBA")
        background = Image.new("RGB", img.size, (255, 255, 255))
        background.paste(img, mask=img.split()[-1])
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def _encode_jpeg(img: Image.Image, quality: int) -> CaptureImage:
    rgb = _to_rgb(img)
    output = io.BytesIO()
    rgb.save(output, format="JPEG", quality=quality, optimize=True)
    return CaptureImage(
        data=output.getvalue(),
        mime_type="image/jpeg",
        width=rgb.width,
        height=rgb.height,
    )
