"""
Domain exceptions.

Typed exceptions for explicit error handling across the capture pipeline.
Every failure is recoverable: callers catch these at the boundary
that owns the affected state and leave the system retryable.
"""

from __future__ import annotations


# ═══════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════


class DomainError(Exception):
    """
    Base exception for all domain errors.

    All domain-specific exceptions inherit from this.
    Allows catching all domain errors with single except clause.
    """

    pass


# ═══════════════════════════════════════════════════════════
# CAPTURE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class CaptureDomainError(DomainError):
    """Base exception for camera and image capture."""

    pass


class CameraUnavailableError(CaptureDomainError):
    """
    Camera device could not be acquired.

    Raised when:
    - No device for the requested facing direction
    - Device busy or permission denied
    - Device opened but produced no frame

    Example:
        >>> raise CameraUnavailableError("Camera device 1 could not be opened")
    """

    pass


class CameraTransitionError(CaptureDomainError):
    """
    Camera session operation not valid in the current state.

    Raised when:
    - open() while a session is streaming or initializing
    - switch_facing() outside the streaming state
    - snapshot requested with no live stream
    """

    pass


class InvalidImageError(CaptureDomainError):
    """
    Uploaded or captured image cannot be used.

    Raised when:
    - MIME type is not an image type
    - More than one file supplied
    - Bytes cannot be decoded as an image

    Example:
        >>> raise InvalidImageError("Unsupported file type: application/pdf")
    """

    pass


# ═══════════════════════════════════════════════════════════
# RECOGNITION EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class RecognitionError(DomainError):
    """
    Base exception for a failed recognition attempt.

    Terminates the current capture attempt only. The draft keeps
    its prior values and the user may retry with another strategy.
    """

    pass


class DecodeError(RecognitionError):
    """
    Image could not be parsed by the strategy's detector.

    Example:
        >>> raise DecodeError("No barcode found in image")
    """

    pass


class LookupNotFoundError(RecognitionError):
    """
    Barcode decoded but no matching product exists upstream.

    Example:
        >>> raise LookupNotFoundError("Barcode 0001 not found")
    """

    pass


class UpstreamError(RecognitionError):
    """
    External recognition service failed.

    Raised when:
    - Non-success HTTP status
    - Malformed or unparsable payload
    - Network error

    Example:
        >>> raise UpstreamError("OpenFoodFacts API error: 503")
    """

    pass


class UpstreamTimeoutError(UpstreamError):
    """
    Transport timeout while calling an external service.

    Example:
        >>> raise UpstreamTimeoutError("Detection API timeout after 10s")
    """

    pass


class NoConfidentResultError(RecognitionError):
    """
    Detection returned no item above the acceptance threshold
    that also resolves against the food reference table.
    """

    pass


# ═══════════════════════════════════════════════════════════
# MEAL DRAFT EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class MealDomainError(DomainError):
    """Base exception for meal draft and submission."""

    pass


class IncompleteDraftError(MealDomainError):
    """
    Draft is missing a required macro field.

    Blocks submission locally, never sent upstream.

    Example:
        >>> raise IncompleteDraftError("Missing fields: fats")
    """

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing or invalid fields: {', '.join(self.missing)}")


class UploadError(MealDomainError):
    """
    Image upload to object storage failed.

    Aborts the submission before anything is persisted.
    """

    pass


class PersistError(MealDomainError):
    """
    Meal row could not be written.

    Example:
        >>> raise PersistError("Insert into meals failed: 500")
    """

    pass


# ═══════════════════════════════════════════════════════════
# VALIDATION EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ValidationError(DomainError):
    """
    Input validation failed.

    Raised when:
    - Unknown draft field
    - Negative macro value
    - Empty owner id

    Example:
        >>> raise ValidationError("calories cannot be negative")
    """

    pass
