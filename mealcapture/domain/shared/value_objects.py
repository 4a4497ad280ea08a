"""
Shared value objects.

Immutable, validated domain primitives.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class UserId(BaseModel):
    """
    User ID value object.

    Owner of drafts and uploaded images.

    Example:
        >>> user_id = UserId(value="user_123")
        >>> assert str(user_id) == "user_123"
    """

    model_config = ConfigDict(frozen=True)

    value: str = Field(..., min_length=1, description="User identifier")

    @field_validator("value")
    @classmethod
    def not_empty(cls, v: str) -> str:
        """Ensure not empty or whitespace."""
        if not v.strip():
            raise ValueError("UserId cannot be empty or whitespace")
        return v.strip()

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"UserId('{self.value}')"

    @classmethod
    def from_string(cls, s: str) -> UserId:
        """Create from string."""
        return cls(value=s)


class BarcodeSymbol(BaseModel):
    """
    Decoded barcode text.

    Any non-blank symbol is accepted: short internal codes are
    looked up as-is and the product database decides on a match.

    Example:
        >>> symbol = BarcodeSymbol(value=" 3017620422003 ")
        >>> assert symbol.value == "3017620422003"
    """

    model_config = ConfigDict(frozen=True)

    value: str = Field(..., min_length=1, description="Decoded symbol text")

    @field_validator("value")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Barcode symbol cannot be blank")
        return v.strip()

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"BarcodeSymbol('{self.value}')"
