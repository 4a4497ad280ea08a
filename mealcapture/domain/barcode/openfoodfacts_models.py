"""
OpenFoodFacts domain models.

Models for OpenFoodFacts API responses mapped to our domain.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class OFFNutriments(BaseModel):
    """OpenFoodFacts nutriments (per 100g).

    Example:
        >>> nutriments = OFFNutriments(
        ...     energy_kcal=250.0,
        ...     proteins=10.0,
        ...     carbohydrates=40.0,
        ...     fat=8.0,
        ... )
        >>> assert nutriments.energy_kcal == 250.0
    """

    model_config = ConfigDict(frozen=True)

    energy_kcal: Optional[float] = Field(None, ge=0, description="Energy in kcal per 100g")
    proteins: Optional[float] = Field(None, ge=0, description="Protein in g per 100g")
    carbohydrates: Optional[float] = Field(None, ge=0, description="Carbohydrates in g per 100g")
    fat: Optional[float] = Field(None, ge=0, description="Fat in g per 100g")


class OFFProduct(BaseModel):
    """OpenFoodFacts product response.

    Example:
        >>> product = OFFProduct(
        ...     code="0001",
        ...     product_name="Test Bar",
        ...     nutriments=OFFNutriments(energy_kcal=250.0),
        ... )
        >>> assert product.display_name == "Test Bar"
    """

    model_config = ConfigDict(frozen=True)

    code: str = Field(..., description="Product barcode")
    product_name: Optional[str] = Field(None, description="Product name")
    generic_name: Optional[str] = Field(None, description="Generic product name")
    brands: Optional[str] = Field(None, description="Brand names")
    serving_size: Optional[str] = Field(None, description="Serving size (e.g., '30g')")
    image_url: Optional[str] = Field(None, description="Product image URL")
    nutriments: Optional[OFFNutriments] = Field(None, description="Nutritional values")

    @property
    def display_name(self) -> str:
        """Best available name for provenance notes."""
        for name in (self.product_name, self.generic_name):
            if name and name.strip():
                return name.strip()
        return "Unknown product"


class OFFSearchResult(BaseModel):
    """OpenFoodFacts product lookup response."""

    model_config = ConfigDict(frozen=True)

    status: int = Field(..., description="API status (1=found, 0=not)")
    product: Optional[OFFProduct] = Field(None, description="Product data (if found)")

    def is_found(self) -> bool:
        """Check if product was found."""
        return self.status == 1 and self.product is not None
