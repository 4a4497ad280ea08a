"""
OpenFoodFacts data mapper.

Transforms OpenFoodFacts API responses to domain models.
"""

from typing import Any

from mealcapture.domain.barcode.openfoodfacts_models import (
    OFFNutriments,
    OFFProduct,
    OFFSearchResult,
)
from mealcapture.domain.recognition.models import MacroValues


class OpenFoodFactsMapper:
    """Maps OpenFoodFacts API data to domain models."""

    @staticmethod
    def parse_product_response(response_data: dict[str, Any]) -> OFFSearchResult:
        """Parse OpenFoodFacts product API response.

        Args:
            response_data: Raw API response JSON

        Returns:
            Parsed OFFSearchResult

        Example:
            >>> response = {
            ...     "status": 1,
            ...     "product": {
            ...         "code": "0001",
            ...         "product_name": "Test Bar",
            ...         "nutriments": {
            ...             "energy-kcal_100g": 250,
            ...             "proteins_100g": 10,
            ...             "carbohydrates_100g": 40,
            ...             "fat_100g": 8,
            ...         },
            ...     },
            ... }
            >>> result = OpenFoodFactsMapper.parse_product_response(response)
            >>> assert result.product.product_name == "Test Bar"
        """
        status = response_data.get("status", 0)

        if status != 1 or not isinstance(response_data.get("product"), dict):
            return OFFSearchResult(status=0, product=None)

        product_data = response_data["product"]
        nutriments_data = product_data.get("nutriments") or {}

        nutriments = OFFNutriments(
            energy_kcal=_non_negative(nutriments_data.get("energy-kcal_100g")),
            proteins=_non_negative(nutriments_data.get("proteins_100g")),
            carbohydrates=_non_negative(nutriments_data.get("carbohydrates_100g")),
            fat=_non_negative(nutriments_data.get("fat_100g")),
        )

        product = OFFProduct(
            code=str(product_data.get("code") or response_data.get("code") or ""),
            product_name=product_data.get("product_name"),
            generic_name=product_data.get("generic_name"),
            brands=product_data.get("brands"),
            serving_size=product_data.get("serving_size"),
            image_url=product_data.get("image_url"),
            nutriments=nutriments,
        )

        return OFFSearchResult(status=status, product=product)

    @staticmethod
    def to_macros(product: OFFProduct) -> MacroValues:
        """Per-100g nutriments as whole-number per-unit macros.

        Missing nutrients count as zero.

        Example:
            >>> product = OFFProduct(
            ...     code="0001",
            ...     nutriments=OFFNutriments(energy_kcal=249.5, fat=7.5),
            ... )
            >>> macros = OpenFoodFactsMapper.to_macros(product)
            >>> assert (macros.calories, macros.fats) == (250, 8)
        """
        n = product.nutriments if product.nutriments else OFFNutriments()
        return MacroValues(
            calories=n.energy_kcal or 0.0,
            protein=n.proteins or 0.0,
            carbs=n.carbohydrates or 0.0,
            fats=n.fat or 0.0,
        ).rounded()


def _non_negative(value: Any) -> float | None:
    """OFF occasionally ships strings or negative noise; keep usable numbers only."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if number >= 0 else None
