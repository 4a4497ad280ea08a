"""
OpenFoodFacts API client.

Barcode-to-product lookup against the OpenFoodFacts v2 product API.
"""

import asyncio
from typing import Optional

import aiohttp
import structlog

from mealcapture.domain.barcode.openfoodfacts_mapper import OpenFoodFactsMapper
from mealcapture.domain.barcode.openfoodfacts_models import OFFProduct
from mealcapture.domain.shared.errors import (
    LookupNotFoundError,
    UpstreamError,
    UpstreamTimeoutError,
)
from mealcapture.domain.shared.value_objects import BarcodeSymbol

logger = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "https://world.openfoodfacts.org/api/v2"


class OpenFoodFactsClient:
    """OpenFoodFacts API client."""

    USER_AGENT = "MealCapture/1.0"
    FIELDS = "code,product_name,generic_name,brands,serving_size,image_url,nutriments"

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 10,
        max_retries: int = 3,
    ) -> None:
        """Initialize API client.

        Args:
            base_url: API root, without trailing slash
            timeout_seconds: Request timeout
            max_retries: Max attempts for transient failures
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.max_retries = max(1, max_retries)
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "OpenFoodFactsClient":
        """Async context manager entry."""
        self._session = aiohttp.ClientSession(headers={"User-Agent": self.USER_AGENT})
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    async def get_product(self, symbol: BarcodeSymbol) -> OFFProduct:
        """Get product by barcode.

        Args:
            symbol: Decoded barcode

        Returns:
            Matching product

        Raises:
            LookupNotFoundError: If barcode not in database
            UpstreamTimeoutError: If every attempt times out
            UpstreamError: If API error

        Example:
            >>> async def test():
            ...     async with OpenFoodFactsClient() as client:
            ...         product = await client.get_product(BarcodeSymbol(value="3017620422003"))
            ...         return product.display_name
        """
        url = f"{self.base_url}/product/{symbol.value}"

        for attempt in range(self.max_retries):
            try:
                if not self._session:
                    msg = "Client not initialized, use async with"
                    raise UpstreamError(msg)

                async with self._session.get(
                    url,
                    params={"fields": self.FIELDS},
                    timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                ) as response:
                    if response.status == 404:
                        logger.info("Barcode not found in OFF", barcode=symbol.value)
                        raise LookupNotFoundError(f"Barcode {symbol.value} not found")

                    if response.status >= 400:
                        msg = f"OpenFoodFacts API error: {response.status}"
                        raise UpstreamError(msg)

                    try:
                        data = await response.json()
                    except ValueError as e:
                        raise UpstreamError("OpenFoodFacts returned invalid JSON") from e
                    if not isinstance(data, dict):
                        raise UpstreamError("OpenFoodFacts returned a malformed payload")

                    result = OpenFoodFactsMapper.parse_product_response(data)

                    if not result.is_found() or result.product is None:
                        logger.info("Product not found in OFF", barcode=symbol.value)
                        raise LookupNotFoundError(f"Barcode {symbol.value} not found")

                    logger.info(
                        "Product found in OFF",
                        barcode=symbol.value,
                        name=result.product.display_name,
                    )
                    return result.product

            except (LookupNotFoundError, UpstreamError):
                # Don't retry on not found or on an explicit error status
                raise

            except asyncio.TimeoutError as e:
                if attempt == self.max_retries - 1:
                    msg = "OpenFoodFacts API timeout"
                    raise UpstreamTimeoutError(msg) from e

                wait = 2**attempt
                logger.warning(f"Timeout, retrying in {wait}s", attempt=attempt + 1)
                await asyncio.sleep(wait)

            except aiohttp.ClientError as e:
                if attempt == self.max_retries - 1:
                    msg = f"OpenFoodFacts API client error: {e}"
                    raise UpstreamError(msg) from e

                wait = 2**attempt
                logger.warning(f"Client error, retrying in {wait}s", attempt=attempt + 1, error=str(e))
                await asyncio.sleep(wait)

        raise UpstreamError("OpenFoodFacts lookup failed")
