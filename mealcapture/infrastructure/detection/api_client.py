"""
Object detection inference client.

Posts a base64 JPEG to a hosted detection endpoint (Roboflow-style:
`POST {url}?api_key=...` with the image as the body) and reads
`{"predictions": [{"class": ..., "confidence": ...}]}`.
"""

import asyncio
import base64
from typing import Any, List, Optional

import aiohttp
import structlog
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from mealcapture.domain.capture.models import CaptureImage
from mealcapture.domain.recognition.models import Prediction
from mealcapture.domain.shared.errors import UpstreamError, UpstreamTimeoutError

logger = structlog.get_logger(__name__)


class DetectionApiClient:
    """
    IDetectionClient over HTTP.

    Transient transport failures are retried with exponential backoff;
    error statuses and malformed payloads are not.

    Example:
        >>> async with DetectionApiClient(url, api_key="rf_...") as client:
        ...     predictions = await client.predict(image)
    """

    def __init__(
        self,
        url: str,
        api_key: Optional[str] = None,
        timeout_seconds: float = 10,
        max_retries: int = 3,
    ) -> None:
        self.url = url
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.max_retries = max(1, max_retries)
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "DetectionApiClient":
        self._session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    async def predict(self, image: CaptureImage) -> List[Prediction]:
        if not self._session:
            raise UpstreamError("Client not initialized, use async with")

        body = base64.b64encode(image.data).decode("ascii")
        params = {"api_key": self.api_key} if self.api_key else None

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_retries),
                wait=wait_exponential(multiplier=1, min=1, max=8),
                retry=retry_if_exception_type((asyncio.TimeoutError, aiohttp.ClientConnectionError)),
                reraise=True,
            ):
                with attempt:
                    payload = await self._post(body, params)
        except asyncio.TimeoutError as e:
            raise UpstreamTimeoutError("Detection service timeout") from e
        except aiohttp.ClientError as e:
            raise UpstreamError(f"Detection service client error: {e}") from e

        predictions = _parse_predictions(payload)
        logger.info("Detection service replied", predictions=len(predictions))
        return predictions

    async def _post(self, body: str, params: Optional[dict[str, str]]) -> Any:
        assert self._session is not None
        async with self._session.post(
            self.url,
            params=params,
            data=body,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
        ) as response:
            if response.status >= 400:
                reason = await response.text()
                msg = f"Detection service error: {response.status}"
                if reason:
                    msg = f"{msg} ({reason[:200]})"
                raise UpstreamError(msg)
            try:
                return await response.json(content_type=None)
            except ValueError as e:
                raise UpstreamError("Detection service returned invalid JSON") from e


def _parse_predictions(payload: Any) -> List[Prediction]:
    if not isinstance(payload, dict) or not isinstance(payload.get("predictions"), list):
        raise UpstreamError("Detection service returned a malformed payload")
    try:
        return [Prediction.model_validate(p) for p in payload["predictions"]]
    except ValidationError as e:
        raise UpstreamError(f"Detection service returned a malformed prediction: {e.error_count()} error(s)") from e
