"""OpenAI vision client - implements IVisionClient port.

Sends the normalized photo inline as a base64 data URL together with
the fixed analysis prompt and returns the raw reply text. Parsing the
reply is the dispatcher's job.
"""

import base64
import time
from typing import Any, Dict, Optional

import structlog
from openai import APIConnectionError, APIError, APITimeoutError, AsyncOpenAI, RateLimitError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from mealcapture.domain.capture.models import CaptureImage
from mealcapture.domain.shared.errors import UpstreamError, UpstreamTimeoutError

logger = structlog.get_logger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"

_TRANSIENT = (APITimeoutError, APIConnectionError, RateLimitError)


class OpenAIVisionClient:
    """
    GPT vision client implementing IVisionClient.

    Example:
        >>> client = OpenAIVisionClient(api_key="sk-...")
        >>> reply = await client.analyze_image(image, ANALYSIS_PROMPT)
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        temperature: float = 0.1,
        timeout_seconds: float = 30,
        max_attempts: int = 3,
        client: Optional[AsyncOpenAI] = None,
    ):
        """
        Initialize OpenAI client.

        Args:
            api_key: OpenAI API key
            model: Vision-capable chat model
            temperature: Sampling temperature (low for consistency)
            timeout_seconds: Per-request transport timeout
            max_attempts: Attempts on transient failures
            client: Pre-built client (tests)
        """
        # Retries are handled here, not inside the SDK
        self._client = client or AsyncOpenAI(api_key=api_key, timeout=timeout_seconds, max_retries=0)
        self._model = model
        self._temperature = temperature
        self._max_attempts = max(1, max_attempts)

    async def analyze_image(self, image: CaptureImage, prompt: str) -> str:
        start_time = time.time()
        encoded = base64.b64encode(image.data).decode("ascii")
        user_message: Dict[str, Any] = {
            "role": "user",
            "content": [
                {"type": "text", "text": prompt},
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{image.mime_type};base64,{encoded}"},
                },
            ],
        }

        logger.info("Analyzing photo", model=self._model, size_bytes=image.size_bytes)

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._max_attempts),
                wait=wait_exponential(multiplier=1, min=2, max=10),
                retry=retry_if_exception_type(_TRANSIENT),
                reraise=True,
            ):
                with attempt:
                    response = await self._client.chat.completions.create(
                        model=self._model,
                        messages=[user_message],
                        temperature=self._temperature,
                    )
        except APITimeoutError as e:
            raise UpstreamTimeoutError("Vision service timeout") from e
        except APIError as e:
            code = getattr(e, "status_code", None)
            reason = f"{code}: {e}" if code else str(e)
            raise UpstreamError(f"Vision service error: {reason}") from e

        if not response.choices:
            raise UpstreamError("Vision service returned no choices")
        content = response.choices[0].message.content
        if not content or not content.strip():
            raise UpstreamError("Vision service returned an empty reply")

        logger.info(
            "Photo analysis complete",
            model=self._model,
            reply_length=len(content),
            processing_time_ms=int((time.time() - start_time) * 1000),
        )
        return content
