"""
Recognition dispatcher.

Routes a captured image to the selected recognition strategy and
returns that strategy's outcome. Holds no per-attempt state, so
independent attempts may run concurrently.
"""

from __future__ import annotations

import asyncio
from typing import Mapping, Optional

import structlog

from mealcapture.domain.barcode.openfoodfacts_mapper import OpenFoodFactsMapper
from mealcapture.domain.capture.models import CaptureImage
from mealcapture.domain.recognition.analysis_prompt import (
    ANALYSIS_PROMPT,
    PROMPT_VERSION,
    ParseError,
    parse_analysis,
)
from mealcapture.domain.recognition.food_reference import (
    FOOD_REFERENCE,
    FoodReference,
    lookup_food,
)
from mealcapture.domain.recognition.models import (
    BarcodeOutcome,
    DetectedItem,
    DetectionOutcome,
    GenerativeOutcome,
    ManualOutcome,
    RecognitionOutcome,
    RecognitionStrategy,
)
from mealcapture.domain.recognition.ports import (
    IBarcodeDecoder,
    IDetectionClient,
    IProductLookup,
    IVisionClient,
)
from mealcapture.domain.shared.errors import (
    DecodeError,
    InvalidImageError,
    NoConfidentResultError,
    UpstreamError,
)
from mealcapture.domain.shared.value_objects import BarcodeSymbol

logger = structlog.get_logger(__name__)

DEFAULT_CONFIDENCE_THRESHOLD = 0.5


class RecognitionDispatcher:
    """
    One entry point for every recognition strategy.

    Example:
        >>> dispatcher = RecognitionDispatcher(
        ...     barcode_decoder=ZXingBarcodeDecoder(),
        ...     product_lookup=off_client,
        ...     detection_client=detection_client,
        ...     vision_client=vision_client,
        ... )
        >>> outcome = await dispatcher.dispatch(image, RecognitionStrategy.BARCODE)
        >>> print(outcome.product_name)
        Test Bar
    """

    def __init__(
        self,
        barcode_decoder: IBarcodeDecoder,
        product_lookup: IProductLookup,
        detection_client: IDetectionClient,
        vision_client: IVisionClient,
        food_reference: Mapping[str, FoodReference] = FOOD_REFERENCE,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        prompt: str = ANALYSIS_PROMPT,
    ) -> None:
        self._barcode_decoder = barcode_decoder
        self._product_lookup = product_lookup
        self._detection_client = detection_client
        self._vision_client = vision_client
        self._food_reference = food_reference
        self._confidence_threshold = confidence_threshold
        self._prompt = prompt

    async def dispatch(
        self, image: Optional[CaptureImage], strategy: RecognitionStrategy
    ) -> RecognitionOutcome:
        """
        Run one recognition attempt.

        Args:
            image: Normalized image; may be None for MANUAL only
            strategy: Strategy to apply

        Returns:
            Outcome tagged with the strategy

        Raises:
            InvalidImageError: Image-based strategy without an image
            DecodeError: No barcode pattern found
            LookupNotFoundError: Barcode has no matching product
            UpstreamError: Service failure or unusable reply
            NoConfidentResultError: No confident, resolvable detection
        """
        if strategy is RecognitionStrategy.MANUAL:
            return ManualOutcome()
        if image is None:
            raise InvalidImageError(f"Strategy '{strategy.value}' requires an image")

        logger.info(
            "Dispatching recognition",
            strategy=strategy.value,
            width=image.width,
            height=image.height,
            size_bytes=image.size_bytes,
        )

        if strategy is RecognitionStrategy.BARCODE:
            outcome: RecognitionOutcome = await self._recognize_barcode(image)
        elif strategy is RecognitionStrategy.OBJECT_DETECTION:
            outcome = await self._recognize_objects(image)
        elif strategy is RecognitionStrategy.GENERATIVE_ANALYSIS:
            outcome = await self._analyze(image)
        else:
            raise ValueError(f"Unknown recognition strategy: {strategy}")

        logger.info("Recognition finished", strategy=strategy.value)
        return outcome

    async def _recognize_barcode(self, image: CaptureImage) -> BarcodeOutcome:
        # zxing decoding is CPU-bound
        loop = asyncio.get_running_loop()
        try:
            text = await loop.run_in_executor(None, self._barcode_decoder.decode, image)
        except InvalidImageError:
            raise
        except Exception as e:
            logger.warning("Barcode decoder failed", error=str(e))
            raise DecodeError(f"Barcode decoding failed: {e}") from e
        if not text or not text.strip():
            raise DecodeError("No barcode found in image")

        symbol = BarcodeSymbol(value=text)
        logger.info("Barcode decoded", barcode=symbol.value)

        product = await self._product_lookup.get_product(symbol)
        macros = OpenFoodFactsMapper.to_macros(product)

        return BarcodeOutcome(
            symbol=symbol.value,
            product_name=product.display_name,
            macros=macros,
        )

    async def _recognize_objects(self, image: CaptureImage) -> DetectionOutcome:
        predictions = await self._detection_client.predict(image)

        accepted = [p for p in predictions if p.confidence > self._confidence_threshold]
        # sorted() is stable: ties keep service order
        accepted = sorted(accepted, key=lambda p: p.confidence, reverse=True)

        items = []
        for prediction in accepted:
            reference = lookup_food(prediction.class_name, self._food_reference)
            if reference is None:
                items.append(
                    DetectedItem(label=prediction.class_name.strip(), confidence=prediction.confidence)
                )
                continue
            items.append(
                DetectedItem(
                    label=reference.name,
                    confidence=prediction.confidence,
                    macros=reference.macros(),
                    reference_weight_g=reference.reference_weight_g,
                )
            )

        outcome = DetectionOutcome(items=items)
        logger.info(
            "Detection resolved",
            predictions=len(predictions),
            accepted=len(accepted),
            resolved=len(outcome.resolved_items),
            unresolved=[item.label for item in outcome.unresolved_items],
        )

        if not outcome.resolved_items:
            raise NoConfidentResultError(
                f"No detection above {self._confidence_threshold:.0%} confidence "
                "matched the food reference"
            )
        return outcome

    async def _analyze(self, image: CaptureImage) -> GenerativeOutcome:
        raw = await self._vision_client.analyze_image(image, self._prompt)
        try:
            outcome = parse_analysis(raw or "")
        except ParseError as e:
            logger.warning(
                "Generative reply unusable",
                error=str(e),
                prompt_version=PROMPT_VERSION,
                reply_length=len(raw or ""),
            )
            raise UpstreamError(f"Vision service returned an unusable reply: {e}") from e

        logger.info(
            "Generative analysis parsed",
            items=len(outcome.items),
            prompt_version=PROMPT_VERSION,
        )
        return outcome
