"""
Food Image Analysis Service.

Runs the recognition pipeline for one meal photo:
request builder → vision client → normalizer → aggregator → enricher.
"""

from __future__ import annotations

import time
from typing import Optional

import structlog

from mealvision.application.nutrition.enrichment_service import NutritionEnrichmentService
from mealvision.domain.meal.image.models import ProcessedImage
from mealvision.domain.meal.recognition.aggregator import build_result
from mealvision.domain.meal.recognition.models import VisionAnalysisResult
from mealvision.domain.meal.recognition.normalizer import ResponseNormalizer
from mealvision.domain.meal.recognition.prompts import (
    DEFAULT_MAX_OUTPUT_TOKENS,
    DEFAULT_TEMPERATURE,
    DEFAULT_TIMEOUT_S,
    build_analysis_request,
)
from mealvision.infrastructure.ai.vision_client import VisionAnalysisClient
from mealvision.metrics.vision_analysis import record_fallback, time_analysis

logger = structlog.get_logger(__name__)


class FoodImageAnalysisService:
    """
    Turns a processed meal photo into a nutrition-annotated food list.

    Dependencies (injected):
    - client: VisionAnalysisClient wrapping the configured provider
    - enricher: NutritionEnrichmentService (optional)
    - normalizer: ResponseNormalizer (default ratios if None)

    Malformed model output never fails an analysis; network failures
    from the client propagate (FatalProviderError, AnalysisFailedError).

    Example:
        >>> service = FoodImageAnalysisService(
        ...     client=VisionAnalysisClient(StubVisionProvider()),
        ... )
        >>> result = await service.analyze(image, description="ご飯と味噌汁")
        >>> result.provider
        'mock'
    """

    def __init__(
        self,
        client: VisionAnalysisClient,
        enricher: Optional[NutritionEnrichmentService] = None,
        normalizer: Optional[ResponseNormalizer] = None,
        *,
        temperature: float = DEFAULT_TEMPERATURE,
        max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ):
        self.client = client
        self.enricher = enricher
        self.normalizer = normalizer or ResponseNormalizer()
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.timeout_s = timeout_s

    @property
    def provider_name(self) -> str:
        return self.client.provider_name

    async def analyze(
        self, image: ProcessedImage, description: Optional[str] = None
    ) -> VisionAnalysisResult:
        """
        Analyze one meal photo.

        Args:
            image: Processed image
            description: Optional user description (truncated to 500 chars)

        Returns:
            VisionAnalysisResult with at least one item

        Raises:
            FatalProviderError: Provider rejected the request
            AnalysisFailedError: Retryable failures exhausted the retry budget
        """
        provider = self.provider_name
        start = time.perf_counter()
        logger.info(
            "Starting food image analysis",
            provider=provider,
            image_bytes=image.size,
            has_description=bool(description and description.strip()),
        )

        with time_analysis(source=provider):
            request = build_analysis_request(
                image,
                description,
                temperature=self.temperature,
                max_output_tokens=self.max_output_tokens,
                timeout_s=self.timeout_s,
            )
            raw = await self.client.analyze_raw(request)

            normalized = self.normalizer.normalize(raw, request.description)
            if normalized.fallback:
                record_fallback(normalized.strategy, source=provider)

            result = build_result(
                normalized.items, provider=provider, fallback=normalized.fallback
            )
            if self.enricher is not None:
                result = await self.enricher.enrich(result)

        logger.info(
            "Food image analysis complete",
            analysis_id=result.analysis_id,
            provider=provider,
            items=len(result.items),
            matched=result.matched_count(),
            total_calories=result.total_calories,
            fallback=result.fallback,
            strategy=normalized.strategy,
            elapsed_ms=int((time.perf_counter() - start) * 1000),
        )
        return result
