"""Vision provider factory.

Settings-based provider selection with graceful fallback to the stub:
- VISION_PROVIDER=gemini|openai|mock
- real providers need ENABLE_REAL_AI_ANALYSIS=true and their API key
- anything else → StubVisionProvider (deterministic, offline)
"""

from __future__ import annotations

from typing import Optional

import httpx
import structlog

from mealvision.config import Settings
from mealvision.domain.meal.recognition.ports import VisionProvider
from mealvision.infrastructure.ai.gemini_client import GeminiVisionProvider
from mealvision.infrastructure.ai.openai_client import OpenAIVisionProvider
from mealvision.infrastructure.ai.stub_provider import StubVisionProvider

logger = structlog.get_logger(__name__)


def create_vision_provider(
    settings: Settings,
    http_client: Optional[httpx.AsyncClient] = None,
) -> VisionProvider:
    """Create the vision provider described by ``settings``.

    Args:
        settings: Loaded settings
        http_client: Shared httpx client for the Gemini provider

    Returns:
        VisionProvider instance (stub when real analysis is unavailable)
    """
    mode = settings.vision_provider

    if mode == "mock" or not settings.enable_real_ai_analysis:
        return StubVisionProvider()

    if mode == "gemini":
        if settings.google_ai_api_key:
            return GeminiVisionProvider(
                api_key=settings.google_ai_api_key,
                model=settings.gemini_model,
                base_url=settings.gemini_base_url,
                http_client=http_client,
            )
        logger.warning("GOOGLE_AI_API_KEY not set, using stub vision provider")
        return StubVisionProvider()

    if mode == "openai":
        if settings.openai_api_key:
            return OpenAIVisionProvider(
                api_key=settings.openai_api_key,
                model=settings.openai_vision_model,
            )
        logger.warning("OPENAI_API_KEY not set, using stub vision provider")
        return StubVisionProvider()

    logger.warning("Unknown VISION_PROVIDER, using stub vision provider", provider=mode)
    return StubVisionProvider()
