"""FastAPI application factory.

Run with: uvicorn mealvision.app:create_app --factory
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import httpx
import structlog
from fastapi import FastAPI

from mealvision import __version__
from mealvision.api.vision import router as vision_router
from mealvision.application.meal.analysis_service import FoodImageAnalysisService
from mealvision.application.nutrition.enrichment_service import NutritionEnrichmentService
from mealvision.config import Settings, load_settings
from mealvision.infrastructure.ai.factory import create_vision_provider
from mealvision.infrastructure.ai.stub_provider import StubVisionProvider
from mealvision.infrastructure.ai.vision_client import VisionAnalysisClient
from mealvision.infrastructure.composition.factory import create_composition_database
from mealvision.infrastructure.image.processor import ImageProcessor
from mealvision.logging_config import configure_logging
from mealvision.metrics.vision_analysis import snapshot

logger = structlog.get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application with services wired from settings."""
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        http_client = httpx.AsyncClient(timeout=httpx.Timeout(settings.timeout_s))
        provider = create_vision_provider(settings, http_client=http_client)

        try:
            database = await create_composition_database(settings)
        except Exception as e:
            logger.warning("Composition database unavailable", error=str(e))
            database = None
        enricher = NutritionEnrichmentService(database)

        def service_for(client: VisionAnalysisClient) -> FoodImageAnalysisService:
            return FoodImageAnalysisService(
                client,
                enricher,
                temperature=settings.temperature,
                max_output_tokens=settings.max_output_tokens,
                timeout_s=settings.timeout_s,
            )

        app.state.settings = settings
        app.state.image_processor = ImageProcessor(
            max_bytes=settings.max_image_bytes,
            max_width=settings.max_image_width,
            max_height=settings.max_image_height,
            quality=settings.image_quality,
        )
        app.state.analysis_service = service_for(VisionAnalysisClient(provider))
        app.state.fallback_service = service_for(VisionAnalysisClient(StubVisionProvider()))

        logger.info(
            "Application ready",
            provider=provider.name,
            enrichment=database is not None,
        )
        try:
            yield
        finally:
            await http_client.aclose()
            logger.info("Application shutdown")

    app = FastAPI(title="mealvision", version=__version__, lifespan=lifespan)
    app.include_router(vision_router)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    @app.get("/metrics")
    def metrics() -> Any:
        return snapshot()

    return app
