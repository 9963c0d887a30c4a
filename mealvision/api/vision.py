"""REST endpoint for meal photo analysis.

POST /api/v1/vision/analyze (multipart: ``image``, optional ``description``)

Caller policy on provider failures:
* retries exhausted → rerun with the stub provider, flagged ``fallback``
* provider rejected the request → 502 "AI analysis could not be performed"
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse

from mealvision.application.meal.analysis_service import FoodImageAnalysisService
from mealvision.domain.shared.errors import (
    AnalysisFailedError,
    FatalProviderError,
    ImageValidationError,
)
from mealvision.infrastructure.image.processor import ImageProcessor
from mealvision.metrics.vision_analysis import record_fallback

logger = structlog.get_logger(__name__)

ANALYSIS_UNAVAILABLE = "AI analysis could not be performed"

router = APIRouter(prefix="/api/v1/vision", tags=["vision"])


def get_image_processor(request: Request) -> ImageProcessor:
    return request.app.state.image_processor


def get_analysis_service(request: Request) -> FoodImageAnalysisService:
    return request.app.state.analysis_service


def get_fallback_service(request: Request) -> FoodImageAnalysisService:
    return request.app.state.fallback_service


@router.post("/analyze")
async def analyze_image(
    image: Optional[UploadFile] = File(None),
    description: Optional[str] = Form(None),
    processor: ImageProcessor = Depends(get_image_processor),
    service: FoodImageAnalysisService = Depends(get_analysis_service),
    fallback_service: FoodImageAnalysisService = Depends(get_fallback_service),
) -> JSONResponse:
    """Analyze an uploaded meal photo.

    Returns:
        ``{"success": true, "data": <VisionAnalysisResult, camelCase>}``
    """
    if image is None:
        return JSONResponse(status_code=400, content={"error": "Image file is required"})

    data = await image.read()
    try:
        processed = await processor.process(data, image.content_type)
    except ImageValidationError as e:
        logger.info("Rejected upload", content_type=image.content_type, error=str(e))
        return JSONResponse(status_code=400, content={"error": str(e)})

    try:
        result = await service.analyze(processed, description)
    except AnalysisFailedError as e:
        logger.warning(
            "Vision analysis failed, using stub provider",
            provider=service.provider_name,
            attempts=e.attempts,
            error=str(e.last_error),
        )
        record_fallback("provider_failure", source=service.provider_name)
        result = await fallback_service.analyze(processed, description)
        result = result.model_copy(update={"fallback": True})
    except FatalProviderError as e:
        logger.error(
            "Vision provider rejected request",
            provider=service.provider_name,
            status_code=e.status_code,
            error=str(e),
        )
        return JSONResponse(status_code=502, content={"error": ANALYSIS_UNAVAILABLE})

    return JSONResponse(
        content={"success": True, "data": result.model_dump(by_alias=True, mode="json")}
    )
