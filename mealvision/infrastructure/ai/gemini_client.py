"""Gemini vision provider (REST over httpx).

Calls ``models/{model}:generateContent`` with the image as inline data
and returns the decoded response body. Retries are not done here: the
VisionAnalysisClient owns timeout and retry policy.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
import structlog

from mealvision.domain.meal.recognition.models import AnalysisRequest
from mealvision.domain.shared.errors import (
    ProviderTimeoutError,
    RetryableProviderError,
    classify_status,
)

logger = structlog.get_logger(__name__)

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash-lite-preview-02-05"
DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiVisionProvider:
    """
    Google Gemini adapter implementing the VisionProvider port.

    Example:
        >>> provider = GeminiVisionProvider(api_key="AIza...")
        >>> raw = await provider.analyze_raw(request)
        >>> raw["candidates"][0]["content"]["parts"][0]["text"]
        '{"items": [...]}'
    """

    name = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_GEMINI_MODEL,
        base_url: str = DEFAULT_GEMINI_BASE_URL,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            api_key: Google AI API key
            model: Gemini model name
            base_url: API root (override for proxies and tests)
            http_client: Shared client; a short-lived one is used per call if None
        """
        if not api_key:
            raise ValueError("Gemini API key is required")
        self._api_key = api_key
        self.model = model
        self._base_url = base_url.rstrip("/")
        self._http_client = http_client

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}/models/{self.model}:generateContent"

    def build_payload(self, request: AnalysisRequest) -> Dict[str, Any]:
        """Render the provider-neutral request as a generateContent body."""
        return {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"text": request.prompt},
                        {
                            "inline_data": {
                                "mime_type": request.mime_type,
                                "data": request.image_base64,
                            }
                        },
                    ],
                }
            ],
            "generationConfig": {
                "temperature": request.temperature,
                "maxOutputTokens": request.max_output_tokens,
                "responseMimeType": "application/json",
            },
        }

    async def analyze_raw(self, request: AnalysisRequest) -> Any:
        """
        Send the request and return the decoded JSON body.

        Returns raw text when the body is not JSON; the normalizer deals
        with it.

        Raises:
            FatalProviderError: 4xx response
            RetryableProviderError: 5xx response or transport error
            ProviderTimeoutError: httpx timeout
        """
        headers = {"x-goog-api-key": self._api_key, "Content-Type": "application/json"}
        payload = self.build_payload(request)

        logger.debug(
            "Calling Gemini",
            model=self.model,
            mime_type=request.mime_type,
            has_description=request.description is not None,
        )

        try:
            if self._http_client is not None:
                response = await self._http_client.post(
                    self.endpoint, json=payload, headers=headers
                )
            else:
                async with httpx.AsyncClient(
                    timeout=httpx.Timeout(request.timeout_s)
                ) as client:
                    response = await client.post(self.endpoint, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(f"Gemini request timed out: {e}") from e
        except httpx.TransportError as e:
            raise RetryableProviderError(f"Gemini transport error: {e}") from e

        if response.status_code >= 400:
            logger.warning(
                "Gemini API error",
                model=self.model,
                status_code=response.status_code,
                body=response.text[:200],
            )
            raise classify_status(
                response.status_code, f"Gemini API error: {response.status_code}"
            )

        try:
            return response.json()
        except ValueError:
            return response.text
