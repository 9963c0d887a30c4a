"""
OpenAI vision provider.

Chat completion with the image as a data URL. SDK-level retries are
disabled so the VisionAnalysisClient policy is the only retry layer.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from openai import APIConnectionError, APIStatusError, APITimeoutError, AsyncOpenAI

from mealvision.domain.meal.recognition.models import AnalysisRequest
from mealvision.domain.shared.errors import (
    ProviderTimeoutError,
    RetryableProviderError,
    classify_status,
)

logger = structlog.get_logger(__name__)

DEFAULT_OPENAI_VISION_MODEL = "gpt-4o-mini"


class OpenAIVisionProvider:
    """
    OpenAI adapter implementing the VisionProvider port.

    Example:
        >>> provider = OpenAIVisionProvider(api_key="sk-...")
        >>> raw = await provider.analyze_raw(request)
        >>> raw["choices"][0]["message"]["content"]
        '{"items": [...]}'
    """

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_OPENAI_VISION_MODEL,
        client: Optional[AsyncOpenAI] = None,
    ):
        """
        Args:
            api_key: OpenAI API key
            model: Vision-capable chat model
            client: Pre-configured AsyncOpenAI client (for testing)

        Raises:
            ValueError: If neither api_key nor client is provided
        """
        if client is None:
            if not api_key:
                raise ValueError("OPENAI_API_KEY is required for the OpenAI provider")
            client = AsyncOpenAI(api_key=api_key, max_retries=0)
        self._client = client
        self.model = model

    def build_messages(self, request: AnalysisRequest) -> List[Dict[str, Any]]:
        return [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": request.prompt},
                    {"type": "image_url", "image_url": {"url": request.data_url}},
                ],
            }
        ]

    async def analyze_raw(self, request: AnalysisRequest) -> Any:
        """
        Run the completion and return it as a plain dict.

        Raises:
            FatalProviderError: 4xx status from the API
            RetryableProviderError: 5xx status or connection failure
            ProviderTimeoutError: SDK timeout
        """
        try:
            completion = await self._client.chat.completions.create(
                model=self.model,
                messages=self.build_messages(request),  # type: ignore[arg-type]
                temperature=request.temperature,
                max_tokens=request.max_output_tokens,
                response_format={"type": "json_object"},
                timeout=request.timeout_s,
            )
        # APITimeoutError subclasses APIConnectionError: order matters
        except APITimeoutError as e:
            raise ProviderTimeoutError(f"OpenAI request timed out: {e}") from e
        except APIConnectionError as e:
            raise RetryableProviderError(f"OpenAI connection error: {e}") from e
        except APIStatusError as e:
            logger.warning(
                "OpenAI API error",
                model=self.model,
                status_code=e.status_code,
            )
            raise classify_status(
                e.status_code, f"OpenAI API error: {e.status_code}"
            ) from e

        return completion.model_dump()
