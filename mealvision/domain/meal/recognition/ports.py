"""Port (interface) for vision AI providers.

This port defines the contract that external vision providers
(Gemini, OpenAI, the offline stub) implement so the pipeline can take
one as an explicit dependency.
"""

from typing import Any, Protocol, runtime_checkable

from mealvision.domain.meal.recognition.models import AnalysisRequest


@runtime_checkable
class VisionProvider(Protocol):
    """
    Interface for vision AI providers.

    This port follows the Dependency Inversion Principle:
    - Domain layer defines the interface (port)
    - Infrastructure layer implements it (adapter)
    - The composition root decides which adapter to construct
    """

    name: str

    async def analyze_raw(self, request: AnalysisRequest) -> Any:
        """
        Send the request and return the provider's raw response.

        The response shape is provider-specific and not guaranteed to
        match the requested schema; the normalizer deals with that.

        Args:
            request: Provider-neutral analysis request

        Returns:
            Decoded JSON body, or raw text when the body is not JSON

        Raises:
            FatalProviderError: On 4xx-equivalent rejections
            RetryableProviderError: On 5xx-equivalent or network failures
        """
        ...
