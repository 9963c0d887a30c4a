"""Vision analysis client.

Sends an AnalysisRequest through an injected VisionProvider with a hard
timeout, classifies failures and retries the transient ones.

Failure classes:
* 5xx, timeouts, transport errors → RetryableProviderError (retried)
* 4xx and unknown errors → FatalProviderError (raised immediately)
* retry budget exhausted → AnalysisFailedError
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional

import httpx
import structlog

from mealvision.domain.meal.recognition.models import AnalysisRequest
from mealvision.domain.meal.recognition.ports import VisionProvider
from mealvision.domain.shared.errors import (
    AnalysisFailedError,
    FatalProviderError,
    ProviderTimeoutError,
    RetryableProviderError,
    VisionProviderError,
    classify_status,
)
from mealvision.infrastructure.retry import OnRetry, RetryPolicy, with_retry
from mealvision.metrics.vision_analysis import record_retry

logger = structlog.get_logger(__name__)


def is_retryable_error(error: BaseException) -> bool:
    return isinstance(error, VisionProviderError) and error.retryable


# Vision calls are expensive: one retry at most.
VISION_RETRY_POLICY = RetryPolicy(
    max_attempts=2,
    base_delay=3.0,
    max_delay=10.0,
    multiplier=2.0,
    jitter_ratio=0.1,
    is_retryable=is_retryable_error,
)


def classify_provider_error(error: BaseException) -> VisionProviderError:
    """
    Map any provider-side exception onto the provider error taxonomy.

    Already-classified errors are returned unchanged.

    Example:
        >>> classify_provider_error(httpx.ConnectError("refused")).retryable
        True
    """
    if isinstance(error, VisionProviderError):
        return error
    if isinstance(error, (asyncio.TimeoutError, httpx.TimeoutException)):
        return ProviderTimeoutError(f"Vision call timed out: {error}")
    if isinstance(error, httpx.HTTPStatusError):
        return classify_status(
            error.response.status_code,
            f"Vision API error: {error.response.status_code}",
        )
    if isinstance(error, (httpx.TransportError, ConnectionError)):
        return RetryableProviderError(f"Vision transport error: {error}")

    status_code = getattr(error, "status_code", None)
    if isinstance(status_code, int):
        return classify_status(status_code, f"Vision API error: {status_code}")
    return FatalProviderError(f"Unexpected vision error: {error!r}")


class VisionAnalysisClient:
    """
    Timeout and retry wrapper around a VisionProvider.

    Example:
        >>> client = VisionAnalysisClient(GeminiVisionProvider(api_key="..."))
        >>> raw = await client.analyze_raw(request)
    """

    def __init__(
        self,
        provider: VisionProvider,
        retry_policy: RetryPolicy = VISION_RETRY_POLICY,
        timeout_s: Optional[float] = None,
        on_retry: Optional[OnRetry] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Args:
            provider: Vision backend adapter
            retry_policy: Backoff policy for retryable errors
            timeout_s: Hard timeout per attempt; the request's timeout if None
            on_retry: Extra hook called with (attempt_number, error)
            sleep: Awaitable sleep used between attempts (injectable for tests)
        """
        self._provider = provider
        self.retry_policy = retry_policy
        self.timeout_s = timeout_s
        self._on_retry = on_retry
        self._sleep = sleep

    @property
    def provider_name(self) -> str:
        return self._provider.name

    async def analyze_raw(self, request: AnalysisRequest) -> Any:
        """
        Call the provider and return its raw response.

        Raises:
            FatalProviderError: Provider rejected the request (never retried)
            AnalysisFailedError: Retryable failures exhausted the budget
        """
        timeout = self.timeout_s if self.timeout_s is not None else request.timeout_s
        attempts = 0

        async def attempt() -> Any:
            nonlocal attempts
            attempts += 1
            try:
                return await asyncio.wait_for(
                    self._provider.analyze_raw(request), timeout=timeout
                )
            except asyncio.TimeoutError as e:
                raise ProviderTimeoutError(
                    f"Vision call timed out after {timeout}s"
                ) from e
            except VisionProviderError:
                raise
            except Exception as e:
                raise classify_provider_error(e) from e

        try:
            return await with_retry(
                attempt,
                self.retry_policy,
                on_retry=self._handle_retry,
                sleep=self._sleep,
            )
        except VisionProviderError as e:
            if not e.retryable:
                logger.error(
                    "Vision provider rejected request",
                    provider=self.provider_name,
                    status_code=e.status_code,
                    error=str(e),
                )
                raise
            logger.error(
                "Vision analysis failed after retries",
                provider=self.provider_name,
                attempts=attempts,
                status_code=e.status_code,
                error=str(e),
            )
            raise AnalysisFailedError(
                f"Vision analysis failed after {attempts} attempts",
                last_error=e,
                attempts=attempts,
            ) from e

    def _handle_retry(self, attempt: int, error: BaseException) -> None:
        logger.warning(
            "Retrying vision analysis",
            provider=self.provider_name,
            attempt=attempt,
            max_attempts=self.retry_policy.max_attempts,
            status_code=getattr(error, "status_code", None),
            error=str(error),
        )
        record_retry(source=self.provider_name)
        if self._on_retry is not None:
            self._on_retry(attempt, error)
