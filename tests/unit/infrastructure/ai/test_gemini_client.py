"""
Unit tests for the Gemini vision provider.

HTTP is served by httpx.MockTransport; no network access.
"""

import json
from typing import Callable, Dict, List

import httpx
import pytest

from mealvision.domain.meal.recognition.models import AnalysisRequest
from mealvision.domain.shared.errors import (
    FatalProviderError,
    ProviderTimeoutError,
    RetryableProviderError,
)
from mealvision.infrastructure.ai.gemini_client import GeminiVisionProvider

Handler = Callable[[httpx.Request], httpx.Response]


def _provider(handler: Handler) -> GeminiVisionProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeminiVisionProvider(
        api_key="test-key",
        model="gemini-test",
        base_url="https://gemini.test/v1beta/",
        http_client=client,
    )


class TestGeminiVisionProvider:
    """Request rendering and error mapping."""

    async def test_request_shape(self, sample_request: AnalysisRequest, gemini_response) -> None:
        captured: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json=gemini_response([{"name": "ご飯", "calories": 250}]))

        raw = await _provider(handler).analyze_raw(sample_request)

        request = captured[0]
        assert str(request.url) == "https://gemini.test/v1beta/models/gemini-test:generateContent"
        assert request.headers["x-goog-api-key"] == "test-key"

        body: Dict = json.loads(request.content)
        parts = body["contents"][0]["parts"]
        assert parts[0]["text"] == sample_request.prompt
        assert parts[1]["inline_data"] == {
            "mime_type": "image/jpeg",
            "data": sample_request.image_base64,
        }
        assert body["generationConfig"] == {
            "temperature": 0.2,
            "maxOutputTokens": 512,
            "responseMimeType": "application/json",
        }
        assert raw["candidates"][0]["content"]["parts"][0]["text"].startswith('{"items"')

    async def test_non_json_body_returned_as_text(self, sample_request: AnalysisRequest) -> None:
        provider = _provider(lambda request: httpx.Response(200, text="not json"))

        assert await provider.analyze_raw(sample_request) == "not json"

    @pytest.mark.parametrize("status", [500, 502, 503])
    async def test_server_errors_retryable(
        self, sample_request: AnalysisRequest, status: int
    ) -> None:
        provider = _provider(lambda request: httpx.Response(status, text="unavailable"))

        with pytest.raises(RetryableProviderError) as exc_info:
            await provider.analyze_raw(sample_request)

        assert exc_info.value.status_code == status

    @pytest.mark.parametrize("status", [400, 401, 403, 429])
    async def test_client_errors_fatal(self, sample_request: AnalysisRequest, status: int) -> None:
        provider = _provider(lambda request: httpx.Response(status, json={"error": {}}))

        with pytest.raises(FatalProviderError) as exc_info:
            await provider.analyze_raw(sample_request)

        assert exc_info.value.status_code == status

    async def test_timeout_mapped(self, sample_request: AnalysisRequest) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(ProviderTimeoutError):
            await _provider(handler).analyze_raw(sample_request)

    async def test_transport_error_retryable(self, sample_request: AnalysisRequest) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(RetryableProviderError) as exc_info:
            await _provider(handler).analyze_raw(sample_request)

        assert exc_info.value.status_code is None

    def test_requires_api_key(self) -> None:
        with pytest.raises(ValueError):
            GeminiVisionProvider(api_key="")
