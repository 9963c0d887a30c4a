"""
Unit tests for provider selection and the stub provider.
"""

from dataclasses import replace

import pytest

from mealvision.config import Settings
from mealvision.domain.meal.recognition.models import AnalysisRequest
from mealvision.domain.meal.recognition.normalizer import ResponseNormalizer
from mealvision.domain.meal.recognition.ports import VisionProvider
from mealvision.infrastructure.ai.factory import create_vision_provider
from mealvision.infrastructure.ai.gemini_client import GeminiVisionProvider
from mealvision.infrastructure.ai.openai_client import OpenAIVisionProvider
from mealvision.infrastructure.ai.stub_provider import StubVisionProvider


@pytest.fixture
def real_settings() -> Settings:
    return Settings(
        enable_real_ai_analysis=True,
        google_ai_api_key="AIza-test",
        openai_api_key="sk-test",
    )


class TestCreateVisionProvider:
    """Settings-based selection."""

    def test_stub_when_real_analysis_disabled(self) -> None:
        provider = create_vision_provider(Settings(google_ai_api_key="AIza-test"))

        assert isinstance(provider, StubVisionProvider)

    def test_gemini(self, real_settings: Settings) -> None:
        provider = create_vision_provider(real_settings)

        assert isinstance(provider, GeminiVisionProvider)
        assert provider.model == real_settings.gemini_model

    def test_openai(self, real_settings: Settings) -> None:
        provider = create_vision_provider(replace(real_settings, vision_provider="openai"))

        assert isinstance(provider, OpenAIVisionProvider)

    def test_mock(self, real_settings: Settings) -> None:
        provider = create_vision_provider(replace(real_settings, vision_provider="mock"))

        assert isinstance(provider, StubVisionProvider)

    def test_missing_key_falls_back_to_stub(self, real_settings: Settings) -> None:
        provider = create_vision_provider(replace(real_settings, google_ai_api_key=None))

        assert isinstance(provider, StubVisionProvider)

    def test_unknown_provider(self, real_settings: Settings) -> None:
        provider = create_vision_provider(replace(real_settings, vision_provider="replicate"))

        assert isinstance(provider, StubVisionProvider)


class TestStubVisionProvider:
    """Deterministic canned response."""

    async def test_deterministic(self, sample_request: AnalysisRequest) -> None:
        provider = StubVisionProvider()

        first = await provider.analyze_raw(sample_request)
        second = await provider.analyze_raw(sample_request)

        assert first == second
        assert provider.calls == 2

    async def test_normalizes_cleanly(self, sample_request: AnalysisRequest) -> None:
        raw = await StubVisionProvider().analyze_raw(sample_request)

        outcome = ResponseNormalizer().normalize(raw)

        assert outcome.fallback is False
        assert [i.name for i in outcome.items] == ["ご飯", "鶏胸肉", "味噌汁"]
        assert [i.calories for i in outcome.items] == [252, 165, 60]

    def test_satisfies_port(self) -> None:
        assert isinstance(StubVisionProvider(), VisionProvider)
