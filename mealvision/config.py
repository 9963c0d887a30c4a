"""Configuration loaded from the environment.

Variables are read once by ``load_settings()`` (after loading ``.env``
with python-dotenv) into an immutable Settings value. Unparsable numbers
fall back to their defaults.

Example .env:
    VISION_PROVIDER=gemini
    ENABLE_REAL_AI_ANALYSIS=true
    GOOGLE_AI_API_KEY=AIza...
    SUPABASE_URL=https://xyz.supabase.co
    SUPABASE_SERVICE_ROLE_KEY=eyJ...
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from mealvision.domain.meal.recognition.prompts import (
    DEFAULT_MAX_OUTPUT_TOKENS,
    DEFAULT_TEMPERATURE,
    DEFAULT_TIMEOUT_S,
)
from mealvision.infrastructure.ai.gemini_client import (
    DEFAULT_GEMINI_BASE_URL,
    DEFAULT_GEMINI_MODEL,
)
from mealvision.infrastructure.ai.openai_client import DEFAULT_OPENAI_VISION_MODEL

_TRUTHY = {"1", "true", "yes", "on"}


def _get_str(name: str, *fallbacks: str) -> Optional[str]:
    for key in (name, *fallbacks):
        value = os.getenv(key)
        if value:
            return value.strip()
    return None


def _get_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


def _get_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _get_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the recognition pipeline."""

    vision_provider: str = "gemini"
    enable_real_ai_analysis: bool = False

    google_ai_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    gemini_base_url: str = DEFAULT_GEMINI_BASE_URL
    temperature: float = DEFAULT_TEMPERATURE
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS
    timeout_s: float = DEFAULT_TIMEOUT_S

    openai_api_key: Optional[str] = None
    openai_vision_model: str = DEFAULT_OPENAI_VISION_MODEL

    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    composition_table: str = "jfct_foods"

    max_image_bytes: int = 10 * 1024 * 1024
    max_image_width: int = 1200
    max_image_height: int = 1200
    image_quality: int = 85

    log_level: str = "INFO"


def load_settings(env_file: Optional[str] = None) -> Settings:
    """
    Read settings from the environment.

    Args:
        env_file: Optional .env path; python-dotenv's discovery if None.
            Existing environment variables are never overridden.

    Returns:
        Settings instance
    """
    load_dotenv(env_file)

    timeout_ms = _get_float("GEMINI_TIMEOUT_MS", DEFAULT_TIMEOUT_S * 1000)
    max_image_mb = _get_float("MAX_IMAGE_SIZE_MB", 10.0)

    return Settings(
        vision_provider=(os.getenv("VISION_PROVIDER") or "gemini").strip().lower(),
        enable_real_ai_analysis=_get_bool("ENABLE_REAL_AI_ANALYSIS"),
        google_ai_api_key=_get_str("GOOGLE_AI_API_KEY"),
        gemini_model=_get_str("GEMINI_MODEL") or DEFAULT_GEMINI_MODEL,
        gemini_base_url=_get_str("GEMINI_BASE_URL") or DEFAULT_GEMINI_BASE_URL,
        temperature=_get_float("GEMINI_TEMPERATURE", DEFAULT_TEMPERATURE),
        max_output_tokens=_get_int("GEMINI_MAX_OUTPUT_TOKENS", DEFAULT_MAX_OUTPUT_TOKENS),
        timeout_s=timeout_ms / 1000 if timeout_ms > 0 else DEFAULT_TIMEOUT_S,
        openai_api_key=_get_str("OPENAI_API_KEY"),
        openai_vision_model=_get_str("OPENAI_VISION_MODEL") or DEFAULT_OPENAI_VISION_MODEL,
        supabase_url=_get_str("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"),
        supabase_key=_get_str("SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_ANON_KEY"),
        composition_table=_get_str("COMPOSITION_TABLE") or "jfct_foods",
        max_image_bytes=int(max_image_mb * 1024 * 1024),
        max_image_width=_get_int("MAX_IMAGE_WIDTH", 1200),
        max_image_height=_get_int("MAX_IMAGE_HEIGHT", 1200),
        image_quality=_get_int("IMAGE_QUALITY", 85),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
