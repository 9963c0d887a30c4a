"""
Vision prompts and request builder for food recognition.

Static instructions live in VISION_SYSTEM_PROMPT; the user's description
is appended as dynamic context.
"""

from __future__ import annotations

from typing import Optional

from mealvision.domain.meal.image.models import ProcessedImage
from mealvision.domain.meal.recognition.models import AnalysisRequest

MAX_DESCRIPTION_LENGTH = 500

DEFAULT_TEMPERATURE = 0.2
DEFAULT_MAX_OUTPUT_TOKENS = 512
DEFAULT_TIMEOUT_S = 20.0


# ═══════════════════════════════════════════════════════════
# SYSTEM PROMPT (static instructions)
# ═══════════════════════════════════════════════════════════

VISION_SYSTEM_PROMPT = """あなたは食事写真から料理と食品を特定する栄養士AIです。

タスク: 画像に写っている食品をすべて特定し、量と栄養素を推定してください。

出力ルール:
- JSONのみを返すこと。説明文、Markdown、コードフェンスは禁止
- name は日本語の食品名（例: "ご飯", "鶏むね肉（皮なし）", "味噌汁"）
- quantity は推定量の数値、unit は "g" または "ml"（個数の場合は "個"）
- calories は kcal、protein / fat / carbs は g 単位の数値
- confidence は 0.0〜1.0 の数値
- 最大10品目。食品が見つからない場合は {"items": []}

出力スキーマ:
{"items":[{"name":"string","quantity":<num>,"unit":"g","calories":<num>,"protein":<num>,"fat":<num>,"carbs":<num>,"confidence":<0-1>}]}

量の推定:
- 皿や箸などの大きさを手がかりにする
- 一般的な一人前（ご飯150g、味噌汁200mlなど）を基準にする
- 不確かな場合は控えめに見積もる
"""


# ═══════════════════════════════════════════════════════════
# REQUEST BUILDERS (dynamic)
# ═══════════════════════════════════════════════════════════


def clean_description(description: Optional[str]) -> Optional[str]:
    """Strip and truncate the user's description; blank becomes None."""
    if description is None:
        return None
    cleaned = description.strip()
    if not cleaned:
        return None
    return cleaned[:MAX_DESCRIPTION_LENGTH]


def build_vision_prompt(description: Optional[str] = None) -> str:
    """Build the full instruction text.

    Args:
        description: Already-cleaned user description

    Returns:
        Prompt text sent alongside the image
    """
    if not description:
        return VISION_SYSTEM_PROMPT
    return f"{VISION_SYSTEM_PROMPT}\nユーザーによる補足説明:\n{description}\n"


def build_analysis_request(
    image: ProcessedImage,
    description: Optional[str] = None,
    *,
    temperature: float = DEFAULT_TEMPERATURE,
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
    timeout_s: float = DEFAULT_TIMEOUT_S,
) -> AnalysisRequest:
    """
    Turn an image and optional description into a vision request.

    Pure transformation: no I/O.

    Args:
        image: Processed image
        description: Optional free text (truncated to 500 characters)
        temperature: Sampling temperature (low for consistent output)
        max_output_tokens: Output token cap
        timeout_s: Hard timeout for the provider call

    Returns:
        AnalysisRequest with inline base64 image data

    Example:
        >>> request = build_analysis_request(image, "ご飯と味噌汁")
        >>> request.description
        'ご飯と味噌汁'
    """
    cleaned = clean_description(description)
    return AnalysisRequest(
        prompt=build_vision_prompt(cleaned),
        image_base64=image.base64,
        mime_type=image.mime_type,
        description=cleaned,
        temperature=temperature,
        max_output_tokens=max_output_tokens,
        timeout_s=timeout_s,
    )
