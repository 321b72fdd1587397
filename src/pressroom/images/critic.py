"""Critic: vision-model review of a rendered image.

The critic is fail-open.  If the vision call or its parsing fails, the
image passes with a score of 7 so an unreachable validator never blocks
the pipeline.
"""

from __future__ import annotations

import logging
from typing import Any

from google import genai
from google.genai import types

from pressroom.config import ImagesSectionConfig
from pressroom.images.models import ArticleContext, Critique, RenderedImage
from pressroom.images.prompts import get_critic_prompt
from pressroom.llm import LLMError, parse_json_response

logger = logging.getLogger(__name__)

PASS_SCORE = 6
RETRY_MIN_SCORE = 4
MAX_ISSUES = 2
FAIL_OPEN_SCORE = 7


def _as_int(value: Any, default: int) -> int:
    try:
        return int(round(float(value)))
    except (TypeError, ValueError):
        return default


def _as_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if str(v).strip()]


def evaluate_critique(data: dict[str, Any], *, brand_name: str = "") -> Critique:
    """Apply pass/retry rules to a raw critic response.

    ``is_valid`` needs a score of at least 6 and at most two issues.
    ``should_retry`` is only set for invalid images scoring 4 or 5;
    anything lower is not worth another attempt.
    """
    relevance = _as_int(data.get("relevance"), FAIL_OPEN_SCORE)
    quality = _as_int(data.get("quality"), FAIL_OPEN_SCORE)
    if data.get("overall_score") is None:
        score = round((relevance + quality) / 2)
    else:
        score = _as_int(data.get("overall_score"), round((relevance + quality) / 2))

    branding = bool(data.get("branding", True)) if brand_name else True
    artifacts = _as_list(data.get("artifacts"))
    text_issues = _as_list(data.get("text_issues"))
    issues = artifacts + text_issues
    if not branding:
        issues.append(f"Missing {brand_name} branding")

    is_valid = score >= PASS_SCORE and len(issues) <= MAX_ISSUES
    should_retry = not is_valid and RETRY_MIN_SCORE <= score < PASS_SCORE

    return Critique(
        relevance=relevance,
        quality=quality,
        branding=branding,
        artifacts=artifacts,
        text_issues=text_issues,
        overall_score=score,
        issues=issues,
        improvement_suggestions=_as_list(data.get("improvement_suggestions")),
        is_valid=is_valid,
        should_retry=should_retry,
    )


def fail_open_critique() -> Critique:
    return Critique(
        relevance=FAIL_OPEN_SCORE,
        quality=FAIL_OPEN_SCORE,
        overall_score=FAIL_OPEN_SCORE,
        is_valid=True,
        should_retry=False,
        fail_open=True,
    )


class ImageCritic:
    """Scores rendered images with a Gemini vision model."""

    def __init__(self, config: ImagesSectionConfig, *, brand_name: str = "") -> None:
        self._config = config
        self._brand_name = brand_name
        self._client: genai.Client | None = None

    def _get_client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self._config.api_key)
        return self._client

    def critique(
        self,
        image: RenderedImage,
        original_prompt: str,
        context: ArticleContext,
    ) -> Critique:
        prompt = get_critic_prompt(
            self._brand_name,
            original_prompt,
            context.title,
            context.category,
            context.language,
        )
        try:
            response = self._get_client().models.generate_content(
                model=self._config.vision_model,
                contents=[
                    types.Part.from_bytes(data=image.data, mime_type=image.mime_type),
                    prompt,
                ],
                config=types.GenerateContentConfig(temperature=0.2),
            )
            data = parse_json_response(response.text or "", label="image-critic")
            if not isinstance(data, dict):
                raise LLMError("critic returned a non-object")
        except Exception as exc:
            logger.warning("Image critic failed, passing image by default: %s", exc)
            return fail_open_critique()

        critique = evaluate_critique(data, brand_name=self._brand_name)
        logger.info(
            "Critic score=%d valid=%s retry=%s issues=%d",
            critique.overall_score,
            critique.is_valid,
            critique.should_retry,
            len(critique.issues),
        )
        return critique
