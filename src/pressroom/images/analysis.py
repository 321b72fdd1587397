"""LLM steps that turn an article into an image prompt.

Each step has its own failure policy:

* variant proposal fails hard below two concepts (the caller skips it);
* pre-analysis falls back to the structured approach;
* the classifier raises, and the caller fills the default template;
* the creative writer raises, and the caller takes the structured path.
"""

from __future__ import annotations

import logging
import random
import re

from pydantic import ValidationError

from pressroom.content.models import ImageApproach, ImageVariant
from pressroom.images.models import ClassifierOutput, ImageAnalysis
from pressroom.images.prompts import (
    CREATIVE_SYSTEM_PROMPT,
    DEFAULT_TEMPLATE,
    IMAGE_SYSTEM_PROMPT,
    STYLE_SEEDS,
    fill_template,
    get_classifier_prompt,
    get_creative_writer_prompt,
    get_pre_analysis_prompt,
    get_variant_selection_prompt,
    get_variants_prompt,
    normalize_category,
)
from pressroom.llm import LLMError, call_llm, call_llm_json

logger = logging.getLogger(__name__)

REQUESTED_VARIANTS = 4
MIN_VARIANTS = 2
CREATIVE_MIN_WORDS = 60


class VariantProposalError(Exception):
    """Fewer than two usable concepts came back."""


def propose_variants(
    title: str,
    body: str,
    *,
    rng: random.Random | None = None,
    model: str | None = None,
    timeout: int = 120,
) -> tuple[str, list[ImageVariant]]:
    """Ask for four concepts built on a random style seed.

    Returns:
        The seed used and the valid concepts (2 to 4).

    Raises:
        VariantProposalError: On call failure or fewer than two valid concepts.
    """
    seed = (rng or random).choice(STYLE_SEEDS)
    try:
        data = call_llm_json(
            IMAGE_SYSTEM_PROMPT,
            get_variants_prompt(title, body, seed),
            temperature=0.9,
            max_tokens=1000,
            model=model,
            timeout=timeout,
            label="image-variants",
        )
    except LLMError as exc:
        raise VariantProposalError(str(exc)) from exc

    variants: list[ImageVariant] = []
    raw = data.get("variants")
    for entry in raw if isinstance(raw, list) else []:
        if not isinstance(entry, dict):
            continue
        label = str(entry.get("label") or "").strip()
        description = str(entry.get("description") or "").strip()
        if label and description:
            variants.append(ImageVariant(label=label, description=description))

    variants = variants[:REQUESTED_VARIANTS]
    if len(variants) < MIN_VARIANTS:
        raise VariantProposalError(f"only {len(variants)} valid concept(s) returned")
    return seed, variants


def select_variant(
    title: str,
    variants: list[ImageVariant],
    *,
    model: str | None = None,
    timeout: int = 120,
) -> int:
    """Automated selector.  Returns a 0-based index; the first concept on failure."""
    try:
        data = call_llm_json(
            IMAGE_SYSTEM_PROMPT,
            get_variant_selection_prompt(title, [(v.label, v.description) for v in variants]),
            temperature=0.3,
            max_tokens=50,
            model=model,
            timeout=timeout,
            label="image-variant-select",
        )
        index = int(data.get("selected_index", 1)) - 1
    except (LLMError, TypeError, ValueError) as exc:
        logger.warning("Variant selection failed, using the first concept: %s", exc)
        return 0
    if 0 <= index < len(variants):
        return index
    return 0


def pre_analyze(
    title: str,
    body: str,
    *,
    variant: str = "",
    model: str | None = None,
    timeout: int = 120,
) -> ImageAnalysis:
    """Choose a generation approach.  Any failure yields ``structured``."""
    try:
        data = call_llm_json(
            IMAGE_SYSTEM_PROMPT,
            get_pre_analysis_prompt(title, body, variant),
            temperature=0.4,
            max_tokens=600,
            model=model,
            timeout=timeout,
            label="image-pre-analysis",
        )
        approach = ImageApproach(str(data.get("approach", "")).strip().lower())
    except (LLMError, ValueError) as exc:
        logger.warning("Image pre-analysis failed, defaulting to structured: %s", exc)
        return ImageAnalysis(fallback=True)

    return ImageAnalysis(
        approach=approach,
        mood=str(data.get("mood") or ""),
        color_palette=str(data.get("color_palette") or ""),
        emotion=str(data.get("emotion") or ""),
        core_idea=str(data.get("core_idea") or ""),
        visual_metaphor=str(data.get("visual_metaphor") or ""),
    )


def classify(
    title: str,
    body: str,
    *,
    model: str | None = None,
    timeout: int = 120,
) -> ClassifierOutput:
    """Extract structured facts for template filling.

    Raises:
        LLMError: On call failure or when company_name, category or
            visual_concept is missing.
    """
    data = call_llm_json(
        IMAGE_SYSTEM_PROMPT,
        get_classifier_prompt(title, body),
        temperature=0.3,
        max_tokens=800,
        model=model,
        timeout=timeout,
        label="image-classifier",
    )
    for required in ("company_name", "category", "visual_concept"):
        if not str(data.get(required) or "").strip():
            raise LLMError(f"classifier output missing {required}")
    data["category"] = normalize_category(str(data["category"]))
    for list_field in ("key_features", "visual_elements"):
        if not isinstance(data.get(list_field), list):
            data[list_field] = []
    try:
        return ClassifierOutput.model_validate(data)
    except ValidationError as exc:
        raise LLMError(f"classifier output invalid: {exc}") from exc


def default_prompt(title: str) -> tuple[str, ClassifierOutput]:
    """Deterministic prompt used when the classifier is unavailable."""
    words = [w for w in re.findall(r"\w+", title) if len(w) > 3][:5]
    data = ClassifierOutput(
        company_name="",
        category="general",
        visual_concept=f"A symbolic scene representing: {title}",
        visual_elements=words,
    )
    return fill_template(DEFAULT_TEMPLATE, data), data


def write_creative_prompt(
    title: str,
    body: str,
    analysis: ImageAnalysis,
    *,
    variant: str = "",
    model: str | None = None,
    timeout: int = 120,
) -> str:
    """Expand pre-analysis into free-form prose.

    Raises:
        LLMError: On call failure or an implausibly short prompt.
    """
    text = call_llm(
        CREATIVE_SYSTEM_PROMPT,
        get_creative_writer_prompt(title, body, analysis, variant),
        temperature=0.8,
        max_tokens=800,
        model=model,
        timeout=timeout,
        label="image-creative",
    ).strip()
    if len(text.split()) < CREATIVE_MIN_WORDS:
        raise LLMError(f"creative prompt too short ({len(text.split())} words)")
    return text
