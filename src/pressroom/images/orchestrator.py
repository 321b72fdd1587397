"""Image generation orchestrator.

One driver loop walks an explicit state machine::

    NOT_STARTED → VARIANTS_OFFERED (optional) → ANALYZED → GENERATED
        → VALIDATED{PASS | RETRY_PENDING | FAILED}

RETRY_PENDING re-enters generation with the critic's suggestions folded
into the prompt, at most ``max_retries`` times.  FAILED keeps the last
rendered image: illustration is best effort and never stalls an item.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from pressroom.content.models import (
    ContentItem,
    ImageApproach,
    ImageAttempt,
    ImageOutcome,
    ImageStage,
    ImageState,
)
from pressroom.images import analysis
from pressroom.images.models import ArticleContext, Critique, ImageAnalysis, RenderedImage
from pressroom.images.prompts import (
    CATEGORY_TEMPLATES,
    fill_template,
    fold_suggestions,
    quality_directives,
)
from pressroom.llm import LLMError

logger = logging.getLogger(__name__)


class Renderer(Protocol):
    def render(self, prompt: str, *, aspect_ratio: str | None = None) -> RenderedImage: ...


class Critic(Protocol):
    def critique(
        self, image: RenderedImage, original_prompt: str, context: ArticleContext
    ) -> Critique: ...


class Uploader(Protocol):
    def upload(self, data: bytes, path: str, content_type: str = "") -> str: ...


@dataclass
class _RunContext:
    """Working data for one orchestrator run; not persisted."""

    analysis: ImageAnalysis | None = None
    base_prompt: str = ""
    category: str = "general"
    suggestions: list[str] = field(default_factory=list)
    last_image: RenderedImage | None = None


class ImageOrchestrator:
    """Drives one content item through illustration."""

    def __init__(
        self,
        renderer: Renderer,
        critic: Critic,
        storage: Uploader,
        *,
        max_retries: int = 2,
        propose_variants: bool = True,
        brand_name: str = "",
        model: str | None = None,
        timeout: int = 120,
        rng: random.Random | None = None,
    ) -> None:
        self._renderer = renderer
        self._critic = critic
        self._storage = storage
        self._max_retries = max(0, max_retries)
        self._propose_variants = propose_variants
        self._brand_name = brand_name
        self._model = model
        self._timeout = timeout
        self._rng = rng or random.Random()

    @property
    def max_attempts(self) -> int:
        return self._max_retries + 1

    def run(self, item: ContentItem) -> ImageState:
        """Illustrate ``item`` and return its final image state.

        A state that already reached PASS or FAILED is returned unchanged.
        """
        if _finished(item.image):
            return item.image.model_copy(deep=True)

        state = ImageState()
        ctx = _RunContext()
        handlers: dict[ImageStage, Callable[[ContentItem, ImageState, _RunContext], None]] = {
            ImageStage.NOT_STARTED: self._start,
            ImageStage.VARIANTS_OFFERED: self._analyze,
            ImageStage.ANALYZED: self._generate,
            ImageStage.GENERATED: self._validate,
            ImageStage.VALIDATED: self._resolve_retry,
        }

        while not _finished(state):
            handlers[state.stage](item, state, ctx)

        logger.info(
            "Image for %s: outcome=%s score=%s attempts=%d",
            item.id,
            state.outcome,
            state.quality_score,
            len(state.attempts),
        )
        return state

    # ── State handlers ───────────────────────────────────────────

    def _start(self, item: ContentItem, state: ImageState, ctx: _RunContext) -> None:
        if self._propose_variants:
            try:
                _seed, variants = analysis.propose_variants(
                    item.original_title,
                    item.original_body,
                    rng=self._rng,
                    model=self._model,
                    timeout=self._timeout,
                )
            except analysis.VariantProposalError as exc:
                logger.warning("Variant proposal failed for %s: %s", item.id, exc)
            else:
                state.variants_offered = variants
                state.selected_variant = analysis.select_variant(
                    item.original_title, variants, model=self._model, timeout=self._timeout
                )
                state.stage = ImageStage.VARIANTS_OFFERED
                return
        self._analyze(item, state, ctx)

    def _analyze(self, item: ContentItem, state: ImageState, ctx: _RunContext) -> None:
        ctx.analysis = analysis.pre_analyze(
            item.original_title,
            item.original_body,
            variant=_selected_text(state),
            model=self._model,
            timeout=self._timeout,
        )
        state.stage = ImageStage.ANALYZED

    def _generate(self, item: ContentItem, state: ImageState, ctx: _RunContext) -> None:
        if not ctx.base_prompt:
            self._build_prompt(item, state, ctx)

        prompt = fold_suggestions(ctx.base_prompt, ctx.suggestions)
        number = len(state.attempts) + 1
        state.generation_prompt = prompt
        attempt = ImageAttempt(number=number, prompt=prompt)
        state.attempts.append(attempt)

        try:
            image = self._renderer.render(prompt)
            url = self._storage.upload(
                image.data,
                f"images/{item.id}/attempt-{number}.{image.extension}",
                image.mime_type,
            )
        except Exception as exc:
            logger.warning("Image attempt %d for %s failed: %s", number, item.id, exc)
            attempt.error = str(exc)
            if number >= self.max_attempts:
                state.stage = ImageStage.VALIDATED
                state.outcome = ImageOutcome.FAILED
            return

        attempt.url = url
        state.url = url
        ctx.last_image = image
        state.stage = ImageStage.GENERATED

    def _validate(self, item: ContentItem, state: ImageState, ctx: _RunContext) -> None:
        if ctx.last_image is None:
            logger.error("No rendered image to critique for %s, keeping state as failed", item.id)
            state.stage = ImageStage.VALIDATED
            state.outcome = ImageOutcome.FAILED
            return
        critique = self._critic.critique(
            ctx.last_image,
            state.generation_prompt,
            ArticleContext(title=item.original_title, category=ctx.category),
        )
        attempt = state.attempts[-1]
        attempt.score = critique.overall_score
        attempt.issues = list(critique.issues)
        attempt.suggestions = list(critique.improvement_suggestions)

        state.quality_score = critique.overall_score
        state.validation_issues = list(critique.issues)
        state.stage = ImageStage.VALIDATED
        if critique.is_valid:
            state.outcome = ImageOutcome.PASS
        elif critique.should_retry:
            state.outcome = ImageOutcome.RETRY_PENDING
            ctx.suggestions = list(critique.improvement_suggestions)
        else:
            state.outcome = ImageOutcome.FAILED

    def _resolve_retry(self, item: ContentItem, state: ImageState, ctx: _RunContext) -> None:
        if len(state.attempts) >= self.max_attempts:
            logger.info("Retry ceiling reached for %s, keeping last image", item.id)
            state.outcome = ImageOutcome.FAILED
            return
        state.outcome = None
        state.stage = ImageStage.ANALYZED

    # ── Prompt building ──────────────────────────────────────────

    def _build_prompt(self, item: ContentItem, state: ImageState, ctx: _RunContext) -> None:
        chosen = ctx.analysis or ImageAnalysis(fallback=True)
        title, body = item.original_title, item.original_body

        if chosen.approach != ImageApproach.STRUCTURED:
            try:
                prose = analysis.write_creative_prompt(
                    title,
                    body,
                    chosen,
                    variant=_selected_text(state),
                    model=self._model,
                    timeout=self._timeout,
                )
            except LLMError as exc:
                logger.warning("Creative writer failed for %s, using structured: %s", item.id, exc)
            else:
                ctx.base_prompt = prose + "\n" + quality_directives(self._brand_name)
                state.approach_used = chosen.approach
                return

        state.approach_used = ImageApproach.STRUCTURED
        try:
            data = analysis.classify(title, body, model=self._model, timeout=self._timeout)
        except LLMError as exc:
            logger.warning(
                "Image classifier failed for %s, using default template: %s", item.id, exc
            )
            ctx.base_prompt, _data = analysis.default_prompt(title)
            return
        ctx.category = data.category
        ctx.base_prompt = fill_template(CATEGORY_TEMPLATES[data.category], data)


def _finished(state: ImageState) -> bool:
    return state.stage == ImageStage.VALIDATED and state.outcome in (
        ImageOutcome.PASS,
        ImageOutcome.FAILED,
    )


def _selected_text(state: ImageState) -> str:
    if state.selected_variant is None or not state.variants_offered:
        return ""
    variant = state.variants_offered[state.selected_variant]
    return f"{variant.label}: {variant.description}"
