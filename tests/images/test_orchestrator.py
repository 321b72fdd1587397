"""Tests for the image orchestrator state machine."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from pressroom.content.models import (
    ContentItem,
    ImageApproach,
    ImageOutcome,
    ImageStage,
    ImageState,
    ImageVariant,
    RSSSource,
)
from pressroom.images.analysis import VariantProposalError
from pressroom.images.critic import evaluate_critique
from pressroom.images.models import ClassifierOutput, Critique, ImageAnalysis, RenderedImage
from pressroom.images.orchestrator import ImageOrchestrator, _RunContext
from pressroom.images.renderer import ImageRenderError
from pressroom.llm import LLMError


def _make_item(**kwargs) -> ContentItem:
    return ContentItem(
        id="item-1",
        source=RSSSource(feed_url="https://ex.com/feed"),
        dedup_key="https://ex.com/a",
        original_title="Acme launches a solar drone",
        original_body="Acme today unveiled a drone that flies on sunlight alone.",
        **kwargs,
    )


class _Renderer:
    def __init__(self, failures: int = 0) -> None:
        self.prompts: list[str] = []
        self.failures = failures

    def render(self, prompt: str, *, aspect_ratio: str | None = None) -> RenderedImage:
        self.prompts.append(prompt)
        if self.failures:
            self.failures -= 1
            raise ImageRenderError("no image data")
        return RenderedImage(data=b"img-%d" % len(self.prompts))


class _Critic:
    def __init__(self, *scores: int) -> None:
        self._scores = list(scores)
        self.calls = 0

    def critique(self, image: RenderedImage, original_prompt: str, context) -> Critique:
        score = self._scores[self.calls]
        self.calls += 1
        return evaluate_critique(
            {"overall_score": score, "improvement_suggestions": [f"fix after {score}"]}
        )


class _Storage:
    def __init__(self) -> None:
        self.paths: list[str] = []

    def upload(self, data: bytes, path: str, content_type: str = "") -> str:
        self.paths.append(path)
        return f"https://cdn.example/{path}"


def _classifier_output() -> ClassifierOutput:
    return ClassifierOutput(
        company_name="Acme",
        category="tech_product",
        visual_concept="A drone over a sunny field",
    )


@pytest.fixture
def structured_analysis():
    with (
        patch(
            "pressroom.images.analysis.pre_analyze",
            return_value=ImageAnalysis(approach=ImageApproach.STRUCTURED),
        ) as pre,
        patch("pressroom.images.analysis.classify", return_value=_classifier_output()) as cls,
    ):
        yield pre, cls


def _make_orchestrator(renderer, critic, storage, **kwargs) -> ImageOrchestrator:
    kwargs.setdefault("propose_variants", False)
    return ImageOrchestrator(renderer, critic, storage, **kwargs)


class TestRetryLoop:
    def test_two_retries_then_pass(self, structured_analysis) -> None:
        renderer, storage = _Renderer(), _Storage()
        state = _make_orchestrator(renderer, _Critic(5, 5, 8), storage, max_retries=2).run(
            _make_item()
        )

        assert len(state.attempts) == 3
        assert state.quality_score == 8
        assert state.outcome == ImageOutcome.PASS
        assert state.stage == ImageStage.VALIDATED
        assert [a.score for a in state.attempts] == [5, 5, 8]
        assert storage.paths == [
            "images/item-1/attempt-1.png",
            "images/item-1/attempt-2.png",
            "images/item-1/attempt-3.png",
        ]
        assert state.url == "https://cdn.example/images/item-1/attempt-3.png"
        assert "fix after 5" not in renderer.prompts[0]
        assert "fix after 5" in renderer.prompts[1]

    def test_ceiling_keeps_last_image(self, structured_analysis) -> None:
        state = _make_orchestrator(_Renderer(), _Critic(5, 5, 5), _Storage(), max_retries=2).run(
            _make_item()
        )
        assert len(state.attempts) == 3
        assert state.outcome == ImageOutcome.FAILED
        assert state.url.endswith("attempt-3.png")

    def test_low_score_is_not_retried(self, structured_analysis) -> None:
        critic = _Critic(2)
        state = _make_orchestrator(_Renderer(), critic, _Storage()).run(_make_item())
        assert critic.calls == 1
        assert state.outcome == ImageOutcome.FAILED
        assert state.quality_score == 2

    def test_first_pass_stops(self, structured_analysis) -> None:
        state = _make_orchestrator(_Renderer(), _Critic(9), _Storage()).run(_make_item())
        assert len(state.attempts) == 1
        assert state.outcome == ImageOutcome.PASS
        assert state.approach_used == ImageApproach.STRUCTURED

    def test_zero_retries(self, structured_analysis) -> None:
        state = _make_orchestrator(_Renderer(), _Critic(5), _Storage(), max_retries=0).run(
            _make_item()
        )
        assert len(state.attempts) == 1
        assert state.outcome == ImageOutcome.FAILED


class TestRenderFailures:
    def test_transient_render_failure_consumes_attempt(self, structured_analysis) -> None:
        state = _make_orchestrator(_Renderer(failures=1), _Critic(8), _Storage()).run(_make_item())
        assert len(state.attempts) == 2
        assert state.attempts[0].error == "no image data"
        assert state.outcome == ImageOutcome.PASS

    def test_every_render_fails(self, structured_analysis) -> None:
        critic = _Critic()
        state = _make_orchestrator(_Renderer(failures=10), critic, _Storage()).run(_make_item())
        assert len(state.attempts) == 3
        assert state.outcome == ImageOutcome.FAILED
        assert state.url == ""
        assert critic.calls == 0


class TestPromptPaths:
    def test_creative_approach(self) -> None:
        with (
            patch(
                "pressroom.images.analysis.pre_analyze",
                return_value=ImageAnalysis(approach=ImageApproach.CREATIVE),
            ),
            patch(
                "pressroom.images.analysis.write_creative_prompt",
                return_value="A luminous drone crossing a golden field at dawn.",
            ),
            patch("pressroom.images.analysis.classify") as mock_classify,
        ):
            renderer = _Renderer()
            state = _make_orchestrator(renderer, _Critic(8), _Storage()).run(_make_item())
        assert state.approach_used == ImageApproach.CREATIVE
        assert renderer.prompts[0].startswith("A luminous drone")
        mock_classify.assert_not_called()

    def test_creative_failure_falls_back_to_structured(self) -> None:
        with (
            patch(
                "pressroom.images.analysis.pre_analyze",
                return_value=ImageAnalysis(approach=ImageApproach.ARTISTIC),
            ),
            patch(
                "pressroom.images.analysis.write_creative_prompt",
                side_effect=LLMError("too short"),
            ),
            patch("pressroom.images.analysis.classify", return_value=_classifier_output()),
        ):
            renderer = _Renderer()
            state = _make_orchestrator(renderer, _Critic(8), _Storage()).run(_make_item())
        assert state.approach_used == ImageApproach.STRUCTURED
        assert "Acme" in renderer.prompts[0]

    def test_classifier_failure_uses_default_template(self) -> None:
        with (
            patch("pressroom.images.analysis.pre_analyze", return_value=ImageAnalysis()),
            patch("pressroom.images.analysis.classify", side_effect=LLMError("missing")),
        ):
            renderer = _Renderer()
            state = _make_orchestrator(renderer, _Critic(8), _Storage()).run(_make_item())
        assert state.approach_used == ImageApproach.STRUCTURED
        assert "Acme launches a solar drone" in renderer.prompts[0]


class TestVariants:
    def test_selected_variant_feeds_analysis(self, structured_analysis) -> None:
        pre, _cls = structured_analysis
        variants = [
            ImageVariant(label="Sunrise", description="Drone at dawn"),
            ImageVariant(label="Blueprint", description="Technical drawing"),
        ]
        with (
            patch("pressroom.images.analysis.propose_variants", return_value=("seed", variants)),
            patch("pressroom.images.analysis.select_variant", return_value=1),
        ):
            state = _make_orchestrator(
                _Renderer(), _Critic(8), _Storage(), propose_variants=True
            ).run(_make_item())

        assert state.variants_offered == variants
        assert state.selected_variant == 1
        assert pre.call_args.kwargs["variant"] == "Blueprint: Technical drawing"

    def test_proposal_failure_skips_variants(self, structured_analysis) -> None:
        with patch(
            "pressroom.images.analysis.propose_variants",
            side_effect=VariantProposalError("only 1"),
        ):
            state = _make_orchestrator(
                _Renderer(), _Critic(8), _Storage(), propose_variants=True
            ).run(_make_item())
        assert state.variants_offered == []
        assert state.outcome == ImageOutcome.PASS


class TestFinishedState:
    def test_finished_item_not_regenerated(self) -> None:
        done = ImageState(
            stage=ImageStage.VALIDATED,
            outcome=ImageOutcome.PASS,
            url="https://cdn.example/x.png",
            quality_score=9,
        )
        renderer = MagicMock()
        state = _make_orchestrator(renderer, _Critic(), _Storage()).run(_make_item(image=done))
        assert state == done
        renderer.render.assert_not_called()

    def test_max_attempts(self) -> None:
        assert _make_orchestrator(_Renderer(), _Critic(), _Storage(), max_retries=2).max_attempts == 3

    def test_validate_without_rendered_image_fails(self) -> None:
        critic = _Critic(9)
        orchestrator = _make_orchestrator(_Renderer(), critic, _Storage())
        state = ImageState(stage=ImageStage.GENERATED, url="https://cdn.example/x.png")

        orchestrator._validate(_make_item(), state, _RunContext())

        assert state.stage == ImageStage.VALIDATED
        assert state.outcome == ImageOutcome.FAILED
        assert state.url == "https://cdn.example/x.png"
        assert critic.calls == 0
