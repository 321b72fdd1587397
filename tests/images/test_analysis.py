"""Tests for pressroom.images.analysis — prompt-building LLM steps."""

from __future__ import annotations

import random
from unittest.mock import MagicMock, patch

import pytest

from pressroom.content.models import ImageApproach, ImageVariant
from pressroom.images.analysis import (
    VariantProposalError,
    classify,
    default_prompt,
    pre_analyze,
    propose_variants,
    select_variant,
    write_creative_prompt,
)
from pressroom.images.models import ImageAnalysis
from pressroom.images.prompts import STYLE_SEEDS
from pressroom.llm import LLMError

_VARIANTS = [
    ImageVariant(label="A", description="first"),
    ImageVariant(label="B", description="second"),
    ImageVariant(label="C", description="third"),
]


class TestProposeVariants:
    @patch("pressroom.images.analysis.call_llm_json")
    def test_returns_valid_concepts(self, mock_llm: MagicMock) -> None:
        mock_llm.return_value = {
            "variants": [
                {"label": "Dawn", "description": "Drone at sunrise"},
                {"label": "", "description": "no label"},
                {"label": "Grid", "description": "Solar grid"},
                "junk",
            ]
        }
        seed, variants = propose_variants("t", "b", rng=random.Random(1))
        assert seed in STYLE_SEEDS
        assert [v.label for v in variants] == ["Dawn", "Grid"]

    @patch("pressroom.images.analysis.call_llm_json")
    def test_too_few_raises(self, mock_llm: MagicMock) -> None:
        mock_llm.return_value = {"variants": [{"label": "Only", "description": "one"}]}
        with pytest.raises(VariantProposalError):
            propose_variants("t", "b")

    @patch("pressroom.images.analysis.call_llm_json", side_effect=LLMError("down"))
    def test_llm_error_raises(self, _mock: MagicMock) -> None:
        with pytest.raises(VariantProposalError):
            propose_variants("t", "b")


class TestSelectVariant:
    @patch("pressroom.images.analysis.call_llm_json", return_value={"selected_index": 3})
    def test_one_based_index(self, _mock: MagicMock) -> None:
        assert select_variant("t", _VARIANTS) == 2

    @patch("pressroom.images.analysis.call_llm_json", return_value={"selected_index": 9})
    def test_out_of_range_uses_first(self, _mock: MagicMock) -> None:
        assert select_variant("t", _VARIANTS) == 0

    @patch("pressroom.images.analysis.call_llm_json", side_effect=LLMError("down"))
    def test_failure_uses_first(self, _mock: MagicMock) -> None:
        assert select_variant("t", _VARIANTS) == 0


class TestPreAnalyze:
    @patch("pressroom.images.analysis.call_llm_json")
    def test_parses_approach(self, mock_llm: MagicMock) -> None:
        mock_llm.return_value = {"approach": "Hero_Image", "mood": "hopeful"}
        result = pre_analyze("t", "b")
        assert result.approach == ImageApproach.HERO_IMAGE
        assert result.mood == "hopeful"
        assert not result.fallback

    @patch("pressroom.images.analysis.call_llm_json", return_value={"approach": "surreal"})
    def test_unknown_approach_falls_back(self, _mock: MagicMock) -> None:
        result = pre_analyze("t", "b")
        assert result.approach == ImageApproach.STRUCTURED
        assert result.fallback

    @patch("pressroom.images.analysis.call_llm_json", side_effect=LLMError("down"))
    def test_error_falls_back(self, _mock: MagicMock) -> None:
        assert pre_analyze("t", "b").fallback


class TestClassify:
    @patch("pressroom.images.analysis.call_llm_json")
    def test_normalizes_category(self, mock_llm: MagicMock) -> None:
        mock_llm.return_value = {
            "company_name": "Acme",
            "category": "Space Travel",
            "visual_concept": "Rocket",
            "key_features": "not a list",
        }
        result = classify("t", "b")
        assert result.category == "general"
        assert result.key_features == []

    @patch("pressroom.images.analysis.call_llm_json")
    def test_missing_required_raises(self, mock_llm: MagicMock) -> None:
        mock_llm.return_value = {"company_name": "Acme", "category": "science"}
        with pytest.raises(LLMError, match="visual_concept"):
            classify("t", "b")


class TestDefaultPrompt:
    def test_uses_title(self) -> None:
        prompt, data = default_prompt("Acme launches a solar drone")
        assert "A symbolic scene representing: Acme launches a solar drone" in prompt
        assert data.visual_elements == ["Acme", "launches", "solar", "drone"]
        assert "{" not in prompt


class TestWriteCreativePrompt:
    @patch("pressroom.images.analysis.call_llm")
    def test_accepts_long_prose(self, mock_llm: MagicMock) -> None:
        mock_llm.return_value = " ".join(["word"] * 80)
        assert write_creative_prompt("t", "b", ImageAnalysis()).startswith("word")

    @patch("pressroom.images.analysis.call_llm", return_value="Too short.")
    def test_short_prose_raises(self, _mock: MagicMock) -> None:
        with pytest.raises(LLMError, match="too short"):
            write_creative_prompt("t", "b", ImageAnalysis())
