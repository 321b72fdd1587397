"""Tests for pressroom.comments.sentiment."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from pressroom.comments.sentiment import classify_sentiment, keyword_sentiment
from pressroom.content.models import Sentiment
from pressroom.llm import LLMError


class TestKeywordSentiment:
    def test_question(self) -> None:
        assert keyword_sentiment("Does this apply in Bergen?").category == Sentiment.QUESTION
        assert keyword_sentiment("how long will it last").category == Sentiment.QUESTION

    def test_positive(self) -> None:
        result = keyword_sentiment("Great article, thank you")
        assert result.category == Sentiment.POSITIVE
        assert result.score == 0.4
        assert result.fallback

    def test_negative(self) -> None:
        result = keyword_sentiment("This is wrong and the chart is broken")
        assert result.category == Sentiment.NEGATIVE
        assert result.score == -0.4

    def test_neutral(self) -> None:
        result = keyword_sentiment("Saw this on the ferry today")
        assert result.category == Sentiment.NEUTRAL
        assert result.score == 0.0


class TestClassifySentiment:
    @patch("pressroom.comments.sentiment.call_llm_json")
    def test_llm_result(self, mock_llm: MagicMock) -> None:
        mock_llm.return_value = {"category": "Spam", "score": -3}
        result = classify_sentiment("Buy followers now")
        assert result.category == Sentiment.SPAM
        assert result.score == -1.0
        assert not result.fallback

    @patch("pressroom.comments.sentiment.call_llm_json", side_effect=LLMError("down"))
    def test_llm_failure_falls_back(self, _mock: MagicMock) -> None:
        result = classify_sentiment("Great article")
        assert result.category == Sentiment.POSITIVE
        assert result.fallback

    @patch("pressroom.comments.sentiment.call_llm_json", return_value={"category": "furious"})
    def test_unknown_category_falls_back(self, _mock: MagicMock) -> None:
        assert classify_sentiment("Why now?").category == Sentiment.QUESTION
