"""Comment sentiment classification: LLM first, keywords as the fallback."""

from __future__ import annotations

import logging

from pydantic import BaseModel

from pressroom.comments.prompts import SENTIMENT_SYSTEM_PROMPT, get_sentiment_prompt
from pressroom.content.models import Sentiment
from pressroom.llm import LLMError, call_llm_json

logger = logging.getLogger(__name__)

POSITIVE_WORDS = (
    "great", "awesome", "love", "excellent", "amazing",
    "thank", "helpful", "good", "nice", "perfect",
)
NEGATIVE_WORDS = (
    "bad", "terrible", "hate", "awful", "wrong",
    "mistake", "issue", "problem", "fix", "broken",
)
QUESTION_STARTS = ("how", "what", "why")


class SentimentResult(BaseModel):
    category: Sentiment
    score: float = 0.0
    fallback: bool = False


def keyword_sentiment(text: str) -> SentimentResult:
    """Cheap classification used when the LLM is unavailable."""
    lower = text.lower().strip()
    if "?" in lower or lower.startswith(QUESTION_STARTS):
        return SentimentResult(category=Sentiment.QUESTION, fallback=True)

    positive = sum(1 for w in POSITIVE_WORDS if w in lower)
    negative = sum(1 for w in NEGATIVE_WORDS if w in lower)
    if positive > negative:
        score = min(positive * 0.2, 1.0)
        return SentimentResult(category=Sentiment.POSITIVE, score=score, fallback=True)
    if negative > positive:
        score = max(negative * -0.2, -1.0)
        return SentimentResult(category=Sentiment.NEGATIVE, score=score, fallback=True)
    return SentimentResult(category=Sentiment.NEUTRAL, fallback=True)


def classify_sentiment(
    text: str, *, model: str | None = None, timeout: int = 60
) -> SentimentResult:
    try:
        data = call_llm_json(
            SENTIMENT_SYSTEM_PROMPT,
            get_sentiment_prompt(text),
            temperature=0.2,
            max_tokens=100,
            model=model,
            timeout=timeout,
            label="comment-sentiment",
        )
        category = Sentiment(str(data.get("category", "")).strip().lower())
        score = max(-1.0, min(1.0, float(data.get("score", 0.0))))
    except (LLMError, ValueError, TypeError) as exc:
        logger.warning("Sentiment classification failed, using keywords: %s", exc)
        return keyword_sentiment(text)
    return SentimentResult(category=category, score=score)
