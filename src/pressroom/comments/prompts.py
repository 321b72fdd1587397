"""Prompts for comment sentiment and reply drafting."""

from __future__ import annotations

from pressroom.rewrite.prompts import language_name

SENTIMENT_SYSTEM_PROMPT = "You are a sentiment analysis assistant. Return only valid JSON."

REPLY_SYSTEM_PROMPT = (
    "You are the social media manager for a news and analysis site. Write replies "
    "that are professional, insightful and engaging. Avoid generic responses and "
    "match the tone of the platform."
)

_SENTIMENT_GUIDANCE = {
    "question": "Directly answer their question if possible.",
    "negative": "Be empathetic and address their concern.",
    "positive": "Thank them and continue the positive energy.",
}


def get_sentiment_prompt(text: str) -> str:
    return f"""Analyze the sentiment of this social media comment. Return a JSON object with:
- "category": one of "positive", "negative", "neutral", "question", "spam"
- "score": a number from -1 (very negative) to 1 (very positive)

Comment:
\"\"\"{text[:1000]}\"\"\"

Return ONLY the JSON object."""


def get_reply_prompt(
    *,
    comment: str,
    author_name: str,
    platform: str,
    language: str,
    article_title: str,
    article_summary: str,
    sentiment: str,
) -> str:
    greeting = (
        f"Address the commenter by name ({author_name})."
        if author_name
        else 'Do not use generic greetings like "Hi there".'
    )
    guidance = _SENTIMENT_GUIDANCE.get(sentiment, "")
    return f"""Generate a professional, friendly reply to this social media comment.

Context:
- Platform: {platform}
- Article title: "{article_title}"
- Article summary: "{article_summary[:300]}"
- Comment sentiment: {sentiment}

Comment:
"{comment}"

Guidelines:
1. Be professional but friendly (match the {platform} tone).
2. {greeting}
3. Acknowledge their point or question and add insight related to the article.
4. Keep it concise: 2-3 sentences.
5. Write in {language_name(language)}.
{guidance}

Reply (just the text, no quotes):"""
