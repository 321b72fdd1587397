"""LLM prompts for pre-moderation."""

from __future__ import annotations

MODERATION_SYSTEM_PROMPT = (
    "You are a content moderator for a technology news site. "
    "Analyze posts and respond ONLY with valid JSON."
)

MAX_BODY_CHARS = 4000


def get_moderation_prompt(title: str, body: str) -> str:
    """Build the user prompt for the pre-moderation classifier."""
    return f"""Decide whether this post should enter the news pipeline.

Reject the post if any of these apply:
- it is an advertisement, promo code, sponsored placement, or sales pitch
- it is a channel announcement, giveaway, or meta post with no news value
- it has too little substance to rewrite into an article
- it is off-topic for a technology and AI news audience

Approve everything else, including short but genuine news.

## Post

Title: {title}

{body[:MAX_BODY_CHARS]}

## Output

Respond with a JSON object and nothing else:

{{
  "approved": true,
  "reason": "one short sentence",
  "is_advertisement": false,
  "quality_score": 7
}}

quality_score is an integer from 1 (worthless) to 10 (excellent)."""
