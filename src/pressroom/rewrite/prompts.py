"""LLM prompts for rewriting and translation."""

from __future__ import annotations

REWRITE_SYSTEM_PROMPT = (
    "You are a professional content rewriter and translator. Return ONLY valid JSON."
)

LANGUAGE_NAMES: dict[str, str] = {
    "en": "English",
    "no": "Norwegian (Bokmål)",
    "ua": "Ukrainian",
}

MAX_SOURCE_CHARS = 8000

_STYLE_RULES = """## Style

- Objective, journalistic register. No hype, no first person.
- Keep every fact, number, and name from the source. Add nothing invented.
- Markdown body with short paragraphs; no top-level heading.
- The title is at most 100 characters.
- The description is one or two sentences, at most 200 characters."""


def language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(code, code)


def get_single_language_prompt(title: str, body: str, language: str) -> str:
    """Prompt for rewriting the source into one language."""
    return f"""Rewrite the following news item in {language_name(language)}.

{_STYLE_RULES}

## Source

Title: {title}

{body[:MAX_SOURCE_CHARS]}

## Output

Respond with JSON only:

{{
  "title": "...",
  "content": "...",
  "description": "...",
  "tags": ["3 to 6 lowercase English topic tags"]
}}"""


def get_all_languages_prompt(title: str, body: str, languages: list[str]) -> str:
    """Prompt for the single-call mode that returns every language at once."""
    shape = ",\n".join(
        f'  "{code}": {{"title": "...", "content": "...", "description": "..."}}'
        for code in languages
    )
    names = ", ".join(f"{language_name(code)} ({code})" for code in languages)
    return f"""Rewrite the following news item and translate it into: {names}.

{_STYLE_RULES}

## Source

Title: {title}

{body[:MAX_SOURCE_CHARS]}

## Output

Respond with JSON only:

{{
{shape},
  "tags": ["3 to 6 lowercase English topic tags"]
}}"""
