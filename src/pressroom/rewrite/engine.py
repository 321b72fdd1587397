"""Rewrite/translate engine.

Default mode makes one model call per language so a failure only loses
that language.  The older all-in-one mode (one call returning every
language) is kept as a configurable mode and as the fallback when every
per-language call failed.  Missing languages are never an error: readers
go through ``resolve_variant``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from pressroom.concurrency import run_in_batches
from pressroom.content.models import ContentItem, LanguageVariant
from pressroom.content.slugs import slugify
from pressroom.llm import LLMError, call_llm_json
from pressroom.rewrite.prompts import (
    REWRITE_SYSTEM_PROMPT,
    get_all_languages_prompt,
    get_single_language_prompt,
)
from pressroom.rewrite.tags import extract_tags, normalize_tags

logger = logging.getLogger(__name__)

SOURCE_SUFFIXES: dict[str, str] = {
    "en": "\n\n**Source:** [Original Article]({url})",
    "no": "\n\n**Kilde:** [Original artikkel]({url})",
    "ua": "\n\n**Джерело:** [Оригінальна стаття]({url})",
}

MAX_DESCRIPTION_CHARS = 300


class RewriteMode(StrEnum):
    PER_LANGUAGE = "per_language"
    ALL_IN_ONE = "all_in_one"


class RewriteResult(BaseModel):
    variants: dict[str, LanguageVariant] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    mode_used: RewriteMode = RewriteMode.PER_LANGUAGE
    failed_languages: list[str] = Field(default_factory=list)


class RewriteEngine:
    """Produces per-language variants for a content item."""

    def __init__(
        self,
        *,
        languages: list[str],
        mode: RewriteMode | str = RewriteMode.PER_LANGUAGE,
        model: str | None = None,
        timeout: int = 120,
        batch_size: int = 3,
        batch_delay: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._languages = list(languages)
        self._mode = RewriteMode(mode)
        self._model = model
        self._timeout = timeout
        self._batch_size = batch_size
        self._batch_delay = batch_delay
        self._sleep = sleep

    def rewrite(self, item: ContentItem) -> RewriteResult:
        if self._mode == RewriteMode.ALL_IN_ONE:
            return self._rewrite_all_in_one(item)

        result = self._rewrite_per_language(item)
        if not result.variants and self._languages:
            logger.warning(
                "Every per-language rewrite failed for %s, trying all-in-one mode", item.id
            )
            fallback = self._rewrite_all_in_one(item)
            if fallback.variants:
                return fallback
        return result

    def apply(self, item: ContentItem, result: RewriteResult) -> None:
        """Write variants and tags onto the item."""
        item.language_variants.update(result.variants)
        if result.tags:
            item.tags = result.tags
        elif not item.tags:
            item.tags = extract_tags(item.original_title, item.original_body)
        for language in result.failed_languages:
            item.record_error("rewrite", f"no {language} variant; falls back to en")

    # ── Modes ────────────────────────────────────────────────────

    def _rewrite_per_language(self, item: ContentItem) -> RewriteResult:
        outcomes = run_in_batches(
            self._languages,
            lambda language: self._rewrite_one(item, language),
            batch_size=self._batch_size,
            delay=self._batch_delay,
            label=f"rewrite {item.id}",
            sleep=self._sleep,
        )

        result = RewriteResult(mode_used=RewriteMode.PER_LANGUAGE)
        for outcome in outcomes:
            if outcome.ok and outcome.value is not None:
                variant, tags = outcome.value
                result.variants[outcome.item] = variant
                if tags and not result.tags:
                    result.tags = tags
            else:
                result.failed_languages.append(outcome.item)
        return result

    def _rewrite_one(self, item: ContentItem, language: str) -> tuple[LanguageVariant, list[str]]:
        data = call_llm_json(
            REWRITE_SYSTEM_PROMPT,
            get_single_language_prompt(item.original_title, item.original_body, language),
            temperature=0.5,
            max_tokens=3000,
            model=self._model,
            timeout=self._timeout,
            label=f"rewrite-{language}",
        )
        return self._to_variant(item, language, data), normalize_tags(data.get("tags"))

    def _rewrite_all_in_one(self, item: ContentItem) -> RewriteResult:
        result = RewriteResult(mode_used=RewriteMode.ALL_IN_ONE)
        try:
            data = call_llm_json(
                REWRITE_SYSTEM_PROMPT,
                get_all_languages_prompt(item.original_title, item.original_body, self._languages),
                temperature=0.5,
                max_tokens=3000 * max(1, len(self._languages)),
                model=self._model,
                timeout=self._timeout,
                label="rewrite-all",
            )
        except LLMError as exc:
            logger.warning("All-in-one rewrite failed for %s: %s", item.id, exc)
            result.failed_languages = list(self._languages)
            return result

        for language in self._languages:
            section = data.get(language)
            try:
                if not isinstance(section, dict):
                    raise LLMError(f"missing section {language!r}")
                result.variants[language] = self._to_variant(item, language, section)
            except LLMError as exc:
                logger.warning("All-in-one rewrite for %s lacks %s: %s", item.id, language, exc)
                result.failed_languages.append(language)

        tags = data.get("tags")
        if tags is None and isinstance(data.get("en"), dict):
            tags = data["en"].get("tags")
        result.tags = normalize_tags(tags)
        return result

    # ── Helpers ──────────────────────────────────────────────────

    @staticmethod
    def _to_variant(item: ContentItem, language: str, data: dict[str, Any]) -> LanguageVariant:
        title = str(data.get("title") or "").strip()
        body = str(data.get("content") or data.get("body") or "").strip()
        if not title or not body:
            raise LLMError(f"rewrite for {language} is missing title or content")

        description = str(data.get("description") or "").strip()
        if not description:
            description = body.split("\n\n", 1)[0]
        description = description[:MAX_DESCRIPTION_CHARS]

        if item.source_link:
            suffix = SOURCE_SUFFIXES.get(language, SOURCE_SUFFIXES["en"])
            body += suffix.format(url=item.source_link)

        return LanguageVariant(
            title=title,
            body=body,
            short_description=description,
            slug=slugify(title, item.id),
        )
