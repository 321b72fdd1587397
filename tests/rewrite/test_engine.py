"""Tests for pressroom.rewrite.engine."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from pressroom.content.models import ContentItem, LanguageVariant, RSSSource
from pressroom.llm import LLMError
from pressroom.rewrite.engine import RewriteEngine, RewriteMode, RewriteResult


def _make_item(**kwargs) -> ContentItem:
    return ContentItem(
        id="abcdef0123456789",
        source=RSSSource(feed_url="https://ex.com/feed"),
        dedup_key="https://ex.com/a",
        original_title="Storm closes harbour",
        original_body="Heavy winds closed the harbour in Bergen on Monday.",
        **kwargs,
    )


def _make_engine(**kwargs) -> RewriteEngine:
    kwargs.setdefault("languages", ["en", "no", "ua"])
    return RewriteEngine(batch_delay=0, sleep=lambda _s: None, **kwargs)


def _response(language: str, tags: list[str] | None = None) -> dict:
    return {
        "title": f"Title {language}",
        "content": f"Body {language}.\n\nSecond paragraph.",
        "description": f"Desc {language}",
        "tags": tags or [],
    }


def _per_language(system: str, user: str, **kwargs) -> dict:
    language = kwargs["label"].split("-", 1)[1]
    return _response(language, ["#Weather", "bergen"])


class TestPerLanguage:
    @patch("pressroom.rewrite.engine.call_llm_json", side_effect=_per_language)
    def test_all_languages(self, mock_llm: MagicMock) -> None:
        result = _make_engine().rewrite(_make_item())
        assert set(result.variants) == {"en", "no", "ua"}
        assert result.variants["no"].title == "Title no"
        assert result.variants["en"].slug == "title-en-abcdef01"
        assert result.tags == ["weather", "bergen"]
        assert result.mode_used == RewriteMode.PER_LANGUAGE
        assert mock_llm.call_count == 3

    @patch("pressroom.rewrite.engine.call_llm_json")
    def test_one_language_failure_is_isolated(self, mock_llm: MagicMock) -> None:
        def side_effect(system: str, user: str, **kwargs) -> dict:
            if kwargs["label"] == "rewrite-ua":
                raise LLMError("timeout")
            return _per_language(system, user, **kwargs)

        mock_llm.side_effect = side_effect
        item = _make_item()
        engine = _make_engine()
        result = engine.rewrite(item)
        assert set(result.variants) == {"en", "no"}
        assert result.failed_languages == ["ua"]

        engine.apply(item, result)
        assert item.variant("ua").title == "Title en"
        assert any("ua" in e for e in item.errors)

    @patch("pressroom.rewrite.engine.call_llm_json")
    def test_missing_content_counts_as_failure(self, mock_llm: MagicMock) -> None:
        mock_llm.return_value = {"title": "Only a title"}
        result = _make_engine(languages=["en"]).rewrite(_make_item())
        assert result.variants == {}

    @patch("pressroom.rewrite.engine.call_llm_json", side_effect=_per_language)
    def test_source_link_appended(self, _mock: MagicMock) -> None:
        item = _make_item(source_link="https://origin.example/story")
        result = _make_engine(languages=["no"]).rewrite(item)
        assert result.variants["no"].body.endswith(
            "**Kilde:** [Original artikkel](https://origin.example/story)"
        )


class TestAllInOne:
    @patch("pressroom.rewrite.engine.call_llm_json")
    def test_single_call(self, mock_llm: MagicMock) -> None:
        mock_llm.return_value = {
            "en": _response("en"),
            "no": _response("no"),
            "tags": ["Storm"],
        }
        result = _make_engine(languages=["en", "no", "ua"], mode="all_in_one").rewrite(_make_item())
        assert mock_llm.call_count == 1
        assert set(result.variants) == {"en", "no"}
        assert result.failed_languages == ["ua"]
        assert result.tags == ["storm"]

    @patch("pressroom.rewrite.engine.call_llm_json")
    def test_fallback_when_every_language_fails(self, mock_llm: MagicMock) -> None:
        def side_effect(system: str, user: str, **kwargs) -> dict:
            if kwargs["label"] == "rewrite-all":
                return {"en": _response("en")}
            raise LLMError("down")

        mock_llm.side_effect = side_effect
        result = _make_engine(languages=["en", "no"]).rewrite(_make_item())
        assert result.mode_used == RewriteMode.ALL_IN_ONE
        assert set(result.variants) == {"en"}

    @patch("pressroom.rewrite.engine.call_llm_json", side_effect=LLMError("down"))
    def test_total_failure_leaves_no_variants(self, _mock: MagicMock) -> None:
        item = _make_item()
        engine = _make_engine(languages=["en"])
        result = engine.rewrite(item)
        assert result.variants == {}
        engine.apply(item, result)
        assert item.variant("en").title == "Storm closes harbour"
        assert item.tags


class TestApply:
    def test_keeps_existing_variants(self) -> None:
        item = _make_item(language_variants={"ua": LanguageVariant(title="Old ua", body="b")})
        result = RewriteResult(variants={"en": LanguageVariant(title="New en", body="b")}, tags=["x"])
        _make_engine().apply(item, result)
        assert set(item.language_variants) == {"en", "ua"}
        assert item.tags == ["x"]
