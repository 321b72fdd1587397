"""Tests for pressroom.rewrite.tags."""

from __future__ import annotations

from pressroom.rewrite.tags import extract_tags, normalize_tags


class TestExtractTags:
    def test_title_words_weighted(self) -> None:
        tags = extract_tags(
            "Bergen harbour storm",
            "The storm hit. Ferries stopped.",
        )
        assert tags[0] == "storm"
        assert "bergen" in tags

    def test_stopwords_and_numbers_dropped(self) -> None:
        tags = extract_tags("The 2025 report", "about this and that 2025")
        assert tags == ["report"]

    def test_max_tags(self) -> None:
        assert len(extract_tags("alpha beta gamma delta epsilon zeta eta", "", max_tags=3)) == 3


class TestNormalizeTags:
    def test_cleans_and_dedupes(self) -> None:
        assert normalize_tags(["#Storm", "storm", " Bergen ", ""]) == ["storm", "bergen"]

    def test_non_list(self) -> None:
        assert normalize_tags("storm") == []
        assert normalize_tags(None) == []

    def test_limit(self) -> None:
        assert len(normalize_tags([f"t{i}" for i in range(20)])) == 8
