"""Tests for pressroom.moderation.gate — fail-open pre-moderation."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

from pressroom.content.models import ContentItem, PipelinePolicy, RSSSource
from pressroom.content.store import ContentStore
from pressroom.llm import LLMError
from pressroom.moderation.gate import (
    BYPASS_REASON,
    FAIL_OPEN_REASON,
    ModerationGate,
)

_POLICY = PipelinePolicy()


def _make_item(item_id: str = "i1", title: str = "Storm hits Bergen coast") -> ContentItem:
    return ContentItem(
        id=item_id,
        source=RSSSource(feed_url="https://ex.com/feed"),
        dedup_key=f"https://ex.com/{item_id}",
        original_title=title,
        original_body="Heavy winds closed the harbour.",
    )


class TestModerationGate:
    @patch("pressroom.moderation.gate.call_llm_json")
    def test_disabled_bypasses_classifier(self, mock_llm: MagicMock) -> None:
        policy = PipelinePolicy(pre_moderation_enabled=False)
        result = ModerationGate().evaluate(_make_item(), policy)
        assert result.approved
        assert result.reason == BYPASS_REASON
        mock_llm.assert_not_called()

    @patch("pressroom.moderation.gate.call_llm_json")
    def test_approved(self, mock_llm: MagicMock) -> None:
        mock_llm.return_value = {"approved": True, "reason": "Relevant", "quality_score": 8}
        result = ModerationGate().evaluate(_make_item(), _POLICY)
        assert result.approved
        assert result.quality_score == 8
        assert not result.fail_open

    @patch("pressroom.moderation.gate.call_llm_json")
    def test_rejected_advertisement(self, mock_llm: MagicMock) -> None:
        mock_llm.return_value = {
            "approved": False,
            "reason": "Promotional content",
            "is_advertisement": True,
            "quality_score": 2,
        }
        result = ModerationGate().evaluate(_make_item(), _POLICY)
        assert not result.approved
        assert result.is_advertisement
        assert result.reason == "Promotional content"

    @patch("pressroom.moderation.gate.call_llm_json", side_effect=LLMError("timeout"))
    def test_llm_error_fails_open(self, _mock: MagicMock) -> None:
        result = ModerationGate().evaluate(_make_item(), _POLICY)
        assert result.approved
        assert result.fail_open
        assert result.reason == FAIL_OPEN_REASON

    @patch("pressroom.moderation.gate.call_llm_json", return_value={"verdict": "yes"})
    def test_malformed_response_fails_open(self, _mock: MagicMock) -> None:
        result = ModerationGate().evaluate(_make_item(), _POLICY)
        assert result.approved
        assert result.fail_open

    @patch("pressroom.moderation.gate.call_llm_json")
    def test_bad_quality_score_defaults(self, mock_llm: MagicMock) -> None:
        mock_llm.return_value = {"approved": True, "quality_score": "high"}
        assert ModerationGate().evaluate(_make_item(), _POLICY).quality_score == 5

    @patch("pressroom.moderation.gate.call_llm_json")
    def test_near_duplicate_rejected_without_llm(self, mock_llm: MagicMock, tmp_path: Path) -> None:
        store = ContentStore(tmp_path)
        store.add_item(_make_item("earlier", "Storm hits Bergen harbour hard"))
        item = _make_item("later", "Storm hits Bergen coast")
        store.add_item(item)

        result = ModerationGate(store).evaluate(item, _POLICY)
        assert not result.approved
        assert result.is_duplicate
        mock_llm.assert_not_called()
