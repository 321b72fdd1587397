"""Smoke tests for the CLI."""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from pressroom.cli import app
from pressroom.content.models import Comment, Platform
from pressroom.content.store import ContentStore


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def _invoke(runner: CliRunner, data_dir: Path, *args: str):
    return runner.invoke(app, ["--data-dir", str(data_dir), *args])


class TestCLI:
    def test_main_help(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("ingest", "approve", "reject", "republish", "sync-comments", "policy"):
            assert command in result.output

    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "pressroom" in result.output


class TestPolicyCommands:
    def test_set_and_show(self, runner: CliRunner, tmp_path: Path) -> None:
        result = _invoke(runner, tmp_path, "policy", "set", "auto_publish_enabled", "true")
        assert result.exit_code == 0
        assert ContentStore(tmp_path).get_setting("auto_publish_enabled") == "true"

        result = _invoke(runner, tmp_path, "policy", "show")
        assert result.exit_code == 0
        assert "auto_publish_enabled" in result.output

    def test_unknown_key(self, runner: CliRunner, tmp_path: Path) -> None:
        result = _invoke(runner, tmp_path, "policy", "set", "publish_everything", "true")
        assert result.exit_code == 1
        assert "Unknown policy key" in result.output

    def test_bad_platform(self, runner: CliRunner, tmp_path: Path) -> None:
        result = _invoke(runner, tmp_path, "policy", "set", "auto_publish_platforms", "myspace")
        assert result.exit_code == 1


class TestItemCommands:
    def test_approve_unknown_item(self, runner: CliRunner, tmp_path: Path) -> None:
        result = _invoke(runner, tmp_path, "approve", "missing")
        assert result.exit_code == 1
        assert "No item with id missing" in result.output

    def test_process_with_nothing_pending(self, runner: CliRunner, tmp_path: Path) -> None:
        result = _invoke(runner, tmp_path, "process")
        assert result.exit_code == 0
        assert "ingested=0" in result.output


class TestReplyCommand:
    def test_requires_confirmation(self, runner: CliRunner, tmp_path: Path) -> None:
        ContentStore(tmp_path).add_comment(
            Comment(
                id="c1",
                social_post_id="p1",
                platform=Platform.FACEBOOK,
                external_comment_id="fb-1",
                author_name="Per",
                text="When?",
                suggested_reply="Monday.",
            )
        )
        result = _invoke(runner, tmp_path, "reply", "c1")
        assert result.exit_code == 1
        assert "Would reply to Per: Monday." in result.output
        assert "--confirm" in result.output

    def test_unknown_comment(self, runner: CliRunner, tmp_path: Path) -> None:
        result = _invoke(runner, tmp_path, "reply", "nope", "Thanks", "--confirm")
        assert result.exit_code == 1
        assert "No comment with id nope" in result.output
