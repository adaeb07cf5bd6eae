"""Tests for lsp_release.promote."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from lsp_release.config import ReleaseConfig
from lsp_release.models import BuildArtifact, PrereleaseRecord, ReleaseEntry
from lsp_release.promote import run_promote, verify_commit

BOT = "github-actions[bot]\ngithub-actions[bot]@users.noreply.github.com"
RELEASE = PrereleaseRecord(
    id=42, tag="1.2.0", url="https://github.com/o/r/releases/tag/1.2.0"
)


class TestVerifyCommit:
    """Tests for verify_commit()."""

    @patch("lsp_release.promote.git")
    def test_bot_update_commit_passes(self, mock_git: MagicMock, config: ReleaseConfig) -> None:
        mock_git.return_value = f"{BOT}\nchore: update language server to v1.3.0"

        result = verify_commit("abc123", config)

        assert result.is_valid
        assert result.version == "1.3.0"
        mock_git.assert_called_once_with(
            "show", "-s", "--format=%an%n%ae%n%s", "abc123"
        )

    @patch("lsp_release.promote.git")
    def test_squash_merge_title_passes(self, mock_git: MagicMock, config: ReleaseConfig) -> None:
        """A squash-merged PR keeps the template title with a (#N) suffix."""
        mock_git.return_value = (
            "github-actions[bot]\n41898282+github-actions[bot]@users.noreply.github.com\n"
            "chore: update language server to v1.3.0 (#12)"
        )

        result = verify_commit("abc123", config)

        assert result.is_valid
        assert result.version == "1.3.0"

    @patch("lsp_release.promote.git")
    def test_human_commit_reports_both_mismatches(
        self, mock_git: MagicMock, config: ReleaseConfig
    ) -> None:
        mock_git.return_value = "Jane Doe\njane@example.com\nfix: typo"

        result = verify_commit("abc123", config)

        assert not result.is_valid
        assert "Jane Doe <jane@example.com>" in result.reason
        assert "'fix: typo'" in result.reason

    @patch("lsp_release.promote.git")
    def test_bot_commit_with_other_message_fails(
        self, mock_git: MagicMock, config: ReleaseConfig
    ) -> None:
        mock_git.return_value = f"{BOT}\nchore: prepare next release"

        result = verify_commit("abc123", config)

        assert not result.is_valid
        assert "author" not in result.reason
        assert "'chore: prepare next release'" in result.reason

    @patch("lsp_release.promote.git")
    def test_human_commit_with_template_message_fails(
        self, mock_git: MagicMock, config: ReleaseConfig
    ) -> None:
        mock_git.return_value = "Jane Doe\njane@example.com\nchore: update language server to v1.3.0"

        result = verify_commit("abc123", config)

        assert not result.is_valid
        assert "Jane Doe" in result.reason
        assert "message" not in result.reason


class TestRunPromote:
    """Tests for run_promote()."""

    @pytest.fixture(autouse=True)
    def _quiet(self):
        with patch("lsp_release.promote.step"):
            yield

    @patch("lsp_release.promote.github")
    @patch("lsp_release.promote.git")
    def test_promotes_existing_prerelease(
        self,
        mock_git: MagicMock,
        mock_github: MagicMock,
        repo: Path,
        config: ReleaseConfig,
    ) -> None:
        """The prerelease for the declared version is flipped to stable in place."""
        mock_git.return_value = f"{BOT}\nchore: update language server to v1.2.0"
        mock_github.find_unpublished_release.return_value = RELEASE
        mock_github.find_release.return_value = ReleaseEntry(tag="1.2.0", is_prerelease=True)
        mock_github.publish_release.return_value = RELEASE

        result = run_promote(config, ref="abc123", event="push")

        assert result.promoted is True
        assert result.skipped is False
        assert result.phase == "released"
        assert result.release_id == 42
        mock_github.find_unpublished_release.assert_called_once_with("1.2.0")
        tag, title, body = mock_github.publish_release.call_args.args
        assert (tag, title) == ("1.2.0", "v1.2.0")
        assert body.startswith("- Update language server to v1.3.0")
        mock_github.create_release.assert_not_called()

    @patch("lsp_release.promote.remove_artifact")
    @patch("lsp_release.promote.build_lsp")
    @patch("lsp_release.promote.github")
    @patch("lsp_release.promote.git")
    def test_missing_prerelease_builds_from_scratch(
        self,
        mock_git: MagicMock,
        mock_github: MagicMock,
        mock_build: MagicMock,
        mock_remove: MagicMock,
        repo: Path,
        config: ReleaseConfig,
    ) -> None:
        """No prerelease → build, package and create a stable release directly."""
        mock_git.return_value = f"{BOT}\nchore: update language server to v1.2.0"
        mock_github.find_release.return_value = None
        mock_github.find_unpublished_release.return_value = None
        artifact = BuildArtifact(path="lsp", files=["index.js"])
        mock_build.return_value = artifact
        mock_github.create_release.return_value = RELEASE

        result = run_promote(config, ref="abc123", event="push")

        assert result.promoted is False
        assert result.phase == "released"
        mock_build.assert_called_once_with("1.2.0", config, None)
        args, kwargs = mock_github.create_release.call_args
        assert args[0] == "1.2.0"
        assert [Path(a).name for a in args[3]] == [
            "stylelint-language-server-v1.2.0.tar.gz",
            "stylelint-language-server-v1.2.0.sha256",
        ]
        assert kwargs == {"prerelease": False}
        mock_remove.assert_called_once_with(artifact, None)

    @patch("lsp_release.promote.build_lsp")
    @patch("lsp_release.promote.github")
    @patch("lsp_release.promote.git")
    def test_already_stable_release_is_skipped(
        self,
        mock_git: MagicMock,
        mock_github: MagicMock,
        mock_build: MagicMock,
        repo: Path,
        config: ReleaseConfig,
    ) -> None:
        """Re-running after a successful promotion leaves the stable release alone."""
        mock_git.return_value = f"{BOT}\nchore: update language server to v1.2.0"
        mock_github.find_release.return_value = ReleaseEntry(tag="1.2.0", name="v1.2.0")

        result = run_promote(config, ref="abc123", event="push")

        assert result.skipped is True
        assert result.promoted is False
        assert result.phase == "skipped"
        assert result.reason == "Release 1.2.0 is already published"
        mock_build.assert_not_called()
        mock_github.publish_release.assert_not_called()
        mock_github.create_release.assert_not_called()

    @patch("lsp_release.promote.warning")
    @patch("lsp_release.promote.github")
    @patch("lsp_release.promote.git")
    def test_title_version_mismatch_warns(
        self,
        mock_git: MagicMock,
        mock_github: MagicMock,
        mock_warning: MagicMock,
        repo: Path,
        config: ReleaseConfig,
    ) -> None:
        mock_git.return_value = f"{BOT}\nchore: update language server to v1.1.0"
        mock_github.find_release.return_value = ReleaseEntry(tag="1.2.0", is_prerelease=True)
        mock_github.find_unpublished_release.return_value = RELEASE
        mock_github.publish_release.return_value = RELEASE

        result = run_promote(config, ref="abc123", event="push")

        assert result.promoted is True
        mock_warning.assert_called_once()
        assert "v1.1.0" in mock_warning.call_args.args[0]
        assert "1.2.0" in mock_warning.call_args.args[0]

    @patch("lsp_release.promote.github")
    @patch("lsp_release.promote.git")
    def test_human_merge_is_skipped(
        self,
        mock_git: MagicMock,
        mock_github: MagicMock,
        repo: Path,
        config: ReleaseConfig,
    ) -> None:
        """Human 'fix: typo' merge → skipped with the mismatch, no release touched."""
        mock_git.return_value = "Jane Doe\njane@example.com\nfix: typo"

        result = run_promote(config, ref="abc123", event="push")

        assert result.skipped is True
        assert result.promoted is False
        assert result.phase == "skipped"
        assert "Jane Doe" in result.reason
        assert "fix: typo" in result.reason
        assert mock_github.method_calls == []

    @patch("lsp_release.promote.github")
    @patch("lsp_release.promote.git")
    def test_unsupported_event_is_skipped(
        self,
        mock_git: MagicMock,
        mock_github: MagicMock,
        repo: Path,
        config: ReleaseConfig,
    ) -> None:
        result = run_promote(config, ref="abc123", event="pull_request")

        assert result.skipped is True
        assert result.reason == "Unsupported event: pull_request"
        mock_git.assert_not_called()
        assert mock_github.method_calls == []

    @patch("lsp_release.promote.github")
    @patch("lsp_release.promote.git")
    def test_event_and_ref_default_from_environment(
        self,
        mock_git: MagicMock,
        mock_github: MagicMock,
        repo: Path,
        config: ReleaseConfig,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("GITHUB_EVENT_NAME", "push")
        monkeypatch.setenv("GITHUB_SHA", "deadbeef")
        mock_git.return_value = "Jane Doe\njane@example.com\nfix: typo"

        result = run_promote(config)

        assert result.skipped is True
        assert mock_git.call_args.args[-1] == "deadbeef"
