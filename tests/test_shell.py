"""Tests for lsp_release.shell."""

from __future__ import annotations

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from lsp_release.shell import fatal, gh, git, git_ok, run, warning


@patch("lsp_release.shell.subprocess.run")
def test_git_returns_stripped_stdout(mock_run: MagicMock) -> None:
    mock_run.return_value = subprocess.CompletedProcess([], 0, stdout="abc123\n")

    assert git("rev-parse", "HEAD") == "abc123"
    mock_run.assert_called_once_with(
        ["git", "rev-parse", "HEAD"], capture_output=True, text=True, check=True
    )


@patch("lsp_release.shell.subprocess.run")
def test_gh_passes_check_flag(mock_run: MagicMock) -> None:
    mock_run.return_value = subprocess.CompletedProcess([], 1, stdout="")

    assert gh("pr", "list", check=False) == ""
    assert mock_run.call_args.kwargs["check"] is False
    assert mock_run.call_args.args[0] == ["gh", "pr", "list"]


@patch("lsp_release.shell.subprocess.run")
def test_git_ok_reports_exit_status(mock_run: MagicMock) -> None:
    mock_run.side_effect = [
        subprocess.CompletedProcess([], 0),
        subprocess.CompletedProcess([], 1),
    ]

    assert git_ok("diff", "--cached", "--quiet") is True
    assert git_ok("diff", "--cached", "--quiet") is False


@patch("lsp_release.shell.subprocess.run")
def test_run_merges_env(mock_run: MagicMock, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HOME", "/home/ci")
    mock_run.return_value = subprocess.CompletedProcess([], 0)

    run("npm", "ci", cwd="/tmp/src", env={"npm_config_cache": "/tmp/src/.npm"})

    env = mock_run.call_args.kwargs["env"]
    assert env["HOME"] == "/home/ci"
    assert env["npm_config_cache"] == "/tmp/src/.npm"
    assert mock_run.call_args.kwargs["cwd"] == "/tmp/src"


def test_warning_annotation_in_actions(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("GITHUB_ACTIONS", "true")

    warning("rebase conflict")

    captured = capsys.readouterr()
    assert "::warning::rebase conflict" in captured.out
    assert "Warning: rebase conflict" in captured.err


def test_warning_plain_outside_actions(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.delenv("GITHUB_ACTIONS", raising=False)

    warning("rebase conflict")

    assert "::warning::" not in capsys.readouterr().out


def test_fatal_exits_1(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        fatal("boom")

    assert excinfo.value.code == 1
    assert "ERROR: boom" in capsys.readouterr().err
