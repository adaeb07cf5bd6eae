"""Shared test fixtures."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from lsp_release.config import ReleaseConfig

EXTENSION_TOML = """\
id = "stylelint"
name = "Stylelint"
# Keep in sync with Cargo.toml
version = "1.2.0"
schema_version = 1
lsp_required_version = "1.2.0"

[language_servers.stylelint-lsp]
name = "Stylelint Language Server"
languages = ["CSS", "SCSS"]
"""

CARGO_TOML = """\
[package]
name = "zed-stylelint"
version = "1.2.0"  # bumped by automation
edition = "2021"

[dependencies]
zed_extension_api = "0.1.0"
"""

CONFIG_RS = """\
pub const EXTENSION_VERSION: &str = "1.2.0";
pub const LSP_VERSION: &str = "1.2.0";
pub const SERVER_NAME: &str = "stylelint-lsp";
"""

CHANGELOG = """\
# Changelog

## [1.3.0] - 2026-10-01

- Update language server to v1.3.0
- Fix crash on empty files

## [1.2.0] - 2026-09-01

- Initial release
"""


@pytest.fixture
def config() -> ReleaseConfig:
    """Default settings."""
    return ReleaseConfig()


@pytest.fixture
def repo(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """An extension checkout with version files, changelog and built LSP."""
    (tmp_path / "extension.toml").write_text(EXTENSION_TOML)
    (tmp_path / "Cargo.toml").write_text(CARGO_TOML)
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "config.rs").write_text(CONFIG_RS)
    (tmp_path / "CHANGELOG.md").write_text(CHANGELOG)
    lsp = tmp_path / "lsp"
    lsp.mkdir()
    (lsp / "index.js").write_text("console.log('stylelint');\n")
    monkeypatch.chdir(tmp_path)
    return tmp_path


def pr_json(*prs: tuple[int, str, str]) -> str:
    """Render ``gh pr list --json`` output for (number, branch, head) tuples."""
    return json.dumps(
        [
            {
                "number": number,
                "headRefName": branch,
                "headRefOid": head,
                "url": f"https://github.com/o/r/pull/{number}",
            }
            for number, branch, head in prs
        ]
    )


def release_json(tag: str, release_id: int = 42, **extra: object) -> str:
    """Render ``gh release view --json`` output."""
    return json.dumps(
        {
            "databaseId": release_id,
            "tagName": tag,
            "url": f"https://github.com/o/r/releases/tag/{tag}",
            "isDraft": False,
            "isPrerelease": True,
            "assets": [],
            **extra,
        }
    )
