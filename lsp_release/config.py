"""Configuration for lsp-release.

All settings have defaults matching the stylelint extension layout. A repo
can override any of them in an optional ``lsp-release.toml``::

    [tool.lsp-release]
    trunk = "develop"
    changelog_max_lines = 30

The file is read with tomlkit, like every other TOML file the tool touches.
"""

from __future__ import annotations

from pathlib import Path

import tomlkit
from pydantic import BaseModel, ConfigDict, ValidationError
from tomlkit.exceptions import ParseError

from .errors import ReleaseError

CONFIG_FILE = "lsp-release.toml"
COMMIT_TITLE_PREFIX = "chore: update language server to v"


class ReleaseConfig(BaseModel):
    """Settings shared by every lifecycle path.

    Attributes:
        trunk: Branch update PRs are proposed against.
        remote: Git remote that hosts the trunk and update branches.
        branch_prefix: Update branches are named ``<prefix><version>``.
        upstream_repo: GitHub repository the language server is built from.
        build_script: npm script that produces the bundled server in ``dist/``.
        artifact_dir: Directory the built server is copied into and committed.
        asset_name: Base name of the release tarball and checksum file.
        extension_manifest: TOML file declaring ``version`` and the LSP version.
        lsp_version_key: Key in the extension manifest holding the LSP version.
        cargo_manifest: Cargo.toml whose ``[package].version`` tracks the release.
        config_source: Optional Rust source with version constants.
        lockfile: Extra file staged alongside the manifests.
        changelog: Changelog the stable release notes are taken from.
        changelog_max_lines: Cap on lines copied from the changelog section.
        bot_name: Git author name for automated commits.
        bot_email: Git author email for automated commits.
    """

    model_config = ConfigDict(extra="forbid")

    trunk: str = "main"
    remote: str = "origin"
    branch_prefix: str = "update-lsp-"
    upstream_repo: str = "stylelint/vscode-stylelint"
    build_script: str = "build-bundle"
    artifact_dir: str = "lsp"
    asset_name: str = "stylelint-language-server"
    extension_manifest: str = "extension.toml"
    lsp_version_key: str = "lsp_required_version"
    cargo_manifest: str = "Cargo.toml"
    config_source: str = "src/config.rs"
    lockfile: str = "Cargo.lock"
    changelog: str = "CHANGELOG.md"
    changelog_max_lines: int = 20
    bot_name: str = "github-actions[bot]"
    bot_email: str = "github-actions[bot]@users.noreply.github.com"

    def branch_for(self, version: str) -> str:
        """Deterministic update branch name for a version."""
        return f"{self.branch_prefix}{version}"

    def tarball_name(self, version: str) -> str:
        return f"{self.asset_name}-v{version}.tar.gz"

    def checksum_name(self, version: str) -> str:
        return f"{self.asset_name}-v{version}.sha256"

    def commit_title(self, version: str) -> str:
        return f"{COMMIT_TITLE_PREFIX}{version}"

    def version_paths(self) -> list[str]:
        """Files that change when the bundled LSP version moves."""
        return [
            self.extension_manifest,
            self.cargo_manifest,
            self.lockfile,
            self.config_source,
        ]


def load_config(root: Path | None = None) -> ReleaseConfig:
    """Load settings from ``lsp-release.toml`` if present, else use defaults.

    Raises:
        ReleaseError: If the file is not valid TOML, has unknown keys or
            values of the wrong type.
    """
    path = (root or Path.cwd()) / CONFIG_FILE
    if not path.exists():
        return ReleaseConfig()

    try:
        doc = tomlkit.parse(path.read_text())
    except ParseError as exc:
        raise ReleaseError(f"Invalid {CONFIG_FILE}: {exc}") from exc
    table = doc.get("tool", {}).get("lsp-release", {})
    try:
        return ReleaseConfig.model_validate(table.unwrap() if table else {})
    except ValidationError as exc:
        raise ReleaseError(f"Invalid {CONFIG_FILE}: {exc}") from exc
