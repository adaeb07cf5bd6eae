"""Reading and rewriting the extension's version files.

Uses tomlkit to preserve formatting and comments when modifying
extension.toml and Cargo.toml, so an update commit only touches the
version values themselves.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.exceptions import ParseError

from .config import ReleaseConfig
from .errors import ManifestError


def load_toml(path: Path) -> tomlkit.TOMLDocument:
    """Load and parse a TOML file.

    Returns a TOMLDocument that preserves formatting when modified and saved.

    Raises:
        ManifestError: If the file does not exist or is not valid TOML.
    """
    if not path.exists():
        raise ManifestError(f"{path} not found")
    try:
        return tomlkit.parse(path.read_text())
    except ParseError as exc:
        raise ManifestError(f"Cannot parse {path}: {exc}") from exc


def save_toml(path: Path, doc: tomlkit.TOMLDocument) -> None:
    """Save a TOMLDocument back to disk, preserving original formatting."""
    path.write_text(tomlkit.dumps(doc))


def _find_key(doc: tomlkit.TOMLDocument, key: str) -> dict[str, Any] | None:
    """Return the table holding ``key``, checking the top level first."""
    if key in doc:
        return doc
    for value in doc.values():
        if isinstance(value, dict) and key in value:
            return value
    return None


def get_extension_version(doc: tomlkit.TOMLDocument) -> str:
    """Extract the extension's own ``version``.

    Raises:
        ManifestError: If the field is missing.
    """
    version = doc.get("version")
    if not version:
        raise ManifestError("extension manifest has no version field")
    return str(version)


def get_lsp_version(doc: tomlkit.TOMLDocument, key: str = "lsp_required_version") -> str:
    """Extract the bundled language server version.

    The key may live at the top level or inside any table. Manifests that
    predate the key track the LSP version with the extension version.
    """
    table = _find_key(doc, key)
    if table is None:
        return get_extension_version(doc)
    return str(table[key])


def read_versions(config: ReleaseConfig, root: Path | None = None) -> tuple[str, str]:
    """Read ``(extension version, lsp version)`` from the extension manifest."""
    doc = load_toml((root or Path.cwd()) / config.extension_manifest)
    return get_extension_version(doc), get_lsp_version(doc, config.lsp_version_key)


def _rewrite_rust_constants(path: Path, version: str) -> bool:
    source = path.read_text()
    updated = source
    for const in ("EXTENSION_VERSION", "LSP_VERSION"):
        updated = re.sub(
            rf'const {const}: &str = "[^"]*"',
            f'const {const}: &str = "{version}"',
            updated,
        )
    if updated == source:
        return False
    path.write_text(updated)
    return True


def update_version_files(
    version: str, config: ReleaseConfig, root: Path | None = None
) -> list[str]:
    """Point every version file at ``version``.

    Rewrites:
    1. extension.toml ``version`` and the LSP version key
    2. Cargo.toml ``[package].version``
    3. Version constants in the Rust config source, if that file exists

    Args:
        version: New version for both the extension and the bundled LSP.
        config: Paths and key names to use.
        root: Repository root, defaults to the current directory.

    Returns:
        Paths (relative to root) of the files that were written.
    """
    root = root or Path.cwd()
    written: list[str] = []

    ext_path = root / config.extension_manifest
    doc = load_toml(ext_path)
    doc["version"] = version
    table = _find_key(doc, config.lsp_version_key)
    (table if table is not None else doc)[config.lsp_version_key] = version
    save_toml(ext_path, doc)
    written.append(config.extension_manifest)
    print(f"  Updated {config.extension_manifest}")

    cargo_path = root / config.cargo_manifest
    if cargo_path.exists():
        cargo = load_toml(cargo_path)
        package = cargo.get("package")
        if package is None:
            raise ManifestError(f"{config.cargo_manifest} has no [package] table")
        package["version"] = version
        save_toml(cargo_path, cargo)
        written.append(config.cargo_manifest)
        print(f"  Updated {config.cargo_manifest}")

    rust_path = root / config.config_source
    if rust_path.exists() and _rewrite_rust_constants(rust_path, version):
        written.append(config.config_source)
        print(f"  Updated {config.config_source}")

    return written
