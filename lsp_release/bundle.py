"""Packaging a built artifact into release assets.

A release carries two files per version: a gzipped tarball of the
artifact directory and a ``sha256sum``-compatible checksum file.
"""

from __future__ import annotations

import hashlib
import tarfile
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from pydantic import BaseModel

from .config import ReleaseConfig
from .models import BuildArtifact


class Bundle(BaseModel):
    """Release assets for one version, living in a temporary directory."""

    tarball: str
    checksum_file: str
    sha256: str

    @property
    def assets(self) -> list[str]:
        return [self.tarball, self.checksum_file]


def sha256_file(path: Path) -> str:
    """Calculate SHA256 hash of a file."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            digest.update(chunk)
    return digest.hexdigest()


def write_tarball(source: Path, dest: Path, arcname: str) -> None:
    """Write ``source`` into a gzipped tarball rooted at ``arcname/``."""
    with tarfile.open(dest, "w:gz") as tar:
        tar.add(source, arcname=arcname)


@contextmanager
def packaged(
    artifact: BuildArtifact,
    version: str,
    config: ReleaseConfig,
    root: Path | None = None,
) -> Iterator[Bundle]:
    """Package ``artifact`` for ``version`` and yield the asset paths.

    The tarball and checksum are removed when the block exits, whether
    the upload inside it succeeded or not.
    """
    source = (root or Path.cwd()) / artifact.path
    with tempfile.TemporaryDirectory(prefix="lsp-release-") as tmp:
        tarball = Path(tmp) / config.tarball_name(version)
        checksum = Path(tmp) / config.checksum_name(version)

        print(f"  Creating {tarball.name}...")
        write_tarball(source, tarball, artifact.path)
        sha = sha256_file(tarball)
        checksum.write_text(f"{sha}  {tarball.name}\n")
        print(f"  SHA256: {sha}")

        yield Bundle(tarball=str(tarball), checksum_file=str(checksum), sha256=sha)
