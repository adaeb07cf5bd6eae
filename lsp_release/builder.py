"""Build the stylelint language server from upstream source.

Clones the upstream repository at the requested tag into a throwaway
directory, runs the npm bundle script and copies ``dist/`` into the
extension's artifact directory.
"""

from __future__ import annotations

import shutil
import subprocess
import tempfile
from pathlib import Path

from .config import ReleaseConfig
from .errors import BuildFailed
from .models import BuildArtifact
from .shell import run, step


def build_lsp(version: str, config: ReleaseConfig, root: Path | None = None) -> BuildArtifact:
    """Build the language server at ``version`` into ``config.artifact_dir``.

    Any previous contents of the artifact directory are replaced. The
    clone is removed whether or not the build succeeds.

    Args:
        version: Upstream tag to build.
        config: Upstream repo, npm script and output directory.
        root: Repository root, defaults to the current directory.

    Returns:
        The populated artifact directory and its top-level entries.

    Raises:
        BuildFailed: If any build command fails or nothing was produced.
    """
    step(f"Building language server {version}")
    root = root or Path.cwd()
    output = root / config.artifact_dir

    with tempfile.TemporaryDirectory(prefix="vscode-stylelint-") as tmp:
        src = Path(tmp)
        print(f"  Build directory: {src}")
        try:
            run(
                "git",
                "clone",
                "--depth",
                "1",
                "--branch",
                version,
                f"https://github.com/{config.upstream_repo}.git",
                str(src),
            )
            if not (src / "package.json").exists():
                raise BuildFailed(f"package.json not found in upstream at {version}")

            print("  Installing npm dependencies...")
            run("npm", "ci", cwd=str(src), env={"npm_config_cache": str(src / ".npm-cache")})
            print("  Building language server bundle...")
            run("npm", "run", config.build_script, cwd=str(src))
        except subprocess.CalledProcessError as exc:
            raise BuildFailed(f"Build of {version} failed: {exc}") from exc

        dist = src / "dist"
        if not dist.is_dir():
            raise BuildFailed(f"dist directory not found after build at {dist}")
        print(f"  Built files in dist/: {', '.join(sorted(p.name for p in dist.iterdir()))}")

        shutil.rmtree(output, ignore_errors=True)
        shutil.copytree(dist, output)

    files = sorted(p.name for p in output.iterdir())
    if not files:
        raise BuildFailed(f"No files copied to {config.artifact_dir}/")
    print(f"  Files in {config.artifact_dir}/: {', '.join(files)}")
    return BuildArtifact(path=config.artifact_dir, files=files)


def remove_artifact(artifact: BuildArtifact, root: Path | None = None) -> None:
    """Delete a built artifact directory from the workspace."""
    shutil.rmtree((root or Path.cwd()) / artifact.path, ignore_errors=True)
