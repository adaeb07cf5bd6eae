"""Subprocess helpers for git, gh and the npm build, plus console output.

Every lifecycle path talks to the repository and the hosting platform
through these functions, which keeps the tests down to patching one name
per module.
"""

from __future__ import annotations

import os
import subprocess
import sys
from collections.abc import Mapping


def git(*args: str, check: bool = True) -> str:
    """Invoke git in the current checkout and hand back what it printed.

    Args:
        *args: git subcommand and its arguments, e.g. ("merge-base", a, b).
        check: Raise CalledProcessError on failure. Pass False when an
               empty answer is a valid outcome, as with ``ls-remote``.

    Returns:
        stdout with surrounding whitespace removed.
    """
    result = subprocess.run(["git", *args], capture_output=True, text=True, check=check)
    return result.stdout.strip()


def git_ok(*args: str) -> bool:
    """Run a git command and report whether it exited with status 0.

    Used for commands whose exit code *is* the answer (``diff --quiet``) or
    that are expected to fail in normal operation (``rebase`` on conflict).
    Output is left on the terminal so failures stay visible in CI logs.
    """
    return subprocess.run(["git", *args]).returncode == 0


def gh(*args: str, check: bool = True) -> str:
    """Invoke the GitHub CLI; JSON queries come back as raw text to parse."""
    result = subprocess.run(["gh", *args], capture_output=True, text=True, check=check)
    return result.stdout.strip()


def run(
    *args: str,
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess[bytes]:
    """Run a build command with its output streamed to the job log.

    Clone and npm output can be long, so nothing is captured here.
    ``env`` adds to the inherited environment rather than replacing it.
    """
    full_env = {**os.environ, **env} if env else None
    return subprocess.run(args, cwd=cwd, env=full_env, check=check)


def step(msg: str) -> None:
    print(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")


def warning(msg: str) -> None:
    """Report a recoverable problem.

    Inside GitHub Actions the message is also emitted as a workflow
    annotation so it shows up on the run summary.
    """
    print(f"  Warning: {msg}", file=sys.stderr)
    if os.environ.get("GITHUB_ACTIONS") == "true":
        print(f"::warning::{msg}")


def fatal(msg: str) -> None:
    """Stop the run: report ``msg`` on stderr and exit with status 1."""
    print(f"ERROR: {msg}", file=sys.stderr)
    sys.exit(1)
