"""Promote path: verify the merged commit, then publish the stable release.

Runs when the trunk moves. Only commits produced by the update path are
eligible, so unrelated merges never touch releases. The common case flips
the existing prerelease to stable in place; if there is none, the release
is built and published from scratch.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

from . import github
from .builder import build_lsp, remove_artifact
from .bundle import packaged
from .changelog import release_body
from .config import COMMIT_TITLE_PREFIX, ReleaseConfig
from .lifecycle import Lifecycle, Phase
from .manifest import read_versions
from .models import CommitVerification, PrereleaseRecord, RunResult
from .shell import git, step, warning
from .versions import same_version, strip_v

SUPPORTED_EVENTS = frozenset({"push", "workflow_dispatch"})
TITLE_PATTERN = re.compile(rf"^{re.escape(COMMIT_TITLE_PREFIX)}(?P<version>\S+)")


def verify_commit(ref: str, config: ReleaseConfig) -> CommitVerification:
    """Check that ``ref`` is an automated language server update commit.

    Two independent checks, both required:
    1. The author is the automation identity (name or email matches)
    2. The title starts with the update commit template

    A failed check is a skip, not an error; the reason quotes what was
    actually found.
    """
    name, email, title = (git("show", "-s", "--format=%an%n%ae%n%s", ref) + "\n\n").split(
        "\n"
    )[:3]

    problems: list[str] = []
    if name != config.bot_name and email != config.bot_email:
        problems.append(
            f"author {name} <{email}> is not {config.bot_name} <{config.bot_email}>"
        )
    match = TITLE_PATTERN.match(title)
    if not match:
        problems.append(f"message {title!r} does not start with {COMMIT_TITLE_PREFIX!r}")

    if problems:
        return CommitVerification(
            is_valid=False, reason=f"Commit {ref}: " + "; ".join(problems)
        )
    return CommitVerification(
        is_valid=True,
        reason=f"Commit {ref} is an automated LSP update",
        version=match.group("version"),
    )


def promote_prerelease(
    record: PrereleaseRecord, version: str, body: str
) -> PrereleaseRecord:
    """Flip an existing prerelease or draft to a stable release."""
    step(f"Promoting {record.tag} to full release")
    promoted = github.publish_release(record.tag, f"v{version}", body)
    print(f"  Promoted release v{version}: {promoted.url}")
    return promoted


def create_release_from_scratch(
    version: str,
    lsp_version: str,
    body: str,
    config: ReleaseConfig,
    root: Path | None = None,
) -> PrereleaseRecord:
    """Build the language server and publish a stable release directly.

    Used when no prerelease exists for the version, e.g. it was deleted by
    hand. The artifact directory is removed afterwards.
    """
    artifact = build_lsp(lsp_version, config, root)
    try:
        step(f"Creating release v{version}")
        with packaged(artifact, lsp_version, config, root) as bundle:
            record = github.create_release(
                version, f"v{version}", body, bundle.assets, prerelease=False
            )
    finally:
        remove_artifact(artifact, root)
    print(f"  Release v{version} complete: {record.url}")
    return record


def run_promote(
    config: ReleaseConfig,
    ref: str | None = None,
    event: str | None = None,
    root: Path | None = None,
) -> RunResult:
    """Execute the promote path.

    Args:
        config: Repository settings.
        ref: Commit to verify, defaults to ``$GITHUB_SHA`` then ``HEAD``.
        event: Triggering event, defaults to ``$GITHUB_EVENT_NAME`` then
               ``workflow_dispatch``.
        root: Repository root, defaults to the current directory.
    """
    event = event or os.environ.get("GITHUB_EVENT_NAME") or "workflow_dispatch"
    ref = ref or os.environ.get("GITHUB_SHA") or "HEAD"
    lifecycle = Lifecycle(Phase.MERGED)

    if event not in SUPPORTED_EVENTS:
        print(f"  Unsupported event {event} - skipping")
        return RunResult(
            phase=lifecycle.phase.value, skipped=True, reason=f"Unsupported event: {event}"
        )

    step(f"Verifying commit {ref}")
    lifecycle.advance(Phase.VERIFYING_COMMIT)
    verification = verify_commit(ref, config)
    if not verification.is_valid:
        print(f"  {verification.reason} - skipping")
        return RunResult(
            phase=lifecycle.advance(Phase.SKIPPED).value,
            skipped=True,
            reason=verification.reason,
        )
    print(f"  {verification.reason}")

    version, lsp_version = read_versions(config, root)
    print(f"  Extension version: {version}")
    print(f"  LSP version: {lsp_version}")
    if verification.version and not same_version(verification.version, lsp_version):
        warning(
            f"Commit title names LSP v{strip_v(verification.version)} "
            f"but {config.extension_manifest} declares {lsp_version}"
        )

    existing = github.find_release(version)
    if existing and not (existing.is_prerelease or existing.is_draft):
        print(f"  Release {version} is already published - skipping")
        return RunResult(
            phase=lifecycle.advance(Phase.SKIPPED).value,
            skipped=True,
            reason=f"Release {version} is already published",
            version=version,
        )

    lifecycle.advance(Phase.PROMOTING)
    body = release_body(
        version, (root or Path.cwd()) / config.changelog, config.changelog_max_lines
    )

    step(f"Looking for prerelease with tag {version}")
    prerelease = github.find_unpublished_release(version)
    if prerelease:
        print(f"  Found: {prerelease.url}")
        release = promote_prerelease(prerelease, version, body)
        promoted = True
    else:
        print(f"  No prerelease/draft found for {version}")
        release = create_release_from_scratch(version, lsp_version, body, config, root)
        promoted = False

    return RunResult(
        phase=lifecycle.advance(Phase.RELEASED).value,
        promoted=promoted,
        version=version,
        release_id=release.id,
        release_url=release.url,
    )
