"""Update path: check → build → commit → prerelease → pull request.

This module carries a new upstream language server version from detection
to an open pull request:
1. Check for an update already in flight, then compare against upstream
2. Build the language server and point the version files at it
3. Commit the result, unless the rebuild was byte-identical
4. Publish (or reuse) a prerelease with the bundled server attached
5. Push the update branch and create or refresh its pull request

Every step can be re-run after a partial failure: an empty diff is not
committed, an existing prerelease is reused and an existing PR is edited.
"""

from __future__ import annotations

from pathlib import Path

from . import github
from .builder import build_lsp
from .bundle import packaged
from .config import ReleaseConfig
from .errors import ReleaseError
from .lifecycle import Lifecycle, Phase
from .manifest import read_versions, update_version_files
from .models import (
    BuildArtifact,
    PrereleaseRecord,
    PullRequestRecord,
    RunResult,
    UpdateCheck,
    UpdateStatus,
)
from .shell import git, git_ok, step
from .versions import is_newer, same_version

PRERELEASE_NOTES = (
    "Prerelease for LSP v{version}\n\n"
    "This is a prerelease created for testing. It will be promoted to a full "
    "release when the update PR is merged."
)


def check_for_update(
    config: ReleaseConfig,
    manual_version: str | None = None,
    root: Path | None = None,
) -> UpdateCheck:
    """Decide whether the bundled language server needs updating.

    Order matters: an open update PR short-circuits everything, then a
    manual version bypasses the upstream lookup, and only then is upstream
    compared against the declared LSP version.

    Args:
        config: Branch prefix, manifest location and upstream repo.
        manual_version: Version to update to regardless of upstream.
        root: Repository root, defaults to the current directory.

    Raises:
        UpstreamUnreachable: If the upstream release can't be read.
    """
    step("Checking for existing LSP update PRs")
    existing = github.find_open_update_pr(config)
    if existing:
        print(f"  Found existing LSP update PR #{existing.number} - skipping")
        return UpdateCheck(status=UpdateStatus.IN_FLIGHT, pr_number=existing.number)

    if manual_version:
        print(f"  Using manual version: {manual_version}")
        return UpdateCheck(
            status=UpdateStatus.OUTDATED,
            version=manual_version,
            changelog=f"Manual update to v{manual_version}",
        )

    _, current = read_versions(config, root)
    print(f"  Current LSP version: {current}")

    step(f"Fetching latest {config.upstream_repo} release")
    latest = github.latest_upstream_release(config.upstream_repo)
    print(f"  Latest LSP version: {latest.version}")

    if same_version(latest.version, current):
        print("  Already up to date")
        return UpdateCheck(status=UpdateStatus.CURRENT, version=current)

    if not is_newer(latest.version, current):
        print(f"  Upstream {latest.version} does not sort after {current}, updating anyway")
    print(f"  Update available: {current} → {latest.version}")
    return UpdateCheck(
        status=UpdateStatus.OUTDATED, version=latest.version, changelog=latest.body
    )


def configure_identity(name: str, email: str) -> None:
    """Set the git author used for automated commits in this checkout."""
    git("config", "user.name", name)
    git("config", "user.email", email)


def commit_changes(
    version: str,
    paths: list[str],
    config: ReleaseConfig,
    root: Path | None = None,
) -> bool:
    """Stage ``paths`` and commit them if anything actually changed.

    Paths that don't exist in the checkout are skipped. The commit title
    is a fixed template that the promotion gate later matches on, so it
    must not change.

    Returns:
        True if a commit was created, False if the staged diff was empty.
    """
    step("Committing changes")
    root = root or Path.cwd()
    present = [p for p in paths if (root / p).exists()]
    if present:
        git("add", "--all", "--", *present)

    # Check if there are actually changes to commit
    if git_ok("diff", "--cached", "--quiet"):
        print("  No changes to commit")
        return False

    git(
        "commit",
        "-m",
        config.commit_title(version),
        "-m",
        f"Update vscode-stylelint language server to v{version}",
        "-m",
        f"Built from https://github.com/{config.upstream_repo}",
    )
    print(f"  Committed: {config.commit_title(version)}")
    return True


def create_prerelease(
    version: str,
    artifact: BuildArtifact,
    config: ReleaseConfig,
    root: Path | None = None,
) -> PrereleaseRecord:
    """Publish the built server as a prerelease tagged ``version``.

    If a prerelease or draft already exists for the tag it is reused, and
    only assets it is missing are uploaded. A leftover draft is then
    published as a prerelease. A stable release for the tag means this
    version already shipped, which is an error.

    Raises:
        ReleaseError: If a stable release already exists for ``version``.
    """
    step(f"Creating prerelease {version}")

    existing = github.find_release(version)
    if existing and not (existing.is_prerelease or existing.is_draft):
        raise ReleaseError(f"Release {version} is already published as stable")

    with packaged(artifact, version, config, root) as bundle:
        if existing:
            record = github.release_record(version)
            print(f"  Reusing existing prerelease: {record.url}")
            names = [Path(a).name for a in bundle.assets]
            missing = set(github.missing_assets(version, names))
            to_upload = [a for a in bundle.assets if Path(a).name in missing]
            if to_upload:
                print(f"  Uploading missing assets: {', '.join(sorted(missing))}")
                github.upload_assets(version, to_upload)
            if existing.is_draft:
                print("  Publishing draft as prerelease...")
                record = github.mark_prerelease(version)
            return record

        record = github.create_release(
            version,
            f"v{version}",
            PRERELEASE_NOTES.format(version=version),
            bundle.assets,
            prerelease=True,
        )
    print(f"  Prerelease ready: {record.url}")
    return record


def pull_request_body(version: str, changelog: str, release_url: str) -> str:
    """Render the update PR description.

    Only depends on its arguments, so re-running an update rewrites the
    same text instead of growing it.
    """
    return f"""## Update Language Server to v{version}

Updates the vscode-stylelint language server to v{version}.

### Changes from upstream

{changelog}

### Prerelease

A [prerelease]({release_url}) has been created with the LSP assets attached.
You can test the extension by installing it from this prerelease.

---
*This PR was automatically created by the Update LSP workflow.*"""


def remote_branch_exists(branch: str, config: ReleaseConfig) -> bool:
    return bool(git("ls-remote", "--heads", config.remote, branch, check=False))


def open_or_update_pull_request(
    version: str,
    changelog: str,
    release_url: str,
    config: ReleaseConfig,
) -> PullRequestRecord:
    """Push the update branch and make sure exactly one PR tracks it.

    The branch is a single mutable proposal: if it already exists on the
    remote it is force-updated to HEAD.
    """
    branch = config.branch_for(version)
    step(f"Pushing {branch}")

    if remote_branch_exists(branch, config):
        print(f"  Force pushing to existing branch {branch}...")
        git("push", config.remote, f"HEAD:{branch}", "--force")
    else:
        print(f"  Creating and pushing new branch {branch}...")
        git("checkout", "-B", branch)
        git("push", config.remote, branch)

    title = config.commit_title(version)
    body = pull_request_body(version, changelog, release_url)

    existing = github.find_pr_for_branch(branch, config)
    if existing:
        print(f"  Updating existing PR #{existing.number}...")
        github.update_pr(existing.number, title, body)
        return existing

    print("  Creating pull request...")
    pr = github.create_pr(branch, title, body, config)
    print(f"  Created PR #{pr.number}: {pr.url}")
    return pr


def run_update(
    config: ReleaseConfig,
    manual_version: str | None = None,
    root: Path | None = None,
) -> RunResult:
    """Execute the update path end to end.

    The built artifact directory stays in the workspace because it is part
    of the update commit; only the tarball and checksum are temporary.

    Args:
        config: Repository settings.
        manual_version: Update to this version instead of upstream's latest.
        root: Repository root, defaults to the current directory.

    Returns:
        The run outcome; ``skipped`` with a reason when no update is needed.
    """
    lifecycle = Lifecycle(Phase.NO_UPDATE)
    lifecycle.advance(Phase.CHECKING_UPSTREAM)
    check = check_for_update(config, manual_version, root)

    if check.status is UpdateStatus.IN_FLIGHT:
        lifecycle.advance(Phase.IN_FLIGHT_ELSEWHERE)
        return RunResult(
            phase=lifecycle.phase.value,
            skipped=True,
            reason=f"LSP update PR #{check.pr_number} is already open",
            pr_number=check.pr_number,
        )
    if not check.needed:
        lifecycle.advance(Phase.UP_TO_DATE)
        return RunResult(
            phase=lifecycle.phase.value,
            skipped=True,
            reason=f"LSP {check.version} is already up to date",
            version=check.version,
        )

    version = check.version
    lifecycle.advance(Phase.NEEDS_UPDATE)
    lifecycle.advance(Phase.BUILDING)
    artifact = build_lsp(version, config, root)

    step(f"Updating version files to {version}")
    update_version_files(version, config, root)

    configure_identity(config.bot_name, config.bot_email)
    paths = [*config.version_paths(), artifact.path]
    committed = commit_changes(version, paths, config, root)
    lifecycle.advance(Phase.COMMITTED if committed else Phase.NO_OP_COMMIT)

    release = create_prerelease(version, artifact, config, root)
    lifecycle.advance(Phase.PRERELEASE_CREATED)

    pr = open_or_update_pull_request(version, check.changelog, release.url, config)
    lifecycle.advance(Phase.PR_OPENED_OR_UPDATED)

    print(f"\n{'=' * 60}\nUpdate complete: PR #{pr.number}\n{'=' * 60}")
    return RunResult(
        phase=lifecycle.phase.value,
        updated=True,
        committed=committed,
        version=version,
        pr_number=pr.number,
        pr_url=pr.url,
        branch=pr.branch,
        release_id=release.id,
        release_url=release.url,
    )


def run_check(
    config: ReleaseConfig,
    manual_version: str | None = None,
    root: Path | None = None,
) -> RunResult:
    """Run only the version check and report what an update would do."""
    lifecycle = Lifecycle(Phase.NO_UPDATE)
    lifecycle.advance(Phase.CHECKING_UPSTREAM)
    check = check_for_update(config, manual_version, root)

    if check.status is UpdateStatus.IN_FLIGHT:
        lifecycle.advance(Phase.IN_FLIGHT_ELSEWHERE)
        reason = f"LSP update PR #{check.pr_number} is already open"
    elif check.needed:
        lifecycle.advance(Phase.NEEDS_UPDATE)
        reason = ""
    else:
        lifecycle.advance(Phase.UP_TO_DATE)
        reason = f"LSP {check.version} is already up to date"

    return RunResult(
        phase=lifecycle.phase.value,
        skipped=not check.needed,
        reason=reason,
        version=check.version or None,
        pr_number=check.pr_number,
    )


def run_build(
    version: str,
    config: ReleaseConfig,
    author_name: str | None = None,
    author_email: str | None = None,
    root: Path | None = None,
) -> RunResult:
    """Rebuild the language server at ``version`` and commit the artifact.

    Only the artifact directory is staged; version files are left alone.
    """
    artifact = build_lsp(version, config, root)
    configure_identity(author_name or config.bot_name, author_email or config.bot_email)
    committed = commit_changes(version, [artifact.path], config, root)
    return RunResult(
        phase=(Phase.COMMITTED if committed else Phase.NO_OP_COMMIT).value,
        committed=committed,
        version=version,
        lsp_path=artifact.path,
    )
