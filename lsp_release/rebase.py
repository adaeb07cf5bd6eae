"""Keep-fresh path: rebase the open LSP update PR onto the trunk.

Runs independently of the update path. It never moves the update forward,
it only keeps the proposal mergeable:
1. Find the open ``update-lsp-*`` PR (nothing to do without one)
2. Compare ``merge-base(pr head, trunk)`` with the trunk tip
3. Replay the PR commits onto the trunk if the trunk has moved
4. Push with a lease on the head we read, so a concurrent push wins

Conflicts and rejected pushes are warnings, not failures: both need a
human, and neither leaves the remote branch half rewritten.
"""

from __future__ import annotations

from . import github
from .config import ReleaseConfig
from .lifecycle import Lifecycle, Phase
from .models import PullRequestRecord, RunResult
from .shell import git, git_ok, step, warning
from .update import configure_identity

CONFLICT_ERROR = "Rebase failed due to conflicts — manual intervention needed"
PUSH_ERROR = "Failed to push rebased branch - branch may have been updated"


def needs_rebase(head_sha: str, trunk_sha: str) -> bool:
    """Return True unless the branch already contains the trunk tip.

    A branch that *is* the trunk tip and one that was already rebased look
    the same here; neither needs a rebase.
    """
    merge_base = git("merge-base", head_sha, trunk_sha)
    if merge_base == trunk_sha:
        return False
    print(f"  Rebase needed: PR base {merge_base} != {trunk_sha}")
    return True


def rebase_onto_trunk(pr: PullRequestRecord, config: ReleaseConfig) -> bool:
    """Replay the PR's commits onto the trunk in a detached checkout.

    On conflict the rebase is aborted, leaving both the local checkout and
    the remote branch as they were.

    Returns:
        True if the rebase completed.
    """
    trunk_ref = f"{config.remote}/{config.trunk}"
    print(f"  Rebasing branch {pr.branch} onto {trunk_ref}...")
    if git_ok("rebase", trunk_ref, pr.head_sha):
        return True
    print("  Rebase failed - aborting...")
    git("rebase", "--abort", check=False)
    return False


def push_rebased(pr: PullRequestRecord, config: ReleaseConfig) -> bool:
    """Publish the rebased HEAD only if the remote branch still has ``pr.head_sha``."""
    print("  Pushing rebased branch...")
    return git_ok(
        "push",
        f"--force-with-lease={pr.branch}:{pr.head_sha}",
        config.remote,
        f"HEAD:{pr.branch}",
    )


def run_rebase(config: ReleaseConfig) -> RunResult:
    """Execute the keep-fresh path.

    Returns:
        ``rebased=True`` only when a rewritten branch was pushed. ``error``
        carries the reason when a conflict or push race stopped the run.
    """
    step(f"Fetching {config.trunk}")
    git("fetch", config.remote, config.trunk)

    step("Looking for open LSP update PR")
    pr = github.find_open_update_pr(config)
    if pr is None:
        print("  No open LSP update PR found")
        return RunResult(found=False, skipped=True, reason="No open LSP update PR")

    lifecycle = Lifecycle(Phase.PR_OPENED_OR_UPDATED)
    print(f"  Found PR #{pr.number} on branch {pr.branch} (head: {pr.head_sha})")
    git("fetch", config.remote, pr.branch)

    step("Checking if rebase is needed")
    trunk_sha = git("rev-parse", f"{config.remote}/{config.trunk}")
    if not needs_rebase(pr.head_sha, trunk_sha):
        print(f"  PR branch is already up to date with {config.trunk} - no rebase needed")
        return RunResult(
            phase=lifecycle.phase.value,
            found=True,
            skipped=True,
            reason=f"{pr.branch} already contains {config.trunk}",
            pr_number=pr.number,
            branch=pr.branch,
        )

    lifecycle.advance(Phase.REBASING)
    configure_identity(config.bot_name, config.bot_email)
    result = RunResult(
        found=True, pr_number=pr.number, branch=pr.branch, pr_url=pr.url or None
    )

    if not rebase_onto_trunk(pr, config):
        warning(CONFLICT_ERROR)
        result.error = CONFLICT_ERROR
    elif not push_rebased(pr, config):
        warning(PUSH_ERROR)
        result.error = PUSH_ERROR
    else:
        print(f"  Rebased PR #{pr.number} and pushed to {pr.branch}")
        result.rebased = True
        result.error = ""

    result.phase = lifecycle.advance(Phase.PR_OPENED_OR_UPDATED).value
    return result
