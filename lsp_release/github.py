"""GitHub bindings built on the gh CLI.

Every function here is a single query or mutation against the hosting
platform. They hold no state: the lifecycle paths call them at the start
of each run to rebuild the picture of open PRs and releases.
"""

from __future__ import annotations

import json
import subprocess
from typing import Any

from pydantic import ValidationError

from .config import ReleaseConfig
from .errors import ReleaseError, UpstreamUnreachable
from .models import PrereleaseRecord, PullRequestRecord, ReleaseEntry, UpstreamRelease
from .shell import gh

PR_FIELDS = "number,headRefName,headRefOid,url"
RELEASE_LIST_FIELDS = "tagName,name,isDraft,isPrerelease"
RELEASE_VIEW_FIELDS = "databaseId,tagName,url,isDraft,isPrerelease,assets"


def _parse_json(output: str, what: str) -> Any:
    try:
        return json.loads(output) if output else []
    except json.JSONDecodeError as exc:
        raise ReleaseError(f"Unexpected gh output for {what}: {exc}") from exc


def _pr_record(raw: dict[str, Any]) -> PullRequestRecord:
    try:
        return PullRequestRecord(
            number=raw["number"],
            branch=raw["headRefName"],
            head_sha=raw.get("headRefOid", ""),
            url=raw.get("url", ""),
        )
    except (KeyError, ValidationError) as exc:
        raise ReleaseError(f"Unexpected gh output for pr: {exc}") from exc


def find_open_update_pr(config: ReleaseConfig) -> PullRequestRecord | None:
    """Find an open PR whose head branch follows the update naming pattern.

    Returns the lowest-numbered match; the single-flight guard makes more
    than one unlikely.
    """
    output = gh(
        "pr", "list", "--state", "open", "--json", PR_FIELDS, "--limit", "1000"
    )
    prs = [
        _pr_record(raw)
        for raw in _parse_json(output, "pr list")
        if raw.get("headRefName", "").startswith(config.branch_prefix)
    ]
    return min(prs, key=lambda pr: pr.number) if prs else None


def find_pr_for_branch(branch: str, config: ReleaseConfig) -> PullRequestRecord | None:
    """Find the open PR from ``branch`` into the trunk, if any."""
    output = gh(
        "pr",
        "list",
        "--state",
        "open",
        "--head",
        branch,
        "--base",
        config.trunk,
        "--json",
        PR_FIELDS,
    )
    prs = _parse_json(output, "pr list")
    return _pr_record(prs[0]) if prs else None


def create_pr(branch: str, title: str, body: str, config: ReleaseConfig) -> PullRequestRecord:
    """Open a PR from ``branch`` into the trunk and return its record."""
    gh(
        "pr",
        "create",
        "--head",
        branch,
        "--base",
        config.trunk,
        "--title",
        title,
        "--body",
        body,
    )
    pr = find_pr_for_branch(branch, config)
    if pr is None:
        raise ReleaseError(f"Created a PR for {branch} but cannot find it")
    return pr


def update_pr(number: int, title: str, body: str) -> None:
    """Replace the title and body of an existing PR."""
    gh("pr", "edit", str(number), "--title", title, "--body", body)


def latest_upstream_release(repo: str) -> UpstreamRelease:
    """Fetch the latest published release of the upstream repository.

    Raises:
        UpstreamUnreachable: If gh fails or returns something unparseable.
    """
    try:
        output = gh("release", "view", "--repo", repo, "--json", "tagName,body")
        raw = json.loads(output)
        return UpstreamRelease(version=raw["tagName"], body=raw.get("body") or "")
    except (
        subprocess.CalledProcessError,
        json.JSONDecodeError,
        KeyError,
        ValidationError,
    ) as exc:
        raise UpstreamUnreachable(f"Cannot read latest release of {repo}: {exc}") from exc


def list_releases() -> list[ReleaseEntry]:
    """List the repository's most recent releases, drafts included."""
    output = gh("release", "list", "--json", RELEASE_LIST_FIELDS, "--limit", "100")
    try:
        return [
            ReleaseEntry(
                tag=raw["tagName"],
                name=raw.get("name", ""),
                is_draft=raw.get("isDraft", False),
                is_prerelease=raw.get("isPrerelease", False),
            )
            for raw in _parse_json(output, "release list")
        ]
    except (KeyError, ValidationError) as exc:
        raise ReleaseError(f"Unexpected gh output for release list: {exc}") from exc


def view_release(tag: str) -> dict[str, Any]:
    """Return id, url, flags and asset list of the release for ``tag``."""
    return _parse_json(
        gh("release", "view", tag, "--json", RELEASE_VIEW_FIELDS), "release view"
    )


def release_record(tag: str) -> PrereleaseRecord:
    """Read id and url of the release for ``tag``."""
    raw = view_release(tag)
    try:
        return PrereleaseRecord(id=raw["databaseId"], tag=raw["tagName"], url=raw["url"])
    except (KeyError, ValidationError) as exc:
        raise ReleaseError(f"Unexpected gh output for release {tag}: {exc}") from exc


def find_unpublished_release(tag: str) -> PrereleaseRecord | None:
    """Find a prerelease or draft whose tag equals ``tag``.

    Stable releases are deliberately excluded, so a version that was
    already promoted is never matched again.
    """
    for entry in list_releases():
        if entry.tag == tag and (entry.is_prerelease or entry.is_draft):
            return release_record(tag)
    return None


def find_release(tag: str) -> ReleaseEntry | None:
    """Find a release of any kind for ``tag``."""
    for entry in list_releases():
        if entry.tag == tag:
            return entry
    return None


def create_release(
    tag: str,
    title: str,
    notes: str,
    assets: list[str],
    *,
    prerelease: bool,
) -> PrereleaseRecord:
    """Create a published release with assets attached."""
    args = ["release", "create", tag, *assets, "--title", title, "--notes", notes]
    if prerelease:
        args.append("--prerelease")
    gh(*args)
    return release_record(tag)


def missing_assets(tag: str, names: list[str]) -> list[str]:
    """Return which of ``names`` are not yet attached to the release."""
    attached = {asset.get("name") for asset in view_release(tag).get("assets", [])}
    return [name for name in names if name not in attached]


def upload_assets(tag: str, assets: list[str]) -> None:
    """Attach files to an existing release, replacing same-named assets."""
    gh("release", "upload", tag, *assets, "--clobber")


def publish_release(tag: str, title: str, notes: str) -> PrereleaseRecord:
    """Turn a prerelease or draft into a stable release in place."""
    gh(
        "release",
        "edit",
        tag,
        "--title",
        title,
        "--notes",
        notes,
        "--prerelease=false",
        "--draft=false",
    )
    return release_record(tag)


def mark_prerelease(tag: str) -> PrereleaseRecord:
    """Publish a draft for ``tag`` as a prerelease so its assets are downloadable."""
    gh("release", "edit", tag, "--draft=false", "--prerelease")
    return release_record(tag)
