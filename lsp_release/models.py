"""Data models for lsp-release.

These Pydantic models represent the records the orchestrator reconstructs
from git and GitHub on every run. Nothing here is persisted between runs.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class UpstreamRelease(BaseModel):
    """Latest published release of the upstream language server.

    Attributes:
        version: Release tag with any leading "v" kept as published.
        body: Release notes, used as the changelog in the update PR.
    """

    version: str
    body: str = ""


class ReleaseEntry(BaseModel):
    """One row of the repository's release list."""

    tag: str
    name: str = ""
    is_draft: bool = False
    is_prerelease: bool = False


class PrereleaseRecord(BaseModel):
    """A prerelease (or draft) published for a single version tag.

    Attributes:
        id: GitHub database id of the release.
        tag: Tag name, equal to the version it was published for.
        url: Web URL of the release page.
    """

    id: int
    tag: str
    url: str


class PullRequestRecord(BaseModel):
    """An open pull request proposing a language server update.

    Attributes:
        number: Pull request number.
        branch: Head branch name, always ``update-lsp-<version>``.
        head_sha: Commit the head branch pointed at when the PR was read.
        url: Web URL of the pull request.
    """

    number: int
    branch: str
    head_sha: str = ""
    url: str = ""


class CommitVerification(BaseModel):
    """Whether a commit may trigger promotion, and why not if it may not."""

    is_valid: bool
    reason: str = ""
    version: str | None = None


class BuildArtifact(BaseModel):
    """A freshly built language server directory.

    Attributes:
        path: Directory holding the built files, relative to the repo root.
        files: Top-level entries of that directory. Never empty.
    """

    path: str
    files: list[str] = Field(default_factory=list)


class UpdateStatus(str, Enum):
    """Outcome of comparing the declared version against upstream."""

    CURRENT = "current"
    OUTDATED = "outdated"
    IN_FLIGHT = "in-flight"


class UpdateCheck(BaseModel):
    """Result of the version oracle."""

    status: UpdateStatus
    version: str = ""
    changelog: str = ""
    pr_number: int | None = None

    @property
    def needed(self) -> bool:
        return self.status is UpdateStatus.OUTDATED


class RunResult(BaseModel):
    """Machine-readable outcome of one invocation.

    Boolean flags default to False so every path reports all of them.
    Optional fields are only written to the step outputs when set.
    """

    phase: str = ""
    updated: bool = False
    promoted: bool = False
    rebased: bool = False
    skipped: bool = False
    found: bool | None = None
    committed: bool | None = None
    reason: str = ""
    error: str | None = None
    version: str | None = None
    pr_number: int | None = None
    pr_url: str | None = None
    branch: str | None = None
    release_id: int | None = None
    release_url: str | None = None
    lsp_path: str | None = None

    def to_outputs(self) -> dict[str, str]:
        """Flatten into GitHub step output names and string values."""
        outputs: dict[str, str] = {}
        for name, value in self.model_dump().items():
            if value is None:
                continue
            if isinstance(value, bool):
                value = "true" if value else "false"
            outputs[name.replace("_", "-")] = str(value)
        return outputs
