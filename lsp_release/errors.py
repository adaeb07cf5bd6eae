"""Exceptions raised by the release lifecycle.

Gate skips (nothing to do, update already in flight, commit not eligible)
are not errors and never raise; they come back as a ``RunResult`` with
``skipped=True``. Conflicts and rejected pushes during a rebase are
warnings, also reported through the result. Everything here is fatal for
the invocation that raised it.
"""

from __future__ import annotations


class ReleaseError(Exception):
    """Base class for failures that end a run."""


class UpstreamUnreachable(ReleaseError):
    """The upstream release lookup failed, so the version status is unknown."""


class BuildFailed(ReleaseError):
    """The language server build produced no usable artifact."""


class ManifestError(ReleaseError):
    """A version file is missing or lacks an expected field."""


class InvalidTransition(ReleaseError):
    """A lifecycle path tried to move to a phase not reachable from its current one."""
