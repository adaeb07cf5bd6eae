"""The release lifecycle as an explicit state machine.

One language server version moves through these phases across many
independent CI runs::

    NO_UPDATE → CHECKING_UPSTREAM → UP_TO_DATE | IN_FLIGHT_ELSEWHERE | NEEDS_UPDATE
    NEEDS_UPDATE → BUILDING → COMMITTED | NO_OP_COMMIT → PRERELEASE_CREATED
    PRERELEASE_CREATED → PR_OPENED_OR_UPDATED → (REBASING ↺)* → MERGED
    MERGED → VERIFYING_COMMIT → SKIPPED | PROMOTING → RELEASED

No run remembers where the previous one stopped. Each path starts a
Lifecycle at the phase it can reconstruct from git and GitHub and then
advances through its own segment of the graph.
"""

from __future__ import annotations

from enum import Enum

from .errors import InvalidTransition


class Phase(str, Enum):
    NO_UPDATE = "no-update"
    CHECKING_UPSTREAM = "checking-upstream"
    UP_TO_DATE = "up-to-date"
    IN_FLIGHT_ELSEWHERE = "in-flight-elsewhere"
    NEEDS_UPDATE = "needs-update"
    BUILDING = "building"
    COMMITTED = "committed"
    NO_OP_COMMIT = "no-op-commit"
    PRERELEASE_CREATED = "prerelease-created"
    PR_OPENED_OR_UPDATED = "pr-opened-or-updated"
    REBASING = "rebasing"
    MERGED = "merged"
    VERIFYING_COMMIT = "verifying-commit"
    SKIPPED = "skipped"
    PROMOTING = "promoting"
    RELEASED = "released"


TRANSITIONS: dict[Phase, frozenset[Phase]] = {
    Phase.NO_UPDATE: frozenset({Phase.CHECKING_UPSTREAM}),
    Phase.CHECKING_UPSTREAM: frozenset(
        {Phase.UP_TO_DATE, Phase.IN_FLIGHT_ELSEWHERE, Phase.NEEDS_UPDATE}
    ),
    Phase.NEEDS_UPDATE: frozenset({Phase.BUILDING}),
    Phase.BUILDING: frozenset({Phase.COMMITTED, Phase.NO_OP_COMMIT}),
    Phase.COMMITTED: frozenset({Phase.PRERELEASE_CREATED}),
    Phase.NO_OP_COMMIT: frozenset({Phase.PRERELEASE_CREATED}),
    Phase.PRERELEASE_CREATED: frozenset({Phase.PR_OPENED_OR_UPDATED}),
    Phase.PR_OPENED_OR_UPDATED: frozenset({Phase.REBASING, Phase.MERGED}),
    # Rebasing never advances the update, it only keeps the PR mergeable
    Phase.REBASING: frozenset({Phase.PR_OPENED_OR_UPDATED}),
    Phase.MERGED: frozenset({Phase.VERIFYING_COMMIT}),
    Phase.VERIFYING_COMMIT: frozenset({Phase.SKIPPED, Phase.PROMOTING}),
    Phase.PROMOTING: frozenset({Phase.RELEASED}),
    Phase.UP_TO_DATE: frozenset(),
    Phase.IN_FLIGHT_ELSEWHERE: frozenset(),
    Phase.SKIPPED: frozenset(),
    Phase.RELEASED: frozenset(),
}

TERMINAL = frozenset(phase for phase, nxt in TRANSITIONS.items() if not nxt)


def can_transition(current: Phase, target: Phase) -> bool:
    return target in TRANSITIONS[current]


class Lifecycle:
    """Tracks the phase of one run and rejects illegal moves.

    Attributes:
        phase: Current phase.
        history: Every phase visited, starting phase included.
    """

    def __init__(self, start: Phase = Phase.NO_UPDATE) -> None:
        self.phase = start
        self.history: list[Phase] = [start]

    def advance(self, target: Phase) -> Phase:
        """Move to ``target``.

        Raises:
            InvalidTransition: If ``target`` is not a successor of the
                current phase.
        """
        if not can_transition(self.phase, target):
            raise InvalidTransition(
                f"Cannot move from {self.phase.value} to {target.value}"
            )
        self.phase = target
        self.history.append(target)
        return target

    @property
    def done(self) -> bool:
        return self.phase in TERMINAL
