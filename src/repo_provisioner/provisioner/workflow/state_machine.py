from __future__ import annotations

from enum import Enum


class ProvisioningState(str, Enum):
    START = "start"
    REPO_CREATED = "repo_created"
    PUSHED = "pushed"
    BRANCHES_READY = "branches_ready"
    DONE = "done"
    ABORTED = "aborted"


# Strictly forward. Only the two fatal steps may lead to ABORTED.
ALLOWED_TRANSITIONS: dict[ProvisioningState, set[ProvisioningState]] = {
    ProvisioningState.START: {ProvisioningState.REPO_CREATED, ProvisioningState.ABORTED},
    ProvisioningState.REPO_CREATED: {ProvisioningState.PUSHED, ProvisioningState.ABORTED},
    ProvisioningState.PUSHED: {ProvisioningState.BRANCHES_READY},
    ProvisioningState.BRANCHES_READY: {ProvisioningState.DONE},
    ProvisioningState.DONE: set(),
    ProvisioningState.ABORTED: set(),
}


class IllegalTransitionError(ValueError):
    pass


def transition(*, current: ProvisioningState, to: ProvisioningState) -> ProvisioningState:
    allowed = ALLOWED_TRANSITIONS.get(current, set())
    if to not in allowed:
        raise IllegalTransitionError(f"Illegal transition: {current.value} -> {to.value}")
    return to
