from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from repo_provisioner.provisioner.github.client import RemoteRepository
from repo_provisioner.provisioner.workflow.state_machine import ProvisioningState


class OutcomeStatus(str, Enum):
    OK = "ok"
    WARNING = "warning"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class StageOutcome:
    """Result of one best-effort stage. A warning never aborts the run."""

    stage: str
    status: OutcomeStatus
    message: str = ""

    @classmethod
    def ok(cls, stage: str, message: str = "") -> StageOutcome:
        return cls(stage=stage, status=OutcomeStatus.OK, message=message)

    @classmethod
    def warning(cls, stage: str, message: str) -> StageOutcome:
        return cls(stage=stage, status=OutcomeStatus.WARNING, message=message)

    @classmethod
    def skipped(cls, stage: str, message: str = "") -> StageOutcome:
        return cls(stage=stage, status=OutcomeStatus.SKIPPED, message=message)


@dataclass(frozen=True, slots=True)
class DeploymentTrigger:
    workflow_id: str
    branch: str


@dataclass(frozen=True, slots=True)
class ProvisioningDelays:
    """Fixed eventual-consistency waits, in seconds."""

    branch_indexing: float = 5.0
    workflow_indexing: float = 10.0
    dispatch_spacing: float = 2.0


@dataclass(slots=True)
class ProvisioningReport:
    """Everything a caller may want to inspect after a successful run."""

    repository: RemoteRepository
    state: ProvisioningState = ProvisioningState.REPO_CREATED
    outcomes: list[StageOutcome] = field(default_factory=list)

    def record(self, outcome: StageOutcome) -> StageOutcome:
        self.outcomes.append(outcome)
        return outcome

    def outcome_for(self, stage: str) -> StageOutcome | None:
        for outcome in self.outcomes:
            if outcome.stage == stage:
                return outcome
        return None

    @property
    def warnings(self) -> list[StageOutcome]:
        return [o for o in self.outcomes if o.status is OutcomeStatus.WARNING]
