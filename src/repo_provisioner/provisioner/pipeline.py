"""Repository provisioning pipeline.

create repository -> (topic) -> init & push -> (develop branch) -> (deployments)

Repository creation and the push are fatal: a failure raises ProvisioningAborted
and nothing after it runs. Every later stage is best-effort: failures are logged
as warnings and recorded in the returned ProvisioningReport.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import requests

from repo_provisioner.provisioner.config import ProvisionerSettings
from repo_provisioner.provisioner.errors import (
    ConfigurationError,
    ProvisioningAborted,
    RemoteApiError,
    VcsError,
)
from repo_provisioner.provisioner.github.client import GitHubClient, RemoteRepository
from repo_provisioner.provisioner.vcs import CommitAuthor, TokenCredentials, initialize_and_push
from repo_provisioner.provisioner.workflow.outcomes import (
    DeploymentTrigger,
    ProvisioningDelays,
    ProvisioningReport,
    StageOutcome,
)
from repo_provisioner.provisioner.workflow.state_machine import ProvisioningState, transition

logger = logging.getLogger(__name__)

MAIN_BRANCH = "main"
DEVELOP_BRANCH = "develop"

DEV_WORKFLOW = "deploy-dev.yml"
PROD_WORKFLOW = "deploy-prod.yml"
WORKFLOWS_DIR = Path(".github") / "workflows"

DEPLOY_OPT_OUT_VALUES = frozenset({"true", "1", "yes", "on"})
ALLOWED_TOPICS = ("apps", "packages", "utils")

PushFn = Callable[..., None]
SleepFn = Callable[[float], None]


@dataclass(frozen=True, slots=True)
class ProvisioningRequest:
    """Immutable input to one provisioning run."""

    token: str
    repository_name: str
    project_path: Path
    description: str
    topic: str | None = None
    create_develop_branch: bool = False
    auto_deploy: bool = True
    private: bool = False


def is_deploy_disabled(value: str | None) -> bool:
    """Return True if an opt-out flag value disables deployment."""

    if value is None:
        return False
    return value.strip().lower() in DEPLOY_OPT_OUT_VALUES


def validate_topic(topic: str | None) -> str | None:
    """Normalise an optional topic, rejecting values outside ALLOWED_TOPICS."""

    if topic is None or not topic.strip():
        return None
    topic = topic.strip()
    if topic not in ALLOWED_TOPICS:
        raise ConfigurationError(
            f"Invalid topic {topic!r}: expected one of {', '.join(ALLOWED_TOPICS)}"
        )
    return topic


def has_deployment_workflows(project_path: Path) -> bool:
    """Both the dev and the prod deployment workflows must be present."""

    workflows = project_path / WORKFLOWS_DIR
    return (workflows / DEV_WORKFLOW).is_file() and (workflows / PROD_WORKFLOW).is_file()


class RepositoryProvisioner:
    """Runs the provisioning pipeline against one organization."""

    def __init__(
        self,
        *,
        github: GitHubClient,
        organization: str,
        author: CommitAuthor,
        delays: ProvisioningDelays | None = None,
        push: PushFn = initialize_and_push,
        sleep: SleepFn = time.sleep,
    ) -> None:
        if not organization.strip():
            raise ConfigurationError("organization is required")

        self._github = github
        self._organization = organization
        self._author = author
        self._delays = delays or ProvisioningDelays()
        self._push = push
        self._sleep = sleep

    def _wait(self, seconds: float, *, reason: str) -> None:
        if seconds <= 0:
            return
        logger.info("Waiting for GitHub", extra={"seconds": seconds, "reason": reason})
        self._sleep(seconds)

    def _abort(self, current: ProvisioningState, *, stage: str, message: str) -> ProvisioningAborted:
        transition(current=current, to=ProvisioningState.ABORTED)
        logger.error("Provisioning aborted", extra={"stage": stage, "error": message})
        return ProvisioningAborted(stage, message)

    def provision(self, request: ProvisioningRequest) -> ProvisioningReport:
        """Run the full pipeline for `request`.

        Returns:
            The run report once the repository exists and the code is pushed.

        Raises:
            ProvisioningAborted: If repository creation or the push fails.
        """

        state = ProvisioningState.START

        try:
            repository = self._github.create_repository(
                organization=self._organization,
                name=request.repository_name,
                description=request.description,
                private=request.private,
            )
        except RemoteApiError as e:
            raise self._abort(
                state,
                stage="create_repository",
                message=f"Failed to create GitHub repository: {e}",
            ) from e

        report = ProvisioningReport(
            repository=repository,
            state=transition(current=state, to=ProvisioningState.REPO_CREATED),
        )
        report.record(StageOutcome.ok("create_repository", repository.html_url))

        if request.topic:
            report.record(self.set_topic(repository, request.topic))

        try:
            self._push(
                local_path=request.project_path,
                remote_url=repository.html_url,
                author=self._author,
                credentials=TokenCredentials(token=request.token),
            )
        except VcsError as e:
            raise self._abort(
                report.state,
                stage="push",
                message=f"Failed to initialize and push to GitHub: {e}",
            ) from e

        report.state = transition(current=report.state, to=ProvisioningState.PUSHED)
        report.record(StageOutcome.ok("push", f"Pushed {request.project_path} to {MAIN_BRANCH}"))
        logger.info("Pushed generated code", extra={"url": repository.html_url})

        if request.create_develop_branch:
            report.record(self.setup_branches(repository))
        else:
            logger.info("Skipping develop branch creation (not requested)")
            report.record(StageOutcome.skipped("setup_branches", "not requested"))
        report.state = transition(current=report.state, to=ProvisioningState.BRANCHES_READY)

        for outcome in self.deploy(repository, request):
            report.record(outcome)
        report.state = transition(current=report.state, to=ProvisioningState.DONE)

        logger.info(
            "Provisioning completed",
            extra={"url": repository.html_url, "warnings": len(report.warnings)},
        )
        return report

    def set_topic(self, repository: RemoteRepository, topic: str) -> StageOutcome:
        try:
            self._github.set_topic(
                organization=repository.organization, name=repository.name, topic=topic
            )
        except RemoteApiError as e:
            logger.warning("Failed to add topic", extra={"topic": topic, "error": str(e)})
            return StageOutcome.warning("set_topic", f"Failed to add topic {topic!r}: {e}")
        return StageOutcome.ok("set_topic", topic)

    def setup_branches(self, repository: RemoteRepository) -> StageOutcome:
        """Create `develop` from `main` once GitHub has indexed the push.

        Idempotent: an existing `develop` branch is left untouched.
        """

        self._wait(self._delays.branch_indexing, reason="repository initialisation after push")

        try:
            main = self._github.get_branch_reference(
                organization=repository.organization, name=repository.name, branch=MAIN_BRANCH
            )
            logger.info("Main branch resolved", extra={"sha": main.sha})
            created = self._github.create_branch_reference(
                organization=repository.organization,
                name=repository.name,
                branch=DEVELOP_BRANCH,
                from_commit=main.sha,
            )
        except RemoteApiError as e:
            logger.warning("Failed to create develop branch", extra={"error": str(e)})
            return StageOutcome.warning("setup_branches", f"Failed to set up branches: {e}")

        if created:
            return StageOutcome.ok("setup_branches", f"Created {DEVELOP_BRANCH} from {main.sha}")
        return StageOutcome.ok("setup_branches", f"{DEVELOP_BRANCH} already exists")

    def deploy(self, repository: RemoteRepository, request: ProvisioningRequest) -> list[StageOutcome]:
        """Dispatch dev then prod deployment workflows when the project ships both."""

        if not has_deployment_workflows(request.project_path):
            logger.info("No deployment workflows detected, skipping dispatch")
            return [StageOutcome.skipped("deploy", "deployment workflows not found")]

        if not request.auto_deploy:
            logger.info("Auto-deployment disabled, skipping workflow triggers")
            return [StageOutcome.skipped("deploy", "auto-deployment disabled")]

        logger.info("Detected CI/CD workflows, triggering deployments")
        self._wait(self._delays.workflow_indexing, reason="workflow indexing")

        outcomes = [
            self._dispatch(repository, DeploymentTrigger(DEV_WORKFLOW, DEVELOP_BRANCH), "deploy_dev")
        ]
        self._wait(self._delays.dispatch_spacing, reason="rate limit spacing")
        outcomes.append(
            self._dispatch(repository, DeploymentTrigger(PROD_WORKFLOW, MAIN_BRANCH), "deploy_prod")
        )
        return outcomes

    def _dispatch(
        self, repository: RemoteRepository, trigger: DeploymentTrigger, stage: str
    ) -> StageOutcome:
        try:
            self._github.dispatch_workflow(
                organization=repository.organization,
                name=repository.name,
                workflow_id=trigger.workflow_id,
                ref_branch=trigger.branch,
            )
        except RemoteApiError as e:
            logger.warning(
                "Failed to trigger deployment",
                extra={"workflow": trigger.workflow_id, "branch": trigger.branch, "error": str(e)},
            )
            return StageOutcome.warning(stage, f"Failed to trigger {trigger.workflow_id}: {e}")
        return StageOutcome.ok(stage, f"{trigger.workflow_id} on {trigger.branch}")


def provision_repository(
    request: ProvisioningRequest,
    settings: ProvisionerSettings,
    *,
    session: requests.Session | None = None,
    push: PushFn = initialize_and_push,
    sleep: SleepFn = time.sleep,
) -> ProvisioningReport:
    """Provision `request` using `settings` for organization, author and delays.

    An injected `session` stays open; the caller owns it.

    Raises:
        ConfigurationError: If the organization cannot be resolved.
        ProvisioningAborted: If repository creation or the push fails.
    """

    organization = settings.organization

    github = GitHubClient(
        token=request.token,
        base_url=settings.github_base_url,
        user_agent=settings.user_agent,
        timeout=settings.request_timeout_seconds,
        session=session,
    )
    try:
        provisioner = RepositoryProvisioner(
            github=github,
            organization=organization,
            author=settings.commit_author,
            delays=settings.delays,
            push=push,
            sleep=sleep,
        )
        return provisioner.provision(request)
    finally:
        if session is None:
            github.close()
