"""Configuration for the repository provisioner.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

To avoid collisions with other tools that may also use `GITHUB_TOKEN`, this
project uses a dedicated token variable: `PROVISIONER_GITHUB_TOKEN`.
"""

from __future__ import annotations

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from repo_provisioner.provisioner.identity import resolve_organization
from repo_provisioner.provisioner.vcs import CommitAuthor
from repo_provisioner.provisioner.workflow.outcomes import ProvisioningDelays


class ProvisionerSettings(BaseSettings):
    """Settings for the repository provisioner.

    Environment variables:
    - PROVISIONER_GITHUB_TOKEN
    - PROVISIONER_ORGANIZATION_URL  (optional)
    - GITHUB_BASE_URL               (optional)
    - NO_DEPLOY                     (optional)
    - LOG_LEVEL                     (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `ProvisionerSettings(_env_file=path_to_env)`.
    """

    github_token: str = Field(
        default="",
        validation_alias="PROVISIONER_GITHUB_TOKEN",
        description="GitHub token used for API authentication and git push",
    )
    github_base_url: str = Field(
        default="https://api.github.com",
        validation_alias="GITHUB_BASE_URL",
        description="GitHub API base URL (useful for GitHub Enterprise)",
    )
    organization_url: str = Field(
        default="https://github.com/NextNodeSolutions",
        validation_alias="PROVISIONER_ORGANIZATION_URL",
        description="Organization URL; its last path segment is the owning organization",
    )
    user_agent: str = Field(
        default="NextNode-Project-Generator/1.0",
        validation_alias="PROVISIONER_USER_AGENT",
        description="User-Agent sent with every GitHub API request",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        validation_alias="PROVISIONER_REQUEST_TIMEOUT",
        description="Timeout applied to each GitHub API request",
    )

    commit_author_name: str = Field(
        default="Project Generator",
        validation_alias="PROVISIONER_COMMIT_AUTHOR_NAME",
    )
    commit_author_email: str = Field(
        default="generator@nextnode.dev",
        validation_alias="PROVISIONER_COMMIT_AUTHOR_EMAIL",
    )

    # Eventual-consistency waits. GitHub gives no signal that indexing finished,
    # so these are fixed pauses.
    branch_indexing_delay: float = Field(
        default=5.0,
        ge=0.0,
        validation_alias="PROVISIONER_BRANCH_INDEXING_DELAY",
        description="Seconds to wait after push before reading the main branch",
    )
    workflow_indexing_delay: float = Field(
        default=10.0,
        ge=0.0,
        validation_alias="PROVISIONER_WORKFLOW_INDEXING_DELAY",
        description="Seconds to wait for workflow files to be indexed before dispatch",
    )
    dispatch_spacing_delay: float = Field(
        default=2.0,
        ge=0.0,
        validation_alias="PROVISIONER_DISPATCH_SPACING_DELAY",
        description="Seconds to wait between the dev and prod dispatches",
    )

    no_deploy: str | None = Field(
        default=None,
        validation_alias="NO_DEPLOY",
        description="Opt-out flag; 'true', '1', 'yes' or 'on' disables workflow dispatch",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    @model_validator(mode="after")
    def _require_github_auth(self) -> ProvisionerSettings:
        if not self.github_token.strip():
            raise ValueError("PROVISIONER_GITHUB_TOKEN is required")
        return self

    @property
    def organization(self) -> str:
        """Organization that owns created repositories."""

        return resolve_organization(self.organization_url)

    @property
    def commit_author(self) -> CommitAuthor:
        return CommitAuthor(name=self.commit_author_name, email=self.commit_author_email)

    @property
    def delays(self) -> ProvisioningDelays:
        return ProvisioningDelays(
            branch_indexing=self.branch_indexing_delay,
            workflow_indexing=self.workflow_indexing_delay,
            dispatch_spacing=self.dispatch_spacing_delay,
        )
