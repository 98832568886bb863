"""GitHub REST client for repository provisioning.

Every method maps onto a single REST request. There is no client-side retry;
callers decide whether a failure is fatal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import requests

from repo_provisioner.provisioner.errors import MalformedResponseError, RemoteApiError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "NextNode-Project-Generator/1.0"


@dataclass(frozen=True, slots=True)
class RemoteRepository:
    """Repository created on GitHub."""

    html_url: str
    name: str
    organization: str


@dataclass(frozen=True, slots=True)
class BranchReference:
    """A branch ref and the commit it points at."""

    name: str
    sha: str


class GitHubClient:
    """Small wrapper around the GitHub REST endpoints needed to bootstrap a repository."""

    def __init__(
        self,
        *,
        token: str,
        base_url: str = "https://api.github.com",
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        if not token:
            raise ValueError("GitHub token is required")

        self._rest_base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github.v3+json",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": user_agent,
            }
        )

    def _repo_url(self, *, organization: str, name: str, path: str) -> str:
        path = path.lstrip("/")
        base = f"{self._rest_base_url}/repos/{organization.strip('/')}/{name.strip('/')}"
        return f"{base}/{path}" if path else base

    def _send(
        self,
        method: str,
        url: str,
        *,
        action: str,
        payload: dict[str, Any] | None = None,
    ) -> requests.Response:
        try:
            resp = self._session.request(method, url, json=payload, timeout=self._timeout)
        except requests.RequestException as e:
            raise RemoteApiError(f"Failed to {action}: {e}") from e

        if not resp.ok:
            raise RemoteApiError(
                f"GitHub API error while trying to {action} ({resp.status_code})",
                status_code=resp.status_code,
                body=resp.text,
            )
        return resp

    @staticmethod
    def _json(resp: requests.Response, *, action: str) -> dict[str, Any]:
        try:
            data = resp.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"Failed to parse response to {action}",
                status_code=resp.status_code,
                body=resp.text,
            ) from e
        if not isinstance(data, dict):
            raise MalformedResponseError(
                f"Unexpected response to {action}: expected a JSON object",
                status_code=resp.status_code,
                body=resp.text,
            )
        return data

    def create_repository(
        self,
        *,
        organization: str,
        name: str,
        description: str,
        private: bool = False,
    ) -> RemoteRepository:
        """Create an empty (non auto-initialised) repository under `organization`.

        Raises:
            RemoteApiError: On transport failure or a non-success status.
            MalformedResponseError: If the response has no `html_url`.
        """

        url = f"{self._rest_base_url}/orgs/{organization}/repos"
        payload = {
            "name": name,
            "description": description,
            "private": private,
            "auto_init": False,
        }
        action = f"create repository {organization}/{name}"
        resp = self._send("POST", url, action=action, payload=payload)
        data = self._json(resp, action=action)

        html_url = data.get("html_url")
        if not isinstance(html_url, str) or not html_url.strip():
            raise MalformedResponseError(
                "No html_url in create repository response",
                status_code=resp.status_code,
                body=resp.text,
            )

        logger.info(
            "Created GitHub repository",
            extra={"repository": f"{organization}/{name}", "url": html_url},
        )
        return RemoteRepository(html_url=html_url, name=name, organization=organization)

    def set_topic(self, *, organization: str, name: str, topic: str) -> None:
        """Replace the repository topics with `topic`."""

        url = self._repo_url(organization=organization, name=name, path="topics")
        self._send(
            "PUT",
            url,
            action=f"add topic {topic!r}",
            payload={"names": [topic]},
        )
        logger.info(
            "Added topic to repository",
            extra={"repository": f"{organization}/{name}", "topic": topic},
        )

    def get_branch_reference(
        self, *, organization: str, name: str, branch: str = "main"
    ) -> BranchReference:
        """Read `refs/heads/<branch>`.

        Raises:
            RemoteApiError: If the branch does not exist or the call fails.
            MalformedResponseError: If the response has no `object.sha`.
        """

        if not branch.strip():
            raise ValueError("branch is required")

        url = self._repo_url(organization=organization, name=name, path=f"git/refs/heads/{branch}")
        action = f"get {branch} branch"
        resp = self._send("GET", url, action=action)
        data = self._json(resp, action=action)

        obj = data.get("object")
        sha = obj.get("sha") if isinstance(obj, dict) else None
        if not isinstance(sha, str) or not sha.strip():
            raise MalformedResponseError(
                f"No SHA found in {branch} branch response",
                status_code=resp.status_code,
                body=resp.text,
            )
        return BranchReference(name=branch, sha=sha)

    def create_branch_reference(
        self,
        *,
        organization: str,
        name: str,
        branch: str,
        from_commit: str,
    ) -> bool:
        """Create `refs/heads/<branch>` at `from_commit` unless it already exists.

        Returns:
            True if the branch was created, False if it already existed.
        """

        if not from_commit.strip():
            raise ValueError("from_commit is required")

        try:
            existing = self.get_branch_reference(organization=organization, name=name, branch=branch)
        except RemoteApiError:
            existing = None

        if existing is not None:
            logger.info(
                "Branch already exists, skipping creation",
                extra={"repository": f"{organization}/{name}", "branch": branch, "sha": existing.sha},
            )
            return False

        url = self._repo_url(organization=organization, name=name, path="git/refs")
        self._send(
            "POST",
            url,
            action=f"create {branch} branch",
            payload={"ref": f"refs/heads/{branch}", "sha": from_commit},
        )
        logger.info(
            "Created branch",
            extra={"repository": f"{organization}/{name}", "branch": branch, "sha": from_commit},
        )
        return True

    def dispatch_workflow(
        self,
        *,
        organization: str,
        name: str,
        workflow_id: str,
        ref_branch: str,
    ) -> None:
        """Start a `workflow_dispatch` run of `workflow_id` against `ref_branch`."""

        url = self._repo_url(
            organization=organization,
            name=name,
            path=f"actions/workflows/{workflow_id}/dispatches",
        )
        self._send(
            "POST",
            url,
            action=f"trigger workflow {workflow_id}",
            payload={"ref": ref_branch},
        )
        logger.info(
            "Triggered workflow",
            extra={
                "repository": f"{organization}/{name}",
                "workflow": workflow_id,
                "branch": ref_branch,
            },
        )

    def close(self) -> None:
        """Close the underlying HTTP session."""

        self._session.close()
