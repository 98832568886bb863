"""Test configuration and fixtures."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import Mock

import pytest
import requests

from repo_provisioner.provisioner.config import ProvisionerSettings

ResponseFactory = Callable[..., requests.Response]

_SETTINGS_ENV_VARS = (
    "PROVISIONER_GITHUB_TOKEN",
    "PROVISIONER_ORGANIZATION_URL",
    "PROVISIONER_USER_AGENT",
    "GITHUB_BASE_URL",
    "NO_DEPLOY",
    "LOG_LEVEL",
    "PROVISIONER_BRANCH_INDEXING_DELAY",
    "PROVISIONER_WORKFLOW_INDEXING_DELAY",
    "PROVISIONER_DISPATCH_SPACING_DELAY",
)


def build_response(
    status_code: int = 200,
    payload: Any = None,
    *,
    text: str | None = None,
) -> requests.Response:
    """Build a real `requests.Response` without touching the network."""

    resp = requests.Response()
    resp.status_code = status_code
    resp.encoding = "utf-8"
    if text is not None:
        resp._content = text.encode("utf-8")
    elif payload is not None:
        resp._content = json.dumps(payload).encode("utf-8")
    else:
        resp._content = b""
    return resp


@pytest.fixture
def make_response() -> ResponseFactory:
    return build_response


@pytest.fixture
def session() -> requests.Session:
    """A real session whose `request` method is a Mock."""

    s = requests.Session()
    s.request = Mock(name="request")  # type: ignore[method-assign]
    return s


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings(clean_env: None) -> ProvisionerSettings:
    """Settings with zero delays so tests never sleep."""

    return ProvisionerSettings(
        _env_file=None,
        github_token="test-token",
        organization_url="https://github.com/acme",
        branch_indexing_delay=0,
        workflow_indexing_delay=0,
        dispatch_spacing_delay=0,
    )


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A minimal rendered project tree."""

    root = tmp_path / "demo"
    root.mkdir()
    (root / "README.md").write_text("# demo\n", encoding="utf-8")
    return root


@pytest.fixture
def project_with_workflows(project_dir: Path) -> Path:
    workflows = project_dir / ".github" / "workflows"
    workflows.mkdir(parents=True)
    (workflows / "deploy-dev.yml").write_text("name: dev\n", encoding="utf-8")
    (workflows / "deploy-prod.yml").write_text("name: prod\n", encoding="utf-8")
    return project_dir
