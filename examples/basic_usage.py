#!/usr/bin/env python3
"""Programmatic provisioning example.

This demonstrates using the provisioner components directly:

* load settings from `.env`
* provision a rendered project directory into the configured organization
* inspect the run report for advisory warnings

The repository name and project path are passed as arguments (not read from `.env`).
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Sequence

from repo_provisioner.provisioner.config import ProvisionerSettings
from repo_provisioner.provisioner.errors import ProvisioningAborted
from repo_provisioner.provisioner.logging import configure_logging
from repo_provisioner.provisioner.pipeline import (
    ProvisioningRequest,
    is_deploy_disabled,
    provision_repository,
)


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Provision a repository (programmatic example).")
    parser.add_argument("--name", required=True, help="Repository name")
    parser.add_argument("--path", required=True, help="Rendered project directory")
    parser.add_argument("--description", default="", help="Repository description")
    parser.add_argument("--develop", action="store_true", help="Also create a develop branch")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = ProvisionerSettings()
    configure_logging(settings.log_level)

    request = ProvisioningRequest(
        token=settings.github_token,
        repository_name=args.name,
        project_path=Path(args.path).resolve(),
        description=args.description,
        create_develop_branch=args.develop,
        auto_deploy=not is_deploy_disabled(settings.no_deploy),
    )

    try:
        report = provision_repository(request, settings)
    except ProvisioningAborted as exc:
        print(f"Aborted during {exc.stage}: {exc}")
        return 1

    print(f"URL: {report.repository.html_url}")
    for outcome in report.outcomes:
        print(f"  {outcome.stage}: {outcome.status.value} {outcome.message}".rstrip())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
