"""CLI entrypoint for the repository provisioner."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from repo_provisioner import __version__
from repo_provisioner.provisioner.config import ProvisionerSettings
from repo_provisioner.provisioner.errors import ConfigurationError, ProvisioningAborted
from repo_provisioner.provisioner.logging import configure_logging
from repo_provisioner.provisioner.pipeline import (
    ALLOWED_TOPICS,
    ProvisioningRequest,
    is_deploy_disabled,
    provision_repository,
    validate_topic,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repo-provisioner",
        description="Create a GitHub repository for a generated project and push it",
    )
    parser.add_argument(
        "--version", action="version", version=f"github-repo-provisioner {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    provision = subparsers.add_parser(
        "provision",
        help="Create the repository, push the project, set up branches and trigger deployments",
    )
    provision.add_argument("--name", required=True, help="Repository name")
    provision.add_argument(
        "--path",
        required=True,
        help="Directory containing the rendered project",
    )
    provision.add_argument("--description", default="", help="Repository description")
    provision.add_argument(
        "--topic",
        default=None,
        help=f"Repository topic, one of: {', '.join(ALLOWED_TOPICS)}",
    )
    provision.add_argument(
        "--develop",
        action="store_true",
        help="Create a 'develop' branch from 'main' after the push",
    )
    provision.add_argument(
        "--private",
        action="store_true",
        help="Create a private repository",
    )
    provision.add_argument(
        "--no-deploy",
        default=None,
        metavar="VALUE",
        help="Disable deployment dispatch when VALUE is true/1/yes/on (overrides NO_DEPLOY)",
    )

    return parser


def _build_request(args: argparse.Namespace, settings: ProvisionerSettings) -> ProvisioningRequest:
    project_path = Path(args.path).resolve()
    if not project_path.is_dir():
        raise ConfigurationError(f"Project path is not a directory: {project_path}")

    no_deploy = args.no_deploy if args.no_deploy is not None else settings.no_deploy
    return ProvisioningRequest(
        token=settings.github_token,
        repository_name=args.name,
        project_path=project_path,
        description=args.description,
        topic=validate_topic(args.topic),
        create_develop_branch=bool(args.develop),
        auto_deploy=not is_deploy_disabled(no_deploy),
        private=bool(args.private),
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = ProvisionerSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    try:
        if args.command == "provision":
            request = _build_request(args, settings)
            report = provision_repository(request, settings)

            print(f"Created GitHub repository: {report.repository.html_url}")
            for warning in report.warnings:
                print(f"Warning: {warning.message}", file=sys.stderr)
            return 0

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except ConfigurationError as e:
        logger.error("Configuration error", extra={"error": str(e)})
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    except ProvisioningAborted as e:
        logger.error("Provisioning failed", extra={"stage": e.stage})
        print(str(e), file=sys.stderr)
        return 1

    except Exception:
        logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
