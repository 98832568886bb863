"""Local git operations: turn a rendered directory into a single-commit repository and push it.

All steps shell out to the `git` executable. Credentials are passed to the push
through the process environment only; they never land in argv or `.git/config`.
"""

from __future__ import annotations

import base64
import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from repo_provisioner.provisioner.errors import VcsError

logger = logging.getLogger(__name__)

INITIAL_COMMIT_MESSAGE = "first commit"
REMOTE_NAME = "origin"
PUSH_REFSPEC = "HEAD:refs/heads/main"


@dataclass(frozen=True, slots=True)
class CommitAuthor:
    name: str
    email: str


@dataclass(frozen=True, slots=True)
class TokenCredentials:
    """Token used as a plaintext password for HTTPS push.

    The username comes from the remote URL when it carries one, otherwise
    `fallback_username` is used.
    """

    token: str
    fallback_username: str = "git"

    def for_url(self, url: str) -> tuple[str, str]:
        username = urlparse(url).username or self.fallback_username
        return username, self.token

    def basic_auth_header(self, url: str) -> str:
        username, password = self.for_url(url)
        encoded = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
        return f"Authorization: Basic {encoded}"


def _run(cmd: list[str], *, cwd: Path, env: dict[str, str] | None = None) -> str:
    """Run a git command, raising VcsError on failure."""

    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=env,
            check=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
        )
    except FileNotFoundError as e:
        raise VcsError(f"git executable not found: {e}", command=cmd) from e
    except subprocess.CalledProcessError as e:
        raise VcsError(f"Command failed: {' '.join(cmd)}", command=cmd, output=e.stdout or "") from e
    return proc.stdout


def _commit_env(base_env: dict[str, str], author: CommitAuthor) -> dict[str, str]:
    env = dict(base_env)
    env["GIT_AUTHOR_NAME"] = author.name
    env["GIT_AUTHOR_EMAIL"] = author.email
    env["GIT_COMMITTER_NAME"] = author.name
    env["GIT_COMMITTER_EMAIL"] = author.email
    return env


def _push_env(base_env: dict[str, str], remote_url: str, credentials: TokenCredentials) -> dict[str, str]:
    env = dict(base_env)
    env["GIT_TERMINAL_PROMPT"] = "0"

    # Append to any GIT_CONFIG_* entries the caller already exports.
    try:
        index = int(env.get("GIT_CONFIG_COUNT", "0"))
    except ValueError:
        index = 0
    env[f"GIT_CONFIG_KEY_{index}"] = "http.extraHeader"
    env[f"GIT_CONFIG_VALUE_{index}"] = credentials.basic_auth_header(remote_url)
    env["GIT_CONFIG_COUNT"] = str(index + 1)
    return env


def initialize_and_push(
    *,
    local_path: Path,
    remote_url: str,
    author: CommitAuthor,
    credentials: TokenCredentials,
) -> None:
    """Re-initialise `local_path` as a fresh repository and push it to `remote_url`.

    Steps (each a precondition for the next):
    1. remove any existing `.git` directory
    2. `git init` on `main`
    3. stage everything (respecting `.gitignore`)
    4. commit as `author` (an empty tree is committed too; hooks are skipped)
    5. add `remote_url` as `origin`
    6. push HEAD to `refs/heads/main`

    Raises:
        VcsError: If any step fails. Whatever git already wrote stays on disk.
    """

    if not local_path.is_dir():
        raise VcsError(f"Project path is not a directory: {local_path}")

    git_dir = local_path / ".git"
    if git_dir.exists():
        logger.info("Removing existing git metadata", extra={"path": str(git_dir)})
        try:
            shutil.rmtree(git_dir)
        except OSError as e:
            raise VcsError(f"Failed to remove existing {git_dir}: {e}") from e

    base_env = os.environ.copy()

    _run(["git", "-c", "init.defaultBranch=main", "init"], cwd=local_path, env=base_env)
    _run(["git", "add", "-A"], cwd=local_path, env=base_env)
    _run(
        [
            "git",
            "-c",
            "commit.gpgsign=false",
            "commit",
            "--allow-empty",
            "--no-verify",
            "-m",
            INITIAL_COMMIT_MESSAGE,
        ],
        cwd=local_path,
        env=_commit_env(base_env, author),
    )
    logger.info("Committed project tree", extra={"path": str(local_path)})

    _run(["git", "remote", "add", REMOTE_NAME, remote_url], cwd=local_path, env=base_env)
    _run(
        ["git", "push", REMOTE_NAME, PUSH_REFSPEC],
        cwd=local_path,
        env=_push_env(base_env, remote_url, credentials),
    )
    logger.info("Pushed initial commit", extra={"remote": remote_url, "refspec": PUSH_REFSPEC})
