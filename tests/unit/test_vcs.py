"""Unit tests for the local git operator.

Pushes go to a local bare repository, so these tests need the `git` executable
but no network.
"""

from __future__ import annotations

import base64
import shutil
import subprocess
from pathlib import Path

import pytest

from repo_provisioner.provisioner import vcs
from repo_provisioner.provisioner.errors import VcsError
from repo_provisioner.provisioner.vcs import CommitAuthor, TokenCredentials, initialize_and_push

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git executable not available")

AUTHOR = CommitAuthor(name="Project Generator", email="generator@nextnode.dev")


def _git(*args: str, cwd: Path) -> str:
    return subprocess.run(
        ["git", *args], cwd=str(cwd), check=True, capture_output=True, text=True
    ).stdout.strip()


@pytest.fixture
def bare_remote(tmp_path: Path) -> Path:
    remote = tmp_path / "remote.git"
    remote.mkdir()
    _git("init", "--bare", cwd=remote)
    return remote


def test_credentials_fall_back_to_git_username() -> None:
    creds = TokenCredentials(token="s3cret")

    assert creds.for_url("https://github.com/acme/demo") == ("git", "s3cret")
    assert creds.for_url("https://bot@github.com/acme/demo") == ("bot", "s3cret")


def test_credentials_basic_auth_header() -> None:
    header = TokenCredentials(token="s3cret").basic_auth_header("https://github.com/acme/demo")

    scheme, _, encoded = header.partition("Basic ")
    assert scheme == "Authorization: "
    assert base64.b64decode(encoded).decode() == "git:s3cret"


@requires_git
def test_initialize_and_push_creates_single_commit_on_main(
    project_dir: Path, bare_remote: Path
) -> None:
    initialize_and_push(
        local_path=project_dir,
        remote_url=str(bare_remote),
        author=AUTHOR,
        credentials=TokenCredentials(token="t"),
    )

    log = _git("log", "--format=%s|%an|%ae", "refs/heads/main", cwd=bare_remote)
    assert log.splitlines() == ["first commit|Project Generator|generator@nextnode.dev"]
    assert _git("remote", "get-url", "origin", cwd=project_dir) == str(bare_remote)


@requires_git
def test_initialize_and_push_replaces_existing_history(project_dir: Path, bare_remote: Path) -> None:
    _git("init", cwd=project_dir)
    _git(
        "-c",
        "user.name=someone",
        "-c",
        "user.email=someone@example.invalid",
        "-c",
        "commit.gpgsign=false",
        "commit",
        "--allow-empty",
        "-m",
        "old history",
        cwd=project_dir,
    )

    initialize_and_push(
        local_path=project_dir,
        remote_url=str(bare_remote),
        author=AUTHOR,
        credentials=TokenCredentials(token="t"),
    )

    assert _git("rev-list", "--count", "refs/heads/main", cwd=bare_remote) == "1"


@requires_git
def test_initialize_and_push_honours_gitignore(project_dir: Path, bare_remote: Path) -> None:
    (project_dir / ".gitignore").write_text("node_modules/\n", encoding="utf-8")
    (project_dir / "node_modules").mkdir()
    (project_dir / "node_modules" / "dep.js").write_text("x", encoding="utf-8")

    initialize_and_push(
        local_path=project_dir,
        remote_url=str(bare_remote),
        author=AUTHOR,
        credentials=TokenCredentials(token="t"),
    )

    files = _git("ls-tree", "-r", "--name-only", "refs/heads/main", cwd=bare_remote).splitlines()
    assert sorted(files) == [".gitignore", "README.md"]


@requires_git
def test_initialize_and_push_commits_an_empty_tree(tmp_path: Path, bare_remote: Path) -> None:
    empty = tmp_path / "empty"
    empty.mkdir()

    initialize_and_push(
        local_path=empty,
        remote_url=str(bare_remote),
        author=AUTHOR,
        credentials=TokenCredentials(token="t"),
    )

    assert _git("rev-list", "--count", "refs/heads/main", cwd=bare_remote) == "1"
    assert _git("ls-tree", "-r", "--name-only", "refs/heads/main", cwd=bare_remote) == ""


@requires_git
def test_initialize_and_push_skips_commit_hooks(
    project_dir: Path, bare_remote: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    hooks = tmp_path / "hooks"
    hooks.mkdir()
    for hook in ("pre-commit", "commit-msg"):
        script = hooks / hook
        script.write_text("#!/bin/sh\nexit 1\n", encoding="utf-8")
        script.chmod(0o755)
    monkeypatch.setenv("GIT_CONFIG_COUNT", "1")
    monkeypatch.setenv("GIT_CONFIG_KEY_0", "core.hooksPath")
    monkeypatch.setenv("GIT_CONFIG_VALUE_0", str(hooks))

    initialize_and_push(
        local_path=project_dir,
        remote_url=str(bare_remote),
        author=AUTHOR,
        credentials=TokenCredentials(token="t"),
    )

    assert _git("rev-list", "--count", "refs/heads/main", cwd=bare_remote) == "1"


@requires_git
def test_initialize_and_push_fails_for_unreachable_remote(project_dir: Path, tmp_path: Path) -> None:
    with pytest.raises(VcsError) as excinfo:
        initialize_and_push(
            local_path=project_dir,
            remote_url=str(tmp_path / "missing.git"),
            author=AUTHOR,
            credentials=TokenCredentials(token="t"),
        )

    assert excinfo.value.command is not None
    assert excinfo.value.command[:2] == ["git", "push"]


def test_initialize_and_push_rejects_missing_directory(tmp_path: Path) -> None:
    with pytest.raises(VcsError):
        initialize_and_push(
            local_path=tmp_path / "nope",
            remote_url="https://github.com/acme/demo",
            author=AUTHOR,
            credentials=TokenCredentials(token="t"),
        )


def test_token_never_appears_in_argv(project_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[tuple[list[str], dict[str, str]]] = []

    def fake_run(cmd, **kwargs):  # type: ignore[no-untyped-def]
        seen.append((cmd, kwargs["env"]))
        return subprocess.CompletedProcess(cmd, 0, stdout="")

    monkeypatch.delenv("GIT_CONFIG_COUNT", raising=False)
    monkeypatch.setattr(vcs.subprocess, "run", fake_run)

    initialize_and_push(
        local_path=project_dir,
        remote_url="https://github.com/acme/demo",
        author=AUTHOR,
        credentials=TokenCredentials(token="s3cret-token"),
    )

    assert all("s3cret-token" not in " ".join(cmd) for cmd, _ in seen)

    push_cmd, push_env = seen[-1]
    assert push_cmd == ["git", "push", "origin", "HEAD:refs/heads/main"]
    assert push_env["GIT_CONFIG_KEY_0"] == "http.extraHeader"
    assert push_env["GIT_TERMINAL_PROMPT"] == "0"
    encoded = push_env["GIT_CONFIG_VALUE_0"].removeprefix("Authorization: Basic ")
    assert base64.b64decode(encoded).decode() == "git:s3cret-token"

    commit_cmd, commit_env = next((c, e) for c, e in seen if "commit" in c)
    assert commit_cmd[-2:] == ["-m", "first commit"]
    assert commit_env["GIT_AUTHOR_NAME"] == "Project Generator"
    assert commit_env["GIT_COMMITTER_EMAIL"] == "generator@nextnode.dev"


def test_push_keeps_git_config_entries_from_the_environment(
    project_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    seen: list[tuple[list[str], dict[str, str]]] = []

    def fake_run(cmd, **kwargs):  # type: ignore[no-untyped-def]
        seen.append((cmd, kwargs["env"]))
        return subprocess.CompletedProcess(cmd, 0, stdout="")

    monkeypatch.setenv("GIT_CONFIG_COUNT", "2")
    monkeypatch.setenv("GIT_CONFIG_KEY_0", "safe.directory")
    monkeypatch.setenv("GIT_CONFIG_VALUE_0", "*")
    monkeypatch.setenv("GIT_CONFIG_KEY_1", "http.proxy")
    monkeypatch.setenv("GIT_CONFIG_VALUE_1", "http://proxy.internal:3128")
    monkeypatch.setattr(vcs.subprocess, "run", fake_run)

    initialize_and_push(
        local_path=project_dir,
        remote_url="https://github.com/acme/demo",
        author=AUTHOR,
        credentials=TokenCredentials(token="s3cret-token"),
    )

    _, push_env = seen[-1]
    assert push_env["GIT_CONFIG_COUNT"] == "3"
    assert push_env["GIT_CONFIG_KEY_0"] == "safe.directory"
    assert push_env["GIT_CONFIG_VALUE_0"] == "*"
    assert push_env["GIT_CONFIG_KEY_1"] == "http.proxy"
    assert push_env["GIT_CONFIG_VALUE_1"] == "http://proxy.internal:3128"
    assert push_env["GIT_CONFIG_KEY_2"] == "http.extraHeader"
    assert push_env["GIT_CONFIG_VALUE_2"].startswith("Authorization: Basic ")

    commit_cmd, _ = next((c, e) for c, e in seen if "commit" in c)
    assert "--allow-empty" in commit_cmd
    assert "--no-verify" in commit_cmd
