"""Shared test fixtures and configuration."""

import re
import subprocess
from pathlib import Path
from typing import Optional

import pytest

from prstack.config import PrstackConfig
from prstack.core.models import CommitInfo
from prstack.git.queries import get_stack_commits_with_trailers


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep tests away from the user's ~/.prstack and global git config."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr("prstack.config._CONFIG_DIR", home / ".prstack")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(home / ".gitconfig"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    return home


@pytest.fixture
def temp_repo(tmp_path):
    """Create a git repository with an initial commit on main and a feature branch."""
    repo_dir = tmp_path / "test_repo"
    repo_dir.mkdir()

    subprocess.run(["git", "init", "-b", "main"], cwd=repo_dir, capture_output=True)
    subprocess.run(
        ["git", "config", "user.email", "test@example.com"],
        cwd=repo_dir,
        capture_output=True,
    )
    subprocess.run(
        ["git", "config", "user.name", "Test User"],
        cwd=repo_dir,
        capture_output=True,
    )
    subprocess.run(
        ["git", "config", "prstack.trunkRef", "main"],
        cwd=repo_dir,
        capture_output=True,
    )

    (repo_dir / "README.md").write_text("# Test Repo\n")
    subprocess.run(["git", "add", "README.md"], cwd=repo_dir, capture_output=True)
    subprocess.run(
        ["git", "commit", "-m", "Initial commit"],
        cwd=repo_dir,
        capture_output=True,
    )
    subprocess.run(["git", "checkout", "-b", "feature"], cwd=repo_dir, capture_output=True)

    return repo_dir


@pytest.fixture
def config():
    """Configuration matching the temp_repo layout."""
    return PrstackConfig(trunk_ref="main", namespace="tester")


@pytest.fixture
def git(temp_repo):
    """Run a git command in temp_repo and return its stripped stdout."""

    def run(*args: str, input: Optional[str] = None) -> str:
        result = subprocess.run(
            ["git", *args],
            cwd=temp_repo,
            capture_output=True,
            text=True,
            check=True,
            input=input,
        )
        return result.stdout.strip()

    return run


@pytest.fixture
def make_commit(temp_repo, git):
    """Create a commit touching one file and return its hash.

    By default each commit writes its own file named after the subject, so
    commits can be reordered without conflicts.
    """

    def create(
        subject: str,
        trailers: Optional[dict[str, str]] = None,
        body: str = "",
        filename: Optional[str] = None,
        content: Optional[str] = None,
    ) -> str:
        if filename is None:
            filename = re.sub(r"[^a-z0-9]+", "-", subject.lower()).strip("-") + ".txt"
        (temp_repo / filename).write_text(content if content is not None else subject + "\n")
        git("add", filename)

        message = subject
        if body:
            message += "\n\n" + body
        if trailers:
            message += "\n\n" + "\n".join(f"{key}: {value}" for key, value in trailers.items())
        git("commit", "-q", "-F", "-", input=message + "\n")
        return git("rev-parse", "HEAD")

    return create


@pytest.fixture
def read_stack(temp_repo):
    """Read the stack commits of temp_repo, oldest first."""

    def read() -> list[CommitInfo]:
        return get_stack_commits_with_trailers("main", cwd=temp_repo)

    return read
